import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return float(value)


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./appointments.db")

# "development" exposes exception details in 500 responses
ENVIRONMENT = os.getenv("ENVIRONMENT", "production").lower()

# CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "https://www.emisdental.com,https://emisdental.com,http://localhost:5173",
).split(",")
ALLOWED_ORIGIN_REGEX = os.getenv("ALLOWED_ORIGIN_REGEX", r"https://.*\.vercel\.app")

# Intake policy
REQUIRE_LANGUAGE = _env_flag("REQUIRE_LANGUAGE", "true")
REQUIRE_CAPTCHA = _env_flag("REQUIRE_CAPTCHA", "true")

# Google reCAPTCHA
RECAPTCHA_SECRET_KEY = os.getenv("RECAPTCHA_SECRET_KEY")
RECAPTCHA_VERIFY_URL = os.getenv(
    "RECAPTCHA_VERIFY_URL", "https://www.google.com/recaptcha/api/siteverify"
)
RECAPTCHA_TIMEOUT_SECONDS = float(os.getenv("RECAPTCHA_TIMEOUT_SECONDS", "5.0"))
RECAPTCHA_MIN_SCORE = _env_float("RECAPTCHA_MIN_SCORE")  # v3 tokens only

# Rate limiting (15 minutes, 50 submissions per client)
RATE_LIMIT_ENABLED = _env_flag("RATE_LIMIT_ENABLED", "true")
RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", "50"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900"))
REDIS_URL = os.getenv("REDIS_URL")
# Proxies in front of the app that append to X-Forwarded-For; 0 keys on the peer address
TRUSTED_PROXY_HOPS = int(os.getenv("TRUSTED_PROXY_HOPS", "0"))

# Admin access: "shared_secret" or "signed_token"
ADMIN_AUTH_STRATEGY = os.getenv("ADMIN_AUTH_STRATEGY", "shared_secret").lower()
ADMIN_API_TOKEN = os.getenv("ADMIN_API_TOKEN")
ADMIN_REGISTRATION_ENABLED = _env_flag("ADMIN_REGISTRATION_ENABLED", "false")
JWT_EXPIRES_IN = os.getenv("JWT_EXPIRES_IN", "1d")

# Security - CRITICAL: No default signing key in production
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    import warnings

    warnings.warn(
        "JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
    JWT_SECRET = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Opt-in uniqueness of (email, date); no uniqueness index otherwise
APPOINTMENT_UNIQUE_EMAIL_DATE = _env_flag("APPOINTMENT_UNIQUE_EMAIL_DATE", "false")

# Largest accepted JSON body, in bytes
MAX_BODY_BYTES = int(os.getenv("MAX_BODY_BYTES", "10240"))

SECURITY_HEADERS_ENABLED = _env_flag("SECURITY_HEADERS_ENABLED", "true")


class Settings(BaseModel):
    """Deployment toggles consumed by the app factory"""

    environment: str = ENVIRONMENT
    require_language: bool = REQUIRE_LANGUAGE
    require_captcha: bool = REQUIRE_CAPTCHA
    recaptcha_secret_key: Optional[str] = RECAPTCHA_SECRET_KEY
    recaptcha_verify_url: str = RECAPTCHA_VERIFY_URL
    recaptcha_timeout_seconds: float = RECAPTCHA_TIMEOUT_SECONDS
    recaptcha_min_score: Optional[float] = RECAPTCHA_MIN_SCORE
    rate_limit_enabled: bool = RATE_LIMIT_ENABLED
    rate_limit_max: int = RATE_LIMIT_MAX
    rate_limit_window_seconds: int = RATE_LIMIT_WINDOW_SECONDS
    redis_url: Optional[str] = REDIS_URL
    trusted_proxy_hops: int = TRUSTED_PROXY_HOPS
    admin_auth_strategy: str = ADMIN_AUTH_STRATEGY
    admin_api_token: Optional[str] = ADMIN_API_TOKEN
    admin_registration_enabled: bool = ADMIN_REGISTRATION_ENABLED
    jwt_secret: str = JWT_SECRET
    jwt_expires_in: str = JWT_EXPIRES_IN
    appointment_unique_email_date: bool = APPOINTMENT_UNIQUE_EMAIL_DATE
    max_body_bytes: int = MAX_BODY_BYTES
    security_headers_enabled: bool = SECURITY_HEADERS_ENABLED
    allowed_origins: list[str] = ALLOWED_ORIGINS
    allowed_origin_regex: Optional[str] = ALLOWED_ORIGIN_REGEX

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def get_settings() -> Settings:
    return Settings()
