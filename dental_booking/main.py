import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .auth import build_admin_guard
from .config import Settings, get_settings
from .database import Base, engine
from .domain.admins import router as admins_router
from .domain.appointments import router as appointments_router
from .errors import register_error_handlers
from .models import ensure_unique_email_date
from .rate_limiter import RateLimiter, get_redis_client
from .recaptcha import RecaptchaVerifier
from .sanitize_middleware import SanitizationMiddleware
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"❌ Failed to create database tables: {e}")
            raise

    settings: Settings = app.state.settings
    if settings.appointment_unique_email_date:
        ensure_unique_email_date(engine)
        logger.info("Unique (email, date) index enabled for appointments")

    limiter: Optional[RateLimiter] = app.state.rate_limiter
    if limiter is not None and settings.redis_url:
        try:
            limiter.redis_client = get_redis_client(settings.redis_url)
        except redis.RedisError as e:
            logger.warning(f"⚠️ Redis connection failed - rate limiting uses memory only: {e}")

    yield
    logger.info("🛑 Application shutting down...")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Dental Booking API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.admin_guard = build_admin_guard(settings)
    app.state.rate_limiter = (
        RateLimiter(
            limit=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
            key_prefix="appointments",
        )
        if settings.rate_limit_enabled
        else None
    )
    app.state.recaptcha_verifier = (
        RecaptchaVerifier(
            secret_key=settings.recaptcha_secret_key,
            verify_url=settings.recaptcha_verify_url,
            timeout=settings.recaptcha_timeout_seconds,
            min_score=settings.recaptcha_min_score,
        )
        if settings.require_captcha
        else None
    )

    logger.info(
        f"Intake policy: captcha={'on' if settings.require_captcha else 'off'}, "
        f"rate_limit={'on' if settings.rate_limit_enabled else 'off'}, "
        f"language={'required' if settings.require_language else 'optional'}, "
        f"admin_auth={settings.admin_auth_strategy}"
    )

    register_error_handlers(app, expose_details=settings.is_development)

    if settings.security_headers_enabled:
        app.add_middleware(
            SecurityHeadersMiddleware,
            enable_hsts=not settings.is_development,
            exclude_paths=["/docs", "/openapi.json"],
        )
        logger.info("Security headers enabled")
    else:
        logger.warning("Security headers DISABLED - only use in development!")

    # Runs before routing, so no handler sees unsanitized input
    app.add_middleware(SanitizationMiddleware, max_body_bytes=settings.max_body_bytes)

    logger.info(f"CORS allowed origins: {settings.allowed_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_origin_regex=settings.allowed_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    app.include_router(appointments_router)
    app.include_router(admins_router)

    @app.get("/")
    def root():
        return {"success": True, "message": "Dental Booking API is running"}

    @app.get("/health")
    def health():
        return {"success": True, "message": "OK", "status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "5000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
