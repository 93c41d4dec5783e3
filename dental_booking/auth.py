import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import Settings
from .database import get_db
from .errors import UnauthorizedError
from .models import Admin
from .security_utils import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

SHARED_SECRET = "shared_secret"
SIGNED_TOKEN = "signed_token"


@dataclass
class AdminPrincipal:
    strategy: str
    admin_id: Optional[int] = None
    email: Optional[str] = None
    username: Optional[str] = None


class AdminAccessGuard(ABC):
    """Binary gate in front of every moderation operation"""

    strategy: str

    @abstractmethod
    def authorize(self, token: str, db: Session) -> AdminPrincipal:
        """Return the principal for a bearer token or raise UnauthorizedError"""


class SharedSecretGuard(AdminAccessGuard):
    """Bearer token must equal one pre-shared operator secret (no expiry)"""

    strategy = SHARED_SECRET

    def __init__(self, api_token: Optional[str]):
        self.api_token = api_token
        if not api_token:
            logger.warning("⚠️ ADMIN_API_TOKEN not configured - all admin requests will be rejected")

    def authorize(self, token: str, db: Session) -> AdminPrincipal:
        if not self.api_token or not hmac.compare_digest(token.encode(), self.api_token.encode()):
            raise UnauthorizedError("Invalid token")
        return AdminPrincipal(strategy=self.strategy)


class SignedTokenGuard(AdminAccessGuard):
    """Bearer token must be an unexpired JWT issued to a registered admin"""

    strategy = SIGNED_TOKEN

    def __init__(self, secret: str):
        self.secret = secret

    def authorize(self, token: str, db: Session) -> AdminPrincipal:
        payload = decode_access_token(token, self.secret)
        if payload is None:
            raise UnauthorizedError("Invalid or expired token")

        admin_id = payload.get("id")
        admin = db.get(Admin, admin_id) if isinstance(admin_id, int) else None
        if admin is None:
            raise UnauthorizedError("Admin no longer exists")

        return AdminPrincipal(
            strategy=self.strategy, admin_id=admin.id, email=admin.email, username=admin.username
        )


def build_admin_guard(settings: Settings) -> AdminAccessGuard:
    if settings.admin_auth_strategy == SIGNED_TOKEN:
        return SignedTokenGuard(settings.jwt_secret)
    if settings.admin_auth_strategy == SHARED_SECRET:
        return SharedSecretGuard(settings.admin_api_token)
    raise ValueError(f"Unknown ADMIN_AUTH_STRATEGY: {settings.admin_auth_strategy!r}")


def get_admin_guard(request: Request) -> AdminAccessGuard:
    return request.app.state.admin_guard


async def require_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    guard: AdminAccessGuard = Depends(get_admin_guard),
    db: Session = Depends(get_db),
) -> AdminPrincipal:
    """Authorize the bearer credential of a moderation request"""
    if not credentials or not credentials.credentials:
        logger.warning(f"🔒 No bearer token on {request.method} {request.url.path}")
        raise UnauthorizedError("Not authenticated. Please provide a valid Bearer token.")

    try:
        principal = guard.authorize(credentials.credentials, db)
    except UnauthorizedError:
        logger.warning(f"🔒 Rejected admin token on {request.method} {request.url.path}")
        raise

    logger.debug(f"✅ Admin authorized via {principal.strategy}")
    return principal
