"""Admin service - registration and login for the signed-token strategy"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import SIGNED_TOKEN
from ...config import Settings
from ...errors import (
    DuplicateEntryError,
    ForbiddenError,
    MissingFieldsError,
    UnauthorizedError,
    UnsupportedAuthStrategyError,
    ValidationFailed,
)
from ...models import Admin
from ...security_utils import create_access_token, hash_password, verify_password
from .schemas import AdminLogin, AdminRegister

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def _require_signed_tokens(self) -> None:
        if self.settings.admin_auth_strategy != SIGNED_TOKEN:
            raise UnsupportedAuthStrategyError()

    def issue_token(self, admin: Admin) -> str:
        return create_access_token(admin.id, self.settings.jwt_secret, self.settings.jwt_expires_in)

    def register(self, data: AdminRegister) -> Admin:
        self._require_signed_tokens()
        if not self.settings.admin_registration_enabled:
            raise ForbiddenError("Admin registration is disabled")

        try:
            admin = Admin(
                username=data.username,
                email=data.email.strip(),
                password_hash=hash_password(data.password),
            )
            self.db.add(admin)
            self.db.commit()
        except ValueError as e:
            self.db.rollback()
            raise ValidationFailed(str(e)) from e
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEntryError("An admin with this email already exists") from e

        self.db.refresh(admin)
        logger.info(f"🆕 Admin {admin.id} registered")
        return admin

    def login(self, data: AdminLogin) -> Admin:
        self._require_signed_tokens()
        missing = [field for field in ("email", "password") if not getattr(data, field)]
        if missing:
            raise MissingFieldsError(missing)

        admin = self.db.query(Admin).filter(Admin.email == data.email.strip().lower()).first()
        if not admin or not verify_password(data.password, admin.password_hash):
            logger.warning("🔒 Failed admin login attempt")
            raise UnauthorizedError("Incorrect email or password")

        logger.info(f"✅ Admin {admin.id} logged in")
        return admin
