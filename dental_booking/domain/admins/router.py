"""Admin router - account endpoints for the signed-token strategy"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import AdminPrincipal, require_admin
from ...database import get_db
from ...models import Admin
from .schemas import (
    AdminLogin,
    AdminPrincipalResponse,
    AdminRegister,
    AdminResponse,
    AdminTokenResponse,
)
from .service import AdminService

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def get_admin_service(request: Request, db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db, request.app.state.settings)


@router.post("/register", status_code=201, response_model=AdminTokenResponse)
async def register_admin(data: AdminRegister, service: AdminService = Depends(get_admin_service)):
    admin = service.register(data)
    return AdminTokenResponse(
        message="Admin registered",
        token=service.issue_token(admin),
        admin=AdminResponse.from_model(admin),
    )


@router.post("/login", response_model=AdminTokenResponse)
async def login_admin(data: AdminLogin, service: AdminService = Depends(get_admin_service)):
    admin = service.login(data)
    return AdminTokenResponse(
        message="Logged in",
        token=service.issue_token(admin),
        admin=AdminResponse.from_model(admin),
    )


@router.get("/me", response_model=AdminPrincipalResponse)
async def current_admin(
    principal: AdminPrincipal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    admin = db.get(Admin, principal.admin_id) if principal.admin_id is not None else None
    return AdminPrincipalResponse(
        message="Authorized",
        strategy=principal.strategy,
        admin=AdminResponse.from_model(admin) if admin else None,
    )
