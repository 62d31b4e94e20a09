"""
Admin Authentication Endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from storefront.database import get_db
from storefront.schemas.admin import AdminLogin
from storefront.schemas.common import ResponseModel
from storefront.models.admin import Admin
from storefront.services.auth_service import authenticate_admin
from storefront.utils.security import create_admin_token
from storefront.api.admin_deps import get_current_admin

router = APIRouter()


def _admin_payload(admin: Admin) -> dict:
    return {
        "id": admin.id,
        "email": admin.email,
        "name": admin.name,
        "role": admin.role.value,
        "lastLogin": admin.last_login.isoformat() if admin.last_login else None
    }


@router.post("/login", response_model=ResponseModel)
async def admin_login(credentials: AdminLogin, db: Session = Depends(get_db)):
    """Admin login"""
    admin = authenticate_admin(db, credentials.email, credentials.password)
    token = create_admin_token(admin.id, admin.email, admin.role.value)
    
    return ResponseModel(
        success=True,
        data={
            "token": token,
            "admin": _admin_payload(admin)
        },
        message="Login successful"
    )


@router.get("/me", response_model=ResponseModel)
async def get_admin_profile(admin: Admin = Depends(get_current_admin)):
    """Get current admin profile"""
    return ResponseModel(success=True, data=_admin_payload(admin))
