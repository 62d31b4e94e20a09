"""
Admin Dependencies for Authentication and Authorization
"""
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List, Optional
from storefront.database import get_db
from storefront.utils.security import verify_token, TOKEN_TYPE_ADMIN
from storefront.models.admin import Admin, AdminRole

logger = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)


async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db)
) -> Admin:
    """Get current authenticated admin"""
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    admin_id = verify_token(credentials.credentials, TOKEN_TYPE_ADMIN)
    if admin_id is None:
        logger.debug("Admin token decode failed or token is not an admin token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    admin = db.query(Admin).filter(Admin.id == admin_id).first()
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin account is inactive"
        )
    
    return admin


def require_role(allowed_roles: List[AdminRole]):
    """
    Dependency factory for role-based access control
    
    Usage:
        @router.get("/endpoint")
        async def endpoint(admin: Admin = Depends(require_role([AdminRole.SUPER_ADMIN, AdminRole.ADMIN]))):
            ...
    """
    async def role_checker(
        current_admin: Admin = Depends(get_current_admin)
    ) -> Admin:
        if current_admin.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_admin
    
    return role_checker


require_manager_or_above = require_role([AdminRole.SUPER_ADMIN, AdminRole.ADMIN, AdminRole.MANAGER])
