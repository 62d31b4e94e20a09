from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from storefront.database import get_db
from storefront.utils.security import verify_token, TOKEN_TYPE_CUSTOMER
from storefront.models.customer import Customer

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/customers/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/customers/login", auto_error=False)


def _load_customer(db: Session, customer_id: Optional[str]) -> Optional[Customer]:
    if not customer_id:
        return None
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if customer is None or not customer.is_active:
        return None
    return customer


async def get_current_customer(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Customer:
    """Get current authenticated customer"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    
    customer_id = verify_token(token, TOKEN_TYPE_CUSTOMER)
    if customer_id is None:
        raise credentials_exception
    
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if customer is None:
        raise credentials_exception
    
    if not customer.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Customer account is inactive"
        )
    
    return customer


async def get_optional_customer(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[Customer]:
    """Current customer if a valid customer token was sent, otherwise None (guest)"""
    if not token:
        return None
    return _load_customer(db, verify_token(token, TOKEN_TYPE_CUSTOMER))
