from datetime import datetime
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from storefront.models.customer import Customer
from storefront.models.admin import Admin
from storefront.schemas.customer import CustomerCreate
from storefront.utils.security import get_password_hash, verify_password


def register_customer(db: Session, customer_data: CustomerCreate) -> Customer:
    """Register a new customer"""
    if db.query(Customer).filter(Customer.email == customer_data.email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )
    
    if customer_data.phone and db.query(Customer).filter(Customer.phone == customer_data.phone).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Phone number already registered"
        )
    
    if customer_data.password != customer_data.confirm_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Passwords do not match"
        )
    
    customer = Customer(
        name=customer_data.name,
        email=customer_data.email,
        phone=customer_data.phone,
        password_hash=get_password_hash(customer_data.password)
    )
    
    db.add(customer)
    db.commit()
    db.refresh(customer)
    
    return customer


def authenticate_customer(db: Session, email: str, password: str) -> Customer:
    """Authenticate customer and return customer object"""
    customer = db.query(Customer).filter(Customer.email == email).first()
    if not customer or not verify_password(password, customer.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )
    
    if not customer.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Customer account is inactive"
        )
    
    customer.last_login = datetime.utcnow()
    db.commit()
    return customer


def authenticate_admin(db: Session, email: str, password: str) -> Admin:
    """Authenticate admin and return admin object"""
    admin = db.query(Admin).filter(Admin.email == email).first()
    if not admin or not verify_password(password, admin.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )
    
    if not admin.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin account is inactive"
        )
    
    admin.last_login = datetime.utcnow()
    db.commit()
    return admin
