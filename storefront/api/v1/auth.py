from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from storefront.database import get_db
from storefront.schemas.customer import CustomerCreate, CustomerLogin, CustomerResponse
from storefront.schemas.common import ResponseModel
from storefront.services.auth_service import register_customer, authenticate_customer
from storefront.models.customer import Customer
from storefront.utils.security import create_customer_token
from storefront.api.deps import get_current_customer
from storefront.tracking.events import emit_event, CustomerLoggedIn, CustomerRegistered
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _customer_payload(customer: Customer) -> dict:
    return CustomerResponse.model_validate(customer).model_dump(mode="json")


@router.post("/register", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
def register(customer_data: CustomerCreate, request: Request, db: Session = Depends(get_db)):
    """Register a new customer"""
    try:
        customer = register_customer(db, customer_data)
        token = create_customer_token(customer.id, customer.email)
        
        emit_event(request, CustomerRegistered(customer_id=customer.id, email=customer.email))
        
        return ResponseModel(
            success=True,
            data={
                "customer": _customer_payload(customer),
                "token": token
            },
            message="Registration successful"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Customer registration failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("/login", response_model=ResponseModel)
def login(credentials: CustomerLogin, request: Request, db: Session = Depends(get_db)):
    """Login customer with email and password"""
    try:
        customer = authenticate_customer(db, email=credentials.email, password=credentials.password)
        token = create_customer_token(customer.id, customer.email)
        
        emit_event(request, CustomerLoggedIn(customer_id=customer.id, email=customer.email))
        
        return ResponseModel(
            success=True,
            data={
                "customer": _customer_payload(customer),
                "token": token
            },
            message="Login successful"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Customer login failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )


@router.post("/logout", response_model=ResponseModel)
def logout():
    """Tokens are stateless; the client discards its token"""
    return ResponseModel(success=True, message="Logged out successfully")


@router.get("/me", response_model=ResponseModel)
def get_me(current_customer: Customer = Depends(get_current_customer)):
    """Get current customer profile"""
    return ResponseModel(success=True, data=_customer_payload(current_customer))
