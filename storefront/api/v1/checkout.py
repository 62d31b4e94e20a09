from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from storefront.database import get_db
from storefront.api.deps import get_current_customer
from storefront.schemas.common import ResponseModel
from storefront.models.customer import Customer
from storefront.services.cart_service import get_cart_summary
from storefront.services.order_service import place_order
from storefront.tracking.events import emit_event, OrderPlaced
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ResponseModel)
def checkout(
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    """Start checkout: summary of the customer's cart"""
    return ResponseModel(success=True, data=get_cart_summary(db, customer_id=current_customer.id))


@router.post("/complete", response_model=ResponseModel)
def complete_checkout(
    request: Request,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    """Place the order for everything in the customer's cart"""
    order = place_order(db, current_customer.id)
    logger.info(f"Order {order.order_number} placed by customer {current_customer.id}")
    
    emit_event(request, OrderPlaced(order_id=order.id, customer_id=current_customer.id))
    
    return ResponseModel(
        success=True,
        data={
            "orderId": order.id,
            "orderNumber": order.order_number,
            "totalAmount": float(order.total_amount)
        },
        message="Order placed successfully"
    )
