from typing import Optional
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session
from storefront.database import get_db
from storefront.api.deps import get_optional_customer
from storefront.schemas.cart import AddToCartRequest
from storefront.schemas.common import ResponseModel
from storefront.models.customer import Customer
from storefront.services.cart_service import add_to_cart, get_cart_summary
from storefront.tracking.browser_id import attach_browser_id_cookie, get_or_create_browser_id
from storefront.tracking.events import emit_event, ProductAddedToCart

router = APIRouter()


def _cart_owner(request: Request, customer: Optional[Customer]):
    """(customer_id, browser_id); guests are keyed by browser id"""
    if customer:
        return customer.id, None
    return None, get_or_create_browser_id(request)


@router.get("", response_model=ResponseModel)
def get_cart(
    request: Request,
    response: Response,
    customer: Optional[Customer] = Depends(get_optional_customer),
    db: Session = Depends(get_db)
):
    """Get the cart of the current customer or guest browser"""
    customer_id, browser_id = _cart_owner(request, customer)
    attach_browser_id_cookie(request, response)
    return ResponseModel(success=True, data=get_cart_summary(db, customer_id, browser_id))


@router.post("/add", response_model=ResponseModel)
def add_item(
    item_data: AddToCartRequest,
    request: Request,
    response: Response,
    customer: Optional[Customer] = Depends(get_optional_customer),
    db: Session = Depends(get_db)
):
    """Add item to cart"""
    customer_id, browser_id = _cart_owner(request, customer)
    item = add_to_cart(
        db,
        product_id=item_data.product_id,
        quantity=item_data.quantity,
        customer_id=customer_id,
        browser_id=browser_id,
        options=item_data.options
    )
    
    emit_event(request, ProductAddedToCart(
        product_id=item_data.product_id,
        quantity=item_data.quantity,
        options=item_data.options
    ))
    attach_browser_id_cookie(request, response)
    
    return ResponseModel(
        success=True,
        data={"id": item.id, "productId": item.product_id, "quantity": item.quantity},
        message="Item added to cart"
    )
