from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from storefront.models.cart import CartItem
from storefront.models.order import Order, OrderItem, OrderStatus
from datetime import datetime
from decimal import Decimal
import secrets


def generate_order_number() -> str:
    """ORD-YYYYMMDD-XXXXXX"""
    return f"ORD-{datetime.utcnow().strftime('%Y%m%d')}-{secrets.token_hex(3).upper()}"


def place_order(db: Session, customer_id: str) -> Order:
    """Turn the customer's cart into a confirmed order and empty the cart"""
    cart_items = db.query(CartItem).filter(CartItem.customer_id == customer_id).all()
    if not cart_items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cart is empty"
        )
    
    order = Order(
        order_number=generate_order_number(),
        customer_id=customer_id,
        status=OrderStatus.CONFIRMED,
        subtotal=Decimal('0.00'),
        total_amount=Decimal('0.00')
    )
    
    subtotal = Decimal('0.00')
    for item in cart_items:
        product = item.product
        if product is None or not product.is_available or product.stock_quantity < item.quantity:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Product {item.product_id} is not available in the requested quantity"
            )
        
        line_total = product.price * item.quantity
        subtotal += line_total
        product.stock_quantity -= item.quantity
        order.order_items.append(OrderItem(
            product_id=product.id,
            product_name=product.name,
            quantity=item.quantity,
            unit_price=product.price,
            total_price=line_total
        ))
        db.delete(item)
    
    order.subtotal = subtotal
    order.total_amount = subtotal
    
    db.add(order)
    db.commit()
    db.refresh(order)
    return order
