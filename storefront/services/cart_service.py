from typing import List, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from storefront.models.cart import CartItem
from storefront.models.product import Product
from decimal import Decimal


def _owner_filter(query, customer_id: Optional[str], browser_id: Optional[str]):
    if customer_id:
        return query.filter(CartItem.customer_id == customer_id)
    return query.filter(CartItem.customer_id.is_(None), CartItem.browser_id == browser_id)


def get_cart_items(db: Session, customer_id: Optional[str] = None, browser_id: Optional[str] = None) -> List[CartItem]:
    """Cart of a customer, or of a guest browser when no customer is known"""
    return _owner_filter(db.query(CartItem), customer_id, browser_id).all()


def add_to_cart(
    db: Session,
    product_id: int,
    quantity: int,
    customer_id: Optional[str] = None,
    browser_id: Optional[str] = None,
    options: Optional[dict] = None
) -> CartItem:
    """Add a product to the cart, merging with an existing line for the same product"""
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product or not product.is_available:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found"
        )
    
    item = _owner_filter(db.query(CartItem), customer_id, browser_id).filter(
        CartItem.product_id == product_id
    ).first()
    
    new_quantity = quantity + (item.quantity if item else 0)
    if new_quantity > product.stock_quantity:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only {product.stock_quantity} units available"
        )
    
    if item:
        item.quantity = new_quantity
        if options is not None:
            item.options = options
    else:
        item = CartItem(
            customer_id=customer_id,
            browser_id=None if customer_id else browser_id,
            product_id=product_id,
            quantity=quantity,
            options=options
        )
        db.add(item)
    
    db.commit()
    db.refresh(item)
    return item


def get_cart_summary(db: Session, customer_id: Optional[str] = None, browser_id: Optional[str] = None) -> dict:
    """Calculate cart summary"""
    cart_items = get_cart_items(db, customer_id, browser_id)
    
    subtotal = Decimal('0.00')
    items = []
    for item in cart_items:
        price = item.product.price if item.product else Decimal('0.00')
        line_total = price * item.quantity
        subtotal += line_total
        items.append({
            "id": item.id,
            "productId": item.product_id,
            "name": item.product.name if item.product else None,
            "quantity": item.quantity,
            "unitPrice": float(price),
            "total": float(line_total),
            "options": item.options
        })
    
    # Convert Decimal to float for JSON serialization
    return {
        "items": items,
        "subtotal": float(subtotal),
        "total": float(subtotal),
        "item_count": sum(item.quantity for item in cart_items)
    }
