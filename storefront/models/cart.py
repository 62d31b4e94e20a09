from sqlalchemy import Column, Integer, DateTime, ForeignKey, String, JSON
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
from storefront.database import Base


class CartItem(Base):
    __tablename__ = "cart_items"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Exactly one owner: the customer when logged in, otherwise the guest's browser id
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="CASCADE"), nullable=True, index=True)
    browser_id = Column(String(100), nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    options = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    # Relationships
    customer = relationship("Customer", back_populates="cart_items")
    product = relationship("Product", back_populates="cart_items")
