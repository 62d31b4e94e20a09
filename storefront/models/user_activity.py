from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
import enum
from storefront.database import Base
from storefront.models.online_user import ClientSource


class EntityType(str, enum.Enum):
    PRODUCT = "Product"
    ORDER = "Order"
    CUSTOMER = "Customer"
    CATEGORY = "Category"
    CART = "Cart"
    WISHLIST = "Wishlist"
    SEARCH = "Search"
    AUTH = "Auth"
    OTHER = "Other"


class UserActivity(Base):
    """Append-only activity log. Rows are written once and never updated."""
    __tablename__ = "user_activities"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)  # Only for logged-in customers
    action = Column(String(100), nullable=False, index=True)  # 'login', 'search', 'view_product', 'order', etc.
    entity_type = Column(SQLEnum(EntityType), nullable=True, index=True)
    # Loose references: the log outlives the entities it mentions
    product_id = Column(Integer, nullable=True, index=True)
    order_id = Column(String(36), nullable=True, index=True)
    category_id = Column(String(36), nullable=True, index=True)
    entity_id = Column(String(100), nullable=True, index=True)
    activity_data = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    browser_id = Column(String(100), nullable=True, index=True)
    source = Column(SQLEnum(ClientSource), default=ClientSource.WEB, nullable=False, index=True)
    last_activity = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    # Relationships
    customer = relationship("Customer")
    
    __table_args__ = (
        Index('idx_user_activity_action_date', 'action', 'last_activity'),
    )
