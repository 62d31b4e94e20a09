from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime
import enum
from storefront.database import Base


class UserType(str, enum.Enum):
    GUEST = "guest"
    CUSTOMER = "customer"
    ADMIN = "admin"  # never persisted, admins are not tracked


class ClientSource(str, enum.Enum):
    WEB = "web"
    MOBILE = "mobile"


class OnlineUser(Base):
    """
    One row per currently-or-recently-active browser.

    sessionHistory, sessionPhases and ipHistory are ordered JSON lists:
        session_history: [{"url", "referrer", "browsingPhase", "timestamp"}]
        session_phases:  [{"phase", "startTime", "endTime", "pageViews"}]
        ip_history:      [{"ip", "timestamp"}]

    Every write goes through the optimistic ``version`` column, so two requests
    racing on the same browser cannot silently overwrite each other.
    """
    __tablename__ = "online_users"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    browser_id = Column(String(100), unique=True, nullable=False, index=True)
    user_type = Column(SQLEnum(UserType), default=UserType.GUEST, nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="CASCADE"), nullable=True, index=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    source = Column(SQLEnum(ClientSource), default=ClientSource.WEB, nullable=False)
    page_url = Column(String(1000), nullable=True)
    session_history = Column(JSON, default=list, nullable=False)
    session_phases = Column(JSON, default=list, nullable=False)
    ip_history = Column(JSON, default=list, nullable=False)
    total_page_views = Column(Integer, default=0, nullable=False)
    guest_page_views = Column(Integer, default=0, nullable=False)
    customer_page_views = Column(Integer, default=0, nullable=False)
    login_time = Column(DateTime, nullable=True)
    last_activity = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    # Relationships
    customer = relationship("Customer")
    
    __mapper_args__ = {"version_id_col": version}
    
    __table_args__ = (
        Index('idx_online_user_customer_type', 'customer_id', 'user_type'),
    )
