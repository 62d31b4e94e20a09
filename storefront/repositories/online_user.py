"""
Online user persistence: maps rows to session snapshots and applies transitions.
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models.online_user import OnlineUser, UserType
from storefront.tracking.session_state import (
    EvictCustomerSessions,
    SaveSession,
    SessionSnapshot,
    SessionState,
    Transition,
    state_for,
)


def get_by_browser_id(db: Session, browser_id: str) -> Optional[OnlineUser]:
    return db.query(OnlineUser).filter(OnlineUser.browser_id == browser_id).first()


def to_snapshot(row: OnlineUser) -> SessionSnapshot:
    return SessionSnapshot(
        browser_id=row.browser_id,
        user_type=row.user_type,
        customer_id=row.customer_id,
        ip_address=row.ip_address or "",
        user_agent=row.user_agent or "",
        source=row.source,
        page_url=row.page_url or "",
        session_history=tuple(row.session_history or ()),
        session_phases=tuple(row.session_phases or ()),
        ip_history=tuple(row.ip_history or ()),
        total_page_views=row.total_page_views or 0,
        guest_page_views=row.guest_page_views or 0,
        customer_page_views=row.customer_page_views or 0,
        login_time=row.login_time,
        last_activity=row.last_activity,
    )


def load_state(db: Session, browser_id: str) -> Tuple[Optional[OnlineUser], SessionState]:
    """Current row (if any) and its state. Lookup is by browser id alone."""
    row = get_by_browser_id(db, browser_id)
    return row, state_for(browser_id, to_snapshot(row) if row else None)


def _write_snapshot(row: OnlineUser, snapshot: SessionSnapshot) -> None:
    row.user_type = snapshot.user_type
    row.customer_id = snapshot.customer_id
    row.ip_address = snapshot.ip_address
    row.user_agent = snapshot.user_agent
    row.source = snapshot.source
    row.page_url = snapshot.page_url
    # New list objects so the JSON columns are flagged dirty
    row.session_history = list(snapshot.session_history)
    row.session_phases = list(snapshot.session_phases)
    row.ip_history = list(snapshot.ip_history)
    row.total_page_views = snapshot.total_page_views
    row.guest_page_views = snapshot.guest_page_views
    row.customer_page_views = snapshot.customer_page_views
    row.login_time = snapshot.login_time
    row.last_activity = snapshot.last_activity


def evict_customer_sessions(db: Session, customer_id: str, keep_browser_id: str) -> int:
    """Delete the customer's rows on every other browser"""
    return db.query(OnlineUser).filter(
        OnlineUser.customer_id == customer_id,
        OnlineUser.user_type == UserType.CUSTOMER,
        OnlineUser.browser_id != keep_browser_id
    ).delete(synchronize_session=False)


def apply_transition(db: Session, row: Optional[OnlineUser], result: Transition) -> OnlineUser:
    """
    Stage every effect of a transition in the session.
    
    The caller commits once, so evictions, phase changes and counters land
    together or not at all. An existing row is written through its version
    column; a concurrent writer makes the flush fail instead of being lost.
    """
    for effect in result.effects:
        if isinstance(effect, EvictCustomerSessions):
            evict_customer_sessions(db, effect.customer_id, effect.keep_browser_id)
        elif isinstance(effect, SaveSession):
            if effect.is_new or row is None:
                row = OnlineUser(browser_id=effect.snapshot.browser_id)
                db.add(row)
            _write_snapshot(row, effect.snapshot)
    db.flush()
    return row


def purge_inactive(db: Session, older_than: datetime) -> int:
    """Drop rows idle since before ``older_than``"""
    deleted = db.query(OnlineUser).filter(
        OnlineUser.last_activity < older_than
    ).delete(synchronize_session=False)
    db.commit()
    return deleted


def list_online_users(
    db: Session,
    user_type: Optional[UserType] = None,
    active_since: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 20
) -> Tuple[List[OnlineUser], int]:
    query = db.query(OnlineUser)
    if user_type:
        query = query.filter(OnlineUser.user_type == user_type)
    if active_since:
        query = query.filter(OnlineUser.last_activity >= active_since)
    
    total = query.count()
    rows = query.order_by(OnlineUser.last_activity.desc()).offset(skip).limit(limit).all()
    return rows, total


def count_by_user_type(db: Session, active_since: Optional[datetime] = None) -> Dict[str, int]:
    query = db.query(OnlineUser.user_type, func.count(OnlineUser.id))
    if active_since:
        query = query.filter(OnlineUser.last_activity >= active_since)
    counts = {user_type: count for user_type, count in query.group_by(OnlineUser.user_type).all()}
    
    customers = counts.get(UserType.CUSTOMER, 0)
    guests = counts.get(UserType.GUEST, 0)
    return {
        "totalOnline": customers + guests,
        "customersOnline": customers,
        "guestsOnline": guests,
    }
