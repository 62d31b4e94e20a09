"""
User activity log persistence. Append and read only.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models.user_activity import UserActivity, EntityType


def create_activity(db: Session, **fields: Any) -> UserActivity:
    activity = UserActivity(**fields)
    db.add(activity)
    db.commit()
    db.refresh(activity)
    return activity


def _filtered(
    db: Session,
    customer_id: Optional[str] = None,
    action: Optional[str] = None,
    entity_type: Optional[EntityType] = None,
    ip_address: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    columns: Tuple = (UserActivity,)
):
    query = db.query(*columns)
    if customer_id:
        query = query.filter(UserActivity.customer_id == customer_id)
    if action:
        query = query.filter(UserActivity.action == action)
    if entity_type:
        query = query.filter(UserActivity.entity_type == entity_type)
    if ip_address:
        query = query.filter(UserActivity.ip_address == ip_address)
    if date_from:
        query = query.filter(UserActivity.last_activity >= date_from)
    if date_to:
        query = query.filter(UserActivity.last_activity <= date_to)
    return query


def list_activities(db: Session, skip: int = 0, limit: int = 20, **filters: Any) -> Tuple[List[UserActivity], int]:
    query = _filtered(db, **filters)
    total = query.count()
    rows = query.order_by(UserActivity.last_activity.desc()).offset(skip).limit(limit).all()
    return rows, total


def count_by_action(db: Session, **filters: Any) -> Dict[str, int]:
    query = _filtered(db, columns=(UserActivity.action, func.count(UserActivity.id)), **filters)
    rows = query.group_by(UserActivity.action).order_by(func.count(UserActivity.id).desc()).all()
    return {action: count for action, count in rows}


def top_viewed_products(db: Session, since: datetime, limit: int = 5) -> List[Tuple[int, int]]:
    """(product_id, views) for the most viewed products since ``since``"""
    views = func.count(UserActivity.id).label("views")
    return db.query(UserActivity.product_id, views).filter(
        UserActivity.action == "view_product",
        UserActivity.entity_type == EntityType.PRODUCT,
        UserActivity.product_id.isnot(None),
        UserActivity.last_activity >= since
    ).group_by(UserActivity.product_id).order_by(views.desc()).limit(limit).all()
