"""
Admin Analytics Endpoints: who is online and what they have been doing
"""
from fastapi import APIRouter, Depends, Query, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date, datetime, timedelta

from storefront.config import settings
from storefront.database import get_db
from storefront.schemas.common import ResponseModel
from storefront.models.admin import Admin
from storefront.models.online_user import OnlineUser, UserType
from storefront.models.product import Product
from storefront.models.user_activity import UserActivity, EntityType
from storefront.api.admin_deps import require_manager_or_above
from storefront.repositories import online_user as online_user_repo
from storefront.repositories import user_activity as user_activity_repo
from storefront.utils.pagination import paginate
from storefront.utils.analytics_helpers import (
    browsing_analysis,
    get_active_since,
    get_date_end,
    get_date_start,
)

router = APIRouter()

USER_TYPE_FILTERS = {"guest": UserType.GUEST, "customer": UserType.CUSTOMER}


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _online_user_payload(row: OnlineUser, include_history: bool = False) -> dict:
    data = {
        "browserId": row.browser_id,
        "userType": row.user_type.value,
        "customerId": row.customer_id,
        "customerName": row.customer.name if row.customer else None,
        "customerEmail": row.customer.email if row.customer else None,
        "ipAddress": row.ip_address,
        "userAgent": row.user_agent,
        "source": row.source.value if row.source else None,
        "pageUrl": row.page_url,
        "totalPageViews": row.total_page_views,
        "guestPageViews": row.guest_page_views,
        "customerPageViews": row.customer_page_views,
        "loginTime": _isoformat(row.login_time),
        "lastActivity": _isoformat(row.last_activity),
        "browsingAnalysis": browsing_analysis(row),
    }
    if include_history:
        data["sessionHistory"] = row.session_history or []
        data["sessionPhases"] = row.session_phases or []
        data["ipHistory"] = row.ip_history or []
    return data


def _activity_payload(activity: UserActivity) -> dict:
    return {
        "id": activity.id,
        "customerId": activity.customer_id,
        "action": activity.action,
        "entityType": activity.entity_type.value if activity.entity_type else None,
        "productId": activity.product_id,
        "orderId": activity.order_id,
        "categoryId": activity.category_id,
        "entityId": activity.entity_id,
        "activityData": activity.activity_data,
        "ipAddress": activity.ip_address,
        "userAgent": activity.user_agent,
        "browserId": activity.browser_id,
        "source": activity.source.value if activity.source else None,
        "lastActivity": _isoformat(activity.last_activity),
    }


@router.get("/online-users", response_model=ResponseModel)
async def get_online_users(
    userType: Optional[str] = Query(None, pattern='^(guest|customer|all)$'),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: Admin = Depends(require_manager_or_above),
    db: Session = Depends(get_db)
):
    """
    List browsers seen within the online-user TTL, most recent first.
    
    Query Parameters:
    - userType: guest | customer | all (default: all)
    - page, limit: pagination
    """
    active_since = get_active_since(settings.ONLINE_USER_TTL_SECONDS)
    rows, total = online_user_repo.list_online_users(
        db,
        user_type=USER_TYPE_FILTERS.get(userType),
        active_since=active_since,
        skip=(page - 1) * limit,
        limit=limit
    )
    
    return ResponseModel(
        success=True,
        data={
            "items": [_online_user_payload(row) for row in rows],
            "stats": online_user_repo.count_by_user_type(db, active_since),
            "pagination": paginate(page, limit, total)
        },
        message="Online users retrieved successfully"
    )


@router.get("/online-users/{browser_id}", response_model=ResponseModel)
async def get_online_user(
    browser_id: str,
    admin: Admin = Depends(require_manager_or_above),
    db: Session = Depends(get_db)
):
    """Single online user with full session history"""
    row = online_user_repo.get_by_browser_id(db, browser_id)
    if not row:
        raise HTTPException(status_code=404, detail="Online user not found")
    
    return ResponseModel(success=True, data=_online_user_payload(row, include_history=True))


@router.get("/user-activity", response_model=ResponseModel)
async def get_user_activity(
    customerId: Optional[str] = None,
    action: Optional[str] = None,
    entityType: Optional[EntityType] = None,
    ipAddress: Optional[str] = None,
    dateFrom: Optional[date] = None,
    dateTo: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: Admin = Depends(require_manager_or_above),
    db: Session = Depends(get_db)
):
    """Activity log with filters and a per-action breakdown"""
    filters = {
        "customer_id": customerId,
        "action": action,
        "entity_type": entityType,
        "ip_address": ipAddress,
        "date_from": get_date_start(dateFrom),
        "date_to": get_date_end(dateTo),
    }
    activities, total = user_activity_repo.list_activities(
        db, skip=(page - 1) * limit, limit=limit, **filters
    )
    
    return ResponseModel(
        success=True,
        data={
            "items": [_activity_payload(activity) for activity in activities],
            "byActivity": user_activity_repo.count_by_action(db, **filters),
            "pagination": paginate(page, limit, total)
        },
        message="User activity retrieved successfully"
    )


@router.get("/overview", response_model=ResponseModel)
async def get_tracking_overview(
    admin: Admin = Depends(require_manager_or_above),
    db: Session = Depends(get_db)
):
    """Online counts for the active window and the most viewed products of the last 30 days"""
    online = online_user_repo.count_by_user_type(
        db, get_active_since(settings.ONLINE_ACTIVE_WINDOW_SECONDS)
    )
    
    top = user_activity_repo.top_viewed_products(db, datetime.utcnow() - timedelta(days=30))
    names = {}
    if top:
        product_ids = [product_id for product_id, _ in top]
        names = dict(db.query(Product.id, Product.name).filter(Product.id.in_(product_ids)).all())
    
    return ResponseModel(
        success=True,
        data={
            "online": online,
            "topViewedProducts": [
                {"productId": product_id, "name": names.get(product_id), "views": views}
                for product_id, views in top
            ]
        },
        message="Tracking overview retrieved successfully"
    )
