"""
Analytics helper utilities for date ranges and online-user summaries
"""
from datetime import datetime, timedelta, date
from typing import Any, Dict, Optional


def get_date_start(value: Optional[date]) -> Optional[datetime]:
    """Beginning of the given day"""
    if value is None:
        return None
    return datetime.combine(value, datetime.min.time())


def get_date_end(value: Optional[date]) -> Optional[datetime]:
    """End of the given day"""
    if value is None:
        return None
    return datetime.combine(value, datetime.max.time())


def get_active_since(seconds: int) -> datetime:
    return datetime.utcnow() - timedelta(seconds=seconds)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def browsing_analysis(online_user) -> Dict[str, Any]:
    """
    Summarise how a browser session split between guest and customer browsing.
    
    guestBrowsingDuration is the number of seconds from the first guest phase
    start until login, or None when the browser never browsed as a guest or
    has not logged in.
    """
    history = online_user.session_history or []
    phases = online_user.session_phases or []
    
    guest_duration = None
    guest_phase = next((phase for phase in phases if phase.get("phase") == "guest"), None)
    if guest_phase and online_user.login_time:
        started = _parse_timestamp(guest_phase.get("startTime"))
        if started:
            guest_duration = (online_user.login_time - started).total_seconds()
    
    return {
        "hasBrowsedAsGuest": (online_user.guest_page_views or 0) > 0,
        "hasBrowsedAsCustomer": (online_user.customer_page_views or 0) > 0,
        "pagesBeforeLogin": sum(1 for entry in history if entry.get("browsingPhase") == "guest"),
        "pagesAfterLogin": sum(1 for entry in history if entry.get("browsingPhase") == "customer"),
        "guestBrowsingDuration": guest_duration,
    }
