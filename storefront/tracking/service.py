"""
Tracking operations: online-user merge, activity logging, stale session purge.

Each operation opens its own database session from the given factory and is
best-effort: failures are logged and turned into a ``None`` result, never
raised to the request that triggered them.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from starlette.requests import Request

from storefront.config import settings
from storefront.models.online_user import ClientSource, UserType
from storefront.repositories import online_user as online_user_repo
from storefront.repositories.user_activity import create_activity
from storefront.tracking.activity import entity_info
from storefront.tracking.referrer import (
    get_clean_referrer,
    get_client_ip,
    get_client_source,
    sanitize_page_url,
)
from storefront.tracking.session_state import PageVisit, Transition, transition

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


@dataclass
class ActivityRecord:
    action: str
    user_type: UserType
    browser_id: str
    ip_address: str
    user_agent: str
    source: ClientSource
    customer_id: Optional[str] = None
    activity_data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.utcnow)


def is_login_request(request: Request) -> bool:
    return "/login" in request.url.path and request.method == "POST"


def build_page_visit(
    request: Request,
    browser_id: str,
    customer_id: Optional[str] = None,
    timestamp: Optional[datetime] = None
) -> PageVisit:
    """Snapshot everything the state machine needs from the request"""
    return PageVisit(
        browser_id=browser_id,
        user_type=UserType.CUSTOMER if customer_id else UserType.GUEST,
        customer_id=customer_id,
        ip_address=get_client_ip(request)[:45],
        user_agent=request.headers.get("user-agent", "")[:500],
        source=get_client_source(request),
        url=sanitize_page_url(str(request.url))[:1000],
        referrer=get_clean_referrer(request.headers)[:1000],
        is_login=is_login_request(request),
        timestamp=timestamp or datetime.utcnow(),
    )


def track_online_user(session_factory: SessionFactory, visit: PageVisit) -> Optional[Transition]:
    """
    Merge a visit into the browser's online-user row.
    
    Read, compute the transition, write conditionally on the row version.
    Losing a race (stale version, or a duplicate browser id on insert) rolls
    back and retries from a fresh read, so a second first-contact request is
    applied as an update to the row the first one created. Any other integrity
    failure is not retried.
    """
    max_attempts = max(1, settings.TRACKING_MAX_RETRIES)
    for attempt in range(1, max_attempts + 1):
        db = session_factory()
        row = None
        try:
            row, state = online_user_repo.load_state(db, visit.browser_id)
            result = transition(state, visit)
            online_user_repo.apply_transition(db, row, result)
            db.commit()
            logger.debug(
                f"Online user {visit.browser_id[:16]}... {result.outcome.value} "
                f"(views={result.snapshot.total_page_views})"
            )
            return result
        except StaleDataError:
            db.rollback()
            logger.info(
                f"Concurrent update for browser {visit.browser_id[:16]}..., "
                f"retrying ({attempt}/{max_attempts})"
            )
        except IntegrityError:
            db.rollback()
            # Only an insert that lost to another request's insert is a race
            if row is not None or online_user_repo.get_by_browser_id(db, visit.browser_id) is None:
                logger.exception(f"Failed to track online user {visit.browser_id[:16]}...")
                return None
            logger.info(
                f"Concurrent insert for browser {visit.browser_id[:16]}..., "
                f"retrying as update ({attempt}/{max_attempts})"
            )
        except Exception:
            db.rollback()
            logger.exception(f"Failed to track online user {visit.browser_id[:16]}...")
            return None
        finally:
            db.close()
    
    logger.warning(f"Gave up tracking browser {visit.browser_id[:16]}... after {max_attempts} attempts")
    return None


def log_activity(session_factory: SessionFactory, record: ActivityRecord) -> Optional[str]:
    """Append one activity row; returns its id, or None when skipped or failed"""
    if record.user_type not in (UserType.GUEST, UserType.CUSTOMER):
        return None
    
    info = entity_info(record.action, record.activity_data)
    db = session_factory()
    try:
        activity = create_activity(
            db,
            action=record.action,
            activity_data=record.activity_data,
            customer_id=record.customer_id if record.user_type == UserType.CUSTOMER else None,
            browser_id=record.browser_id,
            ip_address=record.ip_address,
            user_agent=record.user_agent,
            source=record.source,
            last_activity=record.timestamp,
            **info.as_columns()
        )
        return activity.id
    except Exception:
        db.rollback()
        logger.exception(f"Failed to log activity '{record.action}'")
        return None
    finally:
        db.close()


def purge_inactive_sessions(session_factory: SessionFactory, ttl_seconds: Optional[int] = None) -> int:
    ttl_seconds = ttl_seconds or settings.ONLINE_USER_TTL_SECONDS
    cutoff = datetime.utcnow() - timedelta(seconds=ttl_seconds)
    db = session_factory()
    try:
        deleted = online_user_repo.purge_inactive(db, cutoff)
        if deleted:
            logger.info(f"Purged {deleted} inactive online user(s)")
        return deleted
    except Exception:
        db.rollback()
        logger.exception("Failed to purge inactive online users")
        return 0
    finally:
        db.close()
