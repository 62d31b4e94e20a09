"""
Online user and activity tracking middleware.

Before the handler runs: classify the request, resolve the browser id and
merge the visit into the browser's online-user row. After the handler: classify
what happened and hand the activity log write (plus, after a login or
registration, the guest-to-customer merge) to the background job queue.

Tracking is best-effort. Nothing in here may change the response a client
gets, apart from setting the browserId cookie for new browsers.
"""
import logging
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from storefront.config import settings
from storefront.tracking.activity import classify_activity
from storefront.tracking.browser_id import attach_browser_id_cookie, get_or_create_browser_id
from storefront.tracking.classifier import get_principal, should_track
from storefront.tracking.events import get_events
from storefront.tracking.service import (
    ActivityRecord,
    build_page_visit,
    log_activity,
    track_online_user,
)

logger = logging.getLogger(__name__)


class ActivityTrackerMiddleware(BaseHTTPMiddleware):
    """Reads ``session_factory`` and ``job_queue`` from ``app.state``"""

    async def dispatch(self, request: Request, call_next):
        if not settings.TRACKING_ENABLED or not should_track(request):
            return await call_next(request)
        
        customer_id, _ = get_principal(request)
        browser_id = None
        try:
            session_factory = request.app.state.session_factory
            browser_id = get_or_create_browser_id(request, customer_id)
            visit = build_page_visit(request, browser_id, customer_id)
            await run_in_threadpool(track_online_user, session_factory, visit)
        except Exception:
            logger.exception(f"Activity tracker failed for {request.method} {request.url.path}")
        
        response = await call_next(request)
        
        if browser_id:
            try:
                self.record_activity(request, response, browser_id, customer_id)
            except Exception:
                logger.exception(f"Failed to queue activity for {request.method} {request.url.path}")
        
        return response

    def record_activity(self, request: Request, response: Response, browser_id: str, customer_id):
        session_factory = request.app.state.session_factory
        job_queue = request.app.state.job_queue
        
        activity = classify_activity(
            request.method,
            request.url.path,
            response.status_code,
            request.query_params,
            get_events(request),
        )
        
        # A login or registration only reveals the customer once the handler has run
        if activity.customer_id and activity.customer_id != customer_id:
            customer_id = activity.customer_id
            browser_id = get_or_create_browser_id(request, customer_id)
            visit = build_page_visit(request, browser_id, customer_id)
            job_queue.submit(track_online_user, session_factory, visit)
        else:
            visit = build_page_visit(request, browser_id, customer_id)

        record = ActivityRecord(
            action=activity.action,
            user_type=visit.user_type,
            customer_id=visit.customer_id,
            browser_id=browser_id,
            ip_address=visit.ip_address,
            user_agent=visit.user_agent,
            source=visit.source,
            activity_data=activity.activity_data,
            timestamp=visit.timestamp,
        )
        job_queue.submit(log_activity, session_factory, record)
        
        attach_browser_id_cookie(request, response)
