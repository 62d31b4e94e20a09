"""Plain helpers shared by the test modules (fixtures live in conftest.py)."""

from datetime import datetime

from starlette.requests import Request

from storefront.main import app
from storefront.models import OnlineUser, UserActivity
from storefront.models.online_user import ClientSource, UserType
from storefront.tracking.service import ActivityRecord
from storefront.tracking.session_state import PageVisit

BROWSER_A = "browser_" + "a" * 32
BROWSER_B = "browser_" + "b" * 32
BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/120.0 Safari/537.36"
CUSTOMER_PASSWORD = "secret123"


def drain(client):
    """Wait until every queued tracking job has run."""
    client.portal.call(app.state.job_queue.join)


def browser_headers(browser_id=BROWSER_A, referrer=None, token=None, **extra):
    headers = {"User-Agent": BROWSER_UA, "X-Browser-Id": browser_id}
    if referrer:
        headers["Referer"] = referrer
    if token:
        headers["Authorization"] = f"Bearer {token}"
    headers.update(extra)
    return headers


def make_request(path="/api/products/1", method="GET", headers=None, state=None, client_host="203.0.113.7"):
    """A bare Starlette request for testing the pure helpers."""
    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    ]
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": b"",
        "headers": raw_headers,
        "client": (client_host, 50000),
        "server": ("testserver", 80),
        "scheme": "http",
        "root_path": "",
        "state": dict(state or {}),
    }
    return Request(scope)


def make_visit(
    browser_id=BROWSER_A,
    customer_id=None,
    referrer="https://shop.example.com/",
    ip_address="203.0.113.7",
    is_login=False,
    timestamp=None,
):
    return PageVisit(
        browser_id=browser_id,
        user_type=UserType.CUSTOMER if customer_id else UserType.GUEST,
        customer_id=customer_id,
        ip_address=ip_address,
        user_agent=BROWSER_UA,
        source=ClientSource.WEB,
        url="http://testserver/api/products/1",
        referrer=referrer,
        is_login=is_login,
        timestamp=timestamp or datetime.utcnow(),
    )


def online_rows(session_factory):
    session = session_factory()
    try:
        return session.query(OnlineUser).order_by(OnlineUser.created_at).all()
    finally:
        session.close()


def activity_rows(session_factory):
    session = session_factory()
    try:
        return session.query(UserActivity).order_by(UserActivity.created_at).all()
    finally:
        session.close()


def make_record(action="view_product", user_type=UserType.GUEST, customer_id=None, **data):
    return ActivityRecord(
        action=action,
        user_type=user_type,
        customer_id=customer_id,
        browser_id=BROWSER_A,
        ip_address="203.0.113.7",
        user_agent=BROWSER_UA,
        source=ClientSource.WEB,
        activity_data=data,
    )
