"""
Request classifier: decides, before any state mutation, whether a request is tracked.
"""
import logging
from typing import Optional
from starlette.requests import Request

from storefront.tracking.referrer import is_image_url, get_http_referrer

logger = logging.getLogger(__name__)

SKIP_PATH_PREFIXES = (
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api-docs",
    "/favicon.ico",
    "/static",
    "/assets",
    "/health",
    "/admin",
)

BOT_SIGNATURES = ("Razorpay-Webhook", "webhook", "bot", "crawler")

# Tokens that mark a real browser or the mobile app even when "node" shows up in the UA
CLIENT_TOKENS = ("mozilla", "safari", "okhttp")


def is_bot_user_agent(user_agent: str) -> bool:
    return any(signature in user_agent for signature in BOT_SIGNATURES)


def is_server_side_user_agent(user_agent: str) -> bool:
    """Node-based server runtimes (SSR fetches) rather than a browser or the app"""
    lower_user_agent = user_agent.lower()
    return (
        ("node" in lower_user_agent and not any(token in lower_user_agent for token in CLIENT_TOKENS))
        or "node-fetch" in user_agent
        or "Next.js" in user_agent
    )


def is_image_request(path: str) -> bool:
    """Next.js image proxy or a direct image fetch outside the API"""
    if "/_next/image" in path:
        return True
    return is_image_url(path) and "/api/" not in path


def get_principal(request: Request):
    """(customer_id, admin_id) attached by the auth-context middleware"""
    return (
        getattr(request.state, "customer_id", None),
        getattr(request.state, "admin_id", None),
    )


def skip_reason(request: Request) -> Optional[str]:
    """Return why a request must not be tracked, or None to track it"""
    path = request.url.path
    
    if any(path.startswith(prefix) for prefix in SKIP_PATH_PREFIXES):
        return "excluded_path"
    
    if "/admin" in path:
        return "admin_path"
    
    if "/admin" in get_http_referrer(request.headers).lower():
        return "admin_referrer"
    
    user_agent = request.headers.get("user-agent", "")
    if is_bot_user_agent(user_agent):
        return "bot_user_agent"
    
    customer_id, admin_id = get_principal(request)
    
    if is_server_side_user_agent(user_agent) and not customer_id and not admin_id:
        return "ssr_probe"
    
    if admin_id:
        return "admin_principal"
    
    if is_image_request(path):
        return "image_request"
    
    return None


def should_track(request: Request) -> bool:
    """Continue/skip decision. Never raises: a failing classifier means no tracking."""
    try:
        reason = skip_reason(request)
    except Exception:
        logger.exception("Request classifier failed, skipping tracking")
        return False
    
    if reason:
        logger.debug(f"Skipping tracking for {request.method} {request.url.path}: {reason}")
        return False
    return True
