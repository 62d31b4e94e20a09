"""
Browser identity resolver.

A browser id looks like ``browser_<32 hex chars>`` and is handed to the client
in the browserId cookie (or read back from the X-Browser-Id header for clients
without a cookie jar). It is resolved at most once per request.
"""
import hashlib
import re
import secrets
import time
from typing import Optional
from starlette.requests import Request
from starlette.responses import Response

from storefront.config import settings

BROWSER_ID_HEADER = "x-browser-id"
BROWSER_ID_PATTERN = re.compile(r"^browser_[a-f0-9]{32}$", re.IGNORECASE)

# Headers that make up the device fingerprint
FINGERPRINT_HEADERS = (
    "x-forwarded-for",
    "x-real-ip",
    "user-agent",
    "accept-language",
    "accept-encoding",
    "accept",
    "dnt",
    "sec-ch-ua",
    "sec-ch-ua-platform",
    "sec-ch-ua-mobile",
    "sec-ch-ua-model",
    "sec-fetch-site",
    "sec-fetch-mode",
    "sec-fetch-dest",
    "x-device-id",
    "x-device-type",
    "x-app-version",
)


def generate_browser_id(user_agent: str, additional_data: str = "") -> str:
    digest = hashlib.sha256(f"{user_agent}{additional_data}".encode("utf-8")).hexdigest()
    return f"browser_{digest[:32]}"


def is_valid_browser_id(browser_id: Optional[str]) -> bool:
    if not browser_id:
        return False
    return bool(BROWSER_ID_PATTERN.match(browser_id))


def generate_device_fingerprint(request: Request) -> str:
    """Hash of the site, network and device characteristics of the request"""
    host = request.headers.get("host") or request.headers.get("x-forwarded-host") or ""
    domain = host.split(":")[0]
    
    components = [domain, request.client.host if request.client else ""]
    components.extend(request.headers.get(name, "") for name in FINGERPRINT_HEADERS)
    # Changes every second so simultaneous identical devices still diverge
    components.append(str(int(time.time())))
    
    return hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()


def _existing_browser_id(request: Request) -> Optional[str]:
    header_value = request.headers.get(BROWSER_ID_HEADER)
    if is_valid_browser_id(header_value):
        return header_value
    
    cookie_value = request.cookies.get(settings.BROWSER_ID_COOKIE_NAME)
    if is_valid_browser_id(cookie_value):
        return cookie_value
    
    return None


def get_or_create_browser_id(request: Request, customer_id: Optional[str] = None) -> str:
    """
    Return the browser id for this request, creating one if the client has none.
    
    Calling it again within the same request returns the same value. A customer
    id, when known, is mixed into a newly created id so that ids minted at login
    differ per customer even on identical devices.
    """
    cached = getattr(request.state, "browser_id", None)
    if cached:
        return cached
    
    browser_id = _existing_browser_id(request)
    
    if browser_id is None:
        user_agent = request.headers.get("user-agent", "")
        fingerprint = generate_device_fingerprint(request)
        timestamp = str(time.time_ns())
        if customer_id:
            seed = f"customer:{customer_id}:{fingerprint}:{timestamp}"
        else:
            seed = f"guest:{fingerprint}:{timestamp}:{secrets.token_hex(8)}"
        browser_id = generate_browser_id(user_agent, seed)
        request.state.browser_id_is_new = True
    
    request.state.browser_id = browser_id
    return browser_id


def attach_browser_id_cookie(request: Request, response: Response) -> bool:
    """Set the browserId cookie once per request, only for freshly minted ids"""
    browser_id = getattr(request.state, "browser_id", None)
    if not browser_id or not getattr(request.state, "browser_id_is_new", False):
        return False
    if getattr(request.state, "browser_id_cookie_set", False):
        return False
    
    response.set_cookie(
        key=settings.BROWSER_ID_COOKIE_NAME,
        value=browser_id,
        max_age=settings.BROWSER_ID_COOKIE_MAX_AGE,
        httponly=False,  # storefront JS reads it back
        samesite="lax",
        secure=settings.ENVIRONMENT == "production",
        path="/",
    )
    request.state.browser_id_cookie_set = True
    return True
