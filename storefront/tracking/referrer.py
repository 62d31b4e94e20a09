"""
Referrer / URL sanitizing and request helpers for the tracking pipeline.

All functions here are pure: they read headers and never touch the database.
"""
from typing import Mapping
from starlette.requests import Request

from storefront.models.online_user import ClientSource

CLIENT_SOURCE_HEADER = "x-client-source"
UI_REFERRER_HEADER = "x-ui-referrer"

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.webp', '.svg', '.bmp', '.ico')
IMAGE_PATH_SEGMENTS = ('/image/', '/images/', '/img/')
IMAGE_NAME_PATTERNS = ('_image', '_img')  # e.g. BH436_image.jpg
API_PATH_SEGMENTS = ('/api/admin', '/image/', '/static/')
ASSET_PATH_SEGMENTS = ('/assets/', '/css/', '/js/', '/fonts/', '/vendor/')

IMAGE_PLACEHOLDER = "[Image Request]"


def is_image_url(url: str) -> bool:
    if not url:
        return False
    lower_url = url.lower()
    return (
        any(ext in lower_url for ext in IMAGE_EXTENSIONS)
        or any(segment in lower_url for segment in IMAGE_PATH_SEGMENTS)
        or any(pattern in lower_url for pattern in IMAGE_NAME_PATTERNS)
    )


def is_api_url(url: str) -> bool:
    if not url:
        return False
    lower_url = url.lower()
    return any(segment in lower_url for segment in API_PATH_SEGMENTS)


def is_asset_url(url: str) -> bool:
    if not url:
        return False
    lower_url = url.lower()
    return any(segment in lower_url for segment in ASSET_PATH_SEGMENTS)


def is_valid_referrer(url: str) -> bool:
    """A referrer is page-like when it is not an image, admin API or static asset URL"""
    if not url:
        return False
    return not is_image_url(url) and not is_api_url(url) and not is_asset_url(url)


def get_http_referrer(headers: Mapping[str, str]) -> str:
    """Standard Referer header, accepting the "referrer" spelling too"""
    return headers.get("referer") or headers.get("referrer") or ""


def get_clean_referrer(headers: Mapping[str, str]) -> str:
    """
    Pick the best referrer for the request.
    
    Priority: X-UI-Referrer (sent by non-browser clients) > HTTP Referer > "".
    A source is only used when it passes is_valid_referrer().
    """
    ui_referrer = headers.get(UI_REFERRER_HEADER) or ""
    if is_valid_referrer(ui_referrer):
        return ui_referrer
    
    http_referrer = get_http_referrer(headers)
    if is_valid_referrer(http_referrer):
        return http_referrer
    
    return ""


def sanitize_page_url(url: str) -> str:
    """Image URLs are never stored verbatim in session history"""
    return IMAGE_PLACEHOLDER if is_image_url(url) else url


def get_client_ip(request: Request) -> str:
    """Client IP, honouring proxies (first X-Forwarded-For hop wins)"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    
    if request.client:
        return request.client.host
    return ""


def get_client_source_from_header(headers: Mapping[str, str]):
    value = (headers.get(CLIENT_SOURCE_HEADER) or "").lower()
    if value == ClientSource.MOBILE.value:
        return ClientSource.MOBILE
    if value == ClientSource.WEB.value:
        return ClientSource.WEB
    return None


def get_client_source(request: Request) -> ClientSource:
    """
    Web or mobile client.
    
    The X-Client-Source header wins; otherwise fall back to user-agent
    heuristics (OkHttp is what the Android app ships with).
    """
    source = get_client_source_from_header(request.headers)
    if source:
        return source
    
    user_agent = request.headers.get("user-agent", "")
    
    is_mobile_app = (
        "okhttp" in user_agent.lower()
        or ("Android" in user_agent and "wv" not in user_agent and "Mozilla" not in user_agent)
    )
    if is_mobile_app:
        return ClientSource.MOBILE
    
    browser_tokens = ("Mozilla", "Chrome", "Safari", "Firefox", "Edge", "Opera")
    is_web_browser = (
        any(token in user_agent for token in browser_tokens)
        or ("Android" in user_agent and "wv" in user_agent)
        or ("iPhone" in user_agent and "Mobile" in user_agent)
        or bool(request.headers.get("origin"))
        or bool(get_http_referrer(request.headers))
    )
    return ClientSource.WEB if is_web_browser else ClientSource.MOBILE
