import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from storefront.utils.security import decode_token, TOKEN_TYPE_ADMIN, TOKEN_TYPE_CUSTOMER

logger = logging.getLogger(__name__)


class AuthContextMiddleware(BaseHTTPMiddleware):
    """
    Attach the authenticated principal, if any, to ``request.state``.
    
    Sets ``customer_id`` or ``admin_id`` from a valid bearer token. Never
    rejects a request: enforcing authentication is left to the route
    dependencies, this only tells downstream middleware who is calling.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.customer_id = None
        request.state.admin_id = None
        
        auth_header = request.headers.get("Authorization", "")
        if auth_header[:7].lower() == "bearer ":
            payload = decode_token(auth_header[7:].strip())
            if payload:
                subject = payload.get("sub")
                token_type = payload.get("type")
                if token_type == TOKEN_TYPE_CUSTOMER:
                    request.state.customer_id = subject
                elif token_type == TOKEN_TYPE_ADMIN:
                    request.state.admin_id = subject
            else:
                logger.debug("Ignoring invalid or expired bearer token")
        
        return await call_next(request)
