from fastapi import APIRouter, Request, Response
from storefront.schemas.common import ResponseModel
from storefront.tracking.browser_id import attach_browser_id_cookie, get_or_create_browser_id
from storefront.tracking.classifier import get_principal

router = APIRouter()


@router.get("/start", response_model=ResponseModel)
def start_session(request: Request, response: Response):
    """Make sure the browser carries a browserId cookie"""
    customer_id, _ = get_principal(request)
    browser_id = get_or_create_browser_id(request, customer_id)
    is_new = attach_browser_id_cookie(request, response) or getattr(request.state, "browser_id_is_new", False)
    return ResponseModel(success=True, data={"browserId": browser_id, "isNew": bool(is_new)})
