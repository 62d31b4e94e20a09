"""
Activity classification.

Rule based on method + path + status (first match wins), enriched with the
domain events the handler emitted. Pure functions only.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from storefront.models.user_activity import EntityType
from storefront.tracking.events import (
    CustomerLoggedIn,
    CustomerRegistered,
    OrderPlaced,
    ProductAddedToCart,
    find_event,
)

PRODUCT_PATH_PATTERN = re.compile(r"/products/(\d+)")


@dataclass
class ClassifiedActivity:
    action: str
    activity_data: Dict[str, Any]
    # Set when the request itself authenticated a customer (login/register)
    customer_id: Optional[str] = None
    email: Optional[str] = None


@dataclass
class EntityInfo:
    entity_type: EntityType
    product_id: Optional[int] = None
    order_id: Optional[str] = None
    category_id: Optional[str] = None
    entity_id: Optional[str] = None

    def as_columns(self) -> Dict[str, Any]:
        return {
            "entity_type": self.entity_type,
            "product_id": self.product_id,
            "order_id": self.order_id,
            "category_id": self.category_id,
            "entity_id": self.entity_id,
        }


def classify_activity(
    method: str,
    path: str,
    status_code: int,
    query_params: Optional[Mapping[str, str]] = None,
    events: Optional[List] = None,
) -> ClassifiedActivity:
    query_params = query_params or {}
    events = events or []
    method = method.upper()
    activity = ClassifiedActivity(
        action="other",
        activity_data={"method": method, "path": path, "status": status_code},
    )
    data = activity.activity_data
    product_match = PRODUCT_PATH_PATTERN.search(path)
    
    if "/login" in path and method == "POST" and status_code == 200:
        activity.action = "login"
        logged_in = find_event(events, CustomerLoggedIn)
        if logged_in:
            activity.customer_id = logged_in.customer_id
            activity.email = logged_in.email
            data["userId"] = logged_in.customer_id
            data["email"] = logged_in.email
    elif "/logout" in path and status_code == 200:
        activity.action = "logout"
    elif product_match and method == "GET":
        activity.action = "view_product"
        data["productId"] = int(product_match.group(1))
    elif "/search" in path and method == "GET":
        activity.action = "search"
        data["query"] = query_params.get("query", "")
        data["filters"] = dict(query_params)
    elif "/cart/add" in path and method == "POST":
        activity.action = "add_to_cart"
        added = find_event(events, ProductAddedToCart)
        if added:
            data["productId"] = added.product_id
            data["quantity"] = added.quantity
            data["options"] = added.options
    # /checkout/complete is checked before the broader /checkout rule
    elif "/checkout/complete" in path and method == "POST" and status_code == 200:
        activity.action = "order"
        placed = find_event(events, OrderPlaced)
        if placed:
            data["orderId"] = placed.order_id
    elif "/checkout" in path and method == "POST":
        activity.action = "checkout"
    elif "/register" in path and method == "POST" and status_code == 201:
        activity.action = "register"
        registered = find_event(events, CustomerRegistered)
        if registered:
            activity.customer_id = registered.customer_id
            activity.email = registered.email
            data["userId"] = registered.customer_id
            data["email"] = registered.email
    
    return activity


def entity_info(action: str, activity_data: Mapping[str, Any]) -> EntityInfo:
    """Map an action to the entity it is about"""
    if action in ("view_product", "add_to_cart"):
        product_id = activity_data.get("productId")
        if product_id is not None:
            return EntityInfo(entity_type=EntityType.PRODUCT, product_id=int(product_id))
        return EntityInfo(entity_type=EntityType.OTHER, entity_id=action)
    
    if action == "order":
        order_id = activity_data.get("orderId")
        if order_id:
            return EntityInfo(entity_type=EntityType.ORDER, order_id=str(order_id))
        return EntityInfo(entity_type=EntityType.OTHER, entity_id=action)
    
    if action == "search":
        query = activity_data.get("query")
        return EntityInfo(entity_type=EntityType.SEARCH, entity_id=str(query)[:100] if query else "unknown")
    
    if action in ("login", "logout", "register"):
        return EntityInfo(entity_type=EntityType.AUTH, entity_id=action)
    
    if action == "checkout":
        return EntityInfo(entity_type=EntityType.CART, entity_id="checkout")
    
    return EntityInfo(entity_type=EntityType.OTHER, entity_id=action)
