"""
Domain events emitted by storefront handlers for the activity tracker.

Handlers that learn something the tracker cannot see from the request alone
(who just logged in, which order was placed) emit a typed event instead of
the tracker parsing serialized response bodies.
"""
from dataclasses import dataclass
from typing import List, Optional, Type, TypeVar
from starlette.requests import Request


@dataclass(frozen=True)
class CustomerLoggedIn:
    customer_id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class CustomerRegistered:
    customer_id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class OrderPlaced:
    order_id: str
    customer_id: Optional[str] = None


@dataclass(frozen=True)
class ProductAddedToCart:
    product_id: int
    quantity: int = 1
    options: Optional[dict] = None


E = TypeVar("E")


def emit_event(request: Request, event) -> None:
    events = getattr(request.state, "domain_events", None)
    if events is None:
        events = []
        request.state.domain_events = events
    events.append(event)


def get_events(request: Request) -> List:
    return list(getattr(request.state, "domain_events", None) or [])


def find_event(events: List, event_type: Type[E]) -> Optional[E]:
    """Last event of the given type, if any"""
    for event in reversed(events):
        if isinstance(event, event_type):
            return event
    return None
