"""
Online-user session state machine.

A browser is in exactly one of three states:

    NoSession        no row exists for the browser id yet
    GuestSession     a row exists with userType=guest
    CustomerSession  a row exists with userType=customer

``transition(state, visit)`` is pure: it returns the next state plus the side
effects the repository must apply (evicting other sessions of the same
customer, saving the snapshot). Nothing here touches the database, so every
rule can be exercised directly in tests.
"""
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Tuple, Union
import enum

from storefront.models.online_user import UserType, ClientSource


class TransitionOutcome(str, enum.Enum):
    UPDATED_CUSTOMER = "updated_customer"
    UPDATED_GUEST = "updated_guest"
    PROMOTED = "promoted"
    CREATED = "created"


@dataclass(frozen=True)
class PageVisit:
    """One tracked request, already classified and sanitized"""
    browser_id: str
    user_type: UserType
    customer_id: Optional[str]
    ip_address: str
    user_agent: str
    source: ClientSource
    url: str
    referrer: str
    is_login: bool
    timestamp: datetime

    @property
    def is_customer(self) -> bool:
        return self.user_type == UserType.CUSTOMER and bool(self.customer_id)

    @property
    def browsing_phase(self) -> UserType:
        return UserType.CUSTOMER if self.is_customer else UserType.GUEST


@dataclass(frozen=True)
class SessionSnapshot:
    browser_id: str
    user_type: UserType
    customer_id: Optional[str] = None
    ip_address: str = ""
    user_agent: str = ""
    source: ClientSource = ClientSource.WEB
    page_url: str = ""
    session_history: Tuple[dict, ...] = ()
    session_phases: Tuple[dict, ...] = ()
    ip_history: Tuple[dict, ...] = ()
    total_page_views: int = 0
    guest_page_views: int = 0
    customer_page_views: int = 0
    login_time: Optional[datetime] = None
    last_activity: Optional[datetime] = None


@dataclass(frozen=True)
class NoSession:
    browser_id: str


@dataclass(frozen=True)
class GuestSession:
    snapshot: SessionSnapshot


@dataclass(frozen=True)
class CustomerSession:
    snapshot: SessionSnapshot


SessionState = Union[NoSession, GuestSession, CustomerSession]


@dataclass(frozen=True)
class EvictCustomerSessions:
    """Delete every other customer row of this customer (one live session per customer)"""
    customer_id: str
    keep_browser_id: str


@dataclass(frozen=True)
class SaveSession:
    snapshot: SessionSnapshot
    is_new: bool = False


Effect = Union[EvictCustomerSessions, SaveSession]


@dataclass(frozen=True)
class Transition:
    outcome: TransitionOutcome
    state: SessionState
    effects: Tuple[Effect, ...]

    @property
    def snapshot(self) -> SessionSnapshot:
        return self.state.snapshot


def state_for(browser_id: str, snapshot: Optional[SessionSnapshot]) -> SessionState:
    """Wrap a stored snapshot (or its absence) in the matching state"""
    if snapshot is None:
        return NoSession(browser_id=browser_id)
    if snapshot.user_type == UserType.CUSTOMER:
        return CustomerSession(snapshot=snapshot)
    return GuestSession(snapshot=snapshot)


def _wrap(snapshot: SessionSnapshot) -> SessionState:
    return state_for(snapshot.browser_id, snapshot)


def _timestamp(value: datetime) -> str:
    return value.isoformat()


def _history_entry(visit: PageVisit) -> dict:
    return {
        "url": visit.url,
        "referrer": visit.referrer,
        "browsingPhase": visit.browsing_phase.value,
        "timestamp": _timestamp(visit.timestamp),
    }


def _ip_entry(visit: PageVisit) -> dict:
    return {"ip": visit.ip_address, "timestamp": _timestamp(visit.timestamp)}


def _phase_entry(phase: UserType, started_at: datetime) -> dict:
    return {"phase": phase.value, "startTime": _timestamp(started_at), "endTime": None, "pageViews": 0}


def is_new_page(snapshot: SessionSnapshot, referrer: str) -> bool:
    """Repeated referrers (polling, refreshes, parallel API calls) are one page view"""
    if not snapshot.session_history:
        return True
    return snapshot.session_history[-1].get("referrer") != referrer


def is_new_ip(snapshot: SessionSnapshot, ip_address: str) -> bool:
    if not snapshot.ip_history:
        return True
    return snapshot.ip_history[-1].get("ip") != ip_address


def _open_phase_index(phases: Tuple[dict, ...], phase: Optional[UserType] = None) -> Optional[int]:
    for index in range(len(phases) - 1, -1, -1):
        entry = phases[index]
        if entry.get("endTime") is None and (phase is None or entry.get("phase") == phase.value):
            return index
    return None


def _count_open_phase(phases: Tuple[dict, ...]) -> Tuple[dict, ...]:
    index = _open_phase_index(phases)
    if index is None:
        return phases
    counted = dict(phases[index], pageViews=phases[index].get("pageViews", 0) + 1)
    return phases[:index] + (counted,) + phases[index + 1:]


def _close_phase(phases: Tuple[dict, ...], phase: UserType, ended_at: datetime) -> Tuple[dict, ...]:
    index = _open_phase_index(phases, phase)
    if index is None:
        return phases
    closed = dict(phases[index], endTime=_timestamp(ended_at))
    return phases[:index] + (closed,) + phases[index + 1:]


def _refresh(snapshot: SessionSnapshot, visit: PageVisit, counter: str) -> SessionSnapshot:
    """
    Apply a visit to an existing snapshot: volatile fields always change,
    history/counters only for a new page, ipHistory only for a new IP.
    """
    changes = {
        "ip_address": visit.ip_address,
        "user_agent": visit.user_agent,
        "source": visit.source,
        "page_url": visit.referrer,
        "last_activity": visit.timestamp,
    }
    
    if is_new_page(snapshot, visit.referrer):
        changes["session_history"] = snapshot.session_history + (_history_entry(visit),)
        changes["session_phases"] = _count_open_phase(snapshot.session_phases)
        changes["total_page_views"] = snapshot.total_page_views + 1
        changes[counter] = getattr(snapshot, counter) + 1
    
    if is_new_ip(snapshot, visit.ip_address):
        changes["ip_history"] = snapshot.ip_history + (_ip_entry(visit),)
    
    return replace(snapshot, **changes)


def _update_customer(state: CustomerSession, visit: PageVisit) -> Transition:
    snapshot = _refresh(state.snapshot, visit, "customer_page_views")
    if visit.is_login:
        snapshot = replace(snapshot, login_time=visit.timestamp)
    return Transition(
        outcome=TransitionOutcome.UPDATED_CUSTOMER,
        state=_wrap(snapshot),
        effects=(SaveSession(snapshot=snapshot),),
    )


def _update_guest(state: GuestSession, visit: PageVisit) -> Transition:
    snapshot = _refresh(state.snapshot, visit, "guest_page_views")
    return Transition(
        outcome=TransitionOutcome.UPDATED_GUEST,
        state=_wrap(snapshot),
        effects=(SaveSession(snapshot=snapshot),),
    )


def _promote(state: GuestSession, visit: PageVisit) -> Transition:
    """Guest logs in: close the guest phase, open a customer phase, keep all history"""
    login_time = visit.timestamp
    phases = _close_phase(state.snapshot.session_phases, UserType.GUEST, login_time)
    phases = phases + (_phase_entry(UserType.CUSTOMER, login_time),)
    
    converted = replace(
        state.snapshot,
        user_type=UserType.CUSTOMER,
        customer_id=visit.customer_id,
        session_phases=phases,
        login_time=login_time,
    )
    snapshot = _refresh(converted, visit, "customer_page_views")
    return Transition(
        outcome=TransitionOutcome.PROMOTED,
        state=_wrap(snapshot),
        effects=(
            EvictCustomerSessions(customer_id=visit.customer_id, keep_browser_id=visit.browser_id),
            SaveSession(snapshot=snapshot),
        ),
    )


def _create(state: NoSession, visit: PageVisit) -> Transition:
    phase = visit.browsing_phase
    is_customer = visit.is_customer
    first_phase = dict(_phase_entry(phase, visit.timestamp), pageViews=1)
    
    snapshot = SessionSnapshot(
        browser_id=state.browser_id,
        user_type=phase,
        customer_id=visit.customer_id if is_customer else None,
        ip_address=visit.ip_address,
        user_agent=visit.user_agent,
        source=visit.source,
        page_url=visit.referrer,
        session_history=(_history_entry(visit),),
        session_phases=(first_phase,),
        ip_history=(_ip_entry(visit),),
        total_page_views=1,
        guest_page_views=0 if is_customer else 1,
        customer_page_views=1 if is_customer else 0,
        login_time=visit.timestamp if (is_customer and visit.is_login) else None,
        last_activity=visit.timestamp,
    )
    
    effects = (SaveSession(snapshot=snapshot, is_new=True),)
    if is_customer:
        effects = (EvictCustomerSessions(customer_id=visit.customer_id, keep_browser_id=state.browser_id),) + effects
    
    return Transition(outcome=TransitionOutcome.CREATED, state=_wrap(snapshot), effects=effects)


def transition(state: SessionState, visit: PageVisit) -> Transition:
    """Compute the next session state for a visit. Pure; raises ValueError for admin visits."""
    if visit.user_type == UserType.ADMIN:
        raise ValueError("Admin visits are not tracked")
    
    if isinstance(state, CustomerSession):
        return _update_customer(state, visit)
    if isinstance(state, GuestSession):
        if visit.is_customer:
            return _promote(state, visit)
        return _update_guest(state, visit)
    return _create(state, visit)
