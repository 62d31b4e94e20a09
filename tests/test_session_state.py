# ==============================================================================
# Tests for the Online-User Session State Machine
# ==============================================================================
"""
Unit tests for the pure session transition function.

Tests cover:
- First contact creates a guest or customer snapshot
- Guest browsing accumulates history, counters and phases
- Repeated referrers and repeated IPs are deduplicated
- Guest-to-customer promotion closes the guest phase and evicts other sessions
- Customer browsing, including a fresh login on an existing customer row
- Admin visits are rejected
"""

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from storefront.models.online_user import UserType
from storefront.tracking.session_state import (
    CustomerSession,
    EvictCustomerSessions,
    GuestSession,
    NoSession,
    SaveSession,
    TransitionOutcome,
    state_for,
    transition,
)
from tests.helpers import BROWSER_A, make_visit

T0 = datetime(2026, 3, 1, 10, 0, 0)


def guest_state_after(*referrers):
    """Run a fresh guest browser through visits with the given referrers."""
    state = NoSession(browser_id=BROWSER_A)
    for offset, referrer in enumerate(referrers):
        state = transition(state, make_visit(referrer=referrer, timestamp=T0 + timedelta(minutes=offset))).state
    return state


# ==============================================================================
# First contact
# ==============================================================================


class TestCreate:
    """NoSession -> first snapshot."""

    def test_guest_first_visit(self):
        """A new guest gets one history entry, one open guest phase and one page view."""
        result = transition(NoSession(BROWSER_A), make_visit(timestamp=T0))

        assert result.outcome == TransitionOutcome.CREATED
        assert isinstance(result.state, GuestSession)
        snapshot = result.snapshot
        assert snapshot.total_page_views == 1
        assert snapshot.guest_page_views == 1
        assert snapshot.customer_page_views == 0
        assert snapshot.customer_id is None
        assert snapshot.login_time is None
        assert len(snapshot.session_history) == 1
        assert snapshot.session_history[0]["browsingPhase"] == "guest"
        assert snapshot.session_phases == (
            {"phase": "guest", "startTime": T0.isoformat(), "endTime": None, "pageViews": 1},
        )
        assert snapshot.ip_history == ({"ip": "203.0.113.7", "timestamp": T0.isoformat()},)
        assert result.effects == (SaveSession(snapshot=snapshot, is_new=True),)

    def test_customer_first_visit_evicts_other_browsers(self):
        """A customer seen on a new browser claims the single customer session."""
        result = transition(NoSession(BROWSER_A), make_visit(customer_id="c-1", timestamp=T0))

        assert isinstance(result.state, CustomerSession)
        assert result.snapshot.customer_page_views == 1
        assert result.snapshot.guest_page_views == 0
        assert result.effects[0] == EvictCustomerSessions(customer_id="c-1", keep_browser_id=BROWSER_A)
        assert isinstance(result.effects[1], SaveSession)
        assert result.effects[1].is_new

    def test_login_time_set_only_on_login_request(self):
        """loginTime on creation comes from a login request only."""
        plain = transition(NoSession(BROWSER_A), make_visit(customer_id="c-1", timestamp=T0))
        login = transition(NoSession(BROWSER_A), make_visit(customer_id="c-1", is_login=True, timestamp=T0))

        assert plain.snapshot.login_time is None
        assert login.snapshot.login_time == T0


# ==============================================================================
# Guest browsing
# ==============================================================================


class TestGuestBrowsing:
    """GuestSession + guest visit."""

    def test_two_pages_two_views(self):
        """Guest visits page X then page Y: two history entries, two guest views."""
        state = guest_state_after("https://shop.example.com/x", "https://shop.example.com/y")
        snapshot = state.snapshot

        assert isinstance(state, GuestSession)
        assert len(snapshot.session_history) == 2
        assert snapshot.total_page_views == 2
        assert snapshot.guest_page_views == 2
        assert snapshot.session_phases[0]["pageViews"] == 2

    def test_same_referrer_is_one_page(self):
        """Polling with an unchanged referrer refreshes activity but adds no view."""
        state = guest_state_after("https://shop.example.com/x")
        later = T0 + timedelta(minutes=5)
        result = transition(state, make_visit(referrer="https://shop.example.com/x", timestamp=later))

        assert result.outcome == TransitionOutcome.UPDATED_GUEST
        assert result.snapshot.total_page_views == 1
        assert len(result.snapshot.session_history) == 1
        assert result.snapshot.last_activity == later

    def test_ip_history_only_grows_on_change(self):
        """A repeated IP is not appended again; a new IP is."""
        state = guest_state_after("https://shop.example.com/x", "https://shop.example.com/y")
        assert len(state.snapshot.ip_history) == 1

        result = transition(state, make_visit(referrer="https://shop.example.com/z", ip_address="198.51.100.1"))
        assert [entry["ip"] for entry in result.snapshot.ip_history] == ["203.0.113.7", "198.51.100.1"]
        assert result.snapshot.ip_address == "198.51.100.1"

    def test_page_url_tracks_latest_referrer(self):
        state = guest_state_after("https://shop.example.com/x", "https://shop.example.com/y")
        assert state.snapshot.page_url == "https://shop.example.com/y"

    def test_input_snapshot_not_mutated(self):
        """Transitions return new snapshots and leave the old state untouched."""
        state = guest_state_after("https://shop.example.com/x")
        transition(state, make_visit(referrer="https://shop.example.com/y"))

        assert state.snapshot.total_page_views == 1
        assert len(state.snapshot.session_history) == 1


# ==============================================================================
# Promotion
# ==============================================================================


class TestPromotion:
    """GuestSession + customer visit."""

    def test_guest_login_promotes_row(self):
        """The guest row becomes the customer's row and keeps its history."""
        state = guest_state_after("https://shop.example.com/x", "https://shop.example.com/y")
        login_at = T0 + timedelta(minutes=10)
        result = transition(state, make_visit(
            customer_id="c-1",
            referrer="https://shop.example.com/login",
            is_login=True,
            timestamp=login_at,
        ))

        snapshot = result.snapshot
        assert result.outcome == TransitionOutcome.PROMOTED
        assert isinstance(result.state, CustomerSession)
        assert snapshot.user_type == UserType.CUSTOMER
        assert snapshot.customer_id == "c-1"
        assert snapshot.login_time == login_at
        assert snapshot.guest_page_views == 2
        assert snapshot.customer_page_views == 1
        assert len(snapshot.session_history) == 3
        assert snapshot.session_history[-1]["browsingPhase"] == "customer"

    def test_promotion_closes_guest_phase_and_opens_customer_phase(self):
        state = guest_state_after("https://shop.example.com/x")
        login_at = T0 + timedelta(minutes=3)
        result = transition(state, make_visit(customer_id="c-1", referrer="https://shop.example.com/x", timestamp=login_at))

        guest_phase, customer_phase = result.snapshot.session_phases
        assert guest_phase["phase"] == "guest"
        assert guest_phase["endTime"] == login_at.isoformat()
        assert customer_phase == {
            "phase": "customer",
            "startTime": login_at.isoformat(),
            "endTime": None,
            "pageViews": 0,
        }
        # Same referrer as the last guest page: nothing new to count yet
        assert result.snapshot.customer_page_views == 0

    def test_promotion_evicts_before_saving(self):
        """Eviction and save come from one transition, eviction first."""
        state = guest_state_after("https://shop.example.com/x")
        result = transition(state, make_visit(customer_id="c-1", referrer="https://shop.example.com/y"))

        assert result.effects[0] == EvictCustomerSessions(customer_id="c-1", keep_browser_id=BROWSER_A)
        assert isinstance(result.effects[1], SaveSession)
        assert not result.effects[1].is_new


# ==============================================================================
# Customer browsing
# ==============================================================================


class TestCustomerBrowsing:
    """CustomerSession + any visit."""

    def customer_state(self):
        return transition(NoSession(BROWSER_A), make_visit(customer_id="c-1", timestamp=T0)).state

    def test_customer_pages_count_as_customer_views(self):
        result = transition(self.customer_state(), make_visit(customer_id="c-1", referrer="https://shop.example.com/cart"))

        assert result.outcome == TransitionOutcome.UPDATED_CUSTOMER
        assert result.snapshot.customer_page_views == 2
        assert result.snapshot.total_page_views == 2
        assert result.snapshot.session_phases[0]["pageViews"] == 2

    def test_relogin_sets_login_time(self):
        later = T0 + timedelta(hours=1)
        result = transition(self.customer_state(), make_visit(customer_id="c-1", is_login=True, timestamp=later))
        assert result.snapshot.login_time == later

    def test_customer_row_keeps_customer_for_guest_request(self):
        """A customer row is updated in place; it never demotes back to guest."""
        result = transition(self.customer_state(), make_visit(referrer="https://shop.example.com/other"))

        assert isinstance(result.state, CustomerSession)
        assert result.snapshot.customer_id == "c-1"
        assert result.effects == (SaveSession(snapshot=result.snapshot),)


# ==============================================================================
# Guards
# ==============================================================================


class TestGuards:

    def test_admin_visit_rejected(self):
        admin_visit = replace(make_visit(), user_type=UserType.ADMIN)
        with pytest.raises(ValueError, match="Admin visits"):
            transition(NoSession(BROWSER_A), admin_visit)

    def test_state_for_picks_variant(self):
        guest = guest_state_after("https://shop.example.com/x").snapshot
        assert isinstance(state_for(BROWSER_A, None), NoSession)
        assert isinstance(state_for(BROWSER_A, guest), GuestSession)
