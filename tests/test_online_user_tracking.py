# ==============================================================================
# Tests for Online-User Persistence and Tracking Operations
# ==============================================================================
"""
Database-backed tests for the tracking service and its repositories.

Tests cover:
- Visits merged into rows (create, update, promote)
- One customer row per customer across browsers
- Conflicting concurrent writes retried from a fresh read
- Activity logging, purge of idle rows and the analytics queries
"""

from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from storefront.models import OnlineUser, UserActivity
from storefront.models.online_user import UserType
from storefront.models.user_activity import EntityType
from storefront.repositories import online_user as online_user_repo
from storefront.repositories import user_activity as user_activity_repo
from storefront.tracking.service import (
    log_activity,
    purge_inactive_sessions,
    track_online_user,
)
from storefront.tracking.session_state import TransitionOutcome, transition
from tests.helpers import BROWSER_A, BROWSER_B, activity_rows, make_record, make_visit, online_rows


# ==============================================================================
# Merging visits
# ==============================================================================


class TestTrackOnlineUser:

    def test_guest_pages_accumulate(self, session_factory):
        track_online_user(session_factory, make_visit(referrer="https://shop.example.com/x"))
        result = track_online_user(session_factory, make_visit(referrer="https://shop.example.com/y"))

        assert result.outcome == TransitionOutcome.UPDATED_GUEST
        (row,) = online_rows(session_factory)
        assert row.user_type == UserType.GUEST
        assert row.total_page_views == 2
        assert row.guest_page_views == 2
        assert [entry["referrer"] for entry in row.session_history] == [
            "https://shop.example.com/x",
            "https://shop.example.com/y",
        ]
        assert row.version == 2

    def test_promotion_keeps_browser_row(self, session_factory, customer):
        track_online_user(session_factory, make_visit(referrer="https://shop.example.com/x"))
        result = track_online_user(session_factory, make_visit(
            customer_id=customer.id, referrer="https://shop.example.com/login", is_login=True
        ))

        assert result.outcome == TransitionOutcome.PROMOTED
        (row,) = online_rows(session_factory)
        assert row.browser_id == BROWSER_A
        assert row.user_type == UserType.CUSTOMER
        assert row.customer_id == customer.id
        assert row.login_time is not None
        assert [phase["phase"] for phase in row.session_phases] == ["guest", "customer"]
        assert row.session_phases[0]["endTime"] is not None
        assert row.session_phases[1]["endTime"] is None

    def test_second_browser_login_evicts_first(self, session_factory, customer):
        """Customer logs in from a second browser: only that browser's row remains."""
        track_online_user(session_factory, make_visit(browser_id=BROWSER_A, customer_id=customer.id))
        track_online_user(session_factory, make_visit(browser_id=BROWSER_B, referrer="https://shop.example.com/"))
        track_online_user(session_factory, make_visit(
            browser_id=BROWSER_B, customer_id=customer.id, referrer="https://shop.example.com/login"
        ))

        rows = online_rows(session_factory)
        assert [(row.browser_id, row.user_type) for row in rows] == [(BROWSER_B, UserType.CUSTOMER)]

    def test_eviction_leaves_other_customers_alone(self, session_factory, make_customer):
        jane = make_customer("jane@example.com")
        omar = make_customer("omar@example.com", name="Omar")
        track_online_user(session_factory, make_visit(browser_id=BROWSER_A, customer_id=omar.id))
        track_online_user(session_factory, make_visit(browser_id=BROWSER_B, customer_id=jane.id))

        assert {row.customer_id for row in online_rows(session_factory)} == {jane.id, omar.id}

    def test_conflict_retried_from_fresh_read(self, session_factory, monkeypatch):
        """A lost race is rolled back and replayed, not dropped."""
        track_online_user(session_factory, make_visit(referrer="https://shop.example.com/x"))

        real_apply = online_user_repo.apply_transition
        calls = []

        def flaky_apply(db, row, result):
            calls.append(row.version if row is not None else None)
            if len(calls) == 1:
                raise StaleDataError("row changed underneath")
            return real_apply(db, row, result)

        monkeypatch.setattr(online_user_repo, "apply_transition", flaky_apply)
        result = track_online_user(session_factory, make_visit(referrer="https://shop.example.com/y"))

        assert result is not None
        assert len(calls) == 2
        (row,) = online_rows(session_factory)
        assert row.total_page_views == 2

    def test_gives_up_after_max_retries(self, session_factory, monkeypatch):
        def always_stale(db, row, result):
            raise StaleDataError("always")

        monkeypatch.setattr(online_user_repo, "apply_transition", always_stale)
        monkeypatch.setattr("storefront.tracking.service.settings.TRACKING_MAX_RETRIES", 2)

        assert track_online_user(session_factory, make_visit()) is None
        assert online_rows(session_factory) == []

    def test_concurrent_first_contact_applied_as_update(self, session_factory, monkeypatch):
        """Two first requests from one browser: the later insert becomes an update."""
        real_load = online_user_repo.load_state
        reads = []

        def racing_load(db, browser_id):
            found = real_load(db, browser_id)
            reads.append(found[0] is not None)
            if len(reads) == 1:
                # Another request creates the row after this one has looked
                competing = session_factory()
                try:
                    row, state = real_load(competing, browser_id)
                    online_user_repo.apply_transition(competing, row, transition(state, make_visit(
                        referrer="https://shop.example.com/x"
                    )))
                    competing.commit()
                finally:
                    competing.close()
            return found

        monkeypatch.setattr(online_user_repo, "load_state", racing_load)
        result = track_online_user(session_factory, make_visit(referrer="https://shop.example.com/y"))

        assert result.outcome == TransitionOutcome.UPDATED_GUEST
        assert reads == [False, True]
        (row,) = online_rows(session_factory)
        assert row.total_page_views == 2

    def test_integrity_failure_without_race_not_retried(self, session_factory, monkeypatch):
        """A rejected insert with no competing row is a failure, not a lost race."""
        calls = []

        def rejected_insert(db, row, result):
            calls.append(row)
            raise IntegrityError("INSERT INTO online_users", {}, Exception("FOREIGN KEY constraint failed"))

        monkeypatch.setattr(online_user_repo, "apply_transition", rejected_insert)

        assert track_online_user(session_factory, make_visit()) is None
        assert calls == [None]
        assert online_rows(session_factory) == []

    def test_version_guards_concurrent_update(self, session_factory):
        """Two sessions holding the same row version: the second flush fails."""
        track_online_user(session_factory, make_visit())
        first, second = session_factory(), session_factory()
        try:
            row_one = online_user_repo.get_by_browser_id(first, BROWSER_A)
            row_two = online_user_repo.get_by_browser_id(second, BROWSER_A)
            row_one.page_url = "https://shop.example.com/one"
            first.commit()

            row_two.page_url = "https://shop.example.com/two"
            try:
                second.commit()
            except StaleDataError:
                second.rollback()
            else:
                raise AssertionError("stale write was accepted")
        finally:
            first.close()
            second.close()

        (row,) = online_rows(session_factory)
        assert row.page_url == "https://shop.example.com/one"

    def test_unexpected_error_is_swallowed(self, session_factory, monkeypatch):
        def broken(db, row, result):
            raise RuntimeError("disk full")

        monkeypatch.setattr(online_user_repo, "apply_transition", broken)
        assert track_online_user(session_factory, make_visit()) is None


# ==============================================================================
# Activity log
# ==============================================================================


class TestLogActivity:

    def test_product_view_logged(self, session_factory):
        activity_id = log_activity(session_factory, make_record(productId=42))

        (row,) = activity_rows(session_factory)
        assert row.id == activity_id
        assert row.entity_type == EntityType.PRODUCT
        assert row.product_id == 42
        assert row.customer_id is None
        assert row.browser_id == BROWSER_A

    def test_customer_id_kept_for_customers(self, session_factory, customer):
        log_activity(session_factory, make_record("login", UserType.CUSTOMER, customer.id))
        (row,) = activity_rows(session_factory)
        assert row.customer_id == customer.id
        assert row.entity_type == EntityType.AUTH

    def test_admin_records_skipped(self, session_factory):
        assert log_activity(session_factory, make_record(user_type=UserType.ADMIN)) is None
        assert activity_rows(session_factory) == []


# ==============================================================================
# Purge and read side
# ==============================================================================


class TestPurgeAndQueries:

    def test_purge_drops_idle_rows(self, session_factory):
        long_ago = datetime.utcnow() - timedelta(hours=2)
        track_online_user(session_factory, make_visit(browser_id=BROWSER_A, timestamp=long_ago))
        track_online_user(session_factory, make_visit(browser_id=BROWSER_B))

        assert purge_inactive_sessions(session_factory, ttl_seconds=1800) == 1
        assert [row.browser_id for row in online_rows(session_factory)] == [BROWSER_B]

    def test_counts_by_user_type(self, db, session_factory, customer):
        track_online_user(session_factory, make_visit(browser_id=BROWSER_A))
        track_online_user(session_factory, make_visit(browser_id=BROWSER_B, customer_id=customer.id))

        assert online_user_repo.count_by_user_type(db) == {
            "totalOnline": 2,
            "customersOnline": 1,
            "guestsOnline": 1,
        }
        rows, total = online_user_repo.list_online_users(db, user_type=UserType.CUSTOMER)
        assert total == 1
        assert rows[0].browser_id == BROWSER_B

    def test_activity_filters_and_top_products(self, db, session_factory):
        for product_id in (1, 1, 2):
            log_activity(session_factory, make_record(productId=product_id))
        log_activity(session_factory, make_record("search", query="cushion"))

        assert user_activity_repo.count_by_action(db) == {"view_product": 3, "search": 1}
        rows, total = user_activity_repo.list_activities(db, entity_type=EntityType.SEARCH)
        assert total == 1
        assert rows[0].entity_id == "cushion"
        assert user_activity_repo.top_viewed_products(db, datetime.utcnow() - timedelta(days=1)) == [(1, 2), (2, 1)]
        assert db.query(UserActivity).count() == 4
        assert db.query(OnlineUser).count() == 0
