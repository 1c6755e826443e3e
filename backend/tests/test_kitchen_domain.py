"""
Tests for the KitchenOrder aggregate.

Tests verify:
- Automatic status rollup from item states
- Estimated time recalculation
- Item timestamps and derived elapsed/remaining times
- Ticket cancellation rules
"""

from datetime import timedelta

import pytest

from restaurant.domain.kitchen import KitchenOrder
from shared.config.constants import KitchenItemStatus, KitchenOrderStatus, KitchenPriority
from shared.utils.exceptions import (
    BusinessRuleError,
    ErrorCode,
    InvalidTransitionError,
    ItemNotFoundError,
    ValidationError,
)

P, R, C = KitchenItemStatus.PREPARING, KitchenItemStatus.READY, KitchenItemStatus.CANCELLED


def two_item_ticket() -> tuple[KitchenOrder, str, str]:
    ko = KitchenOrder.create("o1")
    a = ko.add_item("m1", "A", 1, timedelta(minutes=10))
    b = ko.add_item("m2", "B", 1, timedelta(minutes=20))
    return ko, a.id, b.id


class TestKitchenRollup:
    """Ticket status follows its items."""

    def test_rollup_scenario(self):
        """One item ready and one new keeps PREPARING; both ready gives READY."""
        ko, a, b = two_item_ticket()
        assert ko.estimated_time == timedelta(minutes=20)

        ko.update_item_status(a, P)
        assert ko.status is KitchenOrderStatus.PREPARING
        ko.update_item_status(a, R)
        assert ko.status is KitchenOrderStatus.PREPARING
        assert ko.estimated_time == timedelta(minutes=20)

        ko.update_item_status(b, P)
        ko.update_item_status(b, R)
        assert ko.status is KitchenOrderStatus.READY
        assert ko.estimated_time == timedelta(0)

    def test_all_cancelled_cancels_ticket(self):
        ko, a, b = two_item_ticket()
        ko.update_item_status(a, C)
        assert ko.status is KitchenOrderStatus.NEW
        ko.update_item_status(b, C)
        assert ko.status is KitchenOrderStatus.CANCELLED

    def test_ready_and_cancelled_mix_is_ready(self):
        ko, a, b = two_item_ticket()
        ko.update_item_status(a, P)
        ko.update_item_status(a, R)
        ko.update_item_status(b, C)
        assert ko.status is KitchenOrderStatus.READY

    def test_completed_ticket_never_regresses(self):
        ko, a, b = two_item_ticket()
        ko.update_status(KitchenOrderStatus.PREPARING)
        ko.update_status(KitchenOrderStatus.READY)
        ko.update_status(KitchenOrderStatus.COMPLETED)

        ko.update_item_status(a, P)
        assert ko.status is KitchenOrderStatus.COMPLETED

    def test_rollup_sets_ticket_started_at(self, frozen_clock):
        ko, a, _ = two_item_ticket()
        ko.update_item_status(a, P)
        assert ko.started_at == frozen_clock.now()


class TestKitchenItems:
    def test_item_timestamps(self, frozen_clock):
        ko, a, _ = two_item_ticket()
        started = frozen_clock.now()
        ko.update_item_status(a, P)
        frozen_clock.advance(minutes=7)
        ko.update_item_status(a, R)

        item = ko.get_item(a)
        assert item.started_at == started
        assert item.completed_at == started + timedelta(minutes=7)

    def test_ready_is_terminal_for_items(self):
        ko, a, _ = two_item_ticket()
        ko.update_item_status(a, P)
        ko.update_item_status(a, R)
        with pytest.raises(InvalidTransitionError):
            ko.update_item_status(a, C)

    def test_new_cannot_jump_to_ready(self):
        ko, a, _ = two_item_ticket()
        with pytest.raises(InvalidTransitionError) as exc_info:
            ko.update_item_status(a, R)
        assert exc_info.value.code == ErrorCode.INVALID_STATUS_TRANSITION

    def test_unknown_item(self):
        ko, _, _ = two_item_ticket()
        with pytest.raises(ItemNotFoundError):
            ko.update_item_status("ki_missing", P)

    def test_remove_item_recomputes_estimate(self):
        ko, _, b = two_item_ticket()
        ko.remove_item(b)
        assert ko.estimated_time == timedelta(minutes=10)

    def test_add_item_validation(self):
        ko = KitchenOrder.create("o1")
        with pytest.raises(ValidationError):
            ko.add_item("m1", "A", 0, timedelta(minutes=1))
        with pytest.raises(ValidationError):
            ko.add_item("m1", "A", 1, timedelta(minutes=-1))
        with pytest.raises(ValidationError):
            ko.add_item("", "A", 1, timedelta(minutes=1))


class TestKitchenTimes:
    """time_elapsed and time_remaining."""

    def test_not_started(self):
        ko, _, _ = two_item_ticket()
        assert ko.time_elapsed() == timedelta(0)
        assert ko.time_remaining() == timedelta(minutes=20)

    def test_in_progress(self, frozen_clock):
        ko, a, _ = two_item_ticket()
        ko.update_item_status(a, P)
        frozen_clock.advance(minutes=5)
        assert ko.time_elapsed() == timedelta(minutes=5)
        assert ko.time_remaining() == timedelta(minutes=15)

    def test_remaining_never_negative(self, frozen_clock):
        ko, a, _ = two_item_ticket()
        ko.update_item_status(a, P)
        frozen_clock.advance(hours=2)
        assert ko.time_remaining() == timedelta(0)

    def test_completed_uses_completed_at(self, frozen_clock):
        ko, _, _ = two_item_ticket()
        ko.update_status(KitchenOrderStatus.PREPARING)
        frozen_clock.advance(minutes=12)
        ko.update_status(KitchenOrderStatus.READY)
        ko.update_status(KitchenOrderStatus.COMPLETED)
        frozen_clock.advance(hours=1)

        assert ko.time_elapsed() == timedelta(minutes=12)
        assert ko.time_remaining() == timedelta(0)


class TestKitchenTicket:
    def test_cancel_keeps_ready_items(self):
        ko, a, b = two_item_ticket()
        ko.update_item_status(a, P)
        ko.update_item_status(a, R)

        previous = ko.cancel()

        assert previous is KitchenOrderStatus.PREPARING
        assert ko.is_cancelled()
        assert ko.get_item(a).status is KitchenItemStatus.READY
        assert ko.get_item(b).status is KitchenItemStatus.CANCELLED
        assert ko.estimated_time == timedelta(0)

    def test_cancel_completed_fails(self):
        ko, _, _ = two_item_ticket()
        ko.update_status(KitchenOrderStatus.PREPARING)
        ko.update_status(KitchenOrderStatus.READY)
        ko.update_status(KitchenOrderStatus.COMPLETED)
        with pytest.raises(BusinessRuleError) as exc_info:
            ko.cancel()
        assert "completed" in exc_info.value.detail

    def test_cancel_twice_is_invalid_transition(self):
        ko, _, _ = two_item_ticket()
        ko.cancel()
        with pytest.raises(InvalidTransitionError):
            ko.cancel()

    def test_update_status_invalid(self):
        ko, _, _ = two_item_ticket()
        with pytest.raises(InvalidTransitionError):
            ko.update_status(KitchenOrderStatus.COMPLETED)

    def test_unknown_values_are_validation_errors(self):
        ko, a, _ = two_item_ticket()
        with pytest.raises(ValidationError):
            ko.update_status("PLATED")
        with pytest.raises(ValidationError):
            ko.update_item_status(a, "BURNT")
        with pytest.raises(ValidationError) as exc_info:
            ko.set_priority("CRITICAL")
        assert exc_info.value.field == "priority"
        assert ko.status is KitchenOrderStatus.NEW
        assert ko.priority is KitchenPriority.NORMAL

    def test_station_and_priority(self):
        ko, _, _ = two_item_ticket()
        ko.assign_to_station("grill")
        ko.set_priority("URGENT")
        assert ko.assigned_station == "grill"
        assert ko.priority is KitchenPriority.URGENT
        with pytest.raises(ValidationError):
            ko.assign_to_station("")

    def test_validate_requires_items(self):
        ko = KitchenOrder.create("o1")
        with pytest.raises(ValidationError):
            ko.validate()
        with pytest.raises(ValidationError):
            KitchenOrder.create("")
