"""
Property-based tests with Hypothesis.

Covers the invariants the state machines and aggregates must keep for any
input: pricing, transition tables, kitchen rollup and estimate, the manage
wildcard and session validity.
"""

from datetime import timedelta

import pytest
from hypothesis import HealthCheck, assume, given, settings, strategies as st

from restaurant.domain.kitchen import KitchenOrder
from restaurant.domain.order import Order
from restaurant.domain.user import Permission, UserSession
from shared.config.constants import (
    KITCHEN_ITEM_TRANSITIONS,
    ORDER_TRANSITIONS,
    Actions,
    KitchenItemStatus,
    KitchenOrderStatus,
    OrderStatus,
    OrderType,
    Resources,
)
from shared.config.settings import settings as app_settings
from shared.utils.clock import utcnow
from shared.utils.exceptions import InvalidTransitionError, OrderNotCancellableError

# The autouse frozen clock is function scoped; every example shares it
property_settings = settings(
    max_examples=50,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
    deadline=None,
)

lines = st.lists(
    st.tuples(
        st.integers(min_value=1, max_value=20),
        st.integers(min_value=0, max_value=50_000).map(lambda cents: cents / 100),
    ),
    min_size=1,
    max_size=10,
)


def _takeout(order_lines) -> Order:
    order = Order.create("c1", OrderType.TAKEOUT)
    for n, (quantity, price) in enumerate(order_lines):
        order.add_item(f"m{n}", f"Dish {n}", quantity, price)
    return order


class TestOrderProperties:
    @given(order_lines=lines)
    @property_settings
    def test_total_is_subtotal_plus_tax(self, order_lines):
        order = _takeout(order_lines)

        subtotal = sum(q * p for q, p in order_lines)
        assert order.subtotal == pytest.approx(subtotal)
        assert order.tax_amount == pytest.approx(subtotal * app_settings.order_tax_rate)
        assert order.total_amount == pytest.approx(order.subtotal + order.tax_amount)

    @given(order_lines=lines, data=st.data())
    @property_settings
    def test_total_tracks_removals(self, order_lines, data):
        order = _takeout(order_lines)
        victim = data.draw(st.sampled_from(order.items))

        order.remove_item(victim.id)

        assert order.total_amount == pytest.approx(
            sum(i.subtotal for i in order.items) * (1 + app_settings.order_tax_rate)
        )
        assert order.total_amount >= 0

    @given(targets=st.lists(st.sampled_from(list(OrderStatus)), max_size=8))
    @property_settings
    def test_status_only_follows_the_table(self, targets):
        order = _takeout([(1, 10.0)])
        for target in targets:
            before = order.status
            allowed = target in ORDER_TRANSITIONS[before]
            try:
                order.update_status(target)
            except InvalidTransitionError:
                assert not allowed
                assert order.status is before
            else:
                assert allowed
                assert order.status is target

    @given(path_length=st.integers(min_value=0, max_value=3))
    @property_settings
    def test_cancel_from_any_active_state(self, path_length):
        order = _takeout([(2, 4.5)])
        for status in [OrderStatus.PAID, OrderStatus.PREPARING, OrderStatus.READY][:path_length]:
            order.update_status(status)

        assert order.cancel() is not OrderStatus.CANCELLED
        with pytest.raises(OrderNotCancellableError):
            order.cancel()


prep_minutes = st.lists(st.integers(min_value=0, max_value=90), min_size=1, max_size=6)


class TestKitchenProperties:
    @given(minutes=prep_minutes, data=st.data())
    @property_settings
    def test_estimate_is_longest_unfinished_line(self, minutes, data):
        ko = KitchenOrder.create("ord_1")
        for n, m in enumerate(minutes):
            ko.add_item(f"m{n}", f"Dish {n}", 1, timedelta(minutes=m))

        for _ in range(data.draw(st.integers(min_value=0, max_value=12))):
            item = data.draw(st.sampled_from(ko.items))
            options = KITCHEN_ITEM_TRANSITIONS[item.status]
            if not options:
                continue
            ko.update_item_status(item.id, data.draw(st.sampled_from(options)))

            unfinished = [
                i.prep_time for i in ko.items
                if i.status not in (KitchenItemStatus.READY, KitchenItemStatus.CANCELLED)
            ]
            assert ko.estimated_time == max(unfinished, default=timedelta(0))

    @given(minutes=prep_minutes, data=st.data())
    @property_settings
    def test_rollup_never_goes_back_to_new(self, minutes, data):
        ko = KitchenOrder.create("ord_1")
        for n, m in enumerate(minutes):
            ko.add_item(f"m{n}", f"Dish {n}", 1, timedelta(minutes=m))

        seen_progress = False
        for _ in range(data.draw(st.integers(min_value=1, max_value=15))):
            item = data.draw(st.sampled_from(ko.items))
            options = KITCHEN_ITEM_TRANSITIONS[item.status]
            if not options:
                continue
            ko.update_item_status(item.id, data.draw(st.sampled_from(options)))

            statuses = [i.status for i in ko.items]
            if all(s is KitchenItemStatus.CANCELLED for s in statuses):
                assert ko.status is KitchenOrderStatus.CANCELLED
            elif all(s in (KitchenItemStatus.READY, KitchenItemStatus.CANCELLED) for s in statuses):
                assert ko.status is KitchenOrderStatus.READY

            if ko.status is not KitchenOrderStatus.NEW:
                seen_progress = True
            assert not (seen_progress and ko.status is KitchenOrderStatus.NEW)


class TestPermissionProperties:
    @given(
        resource=st.sampled_from(Resources.ALL),
        other=st.sampled_from(Resources.ALL),
        action=st.sampled_from(Actions.ALL),
    )
    @property_settings
    def test_manage_grants_every_action_on_its_resource_only(self, resource, other, action):
        manage = Permission.create(resource, Actions.MANAGE)
        assert manage.grants(resource, action)
        assume(other != resource)
        assert not manage.grants(other, action)

    @given(
        resource=st.sampled_from(Resources.ALL),
        held=st.sampled_from(Actions.ALL),
        asked=st.sampled_from(Actions.ALL),
    )
    @property_settings
    def test_plain_action_grants_itself(self, resource, held, asked):
        assume(held != Actions.MANAGE)
        permission = Permission.create(resource, held)
        assert permission.grants(resource, asked) == (held == asked)


class TestSessionProperties:
    @given(
        offset_seconds=st.integers(min_value=-86_400, max_value=86_400),
        active=st.booleans(),
    )
    @property_settings
    def test_valid_iff_active_and_unexpired(self, offset_seconds, active):
        session = UserSession.create("usr_1", "h1", "h2", utcnow() + timedelta(seconds=offset_seconds))
        if not active:
            session.invalidate()
        assert session.is_valid_session() == (active and offset_seconds > 0)
