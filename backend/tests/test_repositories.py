"""
Tests for the SQLAlchemy repositories.

Tests verify:
- Aggregates round-trip with their child collections
- Optimistic concurrency on versioned rows
- Filtering, pagination and totals
- Table availability over the occupancy window
"""

from datetime import timedelta

import pytest

from restaurant.domain.inventory import InventoryItem, Supplier
from restaurant.domain.kitchen import KitchenOrder
from restaurant.domain.menu import Menu
from restaurant.domain.order import Order
from restaurant.domain.reservation import Reservation
from restaurant.domain.user import User, UserSession
from restaurant.repositories import (
    InventoryFilters,
    KitchenOrderFilters,
    MenuFilters,
    OrderFilters,
    ReservationFilters,
)
from shared.config.constants import (
    KitchenItemStatus,
    KitchenOrderStatus,
    MovementType,
    OrderStatus,
    OrderType,
    Roles,
)
from shared.utils.exceptions import (
    ConcurrentModificationError,
    DuplicateEntityError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)


def _paid_order(customer_id: str = "c1", table_id: str = "t1") -> Order:
    order = Order.create(customer_id, OrderType.DINE_IN)
    order.set_table_id(table_id)
    order.add_item("m1", "Burger", 2, 9.5, modifications=["no onion", "extra cheese"], notes="well done")
    order.update_status(OrderStatus.PAID)
    return order


class TestOrderRepository:
    def test_round_trip(self, order_repo, frozen_clock):
        order = _paid_order()
        order_repo.create(order)

        loaded = order_repo.get_by_id(order.id)

        assert loaded.status is OrderStatus.PAID
        assert loaded.table_id == "t1"
        assert loaded.items[0].modifications == ["no onion", "extra cheese"]
        assert loaded.items[0].notes == "well done"
        assert loaded.total_amount == pytest.approx(order.total_amount)
        assert loaded.created_at == frozen_clock.now()
        assert loaded.created_at.tzinfo is not None

    def test_missing_order(self, order_repo):
        with pytest.raises(NotFoundError):
            order_repo.get_by_id("ord_missing")

    def test_stale_update_is_rejected(self, order_repo):
        order = _paid_order()
        order_repo.create(order)

        first = order_repo.get_by_id(order.id)
        second = order_repo.get_by_id(order.id)

        first.update_status(OrderStatus.PREPARING)
        order_repo.update(first)

        second.cancel()
        with pytest.raises(ConcurrentModificationError) as exc_info:
            order_repo.update(second)
        assert exc_info.value.code == ErrorCode.CONCURRENT_MODIFICATION
        assert order_repo.get_by_id(order.id).status is OrderStatus.PREPARING

    def test_update_bumps_version(self, order_repo):
        order = _paid_order()
        order_repo.create(order)
        order.update_status(OrderStatus.PREPARING)
        order_repo.update(order)
        assert order.row_version == 2
        assert order_repo.get_by_id(order.id).row_version == 2

    def test_update_missing_order(self, order_repo):
        with pytest.raises(NotFoundError):
            order_repo.update(_paid_order())

    def test_list_filters_and_total(self, order_repo, frozen_clock):
        for i in range(5):
            frozen_clock.advance(minutes=1)
            order_repo.create(_paid_order(customer_id="c1" if i < 3 else "c2"))

        page, total = order_repo.list(OrderFilters(customer_id="c1", limit=2))

        assert total == 3
        assert len(page) == 2
        assert page[0].created_at > page[1].created_at

    @pytest.mark.parametrize("filters", [OrderFilters(status="SHIPPED"), OrderFilters(type="DRIVE_THRU")])
    def test_unknown_filter_values_are_validation_errors(self, order_repo, filters):
        with pytest.raises(ValidationError):
            order_repo.list(filters)
        with pytest.raises(ValidationError):
            order_repo.find_by_status("SHIPPED")

    def test_find_active_and_sales(self, order_repo, frozen_clock):
        paid = _paid_order()
        open_order = Order.create("c3", OrderType.TAKEOUT)
        cancelled = _paid_order()
        cancelled.cancel()
        for order in (paid, open_order, cancelled):
            order_repo.create(order)

        active_ids = {o.id for o in order_repo.find_active()}
        assert active_ids == {paid.id, open_order.id}

        count, total = order_repo.total_sales(
            frozen_clock.now() - timedelta(hours=1), frozen_clock.now() + timedelta(hours=1)
        )
        assert count == 1
        assert total == pytest.approx(paid.total_amount)

    def test_find_by_table(self, order_repo):
        order_repo.create(_paid_order(table_id="t9"))
        assert len(order_repo.find_by_table("t9")) == 1
        assert order_repo.find_by_table("t1") == []


class TestKitchenOrderRepository:
    def test_round_trip_with_items(self, kitchen_repo):
        ko = KitchenOrder.create("ord_1")
        item = ko.add_item("m1", "Pasta", 2, timedelta(minutes=12), notes="no salt")
        ko.update_item_status(item.id, KitchenItemStatus.PREPARING)
        kitchen_repo.create(ko)

        loaded = kitchen_repo.get_by_order_id("ord_1")

        assert loaded.id == ko.id
        assert loaded.status is KitchenOrderStatus.PREPARING
        assert loaded.estimated_time == timedelta(minutes=12)
        assert loaded.items[0].prep_time == timedelta(minutes=12)
        assert loaded.items[0].started_at == ko.items[0].started_at

    def test_one_ticket_per_order(self, kitchen_repo):
        kitchen_repo.create(KitchenOrder.create("ord_1"))
        with pytest.raises(DuplicateEntityError):
            kitchen_repo.create(KitchenOrder.create("ord_1"))

    def test_missing_order_ticket(self, kitchen_repo):
        with pytest.raises(NotFoundError):
            kitchen_repo.get_by_order_id("ord_none")

    def test_find_active(self, kitchen_repo):
        active = KitchenOrder.create("ord_1")
        done = KitchenOrder.create("ord_2")
        done.cancel()
        kitchen_repo.create(active)
        kitchen_repo.create(done)

        assert [k.id for k in kitchen_repo.find_active()] == [active.id]
        assert kitchen_repo.count() == 2

    def test_unknown_filter_values_are_validation_errors(self, kitchen_repo):
        with pytest.raises(ValidationError):
            kitchen_repo.list(KitchenOrderFilters(status="PLATED"))
        with pytest.raises(ValidationError):
            kitchen_repo.count(KitchenOrderFilters(priority="CRITICAL"))


class TestReservationRepository:
    def _book(self, repo, clock, table_id="t1", hours=2):
        reservation = Reservation.create("c1", table_id, clock.now() + timedelta(hours=hours), 2)
        repo.create(reservation)
        return reservation

    def test_round_trip_keeps_utc(self, reservation_repo, frozen_clock):
        reservation = self._book(reservation_repo, frozen_clock)
        loaded = reservation_repo.get_by_id(reservation.id)
        assert loaded.date_time == reservation.date_time
        assert loaded.date_time.tzinfo is not None

    def test_table_booked_within_window(self, reservation_repo, frozen_clock):
        reservation = self._book(reservation_repo, frozen_clock)

        assert reservation_repo.is_table_booked("t1", reservation.date_time + timedelta(minutes=119))
        assert not reservation_repo.is_table_booked("t1", reservation.date_time + timedelta(minutes=120))
        assert not reservation_repo.is_table_booked("t2", reservation.date_time)

    def test_exclude_own_reservation(self, reservation_repo, frozen_clock):
        reservation = self._book(reservation_repo, frozen_clock)
        assert not reservation_repo.is_table_booked(
            "t1", reservation.date_time + timedelta(minutes=30), exclude_id=reservation.id
        )

    def test_cancelled_does_not_block(self, reservation_repo, frozen_clock):
        reservation = self._book(reservation_repo, frozen_clock)
        reservation.cancel()
        reservation_repo.update(reservation)
        assert not reservation_repo.is_table_booked("t1", reservation.date_time)

    def test_find_available_tables(self, reservation_repo, frozen_clock):
        reservation = self._book(reservation_repo, frozen_clock, table_id="t2")
        available = reservation_repo.find_available_tables(["t1", "t2", "t3", "t1"], reservation.date_time)
        assert available == ["t1", "t3"]

    def test_available_tables_rejects_bad_party_size(self, reservation_repo, frozen_clock):
        with pytest.raises(ValidationError):
            reservation_repo.find_available_tables(["t1"], frozen_clock.now(), party_size=0)

    def test_find_upcoming(self, reservation_repo, frozen_clock):
        later = self._book(reservation_repo, frozen_clock, table_id="t1", hours=5)
        sooner = self._book(reservation_repo, frozen_clock, table_id="t2", hours=1)
        cancelled = self._book(reservation_repo, frozen_clock, table_id="t3", hours=3)
        cancelled.cancel()
        reservation_repo.update(cancelled)

        assert [r.id for r in reservation_repo.find_upcoming()] == [sooner.id, later.id]
        assert [r.id for r in reservation_repo.find_upcoming(limit=1)] == [sooner.id]

    def test_unknown_status_filter(self, reservation_repo):
        with pytest.raises(ValidationError):
            reservation_repo.list(ReservationFilters(status="SEATED"))


class TestMenuRepository:
    def _menu(self) -> Menu:
        menu = Menu.create("Dinner")
        mains = menu.add_category("Mains")
        menu.add_menu_item(
            mains.id, "Pasta", 15.0, preparation_time=timedelta(minutes=12), ingredients=["Tomato"]
        )
        return menu

    def test_round_trip_with_categories(self, menu_repo):
        menu = self._menu()
        menu_repo.create(menu)

        loaded = menu_repo.get_by_id(menu.id)

        item = loaded.all_items()[0]
        assert loaded.categories[0].name == "Mains"
        assert item.preparation_time == timedelta(minutes=12)
        assert item.ingredients == ["Tomato"]

    def test_get_active_and_filters(self, menu_repo):
        active = self._menu()
        menu_repo.create(active)
        inactive = active.clone()
        menu_repo.create(inactive)

        assert menu_repo.get_active().id == active.id
        assert [m.id for m in menu_repo.list(MenuFilters(is_active=False))] == [inactive.id]

    def test_no_active_menu(self, menu_repo):
        with pytest.raises(NotFoundError):
            menu_repo.get_active()

    def test_item_lookup(self, menu_repo):
        menu = self._menu()
        menu_repo.create(menu)
        item = menu.all_items()[0]

        owner, found = menu_repo.get_menu_item(item.id)
        assert owner.id == menu.id and found.name == "Pasta"

        matches = menu_repo.find_items_by_ingredient("TOMATO")
        assert [i.id for _, i in matches] == [item.id]


class TestInventoryRepositories:
    def test_item_and_movements(self, inventory_repos):
        items, movements, _ = inventory_repos
        item = InventoryItem.create("TOM-1", "Tomato", 10, "KG", 2.0)
        items.create(item)
        movement = item.add_movement(MovementType.USED, 4)
        items.update(item)
        movements.create(movement)

        assert items.get_by_sku("TOM-1").current_stock == 6
        history = movements.get_movements_by_item(item.id)
        assert [(m.previous_stock, m.new_stock) for m in history] == [(10, 6)]

    def test_duplicate_sku(self, inventory_repos):
        items, _, _ = inventory_repos
        items.create(InventoryItem.create("SKU-1", "Flour", 1, "KG", 1.0))
        with pytest.raises(DuplicateEntityError):
            items.create(InventoryItem.create("SKU-1", "Sugar", 1, "KG", 1.0))

    def test_low_and_out_of_stock(self, inventory_repos):
        items, _, _ = inventory_repos
        low = InventoryItem.create("A", "Basil", 1, "KG", 1.0)
        low.update_thresholds(0, 10, 2)
        empty = InventoryItem.create("B", "Cream", 0, "L", 1.0)
        plenty = InventoryItem.create("C", "Rice", 50, "KG", 1.0)
        plenty.update_thresholds(0, 100, 5)
        for item in (low, empty, plenty):
            items.create(item)

        assert {i.sku for i in items.get_low_stock_items()} == {"A", "B"}
        assert [i.sku for i in items.get_out_of_stock_items()] == ["B"]
        assert {i.sku for i in items.list_items(InventoryFilters(low_stock_only=True))} == {"A", "B"}

    def test_search(self, inventory_repos):
        items, _, _ = inventory_repos
        items.create(InventoryItem.create("TOM-1", "Roma Tomato", 1, "KG", 1.0))
        items.create(InventoryItem.create("BAS-1", "Basil", 1, "KG", 1.0))
        assert [i.sku for i in items.search_items("tomato")] == ["TOM-1"]
        assert [i.sku for i in items.search_items("bas-")] == ["BAS-1"]
        assert items.search_items("   ") == []

    def test_suppliers(self, inventory_repos):
        _, _, suppliers = inventory_repos
        active = Supplier.create("Acme Produce")
        inactive = Supplier.create("Old Farm")
        inactive.deactivate()
        suppliers.create(active)
        suppliers.create(inactive)

        assert [s.id for s in suppliers.get_active_suppliers()] == [active.id]
        active.update_details("Acme Produce Co", email="orders@acme.test")
        suppliers.update(active)
        assert suppliers.get_by_id(active.id).email == "orders@acme.test"


class TestUserRepositories:
    def test_user_loads_with_role(self, user_repos, seed_roles):
        users, _, _ = user_repos
        user = User.create("cook@example.com", "hash", seed_roles[Roles.KITCHEN_STAFF])
        users.create(user)

        loaded = users.get_by_email("Cook@Example.com ")
        assert loaded.role.name == Roles.KITCHEN_STAFF
        assert loaded.can_access("kitchen", "delete")

    def test_role_by_name(self, user_repos, seed_roles):
        _, roles, _ = user_repos
        assert roles.get_by_name(Roles.HOST).id == "role_host"
        assert len(roles.list()) == 6
        with pytest.raises(NotFoundError):
            roles.get_by_name("sommelier")

    def test_sessions(self, user_repos, seed_roles, frozen_clock):
        users, _, sessions = user_repos
        user = User.create("host@example.com", "hash", seed_roles[Roles.HOST])
        users.create(user)

        live = UserSession.create(user.id, "a" * 64, "b" * 64, frozen_clock.now() + timedelta(hours=1))
        stale = UserSession.create(user.id, "c" * 64, "d" * 64, frozen_clock.now() - timedelta(seconds=1))
        sessions.create(live)
        sessions.create(stale)

        assert [s.id for s in sessions.get_active_for_user(user.id)] == [live.id]
        assert sessions.get_by_token_hash("a" * 64).id == live.id
        assert sessions.delete_expired() == 1
        assert sessions.invalidate_for_user(user.id) == 1
        assert sessions.get_active_for_user(user.id) == []
