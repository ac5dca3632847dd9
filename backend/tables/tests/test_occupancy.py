"""
Table Occupancy Tests

A table is OCCUPIED exactly while an open dine-in order references it.
RESERVED and BLOCKED are set by managers and never changed by order activity.
"""
import pytest

from orders.exceptions import NotFound, ValidationFailure
from orders.models import Order
from orders.services import OrderService
from tables.models import Table
from tables.services import TableOccupancyService

# Import fixtures
from dineflow_core.tests.fixtures import *


@pytest.mark.django_db
class TestMarkOccupied:

    def test_marks_occupied_and_assigns_staff(self, tenant_a, table_t1, waiter):
        table = TableOccupancyService.mark_occupied(tenant_a, table_t1.id, staff=waiter)

        assert table.current_status == Table.TableStatus.OCCUPIED
        assert table.assigned_staff == waiter

    def test_does_not_reassign_staff(self, tenant_a, table_t1, waiter, second_waiter):
        TableOccupancyService.mark_occupied(tenant_a, table_t1.id, staff=waiter)
        table = TableOccupancyService.mark_occupied(tenant_a, table_t1.id, staff=second_waiter)
        assert table.assigned_staff == waiter

    @pytest.mark.parametrize("locked_status", [Table.TableStatus.RESERVED, Table.TableStatus.BLOCKED])
    def test_admin_locked_table_untouched(self, tenant_a, table_t1, waiter, locked_status):
        """
        CRITICAL: Verify order activity never overrides a manager's RESERVED/BLOCKED
        """
        TableOccupancyService.set_status(tenant_a, table_t1.id, locked_status)

        table = TableOccupancyService.mark_occupied(tenant_a, table_t1.id, staff=waiter)

        assert table.current_status == locked_status
        assert table.assigned_staff is None

    def test_other_restaurant_table_not_found(self, tenant_b, table_t1):
        with pytest.raises(NotFound):
            TableOccupancyService.mark_occupied(tenant_b, table_t1.id)


@pytest.mark.django_db
class TestReleaseIfIdle:

    def test_idle_table_becomes_available_and_loses_staff(self, tenant_a, table_t1, waiter):
        TableOccupancyService.mark_occupied(tenant_a, table_t1.id, staff=waiter)

        table = TableOccupancyService.release_if_idle(tenant_a, table_t1.id)

        assert table.current_status == Table.TableStatus.AVAILABLE
        assert table.assigned_staff is None

    def test_table_with_open_order_stays_occupied(self, tenant_a, biryani, table_t1):
        OrderService.place_order(tenant_a, [line(biryani)], table_id=table_t1.id)

        table = TableOccupancyService.release_if_idle(tenant_a, table_t1.id)

        assert table.current_status == Table.TableStatus.OCCUPIED

    def test_excluded_order_does_not_hold_table(self, tenant_a, biryani, table_t1):
        order = OrderService.place_order(tenant_a, [line(biryani)], table_id=table_t1.id).order

        table = TableOccupancyService.release_if_idle(
            tenant_a, table_t1.id, exclude_order_id=order.id
        )

        assert table.current_status == Table.TableStatus.AVAILABLE

    def test_repairs_table_that_lagged_behind(self, tenant_a, biryani, table_t1):
        OrderService.place_order(tenant_a, [line(biryani)], table_id=table_t1.id)
        Table.all_objects.filter(id=table_t1.id).update(current_status=Table.TableStatus.AVAILABLE)

        table = TableOccupancyService.release_if_idle(tenant_a, table_t1.id)

        assert table.current_status == Table.TableStatus.OCCUPIED

    def test_blocked_table_untouched(self, tenant_a, table_t1):
        TableOccupancyService.set_status(tenant_a, table_t1.id, Table.TableStatus.BLOCKED)
        table = TableOccupancyService.release_if_idle(tenant_a, table_t1.id)
        assert table.current_status == Table.TableStatus.BLOCKED

    def test_reserved_table_keeps_reservation_after_order_closes(self, tenant_a, biryani, table_t1):
        order = OrderService.place_order(tenant_a, [line(biryani)], table_id=table_t1.id).order
        TableOccupancyService.set_status(tenant_a, table_t1.id, Table.TableStatus.RESERVED)

        OrderService.cancel_order(tenant_a, order.id, "Guest moved tables")

        table_t1.refresh_from_db()
        assert table_t1.current_status == Table.TableStatus.RESERVED


@pytest.mark.django_db
class TestSetStatus:

    def test_available_clears_staff(self, tenant_a, table_t1, waiter):
        TableOccupancyService.mark_occupied(tenant_a, table_t1.id, staff=waiter)
        table = TableOccupancyService.set_status(tenant_a, table_t1.id, Table.TableStatus.AVAILABLE)
        assert table.assigned_staff is None

    def test_reserve_with_staff(self, tenant_a, table_t1, waiter):
        table = TableOccupancyService.set_status(
            tenant_a, table_t1.id, Table.TableStatus.RESERVED, staff=waiter
        )
        assert table.current_status == Table.TableStatus.RESERVED
        assert table.assigned_staff == waiter

    def test_invalid_status(self, tenant_a, table_t1):
        with pytest.raises(ValidationFailure):
            TableOccupancyService.set_status(tenant_a, table_t1.id, "FLOODED")

    def test_unknown_table(self, tenant_a):
        with pytest.raises(NotFound):
            TableOccupancyService.set_status(tenant_a, "not-a-uuid", Table.TableStatus.BLOCKED)


@pytest.mark.django_db
class TestOneOpenOrderPerTable:

    def test_database_rejects_second_open_order(self, tenant_a, biryani, table_t1):
        """
        CRITICAL: Verify the partial unique constraint backs up the merge logic
        """
        from django.db import IntegrityError, transaction

        OrderService.place_order(tenant_a, [line(biryani)], table_id=table_t1.id)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Order.all_objects.create(
                    tenant=tenant_a,
                    table=table_t1,
                    order_type=Order.OrderType.DINE_IN,
                    order_number="ORD-99999",
                )
