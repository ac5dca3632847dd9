"""
Concurrent Access Tests

Tests for race conditions between waiters and cashiers working the same
table or order at once:
- Two placements on one table must end up on one running bill
- Concurrent appends must not lose items or money
- Concurrent payments must produce exactly one bill

These tests use threading to simulate real-world concurrent access patterns.
Row locks are only meaningful on PostgreSQL; SQLite runs skip them.
"""
import pytest
from decimal import Decimal
from threading import Thread, Barrier
from django.conf import settings
import uuid

from tenant.models import Tenant
from menu.models import MenuItem
from tables.models import Table
from orders.models import Order, OrderItem
from orders.services import OrderItemService, OrderService
from payments.models import Transaction


pytestmark = pytest.mark.skipif(
    "postgresql" not in settings.DATABASES["default"]["ENGINE"],
    reason="select_for_update needs PostgreSQL",
)


def run_concurrently(worker, count):
    """Start ``count`` threads on ``worker(thread_id)`` behind a barrier; return (results, errors)."""
    results = []
    errors = []
    barrier = Barrier(count)

    def target(thread_id):
        from django.db import connection

        try:
            # Wait for all threads to be ready
            barrier.wait()
            results.append(worker(thread_id))
        except Exception as e:
            errors.append(f"thread_{thread_id}_unexpected: {e}")
        finally:
            connection.close()

    threads = [Thread(target=target, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results, errors


def make_restaurant():
    tenant = Tenant.objects.create(
        name=f"Test Restaurant {uuid.uuid4().hex[:8]}",
        slug=f"test-{uuid.uuid4().hex[:8]}",
        is_active=True,
    )
    item = MenuItem.all_objects.create(tenant=tenant, name="Thali", price=Decimal("100.00"))
    table = Table.all_objects.create(tenant=tenant, table_number="T9")
    return tenant, item, table


def cart(item, quantity=1):
    return [{"menu_item_id": str(item.id), "quantity": quantity}]


@pytest.mark.django_db(transaction=True)
class TestConcurrentTableOrders:

    def test_simultaneous_placements_share_one_order(self):
        """
        CRITICAL: Verify two waiters ordering for the same table at the same
        moment end up on one running bill

        Scenario:
        - 4 threads place an order for table T9 simultaneously
        - Expected: one open order holding 4 items, total 4 x 115
        """
        tenant, item, table = make_restaurant()

        results, errors = run_concurrently(
            lambda i: OrderService.place_order(tenant, cart(item), table_id=table.id).order.id,
            4,
        )

        assert errors == []
        assert len(set(results)) == 1
        assert Order.open_for_table(tenant, table.id).count() == 1

        order = Order.all_objects.get(id=results[0])
        assert OrderItem.all_objects.filter(order=order).count() == 4
        assert order.total_amount == Decimal("460.00")


@pytest.mark.django_db(transaction=True)
class TestConcurrentAppends:

    def test_concurrent_appends_lose_nothing(self):
        """
        CRITICAL: Verify appends serialize on the order row

        Scenario:
        - Order starts with 1 thali (115.00)
        - 5 threads each append 1 thali and pay for it
        - Expected: 6 items, total 690.00, paid 690.00, one bill
        """
        tenant, item, table = make_restaurant()
        order = OrderService.place_order(
            tenant, cart(item), table_id=table.id,
            payment_status="PAID", payment_method="CASH",
        ).order

        _results, errors = run_concurrently(
            lambda i: OrderItemService.append_items(
                tenant, order.id, cart(item), payment_method="CASH", payment_status="PAID"
            ),
            5,
        )

        assert errors == []
        order.refresh_from_db()
        assert OrderItem.all_objects.filter(order=order).count() == 6
        assert order.total_amount == Decimal("690.00")
        assert order.paid_amount == Decimal("690.00")
        assert order.payment_status == Order.PaymentStatus.PAID
        assert Transaction.all_objects.filter(order=order).count() == 1
        assert Transaction.all_objects.get(order=order).grand_total == Decimal("690.00")


@pytest.mark.django_db(transaction=True)
class TestConcurrentPayments:

    def test_double_tap_payment_writes_one_bill(self):
        """
        CRITICAL: Verify a cashier double-tapping "Paid" cannot create two bills
        """
        tenant, item, table = make_restaurant()
        order = OrderService.place_order(tenant, cart(item, 2), table_id=table.id).order

        results, errors = run_concurrently(
            lambda i: OrderService.update_payment_status(
                tenant, order.id, "PAID", payment_method="UPI"
            ),
            3,
        )

        assert errors == []
        assert all(outcome.ledger_in_sync for outcome in results)
        assert Transaction.all_objects.filter(order=order).count() == 1

        order.refresh_from_db()
        assert order.paid_amount == Decimal("230.00")
        table.refresh_from_db()
        assert table.current_status == Table.TableStatus.AVAILABLE
