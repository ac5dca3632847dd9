"""
Helpers shared by the order services: locking, guarded saves, and the
post-commit follow-ups (bill sync, table occupancy).
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError

from orders.exceptions import (
    InvalidTransition,
    LedgerSyncFailure,
    NotFound,
    OrderClosed,
    ValidationFailure,
)
from orders.models import Order

logger = logging.getLogger(__name__)


@dataclass
class OrderOutcome:
    """
    Result of an order mutation.

    ``warnings`` carries LedgerSyncFailure instances: the order change is
    committed, but its bill could not be brought in line and needs
    reconciling.
    """

    order: Order
    new_items: List = field(default_factory=list)
    warnings: List[LedgerSyncFailure] = field(default_factory=list)
    merged: bool = False

    @property
    def ledger_in_sync(self) -> bool:
        return not self.warnings


def lock_order(tenant, order_id) -> Order:
    """Re-read the order under a row lock. Must be called inside transaction.atomic."""
    try:
        return Order.all_objects.select_for_update().get(id=order_id, tenant=tenant)
    except (Order.DoesNotExist, ValidationError, ValueError):
        raise NotFound("Order", order_id)


def ensure_accepts_changes(order: Order):
    if order.is_closed:
        raise OrderClosed(order)
    if order.is_cancelled:
        raise InvalidTransition(
            f"Order {order.order_number} is cancelled",
            current=order.status,
            required="not CANCELLED",
        )


def ensure_paid_status_still_settled(order: Order):
    """
    An order marked PAID cannot take a total above what was collected.
    Adding items re-opens it to PENDING; only then can the total go up.
    """
    if order.status == Order.OrderStatus.PAID and order.payment_status != Order.PaymentStatus.PAID:
        raise InvalidTransition(
            f"Order {order.order_number} is marked PAID but its new total {order.total_amount} "
            f"exceeds the {order.paid_amount} collected. Add items to re-open it before changing the total.",
            current=f"PAID with {order.payment_status}",
            required="not PAID, or a total covered by payment",
        )


def save_order(order: Order):
    order.validate_lifecycle()
    order.save()


def validate_payment_method(payment_method: Optional[str]):
    if payment_method in (None, ""):
        return
    if payment_method not in Order.PaymentMethod.values:
        raise ValidationFailure(
            f"'{payment_method}' is not a valid payment method.", field="payment_method"
        )


def is_real_payment_method(payment_method: Optional[str]) -> bool:
    return payment_method not in (None, "", Order.PaymentMethod.DUE)


def reconcile_payment_on_removal() -> bool:
    return bool(getattr(settings, "ORDERS_RECONCILE_PAYMENT_ON_ITEM_REMOVAL", False))


def default_settlement_method() -> str:
    return getattr(settings, "DEFAULT_SETTLEMENT_METHOD", Order.PaymentMethod.CASH)


def sync_bill(order: Order, payment_method: str, outcome: OrderOutcome, payment_reference=None):
    """Create or update the bill, recording a failure on ``outcome`` instead of raising."""
    from payments.services import LedgerService

    try:
        LedgerService.sync_transaction(order, payment_method, payment_reference=payment_reference)
    except LedgerSyncFailure as failure:
        logger.warning(f"Order {order.order_number} committed but its bill is out of sync: {failure}")
        outcome.warnings.append(failure)


def resync_existing_bill(order: Order, outcome: OrderOutcome):
    """Bring an already written bill up to the order's current totals."""
    from payments.services import LedgerService

    bill = LedgerService.get_bill(order)
    if bill is not None:
        sync_bill(order, bill.payment_method, outcome)


def occupy_table(order: Order, staff=None):
    if not order.table_id or order.order_type != Order.OrderType.DINE_IN:
        return
    from tables.services import TableOccupancyService

    try:
        TableOccupancyService.mark_occupied(order.tenant, order.table_id, staff=staff)
    except (DatabaseError, NotFound) as e:
        # Next occupancy check repairs the table
        logger.warning(f"Could not mark table {order.table_id} occupied for {order.order_number}: {e}")


def release_table(order: Order):
    if not order.table_id:
        return
    from tables.services import TableOccupancyService

    try:
        TableOccupancyService.release_if_idle(
            order.tenant, order.table_id, exclude_order_id=order.id
        )
    except (DatabaseError, NotFound) as e:
        logger.warning(f"Could not re-evaluate table {order.table_id} after {order.order_number}: {e}")
