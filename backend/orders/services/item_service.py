from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import transaction
import logging

from orders.calculators import PricingResolver, clamp_paid, derive_payment_status
from orders.exceptions import InvalidTransition, NotFound, ValidationFailure
from orders.models import Order, OrderItem, OrderItemModifier
from settings.config import tax_rate_provider
from .calculation_service import OrderCalculationService
from .common import (
    OrderOutcome,
    ensure_accepts_changes,
    is_real_payment_method,
    lock_order,
    occupy_table,
    reconcile_payment_on_removal,
    resync_existing_bill,
    save_order,
    sync_bill,
    validate_payment_method,
)

logger = logging.getLogger(__name__)


class OrderItemService:
    """Service for adding and removing line items on an existing order."""

    # New items send an order that was ready/served back to the kitchen
    RESET_TO_PENDING_FROM = (
        Order.OrderStatus.READY,
        Order.OrderStatus.SERVED,
        Order.OrderStatus.PAID,
    )

    @staticmethod
    def create_items(order: Order, priced_lines) -> list:
        """Persist priced lines (and their modifier snapshots) on ``order``."""
        created = []
        for line in priced_lines:
            item = OrderItem.all_objects.create(
                tenant=order.tenant,
                order=order,
                menu_item_id=line.menu_item_id,
                item_name=line.item_name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                customization_amount=line.customization_amount,
                total_price=line.total_price,
                variant_id=line.variant_id,
                variant_name=line.variant_name,
                variant_price=line.variant_price,
                notes=line.notes,
            )
            if line.modifiers:
                OrderItemModifier.all_objects.bulk_create([
                    OrderItemModifier(
                        tenant=order.tenant,
                        order_item=item,
                        modifier_id=snapshot.modifier_id,
                        group_name=snapshot.group_name,
                        modifier_name=snapshot.name,
                        price_at_sale=snapshot.price,
                    )
                    for snapshot in line.modifiers
                ])
            created.append(item)
        return created

    @staticmethod
    def append_items(
        tenant,
        order_id,
        items,
        payment_method: str = None,
        payment_status: str = None,
        staff=None,
    ) -> OrderOutcome:
        """
        Add items to an open order.

        Only the new lines are priced. When the caller marks them PAID with a
        real payment method, their tax-inclusive amount is added to the
        order's paid amount and the bill is upserted.

        Raises:
            NotFound: unknown order or menu item
            OrderClosed: the order's bill is closed
            InvalidTransition: the order is cancelled
            ValidationFailure: malformed items or payment method
        """
        with transaction.atomic():
            order = lock_order(tenant, order_id)
            new_items, increment_paid = OrderItemService._append_to_locked_order(
                order, items, payment_method, payment_status
            )

        return OrderItemService.finish_append(
            order, new_items, increment_paid, payment_method, staff=staff
        )

    @staticmethod
    def finish_append(order, new_items, increment_paid, payment_method, staff=None, merged=False):
        """Post-commit half of an append: bill, then table."""
        outcome = OrderOutcome(order=order, new_items=new_items, merged=merged)
        if increment_paid:
            sync_bill(order, payment_method, outcome)
        else:
            resync_existing_bill(order, outcome)
        occupy_table(order, staff=staff)
        return outcome

    @staticmethod
    def _append_to_locked_order(order, items, payment_method=None, payment_status=None, waive_service_charge=False):
        """
        Append under an already held row lock. Returns (new_items, increment_paid).
        """
        from notifications.services import realtime_publisher

        ensure_accepts_changes(order)
        validate_payment_method(payment_method)
        if payment_status not in (None, "") and payment_status not in Order.PaymentStatus.values:
            raise ValidationFailure(
                f"'{payment_status}' is not a valid payment status.", field="payment_status"
            )

        rates = tax_rate_provider.get_rates(order.tenant)
        priced = PricingResolver(order.tenant, rates.currency).resolve(items)

        previous_total = order.total_amount
        previous_status = order.status

        new_items = OrderItemService.create_items(order, priced)
        if waive_service_charge:
            order.service_charge_waived = True
        totals = OrderCalculationService.recalculate_order_totals(order, rates)

        increment_paid = (
            payment_status == Order.PaymentStatus.PAID
            and is_real_payment_method(payment_method)
        )
        if increment_paid:
            increment = max(Decimal("0.00"), totals.total_amount - previous_total)
            order.paid_amount = order.paid_amount + increment
        order.paid_amount = clamp_paid(order.paid_amount, order.total_amount)
        order.payment_status = derive_payment_status(order.paid_amount, order.total_amount)

        if order.status in OrderItemService.RESET_TO_PENDING_FROM:
            order.status = Order.OrderStatus.PENDING

        save_order(order)
        logger.info(
            f"Added {len(new_items)} item(s) to order {order.order_number}: "
            f"total {previous_total} -> {order.total_amount}, paid {order.paid_amount} "
            f"({order.payment_status})"
        )

        realtime_publisher.order_items_added(order, new_items)
        if previous_status != order.status:
            realtime_publisher.order_status_changed(order, previous_status)

        return new_items, increment_paid

    @staticmethod
    def remove_item(tenant, order_id, item_id) -> OrderOutcome:
        """
        Delete a line from a PENDING order and recompute its totals.

        Payment state is left as it was unless
        ORDERS_RECONCILE_PAYMENT_ON_ITEM_REMOVAL is enabled, in which case
        paid is clamped to the new total and the payment status rederived.
        """
        from notifications.services import realtime_publisher

        with transaction.atomic():
            order = lock_order(tenant, order_id)
            ensure_accepts_changes(order)
            if order.status != Order.OrderStatus.PENDING:
                raise InvalidTransition(
                    f"Items can only be removed from PENDING orders (order {order.order_number} is {order.status})",
                    current=order.status,
                    required=Order.OrderStatus.PENDING,
                )

            try:
                item = OrderItem.all_objects.get(id=item_id, order=order, tenant=tenant)
            except (OrderItem.DoesNotExist, ValidationError, ValueError):
                raise NotFound("Order item", item_id)

            item_name = item.item_name
            item.delete()

            rates = tax_rate_provider.get_rates(order.tenant)
            OrderCalculationService.recalculate_order_totals(order, rates)

            if reconcile_payment_on_removal():
                order.paid_amount = clamp_paid(order.paid_amount, order.total_amount)
                order.payment_status = derive_payment_status(order.paid_amount, order.total_amount)
            elif order.paid_amount > order.total_amount:
                logger.warning(
                    f"Order {order.order_number} now has paid {order.paid_amount} above total "
                    f"{order.total_amount}; payment left for manual reconciliation"
                )

            save_order(order)
            logger.info(f"Removed '{item_name}' from order {order.order_number}; total {order.total_amount}")
            realtime_publisher.order_updated(order)

        outcome = OrderOutcome(order=order)
        resync_existing_bill(order, outcome)
        return outcome
