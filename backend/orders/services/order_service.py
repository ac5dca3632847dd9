from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
import logging

from orders.calculators import (
    PricingResolver,
    TaxDiscountCalculator,
    as_money,
    clamp_paid,
    derive_payment_status,
    payment_tolerance,
)
from orders.exceptions import (
    AlreadyClosed,
    InvalidTransition,
    NotFound,
    NotPaid,
    NotServed,
    ValidationFailure,
)
from orders.models import Order
from settings.config import tax_rate_provider
from .calculation_service import OrderCalculationService
from .common import (
    OrderOutcome,
    default_settlement_method,
    ensure_accepts_changes,
    ensure_paid_status_still_settled,
    is_real_payment_method,
    lock_order,
    occupy_table,
    release_table,
    resync_existing_bill,
    save_order,
    sync_bill,
    validate_payment_method,
)
from .item_service import OrderItemService

logger = logging.getLogger(__name__)

CANCEL_REASON_MIN_LENGTH = 3
CANCEL_REASON_MAX_LENGTH = 500


class OrderService:
    """Core service for the order lifecycle: place, transition, pay, cancel, close."""

    # Workflow moves; CANCELLED is reached only through cancel_order
    VALID_STATUS_TRANSITIONS = {
        Order.OrderStatus.PENDING: [
            Order.OrderStatus.PREPARING,
            Order.OrderStatus.READY,
            Order.OrderStatus.SERVED,
        ],
        Order.OrderStatus.PREPARING: [
            Order.OrderStatus.READY,
            Order.OrderStatus.SERVED,
        ],
        Order.OrderStatus.READY: [
            Order.OrderStatus.SERVED,
        ],
        Order.OrderStatus.SERVED: [
            Order.OrderStatus.PAID,  # only once the payment axis is PAID
        ],
        Order.OrderStatus.PAID: [],
        Order.OrderStatus.CANCELLED: [],
    }

    UPDATABLE_FIELDS = ("discount_amount", "guest_name", "guest_phone", "notes", "service_charge_waived")

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    @staticmethod
    def place_order(
        tenant,
        items,
        order_type: str = Order.OrderType.DINE_IN,
        table_id=None,
        payment_method: str = None,
        payment_status: str = Order.PaymentStatus.DUE,
        discount_amount=None,
        waive_service_charge: bool = False,
        placed_by=None,
        guest_name: str = "",
        guest_phone: str = "",
        notes: str = "",
        amount_paid=None,
    ) -> OrderOutcome:
        """
        Place an order, or continue the table's running bill.

        For a DINE_IN order on a table that already has an open order, the
        items are appended to that order instead (one running bill per
        table). Otherwise a new PENDING order is created, the table is marked
        OCCUPIED and, if the caller paid in full with a real method, the bill
        is written.

        Args:
            tenant: the restaurant
            items: list of {menu_item_id, quantity, variant_id?, modifier_ids?, notes?}
            payment_status: DUE, PARTIALLY_PAID (needs ``amount_paid``) or PAID
            amount_paid: amount collected so far, for PARTIALLY_PAID

        Returns:
            OrderOutcome with ``merged`` set when an existing order was continued.
        """
        from notifications.services import realtime_publisher
        from tables.models import Table

        if order_type not in Order.OrderType.values:
            raise ValidationFailure(f"'{order_type}' is not a valid order type.", field="order_type")
        if payment_status in (None, ""):
            payment_status = Order.PaymentStatus.DUE
        if payment_status not in Order.PaymentStatus.values:
            raise ValidationFailure(
                f"'{payment_status}' is not a valid payment status.", field="payment_status"
            )
        validate_payment_method(payment_method)
        if table_id and order_type != Order.OrderType.DINE_IN:
            raise ValidationFailure("A table can only be set on DINE_IN orders.", field="table_id")

        with transaction.atomic():
            table = None
            merged_order = None
            if table_id:
                try:
                    # Serializes concurrent placements for the same table
                    table = Table.all_objects.select_for_update().get(id=table_id, tenant=tenant)
                except (Table.DoesNotExist, ValidationError, ValueError):
                    raise NotFound("Table", table_id)

                existing = Order.open_for_table(tenant, table.id).select_for_update().first()
                if existing is not None:
                    logger.info(
                        f"Table {table.table_number} already has open order {existing.order_number}; appending"
                    )
                    # Guest details fill gaps only; fresh notes replace the old ones
                    if guest_name and not existing.guest_name:
                        existing.guest_name = guest_name
                    if guest_phone and not existing.guest_phone:
                        existing.guest_phone = guest_phone
                    if notes:
                        existing.notes = notes
                    new_items, increment_paid = OrderItemService._append_to_locked_order(
                        existing,
                        items,
                        payment_method=payment_method,
                        payment_status=payment_status,
                        waive_service_charge=waive_service_charge,
                    )
                    merged_order = existing

            if merged_order is None:
                order, new_items = OrderService._create_order(
                    tenant,
                    items,
                    order_type=order_type,
                    table=table,
                    payment_method=payment_method,
                    payment_status=payment_status,
                    discount_amount=discount_amount,
                    waive_service_charge=waive_service_charge,
                    placed_by=placed_by,
                    guest_name=guest_name,
                    guest_phone=guest_phone,
                    notes=notes,
                    amount_paid=amount_paid,
                )
                realtime_publisher.order_created(order)

        if merged_order is not None:
            return OrderItemService.finish_append(
                merged_order, new_items, increment_paid, payment_method, staff=placed_by, merged=True
            )

        outcome = OrderOutcome(order=order, new_items=new_items)
        settled = order.payment_status == Order.PaymentStatus.PAID
        if (settled or order.paid_amount > Decimal("0.00")) and is_real_payment_method(payment_method):
            sync_bill(order, payment_method, outcome)
        occupy_table(order, staff=placed_by)
        return outcome

    @staticmethod
    def _create_order(
        tenant,
        items,
        order_type,
        table,
        payment_method,
        payment_status,
        discount_amount,
        waive_service_charge,
        placed_by,
        guest_name,
        guest_phone,
        notes,
        amount_paid,
    ):
        rates = tax_rate_provider.get_rates(tenant)
        priced = PricingResolver(tenant, rates.currency).resolve(items)

        discount = as_money(discount_amount, "discount_amount") if discount_amount not in (None, "") else Decimal("0.00")
        totals = TaxDiscountCalculator(rates).compute(
            sum((line.total_price for line in priced), Decimal("0.00")),
            order_type,
            discount,
            service_waived=bool(waive_service_charge),
        )

        paid = Decimal("0.00")
        settled = False
        if payment_status == Order.PaymentStatus.PAID:
            if is_real_payment_method(payment_method):
                settled = True
                paid = totals.total_amount
            else:
                logger.info("Order placed as PAID without a payment method; recording it as DUE")
        elif payment_status == Order.PaymentStatus.PARTIALLY_PAID:
            if amount_paid in (None, ""):
                raise ValidationFailure(
                    "amount_paid is required for a partially paid order", field="amount_paid"
                )
            if not is_real_payment_method(payment_method):
                raise ValidationFailure(
                    "A payment method is required for a partially paid order", field="payment_method"
                )
            paid = clamp_paid(as_money(amount_paid, "amount_paid"), totals.total_amount)

        order = Order(
            tenant=tenant,
            table=table,
            order_type=order_type,
            status=Order.OrderStatus.PENDING,
            is_closed=False,
            service_charge_waived=bool(waive_service_charge),
            placed_by=placed_by,
            guest_name=guest_name or "",
            guest_phone=guest_phone or "",
            notes=notes or "",
        )
        OrderCalculationService.apply_totals(order, totals)
        order.paid_amount = paid
        order.payment_status = derive_payment_status(paid, totals.total_amount, settled=settled)
        save_order(order)

        new_items = OrderItemService.create_items(order, priced)
        logger.info(
            f"Created order {order.order_number} ({order.order_type}) with {len(new_items)} item(s): "
            f"total {order.total_amount}, {order.payment_status}"
        )
        return order, new_items

    # ------------------------------------------------------------------
    # Workflow status
    # ------------------------------------------------------------------

    @staticmethod
    def update_order_status(tenant, order_id, new_status: str) -> Order:
        """
        Move the order along PENDING -> PREPARING -> READY -> SERVED -> PAID.
        """
        from notifications.services import realtime_publisher

        if new_status not in Order.OrderStatus.values:
            raise ValidationFailure(f"'{new_status}' is not a valid order status.", field="status")
        if new_status == Order.OrderStatus.CANCELLED:
            raise ValidationFailure(
                "Cancelling requires a reason; use cancel_order.", field="status"
            )

        with transaction.atomic():
            order = lock_order(tenant, order_id)
            ensure_accepts_changes(order)
            if order.status == new_status:
                return order

            if new_status not in OrderService.VALID_STATUS_TRANSITIONS.get(order.status, []):
                raise InvalidTransition(
                    f"Cannot transition order from {order.status} to {new_status}.",
                    current=order.status,
                    required=" or ".join(OrderService.VALID_STATUS_TRANSITIONS.get(order.status, [])) or None,
                )
            if new_status == Order.OrderStatus.PAID and order.payment_status != Order.PaymentStatus.PAID:
                raise NotPaid(
                    order,
                    message=f"Order {order.order_number} cannot be marked PAID while payment is {order.payment_status}",
                )

            previous_status = order.status
            order.status = new_status
            if new_status == Order.OrderStatus.PAID and order.closed_at is None:
                order.closed_at = timezone.now()
            save_order(order)
            logger.info(f"Order {order.order_number}: {previous_status} -> {new_status}")
            realtime_publisher.order_status_changed(order, previous_status)

        return order

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    @staticmethod
    def update_payment_status(
        tenant,
        order_id,
        payment_status: str,
        payment_method: str = None,
        amount=None,
        payment_reference: str = None,
    ) -> OrderOutcome:
        """
        Record payment progress on an order.

        PAID sets paid = total, stamps closed_at, writes or updates the bill
        and lets the table go once nothing else holds it. PARTIALLY_PAID
        needs ``amount``, the total collected so far. DUE clears the paid
        amount.

        The bill is written after the order change commits; a failure there
        is returned in ``outcome.warnings`` and does not undo the payment.
        """
        from notifications.services import realtime_publisher
        from payments.services import LedgerService

        if payment_status not in Order.PaymentStatus.values:
            raise ValidationFailure(
                f"'{payment_status}' is not a valid payment status.", field="payment_status"
            )
        validate_payment_method(payment_method)

        with transaction.atomic():
            order = lock_order(tenant, order_id)
            if order.is_cancelled:
                raise InvalidTransition(
                    f"Order {order.order_number} is cancelled",
                    current=order.status,
                    required="not CANCELLED",
                )
            if order.is_closed and payment_status != Order.PaymentStatus.PAID:
                ensure_accepts_changes(order)

            if payment_status == Order.PaymentStatus.PAID:
                order.paid_amount = order.total_amount
                if order.closed_at is None:
                    order.closed_at = timezone.now()
            elif payment_status == Order.PaymentStatus.PARTIALLY_PAID:
                if amount in (None, ""):
                    raise ValidationFailure(
                        "amount is required for a partial payment", field="amount"
                    )
                collected = as_money(amount, "amount")
                if collected <= Decimal("0.00") or collected >= order.total_amount - payment_tolerance():
                    raise ValidationFailure(
                        f"A partial payment must be between 0 and {order.total_amount} (got {collected})",
                        field="amount",
                    )
                order.paid_amount = collected
            else:
                order.paid_amount = Decimal("0.00")

            order.payment_status = derive_payment_status(
                order.paid_amount,
                order.total_amount,
                settled=payment_status == Order.PaymentStatus.PAID,
            )
            save_order(order)
            logger.info(
                f"Order {order.order_number} payment -> {order.payment_status} "
                f"(paid {order.paid_amount} of {order.total_amount})"
            )
            realtime_publisher.order_updated(order)

        outcome = OrderOutcome(order=order)
        bill = LedgerService.get_bill(order)
        if payment_status == Order.PaymentStatus.PAID:
            method = payment_method if is_real_payment_method(payment_method) else (
                bill.payment_method if bill else default_settlement_method()
            )
            sync_bill(order, method, outcome, payment_reference=payment_reference)
            release_table(order)
        elif payment_status == Order.PaymentStatus.PARTIALLY_PAID:
            if is_real_payment_method(payment_method):
                sync_bill(order, payment_method, outcome, payment_reference=payment_reference)
            elif bill is not None:
                sync_bill(order, bill.payment_method, outcome)
        return outcome

    # ------------------------------------------------------------------
    # Field edits
    # ------------------------------------------------------------------

    @staticmethod
    def update_order(tenant, order_id, **changes) -> OrderOutcome:
        """
        Edit discount, guest details, notes or the service-charge waiver.

        A discount change recomputes the total from the stored subtotal, gst
        and service charge (rates are not re-read). Toggling the waiver
        recomputes the taxes with the restaurant's current rates. Either way
        paid is clamped to the new total, the payment status rederived, and
        an existing bill updated.
        """
        from notifications.services import realtime_publisher

        unknown = set(changes) - set(OrderService.UPDATABLE_FIELDS)
        if unknown:
            raise ValidationFailure(
                f"Cannot update field(s): {', '.join(sorted(unknown))}", field=sorted(unknown)[0]
            )

        with transaction.atomic():
            order = lock_order(tenant, order_id)
            ensure_accepts_changes(order)
            was_settled = order.payment_status == Order.PaymentStatus.PAID

            for name in ("guest_name", "guest_phone", "notes"):
                if name in changes:
                    setattr(order, name, changes[name] or "")

            rates = tax_rate_provider.get_rates(order.tenant)
            calculator = TaxDiscountCalculator(rates)
            money_changed = False

            discount = order.discount_amount
            if changes.get("discount_amount") not in (None, ""):
                discount = as_money(changes["discount_amount"], "discount_amount")
                money_changed = True

            if "service_charge_waived" in changes and bool(changes["service_charge_waived"]) != order.service_charge_waived:
                order.service_charge_waived = bool(changes["service_charge_waived"])
                totals = calculator.compute(
                    order.subtotal, order.order_type, discount,
                    service_waived=order.service_charge_waived,
                )
                money_changed = True
            else:
                totals = calculator.with_discount(
                    order.subtotal, order.gst_amount, order.service_tax_amount, discount
                )

            if money_changed:
                OrderCalculationService.apply_totals(order, totals)
                order.paid_amount = clamp_paid(order.paid_amount, order.total_amount)
                order.payment_status = derive_payment_status(
                    order.paid_amount, order.total_amount, settled=was_settled
                )
                ensure_paid_status_still_settled(order)

            save_order(order)
            logger.info(
                f"Updated order {order.order_number} ({', '.join(sorted(changes)) or 'no fields'}); "
                f"total {order.total_amount}, {order.payment_status}"
            )
            realtime_publisher.order_updated(order)

        outcome = OrderOutcome(order=order)
        if money_changed:
            resync_existing_bill(order, outcome)
        return outcome

    @staticmethod
    def recalculate_totals(tenant, order_id) -> OrderOutcome:
        """
        Recompute an open order's totals from its items and the restaurant's
        current rates, e.g. after a rate change. Paid is clamped to the new
        total; an existing bill is brought in line.
        """
        from notifications.services import realtime_publisher

        with transaction.atomic():
            order = lock_order(tenant, order_id)
            ensure_accepts_changes(order)
            was_settled = order.payment_status == Order.PaymentStatus.PAID
            previous_total = order.total_amount

            OrderCalculationService.recalculate_order_totals(
                order, tax_rate_provider.get_rates(order.tenant)
            )
            order.paid_amount = clamp_paid(order.paid_amount, order.total_amount)
            order.payment_status = derive_payment_status(
                order.paid_amount, order.total_amount, settled=was_settled
            )
            ensure_paid_status_still_settled(order)
            save_order(order)
            logger.info(
                f"Recalculated order {order.order_number}: total {previous_total} -> {order.total_amount}"
            )
            if order.total_amount != previous_total:
                realtime_publisher.order_updated(order)

        outcome = OrderOutcome(order=order)
        resync_existing_bill(order, outcome)
        return outcome

    # ------------------------------------------------------------------
    # Cancel / close
    # ------------------------------------------------------------------

    @staticmethod
    def cancel_order(tenant, order_id, reason: str) -> Order:
        """
        Cancel a not-yet-closed order. A reason of 3-500 characters is required.
        Any recorded payment is cleared; refunds happen outside this system.
        """
        from notifications.services import realtime_publisher

        reason = (reason or "").strip()
        if len(reason) < CANCEL_REASON_MIN_LENGTH:
            raise ValidationFailure(
                f"Cancel reason must be at least {CANCEL_REASON_MIN_LENGTH} characters", field="reason"
            )
        if len(reason) > CANCEL_REASON_MAX_LENGTH:
            raise ValidationFailure(
                f"Cancel reason must be at most {CANCEL_REASON_MAX_LENGTH} characters", field="reason"
            )

        with transaction.atomic():
            order = lock_order(tenant, order_id)
            ensure_accepts_changes(order)

            if order.paid_amount > Decimal("0.00"):
                logger.warning(
                    f"Cancelling order {order.order_number} with {order.paid_amount} already paid; "
                    "refund must be handled separately"
                )

            previous_status = order.status
            order.status = Order.OrderStatus.CANCELLED
            order.payment_status = Order.PaymentStatus.DUE
            order.paid_amount = Decimal("0.00")
            order.cancel_reason = reason
            order.closed_at = timezone.now()
            save_order(order)
            logger.info(f"Cancelled order {order.order_number}: {reason}")
            realtime_publisher.order_status_changed(order, previous_status)

        release_table(order)
        return order

    @staticmethod
    def close_order(tenant, order_id) -> Order:
        """
        Close the bill. The order must be SERVED and fully PAID; a closed order
        accepts no further changes and new orders for its table start fresh.
        """
        from notifications.services import realtime_publisher

        with transaction.atomic():
            order = lock_order(tenant, order_id)
            if order.is_closed:
                raise AlreadyClosed(order)
            if order.is_cancelled:
                raise InvalidTransition(
                    f"Order {order.order_number} is cancelled and cannot be closed",
                    current=order.status,
                    required=Order.OrderStatus.SERVED,
                )
            if order.status not in (Order.OrderStatus.SERVED, Order.OrderStatus.PAID):
                raise NotServed(order)
            if order.payment_status != Order.PaymentStatus.PAID:
                raise NotPaid(order)

            order.is_closed = True
            if order.closed_at is None:
                order.closed_at = timezone.now()
            save_order(order)
            logger.info(f"Closed order {order.order_number}")
            realtime_publisher.order_updated(order)

        release_table(order)
        return order
