from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import logging

from django.db import DatabaseError, IntegrityError
from django.db import transaction as db_transaction
from django.utils import timezone

from orders.exceptions import LedgerSyncFailure, ValidationFailure
from settings.config import tax_rate_provider
from .bill_numbers import BillNumberExhausted, BillNumberStrategyFactory
from .models import Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillAmounts:
    subtotal: Decimal
    gst_amount: Decimal
    service_tax_amount: Decimal
    discount_amount: Decimal
    grand_total: Decimal

    @classmethod
    def from_order(cls, order) -> "BillAmounts":
        return cls(
            subtotal=order.subtotal,
            gst_amount=order.gst_amount,
            service_tax_amount=order.service_tax_amount,
            discount_amount=order.discount_amount,
            grand_total=order.total_amount,
        )


class LedgerService:
    """
    Keeps exactly one bill (Transaction) per order in step with the order.

    The first payment writes the bill with a fresh bill number and the
    restaurant's current tax rates; every later call updates the same row.
    """

    MAX_INSERT_ATTEMPTS = 3

    @staticmethod
    def get_bill(order) -> Optional[Transaction]:
        return Transaction.all_objects.filter(tenant=order.tenant, order=order).first()

    @staticmethod
    def sync_transaction(
        order,
        payment_method: str,
        amounts: Optional[BillAmounts] = None,
        payment_reference: Optional[str] = None,
    ) -> Transaction:
        """
        Create or update the bill for ``order``.

        Args:
            order: the Order being billed
            payment_method: one of Transaction.PaymentMethod
            amounts: override the amounts; defaults to the order's current totals
            payment_reference: card/UPI reference, kept when omitted on update

        Raises:
            ValidationFailure: ``payment_method`` is not a billable method
            LedgerSyncFailure: the bill could not be written; the order's own
                state is not touched by this failure
        """
        if payment_method not in Transaction.PaymentMethod.values:
            raise ValidationFailure(
                f"'{payment_method}' is not a valid payment method for a bill.",
                field="payment_method",
            )

        for attempt in range(LedgerService.MAX_INSERT_ATTEMPTS):
            try:
                bill, created = LedgerService._write_bill(
                    order, payment_method, amounts, payment_reference
                )
            except IntegrityError as e:
                # Lost a race on the order or bill number; the next pass updates or re-numbers
                logger.warning(
                    f"Bill write for order {order.order_number} conflicted "
                    f"(attempt {attempt + 1}): {e}"
                )
                continue
            except (DatabaseError, BillNumberExhausted) as e:
                logger.error(
                    f"Failed to sync bill for order {order.order_number}: {e}",
                    exc_info=True,
                )
                raise LedgerSyncFailure(order) from e

            logger.info(
                f"{'Created' if created else 'Updated'} bill {bill.bill_number} "
                f"for order {order.order_number}: total {bill.grand_total} via {bill.payment_method}"
            )
            return bill

        logger.error(
            f"Giving up on bill for order {order.order_number} after "
            f"{LedgerService.MAX_INSERT_ATTEMPTS} conflicting attempts"
        )
        raise LedgerSyncFailure(order)

    @staticmethod
    def _write_bill(order, payment_method, amounts, payment_reference):
        from orders.models import Order

        with db_transaction.atomic():
            # Serializes bill writes with every other mutation of this order
            locked = Order.all_objects.select_for_update().get(id=order.id, tenant=order.tenant)
            amounts = amounts or BillAmounts.from_order(locked)
            now = timezone.now()

            bill = (
                Transaction.all_objects.select_for_update()
                .filter(tenant=locked.tenant, order=locked)
                .first()
            )
            if bill is None:
                rates = tax_rate_provider.get_rates(locked.tenant)
                strategy = BillNumberStrategyFactory.get_strategy()
                bill = Transaction.all_objects.create(
                    tenant=locked.tenant,
                    order=locked,
                    bill_number=strategy.next_number(locked.tenant),
                    subtotal=amounts.subtotal,
                    gst_amount=amounts.gst_amount,
                    service_tax_amount=amounts.service_tax_amount,
                    discount_amount=amounts.discount_amount,
                    grand_total=amounts.grand_total,
                    gst_rate_percent=rates.gst_rate_percent,
                    service_rate_percent=rates.service_rate_percent,
                    payment_method=payment_method,
                    payment_reference=payment_reference or "",
                    paid_at=now,
                )
                return bill, True

            bill.subtotal = amounts.subtotal
            bill.gst_amount = amounts.gst_amount
            bill.service_tax_amount = amounts.service_tax_amount
            bill.discount_amount = amounts.discount_amount
            bill.grand_total = amounts.grand_total
            bill.payment_method = payment_method
            if payment_reference is not None:
                bill.payment_reference = payment_reference
            bill.paid_at = now
            bill.save(update_fields=[
                "subtotal",
                "gst_amount",
                "service_tax_amount",
                "discount_amount",
                "grand_total",
                "payment_method",
                "payment_reference",
                "paid_at",
                "updated_at",
            ])
            return bill, False
