from decimal import Decimal
from django.db.models import Sum
import logging
import time

from orders.calculators import OrderTotals, TaxDiscountCalculator
from orders.models import Order, OrderItem
from settings.config import TaxRates

logger = logging.getLogger(__name__)


class OrderCalculationService:
    """Service for recomputing order totals from the persisted line items."""

    @staticmethod
    def items_subtotal(order: Order) -> Decimal:
        subtotal = OrderItem.all_objects.filter(order=order).aggregate(
            subtotal=Sum("total_price")
        )["subtotal"]
        return subtotal or Decimal("0.00")

    @staticmethod
    def recalculate_order_totals(order: Order, rates: TaxRates) -> OrderTotals:
        """
        Recompute subtotal, gst, service, discount and total for ``order`` and
        set them on the instance (the caller saves).

        The caller must hold the order's row lock. Subtotal is summed from the
        database, not from any prefetched items, so concurrent edits that
        committed before the lock was taken are counted.

        A service charge that was waived, explicitly or by an earlier edit,
        stays waived; the inferred case is persisted as the explicit flag.
        """
        start_time = time.monotonic()

        calculator = TaxDiscountCalculator(rates)
        waived = calculator.service_waived_for(order)
        totals = calculator.compute(
            OrderCalculationService.items_subtotal(order),
            order.order_type,
            order.discount_amount,
            service_waived=waived,
        )
        OrderCalculationService.apply_totals(order, totals)
        order.service_charge_waived = waived

        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.debug(
            f"Recalculated order {order.order_number}: subtotal={totals.subtotal} "
            f"gst={totals.gst_amount} service={totals.service_tax_amount} "
            f"discount={totals.discount_amount} total={totals.total_amount} ({elapsed_ms:.1f}ms)"
        )
        return totals

    @staticmethod
    def apply_totals(order: Order, totals: OrderTotals):
        order.subtotal = totals.subtotal
        order.gst_amount = totals.gst_amount
        order.service_tax_amount = totals.service_tax_amount
        order.discount_amount = totals.discount_amount
        order.total_amount = totals.total_amount
