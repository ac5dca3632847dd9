"""
Pricing and tax calculators for the order engine.

PricingResolver turns cart lines into priced, snapshotted lines.
TaxDiscountCalculator turns a subtotal into gst, service charge, discount and
total for one restaurant's rates.

Neither class writes to the database; the order services own persistence.

Usage:
    lines = PricingResolver(tenant, currency).resolve(cart_lines)
    totals = TaxDiscountCalculator(rates).compute(subtotal, order_type, discount)
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Tuple

from django.conf import settings

from payments.money import quantize
from settings.config import TaxRates
from .exceptions import NotFound, ValidationFailure
from .models import Order

ZERO = Decimal("0.00")


def payment_tolerance() -> Decimal:
    return Decimal(str(getattr(settings, "ORDERS_PAYMENT_TOLERANCE", "0.01")))


def as_money(value, field_name="amount") -> Decimal:
    """Coerce caller input to a Decimal, rejecting junk and floats' noise."""
    if isinstance(value, bool):
        raise ValidationFailure(f"{field_name} must be a number", field=field_name)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationFailure(f"{field_name} must be a number", field=field_name)
    if not amount.is_finite():
        raise ValidationFailure(f"{field_name} must be a number", field=field_name)
    return amount


def derive_payment_status(paid: Decimal, total: Decimal, settled: bool = False) -> str:
    """
    Payment status is a pure function of paid vs total:
    DUE when nothing is paid, PAID within tolerance of the total,
    PARTIALLY_PAID in between.

    A zero-total order has nothing to pay; it only counts as PAID when the
    caller is explicitly settling it (``settled``).
    """
    if paid <= ZERO:
        if settled and total <= ZERO:
            return Order.PaymentStatus.PAID
        return Order.PaymentStatus.DUE
    if paid >= total - payment_tolerance():
        return Order.PaymentStatus.PAID
    return Order.PaymentStatus.PARTIALLY_PAID


def clamp_paid(paid: Decimal, total: Decimal) -> Decimal:
    return min(max(paid, ZERO), max(total, ZERO))


def _as_uuid(value) -> Optional[uuid.UUID]:
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        return None


@dataclass(frozen=True)
class CartLine:
    menu_item_id: object
    quantity: int = 1
    variant_id: object = None
    modifier_ids: Tuple = ()
    notes: str = ""

    @classmethod
    def from_value(cls, value) -> "CartLine":
        """Accept either a CartLine or a ``{menu_item_id, quantity, ...}`` mapping."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, dict):
            raise ValidationFailure("Each item must be an object", field="items")
        if value.get("menu_item_id") in (None, ""):
            raise ValidationFailure("menu_item_id is required", field="menu_item_id")
        return cls(
            menu_item_id=value["menu_item_id"],
            quantity=value.get("quantity", 1),
            variant_id=value.get("variant_id"),
            modifier_ids=tuple(value.get("modifier_ids") or ()),
            notes=value.get("notes") or "",
        )


@dataclass(frozen=True)
class ModifierSnapshot:
    modifier_id: uuid.UUID
    name: str
    price: Decimal
    group_name: str


@dataclass(frozen=True)
class PricedLine:
    menu_item_id: uuid.UUID
    item_name: str
    unit_price: Decimal
    quantity: int
    customization_amount: Decimal
    total_price: Decimal
    variant_id: Optional[uuid.UUID] = None
    variant_name: str = ""
    variant_price: Optional[Decimal] = None
    modifiers: Tuple[ModifierSnapshot, ...] = field(default_factory=tuple)
    notes: str = ""


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    gst_amount: Decimal
    service_tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal

    @property
    def gross(self) -> Decimal:
        return self.subtotal + self.gst_amount + self.service_tax_amount


class PricingResolver:
    """
    Prices cart lines against the restaurant's current menu.

    - A selected variant's price replaces the base price. A variant that does
      not exist or belongs to another item is ignored.
    - Each known modifier adds its price; unknown modifier ids are dropped.
    - Menu items, variants and modifiers are each fetched in one query for
      the whole cart.
    """

    def __init__(self, tenant, currency: str = "INR"):
        self.tenant = tenant
        self.currency = currency

    @staticmethod
    def _validate_quantity(raw) -> int:
        if isinstance(raw, bool):
            raise ValidationFailure("quantity must be a positive integer", field="quantity")
        try:
            quantity = int(raw)
        except (TypeError, ValueError):
            raise ValidationFailure("quantity must be a positive integer", field="quantity")
        if quantity != raw and not (isinstance(raw, str) and raw.strip().isdigit()):
            raise ValidationFailure("quantity must be a positive integer", field="quantity")
        if quantity < 1:
            raise ValidationFailure(
                f"quantity must be a positive integer (got {raw})", field="quantity"
            )
        return quantity

    def resolve(self, lines: Iterable) -> List[PricedLine]:
        from menu.models import MenuItem, MenuItemVariant, Modifier

        cart = [CartLine.from_value(line) for line in lines]
        if not cart:
            raise ValidationFailure("At least one item is required", field="items")

        quantities = [self._validate_quantity(line.quantity) for line in cart]

        item_ids = {}
        for line in cart:
            item_uuid = _as_uuid(line.menu_item_id)
            if item_uuid is None:
                raise NotFound("Menu item", line.menu_item_id)
            item_ids[line.menu_item_id] = item_uuid

        variant_ids = {_as_uuid(line.variant_id) for line in cart} - {None}
        modifier_ids = {
            _as_uuid(mid) for line in cart for mid in line.modifier_ids
        } - {None}

        menu_items: Dict[uuid.UUID, MenuItem] = MenuItem.all_objects.filter(
            tenant=self.tenant
        ).in_bulk(list(set(item_ids.values())))
        variants: Dict[uuid.UUID, MenuItemVariant] = (
            MenuItemVariant.all_objects.filter(tenant=self.tenant).in_bulk(list(variant_ids))
            if variant_ids else {}
        )
        modifiers: Dict[uuid.UUID, Modifier] = (
            Modifier.all_objects.filter(tenant=self.tenant, id__in=modifier_ids)
            .select_related("group")
            .in_bulk()
            if modifier_ids else {}
        )

        priced = []
        for line, quantity in zip(cart, quantities):
            menu_item = menu_items.get(item_ids[line.menu_item_id])
            if menu_item is None:
                raise NotFound("Menu item", line.menu_item_id)
            priced.append(self._price_line(line, quantity, menu_item, variants, modifiers))
        return priced

    def _price_line(self, line, quantity, menu_item, variants, modifiers) -> PricedLine:
        unit_price = menu_item.price
        variant = variants.get(_as_uuid(line.variant_id))
        if variant is not None and variant.menu_item_id != menu_item.id:
            variant = None
        if variant is not None:
            unit_price = variant.price

        snapshots = []
        seen = set()
        for raw_id in line.modifier_ids:
            modifier = modifiers.get(_as_uuid(raw_id))
            if modifier is None or modifier.id in seen:
                continue
            seen.add(modifier.id)
            snapshots.append(
                ModifierSnapshot(
                    modifier_id=modifier.id,
                    name=modifier.name,
                    price=modifier.price,
                    group_name=modifier.group.name,
                )
            )

        customization = sum((m.price for m in snapshots), ZERO)
        unit_price = quantize(self.currency, unit_price)
        customization = quantize(self.currency, customization)
        total_price = quantize(self.currency, (unit_price + customization) * quantity)

        return PricedLine(
            menu_item_id=menu_item.id,
            item_name=menu_item.name,
            unit_price=unit_price,
            quantity=quantity,
            customization_amount=customization,
            total_price=total_price,
            variant_id=variant.id if variant else None,
            variant_name=variant.name if variant else "",
            variant_price=variant.price if variant else None,
            modifiers=tuple(snapshots),
            notes=line.notes,
        )


class TaxDiscountCalculator:
    """
    gst = subtotal x gst rate
    service = subtotal x service rate, only for un-waived dine-in orders
    discount = flat amount clamped to [0, subtotal + gst + service]
    total = subtotal + gst + service - discount
    """

    def __init__(self, rates: TaxRates):
        self.rates = rates
        self.currency = rates.currency

    def compute(
        self,
        subtotal: Decimal,
        order_type: str,
        discount: Decimal = ZERO,
        service_waived: bool = False,
    ) -> OrderTotals:
        subtotal = quantize(self.currency, max(subtotal, ZERO))
        gst = quantize(self.currency, subtotal * self.rates.gst_rate)

        if order_type != Order.OrderType.DINE_IN or service_waived:
            service = ZERO
        else:
            service = quantize(self.currency, subtotal * self.rates.service_rate)

        return self.with_discount(subtotal, gst, service, discount)

    def with_discount(self, subtotal, gst, service, discount) -> OrderTotals:
        """Apply a flat discount to already computed taxes, clamping it to the gross."""
        gross = subtotal + gst + service
        discount = quantize(self.currency, min(max(discount or ZERO, ZERO), gross))
        total = quantize(self.currency, max(ZERO, gross - discount))

        return OrderTotals(
            subtotal=subtotal,
            gst_amount=gst,
            service_tax_amount=service,
            discount_amount=discount,
            total_amount=total,
        )

    def service_waived_for(self, order) -> bool:
        """
        Whether recomputing ``order`` must keep the service charge at zero.

        Besides the explicit flag, an order whose stored service charge is
        zero even though it is dine-in with a positive subtotal under a
        non-zero rate was waived earlier and stays waived.
        """
        if order.service_charge_waived:
            return True
        return (
            order.order_type == Order.OrderType.DINE_IN
            and order.subtotal > ZERO
            and order.service_tax_amount == ZERO
            and self.rates.service_rate_percent > ZERO
        )

    def recompute(self, order, subtotal: Decimal, discount: Optional[Decimal] = None) -> OrderTotals:
        """Recompute an existing order's totals for a new subtotal."""
        return self.compute(
            subtotal,
            order.order_type,
            order.discount_amount if discount is None else discount,
            service_waived=self.service_waived_for(order),
        )
