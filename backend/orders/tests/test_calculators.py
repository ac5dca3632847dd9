"""
Pricing & Tax Calculator Tests

PricingResolver snapshots menu prices into order lines; TaxDiscountCalculator
turns a subtotal into gst, service charge, discount and total.
"""
import pytest
from decimal import Decimal

from orders.calculators import (
    CartLine,
    PricingResolver,
    TaxDiscountCalculator,
    derive_payment_status,
    clamp_paid,
)
from orders.exceptions import NotFound, ValidationFailure
from orders.models import Order
from settings.config import TaxRates

# Import fixtures
from dineflow_core.tests.fixtures import *


RATES = TaxRates(gst_rate_percent=Decimal("5.00"), service_rate_percent=Decimal("10.00"))


@pytest.mark.django_db
class TestPricingResolver:

    def test_base_price(self, tenant_a, biryani):
        [priced] = PricingResolver(tenant_a).resolve([line(biryani, 3, notes="extra raita")])

        assert priced.item_name == "Chicken Biryani"
        assert priced.unit_price == Decimal("200.00")
        assert priced.quantity == 3
        assert priced.total_price == Decimal("600.00")
        assert priced.notes == "extra raita"
        assert priced.variant_id is None

    def test_variant_price_replaces_base_price(self, tenant_a, pizza):
        half = pizza.variants(manager="all_objects").get(name="Half")

        [priced] = PricingResolver(tenant_a).resolve([line(pizza, 2, variant=half)])

        assert priced.unit_price == Decimal("180.00")
        assert priced.variant_name == "Half"
        assert priced.variant_price == Decimal("180.00")
        assert priced.total_price == Decimal("360.00")

    def test_modifiers_add_per_unit(self, tenant_a, pizza, toppings):
        full = pizza.variants(manager="all_objects").get(name="Full")

        [priced] = PricingResolver(tenant_a).resolve([
            line(pizza, 2, variant=full, modifiers=[toppings["cheese"], toppings["olives"]])
        ])

        # (320 + 40 + 25) x 2
        assert priced.customization_amount == Decimal("65.00")
        assert priced.total_price == Decimal("770.00")
        assert {m.name for m in priced.modifiers} == {"Extra Cheese", "Olives"}
        assert all(m.group_name == "Toppings" for m in priced.modifiers)

    def test_duplicate_modifier_counted_once(self, tenant_a, biryani, toppings):
        [priced] = PricingResolver(tenant_a).resolve([
            line(biryani, modifiers=[toppings["cheese"], toppings["cheese"]])
        ])
        assert priced.customization_amount == Decimal("40.00")

    def test_unknown_modifier_dropped(self, tenant_a, biryani):
        cart = [{
            "menu_item_id": str(biryani.id),
            "quantity": 1,
            "modifier_ids": ["9a8b7c6d-0000-4000-8000-000000000000", "not-a-uuid"],
        }]
        [priced] = PricingResolver(tenant_a).resolve(cart)
        assert priced.modifiers == ()
        assert priced.total_price == Decimal("200.00")

    def test_variant_of_another_item_ignored(self, tenant_a, biryani, pizza):
        full = pizza.variants(manager="all_objects").get(name="Full")

        [priced] = PricingResolver(tenant_a).resolve([line(biryani, variant=full)])

        assert priced.unit_price == Decimal("200.00")
        assert priced.variant_id is None

    def test_unknown_variant_ignored(self, tenant_a, biryani):
        cart = [{"menu_item_id": str(biryani.id), "variant_id": "11111111-2222-4333-8444-555555555555"}]
        [priced] = PricingResolver(tenant_a).resolve(cart)
        assert priced.unit_price == Decimal("200.00")

    def test_unknown_menu_item(self, tenant_a):
        with pytest.raises(NotFound):
            PricingResolver(tenant_a).resolve([{"menu_item_id": "11111111-2222-4333-8444-555555555555"}])

    def test_other_restaurants_menu_item_not_found(self, tenant_a, menu_item_tenant_b):
        """
        CRITICAL: Verify a restaurant cannot order another restaurant's dishes
        """
        with pytest.raises(NotFound):
            PricingResolver(tenant_a).resolve([line(menu_item_tenant_b)])

    def test_other_restaurants_modifier_dropped(self, tenant_a, tenant_b, biryani):
        from menu.models import Modifier, ModifierGroup

        group = ModifierGroup.all_objects.create(tenant=tenant_b, name="Sauces")
        foreign = Modifier.all_objects.create(
            tenant=tenant_b, group=group, name="Schezwan", price=Decimal("15.00")
        )

        [priced] = PricingResolver(tenant_a).resolve([line(biryani, modifiers=[foreign])])
        assert priced.customization_amount == Decimal("0.00")

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "two", None, True])
    def test_invalid_quantity(self, tenant_a, biryani, quantity):
        with pytest.raises(ValidationFailure) as exc_info:
            PricingResolver(tenant_a).resolve([line(biryani, quantity)])
        assert exc_info.value.field == "quantity"

    def test_numeric_string_quantity(self, tenant_a, biryani):
        [priced] = PricingResolver(tenant_a).resolve([line(biryani, "2")])
        assert priced.quantity == 2

    def test_empty_cart(self, tenant_a):
        with pytest.raises(ValidationFailure):
            PricingResolver(tenant_a).resolve([])

    def test_missing_menu_item_id(self, tenant_a):
        with pytest.raises(ValidationFailure):
            PricingResolver(tenant_a).resolve([{"quantity": 1}])

    def test_cart_line_objects_accepted(self, tenant_a, lassi):
        [priced] = PricingResolver(tenant_a).resolve([CartLine(menu_item_id=lassi.id, quantity=2)])
        assert priced.total_price == Decimal("200.00")

    def test_whole_cart_is_three_queries(self, tenant_a, biryani, lassi, pizza, toppings, django_assert_num_queries):
        full = pizza.variants(manager="all_objects").get(name="Full")
        cart = [
            line(biryani),
            line(lassi, 2),
            line(pizza, variant=full, modifiers=[toppings["olives"]]),
        ]
        with django_assert_num_queries(3):
            PricingResolver(tenant_a).resolve(cart)


class TestTaxDiscountCalculator:

    def test_dine_in(self):
        totals = TaxDiscountCalculator(RATES).compute(Decimal("400"), Order.OrderType.DINE_IN)

        assert totals.subtotal == Decimal("400.00")
        assert totals.gst_amount == Decimal("20.00")
        assert totals.service_tax_amount == Decimal("40.00")
        assert totals.discount_amount == Decimal("0.00")
        assert totals.total_amount == Decimal("460.00")
        assert totals.gross == Decimal("460.00")

    @pytest.mark.parametrize("order_type", [Order.OrderType.TAKEAWAY, Order.OrderType.DELIVERY])
    def test_no_service_charge_off_premises(self, order_type):
        totals = TaxDiscountCalculator(RATES).compute(Decimal("400"), order_type)
        assert totals.service_tax_amount == Decimal("0.00")
        assert totals.total_amount == Decimal("420.00")

    def test_waived(self):
        totals = TaxDiscountCalculator(RATES).compute(
            Decimal("400"), Order.OrderType.DINE_IN, service_waived=True
        )
        assert totals.total_amount == Decimal("420.00")

    def test_discount_clamped_to_gross(self):
        totals = TaxDiscountCalculator(RATES).compute(
            Decimal("100"), Order.OrderType.DINE_IN, Decimal("500")
        )
        assert totals.discount_amount == Decimal("115.00")
        assert totals.total_amount == Decimal("0.00")

    def test_rounding_uses_bankers_rounding(self):
        totals = TaxDiscountCalculator(RATES).compute(Decimal("0.30"), Order.OrderType.DINE_IN)
        # gst 0.015 -> 0.02, service 0.03
        assert totals.gst_amount == Decimal("0.02")
        assert totals.service_tax_amount == Decimal("0.03")
        assert totals.total_amount == Decimal("0.35")

    def test_with_discount_keeps_stored_taxes(self):
        totals = TaxDiscountCalculator(RATES).with_discount(
            Decimal("400.00"), Decimal("20.00"), Decimal("0.00"), Decimal("20.00")
        )
        assert totals.total_amount == Decimal("400.00")

    def test_zero_rates(self):
        rates = TaxRates(gst_rate_percent=Decimal("0"), service_rate_percent=Decimal("0"))
        totals = TaxDiscountCalculator(rates).compute(Decimal("99.99"), Order.OrderType.DINE_IN)
        assert totals.total_amount == Decimal("99.99")

    def test_service_waived_inferred_from_stored_amounts(self):
        calculator = TaxDiscountCalculator(RATES)
        order = Order(
            order_type=Order.OrderType.DINE_IN,
            subtotal=Decimal("400.00"),
            service_tax_amount=Decimal("0.00"),
        )
        assert calculator.service_waived_for(order) is True

        order.service_tax_amount = Decimal("40.00")
        assert calculator.service_waived_for(order) is False

        order.service_charge_waived = True
        assert calculator.service_waived_for(order) is True

    def test_empty_order_is_not_inferred_as_waived(self):
        order = Order(order_type=Order.OrderType.DINE_IN)
        assert TaxDiscountCalculator(RATES).service_waived_for(order) is False


class TestDerivePaymentStatus:

    @pytest.mark.parametrize("paid,total,expected", [
        ("0", "460", "DUE"),
        ("100", "460", "PARTIALLY_PAID"),
        ("459.98", "460", "PARTIALLY_PAID"),
        ("459.99", "460", "PAID"),
        ("460", "460", "PAID"),
        ("500", "460", "PAID"),
        ("0", "0", "DUE"),
    ])
    def test_status_from_amounts(self, paid, total, expected):
        assert derive_payment_status(Decimal(paid), Decimal(total)) == expected

    def test_settled_zero_total_is_paid(self):
        assert derive_payment_status(Decimal("0"), Decimal("0"), settled=True) == "PAID"

    def test_settled_flag_does_not_fake_payment(self):
        assert derive_payment_status(Decimal("0"), Decimal("460"), settled=True) == "DUE"

    def test_clamp_paid(self):
        assert clamp_paid(Decimal("500"), Decimal("460")) == Decimal("460")
        assert clamp_paid(Decimal("-5"), Decimal("460")) == Decimal("0")
        assert clamp_paid(Decimal("100"), Decimal("460")) == Decimal("100")
