import uuid
from decimal import Decimal
from django.conf import settings
from django.db import IntegrityError, models, transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from tenant.managers import TenantManager
import re

from .exceptions import InvalidTransition


MONEY_ZERO = Decimal("0.00")


class Order(models.Model):
    """
    One running bill for a table, takeaway or delivery.

    Three independent axes describe where an order is:

    * ``status``: kitchen/workflow stage
    * ``payment_status``: derived from ``paid_amount`` vs ``total_amount``
    * ``is_closed``: bill finality; once true the order accepts nothing

    ``validate_lifecycle`` holds the allow-list of combinations.
    """

    # --- Status Fields ---
    class OrderStatus(models.TextChoices):
        PENDING = "PENDING", _("Pending")
        PREPARING = "PREPARING", _("Preparing")
        READY = "READY", _("Ready")
        SERVED = "SERVED", _("Served")
        PAID = "PAID", _("Paid")
        CANCELLED = "CANCELLED", _("Cancelled")

    class OrderType(models.TextChoices):
        DINE_IN = "DINE_IN", _("Dine In")
        TAKEAWAY = "TAKEAWAY", _("Takeaway")
        DELIVERY = "DELIVERY", _("Delivery")

    class PaymentStatus(models.TextChoices):
        DUE = "DUE", _("Due")
        PARTIALLY_PAID = "PARTIALLY_PAID", _("Partially Paid")
        PAID = "PAID", _("Paid")

    class PaymentMethod(models.TextChoices):
        CASH = "CASH", _("Cash")
        CARD = "CARD", _("Card")
        UPI = "UPI", _("UPI")
        WALLET = "WALLET", _("Wallet")
        OTHER = "OTHER", _("Other")
        DUE = "DUE", _("Pay Later")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='orders'
    )
    table = models.ForeignKey(
        'tables.Table',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders',
    )
    order_number = models.CharField(max_length=20, blank=True, db_index=True)
    order_type = models.CharField(
        max_length=20, choices=OrderType.choices, default=OrderType.DINE_IN
    )
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING
    )
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.DUE
    )

    # --- Money ---
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=MONEY_ZERO)
    gst_amount = models.DecimalField(max_digits=10, decimal_places=2, default=MONEY_ZERO)
    service_tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=MONEY_ZERO)
    discount_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=MONEY_ZERO,
        help_text=_("Flat discount, clamped so the total never goes negative."),
    )
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=MONEY_ZERO)
    paid_amount = models.DecimalField(max_digits=10, decimal_places=2, default=MONEY_ZERO)
    service_charge_waived = models.BooleanField(
        default=False,
        help_text=_("Service charge explicitly removed for this order; kept across edits."),
    )

    # --- Finality ---
    is_closed = models.BooleanField(default=False)
    cancel_reason = models.TextField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)

    # --- People ---
    placed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="placed_orders",
    )
    guest_name = models.CharField(max_length=100, blank=True)
    guest_phone = models.CharField(max_length=20, blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-created_at", "order_number"]
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")
        indexes = [
            models.Index(fields=['tenant', 'status'], name='order_tenant_stat_idx'),
            models.Index(fields=['tenant', 'payment_status'], name='order_tenant_pay_stat_idx'),
            models.Index(fields=['tenant', 'table', 'is_closed'], name='order_tenant_table_open_idx'),
            models.Index(fields=['tenant', 'created_at'], name='order_tenant_created_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "order_number"],
                condition=~models.Q(order_number=""),
                name="unique_order_number_per_tenant",
            ),
            # One running dine-in bill per table
            models.UniqueConstraint(
                fields=["tenant", "table"],
                condition=(
                    models.Q(order_type="DINE_IN", is_closed=False, table__isnull=False)
                    & ~models.Q(status="CANCELLED")
                ),
                name="unique_open_dine_in_order_per_table",
            ),
        ]

    def __str__(self):
        return f"Order {self.order_number} ({self.status})"

    @classmethod
    def open_for_table(cls, tenant, table_id):
        """Open, non-cancelled dine-in orders holding ``table_id``, newest first."""
        return (
            cls.all_objects.filter(
                tenant=tenant,
                table_id=table_id,
                order_type=cls.OrderType.DINE_IN,
                is_closed=False,
            )
            .exclude(status=cls.OrderStatus.CANCELLED)
            .order_by("-created_at")
        )

    @property
    def is_cancelled(self):
        return self.status == self.OrderStatus.CANCELLED

    @property
    def balance_due(self):
        return max(MONEY_ZERO, self.total_amount - self.paid_amount)

    def validate_lifecycle(self):
        """
        Reject status / payment_status / is_closed combinations that make no
        sense together. Services call this before every save.
        """
        if self.is_cancelled:
            if self.is_closed:
                raise InvalidTransition(
                    "A cancelled order cannot be closed",
                    current="CANCELLED+closed",
                    required="CANCELLED+open",
                )
            if self.payment_status != self.PaymentStatus.DUE or self.paid_amount != MONEY_ZERO:
                raise InvalidTransition(
                    "A cancelled order cannot carry a payment",
                    current=self.payment_status,
                    required=self.PaymentStatus.DUE,
                )
        if self.is_closed:
            if self.status not in (self.OrderStatus.SERVED, self.OrderStatus.PAID):
                raise InvalidTransition(
                    f"A closed order must be SERVED (currently {self.status})",
                    current=self.status,
                    required=self.OrderStatus.SERVED,
                )
            if self.payment_status != self.PaymentStatus.PAID:
                raise InvalidTransition(
                    f"A closed order must be PAID (currently {self.payment_status})",
                    current=self.payment_status,
                    required=self.PaymentStatus.PAID,
                )
        if self.status == self.OrderStatus.PAID and self.payment_status != self.PaymentStatus.PAID:
            raise InvalidTransition(
                f"Status PAID requires payment status PAID (currently {self.payment_status})",
                current=self.payment_status,
                required=self.PaymentStatus.PAID,
            )

    def save(self, *args, **kwargs):
        # Generate order_number only if it's not already set
        if not self.order_number:
            max_retries = 5
            for _attempt in range(max_retries):
                self.order_number = self._generate_sequential_order_number()
                try:
                    with transaction.atomic():
                        super().save(*args, **kwargs)
                    break
                except IntegrityError as e:
                    if "order_number" not in str(e) and "unique_order_number_per_tenant" not in str(e):
                        raise
                    # Another worker took the number, retry
                    self.order_number = ""
            else:
                raise IntegrityError(
                    "Failed to generate a unique order number after multiple retries."
                )
        else:
            super().save(*args, **kwargs)

    def _generate_sequential_order_number(self):
        """
        Next ORD-00001 style number for this restaurant.
        Each restaurant has its own sequence.
        """
        prefix = "ORD-"
        last_order = (
            Order.all_objects.filter(
                tenant=self.tenant,
                order_number__startswith=prefix
            )
            .order_by("-order_number")
            .first()
        )

        next_number = 1
        if last_order and last_order.order_number:
            match = re.match(rf"^{re.escape(prefix)}(\d+)$", last_order.order_number)
            if match:
                next_number = int(match.group(1)) + 1

        return f"{prefix}{next_number:05d}"


class OrderItem(models.Model):
    """
    Priced line item. Names and prices are snapshots taken when the line was
    added; later menu edits never reach existing lines.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='order_items'
    )
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    menu_item = models.ForeignKey(
        'menu.MenuItem',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    item_name = models.CharField(max_length=200)
    unit_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Per-unit price after variant selection, before modifiers."),
    )
    quantity = models.PositiveIntegerField(default=1)
    customization_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=MONEY_ZERO,
        help_text=_("Sum of selected modifier prices, per unit."),
    )
    total_price = models.DecimalField(max_digits=10, decimal_places=2)

    variant = models.ForeignKey(
        'menu.MenuItemVariant',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )
    variant_name = models.CharField(max_length=100, blank=True)
    variant_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    notes = models.TextField(
        blank=True, help_text=_("Customer notes, e.g., 'no onions'")
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        verbose_name = _("Order Item")
        verbose_name_plural = _("Order Items")
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['tenant', 'order'], name='item_tenant_order_idx'),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.item_name} in Order {self.order.order_number}"


class OrderItemModifier(models.Model):
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='order_item_modifiers'
    )
    order_item = models.ForeignKey('OrderItem', on_delete=models.CASCADE, related_name='selected_modifiers_snapshot')

    modifier_id = models.UUIDField(null=True, blank=True)
    group_name = models.CharField(max_length=100)
    modifier_name = models.CharField(max_length=100)
    price_at_sale = models.DecimalField(max_digits=10, decimal_places=2)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        indexes = [
            models.Index(fields=['tenant', 'order_item'], name='item_mod_tenant_item_idx'),
        ]

    def __str__(self):
        return f"{self.group_name}: {self.modifier_name} ({self.price_at_sale})"
