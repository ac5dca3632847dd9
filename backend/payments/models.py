import uuid
from decimal import Decimal
from django.db import models
from django.utils.translation import gettext_lazy as _

from tenant.managers import TenantManager


class Transaction(models.Model):
    """
    The single financial settlement record (bill) of an order.

    The one-to-one link to the order is enforced by the database: a second
    payment event updates this row instead of inserting another. Tax rates
    are frozen at the time the bill was first written, for audit.
    """

    class PaymentMethod(models.TextChoices):
        CASH = "CASH", _("Cash")
        CARD = "CARD", _("Card")
        UPI = "UPI", _("UPI")
        WALLET = "WALLET", _("Wallet")
        OTHER = "OTHER", _("Other")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='transactions'
    )
    order = models.OneToOneField(
        'orders.Order', on_delete=models.CASCADE, related_name="bill"
    )
    bill_number = models.CharField(max_length=40)

    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    gst_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    service_tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    grand_total = models.DecimalField(max_digits=10, decimal_places=2)

    gst_rate_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        help_text=_("GST rate in force when the bill was created."),
    )
    service_rate_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        help_text=_("Service charge rate in force when the bill was created."),
    )

    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_reference = models.CharField(max_length=255, blank=True)
    paid_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-paid_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "bill_number"],
                name="unique_bill_number_per_tenant",
            ),
        ]
        indexes = [
            models.Index(fields=['tenant', 'paid_at'], name='txn_tenant_paid_at_idx'),
        ]

    def __str__(self):
        return f"Bill {self.bill_number} for Order {self.order.order_number}"
