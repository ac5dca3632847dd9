from decimal import Decimal
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models

from tenant.managers import TenantManager


class GlobalSettings(models.Model):
    """
    Restaurant-wide financial settings.

    Tax rates are stored as percentages (5.00 means 5%). The billing ledger
    snapshots whatever is stored here at payment time, so edits only affect
    bills written afterwards.
    """

    tenant = models.OneToOneField(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='global_settings'
    )
    currency = models.CharField(
        max_length=3,
        default="INR",
        help_text="Three-letter currency code (ISO 4217)."
    )
    gst_rate_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("5.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text="GST applied to every order subtotal, in percent."
    )
    service_rate_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("10.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text="Service charge applied to dine-in subtotals, in percent."
    )
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        verbose_name = "Global Settings"
        verbose_name_plural = "Global Settings"

    def __str__(self):
        return f"Settings for {self.tenant}"
