import uuid
from decimal import Decimal
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from tenant.managers import TenantManager


class MenuItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='menu_items'
    )
    name = models.CharField(max_length=200, help_text=_("Name of the dish."))
    description = models.TextField(blank=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Base selling price, used when no variant is chosen."),
    )
    modifier_groups = models.ManyToManyField(
        'ModifierGroup', related_name="menu_items", blank=True
    )
    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=['tenant', 'is_available'], name='menu_item_tenant_avail_idx'),
        ]

    def __str__(self):
        return self.name


class MenuItemVariant(models.Model):
    """
    Size/portion option of a menu item. Its price replaces the item's base
    price rather than adding to it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='menu_item_variants'
    )
    menu_item = models.ForeignKey(
        MenuItem, on_delete=models.CASCADE, related_name="variants"
    )
    name = models.CharField(max_length=100, help_text=_("e.g. 'Half', 'Full', 'Large'"))
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    display_order = models.PositiveIntegerField(default=0)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["display_order", "name"]
        unique_together = ("menu_item", "name")

    def __str__(self):
        return f"{self.menu_item.name} - {self.name}"


class ModifierGroup(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='modifier_groups'
    )
    name = models.CharField(
        max_length=100, help_text=_("Customer-facing name, e.g., 'Extra toppings'")
    )

    objects = TenantManager()
    all_objects = models.Manager()

    def __str__(self):
        return self.name


class Modifier(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='modifiers'
    )
    group = models.ForeignKey(
        ModifierGroup, on_delete=models.CASCADE, related_name="modifiers"
    )
    name = models.CharField(max_length=100)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text=_("Amount added to the line's unit price."),
    )
    display_order = models.PositiveIntegerField(default=0)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["display_order", "name"]
        unique_together = ("group", "name")

    def __str__(self):
        return f"{self.group.name} - {self.name}"
