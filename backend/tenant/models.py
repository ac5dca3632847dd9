import uuid
from django.db import models


class Tenant(models.Model):
    """
    Root entity for multi-tenancy.
    Each restaurant on the platform is a tenant; every order, table, bill and
    menu row hangs off one.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(
        max_length=255,
        help_text="Display name for the restaurant (e.g., Spice Route)"
    )
    slug = models.SlugField(
        unique=True,
        help_text="URL-safe identifier for the restaurant"
    )
    contact_phone = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(
        default=True,
        help_text="Whether the restaurant is live on the platform"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tenants'
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active'], name='tenant_is_active_idx'),
        ]

    def __str__(self):
        return self.name
