import uuid
from django.conf import settings
from django.db import models

from tenant.managers import TenantManager


class Table(models.Model):
    """
    A dining table. Occupancy is derived from the open dine-in orders that
    reference the table; RESERVED and BLOCKED are administrative overrides.
    """

    class TableStatus(models.TextChoices):
        AVAILABLE = "AVAILABLE", "Available"
        OCCUPIED = "OCCUPIED", "Occupied"
        RESERVED = "RESERVED", "Reserved"
        BLOCKED = "BLOCKED", "Blocked"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='tables'
    )
    table_number = models.CharField(max_length=20)
    capacity = models.PositiveIntegerField(default=4)
    floor_section = models.CharField(max_length=100, blank=True)
    current_status = models.CharField(
        max_length=20,
        choices=TableStatus.choices,
        default=TableStatus.AVAILABLE,
        db_index=True,
    )
    assigned_staff = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_tables",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["table_number"]
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'table_number'],
                name='unique_table_number_per_tenant'
            ),
        ]

    def __str__(self):
        return f"Table {self.table_number}"

    @property
    def is_admin_locked(self):
        """RESERVED/BLOCKED tables are never changed by order activity."""
        return self.current_status in (
            self.TableStatus.RESERVED,
            self.TableStatus.BLOCKED,
        )
