from django.db import models
from threading import local

# Thread-local storage for the current restaurant
_thread_locals = local()


def set_current_tenant(tenant):
    """
    Set the current restaurant (tenant) for this thread.

    Args:
        tenant: Tenant instance or None to clear
    """
    _thread_locals.tenant = tenant


def get_current_tenant():
    """
    Get the current restaurant (tenant) for this thread.

    Returns:
        Tenant instance or None if no tenant context is set
    """
    return getattr(_thread_locals, 'tenant', None)


class TenantManager(models.Manager):
    """
    Automatically filters querysets by the current restaurant.

    FAILS CLOSED: Returns an empty queryset if no tenant context is set.

    Usage:
        class Table(models.Model):
            tenant = models.ForeignKey('tenant.Tenant', on_delete=models.CASCADE)

            objects = TenantManager()       # Tenant-filtered
            all_objects = models.Manager()  # Unfiltered, for services that scope explicitly

    The order engine's services always receive the restaurant explicitly and
    query through ``all_objects.filter(tenant=...)`` so that background work
    without a request context behaves the same as request handling.
    """

    def get_queryset(self):
        tenant = get_current_tenant()

        if tenant:
            return super().get_queryset().filter(tenant=tenant)

        # FAIL CLOSED
        return super().get_queryset().none()
