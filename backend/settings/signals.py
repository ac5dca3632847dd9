"""
Signal handlers for the settings app.
"""

from django.db.models.signals import post_save
from django.dispatch import receiver
import logging

from tenant.models import Tenant
from .models import GlobalSettings

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Tenant)
def create_default_settings(sender, instance, created, **kwargs):
    """Every new restaurant starts with the default tax configuration."""
    if not created:
        return

    from .config import TaxRateProvider

    defaults = TaxRateProvider.default_rates()
    GlobalSettings.all_objects.get_or_create(
        tenant=instance,
        defaults={
            "currency": defaults.currency,
            "gst_rate_percent": defaults.gst_rate_percent,
            "service_rate_percent": defaults.service_rate_percent,
        },
    )
    logger.info(f"Created default GlobalSettings for tenant {instance.slug}")
