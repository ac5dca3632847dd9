"""
Read-only access to a restaurant's tax configuration.

The order engine never reads GlobalSettings directly; it asks the provider,
which falls back to the project defaults when a restaurant has not been
configured yet.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from django.conf import settings as dj_settings
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaxRates:
    gst_rate_percent: Decimal
    service_rate_percent: Decimal
    currency: str = "INR"

    @property
    def gst_rate(self) -> Decimal:
        return self.gst_rate_percent / Decimal("100")

    @property
    def service_rate(self) -> Decimal:
        return self.service_rate_percent / Decimal("100")


class TaxRateProvider:
    """
    Singleton lookup of {gst, service} rates per restaurant.

    Rates are read fresh on every call. Bills freeze the rates that were
    current at payment time, so caching here would leak stale rates into
    the ledger.
    """

    _instance: Optional["TaxRateProvider"] = None

    def __new__(cls) -> "TaxRateProvider":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @staticmethod
    def default_rates() -> TaxRates:
        return TaxRates(
            gst_rate_percent=Decimal(str(getattr(dj_settings, "DEFAULT_GST_RATE_PERCENT", "5.00"))),
            service_rate_percent=Decimal(str(getattr(dj_settings, "DEFAULT_SERVICE_RATE_PERCENT", "10.00"))),
            currency=getattr(dj_settings, "DEFAULT_CURRENCY", "INR"),
        )

    def get_rates(self, tenant) -> TaxRates:
        """
        Return the current rates for ``tenant``.

        A restaurant without a GlobalSettings row gets the project defaults.
        """
        from .models import GlobalSettings

        settings_obj = GlobalSettings.all_objects.filter(tenant=tenant).first()
        if settings_obj is None:
            logger.debug(f"No GlobalSettings for tenant {tenant.pk}; using default tax rates")
            return self.default_rates()

        return TaxRates(
            gst_rate_percent=settings_obj.gst_rate_percent,
            service_rate_percent=settings_obj.service_rate_percent,
            currency=settings_obj.currency,
        )


# Create a single, globally accessible instance
tax_rate_provider = TaxRateProvider()
