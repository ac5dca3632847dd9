"""
Pluggable bill numbering.

The ledger asks the factory for the configured strategy whenever it writes a
new bill. Strategies only produce candidates; the (tenant, bill_number)
unique constraint has the final word.
"""

from abc import ABC, abstractmethod
import logging
import re
import secrets
import string

from django.conf import settings
from django.utils import timezone

from .models import Transaction

logger = logging.getLogger(__name__)


class BillNumberExhausted(Exception):
    """Raised when no unused bill number could be found."""
    pass


class BillNumberStrategy(ABC):
    """
    The Abstract Base Class for a bill numbering scheme.
    """

    @abstractmethod
    def next_number(self, tenant) -> str:
        """Return a bill number not yet used by ``tenant``."""
        pass

    @staticmethod
    def is_taken(tenant, bill_number: str) -> bool:
        return Transaction.all_objects.filter(tenant=tenant, bill_number=bill_number).exists()


class RandomBillNumberStrategy(BillNumberStrategy):
    """
    BILL-20250131-7KQ2ZD: date plus a random suffix, re-drawn on collision.
    """

    prefix = "BILL"
    suffix_length = 6
    max_attempts = 10
    alphabet = string.ascii_uppercase + string.digits

    def _candidate(self) -> str:
        today = timezone.localdate().strftime("%Y%m%d")
        suffix = "".join(secrets.choice(self.alphabet) for _ in range(self.suffix_length))
        return f"{self.prefix}-{today}-{suffix}"

    def next_number(self, tenant) -> str:
        for attempt in range(self.max_attempts):
            candidate = self._candidate()
            if not self.is_taken(tenant, candidate):
                return candidate
            logger.warning(f"Bill number collision on {candidate} (attempt {attempt + 1})")
        raise BillNumberExhausted(
            f"Could not find a free bill number after {self.max_attempts} attempts"
        )


class SequentialBillNumberStrategy(BillNumberStrategy):
    """
    INV-000001, INV-000002, ... with an independent sequence per restaurant.
    """

    prefix = "INV-"
    width = 6

    def next_number(self, tenant) -> str:
        last_bill = (
            Transaction.all_objects.filter(tenant=tenant, bill_number__startswith=self.prefix)
            .order_by("-bill_number")
            .first()
        )

        next_number = 1
        if last_bill:
            match = re.match(rf"^{re.escape(self.prefix)}(\d+)$", last_bill.bill_number)
            if match:
                next_number = int(match.group(1)) + 1

        return f"{self.prefix}{next_number:0{self.width}d}"


class BillNumberStrategyFactory:
    """
    Factory for the bill numbering strategy named by the
    BILLING_BILL_NUMBER_STRATEGY setting.
    """

    _strategies = {
        "random": RandomBillNumberStrategy,
        "sequential": SequentialBillNumberStrategy,
    }

    @staticmethod
    def get_strategy(name: str = None) -> BillNumberStrategy:
        if name is None:
            name = getattr(settings, "BILLING_BILL_NUMBER_STRATEGY", "random")

        strategy_class = BillNumberStrategyFactory._strategies.get(name)
        if strategy_class:
            return strategy_class()

        raise ValueError(f"Unknown bill number strategy: {name}")
