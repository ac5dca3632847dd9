"""
Orders services package - the order & billing lifecycle engine.

- OrderService: place (or merge into the table's running bill), workflow
  status, payment status, field edits, cancel, close
- OrderItemService: append and remove line items
- OrderCalculationService: recompute totals from persisted items
"""

# Core order operations
from .order_service import OrderService

# Calculation operations
from .calculation_service import OrderCalculationService

# Item management
from .item_service import OrderItemService

# Shared result type
from .common import OrderOutcome

__all__ = [
    'OrderService',
    'OrderCalculationService',
    'OrderItemService',
    'OrderOutcome',
]
