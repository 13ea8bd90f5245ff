"""Core execution planning module."""

from metaexchange.core.models import (
    InvalidInputError,
    Side,
    PriceLevel,
    VenueBalance,
    VenueFill,
    ExecutionPlan,
)
from metaexchange.core.ordering import build_ordered_levels, sort_levels, is_price_ordered
from metaexchange.core.ledger import BalanceLedger
from metaexchange.core.engine import ExecutionEngine, plan_execution

__all__ = [
    "InvalidInputError",
    "Side",
    "PriceLevel",
    "VenueBalance",
    "VenueFill",
    "ExecutionPlan",
    "build_ordered_levels",
    "sort_levels",
    "is_price_ordered",
    "BalanceLedger",
    "ExecutionEngine",
    "plan_execution",
]
