"""Data model shared by the ordering, ledger and engine modules."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class InvalidInputError(ValueError):
    """Raised when a planning request is malformed."""


class Side(Enum):
    """Trade side from the requester's point of view."""

    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: Any) -> "Side":
        """Parse a side from an enum member or a case-insensitive string.

        Args:
            value: ``Side`` member or text such as ``"Buy"`` / ``"sell"``

        Returns:
            Matching side

        Raises:
            InvalidInputError: If the value names no side
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidInputError(f"Unknown side: {value!r}")


def _is_positive(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) \
        and math.isfinite(value) and value > 0


def _is_non_negative(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) \
        and math.isfinite(value) and value >= 0


@dataclass(frozen=True)
class PriceLevel:
    """One resting order exposed by one venue at one price."""

    venue_id: str
    price: float
    amount: float

    def validate(self) -> Tuple[bool, Optional[str]]:
        """Validate level fields."""
        if not isinstance(self.venue_id, str) or not self.venue_id:
            return False, "venue_id must be a non-empty string"
        if not _is_positive(self.price):
            return False, f"price must be positive, got {self.price!r}"
        if not isinstance(self.amount, (int, float)) or isinstance(self.amount, bool) \
                or not math.isfinite(self.amount):
            return False, f"amount must be a finite number, got {self.amount!r}"
        return True, None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "venue_id": self.venue_id,
            "price": self.price,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class VenueBalance:
    """Tradable capacity of a venue.

    Immutable. The ledger replaces a venue's entry on every fill.
    """

    base_balance: float = 0.0
    quote_balance: float = 0.0

    def validate(self) -> Tuple[bool, Optional[str]]:
        """Validate balance fields."""
        if not _is_non_negative(self.base_balance):
            return False, f"base_balance must be >= 0, got {self.base_balance!r}"
        if not _is_non_negative(self.quote_balance):
            return False, f"quote_balance must be >= 0, got {self.quote_balance!r}"
        return True, None

    def copy(self) -> "VenueBalance":
        """Return an independent copy."""
        return VenueBalance(self.base_balance, self.quote_balance)

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return {
            "base_balance": self.base_balance,
            "quote_balance": self.quote_balance,
        }


@dataclass(frozen=True)
class VenueFill:
    """Aggregated fills at one venue within a single plan."""

    venue_id: str
    filled_amount: float
    average_price: float
    remaining_base: float
    remaining_quote: float

    @property
    def total_price(self) -> float:
        """Quote value of everything filled at this venue."""
        return self.average_price * self.filled_amount

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "venue_id": self.venue_id,
            "filled_amount": self.filled_amount,
            "average_price": self.average_price,
            "remaining_base": self.remaining_base,
            "remaining_quote": self.remaining_quote,
        }


@dataclass(frozen=True)
class ExecutionPlan:
    """Result of one planning run."""

    side: Side
    target_amount: float
    total_filled: float
    total_cost: float
    venue_fills: Tuple[VenueFill, ...] = field(default_factory=tuple)

    @property
    def average_price(self) -> float:
        """Volume-weighted average price over the whole plan."""
        return self.total_cost / self.total_filled

    @property
    def is_partial(self) -> bool:
        """True when liquidity ran out before the target was reached."""
        return self.total_filled < self.target_amount

    @property
    def venue_ids(self) -> List[str]:
        """Venues in the order they were first touched."""
        return [fill.venue_id for fill in self.venue_fills]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "side": self.side.value,
            "target_amount": self.target_amount,
            "total_filled": self.total_filled,
            "total_cost": self.total_cost,
            "average_price": self.average_price,
            "is_partial": self.is_partial,
            "venue_fills": [f.to_dict() for f in self.venue_fills],
        }
