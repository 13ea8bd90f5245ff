"""Per-run mutable balance ledger."""

from dataclasses import replace
from typing import Dict, Iterator, Mapping, Optional

from metaexchange.core.models import InvalidInputError, Side, VenueBalance


class BalanceLedger:
    """Working copy of venue balances owned by a single planning run.

    The source mapping is deep-copied on construction and never touched
    again, so one read-only snapshot can back any number of concurrent runs.
    """

    def __init__(self, balances: Mapping[str, VenueBalance]):
        """Initialize ledger.

        Args:
            balances: Read-only venue id -> balance snapshot

        Raises:
            InvalidInputError: If any balance entry is malformed
        """
        self._balances: Dict[str, VenueBalance] = {}
        for venue_id, balance in balances.items():
            if not isinstance(balance, VenueBalance):
                raise InvalidInputError(f"Balance for venue {venue_id!r} is not a VenueBalance")
            ok, reason = balance.validate()
            if not ok:
                raise InvalidInputError(f"Invalid balance for venue {venue_id!r}: {reason}")
            self._balances[venue_id] = balance.copy()

    @classmethod
    def from_snapshot(cls, balances: Mapping[str, VenueBalance]) -> "BalanceLedger":
        """Clone a snapshot into a fresh ledger."""
        return cls(balances)

    def __contains__(self, venue_id: str) -> bool:
        return venue_id in self._balances

    def __iter__(self) -> Iterator[str]:
        return iter(self._balances)

    def __len__(self) -> int:
        return len(self._balances)

    def get(self, venue_id: str) -> Optional[VenueBalance]:
        """Get a venue's current balance, or None for an unknown venue."""
        return self._balances.get(venue_id)

    def capacity(self, venue_id: str, price: float, side: Side) -> float:
        """Maximum quantity the venue can still fill at this price.

        Args:
            venue_id: Venue identifier
            price: Level price
            side: Trade side

        Returns:
            Quantity, 0.0 for unknown venues
        """
        balance = self._balances.get(venue_id)
        if balance is None:
            return 0.0

        if side == Side.BUY:
            return balance.quote_balance / price
        return balance.base_balance

    def apply_fill(self, venue_id: str, amount: float, price: float, side: Side) -> VenueBalance:
        """Consume balance for a fill.

        Buying spends quote currency, selling spends the base asset.

        Args:
            venue_id: Venue identifier
            amount: Filled quantity
            price: Fill price
            side: Trade side

        Returns:
            The venue's balance after the fill

        Raises:
            KeyError: If the venue is unknown
        """
        balance = self._balances[venue_id]
        if side == Side.BUY:
            # Floor at zero: quote / price * price can overshoot by one ulp
            balance = replace(balance, quote_balance=max(0.0, balance.quote_balance - amount * price))
        else:
            balance = replace(balance, base_balance=max(0.0, balance.base_balance - amount))
        self._balances[venue_id] = balance
        return balance

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        """Convert to dictionary."""
        return {venue_id: b.to_dict() for venue_id, b in self._balances.items()}
