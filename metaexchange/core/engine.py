"""Multi-venue execution planning engine."""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Union

from metaexchange.core.ledger import BalanceLedger
from metaexchange.core.models import (
    ExecutionPlan,
    InvalidInputError,
    PriceLevel,
    Side,
    VenueBalance,
    VenueFill,
)

logger = logging.getLogger(__name__)


@dataclass
class _RunningFill:
    """Mutable per-venue accumulator used while a run is in progress."""

    venue_id: str
    filled_amount: float = 0.0
    average_price: float = 0.0
    remaining_base: float = 0.0
    remaining_quote: float = 0.0

    def add(self, take: float, price: float, balance: VenueBalance) -> None:
        """Fold one fill into the running volume-weighted average."""
        new_filled = self.filled_amount + take
        self.average_price = (self.average_price * self.filled_amount + take * price) / new_filled
        self.filled_amount = new_filled
        self.remaining_base = balance.base_balance
        self.remaining_quote = balance.quote_balance

    def freeze(self) -> VenueFill:
        return VenueFill(
            venue_id=self.venue_id,
            filled_amount=self.filled_amount,
            average_price=self.average_price,
            remaining_base=self.remaining_base,
            remaining_quote=self.remaining_quote,
        )


class ExecutionEngine:
    """Greedy price-priority allocator across venues.

    One forward pass over the ordered levels: each level is filled up to the
    smallest of its size, the quantity still wanted and what the venue's
    balance allows at that price. No backtracking, no re-sorting.
    """

    def plan(
        self,
        target_amount: float,
        side: Union[Side, str],
        ordered_levels: Sequence[PriceLevel],
        balances: Union[Mapping[str, VenueBalance], BalanceLedger],
    ) -> Optional[ExecutionPlan]:
        """Compute the best execution plan for a target amount.

        Args:
            target_amount: Quantity of the base asset to buy or sell
            side: Trade side
            ordered_levels: Levels already sorted for ``side``
            balances: Read-only balance snapshot (cloned here) or a ledger
                the caller has already cloned for this run

        Returns:
            Execution plan, or None when nothing could be filled

        Raises:
            InvalidInputError: If any input is malformed
        """
        side = Side.parse(side)
        self._validate_target(target_amount)
        self._validate_levels(ordered_levels)

        if isinstance(balances, BalanceLedger):
            ledger = balances
        else:
            ledger = BalanceLedger.from_snapshot(balances)

        remaining = float(target_amount)
        # Leftover below this is float error from subtracting level sizes
        tolerance = remaining * 1e-12
        total_cost = 0.0
        total_filled = 0.0
        fills: Dict[str, _RunningFill] = {}
        skipped = 0

        for level in ordered_levels:
            if remaining <= tolerance:
                break

            if level.amount <= 0 or level.venue_id not in ledger:
                skipped += 1
                continue

            capacity = ledger.capacity(level.venue_id, level.price, side)
            take = min(level.amount, remaining, capacity)
            if take <= 0:
                skipped += 1
                continue

            total_cost += take * level.price
            total_filled += take
            remaining -= take

            balance = ledger.apply_fill(level.venue_id, take, level.price, side)

            fill = fills.get(level.venue_id)
            if fill is None:
                fill = fills[level.venue_id] = _RunningFill(level.venue_id)
            fill.add(take, level.price, balance)

        if total_filled <= 0:
            logger.debug(
                f"No liquidity for {side.value} {target_amount} "
                f"({len(ordered_levels)} levels, {skipped} skipped)"
            )
            return None

        plan = ExecutionPlan(
            side=side,
            target_amount=float(target_amount),
            total_filled=total_filled,
            total_cost=total_cost,
            venue_fills=tuple(f.freeze() for f in fills.values()),
        )
        logger.debug(
            f"Planned {side.value} {total_filled}/{target_amount} across "
            f"{len(fills)} venues at avg {plan.average_price} ({skipped} levels skipped)"
        )
        return plan

    @staticmethod
    def _validate_target(target_amount: float) -> None:
        if isinstance(target_amount, bool) or not isinstance(target_amount, (int, float)):
            raise InvalidInputError(f"Target amount must be a number, got {target_amount!r}")
        if not math.isfinite(target_amount) or target_amount <= 0:
            raise InvalidInputError(f"Target amount must be positive, got {target_amount!r}")

    @staticmethod
    def _validate_levels(levels: Sequence[PriceLevel]) -> None:
        for index, level in enumerate(levels):
            if not isinstance(level, PriceLevel):
                raise InvalidInputError(f"Level {index} is not a PriceLevel: {level!r}")
            ok, reason = level.validate()
            if not ok:
                raise InvalidInputError(f"Invalid level {index}: {reason}")


def plan_execution(
    target_amount: float,
    side: Union[Side, str],
    ordered_levels: Sequence[PriceLevel],
    balances: Mapping[str, VenueBalance],
) -> Optional[ExecutionPlan]:
    """Run the engine once with a freshly cloned ledger."""
    return ExecutionEngine().plan(target_amount, side, ordered_levels, balances)
