"""Quote service sitting between the serving surfaces and the engine."""

import logging
import time
from typing import List, Optional, Union

from config.settings import DisplayConfig
from metaexchange.core.engine import ExecutionEngine
from metaexchange.core.models import ExecutionPlan, Side
from metaexchange.service.snapshot import MarketSnapshot

logger = logging.getLogger(__name__)


class NoLiquidityError(Exception):
    """Raised when a quote fills nothing at all."""

    def __init__(self, side: Side, amount: float):
        self.side = side
        self.amount = amount
        super().__init__("No paths found. Try a lower amount.")


class SnapshotNotLoadedError(Exception):
    """Raised when a quote is requested before the snapshot exists."""

    def __init__(self):
        super().__init__("Internal Server Error. No liquidity.")


class QuoteService:
    """Answers quote requests against an explicitly supplied snapshot."""

    def __init__(
        self,
        snapshot: Optional[MarketSnapshot] = None,
        display: Optional[DisplayConfig] = None,
        engine: Optional[ExecutionEngine] = None,
    ):
        """Initialize quote service.

        Args:
            snapshot: Precomputed market snapshot
            display: Rendering options
            engine: Execution engine (a default one when omitted)
        """
        self.snapshot = snapshot
        self.display = display or DisplayConfig()
        self.engine = engine or ExecutionEngine()

    def quote(self, amount: float, side: Union[Side, str]) -> ExecutionPlan:
        """Plan a trade against the current snapshot.

        Args:
            amount: Base asset quantity
            side: Trade side

        Returns:
            Execution plan, possibly short of ``amount``

        Raises:
            SnapshotNotLoadedError: If no snapshot is loaded
            InvalidInputError: If amount or side is invalid
            NoLiquidityError: If nothing could be filled
        """
        if self.snapshot is None:
            raise SnapshotNotLoadedError()

        side = Side.parse(side)
        start = time.perf_counter()

        plan = self.engine.plan(
            amount,
            side,
            self.snapshot.levels_for(side),
            self.snapshot.balances,
        )

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"Quote {side.value} {amount} | Execution Time: {elapsed_ms:.3f} ms")

        if plan is None:
            raise NoLiquidityError(side, amount)
        return plan

    def render(self, plan: ExecutionPlan) -> str:
        """Render a plan as the plain-text quote response.

        Figures are rounded here only. The per-venue path is omitted for
        amounts above the display limit to keep responses small.
        """
        d = self.display.decimals
        base = self.display.base_asset
        quote = self.display.quote_asset

        lines: List[str] = [
            "Path found:",
            f"Total Filled Amount: {round(plan.total_filled, d)} {base}",
            f"Total Price: {round(plan.average_price * plan.total_filled, d)} {quote}",
            f"Average Price: {round(plan.average_price, d)} {quote}",
        ]

        if plan.target_amount <= self.display.path_display_limit:
            for fill in plan.venue_fills:
                lines.append(
                    f"Exchange: {fill.venue_id}, "
                    f"Filled Amount: {round(fill.filled_amount, d)} {base}, "
                    f"Average Price: {round(fill.average_price, d)} {quote}, "
                    f"Remaining {base}: {round(fill.remaining_base, d)}, "
                    f"Remaining {quote}: {round(fill.remaining_quote, d)}"
                )
        else:
            lines.append("Path is hidden due to large amount.")

        return "\n".join(lines) + "\n"

    def to_display_dict(self, plan: ExecutionPlan) -> dict:
        """Plan as a dictionary with figures rounded for display."""
        d = self.display.decimals
        data = plan.to_dict()
        for key in ("target_amount", "total_filled", "total_cost", "average_price"):
            data[key] = round(data[key], d)
        for fill in data["venue_fills"]:
            for key in ("filled_amount", "average_price", "remaining_base", "remaining_quote"):
                fill[key] = round(fill[key], d)
        return data
