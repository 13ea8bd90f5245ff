"""Immutable market snapshot precomputed at startup."""

import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from config.settings import MetaExchangeConfig
from metaexchange.core.models import PriceLevel, Side, VenueBalance
from metaexchange.core.ordering import build_ordered_levels
from metaexchange.data.balances import generate_random_balances, load_balances
from metaexchange.data.loader import OrderBook, OrderBookLoader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketSnapshot:
    """Sorted levels for both sides plus starting balances.

    Shared read-only by every quote; each planning run clones the balances
    into its own ledger.
    """

    asks: Tuple[PriceLevel, ...]
    bids: Tuple[PriceLevel, ...]
    balances: Mapping[str, VenueBalance]
    loaded_at: float = field(default_factory=time.time)

    def levels_for(self, side: Side) -> Tuple[PriceLevel, ...]:
        """Ordered levels a target on ``side`` consumes."""
        return self.asks if Side.parse(side) == Side.BUY else self.bids

    @property
    def venue_ids(self) -> Tuple[str, ...]:
        """Venues with a balance entry."""
        return tuple(self.balances.keys())

    def liquidity(self, side: Side) -> float:
        """Total resting amount on the levels ``side`` consumes."""
        return sum(level.amount for level in self.levels_for(side))

    def to_dict(self) -> Dict[str, Any]:
        """Summary used by health and CLI output."""
        return {
            "venues": len(self.balances),
            "ask_levels": len(self.asks),
            "bid_levels": len(self.bids),
            "ask_liquidity": self.liquidity(Side.BUY),
            "bid_liquidity": self.liquidity(Side.SELL),
            "loaded_at": self.loaded_at,
        }


def build_snapshot(
    books: Sequence[OrderBook],
    balances: Mapping[str, VenueBalance],
) -> MarketSnapshot:
    """Sort levels for both sides and freeze the balances.

    Args:
        books: Per-venue order books
        balances: Venue id -> starting balance

    Returns:
        Immutable snapshot
    """
    asks = build_ordered_levels(books, Side.BUY)
    bids = build_ordered_levels(books, Side.SELL)

    frozen_balances = MappingProxyType({k: v.copy() for k, v in balances.items()})

    missing = {book.venue_id for book in books} - set(frozen_balances)
    if missing:
        logger.warning(f"{len(missing)} venues have no balance and will be skipped")

    return MarketSnapshot(
        asks=tuple(asks),
        bids=tuple(bids),
        balances=frozen_balances,
    )


def load_snapshot(config: MetaExchangeConfig, seed: Optional[int] = None) -> MarketSnapshot:
    """Load order books and balances as described by the configuration.

    Args:
        config: Application configuration
        seed: Overrides the configured random balance seed

    Returns:
        Immutable snapshot
    """
    start = time.perf_counter()
    loader = OrderBookLoader(max_workers=config.max_workers)

    if config.parallel_load:
        books = loader.load_parallel(config.data_path)
    else:
        books = loader.load(config.data_path)

    if config.balances_path:
        balances = load_balances(config.balances_path)
    else:
        balance_config = config.balances
        balances = generate_random_balances(
            [book.venue_id for book in books],
            min_base=balance_config.min_base,
            max_base=balance_config.max_base,
            min_quote=balance_config.min_quote,
            max_quote=balance_config.max_quote,
            seed=seed if seed is not None else balance_config.seed,
        )

    snapshot = build_snapshot(books, balances)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"Snapshot loaded: {len(books)} venues, {len(snapshot.asks)} asks, "
        f"{len(snapshot.bids)} bids in {elapsed_ms:.1f} ms"
    )
    return snapshot
