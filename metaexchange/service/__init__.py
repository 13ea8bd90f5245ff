"""Snapshot precomputation and quote serving."""

from metaexchange.service.snapshot import MarketSnapshot, build_snapshot, load_snapshot
from metaexchange.service.quote import NoLiquidityError, QuoteService, SnapshotNotLoadedError

__all__ = [
    "MarketSnapshot",
    "build_snapshot",
    "load_snapshot",
    "NoLiquidityError",
    "QuoteService",
    "SnapshotNotLoadedError",
]
