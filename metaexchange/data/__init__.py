"""Snapshot and balance data sources."""

from metaexchange.data.loader import (
    SnapshotFormatError,
    Order,
    OrderEntry,
    OrderBook,
    OrderBookLoader,
    parse_line,
)
from metaexchange.data.balances import load_balances, parse_balances, generate_random_balances

__all__ = [
    "SnapshotFormatError",
    "Order",
    "OrderEntry",
    "OrderBook",
    "OrderBookLoader",
    "parse_line",
    "load_balances",
    "parse_balances",
    "generate_random_balances",
]
