"""Shared fixtures: the two-venue book used across the engine tests."""

import pytest

from metaexchange.core.models import Side, VenueBalance
from metaexchange.core.ordering import build_ordered_levels
from metaexchange.data.loader import Order, OrderBook, OrderEntry

VENUE_1 = "1548759600.25189"
VENUE_2 = "1548759601.33694"


def make_book(venue_id, asks, bids):
    """Build an order book from (amount, price) pairs."""
    return OrderBook(
        venue_id=venue_id,
        asks=[OrderEntry(order=Order(amount=a, price=p, kind="Sell")) for a, p in asks],
        bids=[OrderEntry(order=Order(amount=a, price=p, kind="Buy")) for a, p in bids],
    )


@pytest.fixture
def order_books():
    """Two venues with overlapping price ranges."""
    return [
        make_book(VENUE_1, asks=[(0.2, 3000.0), (0.62, 3300.0)], bids=[(3.0, 2900.0), (0.1, 2870.0)]),
        make_book(VENUE_2, asks=[(0.7, 3100.0), (1.2, 3200.0)], bids=[(0.8, 2880.0), (1.5, 2820.0)]),
    ]


@pytest.fixture
def sorted_asks(order_books):
    """Asks ordered for a buy target."""
    return build_ordered_levels(order_books, Side.BUY)


@pytest.fixture
def sorted_bids(order_books):
    """Bids ordered for a sell target."""
    return build_ordered_levels(order_books, Side.SELL)


@pytest.fixture
def ample_balances():
    """Balances large enough never to constrain the fixture book."""
    return {
        VENUE_1: VenueBalance(base_balance=100.0, quote_balance=30000.0),
        VENUE_2: VenueBalance(base_balance=100.0, quote_balance=60000.0),
    }
