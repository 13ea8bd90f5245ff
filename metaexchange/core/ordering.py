"""Price-priority ordering of venue price levels.

Buy targets consume asks cheapest first; sell targets consume bids highest
first. Equal prices prefer the larger level so fewer venues are touched, and
remaining ties fall back to the venue id so the order never depends on the
order in which venues were enumerated.
"""

import logging
from typing import Iterable, List, Protocol, Sequence, Tuple

from metaexchange.core.models import PriceLevel, Side

logger = logging.getLogger(__name__)


class LevelSource(Protocol):
    """Anything that can expose its resting levels for one side."""

    def levels(self, side: Side) -> List[PriceLevel]:
        ...


def level_sort_key(level: PriceLevel, side: Side) -> Tuple[float, float, str]:
    """Sort key implementing price priority for the given side.

    Args:
        level: Price level
        side: Side of the target being planned

    Returns:
        Tuple usable with ``sorted``
    """
    price = level.price if side == Side.BUY else -level.price
    return (price, -level.amount, level.venue_id)


def sort_levels(levels: Iterable[PriceLevel], side: Side) -> List[PriceLevel]:
    """Sort levels for greedy matching.

    Levels with a non-positive price or amount cannot be traded and are
    dropped.

    Args:
        levels: Levels from any number of venues
        side: Side of the target being planned

    Returns:
        New list ordered best price first
    """
    side = Side.parse(side)
    tradable = []
    dropped = 0
    for level in levels:
        if level.price > 0 and level.amount > 0:
            tradable.append(level)
        else:
            dropped += 1

    if dropped:
        logger.debug(f"Dropped {dropped} non-tradable {side.value} levels")

    return sorted(tradable, key=lambda level: level_sort_key(level, side))


def build_ordered_levels(books: Sequence[LevelSource], side: Side) -> List[PriceLevel]:
    """Flatten per-venue books into one price-ordered sequence.

    Buy uses every venue's asks, sell uses every venue's bids.

    Args:
        books: Per-venue order books
        side: Side of the target being planned

    Returns:
        Ordered levels across all venues
    """
    side = Side.parse(side)
    levels: List[PriceLevel] = []
    for book in books:
        levels.extend(book.levels(side))
    return sort_levels(levels, side)


def is_price_ordered(levels: Sequence[PriceLevel], side: Side) -> bool:
    """Check that prices never get worse-then-better along the sequence."""
    side = Side.parse(side)
    for previous, current in zip(levels, levels[1:]):
        if side == Side.BUY and current.price < previous.price:
            return False
        if side == Side.SELL and current.price > previous.price:
            return False
    return True
