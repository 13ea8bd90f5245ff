"""Order book snapshot loading.

Each line of a snapshot file describes one venue::

    1548759600.25189\t{"AcqTime": "...", "Bids": [...], "Asks": [...]}

The text before the tab is the venue id.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from metaexchange.core.models import PriceLevel, Side

logger = logging.getLogger(__name__)


class SnapshotFormatError(ValueError):
    """Raised when a snapshot line cannot be parsed."""

    def __init__(self, line_number: int, message: str):
        self.line_number = line_number
        super().__init__(f"Line {line_number}: {message}")


class Order(BaseModel):
    """A single resting order as stored in the snapshot file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, alias="Id")
    time: Optional[str] = Field(default=None, alias="Time")
    type: Optional[str] = Field(default=None, alias="Type")
    kind: Optional[str] = Field(default=None, alias="Kind")
    amount: float = Field(alias="Amount")
    price: float = Field(alias="Price")


class OrderEntry(BaseModel):
    """Wrapper object around each order in the file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    order: Order = Field(alias="Order")


class OrderBook(BaseModel):
    """One venue's order book snapshot."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    venue_id: str = ""
    acq_time: Optional[str] = Field(default=None, alias="AcqTime")
    bids: List[OrderEntry] = Field(default_factory=list, alias="Bids")
    asks: List[OrderEntry] = Field(default_factory=list, alias="Asks")

    def levels(self, side: Side) -> List[PriceLevel]:
        """Price levels consumed by a target on ``side``.

        A buy target lifts asks, a sell target hits bids.
        """
        entries = self.asks if side == Side.BUY else self.bids
        return [
            PriceLevel(venue_id=self.venue_id, price=e.order.price, amount=e.order.amount)
            for e in entries
        ]

    @property
    def depth(self) -> int:
        """Total number of resting orders."""
        return len(self.bids) + len(self.asks)


def parse_line(line: str, line_number: int = 0) -> Optional[OrderBook]:
    """Parse one snapshot line.

    Args:
        line: Raw line text
        line_number: 1-based line number used in errors

    Returns:
        Parsed order book, or None for a blank line

    Raises:
        SnapshotFormatError: If the line is malformed
    """
    line = line.rstrip("\r\n")
    if not line.strip():
        return None

    venue_id, sep, payload = line.partition("\t")
    if not sep:
        raise SnapshotFormatError(line_number, "missing tab between venue id and JSON")

    venue_id = venue_id.strip()
    if not venue_id:
        raise SnapshotFormatError(line_number, "empty venue id")

    try:
        book = OrderBook.model_validate_json(payload)
    except ValidationError as e:
        raise SnapshotFormatError(line_number, f"invalid order book JSON: {e}") from e

    book.venue_id = venue_id
    return book


class OrderBookLoader:
    """Loads venue order books from a snapshot file."""

    def __init__(self, max_workers: int = 4):
        """Initialize loader.

        Args:
            max_workers: Thread count for parallel parsing
        """
        self.max_workers = max_workers

    def load(self, path: Union[str, Path]) -> List[OrderBook]:
        """Load order books one line at a time.

        Args:
            path: Snapshot file path

        Returns:
            Order books in file order
        """
        start = time.perf_counter()
        lines = Path(path).read_text(encoding="utf-8").splitlines()

        books = []
        for number, line in enumerate(lines, start=1):
            book = parse_line(line, number)
            if book is not None:
                books.append(book)

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"Loaded {len(books)} order books sequentially in {elapsed_ms:.1f} ms")
        return books

    def load_parallel(self, path: Union[str, Path]) -> List[OrderBook]:
        """Load order books, parsing venues concurrently.

        Venues are independent so each line is parsed on its own. Results
        keep file order.

        Args:
            path: Snapshot file path

        Returns:
            Order books in file order
        """
        start = time.perf_counter()
        lines = Path(path).read_text(encoding="utf-8").splitlines()

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            parsed = list(pool.map(parse_line, lines, range(1, len(lines) + 1)))

        books = [book for book in parsed if book is not None]

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"Loaded {len(books)} order books in parallel in {elapsed_ms:.1f} ms")
        return books
