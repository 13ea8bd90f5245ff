"""Venue balance sources: fixed JSON files or seeded random generation."""

import json
import logging
import random
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from metaexchange.core.models import InvalidInputError, VenueBalance

logger = logging.getLogger(__name__)


def load_balances(path: Union[str, Path]) -> Dict[str, VenueBalance]:
    """Load fixed venue balances from JSON.

    The file maps venue id to ``{"base": float, "quote": float}``.

    Args:
        path: JSON file path

    Returns:
        Venue id -> balance

    Raises:
        InvalidInputError: If the file content is malformed
    """
    with open(path, encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Balance file {path} is not valid JSON: {e}") from e

    return parse_balances(raw)


def parse_balances(raw: object) -> Dict[str, VenueBalance]:
    """Build balances from an already decoded JSON object."""
    if not isinstance(raw, dict):
        raise InvalidInputError("Balances must be a JSON object keyed by venue id")

    balances = {}
    for venue_id, entry in raw.items():
        if not isinstance(entry, dict):
            raise InvalidInputError(f"Balance for venue {venue_id!r} must be an object")
        missing = {"base", "quote"} - set(entry)
        if missing:
            raise InvalidInputError(
                f"Balance for venue {venue_id!r} is missing {', '.join(sorted(missing))}"
            )

        base, quote = entry["base"], entry["quote"]
        for name, value in (("base", base), ("quote", quote)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInputError(f"Balance {name} for venue {venue_id!r} is not numeric: {value!r}")

        balance = VenueBalance(base_balance=float(base), quote_balance=float(quote))

        ok, reason = balance.validate()
        if not ok:
            raise InvalidInputError(f"Invalid balance for venue {venue_id!r}: {reason}")
        balances[str(venue_id)] = balance

    return balances


def generate_random_balances(
    venue_ids: Iterable[str],
    min_base: float = 0.0,
    max_base: float = 10.0,
    min_quote: float = 0.0,
    max_quote: float = 100000.0,
    seed: Optional[int] = None,
) -> Dict[str, VenueBalance]:
    """Generate a random balance for each venue.

    Args:
        venue_ids: Venues to generate balances for
        min_base: Lower bound for the base balance
        max_base: Upper bound for the base balance
        min_quote: Lower bound for the quote balance
        max_quote: Upper bound for the quote balance
        seed: Optional seed for reproducible balances

    Returns:
        Venue id -> balance
    """
    rng = random.Random(seed)
    balances = {
        venue_id: VenueBalance(
            base_balance=rng.uniform(min_base, max_base),
            quote_balance=rng.uniform(min_quote, max_quote),
        )
        for venue_id in venue_ids
    }
    logger.debug(f"Generated random balances for {len(balances)} venues (seed={seed})")
    return balances
