"""HTTP quote endpoint built on aiohttp."""

import asyncio
import logging
import math
import time
from typing import Optional

from aiohttp import web

from config.settings import MetaExchangeConfig, get_config
from metaexchange.core.models import InvalidInputError, Side
from metaexchange.service.quote import NoLiquidityError, QuoteService, SnapshotNotLoadedError
from metaexchange.service.snapshot import MarketSnapshot, load_snapshot

logger = logging.getLogger(__name__)

QUOTE_SERVICE = web.AppKey("quote_service", QuoteService)
CONFIG = web.AppKey("config", MetaExchangeConfig)

routes = web.RouteTableDef()


def _parse_amount(raw: Optional[str]) -> float:
    if raw is None:
        raise InvalidInputError("Missing query parameter: amount")
    try:
        amount = float(raw)
    except ValueError as e:
        raise InvalidInputError(f"Invalid amount: {raw!r}") from e
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidInputError(f"Amount must be positive, got {raw!r}")
    return amount


@routes.get("/api/metaexchange/quote")
async def get_quote(request: web.Request) -> web.Response:
    """Best path to buy or sell a given amount across all venues."""
    start = time.perf_counter()
    service = request.app[QUOTE_SERVICE]

    try:
        amount = _parse_amount(request.query.get("amount"))
        side = Side.parse(request.query.get("type", ""))
        plan = service.quote(amount, side)
    except SnapshotNotLoadedError as e:
        logger.error("Quote requested before snapshot was loaded")
        return web.Response(status=500, text=str(e))
    except InvalidInputError as e:
        return web.Response(status=400, text=str(e))
    except NoLiquidityError as e:
        return web.Response(status=400, text=str(e))

    if request.query.get("format") == "json":
        response = web.json_response(service.to_display_dict(plan))
    else:
        response = web.Response(text=service.render(plan))

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.debug(f"GetQuote | Execution Time: {elapsed_ms:.1f} ms")
    return response


@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    """Snapshot status."""
    snapshot = request.app[QUOTE_SERVICE].snapshot
    if snapshot is None:
        return web.json_response({"status": "unhealthy", "snapshot": None}, status=503)
    return web.json_response({"status": "healthy", "snapshot": snapshot.to_dict()})


async def _load_snapshot_on_startup(app: web.Application) -> None:
    service = app[QUOTE_SERVICE]
    if service.snapshot is None:
        service.snapshot = await asyncio.to_thread(load_snapshot, app[CONFIG])
        logger.debug("Order books loaded and cached.")


def create_app(
    config: Optional[MetaExchangeConfig] = None,
    snapshot: Optional[MarketSnapshot] = None,
) -> web.Application:
    """Create the web application.

    Args:
        config: Application configuration (cached default when None)
        snapshot: Preloaded snapshot; loaded from ``config`` on startup
            when omitted

    Returns:
        aiohttp application
    """
    config = config or get_config()

    app = web.Application()
    app[CONFIG] = config
    app[QUOTE_SERVICE] = QuoteService(snapshot=snapshot, display=config.display)
    app.add_routes(routes)
    app.on_startup.append(_load_snapshot_on_startup)
    return app


def run_server(config: Optional[MetaExchangeConfig] = None) -> None:
    """Serve the quote endpoint until interrupted."""
    config = config or get_config()
    app = create_app(config)
    logger.info(f"Serving quotes on http://{config.server.host}:{config.server.port}")
    web.run_app(app, host=config.server.host, port=config.server.port, print=None)
