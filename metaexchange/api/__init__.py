"""HTTP serving surface."""

from metaexchange.api.server import create_app, run_server

__all__ = ["create_app", "run_server"]
