"""Configuration module for MetaExchange."""

from config.settings import MetaExchangeConfig, get_config

__all__ = ["MetaExchangeConfig", "get_config"]
