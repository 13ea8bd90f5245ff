"""MetaExchange configuration using Pydantic Settings."""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BalanceSource(str, Enum):
    """Where venue balances come from."""

    RANDOM = "random"
    FILE = "file"


class BalanceConfig(BaseModel):
    """Venue balance generation configuration."""

    seed: Optional[int] = Field(default=None, description="Seed for random balances")
    min_base: float = Field(default=0.0, ge=0.0, description="Minimum BTC balance per venue")
    max_base: float = Field(default=10.0, ge=0.0, description="Maximum BTC balance per venue")
    min_quote: float = Field(default=0.0, ge=0.0, description="Minimum EUR balance per venue")
    max_quote: float = Field(default=100000.0, ge=0.0, description="Maximum EUR balance per venue")

    @model_validator(mode="after")
    def check_ranges(self) -> "BalanceConfig":
        """Ensure each range is ordered."""
        if self.min_base > self.max_base:
            raise ValueError("min_base must not exceed max_base")
        if self.min_quote > self.max_quote:
            raise ValueError("min_quote must not exceed max_quote")
        return self


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)


class DisplayConfig(BaseModel):
    """Quote rendering configuration."""

    decimals: int = Field(default=6, ge=0, le=12, description="Rounding for displayed figures")
    path_display_limit: float = Field(
        default=1000.0,
        description="Above this amount the per-venue path is hidden",
    )
    base_asset: str = "BTC"
    quote_asset: str = "EUR"


class MetaExchangeConfig(BaseSettings):
    """Main MetaExchange configuration."""

    model_config = SettingsConfigDict(
        env_prefix="METAEXCHANGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Snapshot
    data_path: Path = Field(default=Path("data") / "order_books_data")
    balances_path: Optional[Path] = None
    parallel_load: bool = True
    max_workers: int = Field(default=4, ge=1, description="Threads used for parallel loading")

    # Sub-configs
    balances: BalanceConfig = Field(default_factory=BalanceConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)

    # Logging
    log_level: str = "INFO"
    log_format: str = "detailed"
    log_file: Optional[Path] = None

    @property
    def balance_source(self) -> BalanceSource:
        """Balances are read from file when a path is configured."""
        return BalanceSource.FILE if self.balances_path else BalanceSource.RANDOM


@lru_cache
def get_config() -> MetaExchangeConfig:
    """Get cached MetaExchange configuration."""
    return MetaExchangeConfig()
