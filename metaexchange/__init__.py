"""MetaExchange: best-execution planning across multiple venues."""

__version__ = "0.1.0"
