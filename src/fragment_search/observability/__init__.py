"""Observability helpers: structured logging setup."""

from fragment_search.observability.logging import JsonFormatter, configure_logging


__all__ = [
    "JsonFormatter",
    "configure_logging",
]
