"""
Utilities package for devstats.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of domain-specific logic.
"""

from devstats.utils.logging import ConsoleFormatter, JsonFormatter, configure_logging, get_logger

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "configure_logging",
    "get_logger",
]
