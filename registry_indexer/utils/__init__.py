"""
Utilities package for the registry indexer.

Exports shared helpers for logging and profiling. Keep this package lightweight
and free of domain-specific logic.
"""

from registry_indexer.utils.logging import configure_logging, get_logger
from registry_indexer.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
