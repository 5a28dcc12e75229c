"""
Registry Indexer - read-model and reputation scoring for on-chain agent registries.

This package follows four contract registries (agent identity, reputation
feedback, validation, job-board escrow), materializes their event logs into
PostgreSQL and serves a read-only HTTP API, including:

- Bounded block-range log sync with a durable watermark
- Typed event decoding and idempotent application
- Catch-up and follow scheduling
- Weighted reputation scores computed on demand
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from registry_indexer.config import Deployments, Settings, get_settings, load_deployments
from registry_indexer.errors import IndexerError, NotFoundError, QueryError, SyncError
from registry_indexer.scoring import ScoreEngine, compute_scores, reviewer_weight
from registry_indexer.utils.logging import configure_logging, get_logger
from registry_indexer.utils.profiler import ProfileStats, profile_block

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Deployments",
    "Settings",
    "get_settings",
    "load_deployments",
    # Errors
    "IndexerError",
    "NotFoundError",
    "QueryError",
    "SyncError",
    # Scoring
    "ScoreEngine",
    "compute_scores",
    "reviewer_weight",
    # Logging
    "configure_logging",
    "get_logger",
    # Profiling
    "ProfileStats",
    "profile_block",
]
