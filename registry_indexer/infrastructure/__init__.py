"""
Infrastructure package for the registry indexer.

Centralizes database connectivity (pool lifecycle), the schema and the Store.
Keep this layer focused on I/O and resource management, decoupled from
decoding and scoring logic.
"""

from registry_indexer.infrastructure.db_factory import PoolManager, get_async_connection
from registry_indexer.infrastructure.schema import WATERMARK_KEY, apply_schema
from registry_indexer.infrastructure.store import Store, StoreWriter, build_patch_upsert

__all__ = [
    "PoolManager",
    "Store",
    "StoreWriter",
    "WATERMARK_KEY",
    "apply_schema",
    "build_patch_upsert",
    "get_async_connection",
]
