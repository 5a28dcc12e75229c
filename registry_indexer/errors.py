"""
Exception hierarchy for the registry indexer.

Sync-side errors abort a block range without advancing the watermark; the
scheduler logs them and retries on its next tick. Query-side errors carry the
HTTP status the API renders them with.
"""

from __future__ import annotations

from typing import Any, Optional


class IndexerError(Exception):
    """Base class for all indexer errors."""


class RpcError(IndexerError):
    """The JSON-RPC endpoint answered with an error object."""

    def __init__(self, method: str, code: Optional[int], message: str, data: Any = None) -> None:
        super().__init__(f"{method} failed ({code}): {message}")
        self.method = method
        self.code = code
        self.data = data


class AbiDecodeError(IndexerError):
    """A log matched a known event signature but its payload could not be decoded."""


class SyncError(IndexerError):
    """Applying a block range failed for one contract family."""

    def __init__(self, family: str, from_block: int, to_block: int, reason: str) -> None:
        super().__init__(f"sync of {family} logs in [{from_block}, {to_block}] failed: {reason}")
        self.family = family
        self.from_block = from_block
        self.to_block = to_block


class QueryError(IndexerError):
    """A read request could not be answered."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(QueryError):
    status_code = 404


class BadRequestError(QueryError):
    status_code = 400


__all__ = [
    "AbiDecodeError",
    "BadRequestError",
    "IndexerError",
    "NotFoundError",
    "QueryError",
    "RpcError",
    "SyncError",
]
