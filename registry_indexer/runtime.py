"""
Wiring: builds the indexer's components from settings and owns their lifecycle.

    async with open_runtime() as runtime:
        await runtime.scheduler.catch_up()
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from registry_indexer.chain.rpc import JsonRpcEventSource
from registry_indexer.config import Deployments, Settings, get_settings, load_deployments
from registry_indexer.decoders import build_decoders
from registry_indexer.infrastructure.db_factory import PoolManager
from registry_indexer.infrastructure.schema import apply_schema
from registry_indexer.infrastructure.store import Store
from registry_indexer.query import QueryService
from registry_indexer.scheduler import Scheduler
from registry_indexer.scoring import ScoreEngine
from registry_indexer.sync_engine import SyncEngine
from registry_indexer.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class Runtime:
    settings: Settings
    deployments: Deployments
    source: JsonRpcEventSource
    store: Store
    engine: SyncEngine
    scheduler: Scheduler
    scores: ScoreEngine
    query: QueryService


@asynccontextmanager
async def open_runtime(settings: Optional[Settings] = None, ensure_schema: bool = True) -> AsyncIterator[Runtime]:
    """
    Open the database pool and the RPC client, and assemble every component.

    Parameters
    ----------
    settings : Settings | None
        Defaults to `get_settings()`.
    ensure_schema : bool
        Apply the (idempotent) schema before yielding.
    """
    settings = settings or get_settings()
    deployments = load_deployments(settings.deployments_path)
    manager = PoolManager()
    pool = await manager.open(settings)
    source = JsonRpcEventSource(settings.rpc_url, timeout=settings.rpc_timeout_seconds)
    try:
        if ensure_schema:
            async with pool.connection() as conn:
                await apply_schema(conn)

        store = Store(pool)
        engine = SyncEngine(source, store, build_decoders(deployments, source))
        scheduler = Scheduler(
            engine,
            source,
            store,
            from_block=settings.from_block,
            poll_interval=settings.poll_interval_seconds,
            max_block_range=settings.max_block_range,
        )
        scores = ScoreEngine(store)
        query = QueryService(store, scores, settings.mode, deployments)
        log.info(
            "Runtime ready",
            extra={"chain_id": deployments.chain_id, "mode": settings.mode, "rpc_url": settings.rpc_url},
        )
        yield Runtime(
            settings=settings,
            deployments=deployments,
            source=source,
            store=store,
            engine=engine,
            scheduler=scheduler,
            scores=scores,
            query=query,
        )
    finally:
        await source.aclose()
        await manager.close()


__all__ = ["Runtime", "open_runtime"]
