from __future__ import annotations

import asyncio
import signal
import sys

import typer
import uvicorn

from registry_indexer.api.app import create_app
from registry_indexer.config import get_settings, load_deployments
from registry_indexer.infrastructure.db_factory import get_async_connection
from registry_indexer.infrastructure.schema import apply_schema
from registry_indexer.reporter import print_range_reports, print_scores, print_stats
from registry_indexer.runtime import open_runtime
from registry_indexer.utils.logging import configure_logging

app = typer.Typer(help="Registry Indexer CLI.")


def _configure() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"rpc={settings.rpc_url} mode={settings.mode} from_block={settings.from_block} "
        f"poll={settings.poll_interval_seconds}s max_range={settings.max_block_range}"
    )
    try:
        deployments = load_deployments(settings.deployments_path)
    except FileNotFoundError:
        typer.echo(f"Deployments file not found: {settings.deployments_path}", err=True)
        return
    typer.echo(
        f"chain={deployments.chain_id} identity={deployments.identity_registry} "
        f"reputation={deployments.reputation_registry} validation={deployments.validation_registry} "
        f"job_board={deployments.job_board_escrow or '-'}"
    )


@app.command("init-db")
def init_db() -> None:
    """
    Create the read-model tables (safe to run repeatedly).
    """
    _configure()

    async def _run() -> None:
        conn = await get_async_connection()
        async with conn:
            await apply_schema(conn)

    asyncio.run(_run())
    typer.echo("Schema applied.")


@app.command()
def sync() -> None:
    """
    Catch up from the stored watermark to the current chain head once.
    """
    _configure()

    async def _run():
        async with open_runtime() as runtime:
            return await runtime.scheduler.catch_up()

    print_range_reports(asyncio.run(_run()))


@app.command()
def follow() -> None:
    """
    Follow the chain head until interrupted.
    """
    _configure()

    async def _run() -> None:
        async with open_runtime() as runtime:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, runtime.scheduler.stop)
            await runtime.scheduler.follow()

    asyncio.run(_run())


@app.command()
def serve() -> None:
    """
    Serve the HTTP API and run the scheduler in the configured mode.
    """
    _configure()
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port, log_config=None)


@app.command()
def scores() -> None:
    """
    Print every agent's reputation breakdown.
    """
    _configure()

    async def _run():
        async with open_runtime(ensure_schema=False) as runtime:
            return await runtime.scores.all_scores()

    print_scores(asyncio.run(_run()))


@app.command()
def stats() -> None:
    """
    Print platform counters.
    """
    _configure()

    async def _run():
        async with open_runtime(ensure_schema=False) as runtime:
            return await runtime.query.stats()

    print_stats(asyncio.run(_run()))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
