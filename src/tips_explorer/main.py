import asyncio
from dataclasses import dataclass
import json
from typing import Any, Awaitable, Callable, Optional

from dynaconf import Dynaconf
from loguru import logger
import typer

from .block_cache import BlockEnrichmentCache
from .block_source import RpcBlockSource
from .enrichment import BundleEnrichmentResolver
from .errors import ExplorerError
from .history import BundleHistoryService, RecentBlocksService
from .metrics import push_metrics
from .object_store import get_object_store
from .stores import BlockCacheStore, BundleHistoryStore, TransactionIndex
from .utils import load_config

app = typer.Typer(help="Inspect blocks and bundles recorded by the TIPS pipeline.")


@dataclass
class Explorer:
    block_source: RpcBlockSource
    block_cache: BlockEnrichmentCache
    bundle_history: BundleHistoryService
    recent_blocks: RecentBlocksService


def setup_logging(to_file: bool, destination: str) -> None:
    if to_file:
        logger.add(destination, rotation="100 MB", retention="10 days")


def build_explorer(config: Dynaconf) -> Explorer:
    """Wire every component to one object store and one RPC client"""
    storage_config = {
        key.lower(): value
        for key, value in config.storage.items()
        if key.lower() != 'type'
    }
    object_store = get_object_store(config.storage.type, storage_config)
    block_source = RpcBlockSource(list(config.rpc.urls))

    transaction_index = TransactionIndex(object_store)
    bundle_history_store = BundleHistoryStore(object_store)
    resolver = BundleEnrichmentResolver(transaction_index, bundle_history_store)

    return Explorer(
        block_source=block_source,
        block_cache=BlockEnrichmentCache(
            BlockCacheStore(object_store),
            block_source,
            resolver,
            max_concurrency=config.get('enrichment.max_concurrency'),
            max_age_seconds=config.get('cache.max_age_seconds'),
        ),
        bundle_history=BundleHistoryService(bundle_history_store, transaction_index),
        recent_blocks=RecentBlocksService(block_source),
    )


def _emit(view: Optional[Any], not_found_message: str) -> None:
    if view is None:
        typer.echo(json.dumps({"error": not_found_message}))
        raise typer.Exit(code=1)
    typer.echo(json.dumps(view, indent=2))


def _run(ctx: typer.Context, query: Callable[[Explorer], Awaitable[Optional[Any]]]) -> Optional[Any]:
    config: Dynaconf = ctx.obj

    async def runner() -> Optional[Any]:
        explorer = build_explorer(config)
        try:
            return await query(explorer)
        finally:
            await explorer.block_source.close()

    try:
        return asyncio.run(runner())
    except ExplorerError as e:
        logger.error(f"Request failed: {e}")
        typer.echo(json.dumps({"error": "Internal server error"}))
        raise typer.Exit(code=2)
    finally:
        _push_metrics(config)


def _push_metrics(config: Dynaconf) -> None:
    gateway = config.get('metrics.pushgateway')
    if not gateway:
        return
    try:
        push_metrics(gateway)
    except OSError as e:
        # The command's own result is already printed
        logger.warning(f"Failed to push metrics to {gateway}: {e}")


@app.callback()
def main(
    ctx: typer.Context,
    config_path: str = typer.Option("config.yml", "--config", "-c", help="Settings file"),
) -> None:
    config = load_config(config_path)
    setup_logging(config.get('logging.to_file'), config.get('logging.destination'))
    ctx.obj = config


@app.command("block")
def block(ctx: typer.Context, block_hash: str = typer.Argument(..., help="Block hash")) -> None:
    """Show a block with bundle ids and execution times per transaction."""
    async def query(explorer: Explorer) -> Optional[dict]:
        record = await explorer.block_cache.get_enriched_block(block_hash)
        return record.to_view() if record else None

    _emit(_run(ctx, query), "Block not found")


@app.command("blocks")
def blocks(
    ctx: typer.Context,
    count: int = typer.Option(10, "--count", "-n", min=1, help="Number of recent blocks"),
) -> None:
    """List the most recent blocks."""
    async def query(explorer: Explorer) -> dict:
        summaries = await explorer.recent_blocks.list_recent_blocks(count)
        return {"blocks": [summary.to_view() for summary in summaries]}

    _emit(_run(ctx, query), "Failed to fetch latest block")


@app.command("bundle")
def bundle(ctx: typer.Context, bundle_id: str = typer.Argument(..., help="Bundle UUID")) -> None:
    """Show the lifecycle events of a bundle, oldest first."""
    async def query(explorer: Explorer) -> Optional[dict]:
        view = await explorer.bundle_history.get_bundle(bundle_id)
        return view.to_view() if view else None

    _emit(_run(ctx, query), "Bundle not found")


@app.command("txn")
def txn(ctx: typer.Context, tx_hash: str = typer.Argument(..., help="Transaction hash")) -> None:
    """Show the bundles a transaction belongs to and the first bundle's history."""
    async def query(explorer: Explorer) -> Optional[dict]:
        view = await explorer.bundle_history.get_transaction(tx_hash)
        return view.to_view() if view else None

    _emit(_run(ctx, query), "Transaction not found")


if __name__ == "__main__":
    app()
