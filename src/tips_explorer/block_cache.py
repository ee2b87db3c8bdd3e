import asyncio
from typing import Callable, Dict, List, Optional

from loguru import logger

from .block_source import BlockSource
from .data_types import BlockRecord, TransactionRecord
from .enrichment import NOT_FOUND, BundleEnrichmentResolver, Enrichment
from .errors import UpstreamUnavailableError
from .metrics import BACKFILLED_TRANSACTIONS, BLOCK_CACHE_LOOKUPS, BLOCK_CACHE_WRITES
from .parsers import BlockParser, TransactionParser
from .stores import BlockCacheStore
from .utils import now_ms


class BlockEnrichmentCache:
    """
    Serves blocks with bundle-enriched transactions, as cheaply as possible.

    A cached record is returned as-is unless some of its transactions still
    lack a bundle id, in which case only those are re-resolved and the record
    is re-persisted if any of them gained one. A cache miss fetches the block
    from the block source, resolves every transaction and persists the result.

    The system transaction at index 0 is never resolved, neither on first
    fetch nor on backfill.

    Block hashes are lowercased before lookup, matching the keys records are
    written under. A record older than `max_age_seconds` is refetched, but the
    bundle data it already held is carried over wherever the fresh lookup
    comes back empty.

    Concurrent requests for the same hash may both fetch and both write; the
    last write wins. That is safe because merges never clear a bundle id.
    """

    def __init__(
        self,
        block_store: BlockCacheStore,
        block_source: BlockSource,
        resolver: BundleEnrichmentResolver,
        max_concurrency: int = 32,
        max_age_seconds: Optional[float] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """
        Args:
            block_store (BlockCacheStore): Durable cache for block records
            block_source (BlockSource): Source of raw blocks on a cache miss
            resolver (BundleEnrichmentResolver): Per-transaction enrichment lookups
            max_concurrency (int): Upper bound on enrichment lookups in flight per request
            max_age_seconds (float | None): Cached records older than this are refetched.
                None keeps records forever.
            clock (Callable[[], int]): Milliseconds since epoch, used for cachedAt
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.block_store = block_store
        self.block_source = block_source
        self.resolver = resolver
        self.max_concurrency = max_concurrency
        self.max_age_seconds = max_age_seconds
        self.clock = clock

    async def get_enriched_block(self, block_hash: str) -> Optional[BlockRecord]:
        """
        Return the enriched block for `block_hash`, or None if it does not exist

        Raises:
            ObjectStoreError: If persisting the record failed
        """
        block_hash = block_hash.lower()
        cached = await self.block_store.get(block_hash)
        if cached is None:
            BLOCK_CACHE_LOOKUPS.labels(outcome='miss').inc()
            logger.debug(f"Block {block_hash} not in cache")
            return await self._fetch_from_source(block_hash)

        if self._is_expired(cached):
            BLOCK_CACHE_LOOKUPS.labels(outcome='expired').inc()
            logger.info(f"Cached block {block_hash} is older than {self.max_age_seconds}s, refetching")
            return await self._fetch_from_source(block_hash, previous=cached)

        BLOCK_CACHE_LOOKUPS.labels(outcome='hit').inc()
        return await self._backfill(cached)

    def _is_expired(self, record: BlockRecord) -> bool:
        if self.max_age_seconds is None:
            return False
        return self.clock() - record.cached_at > self.max_age_seconds * 1000

    async def _resolve_all(self, tx_hashes: List[str]) -> Dict[str, Enrichment]:
        """Resolve enrichment for each hash concurrently

        A failed lookup becomes NOT_FOUND for that transaction and leaves
        the others running.
        """
        if not tx_hashes:
            return {}

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def resolve_one(tx_hash: str) -> Enrichment:
            async with semaphore:
                return await self.resolver.resolve(tx_hash)

        results = await asyncio.gather(
            *(resolve_one(tx_hash) for tx_hash in tx_hashes),
            return_exceptions=True,
        )

        enrichments: Dict[str, Enrichment] = {}
        for tx_hash, result in zip(tx_hashes, results):
            if isinstance(result, Exception):
                logger.warning(f"Enrichment task failed for transaction {tx_hash}: {type(result).__name__}: {str(result)}")
                result = NOT_FOUND
            elif isinstance(result, BaseException):
                raise result
            enrichments[tx_hash] = result
        return enrichments

    async def _backfill(self, cached: BlockRecord) -> BlockRecord:
        pending = cached.transactions_needing_enrichment()
        if not pending:
            return cached

        logger.debug(f"Backfilling {len(pending)} transactions of block {cached.hash}")
        enrichments = await self._resolve_all([tx.hash for tx in pending])

        updated_count = 0
        transactions: List[TransactionRecord] = []
        for tx in cached.transactions:
            fresh = enrichments.get(tx.hash) if tx.needs_enrichment else None
            # Only ever add a bundle id, never replace or clear one
            if fresh is not None and fresh.bundle_id is not None:
                tx = tx.model_copy(update={
                    'bundle_id': fresh.bundle_id,
                    'execution_time_us': fresh.execution_time_us,
                })
                updated_count += 1
            transactions.append(tx)

        if updated_count == 0:
            return cached

        merged = cached.model_copy(update={
            'transactions': transactions,
            'cached_at': self.clock(),
        })
        await self.block_store.put(merged)
        BLOCK_CACHE_WRITES.labels(reason='backfill').inc()
        BACKFILLED_TRANSACTIONS.inc(updated_count)
        logger.info(f"Backfilled {updated_count} of {len(pending)} pending transactions in block {cached.hash}")
        return merged

    @staticmethod
    def _merge(tx: TransactionRecord, fresh: Optional[Enrichment], previous: Optional[TransactionRecord]) -> TransactionRecord:
        if fresh is not None and fresh.bundle_id is not None:
            return tx.model_copy(update={
                'bundle_id': fresh.bundle_id,
                'execution_time_us': fresh.execution_time_us,
            })
        # A lookup that came back empty keeps what the expired record knew
        if previous is not None and previous.bundle_id is not None:
            return tx.model_copy(update={
                'bundle_id': previous.bundle_id,
                'execution_time_us': previous.execution_time_us,
            })
        return tx

    async def _fetch_from_source(
        self,
        block_hash: str,
        previous: Optional[BlockRecord] = None,
    ) -> Optional[BlockRecord]:
        try:
            raw_block = await self.block_source.get_block_by_hash(block_hash)
        except UpstreamUnavailableError as e:
            logger.error(f"Could not fetch block {block_hash}, reporting it as not found: {e}")
            return None

        if raw_block is None or not BlockParser.is_complete(raw_block):
            return None

        transactions = [
            TransactionRecord(**TransactionParser.parse_raw(raw_tx, index))
            for index, raw_tx in enumerate(raw_block.get('transactions') or [])
        ]

        enrichments = await self._resolve_all(
            [tx.hash for tx in transactions if not tx.is_system_transaction]
        )
        previous_by_hash = {
            tx.hash.lower(): tx for tx in previous.transactions
        } if previous is not None else {}
        transactions = [
            self._merge(tx, enrichments.get(tx.hash), previous_by_hash.get(tx.hash.lower()))
            for tx in transactions
        ]

        record = BlockRecord(
            **BlockParser.parse_raw(raw_block),
            transactions=transactions,
            cached_at=self.clock(),
        )
        await self.block_store.put(record)
        BLOCK_CACHE_WRITES.labels(reason='fetch').inc()
        logger.info(f"Cached block {record.number} ({record.hash}) with {len(transactions)} transactions")
        return record
