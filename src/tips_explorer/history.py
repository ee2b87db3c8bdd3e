import asyncio
from typing import List, Optional

from loguru import logger

from .block_source import BlockSource
from .data_types import BlockSummary, BundleHistoryView, TransactionHistoryView
from .enrichment import BundleSelector, first_bundle_id
from .errors import UpstreamUnavailableError
from .parsers import BlockParser, BlockSummaryParser
from .stores import BundleHistoryStore, TransactionIndex
from .utils import async_retry


class BundleHistoryService:
    """Read-only views over bundle histories and the transaction index"""

    def __init__(
        self,
        bundle_history_store: BundleHistoryStore,
        transaction_index: TransactionIndex,
        select_bundle_id: BundleSelector = first_bundle_id,
    ) -> None:
        self.bundle_history_store = bundle_history_store
        self.transaction_index = transaction_index
        self.select_bundle_id = select_bundle_id

    async def get_bundle(self, bundle_id: str) -> Optional[BundleHistoryView]:
        history = await self.bundle_history_store.get(bundle_id)
        if history is None:
            return None
        return BundleHistoryView(uuid=bundle_id, history=history.sorted_events())

    async def get_transaction(self, tx_hash: str) -> Optional[TransactionHistoryView]:
        entry = await self.transaction_index.get(tx_hash)
        if entry is None:
            return None

        bundle_id = self.select_bundle_id(entry.bundle_ids)
        if bundle_id is None:
            return None

        history = await self.bundle_history_store.get(bundle_id)
        if history is None:
            return None

        return TransactionHistoryView(
            hash=tx_hash,
            bundle_ids=entry.bundle_ids,
            history=history.history,
        )


class RecentBlocksService:
    """Lists the latest blocks straight from the block source, no caching"""

    def __init__(
        self,
        block_source: BlockSource,
        retries: int = 3,
        retry_base_delay: float = 1,
    ) -> None:
        self.block_source = block_source
        self._latest_block_number = async_retry(
            retries=retries,
            base_delay=retry_base_delay,
        )(block_source.get_latest_block_number)

    async def _fetch_summary(self, block_number: int) -> Optional[BlockSummary]:
        try:
            raw_block = await self.block_source.get_block_by_number(block_number)
        except UpstreamUnavailableError as e:
            logger.warning(f"Skipping block {block_number} in listing: {e}")
            return None

        if raw_block is None or not BlockParser.is_complete(raw_block):
            return None
        return BlockSummary(**BlockSummaryParser.parse_raw(raw_block))

    async def list_recent_blocks(self, count: int = 10) -> List[BlockSummary]:
        """
        Newest-first summaries of the latest `count` blocks

        Blocks that fail to load are left out of the listing.

        Raises:
            UpstreamUnavailableError: If the latest block number could not be fetched
        """
        latest_block_number = await self._latest_block_number()
        block_numbers = [latest_block_number - i for i in range(count) if latest_block_number - i >= 0]

        summaries = await asyncio.gather(
            *(self._fetch_summary(block_number) for block_number in block_numbers)
        )
        return [summary for summary in summaries if summary is not None]
