import time
from typing import Any, Awaitable, Callable, List, Protocol

from loguru import logger
from web3 import AsyncWeb3, AsyncHTTPProvider
from web3.exceptions import BlockNotFound

from .errors import UpstreamUnavailableError
from .metrics import RPC_REQUESTS, RPC_ERRORS, RPC_LATENCY


class BlockSource(Protocol):
    """
    Port for reading raw blocks.

    Implementations return web3-style block mappings (keys hash, number,
    timestamp, gasUsed, gasLimit, transactions) or None when the block does
    not exist, and raise UpstreamUnavailableError when the source fails.
    """

    async def get_block_by_hash(self, block_hash: str) -> dict | None:
        ...

    async def get_block_by_number(self, block_number: int) -> dict | None:
        ...

    async def get_latest_block_number(self) -> int:
        ...


class RpcBlockSource:
    """Block source backed by an EVM JSON-RPC endpoint

    Several RPC URLs may be configured. A failed call switches the active
    URL for later calls, but the failing call itself is not retried: retry
    policy belongs to the caller.
    """

    def __init__(self, rpc_urls: List[str]) -> None:
        if not rpc_urls:
            raise ValueError("At least one RPC URL is required")
        logger.info(f"Available RPC URLs: {rpc_urls}")
        logger.info(f"Initializing RpcBlockSource with RPC URL: {rpc_urls[0]}")
        self.rpc_urls = rpc_urls
        self.current_rpc_index = 0
        self.w3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_urls[0]))

    def _rotate_rpc(self) -> bool:
        """Rotate to the next RPC URL in the list
        Returns:
            bool: True if another RPC was selected, False if only one is configured
        """
        if len(self.rpc_urls) <= 1:
            return False

        self.current_rpc_index = (self.current_rpc_index + 1) % len(self.rpc_urls)
        new_url = self.rpc_urls[self.current_rpc_index]
        logger.info(f"Switching to RPC URL: {new_url}")
        self.w3 = AsyncWeb3(AsyncHTTPProvider(new_url))
        return True

    async def _call(self, method: str, request: Callable[[], Awaitable[Any]], description: str) -> Any:
        start_time = time.time()
        try:
            result = await request()
        except BlockNotFound:
            RPC_REQUESTS.labels(method=method).inc()
            RPC_LATENCY.labels(method=method).observe(time.time() - start_time)
            raise
        except Exception as e:
            RPC_ERRORS.labels(method=method).inc()
            logger.error(f"Failed to get {description}: {type(e).__name__}: {str(e)}")
            self._rotate_rpc()
            raise UpstreamUnavailableError(f"{method} failed for {description}: {e}") from e

        RPC_REQUESTS.labels(method=method).inc()
        RPC_LATENCY.labels(method=method).observe(time.time() - start_time)
        return result

    async def get_block_by_hash(self, block_hash: str) -> dict | None:
        logger.debug(f"Fetching block with hash: {block_hash}")
        try:
            return await self._call(
                'eth_getBlockByHash',
                lambda: self.w3.eth.get_block(block_hash, full_transactions=True),
                f"block {block_hash}",
            )
        except BlockNotFound:
            logger.warning(f"Block {block_hash} not found")
            return None

    async def get_block_by_number(self, block_number: int) -> dict | None:
        try:
            return await self._call(
                'eth_getBlockByNumber',
                lambda: self.w3.eth.get_block(block_number, full_transactions=False),
                f"block {block_number}",
            )
        except BlockNotFound:
            logger.warning(f"Block {block_number} not found")
            return None

    async def get_latest_block_number(self) -> int:
        return await self._call(
            'eth_blockNumber',
            lambda: self.w3.eth.get_block_number(),
            "latest block number",
        )

    async def close(self) -> None:
        await self.w3.provider.disconnect()
