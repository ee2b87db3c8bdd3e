"""
Shared fixtures for tips-explorer tests.

Storage goes through a real LocalObjectStore rooted in pytest's tmp_path;
the RPC endpoint is replaced by an in-memory block source.
"""

import json
from typing import Dict, List, Optional

import pytest

from tips_explorer.data_types import DocumentType
from tips_explorer.enrichment import BundleEnrichmentResolver
from tips_explorer.errors import ObjectStoreError, UpstreamUnavailableError
from tips_explorer.object_store import LocalObjectStore
from tips_explorer.stores import BlockCacheStore, BundleHistoryStore, TransactionIndex


class RecordingObjectStore(LocalObjectStore):
    """LocalObjectStore that remembers which keys were read and written"""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.reads: List[str] = []
        self.writes: List[str] = []
        self.failing_keys: set = set()
        self.fail_writes = False

    async def get(self, key: str) -> Optional[bytes]:
        self.reads.append(key)
        if key in self.failing_keys:
            raise ObjectStoreError(key, "simulated outage")
        return await super().get(key)

    async def put(self, key: str, data: bytes, content_type: str = "application/json") -> None:
        if self.fail_writes:
            raise ObjectStoreError(key, "simulated write failure")
        self.writes.append(key)
        await super().put(key, data, content_type)

    async def put_json(self, key: str, document) -> None:
        await super().put(key, json.dumps(document).encode("utf-8"))


class FakeBlockSource:
    """In-memory stand-in for RpcBlockSource"""

    def __init__(self, blocks: Optional[Dict[str, dict]] = None, latest: int = 0):
        self.blocks = blocks or {}
        self.blocks_by_number: Dict[int, dict] = {}
        self.latest = latest
        self.hash_requests: List[str] = []
        self.fail = False
        self.failing_numbers: set = set()
        self.latest_failures = 0

    async def get_block_by_hash(self, block_hash: str):
        self.hash_requests.append(block_hash)
        if self.fail:
            raise UpstreamUnavailableError("rpc unavailable")
        return self.blocks.get(block_hash)

    async def get_block_by_number(self, block_number: int):
        if block_number in self.failing_numbers:
            raise UpstreamUnavailableError(f"block {block_number} failed")
        return self.blocks_by_number.get(block_number)

    async def get_latest_block_number(self) -> int:
        if self.latest_failures > 0:
            self.latest_failures -= 1
            raise UpstreamUnavailableError("eth_blockNumber failed")
        return self.latest

    async def close(self) -> None:
        pass


def make_raw_block(block_hash: str, number: int, tx_hashes: List[str], gas_limit: int = 30_000_000) -> dict:
    return {
        "hash": block_hash,
        "number": number,
        "timestamp": 1_700_000_000 + number,
        "gasUsed": 21_000 * len(tx_hashes),
        "gasLimit": gas_limit,
        "transactions": [
            {
                "hash": tx_hash,
                "from": f"0x{index:040x}",
                "to": None if index == 2 else "0x4200000000000000000000000000000000000015",
                "gas": 21_000 + index,
            }
            for index, tx_hash in enumerate(tx_hashes)
        ],
    }


def received_event(tx_results: List[tuple], timestamp: int = 1_000, with_simulation: bool = True) -> dict:
    bundle = {
        "uuid": "bundle",
        "txs": [],
        "block_number": "0x10",
        "max_timestamp": 0,
        "reverting_tx_hashes": [],
    }
    if with_simulation:
        bundle["meter_bundle_response"] = {
            "bundleHash": "0xbundle",
            "results": [
                {"txHash": tx_hash, "executionTimeUs": execution_time_us, "gasUsed": 21000}
                for tx_hash, execution_time_us in tx_results
            ],
            "stateBlockNumber": 15,
            "totalGasUsed": 21000,
            "totalExecutionTimeUs": sum(us for _, us in tx_results),
        }
    return {"event": "Received", "data": {"key": "k", "timestamp": timestamp, "bundle": bundle}}


async def index_transaction(store: RecordingObjectStore, tx_hash: str, bundle_ids: List[str]) -> None:
    await store.put_json(
        DocumentType.TRANSACTION.key(tx_hash),
        {"bundle_ids": bundle_ids, "sender": "0xsender", "nonce": "0x1"},
    )


async def record_bundle(store: RecordingObjectStore, bundle_id: str, events: List[dict]) -> None:
    await store.put_json(DocumentType.BUNDLE.key(bundle_id), {"history": events})


@pytest.fixture
def object_store(tmp_path):
    return RecordingObjectStore(data_dir=str(tmp_path / "store"))


@pytest.fixture
def transaction_index(object_store):
    return TransactionIndex(object_store)


@pytest.fixture
def bundle_history_store(object_store):
    return BundleHistoryStore(object_store)


@pytest.fixture
def block_store(object_store):
    return BlockCacheStore(object_store)


@pytest.fixture
def resolver(transaction_index, bundle_history_store):
    return BundleEnrichmentResolver(transaction_index, bundle_history_store)


@pytest.fixture
def block_source():
    return FakeBlockSource()


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()
