from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class BundleEventKind(str, Enum):
    RECEIVED = "Received"
    BUILDER_INCLUDED = "BuilderIncluded"
    BLOCK_INCLUDED = "BlockIncluded"
    DROPPED = "Dropped"


class MeterBundleResult(BaseModel):
    model_config = {
        "extra": "allow",
        "populate_by_name": True,
    }

    tx_hash: str = Field(alias="txHash")
    execution_time_us: Optional[int] = Field(default=None, alias="executionTimeUs")
    gas_used: Optional[int] = Field(default=None, alias="gasUsed")
    from_address: Optional[str] = Field(default=None, alias="fromAddress")
    to_address: Optional[str] = Field(default=None, alias="toAddress")


class MeterBundleResponse(BaseModel):
    model_config = {
        "extra": "allow",
        "populate_by_name": True,
    }

    bundle_hash: Optional[str] = Field(default=None, alias="bundleHash")
    # None means the simulation produced no result set at all
    results: Optional[List[MeterBundleResult]] = None
    state_block_number: Optional[int] = Field(default=None, alias="stateBlockNumber")
    total_gas_used: Optional[int] = Field(default=None, alias="totalGasUsed")
    total_execution_time_us: Optional[int] = Field(default=None, alias="totalExecutionTimeUs")


class BundleData(BaseModel):
    model_config = {"extra": "allow"}

    uuid: Optional[str] = None
    txs: List[Dict[str, Any]] = []
    block_number: Optional[Union[int, str]] = None
    max_timestamp: Optional[int] = None
    reverting_tx_hashes: List[str] = []
    meter_bundle_response: Optional[MeterBundleResponse] = None


class BundleEventData(BaseModel):
    model_config = {"extra": "allow"}

    key: Optional[str] = None
    timestamp: int = 0  # milliseconds
    bundle: Optional[BundleData] = None
    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    builder: Optional[str] = None
    flashblock_index: Optional[int] = None
    reason: Optional[str] = None


class BundleEvent(BaseModel):
    # Kept as a plain string so unknown event kinds still decode
    event: str
    data: BundleEventData = Field(default_factory=BundleEventData)

    @property
    def kind(self) -> Optional[BundleEventKind]:
        try:
            return BundleEventKind(self.event)
        except ValueError:
            return None

    @property
    def simulation_results(self) -> Optional[List[MeterBundleResult]]:
        """Result set of a Received event, or None when the event carries no simulation"""
        if self.kind is not BundleEventKind.RECEIVED:
            return None
        bundle = self.data.bundle
        if bundle is None or bundle.meter_bundle_response is None:
            return None
        return bundle.meter_bundle_response.results

    def to_view(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class BundleHistory(BaseModel):
    history: List[BundleEvent] = []

    def sorted_events(self) -> List[BundleEvent]:
        return sorted(self.history, key=lambda event: event.data.timestamp)


class TransactionIndexEntry(BaseModel):
    model_config = {"extra": "allow"}

    bundle_ids: List[str] = []
    sender: Optional[str] = None
    nonce: Optional[Union[str, int]] = None


class BundleHistoryView(BaseModel):
    uuid: str
    history: List[BundleEvent]

    def to_view(self) -> dict:
        return {
            "uuid": self.uuid,
            "history": [event.to_view() for event in self.history],
        }


class TransactionHistoryView(BaseModel):
    hash: str
    bundle_ids: List[str]
    history: List[BundleEvent]

    def to_view(self) -> dict:
        return {
            "hash": self.hash,
            "bundle_ids": list(self.bundle_ids),
            "history": [event.to_view() for event in self.history],
        }
