from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, Field, PlainSerializer, PlainValidator, model_validator


def _parse_big_int(value: Any) -> int:
    # Cached records store large integers as decimal strings, RPC payloads as ints
    if isinstance(value, bool):
        raise ValueError("Expected an integer, got a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lower().startswith("0x"):
            return int(stripped, 16)
        return int(stripped)
    raise ValueError(f"Expected an integer or decimal string, got {type(value).__name__}")


BigInt = Annotated[
    int,
    PlainValidator(_parse_big_int),
    PlainSerializer(lambda value: str(value), return_type=str, when_used="json"),
]


class TransactionRecord(BaseModel):
    model_config = {
        "arbitrary_types_allowed": False,
        "populate_by_name": True,
    }

    hash: str
    from_address: str = Field(alias="from")
    to_address: Optional[str] = Field(default=None, alias="to")
    gas_used: BigInt = Field(alias="gasUsed")
    index: int
    bundle_id: Optional[str] = Field(default=None, alias="bundleId")
    execution_time_us: Optional[int] = Field(default=None, alias="executionTimeUs")

    @property
    def is_system_transaction(self) -> bool:
        # Index 0 is the protocol deposit transaction on OP Stack chains
        return self.index == 0

    @property
    def needs_enrichment(self) -> bool:
        return self.bundle_id is None and not self.is_system_transaction


class BlockRecord(BaseModel):
    """Block with enriched transactions, as persisted under blocks/{hash}"""

    model_config = {
        "arbitrary_types_allowed": False,
        "populate_by_name": True,
    }

    hash: str
    number: BigInt
    timestamp: BigInt
    transactions: List[TransactionRecord] = []
    gas_used: BigInt = Field(alias="gasUsed")
    gas_limit: BigInt = Field(alias="gasLimit")
    cached_at: int = Field(alias="cachedAt")

    @model_validator(mode="after")
    def check_transaction_order(self) -> "BlockRecord":
        for position, tx in enumerate(self.transactions):
            if tx.index != position:
                raise ValueError(
                    f"Transaction {tx.hash} has index {tx.index} but sits at position {position}"
                )
        return self

    def transactions_needing_enrichment(self) -> List[TransactionRecord]:
        return [tx for tx in self.transactions if tx.needs_enrichment]

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    def to_view(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class BlockSummary(BaseModel):
    model_config = {
        "arbitrary_types_allowed": False,
        "populate_by_name": True,
    }

    hash: str
    number: int
    timestamp: int
    transaction_count: int = Field(alias="transactionCount")

    def to_view(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
