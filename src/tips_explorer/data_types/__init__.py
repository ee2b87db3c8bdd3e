from enum import Enum
from typing import Type

from pydantic import BaseModel

from .blocks import (
    BigInt,
    BlockRecord,
    BlockSummary,
    TransactionRecord,
)
from .bundles import (
    BundleData,
    BundleEvent,
    BundleEventData,
    BundleEventKind,
    BundleHistory,
    BundleHistoryView,
    MeterBundleResponse,
    MeterBundleResult,
    TransactionHistoryView,
    TransactionIndexEntry,
)

# Key prefixes in the object store. These strings are shared with the
# ingestion pipeline that writes bundles and transaction indexes.
class DocumentType(Enum):
    BLOCK = "blocks"
    BUNDLE = "bundles"
    TRANSACTION = "transactions/by_hash"

    def key(self, identifier: str) -> str:
        return f"{self.value}/{identifier}"

# Mapping of DocumentType to the model its JSON decodes into
DOCUMENT_TYPE_MAPPING: dict[DocumentType, Type[BaseModel]] = {
    DocumentType.BLOCK: BlockRecord,
    DocumentType.BUNDLE: BundleHistory,
    DocumentType.TRANSACTION: TransactionIndexEntry,
}
