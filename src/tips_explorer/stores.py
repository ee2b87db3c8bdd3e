from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, Type, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from .data_types import (
    DOCUMENT_TYPE_MAPPING,
    BlockRecord,
    BundleHistory,
    DocumentType,
    TransactionIndexEntry,
)
from .errors import ObjectStoreError
from .metrics import MALFORMED_DOCUMENTS
from .object_store import BaseObjectStore

ModelT = TypeVar("ModelT", bound=BaseModel)


class DecodeStatus(Enum):
    OK = "ok"
    MALFORMED = "malformed"
    ABSENT = "absent"


@dataclass
class DecodeResult(Generic[ModelT]):
    status: DecodeStatus
    value: Optional[ModelT] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is DecodeStatus.OK


def decode_document(raw: Optional[bytes], model: Type[ModelT]) -> DecodeResult[ModelT]:
    """Decode a stored JSON document into `model`

    Empty content counts as absent. Invalid JSON and schema mismatches are
    both reported as MALFORMED with the validation message attached.
    """
    if not raw:
        return DecodeResult(DecodeStatus.ABSENT)
    try:
        return DecodeResult(DecodeStatus.OK, value=model.model_validate_json(raw))
    except ValidationError as e:
        return DecodeResult(DecodeStatus.MALFORMED, error=str(e))


class DocumentStore(Generic[ModelT]):
    """Read accessor for one key family of the object store. No caching."""

    document_type: DocumentType

    def __init__(self, object_store: BaseObjectStore):
        self.object_store = object_store

    @property
    def model(self) -> Type[ModelT]:
        return DOCUMENT_TYPE_MAPPING[self.document_type]

    async def read(self, identifier: str) -> DecodeResult[ModelT]:
        key = self.document_type.key(identifier)
        try:
            raw = await self.object_store.get(key)
        except ObjectStoreError as e:
            logger.warning(f"Failed to read {key}, treating as absent: {e}")
            return DecodeResult(DecodeStatus.ABSENT, error=str(e))

        result = decode_document(raw, self.model)
        if result.status is DecodeStatus.MALFORMED:
            MALFORMED_DOCUMENTS.labels(document_type=self.document_type.value).inc()
            logger.warning(f"Malformed document at {key}, treating as absent: {result.error}")
        return result

    async def get(self, identifier: str) -> Optional[ModelT]:
        return (await self.read(identifier)).value


class BundleHistoryStore(DocumentStore[BundleHistory]):
    document_type = DocumentType.BUNDLE


class TransactionIndex(DocumentStore[TransactionIndexEntry]):
    document_type = DocumentType.TRANSACTION


class BlockCacheStore(DocumentStore[BlockRecord]):
    document_type = DocumentType.BLOCK

    async def put(self, record: BlockRecord) -> None:
        """Persist a block record. Write failures raise ObjectStoreError."""
        await self.object_store.put(self.document_type.key(record.hash), record.to_json())
