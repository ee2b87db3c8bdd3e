from enum import Enum

from .base import BaseObjectStore
from .gcs import GCSObjectStore
from .local import LocalObjectStore

class StorageType(Enum):
    LOCAL = "local"
    GCS = "gcs"

class ObjectStoreFactory:
    _stores = {
        StorageType.LOCAL: LocalObjectStore,
        StorageType.GCS: GCSObjectStore,
    }

    @classmethod
    def get_store(cls, storage_type: str, config: dict) -> BaseObjectStore:
        """
        Factory method to get the appropriate object store instance

        Args:
            storage_type (str): Type of storage from config
            config (dict): Storage-specific configuration
        Returns:
            BaseObjectStore: Instance of the appropriate object store
        """
        try:
            storage_enum = StorageType(storage_type.lower())
        except ValueError:
            raise ValueError(f"Invalid storage type: {storage_type}. Supported types: {[t.value for t in StorageType]}")

        store_class = cls._stores[storage_enum]
        return store_class(**config)

def get_object_store(storage_type: str, config: dict) -> BaseObjectStore:
    return ObjectStoreFactory.get_store(storage_type, config)
