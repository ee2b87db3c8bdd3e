from abc import ABC, abstractmethod
from typing import Optional


class BaseObjectStore(ABC):
    """Abstract base class for all object stores"""

    @abstractmethod
    def __init__(self, **kwargs):
        """
        Initialize object store

        Args:
            **kwargs: Implementation-specific configuration parameters
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """
        Read an object

        Args:
            key (str): Object key, e.g. "blocks/0xabc..."

        Returns:
            Optional[bytes]: Object content, or None if the key does not exist

        Raises:
            ObjectStoreError: If the backend could not be reached
        """
        pass

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str = "application/json") -> None:
        """
        Write an object, replacing any existing content under the key

        Args:
            key (str): Object key
            data (bytes): Content to store
            content_type (str): MIME type recorded with the object where supported

        Raises:
            ObjectStoreError: If the write failed
        """
        pass
