import asyncio
import os
import uuid
from typing import Optional

from loguru import logger

from .base import BaseObjectStore
from ..errors import ObjectStoreError


class LocalObjectStore(BaseObjectStore):
    """
    A class to store objects as files on the local filesystem
    """

    def __init__(self, **kwargs):
        """
        Initialize local storage

        Args:
            **kwargs: Configuration parameters
                - data_dir (str): Base directory for stored objects (default: "data")
        """
        data_dir = kwargs.get('data_dir', 'data')
        self.base_path = os.path.abspath(data_dir)
        os.makedirs(self.base_path, exist_ok=True)
        logger.info(f"Using local object store at {self.base_path}")

    def _path_for(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.base_path, key))
        if os.path.commonpath([self.base_path, path]) != self.base_path or path == self.base_path:
            raise ObjectStoreError(key, "key escapes the store root")
        return path

    def _read(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise ObjectStoreError(key, f"read failed: {e}") from e

    def _write(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        tmp_path = f"{path}.{uuid.uuid4().hex}.tmp"
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(tmp_path, 'wb') as f:
                f.write(data)
            # Readers never observe a half-written object
            os.replace(tmp_path, path)
        except OSError as e:
            raise ObjectStoreError(key, f"write failed: {e}") from e

    async def get(self, key: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._read, key)

    async def put(self, key: str, data: bytes, content_type: str = "application/json") -> None:
        await asyncio.to_thread(self._write, key, data)
        logger.debug(f"Saved {len(data)} bytes to {key}")
