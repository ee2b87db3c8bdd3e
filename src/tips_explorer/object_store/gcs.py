import asyncio
from typing import Optional

import google.api_core.exceptions
from google.cloud import storage
from loguru import logger

from .base import BaseObjectStore
from ..errors import ObjectStoreError


class GCSObjectStore(BaseObjectStore):
    """
    A class to manage objects in a Google Cloud Storage bucket
    """

    def __init__(self, **kwargs):
        """
        Initialize Cloud Storage client and bucket handle

        Args:
            **kwargs: Configuration parameters
                - bucket (str): Bucket name (required)
                - project_id (str): Google Cloud project ID (optional, defaults to the environment)
                - client (storage.Client): Pre-built client (optional)
        """
        if 'bucket' not in kwargs:
            raise ValueError("bucket is required for GCS configuration")

        self.client = kwargs.get('client') or storage.Client(project=kwargs.get('project_id'))
        self.bucket_name = kwargs['bucket']
        self.bucket = self.client.bucket(self.bucket_name)
        logger.info(f"Using GCS object store bucket {self.bucket_name}")

    def _download(self, key: str) -> Optional[bytes]:
        try:
            return self.bucket.blob(key).download_as_bytes()
        except google.api_core.exceptions.NotFound:
            return None
        except Exception as e:
            raise ObjectStoreError(key, f"download failed: {type(e).__name__}: {e}") from e

    def _upload(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self.bucket.blob(key).upload_from_string(data, content_type=content_type)
        except Exception as e:
            raise ObjectStoreError(key, f"upload failed: {type(e).__name__}: {e}") from e

    async def get(self, key: str) -> Optional[bytes]:
        # The storage client is blocking, keep it off the event loop
        return await asyncio.to_thread(self._download, key)

    async def put(self, key: str, data: bytes, content_type: str = "application/json") -> None:
        await asyncio.to_thread(self._upload, key, data, content_type)
        logger.debug(f"Uploaded {len(data)} bytes to gs://{self.bucket_name}/{key}")
