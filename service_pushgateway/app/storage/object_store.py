"""
Object store backends for pushed metric files.

The gateway needs three operations against one logical bucket: list every
key, get an object's bytes and put an object's bytes. Put overwrites.
All backend failures surface as StoreError.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from shared.config import BaseConfig
from shared.errors import StoreError
from shared.logging import get_logger

logger = get_logger("pushgateway.storage")


class ObjectStore(ABC):
    """Key-addressed storage for metric files."""

    @abstractmethod
    async def list_keys(self) -> List[str]:
        """Return every key in the bucket, in listing order."""

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Return the raw bytes stored under key."""

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        """Store data under key, replacing any existing object."""


class InMemoryObjectStore(ObjectStore):
    """Dict-backed store for local runs and tests."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self._objects: Dict[str, bytes] = dict(objects or {})

    async def list_keys(self) -> List[str]:
        # S3 lists keys in UTF-8 binary order
        return sorted(self._objects)

    async def get(self, key: str) -> bytes:
        if key not in self._objects:
            raise StoreError(f"object not found: {key}", details={"key": key})
        return self._objects[key]

    async def put(self, key: str, data: bytes) -> None:
        self._objects[key] = data


class S3ObjectStore(ObjectStore):
    """S3 (or S3-compatible) store.

    The bucket is resolved on every call so a runtime config reload that
    changes the bucket takes effect on the next request.
    """

    def __init__(self, client: Any, bucket_getter: Callable[[], str]):
        self.client = client
        self._bucket_getter = bucket_getter

    @property
    def bucket(self) -> str:
        bucket = self._bucket_getter()
        if not bucket:
            raise StoreError("metric bucket is not configured")
        return bucket

    async def list_keys(self) -> List[str]:
        bucket = self.bucket

        def _list() -> List[str]:
            paginator = self.client.get_paginator("list_objects_v2")
            keys: List[str] = []
            for page in paginator.paginate(Bucket=bucket):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"])
            return keys

        try:
            return await asyncio.to_thread(_list)
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to list metric files", bucket=bucket, error=str(e))
            raise StoreError(f"failed to list objects: {e}", details={"bucket": bucket}) from e

    async def get(self, key: str) -> bytes:
        bucket = self.bucket

        def _get() -> bytes:
            resp = self.client.get_object(Bucket=bucket, Key=key)
            body = resp.get("Body")
            return body.read() if body is not None else b""

        try:
            return await asyncio.to_thread(_get)
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to read metric file", bucket=bucket, key=key, error=str(e))
            raise StoreError(f"failed to read {key}: {e}", details={"key": key}) from e

    async def put(self, key: str, data: bytes) -> None:
        bucket = self.bucket

        def _put() -> None:
            self.client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType="application/json",
            )

        try:
            await asyncio.to_thread(_put)
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to write metric file", bucket=bucket, key=key, error=str(e))
            raise StoreError(f"failed to write: {e}", details={"key": key}) from e


def create_s3_client(config: BaseConfig) -> Any:
    return boto3.client(
        "s3",
        endpoint_url=config.s3_endpoint_url,
        region_name=config.s3_region,
    )


def create_object_store(config: BaseConfig, bucket_getter: Callable[[], str]) -> ObjectStore:
    """Build the store selected by the storage_backend setting."""
    backend = (config.storage_backend or "").strip().lower()
    if backend == "memory":
        return InMemoryObjectStore()
    if backend == "s3":
        return S3ObjectStore(create_s3_client(config), bucket_getter)
    raise ValueError(f"Unknown storage backend: {config.storage_backend}")
