"""
Unit tests for object store backends using botocore.stub.Stubber.
"""

import io

import boto3
import pytest
from botocore.stub import Stubber

from shared.config import get_config
from shared.errors import StoreError
from service_pushgateway.app.storage.object_store import (
    InMemoryObjectStore,
    S3ObjectStore,
    create_object_store,
)


@pytest.fixture
def s3_client():
    """Create an S3 client that never reaches the network."""
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def s3_store(s3_client):
    """Create S3ObjectStore bound to a fixed bucket."""
    return S3ObjectStore(s3_client, lambda: "metrics-bucket")


class TestS3ObjectStore:
    """Test cases for S3ObjectStore."""

    @pytest.mark.asyncio
    async def test_list_keys_flattens_pages(self, s3_store):
        """Test every page of the listing is returned in order."""
        with Stubber(s3_store.client) as stubber:
            stubber.add_response(
                "list_objects_v2",
                {
                    "Contents": [{"Key": "a"}, {"Key": "b"}],
                    "IsTruncated": True,
                    "NextContinuationToken": "page-2",
                },
                expected_params={"Bucket": "metrics-bucket"},
            )
            stubber.add_response(
                "list_objects_v2",
                {"Contents": [{"Key": "c"}], "IsTruncated": False},
                expected_params={"Bucket": "metrics-bucket", "ContinuationToken": "page-2"},
            )

            keys = await s3_store.list_keys()

            stubber.assert_no_pending_responses()

        assert keys == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_list_keys_empty_bucket(self, s3_store):
        """Test an empty bucket lists no keys."""
        with Stubber(s3_store.client) as stubber:
            stubber.add_response(
                "list_objects_v2",
                {"IsTruncated": False},
                expected_params={"Bucket": "metrics-bucket"},
            )

            assert await s3_store.list_keys() == []

    @pytest.mark.asyncio
    async def test_list_keys_error(self, s3_store):
        """Test listing failures become StoreError."""
        with Stubber(s3_store.client) as stubber:
            stubber.add_client_error("list_objects_v2", service_error_code="AccessDenied")

            with pytest.raises(StoreError):
                await s3_store.list_keys()

    @pytest.mark.asyncio
    async def test_get_returns_body(self, s3_store):
        """Test get reads the object body."""
        content = b'{"name": "a", "metrics": []}'

        with Stubber(s3_store.client) as stubber:
            stubber.add_response(
                "get_object",
                {"Body": io.BytesIO(content), "ContentLength": len(content)},
                expected_params={"Bucket": "metrics-bucket", "Key": "a"},
            )

            assert await s3_store.get("a") == content

    @pytest.mark.asyncio
    async def test_get_missing_key(self, s3_store):
        """Test a missing key becomes StoreError."""
        with Stubber(s3_store.client) as stubber:
            stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)

            with pytest.raises(StoreError) as exc_info:
                await s3_store.get("gone")

        assert exc_info.value.details["key"] == "gone"

    @pytest.mark.asyncio
    async def test_put_writes_object(self, s3_store):
        """Test put issues put_object with the file's bytes."""
        data = b'{"name": "a", "metrics": []}'

        with Stubber(s3_store.client) as stubber:
            stubber.add_response(
                "put_object",
                {},
                expected_params={
                    "Bucket": "metrics-bucket",
                    "Key": "a",
                    "Body": data,
                    "ContentType": "application/json",
                },
            )

            await s3_store.put("a", data)

            stubber.assert_no_pending_responses()

    @pytest.mark.asyncio
    async def test_bucket_resolved_per_call(self, s3_client):
        """Test a changed bucket is picked up without rebuilding the store."""
        buckets = ["old-bucket"]
        store = S3ObjectStore(s3_client, lambda: buckets[-1])
        buckets.append("new-bucket")

        with Stubber(s3_client) as stubber:
            stubber.add_response("put_object", {}, expected_params={
                "Bucket": "new-bucket",
                "Key": "a",
                "Body": b"{}",
                "ContentType": "application/json",
            })

            await store.put("a", b"{}")

    @pytest.mark.asyncio
    async def test_unconfigured_bucket(self, s3_client):
        """Test an empty bucket name fails before calling S3."""
        store = S3ObjectStore(s3_client, lambda: "")

        with pytest.raises(StoreError, match="not configured"):
            await store.list_keys()


class TestInMemoryObjectStore:
    """Test cases for InMemoryObjectStore."""

    @pytest.mark.asyncio
    async def test_put_get_list(self):
        """Test basic operations and sorted listing."""
        store = InMemoryObjectStore()
        await store.put("b", b"2")
        await store.put("a", b"1")

        assert await store.list_keys() == ["a", "b"]
        assert await store.get("a") == b"1"

    @pytest.mark.asyncio
    async def test_get_missing(self):
        """Test a missing key raises StoreError."""
        with pytest.raises(StoreError):
            await InMemoryObjectStore().get("missing")


class TestCreateObjectStore:
    """Test cases for create_object_store."""

    def test_memory_backend(self):
        """Test the memory backend is selectable."""
        config = get_config("pushgateway", 8080, storage_backend="memory")
        assert isinstance(create_object_store(config, lambda: ""), InMemoryObjectStore)

    def test_s3_backend(self):
        """Test the s3 backend builds a boto3 client."""
        config = get_config("pushgateway", 8080, storage_backend="s3", s3_region="us-east-1")
        store = create_object_store(config, lambda: "bucket")

        assert isinstance(store, S3ObjectStore)
        assert store.bucket == "bucket"

    def test_unknown_backend(self):
        """Test unknown backends are rejected."""
        config = get_config("pushgateway", 8080, storage_backend="ftp")
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_object_store(config, lambda: "")
