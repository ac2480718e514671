"""Tests for the S3 and local object stores."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from models.errors import BlobUploadFailure, RetrievalUrlFailure, StoreReadFailure
from services.object_store import DEFAULT_URL_EXPIRES_SECONDS, LocalObjectStore, S3ObjectStore


def _client_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation)


@pytest.fixture
def s3_client() -> MagicMock:
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://bucket.s3.amazonaws.com/key?X-Amz-Signature=abc"
    return client


class TestS3ObjectStore:
    async def test_upload_puts_object_with_content_type(self, s3_client):
        store = S3ObjectStore("wedding-photos", client=s3_client)

        blob = await store.upload("image_1.jpg", "image/jpeg", b"bytes")

        s3_client.put_object.assert_called_once_with(
            Bucket="wedding-photos", Key="image_1.jpg", Body=b"bytes", ContentType="image/jpeg"
        )
        assert blob.key == "image_1.jpg"
        assert blob.uploaded_at.tzinfo is not None

    @pytest.mark.parametrize(
        "error",
        [_client_error("PutObject"), EndpointConnectionError(endpoint_url="https://s3.example")],
    )
    async def test_upload_errors_become_blob_upload_failure(self, s3_client, error):
        s3_client.put_object.side_effect = error
        store = S3ObjectStore("wedding-photos", client=s3_client)

        with pytest.raises(BlobUploadFailure):
            await store.upload("image_1.jpg", "image/jpeg", b"bytes")

    async def test_retrieval_url_is_presigned_for_fifteen_minutes(self, s3_client):
        store = S3ObjectStore("wedding-photos", client=s3_client)

        url = await store.retrieval_url("image_1.jpg")

        assert url.startswith("https://")
        s3_client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": "wedding-photos", "Key": "image_1.jpg"},
            ExpiresIn=DEFAULT_URL_EXPIRES_SECONDS,
        )
        assert DEFAULT_URL_EXPIRES_SECONDS == 900

    async def test_retrieval_url_is_generated_on_every_call(self, s3_client):
        store = S3ObjectStore("wedding-photos", client=s3_client, expires_in=60)

        await store.retrieval_url("image_1.jpg")
        await store.retrieval_url("image_1.jpg")

        assert s3_client.generate_presigned_url.call_count == 2
        assert s3_client.generate_presigned_url.call_args.kwargs["ExpiresIn"] == 60

    async def test_presign_failure_is_a_store_read_failure(self, s3_client):
        s3_client.generate_presigned_url.side_effect = _client_error("GetObject")
        store = S3ObjectStore("wedding-photos", client=s3_client)

        with pytest.raises(RetrievalUrlFailure) as exc_info:
            await store.retrieval_url("image_1.jpg")
        assert isinstance(exc_info.value, StoreReadFailure)


class TestLocalObjectStore:
    async def test_upload_writes_file(self, local_store):
        blob = await local_store.upload("image_a.png", "image/png", b"\x89PNG")

        assert local_store.path_for(blob.key).read_bytes() == b"\x89PNG"

    async def test_existing_blob_is_never_overwritten(self, local_store):
        await local_store.upload("image_a.png", "image/png", b"first")

        with pytest.raises(BlobUploadFailure):
            await local_store.upload("image_a.png", "image/png", b"second")

        assert local_store.path_for("image_a.png").read_bytes() == b"first"

    async def test_retrieval_url_points_at_blob_route(self, local_store):
        assert await local_store.retrieval_url("image a.png") == "/blobs/image%20a.png"

    @pytest.mark.parametrize("key", ["", "../escape.png", "nested/key.png"])
    def test_path_for_rejects_unsafe_keys(self, local_store, key):
        with pytest.raises(ValueError):
            local_store.path_for(key)

    async def test_unwritable_directory_is_blob_upload_failure(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")
        store = LocalObjectStore(blocker)

        with pytest.raises(BlobUploadFailure):
            await store.upload("image_a.png", "image/png", b"data")
