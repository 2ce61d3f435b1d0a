"""
Tests for the S3 backend against a fake boto3 client.
"""

import io

import pytest
from botocore.exceptions import ClientError

from app.storage.base import StorageError
from app.storage.s3_store import S3Storage


class FakeS3Client:
    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body, ContentType):
        self.objects[(Bucket, Key)] = (Body, ContentType)

    def get_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)][0])}

    def head_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "404"}}, "HeadObject")
        return {}

    def delete_object(self, Bucket, Key):
        self.objects.pop((Bucket, Key), None)

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"https://{Params['Bucket']}.s3.test/{Params['Key']}?ttl={ExpiresIn}"


@pytest.fixture
def s3():
    return S3Storage(bucket="receipts", presign_ttl_seconds=60, client=FakeS3Client())


class TestS3Storage:
    def test_bucket_required(self):
        with pytest.raises(ValueError):
            S3Storage(bucket="", client=FakeS3Client())

    @pytest.mark.asyncio
    async def test_store_and_read(self, s3):
        key = await s3.store(b"img", "invoices", "r.jpg", "image/jpeg")
        assert s3.s3.objects[("receipts", key)] == (b"img", "image/jpeg")
        assert await s3.get(key) == b"img"
        assert await s3.exists(key)
        assert await s3.get_url(key) == f"https://receipts.s3.test/{key}?ttl=60"

    @pytest.mark.asyncio
    async def test_missing(self, s3):
        assert await s3.exists("invoices/none.png") is False
        with pytest.raises(StorageError):
            await s3.get("invoices/none.png")
