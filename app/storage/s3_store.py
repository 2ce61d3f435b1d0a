"""
S3 storage backend. boto3 is synchronous, so calls run in a worker thread.
Access URLs are presigned GETs.
"""

import asyncio
from typing import Any, Optional

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.storage.base import StorageBackend, StorageError
from app.storage.paths import object_key

logger = structlog.get_logger(__name__)


class S3Storage(StorageBackend):
    backend_name = "s3"

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        presign_ttl_seconds: int = 3600,
        client: Any = None,
    ):
        if not bucket:
            raise ValueError("S3_BUCKET must be set when STORAGE_BACKEND=s3")
        self.bucket = bucket
        self.presign_ttl_seconds = presign_ttl_seconds

        if client is None:
            client_kwargs = {
                "service_name": "s3",
                "region_name": region,
                "config": Config(
                    retries={"max_attempts": 3, "mode": "adaptive"},
                    connect_timeout=10,
                    read_timeout=60,
                ),
            }
            if endpoint_url:
                client_kwargs["endpoint_url"] = endpoint_url
            # Otherwise boto3 falls back to the IAM role / default profile
            if access_key_id and secret_access_key:
                client_kwargs["aws_access_key_id"] = access_key_id
                client_kwargs["aws_secret_access_key"] = secret_access_key
            client = boto3.client(**client_kwargs)
        self.s3 = client

    async def store(self, data: bytes, folder: str, file_name: str, content_type: str) -> str:
        key = object_key(folder, file_name)
        try:
            await asyncio.to_thread(
                self.s3.put_object,
                Bucket=self.bucket, Key=key, Body=data, ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(self.backend_name, f"put_object failed for {key}: {e}") from e
        logger.info("file_stored", backend=self.backend_name, bucket=self.bucket, key=key,
                    size_bytes=len(data))
        return key

    async def get(self, key: str) -> bytes:
        try:
            response = await asyncio.to_thread(self.s3.get_object, Bucket=self.bucket, Key=key)
            return await asyncio.to_thread(response["Body"].read)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(self.backend_name, f"get_object failed for {key}: {e}") from e

    async def get_url(self, key: str) -> str:
        try:
            return await asyncio.to_thread(
                self.s3.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=self.presign_ttl_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(self.backend_name, f"presign failed for {key}: {e}") from e

    async def delete(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self.s3.delete_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(self.backend_name, f"delete_object failed for {key}: {e}") from e
        logger.info("file_deleted", backend=self.backend_name, key=key)
        return True

    async def exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self.s3.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(self.backend_name, f"head_object failed for {key}: {e}") from e
