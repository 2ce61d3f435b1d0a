"""
Storage backend selection from settings.
"""

from app.config import Settings
from app.storage.base import StorageBackend


def build_storage(config: Settings) -> StorageBackend:
    name = config.STORAGE_BACKEND.strip().lower()
    if name == "local":
        from app.storage.local_store import LocalStorage
        return LocalStorage(root=config.STORAGE_LOCAL_ROOT, public_base_url=config.STORAGE_PUBLIC_BASE_URL)
    if name == "s3":
        from app.storage.s3_store import S3Storage
        return S3Storage(
            bucket=config.S3_BUCKET,
            region=config.S3_REGION,
            access_key_id=config.S3_ACCESS_KEY_ID,
            secret_access_key=config.S3_SECRET_ACCESS_KEY,
            endpoint_url=config.S3_ENDPOINT_URL,
            presign_ttl_seconds=config.S3_PRESIGN_TTL_SECONDS,
        )
    raise ValueError(f"Unknown STORAGE_BACKEND '{config.STORAGE_BACKEND}'")
