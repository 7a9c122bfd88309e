"""
Blob storage abstraction. S3 OR local filesystem. Controlled by FF_USE_S3 flag.
"""

import asyncio
import hashlib
import hmac
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import quote, urlencode

from .config import get_settings
from .errors import StorageError
from .flags import get_flags

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    @abstractmethod
    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Store bytes under key. Returns the key."""
        ...

    @abstractmethod
    async def download(self, key: str) -> bytes:
        ...

    @abstractmethod
    async def signed_url(self, key: str, expires_in: Optional[int] = None) -> str:
        """Time-limited URL an external service can fetch the blob from."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    async def download_text(self, key: str) -> str:
        data = await self.download(key)
        return data.decode("utf-8", errors="replace")


class S3Storage(StorageBackend):
    def __init__(self, bucket: Optional[str] = None):
        self._client = None
        self.bucket = bucket or get_settings().s3_bucket_name

    def _get_client(self):
        if self._client is None:
            import boto3

            settings = get_settings()
            kwargs = {"region_name": settings.aws_region}
            if settings.aws_access_key_id:
                kwargs["aws_access_key_id"] = settings.aws_access_key_id
                kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
            self._client = boto3.client("s3", **kwargs)
        return self._client

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        from botocore.exceptions import BotoCoreError, ClientError

        client = self._get_client()
        try:
            await asyncio.to_thread(
                client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Upload failed for {key}: {e}") from e
        logger.info("Uploaded to S3: %s (%d bytes)", key, len(data))
        return key

    async def download(self, key: str) -> bytes:
        from botocore.exceptions import BotoCoreError, ClientError

        client = self._get_client()
        try:
            obj = await asyncio.to_thread(client.get_object, Bucket=self.bucket, Key=key)
            return await asyncio.to_thread(obj["Body"].read)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Download failed for {key}: {e}") from e

    async def signed_url(self, key: str, expires_in: Optional[int] = None) -> str:
        from botocore.exceptions import BotoCoreError, ClientError

        ttl = expires_in or get_settings().signed_url_ttl
        client = self._get_client()
        try:
            return await asyncio.to_thread(
                client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Could not sign URL for {key}: {e}") from e

    async def delete(self, key: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        client = self._get_client()
        try:
            await asyncio.to_thread(client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Delete failed for {key}: {e}") from e
        logger.info("Deleted from S3: %s", key)


class LocalStorage(StorageBackend):
    def __init__(self, base_path: Optional[str] = None):
        self.base_path = Path(base_path or get_settings().local_storage_path)

    def _path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path.resolve() not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Upload failed for {key}: {e}") from e
        logger.info("Saved locally: %s (%d bytes)", path, len(data))
        return key

    async def download(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Download failed for {key}: {e}") from e

    async def signed_url(self, key: str, expires_in: Optional[int] = None) -> str:
        settings = get_settings()
        expires = int(time.time()) + (expires_in or settings.signed_url_ttl)
        query = urlencode({"expires": expires, "signature": sign_key(key, expires)})
        return f"{settings.public_base_url.rstrip('/')}/api/files/{quote(key)}?{query}"

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Delete failed for {key}: {e}") from e


def sign_key(key: str, expires: int) -> str:
    """HMAC signature for a local blob URL."""
    secret = get_settings().signing_secret.encode("utf-8")
    message = f"{key}:{expires}".encode("utf-8")
    return hmac.new(secret, message, hashlib.sha256).hexdigest()


def verify_signature(key: str, expires: int, signature: str) -> bool:
    if expires < int(time.time()):
        return False
    return hmac.compare_digest(sign_key(key, expires), signature)


def get_storage() -> StorageBackend:
    """Return the active storage backend based on feature flags."""
    flags = get_flags()
    if flags.use_s3:
        return S3Storage()
    return LocalStorage()
