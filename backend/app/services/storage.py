from __future__ import annotations
import asyncio
import io
from datetime import timedelta
import structlog
from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError as TransportError
from app.config import settings

log = structlog.get_logger()

# What a MinIO call raises when the store is unreachable or answers garbage
STORE_ERRORS = (MinioException, TransportError)


class BlobUnavailable(Exception):
    """The object cannot be read (yet); storage is eventually consistent after writes."""


def _parse_endpoint(ep: str) -> tuple[str, bool]:
    # Return (host:port, secure)
    secure = ep.startswith("https://")
    host = ep.replace("http://", "").replace("https://", "")
    return host, secure


class BlobStore:
    """Photo storage on MinIO/S3: write returns once durable, reads hand out presigned URLs."""

    def __init__(self, client: Minio, bucket: str):
        self._client = client
        self.bucket = bucket
        self._bucket_ready = False

    @classmethod
    def from_settings(cls) -> "BlobStore":
        host, secure = _parse_endpoint(settings.s3_endpoint)
        client = Minio(host, access_key=settings.s3_access_key, secret_key=settings.s3_secret_key, secure=secure)
        return cls(client, settings.s3_bucket_photos)

    def _ensure_bucket(self) -> None:
        if self._bucket_ready:
            return
        try:
            if not self._client.bucket_exists(self.bucket):
                self._client.make_bucket(self.bucket)
        except S3Error as e:
            # Bucket creation may race with another worker
            if e.code not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
                raise
        self._bucket_ready = True

    def put(self, path: str, data: bytes, content_type: str) -> str:
        self._ensure_bucket()
        self._client.put_object(self.bucket, path, io.BytesIO(data), length=len(data), content_type=content_type)
        return path

    def signed_url(self, path: str, ttl_seconds: int) -> str:
        # Presigning is local; stat first so a not-yet-visible object is reported
        try:
            self._client.stat_object(self.bucket, path)
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject", "NoSuchBucket"):
                raise BlobUnavailable(path)
            raise
        return self._client.presigned_get_object(self.bucket, path, expires=timedelta(seconds=ttl_seconds))


async def signed_url_with_retry(
    store: BlobStore,
    path: str,
    tries: int | None = None,
    delay_ms: int | None = None,
    ttl_seconds: int | None = None,
) -> str | None:
    """
    Retry signed URL generation a few times with a fixed delay.
    Returns None when the object never became readable ("no preview available").
    """
    tries = settings.signed_url_tries if tries is None else tries
    delay_ms = settings.signed_url_delay_ms if delay_ms is None else delay_ms
    ttl_seconds = settings.signed_url_ttl_seconds if ttl_seconds is None else ttl_seconds
    for attempt in range(1, tries + 1):
        try:
            return store.signed_url(path, ttl_seconds)
        except (BlobUnavailable, *STORE_ERRORS) as e:
            log.info("signed_url_retry", path=path, attempt=attempt, tries=tries, error=str(e))
        if attempt < tries:
            await asyncio.sleep(delay_ms / 1000)
    log.warning("signed_url_unavailable", path=path, tries=tries)
    return None


_store: BlobStore | None = None


def get_blob_store() -> BlobStore:
    global _store
    if _store is None:
        _store = BlobStore.from_settings()
    return _store


async def photo_url(store: BlobStore, path: str | None, tries: int | None = None) -> str | None:
    if not path:
        return None
    return await signed_url_with_retry(store, path, tries=tries)
