from datetime import timedelta
from functools import lru_cache
from minio import Minio
from minio.error import S3Error
from app.core.config import get_settings
from app.utils.logger import logger


class StorageService:
    """Object storage access. The database only ever holds object paths."""

    def __init__(self, client: Minio, default_bucket: str, default_ttl_seconds: int):
        self.client = client
        self.default_bucket = default_bucket
        self.default_ttl_seconds = default_ttl_seconds

    def signed_url(
        self,
        path: str | None,
        ttl_seconds: int | None = None,
        bucket: str | None = None,
    ) -> str | None:
        """
        Generate a temporary GET link for a stored object.

        Returns None for an empty path or when the storage backend refuses to sign.
        """
        if not path:
            return None
        try:
            return self.client.get_presigned_url(
                "GET",
                bucket or self.default_bucket,
                path,
                expires=timedelta(seconds=ttl_seconds or self.default_ttl_seconds),
            )
        except S3Error as e:
            logger.error(f"Failed to generate presigned URL for '{path}': {e}")
            return None

    def signed_urls(self, paths: list[str], bucket: str | None = None) -> list[str]:
        """Sign several paths, dropping the ones that could not be signed."""
        urls = (self.signed_url(path, bucket=bucket) for path in paths)
        return [url for url in urls if url]


@lru_cache()
def get_storage_service() -> StorageService:
    """
    Build the process-wide storage service from settings.

    Used as a FastAPI dependency so tests can override it.
    """
    settings = get_settings()
    client = Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_SECURE,
    )
    return StorageService(
        client,
        default_bucket=settings.PROOFS_BUCKET,
        default_ttl_seconds=settings.SIGNED_URL_TTL_SECONDS,
    )
