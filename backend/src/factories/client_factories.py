"""Factory functions for external service clients."""

from functools import lru_cache

from src.config import get_settings
from src.clients.storage_client import StorageClient


@lru_cache(maxsize=1)
def get_storage_client() -> StorageClient:
    """
    Create singleton object storage client.

    Returns:
        StorageClient instance
    """
    settings = get_settings()
    return StorageClient(
        url=settings.supabase_url,
        key=settings.supabase_key,
        bucket=settings.storage_bucket,
    )
