"""External service clients."""

from src.clients.storage_client import StorageClient

__all__ = ["StorageClient"]
