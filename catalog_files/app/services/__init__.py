from .async_object_io import AsyncObjectIO
from .bundle import StorageBundle, get_storage_bundle

__all__ = [
    "AsyncObjectIO",
    "StorageBundle",
    "get_storage_bundle",
]
