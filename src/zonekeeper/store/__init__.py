"""Account/certificate store plugin."""

from typing import Any

from zonekeeper.config import StoreOptions
from zonekeeper.store.backends import BlobStorage, ContainerBlobStorage, FileBlobStorage
from zonekeeper.store.index import SecondaryIndex
from zonekeeper.store.store import AccountStore, CertificateStore, Store


def create(options: StoreOptions | dict[str, Any]) -> Store:
    """Plugin entry point: build and load a store from options.

    Raises:
        ValueError: If neither a path nor a container URL is configured.
    """
    if not isinstance(options, StoreOptions):
        options = StoreOptions.model_validate(options)

    blob_name = options.resolved_blob_name
    storage: BlobStorage
    if options.container_url:
        storage = ContainerBlobStorage(options.container_url, blob_name, timeout=options.timeout)
    elif options.path is not None:
        storage = FileBlobStorage(options.path, blob_name)
    else:
        raise ValueError("Store needs either a path or a container_url")

    return Store(storage).load()


__all__ = [
    "AccountStore",
    "BlobStorage",
    "CertificateStore",
    "ContainerBlobStorage",
    "FileBlobStorage",
    "SecondaryIndex",
    "Store",
    "create",
]
