"""Durable storage for the store snapshot blob."""

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import httpx

from zonekeeper._logging import get_logger
from zonekeeper.exceptions import BlobNotFoundError, StorageError

logger = get_logger(__name__)


class BlobStorage(ABC):
    """A single named blob that holds the serialized snapshot."""

    blob_name: str

    @abstractmethod
    def read(self) -> bytes:
        """Return the blob content.

        Raises:
            BlobNotFoundError: If the blob does not exist.
            StorageError: If the blob cannot be read.
        """
        ...

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Replace the blob content.

        Raises:
            StorageError: If the blob cannot be written.
        """
        ...

    def close(self) -> None:
        """Release any connections held by the backend."""


class FileBlobStorage(BlobStorage):
    """Blob stored as a file in a local directory.

    Writes go to a temporary file in the same directory which is then
    renamed over the blob, so readers never see a half-written file.
    """

    def __init__(self, directory: Path | str, blob_name: str = "greenlock.json"):
        self.directory = Path(directory)
        self.blob_name = blob_name

    @property
    def path(self) -> Path:
        return self.directory / self.blob_name

    def read(self) -> bytes:
        try:
            return self.path.read_bytes()
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Blob not found: {self.path}", self.blob_name) from e
        except OSError as e:
            raise StorageError(f"Failed to read blob {self.path}: {e}", self.blob_name) from e

    def write(self, data: bytes) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{self.blob_name}.")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write blob {self.path}: {e}", self.blob_name) from e


class ContainerBlobStorage(BlobStorage):
    """Blob in a cloud storage container addressed by a SAS URL.

    Args:
        container_url: Container URL including its SAS query string,
            e.g. ``https://acct.blob.core.windows.net/certs?sv=...&sig=...``.
        blob_name: Name of the blob inside the container.
        timeout: HTTP request timeout in seconds (default: 10).
    """

    def __init__(self, container_url: str, blob_name: str = "greenlock.json", timeout: int = 10):
        self.container_url = container_url
        self.blob_name = blob_name
        self.timeout = timeout
        self._http = httpx.Client(timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()

    @property
    def blob_url(self) -> httpx.URL:
        url = httpx.URL(self.container_url)
        return url.copy_with(path=f"{url.path.rstrip('/')}/{self.blob_name}")

    def read(self) -> bytes:
        try:
            response = self._http.get(self.blob_url)
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to download blob: {e}", self.blob_name) from e

        if response.status_code == 404:
            raise BlobNotFoundError(f"Blob not found: {self.blob_name}", self.blob_name)
        if response.status_code >= 400:
            logger.error(
                "Blob download failed",
                extra={"blob_name": self.blob_name, "status_code": response.status_code},
            )
            raise StorageError(
                f"Failed to download blob ({response.status_code}): {response.text}",
                self.blob_name,
            )
        return response.content

    def write(self, data: bytes) -> None:
        try:
            response = self._http.put(
                self.blob_url,
                content=data,
                headers={"x-ms-blob-type": "BlockBlob", "Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to upload blob: {e}", self.blob_name) from e

        if response.status_code not in (200, 201):
            logger.error(
                "Blob upload failed",
                extra={"blob_name": self.blob_name, "status_code": response.status_code},
            )
            raise StorageError(
                f"Failed to upload blob ({response.status_code}): {response.text}",
                self.blob_name,
            )
