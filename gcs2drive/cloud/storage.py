# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Source Cloud Storage Client."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, Optional, TypeVar, Union

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage

from gcs2drive.errors import AuthenticationError, NotFoundError, SourceReadError
from gcs2drive.logging import logger
from gcs2drive.schema.transfer import ObjectDescriptor
from gcs2drive.utils.format import b64_to_hex
from gcs2drive.utils.fs import get_file_size

T = TypeVar("T")


class CloudStorageClient(ABC, Generic[T]):
    """Source object store interface."""

    def __init__(self, client: T) -> None:
        """Initialize cloud storage client."""
        self.client = client

    @abstractmethod
    def get_object_descriptor(self, storage_name: str, path: str) -> ObjectDescriptor:
        """Read the size and content hash of an object.

        Args:
            storage_name (str): Bucket name.
            path (str): Object path in the bucket.

        Returns:
            ObjectDescriptor: Object metadata.

        Raises:
            NotFoundError: The object does not exist.
            SourceReadError: The metadata cannot be read.

        """

    @abstractmethod
    def download_range(
        self,
        storage_name: str,
        path: str,
        out: Union[str, Path],
        start: int,
        end: int,
    ) -> None:
        """Download the inclusive byte range ``[start, end]`` of an object into a file.

        The file is created or truncated and holds exactly ``end - start + 1``
        bytes afterwards.

        Raises:
            SourceReadError: The range cannot be downloaded in full.

        """

    @abstractmethod
    def delete_object(self, storage_name: str, path: str) -> None:
        """Delete an object."""


class GCSCloudStorageClient(CloudStorageClient[storage.Client]):
    """Google Cloud Storage client."""

    def get_object_descriptor(self, storage_name: str, path: str) -> ObjectDescriptor:
        """Read object metadata."""
        try:
            blob = self.client.bucket(storage_name).get_blob(path)
        except NotFound as exc:
            raise NotFoundError(f"gs://{storage_name}/{path}") from exc
        except (GoogleAPIError, GoogleAuthError) as exc:
            raise SourceReadError(
                f"Cannot read metadata of gs://{storage_name}/{path}: {exc!r}"
            ) from exc

        if blob is None:
            raise NotFoundError(f"gs://{storage_name}/{path}")

        md5_hash = b64_to_hex(blob.md5_hash)
        if md5_hash is None:
            # Composite objects only carry a CRC32C.
            logger.warning("gs://%s/%s has no MD5 hash", storage_name, path)

        return ObjectDescriptor(
            bucket=storage_name,
            name=path,
            size=int(blob.size or 0),
            md5_hash=md5_hash,
            content_type=blob.content_type,
        )

    def download_range(
        self,
        storage_name: str,
        path: str,
        out: Union[str, Path],
        start: int,
        end: int,
    ) -> None:
        """Download an inclusive byte range into a local file."""
        blob = self.client.bucket(storage_name).blob(path)
        try:
            blob.download_to_filename(str(out), start=start, end=end)
        except NotFound as exc:
            raise NotFoundError(f"gs://{storage_name}/{path}") from exc
        except (GoogleAPIError, GoogleAuthError, OSError) as exc:
            raise SourceReadError(
                f"Cannot download bytes {start}-{end} of gs://{storage_name}/{path}: {exc!r}"
            ) from exc

        expected = end - start + 1
        actual = get_file_size(Path(out))
        if actual != expected:
            raise SourceReadError(
                f"Downloaded {actual} bytes of gs://{storage_name}/{path} "
                f"for range {start}-{end}, expected {expected}"
            )
        logger.debug("gs://%s/%s downloaded to %s.", storage_name, path, out)

    def delete_object(self, storage_name: str, path: str) -> None:
        """Delete an object."""
        try:
            self.client.bucket(storage_name).blob(path).delete()
        except NotFound as exc:
            raise NotFoundError(f"gs://{storage_name}/{path}") from exc
        except (GoogleAPIError, GoogleAuthError) as exc:
            raise SourceReadError(
                f"Cannot delete gs://{storage_name}/{path}: {exc!r}"
            ) from exc
        logger.info("gs://%s/%s deleted.", storage_name, path)


def build_gcs_client(secret_file: Optional[str] = None) -> storage.Client:
    """Build a GCS client from a service account file or ambient credentials."""
    try:
        if secret_file:
            return storage.Client.from_service_account_json(secret_file)
        return storage.Client()
    except (GoogleAuthError, OSError, ValueError) as exc:
        raise AuthenticationError(f"No GCS credentials: {exc!r}") from exc


def build_storage_client(secret_file: Optional[str] = None) -> GCSCloudStorageClient:
    """Build a source storage client."""
    return GCSCloudStorageClient(build_gcs_client(secret_file))
