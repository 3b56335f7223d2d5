"""Object storage gateway backed by a MinIO / S3 compatible server.

Object storage has no real directories. A folder is either an implicit
prefix shared by object names, or an explicit zero-byte marker object whose
name ends with ``/``. Both show up as directories in listings.
"""

import io
import logging
from typing import BinaryIO, List, Optional

from minio import Minio
from minio.deleteobjects import DeleteObject
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from ponyknows.core.config import Settings

from .base import (
    EntryType,
    FileEntry,
    StorageError,
    StorageGateway,
    basename_of,
    normalize_path,
    sort_entries,
)

logger = logging.getLogger(__name__)

FOLDER_CONTENT_TYPE = "application/x-directory"

# Errors the SDK can surface from a request
BACKEND_ERRORS = (MinioException, Urllib3HTTPError, OSError, ValueError)


class ObjectStorageGateway(StorageGateway):
    """Storage gateway over a single bucket."""

    def __init__(self, client: Minio, bucket: str, region: Optional[str] = None):
        self._client = client
        self._bucket = bucket
        self._region = region
        self._bucket_ready = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStorageGateway":
        client = Minio(
            settings.minio_host,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_use_ssl,
            region=settings.minio_region,
        )
        return cls(client, settings.minio_default_bucket, region=settings.minio_region)

    @property
    def backend_name(self) -> str:
        return "minio"

    @property
    def bucket(self) -> str:
        return self._bucket

    def ensure_bucket(self) -> None:
        """Create the bucket on first use if it does not exist."""
        if self._bucket_ready:
            return
        try:
            if not self._client.bucket_exists(self._bucket):
                if self._region:
                    self._client.make_bucket(self._bucket, location=self._region)
                else:
                    self._client.make_bucket(self._bucket)
                logger.info("Created bucket %s", self._bucket)
        except BACKEND_ERRORS as exc:
            logger.error("Failed to ensure bucket %s: %s", self._bucket, exc)
            raise StorageError("ensure_bucket", self._bucket) from exc
        self._bucket_ready = True

    @staticmethod
    def _key(path: str) -> str:
        """Object key for a normalized path (no leading slash)."""
        return path.lstrip("/")

    @staticmethod
    def _prefix(path: str) -> str:
        key = path.strip("/")
        return f"{key}/" if key else ""

    def list(self, path: str = "/") -> List[FileEntry]:
        path = normalize_path(path)
        self.ensure_bucket()
        prefix = self._prefix(path)

        entries = []
        try:
            for obj in self._client.list_objects(self._bucket, prefix=prefix, recursive=False):
                name = obj.object_name
                if not name or name == prefix:
                    # The folder's own marker object
                    continue
                relative = "/" + name.rstrip("/")
                if obj.is_dir or name.endswith("/"):
                    entries.append(FileEntry(
                        filename=relative,
                        basename=basename_of(relative),
                        lastmod=None,
                        size=0,
                        type=EntryType.DIRECTORY,
                    ))
                else:
                    entries.append(FileEntry(
                        filename=relative,
                        basename=basename_of(relative),
                        lastmod=obj.last_modified.isoformat() if obj.last_modified else None,
                        size=obj.size or 0,
                        type=EntryType.FILE,
                        etag=obj.etag,
                    ))
        except BACKEND_ERRORS as exc:
            logger.error("Failed to list %s: %s", path, exc)
            raise StorageError("list", path) from exc

        return sort_entries(entries)

    def upload(self, stream: BinaryIO, path: str, content_type: Optional[str] = None) -> None:
        path = normalize_path(path)
        if path == "/":
            raise StorageError("upload", path, "cannot upload to the root")
        self.ensure_bucket()

        data = stream.read()
        try:
            self._client.put_object(
                self._bucket,
                self._key(path),
                io.BytesIO(data),
                len(data),
                content_type=content_type or "application/octet-stream",
            )
        except BACKEND_ERRORS as exc:
            logger.error("Failed to upload %s: %s", path, exc)
            raise StorageError("upload", path) from exc
        logger.info("Uploaded %s (%d bytes) to bucket %s", path, len(data), self._bucket)

    def download(self, path: str) -> bytes:
        path = normalize_path(path)
        self.ensure_bucket()

        response = None
        try:
            response = self._client.get_object(self._bucket, self._key(path))
            return response.read()
        except BACKEND_ERRORS as exc:
            logger.error("Failed to download %s: %s", path, exc)
            raise StorageError("download", path) from exc
        finally:
            if response is not None:
                response.close()
                response.release_conn()

    def delete(self, path: str) -> None:
        path = normalize_path(path)
        if path == "/":
            raise StorageError("delete", path, "cannot delete the root")
        self.ensure_bucket()

        key = self._key(path)
        prefix = self._prefix(path)
        try:
            # Everything under the folder prefix, marker included
            nested = [
                DeleteObject(obj.object_name)
                for obj in self._client.list_objects(self._bucket, prefix=prefix, recursive=True)
            ]
            if nested:
                errors = list(self._client.remove_objects(self._bucket, nested))
                if errors:
                    raise StorageError(
                        "delete", path, f"{len(errors)} objects could not be removed"
                    )

            # Plain object (a no-op on S3 when it does not exist)
            self._client.remove_object(self._bucket, key)
        except S3Error as exc:
            if exc.code == "NoSuchKey":
                return
            logger.error("Failed to delete %s: %s", path, exc)
            raise StorageError("delete", path) from exc
        except BACKEND_ERRORS as exc:
            logger.error("Failed to delete %s: %s", path, exc)
            raise StorageError("delete", path) from exc
        logger.info("Deleted %s from bucket %s", path, self._bucket)

    def create_folder(self, path: str) -> None:
        path = normalize_path(path)
        if path == "/":
            return
        self.ensure_bucket()

        try:
            self._client.put_object(
                self._bucket,
                self._prefix(path),
                io.BytesIO(b""),
                0,
                content_type=FOLDER_CONTENT_TYPE,
            )
        except BACKEND_ERRORS as exc:
            logger.error("Failed to create folder %s: %s", path, exc)
            raise StorageError("create_folder", path) from exc
