"""Tests for the object storage gateway against a mocked minio client."""

import io
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from minio.error import MinioException

from ponyknows.storage import EntryType, InvalidPathError, StorageError
from ponyknows.storage.object_storage import FOLDER_CONTENT_TYPE, ObjectStorageGateway


def obj(name, size=0, etag=None, last_modified=None):
    return SimpleNamespace(
        object_name=name,
        is_dir=name.endswith("/"),
        size=size,
        etag=etag,
        last_modified=last_modified,
    )


@pytest.fixture
def client():
    client = MagicMock()
    client.bucket_exists.return_value = True
    client.list_objects.return_value = []
    client.remove_objects.return_value = iter([])
    return client


@pytest.fixture
def gateway(client):
    return ObjectStorageGateway(client, "portal")


class TestBucket:

    def test_creates_missing_bucket_once(self, client, gateway):
        client.bucket_exists.return_value = False
        gateway.list("/")
        gateway.list("/")

        client.make_bucket.assert_called_once_with("portal")
        assert client.bucket_exists.call_count == 1

    def test_creates_bucket_in_region(self, client):
        client.bucket_exists.return_value = False
        ObjectStorageGateway(client, "portal", region="eu-west-1").ensure_bucket()
        client.make_bucket.assert_called_once_with("portal", location="eu-west-1")

    def test_bucket_failure_is_storage_error(self, client, gateway):
        client.bucket_exists.side_effect = MinioException("unreachable")
        with pytest.raises(StorageError):
            gateway.list("/")


class TestList:

    def test_empty_root(self, gateway):
        assert gateway.list("/") == []

    def test_directories_first_then_files(self, client, gateway):
        modified = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        client.list_objects.return_value = [
            obj("zeta.txt", size=3, etag="e1", last_modified=modified),
            obj("Alpha.pdf", size=10),
            obj("reports/"),
            obj("archive/"),
        ]

        entries = gateway.list("/")

        assert [e.basename for e in entries] == ["archive", "reports", "Alpha.pdf", "zeta.txt"]
        assert entries[0].filename == "/archive"
        assert entries[0].type == EntryType.DIRECTORY
        assert entries[3].to_dict() == {
            "filename": "/zeta.txt",
            "basename": "zeta.txt",
            "lastmod": modified.isoformat(),
            "size": 3,
            "type": "file",
            "etag": "e1",
        }
        client.list_objects.assert_called_once_with("portal", prefix="", recursive=False)

    def test_nested_listing_skips_folder_marker(self, client, gateway):
        client.list_objects.return_value = [obj("docs/"), obj("docs/a.txt", size=1)]

        entries = gateway.list("docs")

        assert [e.filename for e in entries] == ["/docs/a.txt"]
        client.list_objects.assert_called_once_with("portal", prefix="docs/", recursive=False)

    def test_backend_error(self, client, gateway):
        client.list_objects.side_effect = MinioException("boom")
        with pytest.raises(StorageError) as exc_info:
            gateway.list("/")
        assert exc_info.value.operation == "list"
        assert isinstance(exc_info.value.__cause__, MinioException)

    def test_rejects_relative_segments(self, gateway):
        with pytest.raises(InvalidPathError):
            gateway.list("/docs/../secrets")


class TestTransfer:

    def test_upload(self, client, gateway):
        gateway.upload(io.BytesIO(b"hello"), "/docs/a.txt", content_type="text/plain")

        args, kwargs = client.put_object.call_args
        assert args[0] == "portal"
        assert args[1] == "docs/a.txt"
        assert args[2].read() == b"hello"
        assert args[3] == 5
        assert kwargs["content_type"] == "text/plain"

    def test_upload_to_root_is_rejected(self, gateway):
        with pytest.raises(StorageError):
            gateway.upload(io.BytesIO(b"x"), "/")

    def test_download_releases_connection(self, client, gateway):
        response = MagicMock()
        response.read.return_value = b"content"
        client.get_object.return_value = response

        assert gateway.download("/docs/a.txt") == b"content"
        client.get_object.assert_called_once_with("portal", "docs/a.txt")
        response.close.assert_called_once()
        response.release_conn.assert_called_once()

    def test_download_error(self, client, gateway):
        client.get_object.side_effect = MinioException("missing")
        with pytest.raises(StorageError):
            gateway.download("/nope.txt")


class TestFolders:

    def test_create_folder_writes_marker(self, client, gateway):
        gateway.create_folder("/docs/new")

        args, kwargs = client.put_object.call_args
        assert args[1] == "docs/new/"
        assert args[3] == 0
        assert kwargs["content_type"] == FOLDER_CONTENT_TYPE

    def test_create_root_is_noop(self, client, gateway):
        gateway.create_folder("/")
        client.put_object.assert_not_called()

    def test_delete_file(self, client, gateway):
        gateway.delete("/docs/a.txt")
        client.remove_object.assert_called_once_with("portal", "docs/a.txt")
        client.remove_objects.assert_not_called()

    def test_delete_folder_removes_everything_under_prefix(self, client, gateway):
        client.list_objects.return_value = [obj("docs/"), obj("docs/a.txt"), obj("docs/sub/b.txt")]

        gateway.delete("/docs")

        client.list_objects.assert_called_once_with("portal", prefix="docs/", recursive=True)
        bucket, deletes = client.remove_objects.call_args[0]
        assert bucket == "portal"
        assert len(deletes) == 3

    def test_delete_missing_path_succeeds(self, gateway):
        gateway.delete("/ghost.txt")

    def test_delete_reports_partial_failure(self, client, gateway):
        client.list_objects.return_value = [obj("docs/a.txt")]
        client.remove_objects.return_value = iter([MagicMock()])
        with pytest.raises(StorageError):
            gateway.delete("/docs")

    def test_delete_root_is_rejected(self, gateway):
        with pytest.raises(StorageError):
            gateway.delete("/")
