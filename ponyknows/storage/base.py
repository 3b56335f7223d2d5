"""Base classes for file storage gateways.

Defines the contract both storage backends implement, along with the entry
type returned by listings. Paths are always backend-relative and rooted at
``/``; callers never see bucket names, DAV roots or other backend
addressing.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, BinaryIO, Dict, Iterable, List, Optional


class EntryType(str, Enum):
    """Kind of entry in a listing."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class FileEntry:
    """One entry of a directory listing."""

    filename: str  # Backend-relative path, e.g. /docs/report.pdf
    basename: str
    lastmod: Optional[str]  # ISO 8601, None when the backend has no timestamp
    size: int
    type: EntryType
    etag: Optional[str] = None

    @property
    def is_directory(self) -> bool:
        return self.type == EntryType.DIRECTORY

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data


class StorageError(Exception):
    """A backend operation failed.

    Raised for every backend-side error. The original exception is chained
    as ``__cause__``; nothing is retried.
    """

    def __init__(self, operation: str, path: str, message: str = "operation failed"):
        super().__init__(f"{operation} {path}: {message}")
        self.operation = operation
        self.path = path


class InvalidPathError(ValueError):
    """The caller supplied a path that cannot address this storage."""


def normalize_path(path: Optional[str]) -> str:
    """Normalize a caller path to ``/a/b`` form.

    Empty and ``None`` mean the root. Duplicate and trailing slashes are
    collapsed.

    Raises:
        InvalidPathError: If the path contains ``.`` or ``..`` segments
    """
    if not path:
        return "/"
    parts = [p for p in path.replace("\\", "/").split("/") if p]
    for part in parts:
        if part in (".", ".."):
            raise InvalidPathError(f"Relative segments are not allowed: {path}")
    return "/" + "/".join(parts)


def basename_of(path: str) -> str:
    """Last segment of a normalized path; empty for the root."""
    return path.rstrip("/").rsplit("/", 1)[-1]


def sort_entries(entries: Iterable[FileEntry]) -> List[FileEntry]:
    """Directories first, then files, each by basename."""
    return sorted(entries, key=lambda e: (not e.is_directory, e.basename.lower(), e.basename))


class StorageGateway(ABC):
    """Uniform contract over a file storage backend.

    Implementations must:
    - accept backend-relative paths and return backend-relative filenames
    - return listings ordered by ``sort_entries``; an empty directory
      (including an empty root) lists as ``[]``
    - treat deleting a missing path as success
    - raise ``StorageError`` for any backend failure without retrying
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Short identifier, e.g. 'minio' or 'nextcloud'."""
        pass

    @abstractmethod
    def list(self, path: str = "/") -> List[FileEntry]:
        """List the direct children of a directory."""
        pass

    @abstractmethod
    def upload(self, stream: BinaryIO, path: str, content_type: Optional[str] = None) -> None:
        """Store the stream's content at ``path``, replacing any existing file."""
        pass

    @abstractmethod
    def download(self, path: str) -> bytes:
        """Return the full content of the file at ``path``."""
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove a file, or a folder together with its contents."""
        pass

    @abstractmethod
    def create_folder(self, path: str) -> None:
        """Create an empty folder at ``path``."""
        pass
