"""Pytest configuration and shared fixtures."""

import os

# Must be set before any ponyknows module reads the settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("MINIO_ACCESS_KEY", "test-access")
os.environ.setdefault("MINIO_SECRET_KEY", "test-secret")

from typing import BinaryIO, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ponyknows.api.deps import get_db, get_storage_registry
from ponyknows.api.main import app
from ponyknows.core.security import create_session_token
from ponyknows.db.base import Base
from ponyknows.storage import FileEntry, GatewayRegistry, StorageError, StorageGateway
from ponyknows.storage.base import EntryType, basename_of, normalize_path, sort_entries

from tests.factories import create_role, create_user


class InMemoryGateway(StorageGateway):
    """Dict-backed gateway standing in for a storage backend in API tests."""

    def __init__(self, name: str):
        self._name = name
        self.files: Dict[str, bytes] = {}
        self.folders = set()
        self.fail_with: Optional[str] = None

    @property
    def backend_name(self) -> str:
        return self._name

    def _maybe_fail(self, operation: str, path: str) -> None:
        if self.fail_with == operation:
            raise StorageError(operation, path)

    def list(self, path: str = "/") -> List[FileEntry]:
        path = normalize_path(path)
        self._maybe_fail("list", path)
        parent = path.rstrip("/")
        entries = []
        for folder in self.folders:
            if folder.rsplit("/", 1)[0] == parent:
                entries.append(FileEntry(folder, basename_of(folder), None, 0, EntryType.DIRECTORY))
        for name, data in self.files.items():
            if name.rsplit("/", 1)[0] == parent:
                entries.append(FileEntry(name, basename_of(name), None, len(data), EntryType.FILE))
        return sort_entries(entries)

    def upload(self, stream: BinaryIO, path: str, content_type: Optional[str] = None) -> None:
        path = normalize_path(path)
        self._maybe_fail("upload", path)
        self.files[path] = stream.read()

    def download(self, path: str) -> bytes:
        path = normalize_path(path)
        self._maybe_fail("download", path)
        if path not in self.files:
            raise StorageError("download", path, "not found")
        return self.files[path]

    def delete(self, path: str) -> None:
        path = normalize_path(path)
        self._maybe_fail("delete", path)
        self.files = {k: v for k, v in self.files.items() if k != path and not k.startswith(path + "/")}
        self.folders = {f for f in self.folders if f != path and not f.startswith(path + "/")}

    def create_folder(self, path: str) -> None:
        path = normalize_path(path)
        self._maybe_fail("create_folder", path)
        self.folders.add(path)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Database session bound to a fresh in-memory schema."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user_factory(db_session):
    def factory(**kwargs):
        user = create_user(db_session, **kwargs)
        db_session.commit()
        return user
    return factory


@pytest.fixture
def role_factory(db_session):
    def factory(**kwargs):
        role = create_role(db_session, **kwargs)
        db_session.commit()
        return role
    return factory


@pytest.fixture
def storage_registry():
    registry = GatewayRegistry()
    registry.register(InMemoryGateway("minio"))
    registry.register(InMemoryGateway("nextcloud"))
    return registry


@pytest.fixture
def client(db_session, storage_registry):
    """TestClient wired to the test database and in-memory storage."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_registry] = lambda: storage_registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(client, db_session):
    """Attach a fresh session cookie for ``user`` to the test client."""
    def login(user):
        token = create_session_token(user.id, db_session)
        client.cookies.set("session", token)
        return client
    return login
