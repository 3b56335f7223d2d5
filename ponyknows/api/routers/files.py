"""File service API endpoints.

The object storage (``/minio``) and WebDAV (``/nextcloud``) services expose
the same routes; ``build_files_router`` creates one router per backend.
"""

import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from ponyknows.api.deps import get_storage_registry
from ponyknows.api.guards import RequirePermission
from ponyknows.api.schemas.common import SuccessResponse
from ponyknows.api.schemas.files import FileEntryResponse, FolderCreate
from ponyknows.core.rbac.permissions import PermissionLike, UserPermission
from ponyknows.storage import GatewayRegistry, InvalidPathError, StorageError, StorageGateway
from ponyknows.storage.base import basename_of, normalize_path

logger = logging.getLogger(__name__)


def build_files_router(backend: str, permission: PermissionLike) -> APIRouter:
    """
    Create the file routes for one storage backend.

    Args:
        backend: Registry name of the gateway ('minio' or 'nextcloud')
        permission: Permission required for every route
    """
    router = APIRouter(
        prefix=f"/{backend}",
        tags=["files"],
        dependencies=[Depends(RequirePermission(permission))],
    )

    def get_gateway(registry: GatewayRegistry = Depends(get_storage_registry)) -> StorageGateway:
        return registry.get(backend)

    def _fail(operation: str, path: str, exc: Exception, message: str) -> HTTPException:
        if isinstance(exc, InvalidPathError):
            return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
        logger.error("%s %s on %s failed: %s", operation, path, backend, exc)
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)

    @router.get("", response_model=List[FileEntryResponse])
    def list_files(
        path: str = Query("/"),
        gateway: StorageGateway = Depends(get_gateway),
    ):
        """List a directory; directories first, then files."""
        try:
            return [entry.to_dict() for entry in gateway.list(path)]
        except (StorageError, InvalidPathError) as exc:
            raise _fail("list", path, exc, "Failed to fetch files")

    @router.post("", response_model=SuccessResponse)
    def upload_file(
        file: Optional[UploadFile] = File(None),
        path: Optional[str] = Form(None),
        gateway: StorageGateway = Depends(get_gateway),
    ):
        """Upload a file to ``path`` (the full target path)."""
        if file is None or not path:
            raise HTTPException(status_code=400, detail="File and path are required")

        try:
            gateway.upload(file.file, path, content_type=file.content_type)
        except (StorageError, InvalidPathError) as exc:
            raise _fail("upload", path, exc, "Failed to upload file")
        return SuccessResponse()

    @router.get("/download")
    def download_file(
        path: Optional[str] = Query(None),
        gateway: StorageGateway = Depends(get_gateway),
    ):
        if not path:
            raise HTTPException(status_code=400, detail="Path is required")

        try:
            content = gateway.download(path)
            filename = basename_of(normalize_path(path)) or "file"
        except (StorageError, InvalidPathError) as exc:
            raise _fail("download", path, exc, "Failed to download file")

        return Response(
            content=content,
            media_type="application/octet-stream",
            headers={
                "Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}",
            },
        )

    @router.delete("/delete", response_model=SuccessResponse)
    def delete_file(
        path: Optional[str] = Query(None),
        gateway: StorageGateway = Depends(get_gateway),
    ):
        """Delete a file, or a folder with everything in it."""
        if not path:
            raise HTTPException(status_code=400, detail="Path is required")

        try:
            gateway.delete(path)
        except (StorageError, InvalidPathError) as exc:
            raise _fail("delete", path, exc, "Failed to delete file")
        return SuccessResponse()

    @router.post("/folder", response_model=SuccessResponse)
    def create_folder(
        body: FolderCreate,
        gateway: StorageGateway = Depends(get_gateway),
    ):
        try:
            gateway.create_folder(body.path)
        except (StorageError, InvalidPathError) as exc:
            raise _fail("create_folder", body.path, exc, "Failed to create folder")
        return SuccessResponse()

    return router


minio_router = build_files_router("minio", UserPermission.ACCESS_MINIO)
nextcloud_router = build_files_router("nextcloud", UserPermission.VIEW_SERVICES)
