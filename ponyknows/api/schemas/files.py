from typing import List, Optional

from pydantic import BaseModel, Field


class FileEntryResponse(BaseModel):
    filename: str
    basename: str
    lastmod: Optional[str] = None
    size: int
    type: str
    etag: Optional[str] = None


class FolderCreate(BaseModel):
    path: str = Field(..., min_length=1)


class FileListResponse(BaseModel):
    path: str
    entries: List[FileEntryResponse]
