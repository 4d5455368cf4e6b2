from pathlib import Path
from typing import Any, Optional
from pydantic import BaseModel


class StoredFile(BaseModel):
    """A file that passed validation and was fully written to disk"""

    filename: str
    path: Path
    size: int
    content_type: str
    category: str


class FileInfo(BaseModel):
    filename: str
    mimetype: str
    size: int
    url: str


class UploadResponse(BaseModel):
    success: bool = True
    file: FileInfo


class MissingFileResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    status: int
    message: str
    timestamp: str
    path: str
    errors: Optional[Any] = None
    stack: Optional[str] = None
