"""
Upload intake: classify files by declared content type, name them safely,
stream them to their category directory and build their public URLs.
"""

import os
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import FrozenSet, List, Optional, Tuple, Union
from urllib.parse import quote

from fastapi import Request, UploadFile

from backend.app.core.config import Config
from backend.app.core.errors import ApiError, ErrorKind
from backend.app.models.upload import StoredFile
from backend.app.utils.logger import create_logger

logger = create_logger(__name__, level=Config.LOG_LEVEL)

MB = 1024 * 1024
CHUNK_SIZE = 1 * MB
MAX_BASE_LENGTH = 20
URL_SEGMENT = "uploads"
TEMP_DIRECTORY = "temp"

_UNSAFE_BASE_CHARS = re.compile(r"[^A-Za-z0-9]")
_UNSAFE_EXTENSION_CHARS = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class UploadCategory:
    name: str
    label: str
    field: str
    accepted_types: FrozenSet[str]
    max_size: int
    directory: str


def build_category_table(*categories: UploadCategory) -> Tuple[UploadCategory, ...]:
    """Freeze the categories in priority order, refusing overlapping MIME types."""
    owners = {}
    for category in categories:
        for content_type in category.accepted_types:
            if content_type in owners:
                raise ValueError(
                    f"{content_type} is configured for both '{owners[content_type]}' "
                    f"and '{category.name}'"
                )
            owners[content_type] = category.name
    return tuple(categories)


IMAGE = UploadCategory(
    name="image",
    label="image",
    field="image",
    accepted_types=frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"}),
    max_size=5 * MB,
    directory="images",
)

DOCUMENT = UploadCategory(
    name="document",
    label="document",
    field="document",
    accepted_types=frozenset(
        {
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        }
    ),
    max_size=10 * MB,
    directory="documents",
)

CSV = UploadCategory(
    name="csv",
    label="CSV",
    field="csv",
    accepted_types=frozenset({"text/csv"}),
    max_size=2 * MB,
    directory="csv",
)

UPLOAD_CATEGORIES = build_category_table(IMAGE, DOCUMENT, CSV)
SUBDIRECTORIES = tuple(c.directory for c in UPLOAD_CATEGORIES) + (TEMP_DIRECTORY,)


@dataclass(frozen=True)
class Accepted:
    category: UploadCategory


@dataclass(frozen=True)
class Rejected:
    kind: ErrorKind
    message: str
    status_code: int = 400

    def to_error(self) -> ApiError:
        return ApiError(self.status_code, self.message, kind=self.kind)


ValidationResult = Union[Accepted, Rejected]


def normalize_content_type(content_type: Optional[str]) -> str:
    # "text/csv; charset=utf-8" -> "text/csv"
    return (content_type or "").split(";", 1)[0].strip().lower()


def classify(
    content_type: Optional[str],
    categories: Tuple[UploadCategory, ...] = UPLOAD_CATEGORIES,
) -> Optional[UploadCategory]:
    normalized = normalize_content_type(content_type)
    for category in categories:
        if normalized in category.accepted_types:
            return category
    return None


def too_large_message(category: UploadCategory) -> str:
    return f"File too large. Maximum size for {category.label} is {category.max_size / MB:g}MB"


def validate(
    content_type: Optional[str],
    declared_size: Optional[int] = None,
    expected: Optional[UploadCategory] = None,
) -> ValidationResult:
    """
    Check a declared content type and size before any byte is stored.

    declared_size is advisory; store_upload re-counts the bytes it writes.
    When expected is given, types belonging to another category are refused
    too, so an endpoint only ever accepts its own kind of file.
    """
    category = classify(content_type)
    if category is None or (expected is not None and category != expected):
        return Rejected(
            ErrorKind.UNSUPPORTED_TYPE,
            f"Unsupported file type: {content_type or 'unknown'}",
        )

    if declared_size is not None and declared_size > category.max_size:
        return Rejected(ErrorKind.TOO_LARGE, too_large_message(category))

    return Accepted(category)


def generate_stored_name(original_name: Optional[str]) -> str:
    """
    Build "<base>-<unix millis>-<16 hex>.<ext>" from a client supplied name.

    Directory parts are discarded, the base keeps only [A-Za-z0-9] (anything
    else becomes "-") capped at 20 chars, and the extension is lower-cased.
    """
    name = PurePosixPath((original_name or "").replace("\\", "/")).name
    stem, extension = os.path.splitext(name)

    base = _UNSAFE_BASE_CHARS.sub("-", stem)[:MAX_BASE_LENGTH] or "file"
    extension = _UNSAFE_EXTENSION_CHARS.sub("", extension.lower())
    suffix = f".{extension}" if extension else ""

    return f"{base}-{int(time.time() * 1000)}-{secrets.token_hex(8)}{suffix}"


def upload_root(root: Optional[Union[str, Path]] = None) -> Path:
    return Path(root) if root is not None else Config.UPLOAD_ROOT


def select_destination(
    category: UploadCategory, root: Optional[Union[str, Path]] = None
) -> Path:
    return upload_root(root) / category.directory


def ensure_directories(root: Optional[Union[str, Path]] = None) -> List[Path]:
    """Create the upload root and its sub-directories. Safe to repeat."""
    base = upload_root(root)
    paths = [base] + [base / directory for directory in SUBDIRECTORIES]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)
    logger.info(f"Upload directories ready under {base}")
    return paths


async def store_upload(
    upload: UploadFile,
    category: UploadCategory,
    root: Optional[Union[str, Path]] = None,
) -> StoredFile:
    """
    Stream an upload into its category directory.

    Bytes go to temp/<name>.part first and are linked into place only once
    the whole file is written within the category's size limit. Linking
    fails instead of replacing, so an existing file is never overwritten.
    The partial file is removed on any failure, including a cancelled request.
    """
    base = upload_root(root)
    destination = select_destination(category, base)

    stored_name = generate_stored_name(upload.filename)
    temp_path = base / TEMP_DIRECTORY / f"{stored_name}.part"
    total_size = 0

    try:
        with temp_path.open("xb") as buffer:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > category.max_size:
                    raise Rejected(ErrorKind.TOO_LARGE, too_large_message(category)).to_error()
                buffer.write(chunk)

        while True:
            target_path = destination / stored_name
            try:
                os.link(temp_path, target_path)
                break
            except FileExistsError:
                logger.warning(f"{target_path} already exists, generating a new name")
                stored_name = generate_stored_name(upload.filename)
    finally:
        temp_path.unlink(missing_ok=True)
        await upload.close()

    logger.info(f"Stored {category.name} upload {upload.filename!r} as {target_path} ({total_size} bytes)")
    return StoredFile(
        filename=stored_name,
        path=target_path,
        size=total_size,
        content_type=upload.content_type or "",
        category=category.name,
    )


async def remove_file(file_path: Union[str, Path]) -> bool:
    """Delete a stored file. Returns False when nothing was removed."""
    path = Path(file_path)
    try:
        if path.exists():
            path.unlink()
            return True
        return False
    except OSError as e:
        logger.error(f"Error removing file {path}: {e}")
        return False


def request_base_url(request: Request) -> str:
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}"


def get_file_url(
    base_url: str,
    file_path: Union[str, Path],
    root: Optional[Union[str, Path]] = None,
) -> str:
    """
    Public URL of a stored file: its path relative to the upload root,
    served under /uploads. Raises ValueError for files outside the root.
    """
    base = PurePosixPath(str(upload_root(root)).replace("\\", "/"))
    path = PurePosixPath(str(file_path).replace("\\", "/"))
    try:
        relative = path.relative_to(base)
    except ValueError:
        raise ValueError(f"{file_path} is not under the upload root {base}") from None

    return f"{base_url.rstrip('/')}/{URL_SEGMENT}/{quote(relative.as_posix())}"
