from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse

from backend.app.core.config import Config
from backend.app.core.errors import ApiError, ErrorKind, error_response
from backend.app.core.security import is_authenticated
from backend.app.models.upload import (
    ErrorResponse,
    FileInfo,
    MissingFileResponse,
    UploadResponse,
)
from backend.app.models.user import TokenData
from backend.app.services.file_upload import (
    CSV,
    DOCUMENT,
    IMAGE,
    Rejected,
    UploadCategory,
    get_file_url,
    request_base_url,
    store_upload,
    too_large_message,
    validate,
)
from backend.app.utils.logger import create_logger

router = APIRouter(prefix="/upload", tags=["Upload"])
logger = create_logger(__name__, level=Config.LOG_LEVEL)

RESPONSES = {
    400: {"model": ErrorResponse, "description": "No file, or file rejected"},
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
}

# Room for multipart boundaries and part headers around the file bytes
MULTIPART_ALLOWANCE = 64 * 1024
UPLOAD_LIMITS = {f"{router.prefix}/{c.name}": c for c in (IMAGE, DOCUMENT, CSV)}


async def reject_oversized_uploads(request: Request, call_next):
    """Refuse upload bodies that cannot fit the endpoint's limit, before they are read."""
    category = UPLOAD_LIMITS.get(request.url.path)
    content_length = request.headers.get("content-length", "")
    if (
        category is not None
        and content_length.isdigit()
        and int(content_length) > category.max_size + MULTIPART_ALLOWANCE
    ):
        return error_response(request, 400, too_large_message(category))
    return await call_next(request)


async def handle_upload(
    request: Request,
    upload: Optional[UploadFile],
    category: UploadCategory,
    user: TokenData,
):
    # Browsers send an empty, nameless part when no file was picked
    if upload is None or not upload.filename:
        return JSONResponse(
            status_code=400,
            content=MissingFileResponse(
                message=f"No {category.label} file provided"
            ).model_dump(),
        )

    # The form is already parsed and cached on the request
    form = await request.form()
    if len(form.getlist(category.field)) > 1:
        raise ApiError(
            400,
            f"Only one {category.label} file may be uploaded",
            kind=ErrorKind.INVALID_REQUEST,
        )

    logger.info(
        f"User {user.username} uploading {category.name}: {upload.filename} ({upload.content_type})"
    )

    result = validate(upload.content_type, upload.size, expected=category)
    if isinstance(result, Rejected):
        await upload.close()
        raise result.to_error()

    stored = await store_upload(upload, result.category)

    return UploadResponse(
        file=FileInfo(
            filename=stored.filename,
            mimetype=stored.content_type,
            size=stored.size,
            url=get_file_url(request_base_url(request), stored.path),
        )
    )


@router.post("/image", response_model=UploadResponse, responses=RESPONSES)
async def upload_image(
    request: Request,
    image: Optional[UploadFile] = File(None),
    user: TokenData = Depends(is_authenticated),
):
    """Upload an image file"""
    return await handle_upload(request, image, IMAGE, user)


@router.post("/document", response_model=UploadResponse, responses=RESPONSES)
async def upload_document(
    request: Request,
    document: Optional[UploadFile] = File(None),
    user: TokenData = Depends(is_authenticated),
):
    """Upload a PDF or Word document"""
    return await handle_upload(request, document, DOCUMENT, user)


@router.post("/csv", response_model=UploadResponse, responses=RESPONSES)
async def upload_csv(
    request: Request,
    csv: Optional[UploadFile] = File(None),
    user: TokenData = Depends(is_authenticated),
):
    """Upload a CSV file"""
    return await handle_upload(request, csv, CSV, user)
