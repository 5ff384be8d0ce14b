"""
    Centralized exception handling for the FastAPI application.
"""
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
import logging

log = logging.getLogger(__name__)

class APIException(Exception):
    """Base class for API exceptions."""
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.detail)

class ImageNotFoundException(APIException):
    """Exception for when an image is not found."""
    def __init__(self, image_id: str):
        super().__init__(status_code=404, detail=f"Image with ID '{image_id}' not found.")

class InvalidArgumentException(APIException):
    """Exception for missing or empty request fields."""
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)

class UnsupportedMediaTypeException(APIException):
    """Exception for uploads outside the MIME allow-list."""
    def __init__(self, content_type: str):
        super().__init__(
            status_code=400,
            detail=f"Unsupported content type: {content_type or 'unknown'}. Only image files are allowed.",
        )

class PayloadTooLargeException(APIException):
    """Exception for uploads over the size limit."""
    def __init__(self, filename: str, max_size: int):
        super().__init__(
            status_code=400,
            detail=f"File '{filename}' is too large. Maximum size is {max_size // (1024 * 1024)}MB.",
        )

class MetadataStoreException(APIException):
    """Exception for metadata store write failures."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

class BlobStoreException(APIException):
    """Exception for when no uploaded file could be written to disk."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

async def api_exception_handler(request: Request, exc: APIException):
    """Handles API exceptions."""
    if exc.status_code >= 500:
        log.error(f"API Exception: {exc.detail}", exc_info=exc)
    else:
        log.info(f"API Exception: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    """Handles FastAPI HTTP exceptions."""
    log.error(f"HTTP Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handles request validation errors as bad requests."""
    errors = exc.errors()
    detail = "Invalid request."
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", detail)
        detail = f"{location}: {message}" if location else message
    log.info(f"Validation Exception: {detail}")
    return JSONResponse(
        status_code=400,
        content={"error": detail},
    )

async def generic_exception_handler(request: Request, exc: Exception):
    """Handles all other exceptions."""
    log.error(f"Unhandled Exception: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred."},
    )

def add_exception_handlers(app):
    """Adds exception handlers to the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
