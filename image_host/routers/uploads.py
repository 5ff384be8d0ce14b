from fastapi import APIRouter, Depends, UploadFile, File, Response
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool
from typing import List, Optional
import logging

from image_host.storage.blob_store import BlobStore
from image_host.storage.metadata_store import MetadataStore
from image_host.dependencies.dependencies import get_base_url, get_blob_store, get_metadata_store
from image_host.image_service.service import PUBLIC_IMAGE_PREFIX, save_uploads
from image_host.image_service.models import IncomingFile, UploadResponse
from image_host.exceptions import InvalidArgumentException, ImageNotFoundException
from image_host.settings import settings

log = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])

@router.post("/upload", response_model=UploadResponse, response_model_exclude_none=True)
async def upload_images(
    images: Optional[List[UploadFile]] = File(None),
    response: Response = None,
    base_url: str = Depends(get_base_url),
    db: MetadataStore = Depends(get_metadata_store),
    blobs: BlobStore = Depends(get_blob_store)
):
    """Uploads up to ten images sent in the multipart field ``images``."""
    # Add security header
    if response:
        response.headers["X-Content-Type-Options"] = "nosniff"

    if not images:
        raise InvalidArgumentException("No files were uploaded.")
    if len(images) > settings.max_files_per_upload:
        raise InvalidArgumentException(
            f"Too many files. At most {settings.max_files_per_upload} files can be uploaded at once."
        )

    log.debug("Received %d file(s) for upload", len(images))
    incoming = []
    for upload in images:
        # one byte over the limit is enough to reject the file
        contents = await upload.read(settings.max_file_size + 1)
        incoming.append(IncomingFile(
            original_name=upload.filename or "",
            content_type=upload.content_type or "",
            data=contents,
        ))

    # blob writes and the store lock stay off the event loop
    records = await run_in_threadpool(
        save_uploads, db=db, blobs=blobs, uploads=incoming, base_url=base_url
    )
    return UploadResponse(
        message=f"Successfully uploaded {len(records)} file(s).",
        images=records,
    )

@router.get(PUBLIC_IMAGE_PREFIX + "/{filename}", response_class=FileResponse)
def serve_image(
    filename: str,
    blobs: BlobStore = Depends(get_blob_store)
):
    """Serves a stored image file."""
    if not blobs.exists(filename):
        raise ImageNotFoundException(filename)
    return FileResponse(blobs.path_for(filename))
