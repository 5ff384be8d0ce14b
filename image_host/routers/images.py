from fastapi import APIRouter, Body, Depends
from typing import List, Optional

from image_host.storage.blob_store import BlobStore
from image_host.storage.metadata_store import MetadataStore
from image_host.dependencies.dependencies import get_blob_store, get_metadata_store
from image_host.image_service.service import (
    clear_images,
    fetch_images,
    get_image_stats,
    remove_image,
    remove_images,
    rename_image,
)
from image_host.image_service.models import (
    BatchDeleteRequest,
    BatchDeleteResponse,
    DeleteResponse,
    ImageRecord,
    ImageStats,
    UpdateImageRequest,
    UpdateImageResponse,
)

router = APIRouter(
    prefix="/api/images",
    tags=["images"]
)

# Literal paths are declared before "/{image_id}" so they are matched first.

@router.get("", response_model=List[ImageRecord], response_model_exclude_none=True)
def list_images_handler(db: MetadataStore = Depends(get_metadata_store)):
    """Lists every image in upload order."""
    return fetch_images(db)

@router.get("/stats", response_model=ImageStats)
def image_stats(db: MetadataStore = Depends(get_metadata_store)):
    """Collection size and today's upload count."""
    return get_image_stats(db)

@router.delete("/batch", response_model=BatchDeleteResponse)
def delete_images_batch(
    payload: Optional[BatchDeleteRequest] = Body(None),
    db: MetadataStore = Depends(get_metadata_store),
    blobs: BlobStore = Depends(get_blob_store)
):
    """Deletes the images whose ids are listed in the request body."""
    deleted = remove_images(db, blobs, payload.ids if payload else None)
    return BatchDeleteResponse(
        message=f"Deleted {deleted} image(s).",
        deleted_count=deleted,
    )

@router.delete("/clear-all", response_model=BatchDeleteResponse)
def delete_all_images(
    db: MetadataStore = Depends(get_metadata_store),
    blobs: BlobStore = Depends(get_blob_store)
):
    """Deletes every image and its metadata."""
    deleted = clear_images(db, blobs)
    return BatchDeleteResponse(
        message=f"Deleted {deleted} image(s).",
        deleted_count=deleted,
    )

@router.delete("/{image_id}", response_model=DeleteResponse)
def delete_image(
    image_id: str,
    db: MetadataStore = Depends(get_metadata_store),
    blobs: BlobStore = Depends(get_blob_store)
):
    """Deletes an image and its metadata."""
    remove_image(db, blobs, image_id)
    return DeleteResponse(message="Image deleted.")

@router.put("/{image_id}", response_model=UpdateImageResponse, response_model_exclude_none=True)
def update_image(
    image_id: str,
    payload: Optional[UpdateImageRequest] = Body(None),
    db: MetadataStore = Depends(get_metadata_store)
):
    """Renames an image."""
    image = rename_image(db, image_id, payload.original_name if payload else None)
    return UpdateImageResponse(message="Image name updated.", image=image)
