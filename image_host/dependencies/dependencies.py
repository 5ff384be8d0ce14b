from fastapi import Request
from image_host.storage.blob_store import BlobStore
from image_host.storage.metadata_store import MetadataStore
from image_host.settings import settings

def get_blob_store(request: Request) -> BlobStore:
    """Dependency provider for BlobStore"""
    return request.app.state.blobs

def get_metadata_store(request: Request) -> MetadataStore:
    """Dependency provider for MetadataStore"""
    return request.app.state.db

def get_base_url(request: Request) -> str:
    """Scheme and host that new image URLs are built on."""
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    return str(request.base_url).rstrip("/")
