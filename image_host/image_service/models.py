from typing import List, Optional
from datetime import datetime
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from uuid import uuid4

def new_image_id() -> str:
    """Generates a new unique image ID."""
    return str(uuid4())

class CamelModel(BaseModel):
    """Serializes to the camelCase keys used by the JSON store and the API."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class ImageRecord(CamelModel):
    id: str = Field(default_factory=new_image_id)
    filename: str
    original_name: str
    # older stores wrote this key as "mimetype"
    mime_type: str = Field(
        alias="mimeType",
        validation_alias=AliasChoices("mimeType", "mimetype", "mime_type"),
    )
    size: int
    url: str
    upload_time: datetime
    updated_time: Optional[datetime] = None

class IncomingFile(BaseModel):
    """One file of an upload request, read into memory."""
    original_name: str
    content_type: str
    data: bytes

class StoredBlob(BaseModel):
    """A blob already written to the blob store, awaiting its record."""
    filename: str
    original_name: str
    mime_type: str
    size: int

class UploadResponse(CamelModel):
    success: bool = True
    message: str
    images: List[ImageRecord]

class DeleteResponse(CamelModel):
    success: bool = True
    message: str

class BatchDeleteRequest(CamelModel):
    ids: Optional[List[str]] = None

class BatchDeleteResponse(CamelModel):
    success: bool = True
    message: str
    deleted_count: int

class UpdateImageRequest(CamelModel):
    original_name: Optional[str] = None

class UpdateImageResponse(CamelModel):
    success: bool = True
    message: str
    image: ImageRecord

class ImageStats(CamelModel):
    count: int
    total_size: int
    today_uploads: int

class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime
