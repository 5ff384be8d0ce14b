from datetime import datetime, timezone
from io import BytesIO
from typing import Iterable, List, Optional, Set, Tuple
import logging
from PIL import Image

from image_host.storage.blob_store import BlobStore
from image_host.storage.metadata_store import MetadataStore
from image_host.image_service.models import (
    ImageRecord,
    ImageStats,
    IncomingFile,
    StoredBlob,
    new_image_id,
)
from image_host.settings import settings
from image_host.exceptions import (
    BlobStoreException,
    ImageNotFoundException,
    InvalidArgumentException,
    MetadataStoreException,
    PayloadTooLargeException,
    UnsupportedMediaTypeException,
)

log = logging.getLogger(__name__)

# Blobs are served from here, see routers/uploads.py
PUBLIC_IMAGE_PREFIX = "/images"

PIL_FORMAT_MIME_MAP = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def build_image_url(base_url: str, filename: str) -> str:
    """Public URL for a stored blob."""
    return f"{base_url.rstrip('/')}{PUBLIC_IMAGE_PREFIX}/{filename}"

# ------------------------------
# Upload intake
# ------------------------------

def validate_image_bytes(file_bytes: bytes, content_type: str) -> str:
    """Validate that the uploaded file is a real image and return its detected type."""
    try:
        img = Image.open(BytesIO(file_bytes))
        img.load()
    except Exception:
        raise UnsupportedMediaTypeException(content_type)
    mime_type = PIL_FORMAT_MIME_MAP.get((img.format or "").upper())
    if mime_type not in settings.allowed_mime_types:
        raise UnsupportedMediaTypeException(mime_type or content_type)
    return mime_type

def validate_upload(upload: IncomingFile) -> str:
    """Checks type and size of one incoming file, returning the MIME type to record."""
    if upload.content_type not in settings.allowed_mime_types:
        raise UnsupportedMediaTypeException(upload.content_type)
    if len(upload.data) > settings.max_file_size:
        raise PayloadTooLargeException(upload.original_name, settings.max_file_size)
    if settings.verify_image_content:
        return validate_image_bytes(upload.data, upload.content_type)
    return upload.content_type

def save_uploads(
    db: MetadataStore,
    blobs: BlobStore,
    uploads: List[IncomingFile],
    base_url: str
) -> List[ImageRecord]:
    """
        Writes every file of one upload request to the blob store and records
        them with a single metadata save.

        All files are validated before anything is written, so a rejected
        request leaves no blobs behind. A file whose blob cannot be written is
        logged and left out. If the metadata save fails, the blobs written here
        are removed again before the error propagates.
    """
    if not uploads:
        raise InvalidArgumentException("No files were uploaded.")

    accepted: List[Tuple[IncomingFile, str]] = [(upload, validate_upload(upload)) for upload in uploads]

    stored: List[StoredBlob] = []
    for upload, mime_type in accepted:
        filename = blobs.new_filename(upload.original_name)
        try:
            blobs.write(filename, upload.data)
        except OSError as e:
            log.error(f"Blob write failed for {upload.original_name}: {e}")
            continue
        stored.append(StoredBlob(
            filename=filename,
            original_name=upload.original_name,
            mime_type=mime_type,
            size=len(upload.data),
        ))

    if not stored:
        raise BlobStoreException("Failed to store uploaded files.")

    try:
        return create_image_records(db, stored, base_url)
    except MetadataStoreException:
        for blob in stored:
            discard_blob(blobs, blob.filename)
        raise

def _unique_id(taken: Set[str]) -> str:
    image_id = new_image_id()
    while image_id in taken:
        image_id = new_image_id()
    return image_id

def create_image_records(
    db: MetadataStore,
    stored: List[StoredBlob],
    base_url: str,
    upload_time: Optional[datetime] = None
) -> List[ImageRecord]:
    """Appends one record per stored blob and persists the list once."""
    with db.lock:
        records = db.load()
        taken = {record.id for record in records}
        created = []
        for blob in stored:
            record = ImageRecord(
                id=_unique_id(taken),
                filename=blob.filename,
                original_name=blob.original_name,
                mime_type=blob.mime_type,
                size=blob.size,
                url=build_image_url(base_url, blob.filename),
                upload_time=upload_time or utcnow(),
            )
            taken.add(record.id)
            created.append(record)
        db.save(records + created)

    log.info("Saved image metadata %s", ", ".join(record.id for record in created))
    return created

# ------------------------------
# Queries
# ------------------------------

def fetch_images(db: MetadataStore) -> List[ImageRecord]:
    """All records, in storage order."""
    return db.load()

def get_image_stats(db: MetadataStore, now: Optional[datetime] = None) -> ImageStats:
    records = db.load()
    today = (now or utcnow()).date()
    return ImageStats(
        count=len(records),
        total_size=sum(record.size for record in records),
        today_uploads=sum(
            1 for record in records
            if record.upload_time.astimezone(timezone.utc).date() == today
        ),
    )

# ------------------------------
# Deletion
# ------------------------------

def discard_blob(blobs: BlobStore, filename: str) -> bool:
    """Deletes a blob, logging instead of raising when that fails."""
    try:
        blobs.delete(filename)
    except FileNotFoundError:
        log.warning("Blob %s was already missing", filename)
        return False
    except (OSError, ValueError) as e:
        log.warning(f"Blob delete failed for {filename}: {e}")
        return False
    return True

def _discard_all(blobs: BlobStore, records: Iterable[ImageRecord]):
    for record in records:
        discard_blob(blobs, record.filename)

def remove_image(
    db: MetadataStore,
    blobs: BlobStore,
    image_id: str
) -> ImageRecord:
    """Removes image file and its metadata record."""
    with db.lock:
        records = db.load()
        match = next((record for record in records if record.id == image_id), None)
        if match is None:
            raise ImageNotFoundException(image_id)

        discard_blob(blobs, match.filename)
        db.save([record for record in records if record.id != image_id])

    log.info("Deleted image %s", image_id)
    return match

def remove_images(
    db: MetadataStore,
    blobs: BlobStore,
    image_ids: Optional[Iterable[str]]
) -> int:
    """Removes every listed image; returns how many records were deleted."""
    wanted = set(image_ids or ())
    if not wanted:
        raise InvalidArgumentException("A non-empty list of image ids is required.")

    with db.lock:
        records = db.load()
        matched = [record for record in records if record.id in wanted]
        if not matched:
            raise ImageNotFoundException(", ".join(sorted(wanted)))
        remaining = [record for record in records if record.id not in wanted]

        _discard_all(blobs, matched)
        db.save(remaining)

    log.info("Deleted %d of %d requested images", len(matched), len(wanted))
    return len(matched)

def clear_images(db: MetadataStore, blobs: BlobStore) -> int:
    """Removes all images; returns the prior record count."""
    with db.lock:
        records = db.load()
        _discard_all(blobs, records)
        db.save([])

    log.info("Cleared %d images", len(records))
    return len(records)

# ------------------------------
# Update
# ------------------------------

def rename_image(db: MetadataStore, image_id: str, new_name: Optional[str]) -> ImageRecord:
    """Changes an image's display name."""
    name = (new_name or "").strip()
    if not name:
        raise InvalidArgumentException("originalName is required.")

    with db.lock:
        records = db.load()
        match = next((record for record in records if record.id == image_id), None)
        if match is None:
            raise ImageNotFoundException(image_id)

        match.original_name = name
        match.updated_time = utcnow()
        db.save(records)

    log.info("Renamed image %s", image_id)
    return match
