import re
import uuid
from pathlib import Path
from typing import Optional, Union
from image_host.settings import settings
import logging

log = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"^\.[A-Za-z0-9]{1,10}$")

# -------------------------
# Blob Store
# -------------------------
class BlobStore:
    """Uploaded image files, kept flat in a single directory."""

    def __init__(self, directory: Optional[Union[str, Path]] = None):
        self.directory = Path(directory or settings.upload_dir)
        log.info("Initialized blob store at %s", self.directory)

        # Ensure directory exists at initialization
        self.ensure_directory()

    def ensure_directory(self):
        if self.directory.is_dir():
            log.debug("Blob directory %s already exists", self.directory)
            return
        self.directory.mkdir(parents=True, exist_ok=True)
        log.info("Created blob directory %s", self.directory)

    @staticmethod
    def new_filename(original_name: str) -> str:
        """Generated id plus the extension of the uploaded file's name."""
        ext = Path(original_name or "").suffix
        if not _EXTENSION_RE.match(ext):
            ext = ""
        return f"{uuid.uuid4()}{ext}"

    def path_for(self, filename: str) -> Path:
        """Resolves a stored name inside the directory; anything else is a ValueError."""
        if not filename or filename in (".", "..") or Path(filename).name != filename or "\\" in filename:
            raise ValueError(f"Invalid blob name: {filename!r}")
        return self.directory / filename

    def exists(self, filename: str) -> bool:
        try:
            return self.path_for(filename).is_file()
        except ValueError:
            return False

    def write(self, filename: str, data: bytes) -> Path:
        path = self.path_for(filename)
        path.write_bytes(data)
        log.debug("Wrote %d bytes to %s", len(data), path)
        return path

    def delete(self, filename: str):
        path = self.path_for(filename)
        path.unlink()
        log.debug("Deleted %s", path)

    def close(self):
        log.info("Closed blob store")
