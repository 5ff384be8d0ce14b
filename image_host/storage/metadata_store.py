import contextlib
import json
import os
import threading
from pathlib import Path
from typing import List, Optional, Union
from pydantic import ValidationError
from image_host.image_service.models import ImageRecord
from image_host.exceptions import MetadataStoreException
from image_host.settings import settings
import logging

log = logging.getLogger(__name__)

# -------------------------
# Metadata Store
# -------------------------
class MetadataStore:
    """
        The image record list, kept as one JSON array on disk.

        Every read loads the whole file and every write replaces it. Callers
        that load, mutate and save must hold ``lock`` for the whole sequence,
        otherwise concurrent requests in this process can lose each other's
        updates. Nothing guards against a second process writing the same file.

        Entries that do not validate are left out of ``load`` results but are
        written back by the following ``save``, so their blobs stay referenced.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path or settings.metadata_file)
        self.lock = threading.RLock()
        # entries from the last load that are not valid records, written back unchanged
        self.unparsed_entries = []
        log.info("Initialized metadata store at %s", self.path)

        # Ensure store file exists at initialization
        self.ensure_file()

    def ensure_file(self):
        if self.path.exists():
            log.debug("Metadata file %s already exists", self.path)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.save([])
        log.info("Created metadata file %s", self.path)

    def load(self) -> List[ImageRecord]:
        self.unparsed_entries = []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning("Could not read metadata file %s, treating as empty: %s", self.path, e)
            return []

        if not isinstance(data, list):
            log.warning("Metadata file %s does not hold a list, treating as empty", self.path)
            return []

        records = []
        unparsed = []
        for item in data:
            try:
                records.append(ImageRecord.model_validate(item))
            except ValidationError as e:
                log.error("Malformed metadata entry %r is kept but not served: %s", item, e)
                unparsed.append(item)
        self.unparsed_entries = unparsed
        return records

    def save(self, records: List[ImageRecord]):
        payload = json.dumps(
            [record.model_dump(mode="json", by_alias=True, exclude_none=True) for record in records]
            + self.unparsed_entries,
            indent=2,
            ensure_ascii=False,
        )
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            log.error(f"Metadata save failed: {e}")
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise MetadataStoreException(f"Failed to save image metadata: {e}")
        log.debug("Saved %d metadata records", len(records))

    def close(self):
        log.info("Closed metadata store")
