import json
from datetime import datetime, timezone

import pytest

from image_host.exceptions import MetadataStoreException
from image_host.image_service.models import ImageRecord
from image_host.storage.blob_store import BlobStore
from image_host.storage.metadata_store import MetadataStore


def make_record(image_id, name="a.png", **overrides):
    fields = dict(
        id=image_id,
        filename=f"{image_id}-blob.png",
        original_name=name,
        mime_type="image/png",
        size=100,
        url=f"http://testserver/images/{image_id}-blob.png",
        upload_time=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return ImageRecord(**fields)


# ------------------------------
# MetadataStore
# ------------------------------

def test_new_store_starts_empty(tmp_path):
    path = tmp_path / "nested" / "meta.json"
    store = MetadataStore(path)
    assert path.exists()
    assert json.loads(path.read_text()) == []
    assert store.load() == []


def test_save_then_load_round_trip(db):
    records = [
        make_record("1", "first.png"),
        make_record("2", "second.png", updated_time=datetime(2024, 5, 2, tzinfo=timezone.utc)),
        make_record("3", "third.png"),
    ]
    db.save(records)
    assert db.load() == records


def test_save_writes_camel_case_keys(db):
    db.save([make_record("1")])
    stored = json.loads(db.path.read_text())
    assert set(stored[0]) == {"id", "filename", "originalName", "mimeType", "size", "url", "uploadTime"}


def test_existing_file_is_not_overwritten(tmp_path):
    path = tmp_path / "meta.json"
    first = MetadataStore(path)
    first.save([make_record("1")])

    second = MetadataStore(path)
    assert [r.id for r in second.load()] == ["1"]


def test_load_missing_file_returns_empty(db):
    db.path.unlink()
    assert db.load() == []


def test_load_malformed_json_returns_empty(db):
    db.path.write_text("{not json")
    assert db.load() == []


def test_load_non_list_returns_empty(db):
    db.path.write_text(json.dumps({"id": "1"}))
    assert db.load() == []


def test_load_skips_malformed_entries(db):
    good = make_record("1").model_dump(mode="json", by_alias=True)
    db.path.write_text(json.dumps([good, {"id": "broken"}]))
    assert [r.id for r in db.load()] == ["1"]


def test_save_keeps_malformed_entries(db):
    good = make_record("1").model_dump(mode="json", by_alias=True)
    broken = {"id": "broken", "filename": "broken.png"}
    db.path.write_text(json.dumps([good, broken]))

    records = db.load()
    db.save(records + [make_record("2")])

    stored = json.loads(db.path.read_text())
    assert [entry["id"] for entry in stored] == ["1", "2", "broken"]
    assert stored[-1] == broken
    assert [r.id for r in db.load()] == ["1", "2"]


def test_load_reads_legacy_mimetype_key(db):
    legacy = {
        "id": "old",
        "filename": "old.jpg",
        "originalName": "holiday.jpg",
        "mimetype": "image/jpeg",
        "size": 2048,
        "url": "http://localhost:3000/images/old.jpg",
        "uploadTime": "2023-01-01T08:00:00.000Z",
    }
    db.path.write_text(json.dumps([legacy]))

    record = db.load()[0]
    assert record.mime_type == "image/jpeg"
    assert record.original_name == "holiday.jpg"

    db.save([record])
    assert json.loads(db.path.read_text())[0]["mimeType"] == "image/jpeg"


def test_save_failure_raises_store_exception(tmp_path):
    store = MetadataStore(tmp_path / "meta.json")
    store.path = tmp_path / "missing-dir" / "meta.json"
    with pytest.raises(MetadataStoreException):
        store.save([make_record("1")])


def test_failed_replace_removes_temp_file(db, mocker):
    db.save([make_record("1")])
    mocker.patch("image_host.storage.metadata_store.os.replace", side_effect=OSError("busy"))

    with pytest.raises(MetadataStoreException):
        db.save([make_record("2")])

    assert not db.path.with_name(db.path.name + ".tmp").exists()
    assert [r.id for r in db.load()] == ["1"]


# ------------------------------
# BlobStore
# ------------------------------

def test_blob_store_creates_directory(tmp_path):
    directory = tmp_path / "a" / "b"
    BlobStore(directory)
    assert directory.is_dir()


def test_new_filename_keeps_extension():
    name = BlobStore.new_filename("cat.png")
    assert name.endswith(".png")
    assert name != BlobStore.new_filename("cat.png")


@pytest.mark.parametrize("original", ["noextension", "", "weird.p/ng", "bad.<>"])
def test_new_filename_drops_odd_extension(original):
    assert "." not in BlobStore.new_filename(original)


def test_write_exists_delete(blobs):
    blobs.write("x.png", b"data")
    assert blobs.exists("x.png")
    assert (blobs.directory / "x.png").read_bytes() == b"data"

    blobs.delete("x.png")
    assert not blobs.exists("x.png")


def test_delete_missing_blob_raises(blobs):
    with pytest.raises(FileNotFoundError):
        blobs.delete("nope.png")


@pytest.mark.parametrize("name", ["../secret", "a/b.png", "..", "", "a\\b.png"])
def test_path_for_rejects_non_plain_names(blobs, name):
    with pytest.raises(ValueError):
        blobs.path_for(name)
    assert not blobs.exists(name)
