import pytest
from fastapi.testclient import TestClient

from image_host.settings import settings
from image_host.main import app
from image_host.storage.blob_store import BlobStore
from image_host.storage.metadata_store import MetadataStore


@pytest.fixture(scope="function")
def blobs(tmp_path):
    return BlobStore(tmp_path / "uploads")


@pytest.fixture(scope="function")
def db(tmp_path):
    return MetadataStore(tmp_path / "images_meta.json")


@pytest.fixture(scope="function")
def test_client(tmp_path, monkeypatch):
    # Point the app at a throwaway upload dir and metadata file
    monkeypatch.setattr(settings, "upload_dir", tmp_path / "uploads")
    monkeypatch.setattr(settings, "metadata_file", tmp_path / "images_meta.json")
    monkeypatch.setattr(settings, "public_base_url", None)
    monkeypatch.setattr(settings, "verify_image_content", False)

    with TestClient(app) as client:
        yield client
