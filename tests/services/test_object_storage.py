"""Tests for the filesystem object store and signed upload URLs."""
from __future__ import annotations

import base64
from urllib.parse import parse_qs, urlparse

import pytest

from nuagebook.services import object_storage
from nuagebook.utils.errors import ExternalServiceError, NotFoundError, ValidationError


@pytest.fixture(autouse=True)
def storage_root(tmp_path, monkeypatch):
    monkeypatch.setenv("NUAGEBOOK_STORAGE_ROOT", str(tmp_path / "objects"))
    monkeypatch.setenv("NUAGEBOOK_SIGNING_SECRET", "test-secret")
    return tmp_path / "objects"


def test_save_and_read_object_keeps_content_type():
    path = object_storage.save_object("public/uploads/a.bin", b"hello", "text/plain")

    assert path == "/objects/public/uploads/a.bin"
    stored = object_storage.read_object(path)
    assert stored.data == b"hello"
    assert stored.content_type == "text/plain"


def test_list_objects_skips_metadata_sidecars():
    object_storage.save_object("public/x/1.png", b"1")
    object_storage.save_object("public/x/2.png", b"2")

    assert object_storage.list_objects("public/x") == ["public/x/1.png", "public/x/2.png"]


def test_delete_object_removes_data_and_sidecar(storage_root):
    object_storage.save_object("public/tmp/a.txt", b"a", "text/plain")
    assert object_storage.object_exists("/objects/public/tmp/a.txt")

    assert object_storage.delete_object("public/tmp/a.txt") is True
    assert object_storage.object_exists("public/tmp/a.txt") is False
    assert object_storage.delete_object("public/tmp/a.txt") is False
    assert list((storage_root / "public" / "tmp").iterdir()) == []


def test_delete_prefix_counts_removed_objects():
    object_storage.save_object("public/previews/b1/page-1.jpg", b"1")
    object_storage.save_object("public/previews/b1/page-2.jpg", b"2")

    assert object_storage.delete_prefix("public/previews/b1") == 2
    assert object_storage.list_objects("public/previews") == []
    assert object_storage.delete_prefix("public/previews/none") == 0


@pytest.mark.parametrize("key", ["../etc/passwd", "public/../../x", "", "public/a.png.meta.json"])
def test_normalize_key_rejects_unsafe_keys(key):
    with pytest.raises(ValidationError):
        object_storage.normalize_key(key)


def test_read_missing_object_raises_not_found():
    with pytest.raises(NotFoundError):
        object_storage.read_object("public/missing.png")


def test_upload_base64_from_data_url():
    data = "data:image/png;base64," + base64.b64encode(b"\x89PNG-data").decode("ascii")

    result = object_storage.upload_base64(data, filename="photo")

    assert result["filename"] == "photo.png"
    assert result["objectPath"] == "/objects/public/uploads/photo.png"
    assert object_storage.read_object(result["objectPath"]).content_type == "image/png"


def test_upload_base64_rejects_empty_payload():
    with pytest.raises(ValidationError) as exc:
        object_storage.upload_base64("")

    assert exc.value.code == "data_required"


def test_signed_upload_url_round_trip():
    result = object_storage.create_upload_url("scan.pdf", 1024, "application/pdf", base_url="https://nb.test/", now=1000)

    parsed = urlparse(result["uploadURL"])
    query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
    key = parsed.path[len("/objects/upload/"):]
    assert key.startswith("private/uploads/")
    assert result["objectPath"] == "/objects/" + key
    assert object_storage.verify_upload_signature(key, query["expires"], "application/pdf", query["signature"], now=1000)
    assert not object_storage.verify_upload_signature(key, query["expires"], "image/png", query["signature"], now=1000)
    assert not object_storage.verify_upload_signature(key, query["expires"], "application/pdf", query["signature"], now=10 ** 9)


def test_upload_url_requires_signing_secret(monkeypatch):
    monkeypatch.delenv("NUAGEBOOK_SIGNING_SECRET")

    with pytest.raises(ExternalServiceError):
        object_storage.create_upload_url("scan.pdf", 10, "application/pdf")


def test_upload_url_rejects_oversized_files():
    with pytest.raises(ValidationError) as exc:
        object_storage.create_upload_url("big.zip", object_storage.MAX_UPLOAD_BYTES + 1, "application/zip")

    assert exc.value.code == "invalid_size"
