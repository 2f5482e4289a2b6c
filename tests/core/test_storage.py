"""Tests for bucket storage."""

from pathlib import Path

import pytest

from telxtab.config.app_config import clear_config_cache
from telxtab.core import storage
from telxtab.core.storage import ObjectNotFoundError, StorageError


class TestUploadRead:
    """Tests for upload() and read()."""

    def test_roundtrip(self):
        """Uploaded bytes are stored under the bucket directory."""
        storage.upload("avatars", "u1/1.png", b"png-bytes")

        target = storage.read("avatars", "u1/1.png")
        assert target == Path("data/storage/avatars/u1/1.png")
        assert target.read_bytes() == b"png-bytes"

    def test_overwrite(self):
        """Uploading to the same path replaces the object."""
        storage.upload("blog-images", "a/img.jpg", b"old")
        storage.upload("blog-images", "a/img.jpg", b"new")
        assert storage.read("blog-images", "a/img.jpg").read_bytes() == b"new"

    def test_missing_object(self):
        """Reading a missing object raises ObjectNotFoundError."""
        with pytest.raises(ObjectNotFoundError):
            storage.read("avatars", "nobody/none.png")

    def test_delete(self):
        """Delete reports whether something was removed."""
        storage.upload("avatars", "u1/1.png", b"x")
        assert storage.delete("avatars", "u1/1.png") is True
        assert storage.delete("avatars", "u1/1.png") is False


class TestValidation:
    """Tests for bucket and path checks."""

    def test_unknown_bucket(self):
        """Only the known buckets exist."""
        with pytest.raises(StorageError):
            storage.upload("secrets", "x.txt", b"x")

    @pytest.mark.parametrize("path", ["../escape.txt", "a/../../b", "/etc/passwd", "", "a\\b"])
    def test_unsafe_paths(self, path):
        """Paths can't escape the bucket."""
        with pytest.raises(StorageError):
            storage.object_file("avatars", path)

    def test_oversize_rejected(self):
        """Payloads above the configured limit are refused."""
        config_file = Path("data/config/app_config_v1.yaml")
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text("storage:\n  max_upload_bytes: 4\n", encoding="utf-8")
        clear_config_cache()

        with pytest.raises(StorageError):
            storage.upload("avatars", "u1/big.png", b"12345")


class TestPaths:
    """Tests for object naming and URLs."""

    def test_build_object_path(self):
        """Paths are owner/epoch-ms.ext with a lowercase extension."""
        path = storage.build_object_path("u1", "Holiday.JPG")
        owner, name = path.split("/")
        stem, ext = name.split(".")
        assert owner == "u1"
        assert stem.isdigit()
        assert ext == "jpg"

    def test_build_object_path_without_extension(self):
        """Files without an extension get .bin."""
        assert storage.build_object_path("u1", "README").endswith(".bin")

    def test_public_url(self):
        """URLs use the public base."""
        assert storage.public_url("avatars", "u1/1.png") == "/storage/avatars/u1/1.png"
