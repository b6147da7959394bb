"""Tests for MediaLibrary — image uploads over an asset store."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from inkwell.config import AssetConfig
from inkwell.content.media import MediaLibrary
from inkwell.integrations.assets import LocalAssetStore, StoredAsset
from inkwell.shared.errors import (
    DependencyError,
    ForbiddenError,
    InputValidationError,
    NotFoundError,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def assets(tmp_path: Path) -> LocalAssetStore:
    return LocalAssetStore(tmp_path / "uploads", "/uploads/images")


@pytest.fixture
def library(store, assets, clock) -> MediaLibrary:
    return MediaLibrary(store, assets, clock=clock)


def _upload(library: MediaLibrary, actor, data: bytes = PNG, **kwargs):
    kwargs.setdefault("filename", "photo.png")
    kwargs.setdefault("content_type", "image/png")
    return library.upload(actor, data, **kwargs)


class TestUpload:
    def test_stores_file_and_record(self, library, assets, author):
        image = _upload(library, author, alt_text="A photo")

        assert image.id == 1
        assert image.uploaded_by == 42
        assert image.size == len(PNG)
        assert image.alt_text == "A photo"
        assert image.url == f"/uploads/images/{image.key}"
        assert image.key.endswith("_photo.png")
        assert (assets.directory / image.key).read_bytes() == PNG

    def test_attach_to_post(self, library, store, author, make_post):
        post = make_post()
        image = _upload(library, author, post_id=post.id)
        assert [i.id for i in library.list_for_post(post.id)] == [image.id]

    def test_unknown_post(self, library, author):
        with pytest.raises(NotFoundError):
            _upload(library, author, post_id=99)

    def test_anonymous_forbidden(self, library, anonymous):
        with pytest.raises(ForbiddenError):
            _upload(library, anonymous)

    def test_empty_payload_rejected(self, library, author, store):
        with pytest.raises(InputValidationError):
            _upload(library, author, data=b"")
        assert store.images.count() == 0

    def test_oversized_payload_rejected(self, store, assets, author):
        library = MediaLibrary(store, assets, settings=AssetConfig(max_bytes=10))
        with pytest.raises(InputValidationError):
            _upload(library, author)

    def test_disallowed_type_rejected(self, library, author, assets):
        with pytest.raises(InputValidationError) as exc_info:
            _upload(library, author, filename="doc.pdf", content_type="application/pdf")
        assert any(e.startswith("content_type:") for e in exc_info.value.errors)
        assert not assets.directory.exists()

    def test_failed_record_save_removes_asset(self, store, author):
        assets = MagicMock()
        assets.upload.return_value = StoredAsset(key="k1", url="https://cdn/k1")
        library = MediaLibrary(store, assets)
        store.images.save = MagicMock(side_effect=DependencyError("disk full"))

        with pytest.raises(DependencyError):
            _upload(library, author)
        assets.delete.assert_called_once_with("k1")

    def test_asset_host_failure_saves_nothing(self, store, author):
        assets = MagicMock()
        assets.upload.side_effect = DependencyError("host down")
        library = MediaLibrary(store, assets)

        with pytest.raises(DependencyError):
            _upload(library, author)
        assert store.images.count() == 0


class TestMetadataAndDelete:
    def test_owner_updates_metadata(self, library, author):
        image = _upload(library, author)
        updated = library.update_metadata(author, image.id, alt_text="Sunset", filename="sunset.png")
        assert updated.alt_text == "Sunset"
        assert updated.filename == "sunset.png"
        assert updated.updated_at is not None

    def test_filename_kept_when_omitted(self, library, author):
        image = _upload(library, author)
        assert library.update_metadata(author, image.id, alt_text="x").filename == "photo.png"

    def test_stranger_cannot_edit(self, library, author, stranger):
        image = _upload(library, author)
        with pytest.raises(ForbiddenError):
            library.update_metadata(stranger, image.id, alt_text="mine now")

    def test_delete_removes_file_and_record(self, library, assets, author, store):
        image = _upload(library, author)
        library.delete(author, image.id)
        assert store.images.count() == 0
        assert not (assets.directory / image.key).exists()

    def test_admin_may_delete(self, library, author, admin, store):
        image = _upload(library, author)
        library.delete(admin, image.id)
        assert store.images.count() == 0

    def test_asset_failure_keeps_record(self, store, author):
        assets = MagicMock()
        assets.upload.return_value = StoredAsset(key="k1", url="https://cdn/k1")
        assets.delete.side_effect = DependencyError("host down")
        library = MediaLibrary(store, assets)
        image = _upload(library, author)

        with pytest.raises(DependencyError):
            library.delete(author, image.id)
        assert store.images.get(image.id) is not None

    def test_stranger_cannot_delete(self, library, author, stranger):
        image = _upload(library, author)
        with pytest.raises(ForbiddenError):
            library.delete(stranger, image.id)

    def test_missing_image(self, library, admin):
        with pytest.raises(NotFoundError):
            library.delete(admin, 5)


class TestReadPaths:
    def test_list_for_user(self, library, author, stranger):
        mine = _upload(library, author)
        _upload(library, stranger)
        assert [i.id for i in library.list_for_user(42)] == [mine.id]
        assert library.get(mine.id).id == mine.id
