"""Image uploads and their metadata records.

Bytes go to an ``AssetStore``; the store only keeps the ``Image`` record.
Upload and delete keep the two in step: a record is never saved for an
asset that failed to upload, and never removed while its asset remains.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from inkwell.config import AssetConfig
from inkwell.content.access import Actor, require_authenticated, require_can_mutate
from inkwell.content.models import Image
from inkwell.content.store import Repository
from inkwell.integrations.assets import AssetStore
from inkwell.shared.errors import DependencyError, InputValidationError, NotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class MediaLibrary:
    """Upload, describe, and remove images."""

    def __init__(
        self,
        store: Repository,
        assets: AssetStore,
        *,
        settings: AssetConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.assets = assets
        self.settings = settings or AssetConfig()
        self.clock = clock

    def _require(self, image_id: int) -> Image:
        image = self.store.images.get(image_id)
        if image is None:
            raise NotFoundError("image", image_id)
        return image

    def _validate_upload(self, data: bytes, filename: str, content_type: str) -> None:
        errors: list[str] = []
        if not data:
            errors.append("file: must not be empty")
        elif len(data) > self.settings.max_bytes:
            errors.append(f"file: must be at most {self.settings.max_bytes} bytes")
        if not filename.strip():
            errors.append("filename: must not be blank")
        if content_type not in self.settings.allowed_types:
            allowed = ", ".join(self.settings.allowed_types)
            errors.append(f"content_type: {content_type!r} is not one of {allowed}")
        if errors:
            raise InputValidationError(errors)

    def upload(
        self,
        actor: Actor,
        data: bytes,
        *,
        filename: str,
        content_type: str,
        alt_text: str | None = None,
        post_id: int | None = None,
    ) -> Image:
        """Store an image and record its metadata.

        If the record cannot be saved, the uploaded asset is removed again
        before the error propagates.
        """
        require_authenticated(actor, "upload images")
        self._validate_upload(data, filename, content_type)
        if post_id is not None and self.store.posts.get(post_id) is None:
            raise NotFoundError("post", post_id)

        stored = self.assets.upload(data, filename=filename, content_type=content_type)
        try:
            with self.store.transaction():
                image = self.store.images.save(
                    Image(
                        filename=filename,
                        url=stored.url,
                        key=stored.key,
                        content_type=content_type,
                        size=len(data),
                        alt_text=alt_text or "",
                        uploaded_by=actor.user_id,
                        post_id=post_id,
                        created_at=self.clock(),
                    )
                )
        except Exception:
            logger.warning("Saving image record failed, removing asset %s", stored.key)
            try:
                self.assets.delete(stored.key)
            except DependencyError:
                logger.warning("Could not remove orphaned asset %s", stored.key, exc_info=True)
            raise
        logger.info("Uploaded image %s (%s) for user %s", image.id, image.key, actor.user_id)
        return image

    def update_metadata(
        self,
        actor: Actor,
        image_id: int,
        *,
        alt_text: str,
        filename: str | None = None,
    ) -> Image:
        with self.store.transaction():
            image = self._require(image_id)
            require_can_mutate(actor, image.uploaded_by, "edit this image")
            image.alt_text = alt_text
            if filename:
                image.filename = filename
            image.updated_at = self.clock()
            image = self.store.images.save(image)
        return image

    def delete(self, actor: Actor, image_id: int) -> None:
        """Remove the asset, then the record.

        An asset-host failure raises DependencyError and keeps the record.
        """
        image = self._require(image_id)
        require_can_mutate(actor, image.uploaded_by, "delete this image")
        if not self.assets.delete(image.key):
            logger.warning("Asset %s was already gone from the asset store", image.key)
        with self.store.transaction():
            self.store.images.delete(image_id)
        logger.info("Deleted image %s", image_id)

    # ── Read paths ───────────────────────────────────────────────

    def get(self, image_id: int) -> Image:
        return self._require(image_id)

    def list_for_user(self, user_id: int) -> list[Image]:
        return self.store.images.query(
            lambda i: i.uploaded_by == user_id,
            order_by=lambda i: i.created_at,
            descending=True,
        )

    def list_for_post(self, post_id: int) -> list[Image]:
        return self.store.images.query(
            lambda i: i.post_id == post_id,
            order_by=lambda i: i.created_at,
            descending=True,
        )
