"""Content domain models — pure Pydantic v2 data types.

Posts move through draft, published, and archived states; comments
through pending, approved, and rejected.  Categories and tags organise
posts, images hold uploaded media metadata, and users are the authors
and commenters referenced by id.  Input models carry the field limits
that are enforced before anything is persisted.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    EmailStr,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from inkwell.shared.errors import InputValidationError

TITLE_MAX_LENGTH = 200
SLUG_MAX_LENGTH = 200
EXCERPT_MAX_LENGTH = 500
META_DESCRIPTION_MAX_LENGTH = 160
META_KEYWORDS_MAX_LENGTH = 100
URL_MAX_LENGTH = 500
COMMENT_MAX_LENGTH = 5000
GUEST_FIELD_MAX_LENGTH = 100
CATEGORY_NAME_MAX_LENGTH = 100
TAG_NAME_MAX_LENGTH = 50
USERNAME_MAX_LENGTH = 50
NAME_MAX_LENGTH = 50

UNCATEGORIZED = "Uncategorized"


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware values pass through unchanged."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


# Stored timestamps are always timezone-aware so they compare against the clock.
Timestamp = Annotated[datetime, AfterValidator(as_utc)]


class PostStatus(StrEnum):
    """Publication status of a post."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class CommentStatus(StrEnum):
    """Moderation status of a comment."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Role(StrEnum):
    """Role carried by an authenticated actor."""

    USER = "user"
    ADMIN = "admin"


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


class User(BaseModel):
    """Directory entry for an author or registered commenter."""

    id: int | None = None
    username: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    role: Role = Role.USER
    created_at: Timestamp

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.username


class Category(BaseModel):
    id: int | None = None
    name: str
    slug: str = ""
    description: str = ""
    meta_description: str = ""
    created_at: Timestamp


class Tag(BaseModel):
    id: int | None = None
    name: str
    slug: str = ""
    created_at: Timestamp


class Post(BaseModel):
    """A blog post and its SEO fields.

    ``published_at`` is assigned on the first publish and never cleared,
    so unpublishing keeps the original publication time.
    """

    id: int | None = None
    title: str
    slug: str = ""
    content: str
    excerpt: str = ""
    status: PostStatus = PostStatus.DRAFT
    author_id: int
    category_id: int | None = None
    tag_ids: list[int] = Field(default_factory=list)
    meta_description: str = ""
    meta_keywords: str = ""
    featured_image_url: str = ""
    is_featured: bool = False
    view_count: int = 0
    created_at: Timestamp
    updated_at: Timestamp | None = None
    published_at: Timestamp | None = None

    def is_visible(self, now: datetime) -> bool:
        """Return True when public readers may see this post at ``now``."""
        return (
            self.status == PostStatus.PUBLISHED
            and self.published_at is not None
            and self.published_at <= now
        )


class Comment(BaseModel):
    """A reader comment, authored by a registered user or a guest."""

    id: int | None = None
    post_id: int
    content: str
    status: CommentStatus = CommentStatus.PENDING
    user_id: int | None = None
    guest_name: str | None = None
    guest_email: str | None = None
    created_at: Timestamp
    updated_at: Timestamp | None = None

    @model_validator(mode="after")
    def _check_author(self) -> Comment:
        has_guest = bool(self.guest_name) or bool(self.guest_email)
        if self.user_id is not None and has_guest:
            raise ValueError("comment cannot have both a user and guest identity")
        if self.user_id is None and not (self.guest_name and self.guest_email):
            raise ValueError("guest comments need both a name and an email")
        return self

    @property
    def owner_id(self) -> int | None:
        return self.user_id

    @property
    def is_guest(self) -> bool:
        return self.user_id is None


class Image(BaseModel):
    """Metadata for an uploaded image; the bytes live in an asset store."""

    id: int | None = None
    filename: str
    url: str
    key: str
    content_type: str
    size: int
    alt_text: str = ""
    uploaded_by: int
    post_id: int | None = None
    created_at: Timestamp
    updated_at: Timestamp | None = None


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class PostInput(BaseModel):
    """Fields accepted when creating a post."""

    title: str = Field(..., max_length=TITLE_MAX_LENGTH)
    content: str
    excerpt: str | None = Field(None, max_length=EXCERPT_MAX_LENGTH)
    category_id: int | None = None
    tag_ids: list[int] = Field(default_factory=list)
    meta_description: str = Field("", max_length=META_DESCRIPTION_MAX_LENGTH)
    meta_keywords: str = Field("", max_length=META_KEYWORDS_MAX_LENGTH)
    featured_image_url: str = Field("", max_length=URL_MAX_LENGTH)
    is_featured: bool = False

    @field_validator("title", "content")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        return _strip_required(v)


class PostChanges(BaseModel):
    """Partial update for a post.  ``None`` leaves a field unchanged,
    except ``excerpt``, which is re-derived from the content when omitted.
    """

    title: str | None = Field(None, max_length=TITLE_MAX_LENGTH)
    content: str | None = None
    excerpt: str | None = Field(None, max_length=EXCERPT_MAX_LENGTH)
    category_id: int | None = None
    tag_ids: list[int] | None = None
    meta_description: str | None = Field(None, max_length=META_DESCRIPTION_MAX_LENGTH)
    meta_keywords: str | None = Field(None, max_length=META_KEYWORDS_MAX_LENGTH)
    featured_image_url: str | None = Field(None, max_length=URL_MAX_LENGTH)
    is_featured: bool | None = None

    @field_validator("title", "content")
    @classmethod
    def _not_blank(cls, v: str | None) -> str | None:
        return None if v is None else _strip_required(v)


class CommentInput(BaseModel):
    """Fields accepted when creating a comment.

    Guest fields are only consulted for anonymous actors.
    """

    content: str = Field(..., max_length=COMMENT_MAX_LENGTH)
    guest_name: str | None = Field(None, max_length=GUEST_FIELD_MAX_LENGTH)
    guest_email: EmailStr | None = None

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("guest_name", "guest_email", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class CategoryInput(BaseModel):
    name: str = Field(..., max_length=CATEGORY_NAME_MAX_LENGTH)
    description: str = Field("", max_length=500)
    meta_description: str = Field("", max_length=META_DESCRIPTION_MAX_LENGTH)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        return _strip_required(v)


class TagInput(BaseModel):
    name: str = Field(..., max_length=TAG_NAME_MAX_LENGTH)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        return _strip_required(v)


class UserInput(BaseModel):
    """Fields accepted when registering a user.

    Credentials are handled outside this package; only the directory
    entry is recorded here.
    """

    username: str = Field(..., max_length=USERNAME_MAX_LENGTH)
    email: EmailStr | None = None
    first_name: str = Field("", max_length=NAME_MAX_LENGTH)
    last_name: str = Field("", max_length=NAME_MAX_LENGTH)

    @field_validator("username")
    @classmethod
    def _username_not_blank(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class UserChanges(BaseModel):
    """Partial profile update.  ``None`` leaves a field unchanged."""

    email: EmailStr | None = None
    first_name: str | None = Field(None, max_length=NAME_MAX_LENGTH)
    last_name: str | None = Field(None, max_length=NAME_MAX_LENGTH)


_InputT = TypeVar("_InputT", bound=BaseModel)


def parse_input(model: type[_InputT], data: _InputT | dict[str, Any]) -> _InputT:
    """Validate raw input into ``model``, raising InputValidationError.

    Already-built model instances pass through untouched.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        messages = [
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise InputValidationError(messages) from exc
