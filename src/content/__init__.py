"""Content domain: models, the access policy, and the content store.

The services (lifecycle, moderation, taxonomy, media, stats, users) live in
their own modules and are imported from there.
"""

from inkwell.content.access import Actor, can_mutate
from inkwell.content.models import (
    Category,
    Comment,
    CommentStatus,
    Image,
    Post,
    PostStatus,
    Role,
    Tag,
    User,
)
from inkwell.content.store import ContentStore, Repository

__all__ = [
    "Actor",
    "Category",
    "Comment",
    "CommentStatus",
    "ContentStore",
    "Image",
    "Post",
    "PostStatus",
    "Repository",
    "Role",
    "Tag",
    "User",
    "can_mutate",
]
