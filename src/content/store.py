"""JSON-backed content repository.

Persists posts, comments, categories, tags, users, and images in a single
JSON file, loaded on init and saved after every committed write.  With no
directory the store lives purely in memory.

Every mutation made inside ``transaction()`` is all-or-nothing: the data
is snapshotted on entry and restored if the block raises, so a state
transition can be abandoned mid-flight without leaving partial writes.
A write made outside any transaction runs in one of its own.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel, Field

from inkwell.content.models import Category, Comment, Image, Post, Tag, User
from inkwell.shared.errors import ConflictError, DependencyError

logger = logging.getLogger(__name__)

STORE_FILENAME = ".inkwell-store.json"

RecordT = TypeVar("RecordT", bound=BaseModel)


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    posts: list[Post] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    users: list[User] = Field(default_factory=list)
    images: list[Image] = Field(default_factory=list)
    next_ids: dict[str, int] = Field(default_factory=dict)


class Table(Protocol[RecordT]):
    """Repository operations for one record type."""

    def get(self, record_id: int) -> RecordT | None: ...

    def find_by_slug(self, slug: str) -> RecordT | None: ...

    def find_by(self, field: str, value: Any) -> RecordT | None: ...

    def save(self, record: RecordT) -> RecordT: ...

    def delete(self, record_id: int) -> bool: ...

    def query(
        self,
        where: Callable[[RecordT], bool] | None = None,
        order_by: Callable[[RecordT], Any] | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[RecordT]: ...

    def count(self, where: Callable[[RecordT], bool] | None = None) -> int: ...


class Repository(Protocol):
    """Storage collaborator consumed by the content services."""

    posts: Table[Post]
    comments: Table[Comment]
    categories: Table[Category]
    tags: Table[Tag]
    users: Table[User]
    images: Table[Image]

    def transaction(self) -> Any: ...


class _Table(Generic[RecordT]):
    """One collection inside a ContentStore.

    Records handed out are copies; changes only land through ``save``.
    """

    def __init__(self, store: ContentStore, name: str, unique: tuple[str, ...] = ()) -> None:
        self._store = store
        self._name = name
        self._unique = unique

    @property
    def _records(self) -> list[RecordT]:
        return getattr(self._store._data, self._name)

    def _index_of(self, record_id: int) -> int | None:
        for i, record in enumerate(self._records):
            if record.id == record_id:  # type: ignore[attr-defined]
                return i
        return None

    # ── Read operations ──────────────────────────────────────────

    def get(self, record_id: int) -> RecordT | None:
        """Return a copy of the record with this id, or None."""
        with self._store._lock:
            i = self._index_of(record_id)
            return None if i is None else self._records[i].model_copy(deep=True)

    def find_by(self, field: str, value: Any) -> RecordT | None:
        """Return the first record whose ``field`` equals ``value`` exactly."""
        with self._store._lock:
            for record in self._records:
                if getattr(record, field) == value:
                    return record.model_copy(deep=True)
        return None

    def find_by_slug(self, slug: str) -> RecordT | None:
        return self.find_by("slug", slug)

    def query(
        self,
        where: Callable[[RecordT], bool] | None = None,
        order_by: Callable[[RecordT], Any] | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[RecordT]:
        """Filter, sort, and paginate records."""
        with self._store._lock:
            results = [r for r in self._records if where is None or where(r)]
            if order_by is not None:
                results.sort(key=order_by, reverse=descending)
            end = None if limit is None else offset + limit
            return [r.model_copy(deep=True) for r in results[offset:end]]

    def count(self, where: Callable[[RecordT], bool] | None = None) -> int:
        with self._store._lock:
            return sum(1 for r in self._records if where is None or where(r))

    # ── Write operations ─────────────────────────────────────────

    def save(self, record: RecordT) -> RecordT:
        """Insert or replace a record by id, assigning an id on insert.

        Raises ConflictError if a unique field collides with another record.
        """
        with self._store.transaction():
            record = record.model_copy(deep=True)
            record_id = record.id  # type: ignore[attr-defined]
            for field in self._unique:
                value = getattr(record, field)
                for other in self._records:
                    if other.id != record_id and getattr(other, field) == value:  # type: ignore[attr-defined]
                        raise ConflictError(f"{self._name}.{field} already taken: {value}")
            if record_id is None:
                record.id = self._store._next_id(self._name)  # type: ignore[attr-defined]
                self._records.append(record)
            else:
                i = self._index_of(record_id)
                if i is None:
                    self._records.append(record)
                else:
                    self._records[i] = record
            return record.model_copy(deep=True)

    def delete(self, record_id: int) -> bool:
        """Remove a record.  Returns False if it did not exist."""
        with self._store.transaction():
            i = self._index_of(record_id)
            if i is None:
                return False
            del self._records[i]
            return True


class ContentStore:
    """JSON-backed repository for all content records.

    Pass ``data_dir=None`` for an in-memory store (tests, dry runs).
    """

    def __init__(self, data_dir: Path | None = None) -> None:
        self._path = data_dir / STORE_FILENAME if data_dir is not None else None
        self._lock = threading.RLock()
        self._depth = 0
        self._data = self._load()
        self.posts: _Table[Post] = _Table(self, "posts", unique=("slug",))
        self.comments: _Table[Comment] = _Table(self, "comments")
        self.categories: _Table[Category] = _Table(self, "categories", unique=("slug",))
        self.tags: _Table[Tag] = _Table(self, "tags", unique=("slug",))
        self.users: _Table[User] = _Table(self, "users")
        self.images: _Table[Image] = _Table(self, "images")

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _StoreData:
        if self._path is None or not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt content store at %s, starting fresh", self._path)
            return _StoreData()

    def _save(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                self._data.model_dump_json(indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            logger.warning("Failed to write content store at %s: %s", self._path, exc)
            raise DependencyError(f"could not write content store: {exc}") from exc

    def _next_id(self, name: str) -> int:
        current = self._data.next_ids.get(name, 0)
        existing = max((r.id or 0 for r in getattr(self._data, name)), default=0)
        next_id = max(current, existing) + 1
        self._data.next_ids[name] = next_id
        return next_id

    # ── Transactions ─────────────────────────────────────────────

    @contextmanager
    def transaction(self) -> Iterator[ContentStore]:
        """Run a block of reads and writes as one atomic unit.

        Nested transactions join the outermost one.
        """
        with self._lock:
            if self._depth:
                yield self
                return
            snapshot = self._data.model_copy(deep=True)
            self._depth = 1
            try:
                yield self
                self._depth = 0
                self._save()
            except BaseException:
                self._data = snapshot
                raise
            finally:
                self._depth = 0

    @property
    def path(self) -> Path | None:
        return self._path
