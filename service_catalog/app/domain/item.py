"""
Catalog item entity.

An item is keyed by its ISBN and carries two groups of fields:

- locally-owned fields (price, stock, rating), authoritative only in the
  local store and never taken from the remote provider;
- externally-sourced fields (title, authors, publisher, publication date,
  page count, cover), replaced wholesale on every successful remote fetch.

``synced_at`` marks the last successful remote synchronization and drives
the staleness rule.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from shared.errors import ValidationError


# Provider field -> Item field
REMOTE_FIELD_MAP: Dict[str, str] = {
    "isbn": "isbn",
    "title": "title",
    "authors": "authors",
    "publisher": "publisher",
    "publish_date": "publication_date",
    "number_of_pages": "page_count",
    "cover_image": "cover",
}

LOCAL_FIELDS = ("price", "stock", "rating")


def normalize_isbn(value: Any) -> str:
    """Return a stripped ISBN or raise ValidationError."""
    if value is None:
        raise ValidationError("isbn is required", {"field": "isbn"})
    if not isinstance(value, str):
        raise ValidationError("isbn must be a string", {"field": "isbn", "type": type(value).__name__})
    isbn = value.strip()
    if not isbn:
        raise ValidationError("isbn must not be empty", {"field": "isbn"})
    return isbn


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a persisted marker; unparseable values count as never synchronized."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def _format_iso(value: datetime) -> str:
    return _as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _number(value: Any, cast, default):
    if value is None or isinstance(value, bool):
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        return default


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _author_names(value: Any) -> List[str]:
    # Providers send either plain names or {"name": ...} objects
    if value is None:
        return []
    if isinstance(value, (str, Mapping)):
        value = [value]
    elif not isinstance(value, (list, tuple)):
        return []
    names: List[str] = []
    for entry in value:
        if isinstance(entry, Mapping):
            entry = entry.get("name")
        name = _optional_str(entry)
        if name:
            names.append(name)
    return names


def _publisher_name(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, Mapping):
        value = value.get("name")
    return _optional_str(value)


def _cover_reference(value: Any) -> Optional[str]:
    # {"small": ..., "medium": ..., "large": ...} -> the largest available
    if isinstance(value, Mapping):
        for size in ("large", "medium", "small"):
            if value.get(size):
                return _optional_str(value[size])
        return None
    return _optional_str(value)


@dataclass(frozen=True)
class Item:
    """A catalog item (book) as served to callers."""

    FRESHNESS_WINDOW = timedelta(hours=24)

    isbn: str
    title: str = ""
    authors: List[str] = field(default_factory=list)
    publisher: Optional[str] = None
    publication_date: Optional[str] = None
    page_count: Optional[int] = None
    cover: Optional[str] = None
    price: float = 0.0
    stock: int = 0
    rating: float = 0.0
    synced_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "isbn", normalize_isbn(self.isbn))
        object.__setattr__(self, "authors", list(self.authors))
        if self.synced_at is not None:
            object.__setattr__(self, "synced_at", _as_utc(self.synced_at))

    @classmethod
    def create(cls, fields: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "Item":
        """Build an item from a field mapping, ignoring unknown keys."""
        data = dict(fields or {})
        data.update(kwargs)
        if "isbn" not in data:
            raise ValidationError("isbn is required", {"field": "isbn"})
        known = {f.name for f in dataclasses.fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        """True when synchronized less than FRESHNESS_WINDOW before ``now``."""
        if self.synced_at is None:
            return False
        current = _as_utc(now) if now is not None else utc_now()
        return current - self.synced_at < self.FRESHNESS_WINDOW

    @classmethod
    def from_remote(cls, record: Mapping[str, Any], isbn: Optional[str] = None) -> "Item":
        """Map a provider record onto the externally-sourced fields.

        ``isbn`` is the requested identity; when given it is kept as is and
        the provider's value is ignored. Locally-owned fields keep their
        defaults; the caller merges them in with :meth:`with_local_fields`.
        """
        mapped = {
            target: record.get(source)
            for source, target in REMOTE_FIELD_MAP.items()
        }
        if isbn is None:
            isbn = _optional_str(mapped["isbn"])
        return cls(
            isbn=isbn,
            title=_optional_str(mapped["title"]) or "",
            authors=_author_names(mapped["authors"]),
            publisher=_publisher_name(mapped["publisher"]),
            publication_date=_optional_str(mapped["publication_date"]),
            page_count=_optional_int(mapped["page_count"]),
            cover=_cover_reference(mapped["cover"]),
        )

    def with_local_fields(self, prior: Optional["Item"]) -> "Item":
        """Copy price/stock/rating from ``prior`` (defaults when there is none)."""
        if prior is None:
            return dataclasses.replace(self, price=0.0, stock=0, rating=0.0)
        return dataclasses.replace(self, price=prior.price, stock=prior.stock, rating=prior.rating)

    def mark_synced(self, now: Optional[datetime] = None) -> "Item":
        return dataclasses.replace(self, synced_at=now if now is not None else utc_now())

    def to_dict(self, include_sync_marker: bool = False) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dictionary.

        The synchronization marker is internal; it is only included for the
        persistence form.
        """
        payload: Dict[str, Any] = {
            "isbn": self.isbn,
            "title": self.title,
            "price": self.price,
            "stock": self.stock,
            "authors": list(self.authors),
            "publisher": self.publisher,
            "publication_date": self.publication_date,
            "page_count": self.page_count,
            "cover": self.cover,
            "rating": self.rating,
        }
        if include_sync_marker:
            payload["synced_at"] = _format_iso(self.synced_at) if self.synced_at else None
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Item":
        """Rehydrate an item from its persistence form."""
        if "isbn" not in payload:
            raise ValidationError("isbn is required", {"field": "isbn"})
        return cls(
            isbn=payload["isbn"],
            title=_optional_str(payload.get("title")) or "",
            authors=_author_names(payload.get("authors")),
            publisher=_optional_str(payload.get("publisher")),
            publication_date=_optional_str(payload.get("publication_date")),
            page_count=_optional_int(payload.get("page_count")),
            cover=_optional_str(payload.get("cover")),
            price=_number(payload.get("price"), float, 0.0),
            stock=_number(payload.get("stock"), int, 0),
            rating=_number(payload.get("rating"), float, 0.0),
            synced_at=_parse_timestamp(payload.get("synced_at")),
        )
