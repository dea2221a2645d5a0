"""Data models for notegrid."""

import re
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone

from .config import DEFAULT_GROUP_TITLE, UNTITLED_NOTE

PALETTE = (
    "#E57373", "#F06292", "#BA68C8", "#9575CD",
    "#7986CB", "#64B5F6", "#4FC3F7", "#4DD0E1",
    "#4DB6AC", "#81C784", "#AED581", "#DCE775",
    "#FFF176", "#FFD54F", "#FFB74D", "#FF8A65",
    "#A1887F", "#90A4AE",
)

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


class _Unset:
    """Marker for patch fields that should be left alone."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def normalize_color(value: str | None) -> str | None:
    """Validate a #RRGGBB colour tag and upper-case it."""
    if value is None:
        return None
    if not _COLOR_RE.match(value):
        raise ValueError(f"Invalid colour {value!r}, expected #RRGGBB")
    return value.upper()


def _parse_time(value, fallback: datetime) -> datetime:
    if not value:
        return fallback
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def read_str(data: dict, key: str, *aliases: str) -> str | None:
    """Return the first present key among key and aliases, which must be a string or None."""
    for name in (key, *aliases):
        if name in data:
            value = data[name]
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Field {name!r} must be a string, not {type(value).__name__}")
            return value
    return None


@dataclass(frozen=True)
class Note:
    """A user-authored text record, optionally inside a group."""

    id: str
    text: str = ""
    title: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    color: str | None = None
    group_id: str | None = None
    numbered: bool = False
    pinned: bool = False

    def __post_init__(self):
        object.__setattr__(self, "color", normalize_color(self.color))

    @classmethod
    def create(cls, text: str = "", **kwargs) -> "Note":
        now = kwargs.pop("now", None) or utcnow()
        return cls(id=new_id(), text=text, created_at=now, updated_at=now, **kwargs)

    @property
    def first_line(self) -> str:
        lines = self.text.strip().split("\n")
        return lines[0].strip() if lines else ""

    @property
    def display_title(self) -> str:
        """Explicit title, else the first line of text, else a placeholder."""
        if self.title and self.title.strip():
            return self.title.strip()
        return self.first_line or UNTITLED_NOTE

    @property
    def preview(self) -> str:
        """Text shown under the title: everything after the first line."""
        if self.title and self.title.strip():
            return self.text.strip()
        lines = self.text.strip().split("\n")
        if len(lines) <= 1:
            return ""
        return "\n".join(lines[1:]).strip()

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on text and title."""
        needle = query.lower()
        return needle in self.text.lower() or needle in (self.title or "").lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "text": self.text,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "color": self.color,
            "group_id": self.group_id,
            "numbered": self.numbered,
            "pinned": self.pinned,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Note":
        now = utcnow()
        created = _parse_time(data.get("created_at"), now)
        return cls(
            id=str(data["id"]),
            title=read_str(data, "title"),
            # older exports call the body "content"
            text=read_str(data, "text", "content") or "",
            created_at=created,
            updated_at=_parse_time(data.get("updated_at"), created),
            color=read_str(data, "color"),
            group_id=read_str(data, "group_id"),
            numbered=bool(data.get("numbered", False)),
            pinned=bool(data.get("pinned", False)),
        )


@dataclass(frozen=True)
class Group:
    """A named collection of notes, optionally password protected."""

    id: str
    title: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    is_private: bool = False
    salt: str | None = None
    pass_hash: str | None = None

    def __post_init__(self):
        if self.is_private and not (self.salt and self.pass_hash):
            raise ValueError("A private group needs both a salt and a password hash")

    @classmethod
    def create(cls, title: str = DEFAULT_GROUP_TITLE, **kwargs) -> "Group":
        now = kwargs.pop("now", None) or utcnow()
        return cls(id=new_id(), title=title, created_at=now, updated_at=now, **kwargs)

    @property
    def display_title(self) -> str:
        return self.title.strip() or DEFAULT_GROUP_TITLE

    def matches(self, query: str) -> bool:
        return query.lower() in self.title.lower()

    def to_dict(self, include_credentials: bool = True) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "is_private": self.is_private,
            "salt": self.salt,
            "pass_hash": self.pass_hash,
        }
        if not include_credentials:
            data["is_private"] = False
            data["salt"] = None
            data["pass_hash"] = None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Group":
        now = utcnow()
        created = _parse_time(data.get("created_at"), now)
        salt = read_str(data, "salt")
        pass_hash = read_str(data, "pass_hash")
        return cls(
            id=str(data["id"]),
            title=read_str(data, "title", "name") or "",
            created_at=created,
            updated_at=_parse_time(data.get("updated_at"), created),
            is_private=bool(data.get("is_private")) and bool(salt and pass_hash),
            salt=salt,
            pass_hash=pass_hash,
        )


@dataclass(frozen=True)
class NotePatch:
    """Partial note update. UNSET leaves a field alone; None clears it."""

    text: object = UNSET
    title: object = UNSET
    color: object = UNSET
    group_id: object = UNSET
    numbered: object = UNSET
    pinned: object = UNSET


@dataclass(frozen=True)
class GroupPatch:
    """Partial group update. UNSET leaves a field alone; None clears it."""

    title: object = UNSET
    is_private: object = UNSET
    salt: object = UNSET
    pass_hash: object = UNSET


def apply_patch(record, patch, now: datetime):
    """Return a copy of record with the set fields of patch and a fresh updated_at."""
    changes = {
        f.name: getattr(patch, f.name)
        for f in fields(patch)
        if getattr(patch, f.name) is not UNSET
    }
    changes["updated_at"] = now
    return replace(record, **changes)
