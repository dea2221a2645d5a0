"""Build the displayed grid of groups and standalone notes."""

from dataclasses import dataclass
from typing import Iterator, Union

from .models import Group, Note
from .store import NoteStore


@dataclass(frozen=True)
class GroupItem:
    group: Group
    notes: tuple[Note, ...]

    kind = "group"

    @property
    def id(self) -> str:
        return self.group.id

    @property
    def title(self) -> str:
        return self.group.display_title

    @property
    def locked(self) -> bool:
        return self.group.is_private

    @property
    def updated_at(self):
        return self.group.updated_at


@dataclass(frozen=True)
class NoteItem:
    note: Note

    kind = "note"

    @property
    def id(self) -> str:
        return self.note.id

    @property
    def title(self) -> str:
        return self.note.display_title

    @property
    def pinned(self) -> bool:
        return self.note.pinned

    @property
    def updated_at(self):
        return self.note.updated_at


GridItem = Union[GroupItem, NoteItem]


def _group_matches(group: Group, members: list[Note], query: str) -> bool:
    if not query:
        return True
    if group.matches(query):
        return True
    return any(note.matches(query) for note in members)


def iter_grid(store: NoteStore, query: str = "") -> Iterator[GridItem]:
    """Yield group items (newest first) followed by standalone note items.

    Pinned notes come before the other standalone notes. The query is a
    case-insensitive substring; an empty query shows everything. Nothing is
    cached, each call starts over.
    """
    query = (query or "").strip()

    group_items = []
    for group in store.groups:
        members = store.notes_in_group(group.id)
        if _group_matches(group, members, query):
            group_items.append(GroupItem(group, tuple(members)))

    note_items = [
        NoteItem(note)
        for note in store.notes
        if note.group_id is None and (not query or note.matches(query))
    ]

    group_items.sort(key=lambda item: item.updated_at, reverse=True)
    note_items.sort(key=lambda item: (item.pinned, item.updated_at), reverse=True)
    yield from group_items
    yield from note_items


def project(store: NoteStore, query: str = "") -> list[GridItem]:
    return list(iter_grid(store, query))
