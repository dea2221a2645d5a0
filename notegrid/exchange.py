"""Import and export of notes and groups.

A note exports as its JSON object, a group as ``{"group": ..., "notes": [...]}``.
Imports always get fresh ids, and imported groups are always public:
password material is never exported nor carried over.
"""

import json
import logging
from dataclasses import dataclass, field

from .converters import html_document, html_to_markdown, looks_like_html
from .models import Group, Note, read_str
from .store import NoteStore

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "text", "html")


class ImportFailure(Exception):
    """Import payload could not be understood."""
    pass


@dataclass
class ImportResult:
    groups: list[Group] = field(default_factory=list)
    notes: list[Note] = field(default_factory=list)


def _dumps(data) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


# --- Export ---

def export_note(note: Note) -> dict:
    return note.to_dict()


def export_group(store: NoteStore, group_id: str) -> dict:
    group = store.require_group(group_id)
    return {
        "group": group.to_dict(include_credentials=False),
        "notes": [n.to_dict() for n in store.notes_in_group(group_id)],
    }


def note_text(note: Note) -> str:
    """Plain text used for sharing; the note's own formatting is kept."""
    if note.title and note.title.strip():
        return f"{note.title.strip()}\n\n{note.text}"
    return note.text


def group_text(group: Group, notes: list[Note]) -> str:
    parts = [group.display_title]
    parts.extend(note_text(n) for n in notes)
    return "\n\n".join(parts)


def render_note(note: Note, fmt: str = "json") -> str:
    if fmt == "json":
        return _dumps(export_note(note))
    if fmt == "text":
        return note_text(note)
    if fmt == "html":
        heading = note.title.strip() if note.title and note.title.strip() else ""
        return html_document(note.display_title, [(heading, note.text)])
    raise ValueError(f"Unknown export format: {fmt}")


def render_group(store: NoteStore, group_id: str, fmt: str = "json") -> str:
    group = store.require_group(group_id)
    notes = store.notes_in_group(group_id)
    if fmt == "json":
        return _dumps(export_group(store, group_id))
    if fmt == "text":
        return group_text(group, notes)
    if fmt == "html":
        return html_document(group.display_title, [(n.display_title, n.text) for n in notes])
    raise ValueError(f"Unknown export format: {fmt}")


# --- Import ---

def _note_from_export(data, now, group_id=None) -> Note:
    if not isinstance(data, dict):
        raise ImportFailure(f"Expected a note object, got {type(data).__name__}")
    try:
        return Note.create(
            read_str(data, "text", "content") or "",
            title=read_str(data, "title"),
            color=read_str(data, "color"),
            numbered=bool(data.get("numbered", False)),
            pinned=bool(data.get("pinned", False)),
            group_id=group_id,
            now=now,
        )
    except (TypeError, ValueError) as e:
        raise ImportFailure(f"Invalid note in import: {e}") from e


def _group_from_export(data, now) -> Group:
    if not isinstance(data, dict):
        raise ImportFailure(f"Expected a group object, got {type(data).__name__}")
    try:
        title = read_str(data, "title", "name")
    except ValueError as e:
        raise ImportFailure(f"Invalid group in import: {e}") from e
    return Group.create(title or "", now=now)


def _plan_groups(group_dicts, note_dicts, now, match_ids: bool) -> ImportResult:
    if not isinstance(group_dicts, list) or not isinstance(note_dicts, list):
        raise ImportFailure("'groups' and 'notes' must be lists")
    result = ImportResult()
    claimed = set()
    for data in group_dicts:
        group = _group_from_export(data, now)
        result.groups.append(group)
        if match_ids and data.get("id") is None:
            continue
        for i, note_data in enumerate(note_dicts):
            if i in claimed:
                continue
            if match_ids and (not isinstance(note_data, dict) or note_data.get("group_id") != data.get("id")):
                continue
            result.notes.append(_note_from_export(note_data, now, group.id))
            claimed.add(i)
    for i, note_data in enumerate(note_dicts):
        if i not in claimed:
            result.notes.append(_note_from_export(note_data, now))
    return result


def plan_import(raw: str, now) -> ImportResult:
    """Turn an import payload into new, not yet stored records."""
    if not raw or not raw.strip():
        raise ImportFailure("Nothing to import")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict) and "group" in data and "notes" in data:
        return _plan_groups([data["group"]], data["notes"], now, match_ids=False)
    if isinstance(data, dict) and "groups" in data and "notes" in data:
        return _plan_groups(data["groups"], data["notes"], now, match_ids=True)
    if isinstance(data, dict) and "id" in data and ("text" in data or "content" in data):
        return ImportResult(notes=[_note_from_export(data, now)])

    text = html_to_markdown(raw) if looks_like_html(raw) else raw
    return ImportResult(notes=[Note.create(text, now=now)])


def import_data(store: NoteStore, raw: str) -> ImportResult:
    """Import an exported note, group, snapshot, HTML page or plain text.

    Raises:
        ImportFailure: If the payload is empty or malformed
    """
    result = plan_import(raw, store.now())
    for group in result.groups:
        store.add_group(group)
    for note in result.notes:
        store.add_note(note)
    logger.info("Imported %d groups, %d notes", len(result.groups), len(result.notes))
    return result
