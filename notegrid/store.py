"""Record store: notes and groups over a key-value backend.

Every successful mutation writes the whole state as one JSON document and
then notifies subscribers. A failed write is recorded in ``last_error``;
the in-memory change stays applied.
"""

import json
import logging
from dataclasses import dataclass
from typing import Callable

from .config import FIRST_RUN_KEY, SCHEMA_VERSION, STATE_KEY, WELCOME_COLOR, WELCOME_TEXT
from .kvstore import KeyValueError, KeyValueStore
from .models import UNSET, Group, GroupPatch, Note, NotePatch, apply_patch, utcnow

logger = logging.getLogger(__name__)


class NoteStoreError(Exception):
    """Base exception for record store errors."""
    pass


class LoadFailure(NoteStoreError):
    """Persisted state is missing, corrupt or of an unknown version."""
    pass


class SaveFailure(NoteStoreError):
    """State could not be written to the key-value backend."""
    pass


class RecordNotFoundError(NoteStoreError):
    """No note or group with the requested id."""
    pass


class UnknownGroupError(RecordNotFoundError):
    """A note was pointed at a group that does not exist."""
    pass


class DuplicateRecordError(NoteStoreError):
    """A record with this id already exists."""
    pass


class AmbiguousIdError(NoteStoreError):
    """An id prefix matches more than one record."""
    pass


@dataclass(frozen=True)
class Change:
    """Emitted to subscribers after every mutation (and after load/reset)."""

    action: str
    note_ids: tuple[str, ...] = ()
    group_ids: tuple[str, ...] = ()


Listener = Callable[[Change], None]


def decode_state(raw: str) -> tuple[list[Note], list[Group]]:
    """Parse a persisted document into notes and groups.

    Accepts the versioned ``{"version", "notes", "groups"}`` object and the
    legacy bare list of notes.

    Raises:
        LoadFailure: If the document cannot be parsed.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise LoadFailure(f"State is not valid JSON: {e}") from e

    if isinstance(data, list):
        note_dicts, group_dicts = data, []
    elif isinstance(data, dict):
        version = data.get("version", SCHEMA_VERSION)
        if version != SCHEMA_VERSION:
            raise LoadFailure(f"Unsupported state version: {version!r}")
        note_dicts = data.get("notes", [])
        group_dicts = data.get("groups", [])
    else:
        raise LoadFailure(f"Unexpected state document of type {type(data).__name__}")

    try:
        notes = [Note.from_dict(d) for d in note_dicts]
        groups = [Group.from_dict(d) for d in group_dicts]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise LoadFailure(f"Malformed record in state: {e}") from e
    return notes, groups


class NoteStore:
    """Notes and groups keyed by id, persisted as a single JSON blob."""

    def __init__(
        self,
        kv: KeyValueStore,
        key: str = STATE_KEY,
        clock: Callable = utcnow,
    ):
        self._kv = kv
        self.key = key
        self._clock = clock
        self._notes: dict[str, Note] = {}
        self._groups: dict[str, Group] = {}
        self._listeners: list[Listener] = []
        self.last_error: str | None = None
        self.is_loaded = False

    # --- Observers ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: Change) -> None:
        for listener in list(self._listeners):
            listener(change)

    # --- Persistence ---

    def now(self):
        return self._clock()

    def dumps(self) -> str:
        return json.dumps(
            {
                "version": SCHEMA_VERSION,
                "notes": [n.to_dict() for n in self._notes.values()],
                "groups": [g.to_dict() for g in self._groups.values()],
            },
            ensure_ascii=False,
        )

    def load(self, seed_welcome: bool = False) -> bool:
        """Replace in-memory state with the persisted document.

        Never raises: on failure the collections are left empty and
        ``last_error`` holds a message suitable for a retry banner.
        """
        self._notes.clear()
        self._groups.clear()
        ok = True
        try:
            raw = self._kv.get(self.key)
            if raw:
                notes, groups = decode_state(raw)
                self._groups = {g.id: g for g in groups}
                self._notes = {n.id: self._repair(n) for n in notes}
            self.last_error = None
        except (KeyValueError, LoadFailure) as e:
            self.last_error = f"Failed to load notes: {e}"
            logger.warning("Loading %s failed: %s", self.key, e)
            ok = False
        finally:
            self.is_loaded = True

        logger.debug("Loaded %d notes, %d groups", len(self._notes), len(self._groups))
        if ok and seed_welcome:
            self._seed_welcome()
        self._notify(Change("load"))
        return ok

    def _repair(self, note: Note) -> Note:
        if note.group_id is not None and note.group_id not in self._groups:
            logger.warning("Note %s pointed at missing group %s; ungrouping", note.id, note.group_id)
            return apply_patch(note, NotePatch(group_id=None), note.updated_at)
        return note

    def _seed_welcome(self) -> None:
        try:
            first_run_done = self._kv.get(FIRST_RUN_KEY) is not None
        except KeyValueError as e:
            logger.warning("Could not read first-run flag: %s", e)
            return
        if first_run_done or self._notes:
            return
        self.add_note(Note.create(WELCOME_TEXT, color=WELCOME_COLOR, now=self.now()))
        try:
            self._kv.set(FIRST_RUN_KEY, "1")
        except KeyValueError as e:
            self.last_error = f"Failed to save notes: {e}"
            logger.warning("Could not record first-run flag: %s", e)

    def _persist(self) -> bool:
        try:
            self._kv.set(self.key, self.dumps())
        except (KeyValueError, TypeError, ValueError) as e:
            self.last_error = f"Failed to save notes: {e}"
            logger.exception("Saving %s failed", self.key)
            return False
        self.last_error = None
        return True

    def _commit(self, change: Change) -> None:
        self._persist()
        self._notify(change)

    def reset(self) -> None:
        """Forget everything, persisted state and first-run flag included."""
        self._notes.clear()
        self._groups.clear()
        self.last_error = None
        try:
            self._kv.remove(self.key)
            self._kv.remove(FIRST_RUN_KEY)
        except KeyValueError as e:
            self.last_error = f"Failed to reset storage: {e}"
            logger.warning("Reset of %s failed: %s", self.key, e)
        self._notify(Change("reset"))

    # --- Lookup ---

    @property
    def notes(self) -> list[Note]:
        return list(self._notes.values())

    @property
    def groups(self) -> list[Group]:
        return list(self._groups.values())

    def get_note(self, note_id: str) -> Note | None:
        return self._notes.get(note_id)

    def get_group(self, group_id: str) -> Group | None:
        return self._groups.get(group_id)

    def require_note(self, note_id: str) -> Note:
        note = self._notes.get(note_id)
        if note is None:
            raise RecordNotFoundError(f"Note not found: {note_id}")
        return note

    def require_group(self, group_id: str) -> Group:
        group = self._groups.get(group_id)
        if group is None:
            raise UnknownGroupError(f"Group not found: {group_id}")
        return group

    def notes_in_group(self, group_id: str) -> list[Note]:
        return [n for n in self._notes.values() if n.group_id == group_id]

    def _resolve(self, prefix: str, records: dict, kind: str) -> str:
        if prefix in records:
            return prefix
        matches = [record_id for record_id in records if record_id.startswith(prefix)]
        if not matches or not prefix:
            raise RecordNotFoundError(f"{kind} not found: {prefix}")
        if len(matches) > 1:
            raise AmbiguousIdError(f"{kind} id {prefix!r} is ambiguous ({len(matches)} matches)")
        return matches[0]

    def resolve_note(self, prefix: str) -> Note:
        return self._notes[self._resolve(prefix, self._notes, "Note")]

    def resolve_group(self, prefix: str) -> Group:
        return self._groups[self._resolve(prefix, self._groups, "Group")]

    def _check_group(self, group_id) -> None:
        if group_id is not None and group_id is not UNSET and group_id not in self._groups:
            raise UnknownGroupError(f"Group not found: {group_id}")

    # --- Notes ---

    def add_note(self, note: Note) -> Note:
        if note.id in self._notes:
            raise DuplicateRecordError(f"Note already exists: {note.id}")
        self._check_group(note.group_id)
        self._notes[note.id] = note
        self._commit(Change("note_added", (note.id,)))
        return note

    def update_note(self, note_id: str, patch: NotePatch) -> Note | None:
        """Merge patch into the note and stamp updated_at; None if the id is unknown."""
        note = self._notes.get(note_id)
        if note is None:
            return None
        self._check_group(patch.group_id)
        updated = apply_patch(note, patch, self.now())
        self._notes[note_id] = updated
        self._commit(Change("note_updated", (note_id,)))
        return updated

    def toggle_pin(self, note_id: str) -> Note:
        """Flip the pinned flag of a note; pinned notes sort first in the grid."""
        note = self.require_note(note_id)
        return self.update_note(note_id, NotePatch(pinned=not note.pinned))

    def delete_note(self, note_id: str) -> Note | None:
        note = self._notes.pop(note_id, None)
        if note is None:
            return None
        self._commit(Change("note_deleted", (note_id,)))
        return note

    # --- Groups ---

    def add_group(self, group: Group) -> Group:
        if group.id in self._groups:
            raise DuplicateRecordError(f"Group already exists: {group.id}")
        self._groups[group.id] = group
        self._commit(Change("group_added", group_ids=(group.id,)))
        return group

    def update_group(self, group_id: str, patch: GroupPatch) -> Group | None:
        group = self._groups.get(group_id)
        if group is None:
            return None
        if patch.title is None:
            patch = GroupPatch(
                title="", is_private=patch.is_private, salt=patch.salt, pass_hash=patch.pass_hash
            )
        updated = apply_patch(group, patch, self.now())
        self._groups[group_id] = updated
        self._commit(Change("group_updated", group_ids=(group_id,)))
        return updated

    def delete_group(self, group_id: str) -> Group | None:
        """Delete a group together with every note inside it."""
        group = self._groups.pop(group_id, None)
        if group is None:
            return None
        removed = tuple(n.id for n in self._notes.values() if n.group_id == group_id)
        for note_id in removed:
            del self._notes[note_id]
        logger.debug("Deleted group %s with %d notes", group_id, len(removed))
        self._commit(Change("group_deleted", removed, (group_id,)))
        return group

    # --- Membership ---

    def _touch_group(self, group_id: str, now) -> None:
        group = self._groups.get(group_id)
        if group is not None:
            self._groups[group_id] = apply_patch(group, GroupPatch(), now)

    def add_to_group(self, note_id: str, group_id: str) -> Note:
        note = self.require_note(note_id)
        self.require_group(group_id)
        now = self.now()
        updated = apply_patch(note, NotePatch(group_id=group_id), now)
        self._notes[note_id] = updated
        self._touch_group(group_id, now)
        group_ids = (group_id,)
        if note.group_id is not None and note.group_id != group_id:
            self._touch_group(note.group_id, now)
            group_ids = (note.group_id, group_id)
        self._commit(Change("membership", (note_id,), group_ids))
        return updated

    def remove_from_group(self, note_id: str) -> Note:
        note = self.require_note(note_id)
        now = self.now()
        updated = apply_patch(note, NotePatch(group_id=None), now)
        self._notes[note_id] = updated
        group_ids = ()
        if note.group_id is not None:
            self._touch_group(note.group_id, now)
            group_ids = (note.group_id,)
        self._commit(Change("membership", (note_id,), group_ids))
        return updated

    def move_group_members(self, source_id: str, target_id: str) -> list[Note]:
        """Move every note of source into target; source itself is kept."""
        self.require_group(source_id)
        self.require_group(target_id)
        now = self.now()
        moved = []
        for note in self.notes_in_group(source_id):
            updated = apply_patch(note, NotePatch(group_id=target_id), now)
            self._notes[note.id] = updated
            moved.append(updated)
        self._touch_group(source_id, now)
        self._touch_group(target_id, now)
        self._commit(Change("membership", tuple(n.id for n in moved), (source_id, target_id)))
        return moved
