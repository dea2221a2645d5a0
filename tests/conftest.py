from datetime import datetime, timedelta, timezone

import pytest

from notegrid.kvstore import KeyValueError, MemoryKeyValueStore
from notegrid.models import Group, Note
from notegrid.store import NoteStore


class StepClock:
    """Clock that moves forward one second per reading."""

    def __init__(self, start=datetime(2026, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        self.current += timedelta(seconds=1)
        return self.current


class FlakyKeyValueStore(MemoryKeyValueStore):
    """Memory store whose writes can be switched to fail."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_writes = False
        self.writes = 0

    def set(self, key, value):
        if self.fail_writes:
            raise KeyValueError("disk full")
        self.writes += 1
        super().set(key, value)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def kv():
    return FlakyKeyValueStore()


@pytest.fixture
def store(kv, clock):
    s = NoteStore(kv, clock=clock)
    s.load()
    return s


@pytest.fixture
def make_note(store):
    def _make(text="", **kwargs):
        return store.add_note(Note.create(text, now=store.now(), **kwargs))
    return _make


@pytest.fixture
def make_group(store):
    def _make(title="Group"):
        return store.add_group(Group.create(title, now=store.now()))
    return _make


def assert_integrity(store):
    group_ids = {g.id for g in store.groups}
    for note in store.notes:
        assert note.group_id is None or note.group_id in group_ids
