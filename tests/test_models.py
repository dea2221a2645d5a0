from datetime import datetime, timezone

import pytest

from notegrid.models import UNSET, Group, GroupPatch, Note, NotePatch, apply_patch


T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
T1 = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def test_display_title_falls_back_to_first_line():
    note = Note(id="n1", text="  Shopping\nmilk\neggs")
    assert note.display_title == "Shopping"
    assert note.preview == "milk\neggs"


def test_display_title_prefers_explicit_title():
    note = Note(id="n1", text="milk", title="Shopping")
    assert note.display_title == "Shopping"
    assert note.preview == "milk"


def test_empty_note_has_placeholder_title():
    assert Note(id="n1").display_title == "(Untitled)"


def test_group_placeholder_title():
    assert Group(id="g1", title="  ").display_title == "Untitled group"


def test_color_is_validated_and_normalized():
    assert Note(id="n1", color="#64b5f6").color == "#64B5F6"
    with pytest.raises(ValueError):
        Note(id="n1", color="blue")


def test_private_group_requires_credentials():
    with pytest.raises(ValueError):
        Group(id="g1", is_private=True)
    with pytest.raises(ValueError):
        Group(id="g1", is_private=True, salt="abc")


def test_patch_unset_keeps_and_none_clears():
    note = Note(id="n1", text="a", color="#E57373", created_at=T0, updated_at=T0)

    kept = apply_patch(note, NotePatch(text="b"), T1)
    assert kept.text == "b"
    assert kept.color == "#E57373"
    assert kept.updated_at == T1
    assert kept.created_at == T0

    cleared = apply_patch(note, NotePatch(color=None), T1)
    assert cleared.color is None
    assert cleared.text == "a"


def test_unset_is_falsy_singleton():
    assert not UNSET
    assert NotePatch().text is UNSET
    assert GroupPatch().title is UNSET


def test_note_dict_round_trip():
    note = Note(id="n1", text="hi", title="", created_at=T0, updated_at=T1,
                color="#E57373", group_id="g1", numbered=True)
    assert Note.from_dict(note.to_dict()) == note


def test_note_from_dict_tolerates_missing_and_legacy_fields():
    note = Note.from_dict({"id": "n1", "content": "legacy body"})
    assert note.text == "legacy body"
    assert note.group_id is None
    assert note.numbered is False
    assert note.updated_at == note.created_at


def test_group_from_dict_drops_half_credentials():
    group = Group.from_dict({"id": "g1", "name": "Old", "is_private": True})
    assert group.title == "Old"
    assert group.is_private is False


def test_group_export_dict_without_credentials():
    group = Group(id="g1", title="Secret", is_private=True, salt="s", pass_hash="h")
    data = group.to_dict(include_credentials=False)
    assert data["is_private"] is False
    assert data["salt"] is None
    assert data["pass_hash"] is None


def test_note_matches_is_case_insensitive():
    note = Note(id="n1", text="Buy MILK", title="Errands")
    assert note.matches("milk")
    assert note.matches("errand")
    assert not note.matches("eggs")


def test_pinned_round_trips_and_defaults_off():
    note = Note(id="n1", text="x", created_at=T0, updated_at=T0, pinned=True)
    assert note.to_dict()["pinned"] is True
    assert Note.from_dict(note.to_dict()) == note
    assert Note.from_dict({"id": "n2"}).pinned is False
    assert apply_patch(note, NotePatch(pinned=False), T1).pinned is False


@pytest.mark.parametrize("data", [
    {"id": "n1", "text": 5},
    {"id": "n1", "content": ["a"]},
    {"id": "n1", "title": 1.5},
    {"id": "n1", "group_id": 3},
])
def test_note_from_dict_rejects_non_string_fields(data):
    with pytest.raises(ValueError):
        Note.from_dict(data)


def test_group_from_dict_rejects_non_string_title():
    with pytest.raises(ValueError):
        Group.from_dict({"id": "g1", "title": 42})
    with pytest.raises(ValueError):
        Group.from_dict({"id": "g1", "name": None, "salt": 7})
