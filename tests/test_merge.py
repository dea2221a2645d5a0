import pytest

from notegrid.credentials import set_password, verify_password
from notegrid.merge import link_notes, merge_groups
from notegrid.store import RecordNotFoundError

from .conftest import assert_integrity


def test_linking_two_standalone_notes_creates_group(store, make_note):
    a = make_note("Buy milk")
    b = make_note("Buy eggs")

    group = link_notes(store, a.id, b.id)

    assert len(store.groups) == 1
    assert group.display_title == "Untitled group"
    assert {n.id for n in store.notes_in_group(group.id)} == {a.id, b.id}
    assert store.get_note(a.id).group_id == store.get_note(b.id).group_id == group.id
    assert store.get_note(a.id).updated_at > a.updated_at
    assert store.get_note(b.id).updated_at > b.updated_at
    assert_integrity(store)


def test_dragged_note_joins_target_group(store, make_note, make_group):
    group = make_group("G")
    target = make_note("in group", group_id=group.id)
    dragged = make_note("loose")

    result = link_notes(store, target.id, dragged.id)

    assert result.id == group.id
    assert store.get_note(dragged.id).group_id == group.id
    assert len(store.groups) == 1


def test_target_joins_dragged_note_group(store, make_note, make_group):
    group = make_group("G")
    target = make_note("loose")
    dragged = make_note("in group", group_id=group.id)

    result = link_notes(store, target.id, dragged.id)

    assert result.id == group.id
    assert store.get_note(target.id).group_id == group.id


def test_same_group_is_a_noop(store, kv, make_note, make_group):
    group = make_group("G")
    a = make_note("a", group_id=group.id)
    b = make_note("b", group_id=group.id)
    changes = []
    store.subscribe(changes.append)
    writes = kv.writes

    assert link_notes(store, a.id, b.id) == group
    assert link_notes(store, a.id, b.id) == group

    assert changes == []
    assert kv.writes == writes
    assert store.get_group(group.id) == group


def test_different_groups_merge_into_drop_target(store, make_note, make_group):
    g = make_group("G")
    h = make_group("H")
    a = make_note("a", group_id=g.id)
    b = make_note("b", group_id=g.id)
    c = make_note("c", group_id=h.id)

    survivor = link_notes(store, a.id, c.id)

    assert survivor.id == g.id
    assert store.get_group(h.id) is None
    assert [grp.id for grp in store.groups] == [g.id]
    assert {n.id for n in store.notes_in_group(g.id)} == {a.id, b.id, c.id}
    assert len(store.notes) == 3
    assert_integrity(store)


def test_merge_direction_follows_target(store, make_note, make_group):
    g = make_group("G")
    h = make_group("H")
    a = make_note("a", group_id=g.id)
    c = make_note("c", group_id=h.id)

    survivor = link_notes(store, c.id, a.id)

    assert survivor.id == h.id
    assert store.get_group(g.id) is None
    assert {n.id for n in store.notes_in_group(h.id)} == {a.id, c.id}


def test_merge_groups_with_itself_changes_nothing(store, make_note, make_group):
    g = make_group("G")
    make_note("a", group_id=g.id)
    assert merge_groups(store, g.id, g.id) == g
    assert len(store.notes_in_group(g.id)) == 1


def test_link_note_to_itself_is_rejected(store, make_note):
    a = make_note("a")
    with pytest.raises(ValueError):
        link_notes(store, a.id, a.id)


def test_link_missing_note(store, make_note):
    a = make_note("a")
    with pytest.raises(RecordNotFoundError):
        link_notes(store, a.id, "missing")
    assert store.groups == []


def test_private_group_merged_into_public_one_stays_private(store, make_note, make_group):
    public = make_group("Public")
    vault = make_group("Vault")
    a = make_note("a", group_id=public.id)
    secret = make_note("top secret", group_id=vault.id)
    vault = set_password(store, vault.id, "sesame")

    survivor = link_notes(store, a.id, secret.id)

    assert survivor.id == public.id
    assert survivor.is_private
    assert (survivor.salt, survivor.pass_hash) == (vault.salt, vault.pass_hash)
    assert verify_password(survivor, "sesame")
    assert store.get_note(secret.id).group_id == public.id


def test_private_target_keeps_its_own_password(store, make_note, make_group):
    g = make_group("G")
    h = make_group("H")
    a = make_note("a", group_id=g.id)
    c = make_note("c", group_id=h.id)
    set_password(store, g.id, "first")
    set_password(store, h.id, "second")

    survivor = link_notes(store, a.id, c.id)

    assert verify_password(survivor, "first")
    assert not verify_password(survivor, "second")


def test_public_group_merged_into_private_one(store, make_note, make_group):
    g = make_group("G")
    h = make_group("H")
    a = make_note("a", group_id=g.id)
    c = make_note("c", group_id=h.id)
    set_password(store, g.id, "sesame")

    survivor = link_notes(store, a.id, c.id)

    assert survivor.is_private
    assert verify_password(survivor, "sesame")
