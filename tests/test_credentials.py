import pytest

from notegrid.config import STATE_KEY
from notegrid.credentials import (
    SALT_ALPHABET,
    AuthFailure,
    clear_password,
    digest,
    generate_salt,
    open_group,
    set_password,
    verify_password,
)
from notegrid.models import Group
from notegrid.store import UnknownGroupError


def test_sesame_scenario(store, make_group):
    group = make_group("G")

    private = set_password(store, group.id, "sesame")
    assert private.is_private
    assert verify_password(private, "sesame") is True
    assert verify_password(private, "Sesame") is False

    public = clear_password(store, group.id)
    assert public.is_private is False
    assert public.salt is None
    assert public.pass_hash is None
    assert verify_password(public, "sesame") is False


def test_set_password_stamps_group(store, make_group):
    group = make_group("G")
    private = set_password(store, group.id, "sesame")
    assert private.updated_at > group.updated_at
    assert len(private.salt) == 16
    assert set(private.salt) <= set(SALT_ALPHABET)


def test_new_password_replaces_old(store, make_group):
    group = make_group("G")
    first = set_password(store, group.id, "sesame")
    second = set_password(store, group.id, "open up")
    assert first.salt != second.salt
    assert verify_password(second, "open up")
    assert not verify_password(second, "sesame")


def test_short_password_is_rejected(store, make_group):
    group = make_group("G")
    with pytest.raises(ValueError):
        set_password(store, group.id, "abc")
    with pytest.raises(ValueError):
        set_password(store, group.id, "")
    assert store.get_group(group.id).is_private is False


def test_unknown_group(store):
    with pytest.raises(UnknownGroupError):
        set_password(store, "missing", "sesame")


def test_password_is_not_persisted_in_clear(store, kv, make_group):
    group = make_group("G")
    set_password(store, group.id, "sesame")
    assert "sesame" not in kv.get(STATE_KEY)


def test_digest_depends_on_salt():
    assert digest("sesame", "salt1") == digest("sesame", "salt1")
    assert digest("sesame", "salt1") != digest("sesame", "salt2")
    assert len(generate_salt(8)) == 8


def test_open_group_gate(store, make_note, make_group):
    group = make_group("G")
    note = make_note("secret", group_id=group.id)
    assert open_group(store, group.id) == [note]

    set_password(store, group.id, "sesame")
    with pytest.raises(AuthFailure):
        open_group(store, group.id)
    with pytest.raises(AuthFailure):
        open_group(store, group.id, "wrong")
    assert open_group(store, group.id, "sesame") == [note]


def test_tampered_non_ascii_hash_fails_closed(store, make_group):
    group = set_password(store, make_group("G").id, "sesame")
    tampered = Group(id=group.id, title="G", is_private=True, salt=group.salt, pass_hash="hä∫h")
    assert verify_password(tampered, "sesame") is False
