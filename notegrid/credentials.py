"""Per-group password gate.

Passwords are never stored. A group keeps a random alphanumeric salt and a
PBKDF2-SHA256 digest of the password under that salt.
"""

import hmac
import logging
import secrets
import string

from passlib.hash import pbkdf2_sha256

from .config import MIN_PASSWORD_LENGTH, PBKDF2_ROUNDS, SALT_LENGTH
from .models import Group, GroupPatch, Note
from .store import NoteStore

logger = logging.getLogger(__name__)

SALT_ALPHABET = string.ascii_letters + string.digits


class CredentialError(Exception):
    """Base exception for password gate errors."""
    pass


class AuthFailure(CredentialError):
    """Wrong or missing password for a private group."""
    pass


def generate_salt(length: int = SALT_LENGTH) -> str:
    return "".join(secrets.choice(SALT_ALPHABET) for _ in range(length))


def digest(password: str, salt: str) -> str:
    """Hash password under salt; same inputs always give the same string."""
    hasher = pbkdf2_sha256.using(salt=salt.encode("utf-8"), rounds=PBKDF2_ROUNDS)
    return hasher.hash(password)


def set_password(store: NoteStore, group_id: str, password: str) -> Group:
    """Make a group private, protected by password.

    Raises:
        ValueError: If the password is shorter than MIN_PASSWORD_LENGTH
        UnknownGroupError: If the group does not exist
    """
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    store.require_group(group_id)
    salt = generate_salt()
    group = store.update_group(
        group_id,
        GroupPatch(is_private=True, salt=salt, pass_hash=digest(password, salt)),
    )
    logger.info("Group %s is now private", group_id)
    return group


def clear_password(store: NoteStore, group_id: str) -> Group:
    store.require_group(group_id)
    group = store.update_group(
        group_id, GroupPatch(is_private=False, salt=None, pass_hash=None)
    )
    logger.info("Group %s is now public", group_id)
    return group


def verify_password(group: Group, candidate: str) -> bool:
    if not group.salt or not group.pass_hash:
        return False
    return hmac.compare_digest(
        digest(candidate, group.salt).encode("utf-8"), group.pass_hash.encode("utf-8")
    )


def open_group(store: NoteStore, group_id: str, password: str | None = None) -> list[Note]:
    """Return the notes of a group, checking the password of private groups.

    Raises:
        AuthFailure: If the group is private and password does not match
        UnknownGroupError: If the group does not exist
    """
    group = store.require_group(group_id)
    if group.is_private and (password is None or not verify_password(group, password)):
        logger.warning("Wrong password for group %s", group_id)
        raise AuthFailure(f"Wrong password for group '{group.display_title}'")
    return store.notes_in_group(group_id)
