"""Grouping rules for dropping one note onto another.

The drop target's group always survives a merge: when two notes from
different groups are linked, the dragged note's whole group moves into
the target's group and the emptied group is deleted. Notes of a private
group never end up in a public one: a public target inherits the
source's password.
"""

import logging

from .models import Group, GroupPatch
from .store import NoteStore

logger = logging.getLogger(__name__)


def merge_groups(store: NoteStore, target_id: str, source_id: str) -> Group:
    """Move all notes of source into target, then delete source."""
    target = store.require_group(target_id)
    if target_id == source_id:
        return target
    source = store.require_group(source_id)
    if source.is_private and not target.is_private:
        store.update_group(
            target_id,
            GroupPatch(is_private=True, salt=source.salt, pass_hash=source.pass_hash),
        )
        logger.info("Group %s takes over the password of %s", target_id, source_id)
    moved = store.move_group_members(source_id, target_id)
    # source is empty now, so the cascade in delete_group removes no notes
    store.delete_group(source_id)
    logger.info("Merged group %s into %s (%d notes)", source_id, target_id, len(moved))
    return store.require_group(target_id)


def link_notes(store: NoteStore, target_id: str, dragged_id: str) -> Group:
    """Group dragged_id with target_id and return the resulting group.

    Args:
        store: Record store holding both notes
        target_id: Note that received the drop
        dragged_id: Note that was dropped onto it

    Returns:
        The group both notes belong to afterwards

    Raises:
        ValueError: If a note is linked to itself
        RecordNotFoundError: If either note does not exist
    """
    if target_id == dragged_id:
        raise ValueError("Cannot link a note to itself")
    target = store.require_note(target_id)
    dragged = store.require_note(dragged_id)

    if target.group_id is not None and target.group_id == dragged.group_id:
        return store.require_group(target.group_id)

    if target.group_id is not None and dragged.group_id is not None:
        return merge_groups(store, target.group_id, dragged.group_id)

    if target.group_id is not None:
        store.add_to_group(dragged_id, target.group_id)
        return store.require_group(target.group_id)

    if dragged.group_id is not None:
        store.add_to_group(target_id, dragged.group_id)
        return store.require_group(dragged.group_id)

    group = store.add_group(Group.create(now=store.now()))
    store.add_to_group(target_id, group.id)
    store.add_to_group(dragged_id, group.id)
    logger.info("Created group %s for notes %s and %s", group.id, target_id, dragged_id)
    return store.require_group(group.id)
