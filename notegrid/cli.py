"""CLI entry point for notegrid."""

import logging
import sys
from datetime import datetime
from pathlib import Path

import click

from . import __version__
from . import credentials
from . import exchange
from . import merge
from . import numbering
from . import share
from .config import MIN_PASSWORD_LENGTH, STORE_ENV, default_store_path
from .kvstore import KeyValueError, SQLiteKeyValueStore
from .models import PALETTE, UNSET, Group, GroupPatch, Note, NotePatch
from .projector import GroupItem, project
from .store import NoteStore, NoteStoreError, RecordNotFoundError

logger = logging.getLogger(__name__)

USER_ERRORS = (
    NoteStoreError,
    credentials.CredentialError,
    exchange.ImportFailure,
    ValueError,
)


def format_date(dt: datetime | None) -> str:
    """Format a timestamp in local time; today's dates show only the time."""
    if dt is None:
        return "Unknown"
    local = dt.astimezone()
    if local.date() == datetime.now().astimezone().date():
        return local.strftime("%H:%M")
    return local.strftime("%Y-%m-%d %H:%M")


def short_id(record_id: str) -> str:
    return record_id[:8]


def truncate(text: str, width: int) -> str:
    return text[: width - 2] + ".." if len(text) > width else text


def _banner(store: NoteStore) -> None:
    if store.last_error:
        click.secho(f"Warning: {store.last_error}", fg="yellow", err=True)


def _find(store: NoteStore, identifier: str) -> Note | Group:
    """Resolve an id prefix to a note, falling back to a group."""
    try:
        return store.resolve_note(identifier)
    except RecordNotFoundError:
        return store.resolve_group(identifier)


def _unlock(store: NoteStore, group: Group, password: str | None) -> list[Note]:
    """Return the notes of a group, prompting for the password if it is private."""
    if group.is_private and password is None:
        password = click.prompt(f"Password for '{group.display_title}'", hide_input=True)
    return credentials.open_group(store, group.id, password)


def _unlock_note(store: NoteStore, note: Note, password: str | None) -> None:
    """Check the password of the group holding note, if it is private."""
    if note.group_id is not None:
        _unlock(store, store.require_group(note.group_id), password)


def _read_body(body: str | None, initial: str = "") -> str | None:
    """Body from the option, piped stdin, or $EDITOR, in that order."""
    if body is not None:
        return body
    if not sys.stdin.isatty():
        return sys.stdin.read()
    return click.edit(initial, extension=".md")


def _parse_color(value: str) -> str | None:
    if value.lower() == "none":
        return None
    if value.isdigit():
        index = int(value)
        if not 1 <= index <= len(PALETTE):
            raise click.BadParameter(f"Palette index must be 1-{len(PALETTE)}")
        return PALETTE[index - 1]
    return value


@click.group()
@click.version_option(version=__version__, prog_name="notegrid")
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar=STORE_ENV,
    help="SQLite file holding the notes",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx, store_path: Path | None, verbose: bool):
    """Notegrid - notes, groups and private groups from the terminal."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    path = store_path or default_store_path()
    logger.debug("Using notes database %s", path)
    try:
        kv = SQLiteKeyValueStore(path)
    except KeyValueError as e:
        raise click.ClickException(str(e))
    store = NoteStore(kv)
    store.load(seed_welcome=True)
    _banner(store)
    ctx.obj = store


@cli.command(name="list")
@click.argument("query", required=False, default="")
@click.pass_obj
def list_items(store: NoteStore, query: str):
    """List groups and standalone notes, optionally filtered by QUERY."""
    items = project(store, query)
    if not items:
        if query:
            click.echo(f"No notes found matching '{query}'.")
        else:
            click.echo("No notes found.")
        return

    click.echo(f"{'ID':<10} {'Title':<40} {'Updated':<18} {'Info'}")
    click.echo("-" * 80)
    for item in items:
        if isinstance(item, GroupItem):
            info = f"group, {len(item.notes)} notes"
            if item.locked:
                info += ", private"
        else:
            info = ", ".join(
                part for part in ("pinned" if item.pinned else "", item.note.color or "") if part
            )
        click.echo(
            f"{short_id(item.id):<10} {truncate(item.title, 40):<40} "
            f"{format_date(item.updated_at):<18} {info}"
        )
    click.echo(f"\nTotal: {len(items)} items")


@cli.command()
@click.argument("identifier")
@click.option("--password", "-p", help="Password of a private group")
@click.pass_obj
def show(store: NoteStore, identifier: str, password: str | None):
    """Show a note or a group by ID."""
    try:
        record = _find(store, identifier)
        if isinstance(record, Group):
            notes = _unlock(store, record, password)
            click.echo(f"Group: {record.display_title}")
            click.echo(f"Updated: {format_date(record.updated_at)}")
            click.echo(f"Private: {'yes' if record.is_private else 'no'}")
            click.echo("-" * 40)
            for note in notes:
                click.echo(f"{short_id(note.id):<10} {note.display_title}")
            click.echo(f"\nTotal: {len(notes)} notes")
            return

        _unlock_note(store, record, password)
        group = store.get_group(record.group_id) if record.group_id else None
        click.echo(f"Title: {record.display_title}")
        click.echo(f"Group: {group.display_title if group else '-'}")
        click.echo(f"Color: {record.color or '-'}")
        click.echo(f"Modified: {format_date(record.updated_at)}")
        click.echo(f"Created: {format_date(record.created_at)}")
        click.echo("-" * 40)
        click.echo(record.text or "(No content)")
    except USER_ERRORS as e:
        raise click.ClickException(str(e))


@cli.command()
@click.argument("text", required=False)
@click.option("--title", "-t", help="Explicit title (defaults to the first line)")
@click.option("--color", "-c", help="#RRGGBB, palette index or 'none'")
@click.option("--group", "-g", "group_ref", help="Group ID to create the note in")
@click.option("--numbered", "-n", is_flag=True, help="Number the lines of the note")
@click.pass_obj
def new(store: NoteStore, text: str | None, title: str | None, color: str | None,
        group_ref: str | None, numbered: bool):
    """Create a new note.

    Text can be given as an argument, piped from stdin, or typed in $EDITOR.
    """
    body = _read_body(text)
    if body is None or not body.strip():
        raise click.ClickException("Empty note, nothing saved.")
    body = body.strip()
    if numbered:
        body = numbering.number_lines(body)

    try:
        group_id = store.resolve_group(group_ref).id if group_ref else None
        note = store.add_note(Note.create(
            body,
            title=title,
            color=_parse_color(color) if color else None,
            group_id=group_id,
            numbered=numbered,
            now=store.now(),
        ))
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    click.echo(f"Created note '{note.display_title}' (ID: {short_id(note.id)})")


@cli.command()
@click.argument("identifier")
@click.option("--body", "-b", help="New text")
@click.option("--title", "-t", help="New title ('' clears it)")
@click.option("--password", "-p", help="Password of a private group")
@click.pass_obj
def edit(store: NoteStore, identifier: str, body: str | None, title: str | None,
         password: str | None):
    """Edit an existing note.

    Use --body to set the text directly, pipe it in, or edit it in $EDITOR.
    """
    try:
        note = store.resolve_note(identifier)
        _unlock_note(store, note, password)

        if title is not None and body is None:
            new_text = note.text
        else:
            new_text = _read_body(body, note.text)
        if new_text is None:
            click.echo("Edit cancelled.")
            return
        new_text = new_text.strip()
        if note.numbered:
            new_text = numbering.renumber(new_text)

        patch_title = UNSET if title is None else (title or None)
        if new_text == note.text and patch_title in (UNSET, note.title):
            click.echo("No changes made.")
            return
        note = store.update_note(note.id, NotePatch(text=new_text, title=patch_title))
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    click.echo(f"Updated note '{note.display_title}'")


@cli.command()
@click.argument("identifier")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.option("--password", "-p", help="Password of a private group")
@click.pass_obj
def delete(store: NoteStore, identifier: str, yes: bool, password: str | None):
    """Delete a note, or a group together with all of its notes."""
    try:
        record = _find(store, identifier)
        if isinstance(record, Group):
            notes = _unlock(store, record, password)
            if not yes and not click.confirm(
                f"Delete group '{record.display_title}' and its {len(notes)} notes?"
            ):
                click.echo("Delete cancelled.")
                return
            store.delete_group(record.id)
            _banner(store)
            click.echo(f"Deleted group '{record.display_title}' ({len(notes)} notes)")
            return

        _unlock_note(store, record, password)
        store.delete_note(record.id)
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    click.echo(f"Deleted note '{record.display_title}'")


@cli.command()
@click.argument("identifier")
@click.argument("color")
@click.option("--password", "-p", help="Password of a private group")
@click.pass_obj
def color(store: NoteStore, identifier: str, color: str, password: str | None):
    """Set a note's COLOR (#RRGGBB, palette index 1-18, or 'none')."""
    try:
        note = store.resolve_note(identifier)
        _unlock_note(store, note, password)
        note = store.update_note(note.id, NotePatch(color=_parse_color(color)))
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    click.echo(f"Color of '{note.display_title}' set to {note.color or 'none'}")


@cli.command()
@click.argument("identifier")
@click.option("--password", "-p", help="Password of a private group")
@click.pass_obj
def number(store: NoteStore, identifier: str, password: str | None):
    """Toggle line numbering of a note."""
    try:
        note = store.resolve_note(identifier)
        _unlock_note(store, note, password)
        note = numbering.toggle_numbering(store, note.id)
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    state = "on" if note.numbered else "off"
    click.echo(f"Numbering {state} for '{note.display_title}'")


@cli.command()
@click.argument("identifier")
@click.option("--password", "-p", help="Password of a private group")
@click.pass_obj
def pin(store: NoteStore, identifier: str, password: str | None):
    """Pin a note to the top of the list, or unpin it."""
    try:
        note = store.resolve_note(identifier)
        _unlock_note(store, note, password)
        note = store.toggle_pin(note.id)
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    state = "Pinned" if note.pinned else "Unpinned"
    click.echo(f"{state} '{note.display_title}'")


@cli.command()
@click.argument("target")
@click.argument("dragged")
@click.option("--password", "-p", help="Password of DRAGGED's group, if private")
@click.pass_obj
def link(store: NoteStore, target: str, dragged: str, password: str | None):
    """Drop note DRAGGED onto note TARGET, grouping them.

    If both notes are already in different groups, DRAGGED's group is merged
    into TARGET's group. A private group merged into a public one keeps its
    password.
    """
    try:
        target_note = store.resolve_note(target)
        dragged_note = store.resolve_note(dragged)
        if dragged_note.group_id != target_note.group_id:
            _unlock_note(store, dragged_note, password)
        group = merge.link_notes(store, target_note.id, dragged_note.id)
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    count = len(store.notes_in_group(group.id))
    click.echo(f"Grouped in '{group.display_title}' (ID: {short_id(group.id)}, {count} notes)")


@cli.command()
@click.argument("note_ref")
@click.argument("group_ref")
@click.option("--password", "-p", help="Password of the note's current group, if private")
@click.pass_obj
def move(store: NoteStore, note_ref: str, group_ref: str, password: str | None):
    """Move a note into a group."""
    try:
        note = store.resolve_note(note_ref)
        group = store.resolve_group(group_ref)
        if note.group_id != group.id:
            _unlock_note(store, note, password)
        store.add_to_group(note.id, group.id)
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    click.echo(f"Moved '{note.display_title}' to '{group.display_title}'")


@cli.command()
@click.argument("note_ref")
@click.option("--password", "-p", help="Password of the note's group, if private")
@click.pass_obj
def ungroup(store: NoteStore, note_ref: str, password: str | None):
    """Take a note out of its group."""
    try:
        note = store.resolve_note(note_ref)
        if note.group_id is None:
            click.echo(f"'{note.display_title}' is not in a group.")
            return
        _unlock_note(store, note, password)
        store.remove_from_group(note.id)
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    click.echo(f"Removed '{note.display_title}' from its group")


@cli.group()
def group():
    """Manage groups."""
    pass


@group.command(name="new")
@click.argument("title", required=False, default="")
@click.pass_obj
def group_new(store: NoteStore, title: str):
    """Create an empty group."""
    created = store.add_group(Group.create(title or "", now=store.now()))
    _banner(store)
    click.echo(f"Created group '{created.display_title}' (ID: {short_id(created.id)})")


@group.command()
@click.argument("group_ref")
@click.argument("title")
@click.pass_obj
def rename(store: NoteStore, group_ref: str, title: str):
    """Rename a group."""
    try:
        target = store.resolve_group(group_ref)
        renamed = store.update_group(target.id, GroupPatch(title=title))
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    click.echo(f"Renamed group to '{renamed.display_title}'")


@group.command()
@click.argument("group_ref")
@click.option(
    "--new-password",
    prompt="New password",
    hide_input=True,
    confirmation_prompt=True,
    help=f"At least {MIN_PASSWORD_LENGTH} characters",
)
@click.option("--password", "-p", help="Current password, if the group is already private")
@click.pass_obj
def lock(store: NoteStore, group_ref: str, new_password: str, password: str | None):
    """Make a group private behind a password."""
    try:
        target = store.resolve_group(group_ref)
        if target.is_private:
            _unlock(store, target, password)
        credentials.set_password(store, target.id, new_password)
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    click.echo(f"Group '{target.display_title}' is now private")


@group.command()
@click.argument("group_ref")
@click.option("--password", "-p", help="Current password")
@click.pass_obj
def unlock(store: NoteStore, group_ref: str, password: str | None):
    """Remove the password from a group."""
    try:
        target = store.resolve_group(group_ref)
        if not target.is_private:
            click.echo(f"Group '{target.display_title}' is not private.")
            return
        _unlock(store, target, password)
        credentials.clear_password(store, target.id)
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    click.echo(f"Group '{target.display_title}' is now public")


def _render(store: NoteStore, identifier: str, fmt: str, password: str | None) -> str:
    record = _find(store, identifier)
    if isinstance(record, Group):
        _unlock(store, record, password)
        return exchange.render_group(store, record.id, fmt)
    _unlock_note(store, record, password)
    return exchange.render_note(record, fmt)


@cli.command(name="export")
@click.argument("identifier")
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(exchange.EXPORT_FORMATS),
    default="json",
    show_default=True,
)
@click.option("--output", "-o", type=click.Path(dir_okay=False), default="-",
              help="File to write (default: stdout)")
@click.option("--password", "-p", help="Password of a private group")
@click.pass_obj
def export_cmd(store: NoteStore, identifier: str, fmt: str, output: str, password: str | None):
    """Export a note or a group."""
    try:
        rendered = _render(store, identifier, fmt, password)
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    with click.open_file(output, "w", encoding="utf-8") as f:
        f.write(rendered)
        if not rendered.endswith("\n"):
            f.write("\n")
    if output != "-":
        click.echo(f"Exported to {output}")


@cli.command(name="import")
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.pass_obj
def import_cmd(store: NoteStore, source):
    """Import an exported note or group, an HTML page, or plain text.

    Imported records always get new IDs; group passwords are not imported.
    """
    try:
        result = exchange.import_data(store, source.read())
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    _banner(store)
    click.echo(f"Imported {len(result.groups)} groups, {len(result.notes)} notes")


@cli.command(name="share")
@click.argument("identifier")
@click.option("--password", "-p", help="Password of a private group")
@click.pass_obj
def share_cmd(store: NoteStore, identifier: str, password: str | None):
    """Share a note or group as text (clipboard if no share command is set)."""
    try:
        text = _render(store, identifier, "text", password)
    except USER_ERRORS as e:
        raise click.ClickException(str(e))
    try:
        via = share.share_text(text)
    except share.ShareUnavailableError as e:
        click.secho(f"{e}\nCopy the text below instead:", fg="yellow", err=True)
        click.echo(text)
        return
    except share.ShareCommandError as e:
        raise click.ClickException(str(e))
    click.echo(f"Shared via {via}")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def reset(store: NoteStore, yes: bool):
    """Delete all notes and groups."""
    if not yes and not click.confirm("Delete ALL notes and groups?"):
        click.echo("Reset cancelled.")
        return
    store.reset()
    _banner(store)
    click.echo("Storage cleared.")


if __name__ == "__main__":
    cli()
