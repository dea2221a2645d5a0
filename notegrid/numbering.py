"""Auto-numbering of list lines in note text.

A numbered line looks like ``"3. buy milk"``, optionally indented.
"""

import re

from .models import Note, NotePatch
from .store import NoteStore

NUMBER_RE = re.compile(r"^(\s*)(\d+)\.\s+")


def _split(line: str) -> tuple[str, int | None, str]:
    """Return (indent, number or None, body) for a line."""
    m = NUMBER_RE.match(line)
    if m:
        return m.group(1), int(m.group(2)), line[m.end():]
    body = line.lstrip()
    return line[: len(line) - len(body)], None, body


def strip_numbers(text: str) -> str:
    return "\n".join(NUMBER_RE.sub(r"\1", line, count=1) for line in text.split("\n"))


def number_lines(text: str) -> str:
    """Number every non-blank line from 1, replacing existing numbers."""
    result = []
    n = 1
    for line in text.split("\n"):
        if not line.strip():
            result.append(line)
            continue
        indent, _, body = _split(line)
        result.append(f"{indent}{n}. {body}")
        n += 1
    return "\n".join(result)


def renumber(text: str) -> str:
    """Make each run of consecutive numbered lines count up by one.

    A run keeps the number of its first line, so a list starting at 5
    still starts at 5.
    """
    result = []
    expected = None
    for line in text.split("\n"):
        indent, number, body = _split(line)
        if number is None:
            expected = None
            result.append(line)
            continue
        if expected is None:
            expected = number
        result.append(f"{indent}{expected}. {body}")
        expected += 1
    return "\n".join(result)


def next_prefix(line: str) -> str:
    """Prefix that continues the list on the line after this one."""
    indent, number, _ = _split(line)
    if number is None:
        return ""
    return f"{indent}{number + 1}. "


def insert_newline(text: str, cursor: int) -> tuple[str, int]:
    """Press Enter at cursor; returns the new text and cursor.

    On a numbered line the new line gets the next number. On an empty
    numbered item the number is removed instead, ending the list.
    """
    cursor = max(0, min(cursor, len(text)))
    line_start = text.rfind("\n", 0, cursor) + 1
    line_end = text.find("\n", cursor)
    if line_end == -1:
        line_end = len(text)
    before = text[line_start:cursor]

    m = NUMBER_RE.match(before)
    if m and not before[m.end():].strip() and not text[cursor:line_end].strip():
        return text[:line_start] + text[line_end:], line_start

    insertion = "\n" + next_prefix(before)
    return text[:cursor] + insertion + text[cursor:], cursor + len(insertion)


def toggle_numbering(store: NoteStore, note_id: str) -> Note:
    """Flip a note's numbered flag and rewrite its text to match."""
    note = store.require_note(note_id)
    numbered = not note.numbered
    text = number_lines(note.text) if numbered else strip_numbers(note.text)
    return store.update_note(note_id, NotePatch(text=text, numbered=numbered))
