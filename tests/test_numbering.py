from notegrid.numbering import (
    insert_newline,
    next_prefix,
    number_lines,
    renumber,
    strip_numbers,
    toggle_numbering,
)


def test_number_lines_skips_blank_lines():
    assert number_lines("a\n\nb") == "1. a\n\n2. b"


def test_number_lines_replaces_existing_numbers():
    assert number_lines("3. a\nb\n  7. c") == "1. a\n2. b\n  3. c"


def test_strip_numbers():
    assert strip_numbers("1. a\n  2. b\nc") == "a\n  b\nc"


def test_renumber_fixes_each_run():
    text = "1. a\n1. b\nbreak\n5. c\n9. d"
    assert renumber(text) == "1. a\n2. b\nbreak\n5. c\n6. d"


def test_next_prefix():
    assert next_prefix("  4. item") == "  5. "
    assert next_prefix("plain") == ""
    assert next_prefix("1.5 kg of flour") == ""


def test_enter_continues_list():
    assert insert_newline("1. milk", 7) == ("1. milk\n2. ", 11)


def test_enter_in_middle_of_item():
    assert insert_newline("1. ab", 4) == ("1. a\n2. b", 8)


def test_enter_on_empty_item_ends_list():
    assert insert_newline("1. milk\n2. ", 11) == ("1. milk\n", 8)


def test_enter_on_plain_line():
    assert insert_newline("plain", 5) == ("plain\n", 6)


def test_toggle_numbering(store, make_note):
    note = make_note("milk\neggs")

    on = toggle_numbering(store, note.id)
    assert on.numbered is True
    assert on.text == "1. milk\n2. eggs"

    off = toggle_numbering(store, note.id)
    assert off.numbered is False
    assert off.text == "milk\neggs"
