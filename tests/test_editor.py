import pytest

from tinyrisc.editor import DEFAULT_COLUMNS, DEFAULT_LINES, TextBuffer


def test_default_size():
    buffer = TextBuffer()
    assert len(buffer) == DEFAULT_LINES
    assert buffer.max_cols == DEFAULT_COLUMNS
    assert all(line == "" for line in buffer)


def test_insert_characters_in_order():
    buffer = TextBuffer(3, 16)
    for pos, ch in enumerate("mov"):
        buffer.insert_char(0, pos, ch)
    assert buffer[0] == "mov"


def test_insert_in_middle_shifts_right():
    buffer = TextBuffer(1, 16)
    for pos, ch in enumerate("ac"):
        buffer.insert_char(0, pos, ch)
    buffer.insert_char(0, 1, "b")
    assert buffer[0] == "abc"


def test_insert_past_end_pads_with_spaces():
    buffer = TextBuffer(1, 16)
    buffer.insert_char(0, 2, "x")
    assert buffer[0] == "  x"


def test_insert_truncates_to_capacity():
    buffer = TextBuffer(1, 4)
    for pos, ch in enumerate("abc"):
        buffer.insert_char(0, pos, ch)
    buffer.insert_char(0, 0, "z")
    assert buffer[0] == "zab"
    assert len(buffer[0]) == buffer.max_cols - 1


def test_insert_at_last_column_is_ignored():
    buffer = TextBuffer(1, 4)
    buffer.insert_char(0, 3, "q")
    assert buffer[0] == ""


def test_insert_requires_single_character():
    buffer = TextBuffer(1, 8)
    with pytest.raises(ValueError):
        buffer.insert_char(0, 0, "ab")


def test_delete_char_removes_and_shifts_left():
    buffer = TextBuffer(1, 16)
    for pos, ch in enumerate("abc"):
        buffer.insert_char(0, pos, ch)
    buffer.delete_char(0, 1)
    assert buffer[0] == "ac"


def test_delete_past_end_keeps_text():
    buffer = TextBuffer(1, 16)
    buffer.insert_char(0, 0, "a")
    buffer.delete_char(0, 5)
    assert buffer[0] == "a"


def test_ensure_line_grows_buffer():
    buffer = TextBuffer(2, 8)
    buffer.ensure_line(5)
    assert len(buffer) == 6
    assert buffer[5] == ""


def test_ensure_line_keeps_existing_lines():
    buffer = TextBuffer(4, 8)
    buffer.insert_char(1, 0, "k")
    buffer.ensure_line(2)
    assert len(buffer) == 4
    assert buffer[1] == "k"


def test_split_line_moves_tail():
    buffer = TextBuffer(2, 16)
    for pos, ch in enumerate("hello"):
        buffer.insert_char(0, pos, ch)
    buffer.split_line(0, 2)
    assert buffer[0] == "he"
    assert buffer[1] == "llo"


def test_split_last_line_extends_buffer():
    buffer = TextBuffer(1, 16)
    for pos, ch in enumerate("ab"):
        buffer.insert_char(0, pos, ch)
    buffer.split_line(0, 1)
    assert len(buffer) == 2
    assert [buffer[0], buffer[1]] == ["a", "b"]


def test_split_roundtrip_preserves_text():
    buffer = TextBuffer(2, 32)
    text = "add r1, r2"
    for pos, ch in enumerate(text):
        buffer.insert_char(0, pos, ch)
    buffer.split_line(0, 4)
    assert buffer[0] + buffer[1] == text