import curses

from tinyrisc.assembler import assemble
from tinyrisc.editor import TextBuffer
from tinyrisc.machine import Machine
from tinyrisc.tui import _Editor, format_state


def test_format_state_fresh_machine():
    lines = format_state(Machine())
    assert lines[0] == "PC: 0"
    assert lines[1] == "Registers:"
    assert "R0: 0" in lines
    assert "R7: 0" in lines
    assert "R8: 0" not in lines
    assert "ZF: 0" in lines and "CF: 0" in lines


def test_format_state_sections_in_order():
    lines = format_state(Machine())
    registers = lines.index("Registers:")
    flags = lines.index("Flags:")
    assert registers < flags
    assert all(line.startswith("R") for line in lines[registers + 1:flags])
    assert [line.split(":")[0] for line in lines[flags + 1:]] == ["ZF", "SF", "OF", "CF"]


def test_format_state_after_program():
    machine = Machine()
    machine.run(assemble(["mov r1, #5", "hlt"]))
    lines = format_state(machine)
    assert "R1: 5" in lines
    assert lines[0] == "PC: -1"


def test_format_state_reports_flags():
    machine = Machine()
    machine.flags.zf = True
    machine.flags.of = True
    lines = format_state(machine)
    assert "ZF: 1" in lines
    assert "OF: 1" in lines
    assert "SF: 0" in lines


def _type(editor, text):
    for ch in text:
        editor.handle_key(ord(ch))


def test_typing_and_left_arrow():
    editor = _Editor(TextBuffer(4, 32), 10)
    _type(editor, "ab")
    editor.handle_key(curses.KEY_LEFT)
    _type(editor, "x")
    assert editor.buffer[0] == "axb"
    assert editor.col == 2


def test_enter_splits_line():
    editor = _Editor(TextBuffer(4, 32), 10)
    _type(editor, "hlt")
    editor.handle_key(curses.KEY_LEFT)
    editor.handle_key(10)
    assert editor.buffer[0] == "hl"
    assert editor.buffer[1] == "t"
    assert (editor.row, editor.col) == (1, 0)


def test_backspace_deletes_previous_character():
    editor = _Editor(TextBuffer(2, 32), 10)
    _type(editor, "abc")
    editor.handle_key(127)
    assert editor.buffer[0] == "ab"
    editor.handle_key(curses.KEY_BACKSPACE)
    assert editor.buffer[0] == "a"
    assert editor.col == 1


def test_backspace_at_line_start_does_nothing():
    editor = _Editor(TextBuffer(2, 32), 10)
    editor.handle_key(127)
    assert editor.col == 0
    assert editor.buffer[0] == ""


def test_cursor_cannot_leave_buffer():
    editor = _Editor(TextBuffer(2, 32), 10)
    editor.handle_key(curses.KEY_UP)
    assert editor.line == 0
    editor.handle_key(curses.KEY_DOWN)
    editor.handle_key(curses.KEY_DOWN)
    assert editor.line == len(editor.buffer) - 1


def test_right_arrow_stops_before_last_columns():
    buffer = TextBuffer(1, 6)
    editor = _Editor(buffer, 10)
    for _ in range(20):
        editor.handle_key(curses.KEY_RIGHT)
    assert editor.col == buffer.max_cols - 2


def test_enter_past_limit_scrolls():
    editor = _Editor(TextBuffer(8, 32), 2)
    editor.handle_key(10)
    editor.handle_key(10)
    assert editor.row < 2
    assert editor.line == 2
    assert editor.scroll >= 1


def test_edited_text_assembles():
    editor = _Editor(TextBuffer(4, 64), 10)
    _type(editor, "mov r2, #7")
    editor.handle_key(10)
    _type(editor, "hlt")
    machine = Machine()
    machine.run(assemble(editor.buffer.lines))
    assert machine.registers[2] == 7
    assert machine.halted