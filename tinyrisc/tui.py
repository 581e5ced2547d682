"""Terminal front end: a two-pane editor that assembles and steps programs."""

from __future__ import annotations

import argparse
import curses

from .assembler import AssemblyError, assemble
from .decoding import decode_program
from .editor import TextBuffer
from .machine import Machine, MachineError

__all__ = ["format_state", "run_editor", "main"]

_ENTER_KEYS = (10, curses.KEY_ENTER)
_BACKSPACE_KEYS = (curses.KEY_BACKSPACE, 127)


def _signed32(value):
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def format_state(machine):
    """Lines describing the program counter, registers and flags."""
    lines = [f"PC: {_signed32(machine.pc)}", "Registers:"]
    lines.extend(f"R{number}: {value}" for number, value in enumerate(machine.registers))
    flags = machine.flags
    lines.extend(
        [
            "Flags:",
            f"ZF: {int(flags.zf)}",
            f"SF: {int(flags.sf)}",
            f"OF: {int(flags.of)}",
            f"CF: {int(flags.cf)}",
        ]
    )
    return lines


def _put(window, y, x, text, attr=0):
    _, width = window.getmaxyx()
    room = width - x - 1
    if room <= 0:
        return
    try:
        window.addstr(y, x, text[:room], attr)
    except curses.error:
        pass


class _Editor:
    """Cursor movement and editing over a text buffer."""

    def __init__(self, buffer, row_limit):
        self.buffer = buffer
        self.row_limit = row_limit
        self.row = 0
        self.col = 0
        self.scroll = 0

    @property
    def line(self):
        return self.row + self.scroll

    def handle_key(self, key):
        buffer = self.buffer
        if key in _ENTER_KEYS:
            buffer.split_line(self.line, self.col)
            self.row += 1
            self.col = 0
            if self.row >= self.row_limit:
                self.scroll += 1
                self.row -= 1
        elif key in _BACKSPACE_KEYS:
            if self.col > 0:
                self.col -= 1
                buffer.delete_char(self.line, self.col)
        elif key == curses.KEY_DOWN:
            if self.line < len(buffer) - 1:
                if self.row < self.row_limit:
                    self.row += 1
                else:
                    self.scroll += 1
        elif key == curses.KEY_UP:
            if self.line > 0:
                if self.row > 0:
                    self.row -= 1
                else:
                    self.scroll -= 1
        elif key == curses.KEY_LEFT:
            if self.col > 0:
                self.col -= 1
        elif key == curses.KEY_RIGHT:
            if self.col < buffer.max_cols - 2:
                self.col += 1
        elif 32 <= key <= 126:
            buffer.insert_char(self.line, self.col, chr(key))
            self.col += 1

    def visible_lines(self, rows):
        return self.buffer.lines[self.scroll:self.scroll + rows]


class _MessagePane:
    """Writes messages one per row, waiting for a key after each."""

    def __init__(self, window, last_row):
        self.window = window
        self.last_row = last_row
        self.row = 1

    def show(self, message):
        if self.row >= self.last_row:
            self.window.erase()
            self.window.box()
            self.row = 1
        _put(self.window, self.row, 1, message)
        self.window.refresh()
        self.window.getch()
        self.row += 1


def _draw_editor(window, editor, rows):
    window.erase()
    for offset, text in enumerate(editor.visible_lines(rows)):
        _put(window, offset + 1, 1, text)
    window.box()
    try:
        window.move(editor.row + 1, editor.col + 1)
    except curses.error:
        pass
    window.refresh()


def _draw_state(window, machine):
    window.erase()
    window.box()
    for offset, text in enumerate(format_state(machine)):
        _put(window, 2 + offset, 1, text)
    window.refresh()


def _show_error(window, message):
    height, _ = window.getmaxyx()
    try:
        window.move(height - 2, 1)
        window.clrtoeol()
    except curses.error:
        pass
    _put(window, height - 2, 1, message, curses.A_BOLD)
    window.refresh()
    window.getch()


def _wait_for_enter(window):
    while window.getch() not in _ENTER_KEYS:
        pass


def _execute(words, window, pane):
    try:
        instructions = decode_program(words)
    except ValueError:
        pane.show("Error: the instruction sequence is empty")
        return
    machine = Machine()
    shown = 0
    while True:
        try:
            if not machine.step(instructions):
                break
        except MachineError as exc:
            pane.show(f"Error: {exc}")
            _draw_state(window, machine)
            _wait_for_enter(window)
            break
        for message in machine.messages[shown:]:
            pane.show(message)
        shown = len(machine.messages)
        _draw_state(window, machine)
        _wait_for_enter(window)


def run_editor(stdscr):
    """Edit a program in the left pane; F5 assembles and steps it on the right."""
    curses.cbreak()
    curses.noecho()
    stdscr.keypad(True)
    stdscr.refresh()

    height = curses.LINES - 2
    width = curses.COLS // 2 - 2
    left = curses.newwin(height, width, 0, 0)
    right = curses.newwin(height, width, 0, width + 2)
    for window in (left, right):
        window.box()
        window.keypad(True)
        window.refresh()

    buffer = TextBuffer()
    editor = _Editor(buffer, curses.LINES - 3)
    while True:
        key = left.getch()
        if key == curses.KEY_F5:
            break
        editor.handle_key(key)
        _draw_editor(left, editor, curses.LINES - 2)

    right.erase()
    right.box()
    right.refresh()
    try:
        words = assemble(buffer.lines)
    except AssemblyError as exc:
        _show_error(right, f"Error: {exc}")
        return
    _execute(words, right, _MessagePane(right, curses.LINES - 2))


def main(argv=None):
    """Start the terminal editor."""
    parser = argparse.ArgumentParser(
        prog="tinyrisc",
        description="Edit an assembly program, then press F5 to assemble and step it.",
    )
    parser.parse_args(argv)
    curses.wrapper(run_editor)
    return 0