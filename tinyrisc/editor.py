"""Line buffer backing the source editor."""

from __future__ import annotations

__all__ = ["TextBuffer", "DEFAULT_LINES", "DEFAULT_COLUMNS"]

DEFAULT_LINES = 255
DEFAULT_COLUMNS = 256


class TextBuffer:
    """A fixed-width, growable list of text lines.

    Each line holds at most ``max_cols - 1`` characters.
    """

    def __init__(self, num_lines=DEFAULT_LINES, max_cols=DEFAULT_COLUMNS):
        if num_lines < 0:
            raise ValueError("the number of lines cannot be negative")
        if max_cols < 2:
            raise ValueError("lines must hold at least two columns")
        self.max_cols = max_cols
        self.lines = [""] * num_lines

    def __len__(self):
        return len(self.lines)

    def __getitem__(self, index):
        return self.lines[index]

    def __iter__(self):
        return iter(self.lines)

    @property
    def _capacity(self):
        return self.max_cols - 1

    def insert_char(self, line, pos, ch):
        """Insert ``ch`` at column ``pos``; text pushed past the end is dropped.

        A position beyond the end of the text is reached by padding with spaces.
        Positions at or past the last column are ignored.
        """
        if len(ch) != 1:
            raise ValueError("exactly one character must be inserted")
        if pos < 0:
            raise IndexError(f"negative column {pos}")
        if pos >= self._capacity:
            return
        text = self.lines[line].ljust(pos)
        self.lines[line] = (text[:pos] + ch + text[pos:])[: self._capacity]

    def delete_char(self, line, pos):
        """Remove the character at column ``pos``, if there is one."""
        if pos < 0:
            raise IndexError(f"negative column {pos}")
        text = self.lines[line]
        if pos < self._capacity and pos < len(text):
            self.lines[line] = text[:pos] + text[pos + 1:]

    def ensure_line(self, line):
        """Grow the buffer with empty lines so that ``line`` exists."""
        if line >= len(self.lines):
            self.lines.extend([""] * (line + 1 - len(self.lines)))

    def split_line(self, line, col):
        """Move the text from column ``col`` onwards to the following line.

        The following line's previous content is replaced.
        """
        self.ensure_line(line + 1)
        text = self.lines[line]
        self.lines[line + 1] = text[col:]
        self.lines[line] = text[:col]