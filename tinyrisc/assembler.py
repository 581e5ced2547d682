"""Two-pass assembler turning source lines into machine words."""

from __future__ import annotations

import re

from .isa import (
    EncodingError,
    encode_branch_instruction,
    encode_i_instruction,
    encode_r_instruction,
)

__all__ = [
    "AssemblyError",
    "Assembler",
    "OPERATIONS",
    "BRANCHES",
    "MAX_LABELS",
    "is_valid_label",
    "assemble",
]

OPERATIONS = (
    "hlt", "mod", "add", "sub", "cmp", "mov", "and", "or", "xor", "udv",
    "mul", "lsr", "lsl", "str", "sta", "ldr", "lda", "ret", "psh", "pop",
)
BRANCHES = (
    "bra", "beq", "bne", "blt", "bge", "brz", "brp", "bmi", "bgt", "ble",
    "bvs", "bcs", "bpl", "bltu", "bgeu", "jms",
)

MAX_LABELS = 255
_MAX_ELEMENTS = 5

_RESERVED = frozenset(OPERATIONS) | frozenset(BRANCHES)

# Mnemonics that may not take three operands.
_NOT_WITH_FOUR = frozenset({
    "hlt", "ret", "mov", "lda", "ldr", "asr", "str", "sta", "psh", "pop",
    "bra", "brp", "brz", "bmi", "bpl", "bvs", "bcs", "jms",
})
# Branches comparing two registers.
_REGISTER_BRANCHES = frozenset({"beq", "bne", "blt", "ble", "bgt", "bgeu", "bltu"})
# Branches taking only a label.
_LABEL_BRANCHES = frozenset({"bra", "brp", "brz", "bmi", "bpl", "bvs", "bcs", "jms"})

_LEADING_INTEGER = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_DIGITS = frozenset("0123456789")


class AssemblyError(ValueError):
    """Raised when a source line cannot be assembled."""


def _is_alpha(ch):
    return ch.isascii() and ch.isalpha()


def _is_alnum(ch):
    return ch.isascii() and ch.isalnum()


def _leading_int(text):
    """Parse the leading integer of ``text``; 0 when there is none."""
    match = _LEADING_INTEGER.match(text)
    return int(match.group(1)) if match else 0


def _register(token):
    """Register number written as the second character of ``token``."""
    return ord(token[1]) - ord("0") if len(token) > 1 else -ord("0")


def is_valid_label(label):
    """True when ``label`` is alphanumeric, starts with a letter and is no mnemonic."""
    if not label or not _is_alpha(label[0]):
        return False
    if not all(_is_alnum(ch) for ch in label[1:]):
        return False
    return label.lower() not in _RESERVED


def _split(text):
    return [token for token in text.split(" ") if token]


class Assembler:
    """Collects labels from source lines and encodes them into words."""

    def __init__(self):
        self.labels = {}
        self.current_line = 0

    def add_label(self, name, address):
        """Define ``name`` at the given 1-based line address."""
        if name in self.labels:
            raise AssemblyError(f"label {name!r} is already defined")
        if len(self.labels) >= MAX_LABELS:
            raise AssemblyError(f"more than {MAX_LABELS} labels")
        self.labels[name] = address

    def label_address(self, name):
        """Address of the label ``name``, or None when it is not defined."""
        return self.labels.get(name)

    def normalize_line(self, line):
        """Tidy one source line and record its label.

        Returns the line with single spaces between operands, or None for
        a comment. A comment line moves the line counter back by one.
        """
        chars = []
        after_text = False
        for position, ch in enumerate(line):
            if ch in " \t":
                if after_text:
                    chars.append(" ")
                    after_text = False
            elif ch == ",":
                following = line[position + 1:position + 2]
                if following and _is_alnum(following):
                    chars.append(" ")
            else:
                chars.append(ch)
                after_text = True
        formatted = "".join(chars)
        if formatted.endswith(" "):
            formatted = formatted[:-1]

        if formatted.startswith("//"):
            self.current_line -= 1
            return None
        self.current_line += 1

        elements = _split(formatted)
        if len(elements) > _MAX_ELEMENTS:
            raise AssemblyError(f"too many elements on line {line!r}")

        if len(elements) > 1 and is_valid_label(elements[0]):
            self.add_label(elements[0], self.current_line)
            elements = elements[1:]

        pieces = []
        for element in elements:
            mark = element.find("#")
            if mark > 0:
                pieces.append(f"{element[:mark]} {element[mark:]}")
            else:
                pieces.append(element)
        return " ".join(pieces)

    def _encode(self, index, function, *args):
        try:
            return function(*args)
        except EncodingError as exc:
            raise AssemblyError(
                f"cannot encode the instruction at line {index}: {exc}"
            ) from exc

    def _branch(self, index, operation, label, rs1, rs2, explicit):
        address = self.label_address(label)
        if address is None:
            raise AssemblyError(f"unknown label {label!r} at line {index}")
        return self._encode(
            index, encode_branch_instruction, operation, address, rs1, rs2, explicit
        )

    def _offset_operand(self, line, operation, operand):
        """Split an ``offset(rN)`` operand into (register, offset)."""
        opening = operand.find("(")
        closing = operand.find(")")
        if opening < 0 or closing < 0 or closing < opening:
            raise AssemblyError(
                f"unknown format for {operation!r} on line {line!r}"
            )
        prefix = operand[:opening]
        if not all(ch in _DIGITS for ch in prefix):
            raise AssemblyError(f"invalid offset for {operation!r} on line {line!r}")
        offset = int(prefix) if prefix else 0
        inner = operand[opening + 1:opening + 4]
        if len(inner) == 3 and inner[0] in "rR" and inner[1] in _DIGITS and inner[2] == ")":
            return int(inner[1]), offset
        raise AssemblyError(f"invalid format for {operation!r} on line {line!r}")

    def encode_line(self, line, index):
        """Encode one normalized line found at instruction ``index``."""
        elements = _split(line)
        count = len(elements)
        name = elements[0].lower() if elements else ""

        if count == 4:
            if name in _NOT_WITH_FOUR:
                raise AssemblyError(
                    f"instruction {elements[0]!r} does not take 3 operands (line {index})"
                )
            first, second, third = elements[1:]
            if second.startswith("#"):
                return self._encode(
                    index, encode_i_instruction, elements[0], _register(first),
                    _leading_int(second[1:]), _register(third), True,
                )
            if third.startswith("#"):
                return self._encode(
                    index, encode_i_instruction, elements[0], _register(first),
                    _register(second), _leading_int(third[1:]), True,
                )
            if name in _REGISTER_BRANCHES:
                return self._branch(
                    index, elements[0], third, _register(first), _register(second), True
                )
            return self._encode(
                index, encode_r_instruction, elements[0], _register(first),
                _register(second), _register(third), True,
            )

        if count == 3:
            if name in {"hlt", "ret", "psh", "pop"} or name in BRANCHES:
                raise AssemblyError(
                    f"instruction {elements[0]!r} does not take 2 operands (line {index})"
                )
            first, second = elements[1:]
            if name in {"ldr", "str"}:
                source, offset = self._offset_operand(line, elements[0], second)
                return self._encode(
                    index, encode_i_instruction, elements[0], _register(first),
                    source, offset, True,
                )
            if name in {"lda", "sta"}:
                return self._encode(
                    index, encode_i_instruction, elements[0], _register(first),
                    0, _leading_int(second[1:]), True,
                )
            if second.startswith("#"):
                return self._encode(
                    index, encode_i_instruction, elements[0], _register(first),
                    0, _leading_int(second[1:]), False,
                )
            return self._encode(
                index, encode_r_instruction, elements[0], _register(first),
                0, _register(second), False,
            )

        if count == 2:
            if name in _LABEL_BRANCHES:
                return self._branch(index, elements[0], elements[1], 0, 0, False)
            if name in {"psh", "pop"}:
                return self._encode(
                    index, encode_i_instruction, elements[0], _register(elements[1]),
                    0, 0, False,
                )
            raise AssemblyError(
                f"instruction {elements[0]!r} does not take 1 operand (line {index})"
            )

        if count == 1:
            if name == "hlt":
                return self._encode(index, encode_r_instruction, elements[0], 0, 0, 0, False)
            if name == "ret":
                return self._encode(index, encode_i_instruction, elements[0], 0, 0, 0, False)
            raise AssemblyError(
                f"instruction {elements[0]!r} is not valid without operands (line {index})"
            )

        raise AssemblyError(f"cannot encode the instruction at line {index}")

    def assemble(self, lines):
        """Assemble source lines into a list of machine words.

        Labels are collected over all lines first, so branches may refer
        forward. Empty lines and comments produce no word.
        """
        normalized = []
        for line in lines:
            if not line or line[0] == "\n":
                continue
            tidy = self.normalize_line(line)
            if tidy is not None:
                normalized.append(tidy)
        return [self.encode_line(text, index) for index, text in enumerate(normalized)]


def assemble(lines):
    """Assemble ``lines`` with a fresh assembler."""
    return Assembler().assemble(lines)