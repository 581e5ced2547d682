"""Decoding of 32-bit machine words into instruction fields."""

from __future__ import annotations

from .isa import Instruction, Opcode

__all__ = [
    "MEMORY_SIZE",
    "INSTRUCTION_START",
    "INSTRUCTION_END",
    "DATA_START",
    "DATA_END",
    "STACK_START",
    "STACK_END",
    "NUM_REGISTERS",
    "decode_instruction",
    "decode_program",
]

MEMORY_SIZE = 3072

INSTRUCTION_START = 0
INSTRUCTION_END = 1023

DATA_START = 1024
DATA_END = 2047

STACK_START = 2048
STACK_END = 3071

NUM_REGISTERS = 8

_WORD_MASK = 0xFFFFFFFF

_I_FORMAT = frozenset({Opcode.I_TYPE, Opcode.LOAD, Opcode.STORE, Opcode.SYSTEM})


def decode_instruction(word):
    """Split a machine word into its fields.

    Words whose opcode is unknown decode to an instruction of kind ``"?"``
    with every other field zero.
    """
    word &= _WORD_MASK
    opcode = word & 0x7F

    if opcode == Opcode.R_TYPE:
        return Instruction(
            raw=word,
            opcode=opcode,
            rd=(word >> 7) & 0x1F,
            funct3=(word >> 12) & 0x7,
            rs1=(word >> 15) & 0x1F,
            rs2=(word >> 20) & 0x1F,
            funct7=(word >> 25) & 0x7F,
            kind="R",
        )

    if opcode in _I_FORMAT:
        # The upper twelve bits are taken as they stand, without sign extension.
        return Instruction(
            raw=word,
            opcode=opcode,
            rd=(word >> 7) & 0x1F,
            funct3=(word >> 12) & 0x7,
            rs1=(word >> 15) & 0x1F,
            imm=word >> 20,
            kind="I",
        )

    if opcode == Opcode.BRANCH:
        return Instruction(
            raw=word,
            opcode=opcode,
            funct3=(word >> 12) & 0x7,
            rs1=(word >> 7) & 0x1F,
            rs2=(word >> 19) & 0x1F,
            deriv=(word >> 15) & 0xF,
            imm=word >> 24,
            kind="B",
        )

    return Instruction(raw=word, opcode=opcode)


def decode_program(words):
    """Decode every word of a program, in order.

    Raises ``ValueError`` when the program holds no words.
    """
    instructions = [decode_instruction(word) for word in words]
    if not instructions:
        raise ValueError("the instruction sequence is empty")
    return instructions