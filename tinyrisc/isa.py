"""Instruction set definitions and machine-word encoders."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

__all__ = [
    "Opcode",
    "Instruction",
    "EncodingError",
    "encode_r_type",
    "encode_i_type",
    "encode_b_type",
    "encode_r_instruction",
    "encode_i_instruction",
    "encode_branch_instruction",
]

_WORD_MASK = 0xFFFFFFFF

# Register numbers in source text are 0..8; encoded register fields are offset by 8.
_REGISTER_OFFSET = 8
_MAX_REGISTER = 8

_I_IMM_MIN = -2048
_I_IMM_MAX = 2047
_BRANCH_IMM_MIN = 0
_BRANCH_IMM_MAX = 255

# Extra immediate bits that mark an arithmetic right shift.
_ASR_MARK = 0x20 << 5


class Opcode(IntEnum):
    """Seven-bit opcodes understood by the machine."""

    R_TYPE = 0b0110011
    I_TYPE = 0b0010011
    LOAD = 0b0000011
    STORE = 0b0100011
    BRANCH = 0b1100011
    SYSTEM = 0b1110011


class EncodingError(ValueError):
    """Raised when an instruction cannot be encoded."""


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction with all of its fields."""

    raw: int
    opcode: int
    funct3: int = 0
    funct7: int = 0
    rd: int = 0
    rs1: int = 0
    rs2: int = 0
    imm: int = 0
    deriv: int = 0
    kind: str = "?"


def encode_r_type(opcode, rd, funct3, rs1, rs2, funct7):
    """Pack register-type fields into a 32-bit word."""
    word = (
        ((funct7 & 0x7F) << 25)
        | ((rs2 & 0x1F) << 20)
        | ((rs1 & 0x1F) << 15)
        | ((funct3 & 0x7) << 12)
        | ((rd & 0x1F) << 7)
        | (opcode & 0x7F)
    )
    return word & _WORD_MASK


def encode_i_type(opcode, rd, funct3, rs1, imm):
    """Pack immediate-type fields into a 32-bit word."""
    word = (
        ((imm & 0xFFF) << 20)
        | ((rs1 & 0x1F) << 15)
        | ((funct3 & 0x7) << 12)
        | ((rd & 0x1F) << 7)
        | (opcode & 0x7F)
    )
    return word & _WORD_MASK


def encode_b_type(opcode, funct3, rs1, rs2, deriv, imm):
    """Pack branch-type fields into a 32-bit word."""
    word = (
        ((imm & 0x1FFF) << 24)
        | ((deriv & 0xF) << 15)
        | ((funct3 & 0x7) << 12)
        | ((rs2 & 0x1F) << 19)
        | ((rs1 & 0x1F) << 7)
        | (opcode & 0x7F)
    )
    return word & _WORD_MASK


def _valid_register(number):
    return 0 <= number <= _MAX_REGISTER


# name -> (funct3, funct7)
_R_OPERATIONS = {
    "add": (0x0, 0x00),
    "sub": (0x0, 0x20),
    "mul": (0x0, 0x01),
    "udv": (0x5, 0x01),
    "mod": (0x6, 0x01),
    "cmp": (0x2, 0x00),
    "and": (0x7, 0x00),
    "or": (0x6, 0x00),
    "xor": (0x4, 0x00),
    "lsl": (0x1, 0x00),
    "lsr": (0x5, 0x00),
}


def encode_r_instruction(operation, rd, rs1, rs2, explicit):
    """Encode a register-register instruction.

    When ``explicit`` is false the first source register is the destination.
    """
    if not (_valid_register(rd) and _valid_register(rs1) and _valid_register(rs2)):
        raise EncodingError("invalid register")

    rd += _REGISTER_OFFSET
    rs2 += _REGISTER_OFFSET
    rs1 = rs1 + _REGISTER_OFFSET if explicit else rd

    name = operation.lower()
    if name == "mov":
        return encode_r_type(Opcode.R_TYPE, rd, 0x0, 0, rs2, 0x00)
    if name == "hlt":
        return encode_i_type(Opcode.SYSTEM, 0, 0x0, 0, 0)
    try:
        funct3, funct7 = _R_OPERATIONS[name]
    except KeyError:
        raise EncodingError(f"unknown R-type instruction {operation!r}") from None
    return encode_r_type(Opcode.R_TYPE, rd, funct3, rs1, rs2, funct7)


# name -> funct3 for arithmetic with an immediate operand
_I_ARITHMETIC = {
    "add": 0x0,
    "sub": 0x3,
    "xor": 0x4,
    "or": 0x6,
    "and": 0x7,
    "lsl": 0x1,
    "lsr": 0x5,
    "cmp": 0x2,
}


def encode_i_instruction(operation, rd, rs1, imm, explicit):
    """Encode an instruction carrying an immediate value.

    When ``explicit`` is false the source register is the destination.
    """
    if not (_valid_register(rd) and _valid_register(rs1)) or not (
        _I_IMM_MIN <= imm <= _I_IMM_MAX
    ):
        raise EncodingError("invalid register or immediate value")

    rd += _REGISTER_OFFSET
    rs1 = rs1 + _REGISTER_OFFSET if explicit else rd

    name = operation.lower()
    if name in _I_ARITHMETIC:
        return encode_i_type(Opcode.I_TYPE, rd, _I_ARITHMETIC[name], rs1, imm)

    special = {
        "asr": (Opcode.I_TYPE, rd, 0x5, rs1, imm | _ASR_MARK),
        "mov": (Opcode.I_TYPE, rd, 0x0, 0, imm),
        "lda": (Opcode.LOAD, rd, 0x2, 0, imm),
        "ldr": (Opcode.LOAD, rd, 0x2, rs1, imm),
        "str": (Opcode.STORE, rd, 0x2, rs1, imm),
        "sta": (Opcode.STORE, rd, 0x2, 0, imm),
        "psh": (Opcode.STORE, rd, 0x1, 0, 0),
        "pop": (Opcode.LOAD, rd, 0x1, 0, 0),
        "ret": (Opcode.SYSTEM, 0, 0x1, 0, 0),
    }
    try:
        fields = special[name]
    except KeyError:
        raise EncodingError(f"unknown I-type instruction {operation!r}") from None
    return encode_i_type(*fields)


# name -> (funct3, deriv, uses registers)
_BRANCHES = {
    "bra": (0x0, 2, False),
    "beq": (0x0, 0, True),
    "bne": (0x1, 0, True),
    "blt": (0x4, 0, True),
    "bge": (0x5, 0, True),
    "bltu": (0x6, 0, True),
    "bgeu": (0x7, 0, True),
    "brz": (0x0, 1, False),
    "brp": (0x5, 1, False),
    "bmi": (0x4, 1, False),
    "bgt": (0x5, 2, True),
    "ble": (0x4, 2, True),
    "bvs": (0x1, 2, False),
    "bcs": (0x5, 3, False),
    "bpl": (0x5, 4, False),
    "jms": (0x0, 4, False),
}


def encode_branch_instruction(operation, address, rs1, rs2, explicit):
    """Encode a branch to the label at ``address`` (1-based line number)."""
    target = address - 1
    if not (_valid_register(rs1) and _valid_register(rs2)) or not (
        _BRANCH_IMM_MIN <= target <= _BRANCH_IMM_MAX
    ):
        raise EncodingError("invalid offset for branch instruction")

    if explicit:
        rs1 += _REGISTER_OFFSET
        rs2 += _REGISTER_OFFSET

    try:
        funct3, deriv, uses_registers = _BRANCHES[operation.lower()]
    except KeyError:
        raise EncodingError(f"unknown branch instruction {operation!r}") from None
    if not uses_registers:
        rs1 = rs2 = 0
    return encode_b_type(Opcode.BRANCH, funct3, rs1, rs2, deriv, target)