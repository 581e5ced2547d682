"""Execution of decoded instructions on a small register machine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from .decoding import (
    DATA_END,
    DATA_START,
    INSTRUCTION_END,
    INSTRUCTION_START,
    MEMORY_SIZE,
    NUM_REGISTERS,
    STACK_END,
    STACK_START,
    decode_instruction,
    decode_program,
)
from .isa import Instruction, Opcode

__all__ = ["Flags", "MachineError", "Machine", "HALT_PC", "INT32_MAX", "INT32_MIN"]

HALT_PC = 0xFFFFFFFF

INT32_MAX = 2**31 - 1
INT32_MIN = -(2**31)

_REGISTER_OFFSET = 8


class _FlagKind(IntEnum):
    """Which overflow rule applies when the flags are updated."""

    OTHER = 0
    ADD = 1
    SUB = 2
    MUL = 3
    DIV = 4


def _int32(value):
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _uint32(value):
    return value & 0xFFFFFFFF


def _trunc_div(a, b):
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


class MachineError(RuntimeError):
    """Raised when execution cannot continue."""


@dataclass
class Flags:
    """Condition flags set by arithmetic and comparison instructions."""

    zf: bool = False
    sf: bool = False
    of: bool = False
    cf: bool = False

    def reset(self):
        """Clear every flag."""
        self.zf = self.sf = self.of = self.cf = False


class Machine:
    """Eight registers, four flags, a call counter and 3072 words of memory."""

    def __init__(self):
        self.registers = [0] * NUM_REGISTERS
        self.pc = 0
        self.stack_pointer = STACK_END
        self.call_depth = 0
        self.flags = Flags()
        self.memory = [0] * MEMORY_SIZE
        self.messages = []

    @property
    def halted(self):
        """True once execution was stopped by an instruction or an error."""
        return self.pc == HALT_PC

    # -- flags -------------------------------------------------------------

    def update_flags(self, result, real_result, op1, op2, kind):
        """Set the flags from a 32-bit result and its exact value."""
        flags = self.flags
        flags.reset()
        flags.zf = result == 0
        flags.sf = result < 0
        flags.cf = real_result > INT32_MAX

        if kind == _FlagKind.ADD:
            flags.of = (op1 > 0 and op2 > 0 and result < 0) or (
                op1 < 0 and op2 < 0 and result > 0
            )
        elif kind == _FlagKind.SUB:
            flags.of = (op1 > 0 and op2 < 0 and result < 0) or (
                op1 < 0 and op2 > 0 and result > 0
            )
        elif kind == _FlagKind.MUL:
            flags.of = result > INT32_MAX or result < INT32_MIN
        elif kind == _FlagKind.DIV:
            flags.of = op1 == INT32_MIN and op2 == -1

    # -- memory ------------------------------------------------------------

    def _address(self, index):
        if INSTRUCTION_START <= index <= INSTRUCTION_END:
            self._fail(f"cannot access the instruction area at index {index}")
        if DATA_START <= index <= STACK_END:
            return index
        self._fail(f"invalid memory index {index}")

    def read_memory(self, index):
        """Read a word from the data or stack area."""
        return self.memory[self._address(index)]

    def write_memory(self, index, value):
        """Write a word to the data or stack area."""
        self.memory[self._address(index)] = _int32(value)

    # -- registers ---------------------------------------------------------

    def _register_index(self, field):
        index = field - _REGISTER_OFFSET
        if not 0 <= index < NUM_REGISTERS:
            self._fail(f"invalid register field {field}")
        return index

    def _get(self, field):
        return self.registers[self._register_index(field)]

    def _set(self, field, value):
        self.registers[self._register_index(field)] = _int32(value)

    def _fail(self, message):
        self.pc = HALT_PC
        raise MachineError(message)

    # -- execution ---------------------------------------------------------

    def _arith(self, rd, op1, op2, exact, kind, store=True):
        result = _int32(exact)
        if store:
            self._set(rd, result)
        self.update_flags(result, exact, op1, op2, kind)

    def _shift_left(self, op1, amount):
        if amount < 0:
            self._fail(f"invalid shift amount {amount}")
        return op1 << amount

    def _shift_right(self, op1, amount):
        if amount < 0:
            self._fail(f"invalid shift amount {amount}")
        return op1 >> amount

    def _execute_r(self, ins):
        f3, f7 = ins.funct3, ins.funct7
        if f3 == 0x0:
            if f7 == 0x00:
                op2 = self._get(ins.rs2)
                if ins.rs1 == 0:
                    self._set(ins.rd, op2)
                else:
                    op1 = self._get(ins.rs1)
                    self._arith(ins.rd, op1, op2, op1 + op2, _FlagKind.ADD)
            elif f7 == 0x20:
                op1, op2 = self._get(ins.rs1), self._get(ins.rs2)
                self._arith(ins.rd, op1, op2, op1 - op2, _FlagKind.SUB)
            elif f7 == 0x01:
                op1, op2 = self._get(ins.rs1), self._get(ins.rs2)
                self._arith(ins.rd, op1, op2, op1 * op2, _FlagKind.MUL)
        elif f3 == 0x5 and f7 in (0x00, 0x01):
            op1, op2 = self._get(ins.rs1), self._get(ins.rs2)
            if f7 == 0x01:
                if op2 == 0:
                    self._fail("division by zero")
                self._arith(ins.rd, op1, op2, _trunc_div(op1, op2), _FlagKind.DIV)
            else:
                self._arith(
                    ins.rd, op1, op2, self._shift_right(op1, op2), _FlagKind.OTHER
                )
        elif f3 == 0x6 and f7 in (0x00, 0x01):
            op1, op2 = self._get(ins.rs1), self._get(ins.rs2)
            if f7 == 0x01:
                if op2 == 0:
                    self._fail("division by zero in MOD")
                remainder = op1 - op2 * _trunc_div(op1, op2)
                self._arith(ins.rd, op1, op2, remainder, _FlagKind.OTHER)
            else:
                self._arith(ins.rd, op1, op2, op1 | op2, _FlagKind.OTHER)
        elif f3 in (0x2, 0x5, 0x6):
            # Compare; funct3 5 and 6 with other funct7 values end up here too.
            op1, op2 = self._get(ins.rs1), self._get(ins.rs2)
            self._arith(ins.rd, op1, op2, op1 - op2, _FlagKind.OTHER, store=False)
        elif f3 == 0x7:
            op1, op2 = self._get(ins.rs1), self._get(ins.rs2)
            self._arith(ins.rd, op1, op2, op1 & op2, _FlagKind.OTHER)
        elif f3 == 0x4:
            op1, op2 = self._get(ins.rs1), self._get(ins.rs2)
            self._arith(ins.rd, op1, op2, op1 ^ op2, _FlagKind.OTHER)
        elif f3 == 0x1:
            op1, op2 = self._get(ins.rs1), self._get(ins.rs2)
            self._arith(ins.rd, op1, op2, self._shift_left(op1, op2), _FlagKind.OTHER)
        else:
            self._fail("unknown R-type function")

    def _execute_i(self, ins):
        f3, imm = ins.funct3, ins.imm
        if f3 == 0x0 and ins.rs1 == 0:
            self._set(ins.rd, imm)
            return
        op1 = self._get(ins.rs1)
        if f3 == 0x0:
            self._arith(ins.rd, op1, imm, op1 + imm, _FlagKind.ADD)
        elif f3 == 0x3:
            self._arith(ins.rd, op1, imm, op1 - imm, _FlagKind.SUB)
        elif f3 == 0x4:
            self._arith(ins.rd, op1, imm, op1 ^ imm, _FlagKind.OTHER)
        elif f3 == 0x6:
            self._arith(ins.rd, op1, imm, op1 | imm, _FlagKind.OTHER)
        elif f3 == 0x7:
            self._arith(ins.rd, op1, imm, op1 & imm, _FlagKind.OTHER)
        elif f3 == 0x1:
            self._arith(ins.rd, op1, imm, self._shift_left(op1, imm), _FlagKind.OTHER)
        elif f3 == 0x5:
            self._arith(ins.rd, op1, imm, self._shift_right(op1, imm), _FlagKind.OTHER)
        elif f3 == 0x2:
            self._arith(ins.rd, op1, imm, op1 - imm, _FlagKind.OTHER, store=False)
        else:
            self._fail("unknown I-type function")

    def _branch_taken(self, ins):
        f3, deriv, flags = ins.funct3, ins.deriv, self.flags
        if f3 == 0x0:
            if deriv == 0:
                return self._get(ins.rs1) == self._get(ins.rs2)
            if deriv == 1:
                return flags.zf
            if deriv == 2:
                return True
            if deriv == 4:
                self.memory[self.call_depth] = self.pc + 1
                self.call_depth += 1
                if self.call_depth > INSTRUCTION_END:
                    self._fail("too many nested subroutine calls")
                return True
            return False
        if f3 == 0x1:
            if deriv == 0:
                return self._get(ins.rs1) != self._get(ins.rs2)
            if deriv == 2:
                return flags.of
            return False
        if f3 == 0x4:
            if deriv == 0:
                return self._get(ins.rs1) < self._get(ins.rs2)
            if deriv == 1:
                return flags.sf
            if deriv == 2:
                return self._get(ins.rs1) <= self._get(ins.rs2)
            return False
        if f3 == 0x5:
            if deriv == 0:
                return self._get(ins.rs1) >= self._get(ins.rs2)
            if deriv == 1:
                return not flags.zf and not flags.sf
            if deriv == 2:
                return self._get(ins.rs1) > self._get(ins.rs2)
            if deriv == 3:
                return flags.cf
            if deriv == 4:
                return not flags.sf
            return False
        if f3 == 0x6:
            return _uint32(self._get(ins.rs1)) < _uint32(self._get(ins.rs2))
        if f3 == 0x7:
            return _uint32(self._get(ins.rs1)) >= _uint32(self._get(ins.rs2))
        self._fail("unknown B-type function")

    def _data_position(self, ins):
        position = ins.imm + DATA_START
        if position > DATA_END:
            self._fail(f"data area exceeded at instruction {self.pc}")
        if ins.rs1 != 0:
            position += self._get(ins.rs1)
            if position > DATA_END:
                self._fail(f"data area exceeded at instruction {self.pc}")
        return position

    def _execute_store(self, ins):
        if ins.funct3 == 0x1:
            if self.stack_pointer < STACK_START:
                self._fail("stack overflow on push")
            self.write_memory(self.stack_pointer, self._get(ins.rd))
            self.stack_pointer -= 1
            return
        absolute = ins.rs1 == 0
        position = self._data_position(ins)
        self.write_memory(position, self._get(ins.rd))
        if absolute:
            # An absolute store ends execution.
            self.pc = HALT_PC

    def _execute_load(self, ins):
        if ins.funct3 == 0x1:
            if self.stack_pointer >= STACK_END:
                self._fail("stack underflow on pop")
            self.stack_pointer += 1
            self._set(ins.rd, self.read_memory(self.stack_pointer))
            return
        position = self._data_position(ins)
        self._set(ins.rd, self.read_memory(position))

    def _execute_system(self, ins):
        if ins.funct3 == 0x0:
            self.messages.append("HALT: execution stopped.")
            self.pc = HALT_PC
        elif ins.funct3 == 0x1:
            self.call_depth -= 1
            if self.call_depth >= INSTRUCTION_START:
                self.pc = self.memory[self.call_depth]
            else:
                self._fail("RET has nowhere to return to")

    def execute(self, instruction):
        """Carry out one decoded instruction, updating the machine state."""
        opcode = instruction.opcode
        if opcode == Opcode.R_TYPE:
            self._execute_r(instruction)
        elif opcode == Opcode.I_TYPE:
            self._execute_i(instruction)
        elif opcode == Opcode.BRANCH:
            if self._branch_taken(instruction):
                self.pc = instruction.imm
        elif opcode == Opcode.STORE:
            self._execute_store(instruction)
        elif opcode == Opcode.LOAD:
            self._execute_load(instruction)
        elif opcode == Opcode.SYSTEM:
            self._execute_system(instruction)
        else:
            self._fail("unknown opcode")

    def step(self, program):
        """Execute the instruction at the program counter.

        ``program`` holds machine words or decoded instructions. Returns
        False when the program counter is outside the program.
        """
        if not 0 <= self.pc < len(program):
            return False
        item = program[self.pc]
        instruction = item if isinstance(item, Instruction) else decode_instruction(item)
        if instruction.kind == "?":
            self._fail(f"unknown instruction at PC={self.pc}")
        previous = self.pc
        self.execute(instruction)
        if self.pc == previous:
            self.pc += 1
        return True

    def run(self, program):
        """Execute ``program`` until it halts or runs off its end.

        Returns the number of instructions executed.
        """
        instructions = decode_program(program)
        steps = 0
        while self.step(instructions):
            steps += 1
        return steps