import pytest

from tinyrisc.assembler import Assembler, AssemblyError, assemble, is_valid_label
from tinyrisc.decoding import DATA_START
from tinyrisc.isa import (
    encode_branch_instruction,
    encode_i_instruction,
    encode_r_instruction,
)
from tinyrisc.machine import Machine


@pytest.mark.parametrize(
    "label, expected",
    [
        ("loop1", True),
        ("Start", True),
        ("1loop", False),
        ("ADD", False),
        ("bltu", False),
        ("lo-op", False),
        ("", False),
    ],
)
def test_is_valid_label(label, expected):
    assert is_valid_label(label) is expected


def test_normalize_collapses_whitespace_and_commas():
    assembler = Assembler()
    assert assembler.normalize_line("  add   r1,r2,  r3 ") == "add r1 r2 r3"
    assert assembler.normalize_line("add\tr1\tr2") == "add r1 r2"


def test_normalize_separates_immediate():
    assembler = Assembler()
    assert assembler.normalize_line("mov r1,#5") == "mov r1 #5"


def test_normalize_comment_returns_none():
    assembler = Assembler()
    assert assembler.normalize_line("// a comment") is None


def test_normalize_records_label():
    assembler = Assembler()
    assert assembler.normalize_line("top add r1 #1") == "add r1 #1"
    assert assembler.label_address("top") == 1


def test_comment_moves_counter_back():
    plain = Assembler()
    plain.normalize_line("x hlt")
    commented = Assembler()
    commented.normalize_line("// note")
    commented.normalize_line("x hlt")
    assert commented.label_address("x") == plain.label_address("x") - 1


def test_normalize_too_many_elements():
    with pytest.raises(AssemblyError):
        Assembler().normalize_line("add r1 r2 r3 r4 r5")


def test_duplicate_label_rejected():
    assembler = Assembler()
    assembler.add_label("here", 1)
    with pytest.raises(AssemblyError):
        assembler.add_label("here", 2)


def test_unknown_label_address_is_none():
    assert Assembler().label_address("missing") is None


def test_encode_register_forms():
    assembler = Assembler()
    assert assembler.encode_line("add r1 r2 r3", 0) == encode_r_instruction("add", 1, 2, 3, True)
    assert assembler.encode_line("sub r4 r5", 0) == encode_r_instruction("sub", 4, 0, 5, False)


def test_encode_immediate_forms():
    assembler = Assembler()
    assert assembler.encode_line("add r1 #4", 0) == encode_i_instruction("add", 1, 0, 4, False)
    assert assembler.encode_line("add r1 r2 #4", 0) == encode_i_instruction("add", 1, 2, 4, True)
    assert assembler.encode_line("mov r1 #-5", 0) == encode_i_instruction("mov", 1, 0, -5, False)


def test_encode_memory_forms():
    assembler = Assembler()
    assert assembler.encode_line("ldr r1 8(r2)", 0) == encode_i_instruction("ldr", 1, 2, 8, True)
    assert assembler.encode_line("str r3 (r2)", 0) == encode_i_instruction("str", 3, 2, 0, True)
    assert assembler.encode_line("lda r1 #3", 0) == encode_i_instruction("lda", 1, 0, 3, True)
    assert assembler.encode_line("psh r2", 0) == encode_i_instruction("psh", 2, 0, 0, False)


def test_encode_system_forms():
    assembler = Assembler()
    assert assembler.encode_line("ret", 0) == encode_i_instruction("ret", 0, 0, 0, False)
    assert assembler.encode_line("HLT", 0) == encode_r_instruction("hlt", 0, 0, 0, False)


def test_encode_branches():
    assembler = Assembler()
    assembler.add_label("dest", 3)
    assert assembler.encode_line("bra dest", 0) == encode_branch_instruction("bra", 3, 0, 0, False)
    assert assembler.encode_line("beq r1 r2 dest", 0) == encode_branch_instruction(
        "beq", 3, 1, 2, True
    )


@pytest.mark.parametrize(
    "line",
    [
        "ldr r1 x(r2)",
        "ldr r1 8[r2]",
        "ldr r1 8(q2)",
        "hlt r1",
        "mov r1 r2 r3",
        "psh r1 r2",
        "bra r1 r2",
        "foo",
        "add r9 r1 r2",
        "bge r1 r2 dest",
        "bra nowhere",
    ],
)
def test_encode_errors(line):
    assembler = Assembler()
    assembler.add_label("dest", 2)
    with pytest.raises(AssemblyError):
        assembler.encode_line(line, 0)


def test_assemble_skips_empty_lines_and_comments():
    words = assemble(["", "\n", "// start", "hlt"])
    assert words == [encode_r_instruction("hlt", 0, 0, 0, False)]


def test_assemble_runs_addition():
    program = assemble(["mov r1 #5", "mov r2 #7", "add r3 r1 r2", "hlt"])
    machine = Machine()
    machine.run(program)
    assert machine.registers[3] == machine.registers[1] + machine.registers[2]
    assert machine.registers[1] == 5
    assert machine.halted


def test_assemble_loop_with_forward_and_backward_labels():
    program = assemble(["mov r1 #3", "loop sub r1 #1", "bne r1 r0 loop", "hlt"])
    assert len(program) == 4
    machine = Machine()
    machine.run(program)
    assert machine.registers[1] == 0
    assert machine.flags.zf
    assert machine.halted


def test_assemble_store_absolute():
    program = assemble(["mov r1 #42", "sta r1 #3"])
    machine = Machine()
    machine.run(program)
    assert machine.memory[DATA_START + 3] == 42
    assert machine.halted


def test_assemble_whitespace_only_line_fails():
    with pytest.raises(AssemblyError):
        assemble(["   ", "hlt"])