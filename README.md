# tinyrisc

An assembler and step-by-step simulator for a small RISC-style teaching
instruction set. The machine has eight registers (`R0`–`R7`), four flags
(zero, sign, overflow, carry), a 3072-word memory and 32-bit R-, I- and
B-type instruction words.

Memory is split into three areas:

| Area         | Indices     |
|--------------|-------------|
| instructions | 0 – 1023    |
| data         | 1024 – 2047 |
| stack        | 2048 – 3071 |

Programs cannot read or write the instruction area. The simulator stores
subroutine return addresses there.

## Installation

```
pip install .
```

The interactive editor uses the standard `curses` module, so it needs a
terminal where `curses` is available.

## Interactive editor

```
tinyrisc
```

This opens a split terminal screen. Type your program in the left pane. The
arrow keys move the cursor, Backspace deletes and Enter splits the line. Press
**F5** to assemble the program and run it. The right pane then shows the
program counter, registers and flags after each instruction. Press **Enter**
to step to the next instruction. If assembly fails or the machine faults, the
error is shown in the right pane.

## Assembly language

Each line holds one instruction. Operands are separated by spaces or commas.
Immediates start with `#`. Lines that start with `//` are comments. A line may
begin with a label, which branches can then name. A label must start with a
letter, hold only letters and digits, and must not be a mnemonic.

```
        mov r1, #5
        mov r2, #1
loop    mul r2, r1
        sub r1, #1
        brp loop
        sta r2, #0
```

The two-operand forms (`add r1, r2` or `add r1, #3`) use the destination as
the first source. The three-operand forms (`add r1, r2, r3` or
`add r1, r2, #3`) name it separately.

Supported mnemonics:

- Arithmetic and logic: `add sub mul udv mod and or xor lsl lsr cmp mov`.
  `mul`, `udv` and `mod` take registers only. `udv` is signed division that
  rounds toward zero.
- Memory: `lda sta` (absolute, data index given as an immediate), `ldr str`
  (register plus offset, e.g. `ldr r1, 4(r2)` or `str r1, (r2)`), `psh pop`.
  An absolute store (`sta`) also stops execution.
- Branches: `bra brz brp bmi bpl bvs bcs` take a label. `beq bne blt ble bgt bltu bgeu`
  take two registers and a label.
- Subroutines: `jms` calls a label and `ret` returns.
- `hlt` stops the machine.

Immediates range from -2048 to 2047. The decoder reads the 12-bit immediate
field back without sign extension, so a negative immediate reaches the machine
as a large positive value. Branch targets must lie within the first 256
instructions.

## Library use

```python
from tinyrisc.assembler import assemble
from tinyrisc.machine import Machine

words = assemble(["mov r1, #7", "add r1, #3", "hlt"])
machine = Machine()
steps = machine.run(words)
print(machine.registers[1])  # 10
print(machine.halted)        # True
```

Modules:

- `tinyrisc.isa`: the `Opcode` enum, the `Instruction` record, the field
  packers `encode_r_type`, `encode_i_type` and `encode_b_type`, and the
  mnemonic encoders `encode_r_instruction`, `encode_i_instruction` and
  `encode_branch_instruction`. These raise `EncodingError` for bad registers,
  immediates or mnemonics.
- `tinyrisc.decoding`: `decode_instruction(word)` splits a word into an
  `Instruction`. An unknown opcode gives `kind == "?"`. `decode_program(words)`
  decodes a whole program and raises `ValueError` if it is empty. The module
  also holds the memory layout constants.
- `tinyrisc.assembler`: `assemble(lines)` and the `Assembler` class. The
  `Assembler` class has `labels`, `add_label`, `label_address`,
  `normalize_line`, `encode_line` and `assemble`. `is_valid_label(label)`
  checks label names. Bad source raises `AssemblyError`.
- `tinyrisc.machine`: the `Machine` class has `registers`, `pc`, `flags`,
  `memory`, `stack_pointer`, `call_depth`, `messages` and `halted`.
  `step(program)` executes one instruction. `run(program)` runs until the
  machine halts and returns the number of steps. Run-time faults raise
  `MachineError`. Examples are division by zero, access to the instruction
  area, stack overflow or underflow, and a `ret` with nowhere to return to.
- `tinyrisc.editor`: `TextBuffer`, the line buffer behind the editor.
- `tinyrisc.tui`: `format_state(machine)` returns the text lines shown in the
  state pane. `run_editor(stdscr)` and `main()` start the terminal editor.

## What it does not do

The editor has no open or save. A program exists only while the editor is
open, and is lost when the run ends. There is no command that assembles or
runs a program file. To work with files, read the lines yourself and pass them
to `assemble`.

## Tests

```
pip install .[test]
pytest
```