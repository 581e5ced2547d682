"""Assembler, decoder, simulator and curses editor for a small RISC-style instruction set."""

__version__ = "0.15.0"
__all__ = ["isa", "decoding", "machine", "assembler", "editor", "tui"]