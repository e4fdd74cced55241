"""A scanner, single-pass bytecode compiler, disassembler and stack virtual machine for a subset of Lox."""

__version__ = "0.1.0"