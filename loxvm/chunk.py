"""Bytecode chunks and the instruction set."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

__all__ = ["OpCode", "Chunk"]


class OpCode(IntEnum):
    """Instructions understood by the virtual machine."""

    CONSTANT = 0
    NIL = 1
    TRUE = 2
    FALSE = 3
    POP = 4
    GET_LOCAL = 5
    SET_LOCAL = 6
    GET_GLOBAL = 7
    DEFINE_GLOBAL = 8
    SET_GLOBAL = 9
    EQUAL = 10
    GREATER = 11
    LESS = 12
    ADD = 13
    SUBTRACT = 14
    MULTIPLY = 15
    DIVIDE = 16
    NOT = 17
    NEGATE = 18
    PRINT = 19
    JUMP = 20
    JUMP_IF_FALSE = 21
    LOOP = 22
    RETURN = 23


@dataclass
class Chunk:
    """A sequence of bytecode with a line number per byte and a constant pool."""

    code: bytearray = field(default_factory=bytearray)
    lines: list[int] = field(default_factory=list)
    constants: list = field(default_factory=list)

    def write(self, byte: int, line: int) -> None:
        """Append one byte of code produced by source line ``line``."""
        self.code.append(byte)
        self.lines.append(line)

    def add_constant(self, value: object) -> int:
        """Add a value to the constant pool and return its index."""
        self.constants.append(value)
        return len(self.constants) - 1