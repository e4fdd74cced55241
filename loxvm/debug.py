"""Disassembler producing a readable listing of a chunk."""

from __future__ import annotations

from .chunk import Chunk, OpCode
from .value import format_value

__all__ = ["disassemble_chunk", "disassemble_instruction"]

_CONSTANT_OPS = {OpCode.CONSTANT, OpCode.GET_GLOBAL, OpCode.DEFINE_GLOBAL, OpCode.SET_GLOBAL}
_BYTE_OPS = {OpCode.GET_LOCAL, OpCode.SET_LOCAL}
_JUMP_SIGNS = {OpCode.JUMP: 1, OpCode.JUMP_IF_FALSE: 1, OpCode.LOOP: -1}


def disassemble_chunk(chunk: Chunk, name: str) -> str:
    """Return the listing of every instruction in ``chunk`` under a header."""
    lines = [f"== {name} =="]
    offset = 0
    while offset < len(chunk.code):
        text, offset = disassemble_instruction(chunk, offset)
        lines.append(text)
    return "\n".join(lines) + "\n"


def disassemble_instruction(chunk: Chunk, offset: int) -> tuple[str, int]:
    """Describe the instruction at ``offset``; return its text and the next offset."""
    if offset >= len(chunk.lines):
        return f"Error: no line info for offset {offset}", offset + 1

    prefix = f"{offset:04d} "
    if offset > 0 and chunk.lines[offset] == chunk.lines[offset - 1]:
        prefix += "   | "
    else:
        prefix += f"{chunk.lines[offset]:4d} "

    instruction = chunk.code[offset]
    try:
        op = OpCode(instruction)
    except ValueError:
        return prefix + f"Unknown opcode {instruction}", offset + 1

    name = f"OP_{op.name}"
    if op in _CONSTANT_OPS:
        text, next_offset = _constant_instruction(chunk, name, offset)
    elif op in _BYTE_OPS:
        text, next_offset = _byte_instruction(chunk, name, offset)
    elif op in _JUMP_SIGNS:
        text, next_offset = _jump_instruction(chunk, name, _JUMP_SIGNS[op], offset)
    else:
        text, next_offset = name, offset + 1
    return prefix + text, next_offset


def _missing_operand(name: str, offset: int) -> tuple[str, int]:
    return f"Error: {name} instruction at offset {offset} missing operand", offset + 1


def _constant_instruction(chunk: Chunk, name: str, offset: int) -> tuple[str, int]:
    if offset + 1 >= len(chunk.code):
        return _missing_operand(name, offset)
    index = chunk.code[offset + 1]
    if index >= len(chunk.constants):
        shown = f"Error: constant index {index} out of bounds\n"
    else:
        shown = format_value(chunk.constants[index])
    return f"{name:<16} {index:4d} '{shown}'", offset + 2


def _byte_instruction(chunk: Chunk, name: str, offset: int) -> tuple[str, int]:
    if offset + 1 >= len(chunk.code):
        return _missing_operand(name, offset)
    slot = chunk.code[offset + 1]
    return f"{name:<16} {slot:4d}", offset + 2


def _jump_instruction(chunk: Chunk, name: str, sign: int, offset: int) -> tuple[str, int]:
    if offset + 2 >= len(chunk.code):
        return _missing_operand(name, offset)
    jump = (chunk.code[offset + 1] << 8) | chunk.code[offset + 2]
    return f"{name:<16} {offset:4d} -> {offset + 3 + sign * jump}", offset + 3