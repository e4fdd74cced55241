"""Stack-based virtual machine executing compiled bytecode."""

from __future__ import annotations

import math
import operator
import sys
from enum import IntEnum
from typing import Callable, Optional, TextIO

from .chunk import Chunk, OpCode
from .compiler import CompileError, compile_source
from .value import format_value, is_falsey, values_equal

__all__ = ["InterpretResult", "LoxRuntimeError", "VM"]


class InterpretResult(IntEnum):
    """Outcome of interpreting one source text."""

    OK = 0
    COMPILE_ERROR = 1
    RUNTIME_ERROR = 2


class LoxRuntimeError(Exception):
    """Raised while executing bytecode when an operation cannot be carried out."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _divide(a: float, b: float) -> float:
    """Divide with IEEE semantics: division by zero yields infinity or NaN."""
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


_NUMERIC_OPS: dict[OpCode, Callable[[float, float], object]] = {
    OpCode.GREATER: operator.gt,
    OpCode.LESS: operator.lt,
    OpCode.SUBTRACT: operator.sub,
    OpCode.MULTIPLY: operator.mul,
    OpCode.DIVIDE: _divide,
}

_LITERALS = {
    OpCode.NIL: None,
    OpCode.TRUE: True,
    OpCode.FALSE: False,
}


class VM:
    """Runs source text: compiles it to a chunk and executes the bytecode.

    Global variables persist from one ``interpret`` call to the next.
    """

    def __init__(self, out: Optional[TextIO] = None, err: Optional[TextIO] = None) -> None:
        self._out = out
        self._err = err
        self.chunk = Chunk()
        self.ip = 0
        self.stack: list = []
        self.globals: dict[str, object] = {}

    @property
    def out(self) -> TextIO:
        """Stream that program output is written to."""
        return self._out if self._out is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        """Stream that error reports are written to."""
        return self._err if self._err is not None else sys.stderr

    def interpret(self, source: str) -> InterpretResult:
        """Compile and run ``source``, reporting any error on the error stream."""
        try:
            chunk = compile_source(source)
        except CompileError as error:
            for message in error.errors:
                self.err.write(message + "\n")
            return InterpretResult.COMPILE_ERROR

        self.chunk = chunk
        self.ip = 0
        try:
            self._run()
        except LoxRuntimeError as error:
            self._report(error)
            return InterpretResult.RUNTIME_ERROR
        return InterpretResult.OK

    def _report(self, error: LoxRuntimeError) -> None:
        self.err.write(error.message + "\n")
        lines = self.chunk.lines
        line = lines[self.ip] if 0 <= self.ip < len(lines) else -1
        self.err.write(f"[line {line}] in script\n")
        self.stack.clear()

    # Stack and instruction stream.

    def _push(self, value: object) -> None:
        self.stack.append(value)

    def _pop(self) -> object:
        return self.stack.pop()

    def _peek(self, distance: int) -> object:
        return self.stack[-1 - distance]

    def _read_byte(self) -> int:
        byte = self.chunk.code[self.ip]
        self.ip += 1
        return byte

    def _read_short(self) -> int:
        high, low = self.chunk.code[self.ip], self.chunk.code[self.ip + 1]
        self.ip += 2
        return (high << 8) | low

    def _read_constant(self) -> object:
        return self.chunk.constants[self._read_byte()]

    def _read_name(self) -> str:
        name = self._read_constant()
        if not isinstance(name, str):
            raise LoxRuntimeError("Variable name must be a string.")
        return name

    # Execution.

    def _run(self) -> None:
        while True:
            op = self._read_byte()

            if op == OpCode.RETURN:
                return
            if op == OpCode.CONSTANT:
                self._push(self._read_constant())
            elif op in _LITERALS:
                self._push(_LITERALS[OpCode(op)])
            elif op == OpCode.POP:
                self._pop()
            elif op == OpCode.GET_LOCAL:
                self._push(self.stack[self._read_byte()])
            elif op == OpCode.SET_LOCAL:
                self.stack[self._read_byte()] = self._peek(0)
            elif op == OpCode.GET_GLOBAL:
                name = self._read_name()
                if name not in self.globals:
                    raise LoxRuntimeError(f"Undefined variable '{name}'")
                self._push(self.globals[name])
            elif op == OpCode.DEFINE_GLOBAL:
                name = self._read_name()
                self.globals[name] = self._pop()
            elif op == OpCode.SET_GLOBAL:
                name = self._read_name()
                if name not in self.globals:
                    raise LoxRuntimeError(f"Undefined variable '{name}'.")
                self.globals[name] = self._peek(0)
            elif op == OpCode.EQUAL:
                b = self._pop()
                a = self._pop()
                self._push(values_equal(a, b))
            elif op in _NUMERIC_OPS:
                if not _is_number(self._peek(0)) or not _is_number(self._peek(1)):
                    raise LoxRuntimeError("Operands must be numbers.")
                b = self._pop()
                a = self._pop()
                self._push(_NUMERIC_OPS[OpCode(op)](a, b))
            elif op == OpCode.ADD:
                self._add()
            elif op == OpCode.NOT:
                self._push(is_falsey(self._pop()))
            elif op == OpCode.NEGATE:
                if not _is_number(self._peek(0)):
                    raise LoxRuntimeError("Operand must be a number.")
                self._push(-self._pop())
            elif op == OpCode.PRINT:
                self.out.write(format_value(self._pop()) + "\n")
            elif op == OpCode.JUMP:
                offset = self._read_short()
                self.ip += offset
            elif op == OpCode.JUMP_IF_FALSE:
                offset = self._read_short()
                if is_falsey(self._peek(0)):
                    self.ip += offset
            elif op == OpCode.LOOP:
                offset = self._read_short()
                self.ip -= offset

    def _add(self) -> None:
        b, a = self._peek(0), self._peek(1)
        if isinstance(a, str) and isinstance(b, str):
            self._pop()
            self._pop()
            self._push(a + b)
        elif _is_number(a) and _is_number(b):
            self._pop()
            self._pop()
            self._push(a + b)
        else:
            raise LoxRuntimeError("Operands must be two numbers or two strings.")