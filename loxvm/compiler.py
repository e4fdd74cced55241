"""Single-pass compiler from source text to bytecode."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional

from .chunk import Chunk, OpCode
from .scanner import Scanner, Token, TokenType

__all__ = ["CompileError", "Parser", "compile_source"]

_MAX_LOCALS = 256
_MAX_CONSTANT_INDEX = 255
_MAX_JUMP = 255
_MAX_LOOP = 0xFFFF


class CompileError(Exception):
    """Raised when source text fails to compile; holds every reported error."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("\n".join(errors))
        self.errors = list(errors)


class Precedence(IntEnum):
    """Binding strength of operators, weakest first."""

    NONE = 0
    ASSIGNMENT = 1
    OR = 2
    AND = 3
    EQUALITY = 4
    COMPARISON = 5
    TERM = 6
    FACTOR = 7
    UNARY = 8
    CALL = 9
    PRIMARY = 10


ParseFn = Callable[["Parser", bool], None]


@dataclass(frozen=True)
class _Rule:
    prefix: Optional[ParseFn]
    infix: Optional[ParseFn]
    precedence: Precedence


@dataclass
class _Local:
    name: str
    depth: int


_STATEMENT_STARTS = frozenset(
    {
        TokenType.CLASS,
        TokenType.FUN,
        TokenType.VAR,
        TokenType.FOR,
        TokenType.IF,
        TokenType.WHILE,
        TokenType.PRINT,
        TokenType.RETURN,
    }
)

_BINARY_OPS = {
    TokenType.BANG_EQUAL: (OpCode.EQUAL, OpCode.NOT),
    TokenType.EQUAL_EQUAL: (OpCode.EQUAL,),
    TokenType.GREATER: (OpCode.GREATER,),
    TokenType.GREATER_EQUAL: (OpCode.LESS, OpCode.NOT),
    TokenType.LESS: (OpCode.LESS,),
    TokenType.LESS_EQUAL: (OpCode.GREATER, OpCode.NOT),
    TokenType.PLUS: (OpCode.ADD,),
    TokenType.MINUS: (OpCode.SUBTRACT,),
    TokenType.STAR: (OpCode.MULTIPLY,),
    TokenType.SLASH: (OpCode.DIVIDE,),
}

_LITERAL_OPS = {
    TokenType.FALSE: OpCode.FALSE,
    TokenType.NIL: OpCode.NIL,
    TokenType.TRUE: OpCode.TRUE,
}

_UNARY_OPS = {
    TokenType.BANG: OpCode.NOT,
    TokenType.MINUS: OpCode.NEGATE,
}


class Parser:
    """Compiles one source text into a chunk of bytecode."""

    def __init__(self, source: str, chunk: Chunk) -> None:
        self.scanner = Scanner(source)
        self.chunk = chunk
        self.current = Token(TokenType.EOF, "", 1)
        self.previous = Token(TokenType.EOF, "", 1)
        self.had_error = False
        self.panic_mode = False
        self.errors: list[str] = []
        self.locals: list[_Local] = []
        self.scope_depth = 0

    def compile(self) -> Chunk:
        """Compile the whole source; return the chunk or raise CompileError."""
        self._advance()
        while not self._match(TokenType.EOF):
            self._declaration()
        self._emit_byte(OpCode.RETURN)
        if self.had_error:
            raise CompileError(self.errors)
        return self.chunk

    # Token handling.

    def _advance(self) -> None:
        self.previous = self.current
        while True:
            self.current = self.scanner.scan_token()
            if self.current.type is not TokenType.ERROR:
                break

    def _check(self, kind: TokenType) -> bool:
        return self.current.type is kind

    def _match(self, kind: TokenType) -> bool:
        if not self._check(kind):
            return False
        self._advance()
        return True

    def _consume(self, kind: TokenType, message: str) -> None:
        if self._check(kind):
            self._advance()
            return
        self._error_at_current(message)

    # Error reporting.

    def _error_at_current(self, message: str) -> None:
        self._error_at(self.previous, message)

    def _error(self, message: str) -> None:
        self._error_at(self.previous, message)

    def _error_at(self, token: Token, message: str) -> None:
        if self.panic_mode:
            return
        self.panic_mode = True
        text = f"[line {token.line}] Error"
        if token.type is TokenType.EOF:
            text += " at end"
        elif token.type is not TokenType.ERROR:
            text += f" at '{token.lexeme}'"
        self.errors.append(f"{text}: {message}")
        self.had_error = True

    def _synchronize(self) -> None:
        self.panic_mode = False
        while self.current.type is not TokenType.EOF:
            if self.previous.type is TokenType.SEMICOLON:
                return
            if self.current.type in _STATEMENT_STARTS:
                return
            self._advance()

    # Code emission.

    def _emit_byte(self, byte: int) -> None:
        self.chunk.write(byte, self.previous.line)

    def _emit_bytes(self, *data: int) -> None:
        for byte in data:
            self._emit_byte(byte)

    def _emit_jump(self, instruction: OpCode) -> int:
        self._emit_bytes(instruction, 0xFF, 0xFF)
        return len(self.chunk.code) - 2

    def _patch_jump(self, offset: int) -> None:
        jump = len(self.chunk.code) - offset - 2
        if jump > _MAX_JUMP:
            self._error("Too much code to jump over")
        self.chunk.code[offset] = (jump >> 8) & 0xFF
        self.chunk.code[offset + 1] = jump & 0xFF

    def _emit_loop(self, loop_start: int) -> None:
        self._emit_byte(OpCode.LOOP)
        offset = len(self.chunk.code) - loop_start + 2
        if offset > _MAX_LOOP:
            self._error("Loop body too large.")
        self._emit_bytes((offset >> 8) & 0xFF, offset & 0xFF)

    def _make_constant(self, value: object) -> int:
        index = self.chunk.add_constant(value)
        if index > _MAX_CONSTANT_INDEX:
            self._error("Too many constants in one chunk.")
            return 0
        return index

    def _emit_constant(self, value: object) -> None:
        self._emit_bytes(OpCode.CONSTANT, self._make_constant(value))

    # Scopes and variables.

    def _begin_scope(self) -> None:
        self.scope_depth += 1

    def _end_scope(self) -> None:
        self.scope_depth -= 1
        while self.locals and self.locals[-1].depth > self.scope_depth:
            self._emit_byte(OpCode.POP)
            self.locals.pop()

    def _identifier_constant(self, name: Token) -> int:
        return self._make_constant(name.lexeme)

    def _resolve_local(self, name: Token) -> int:
        for slot in reversed(range(len(self.locals))):
            local = self.locals[slot]
            if local.name == name.lexeme:
                if local.depth == -1:
                    self._error("Can't read local variable in its own initializer.")
                return slot
        return -1

    def _add_local(self, name: Token) -> None:
        if len(self.locals) == _MAX_LOCALS:
            self._error("Too many local variable in function.")
            return
        self.locals.append(_Local(name.lexeme, -1))

    def _declare_variable(self) -> None:
        if self.scope_depth == 0:
            return
        name = self.previous
        for local in reversed(self.locals):
            if local.depth != -1 and local.depth < self.scope_depth:
                break
            if local.name == name.lexeme:
                self._error("Already a variable with this name in this scope.")
        self._add_local(name)

    def _parse_variable(self, message: str) -> int:
        self._consume(TokenType.IDENTIFIER, message)
        self._declare_variable()
        if self.scope_depth > 0:
            return 0
        return self._identifier_constant(self.previous)

    def _mark_initialized(self) -> None:
        if self.locals:
            self.locals[-1].depth = self.scope_depth

    def _define_variable(self, global_index: int) -> None:
        if self.scope_depth > 0:
            self._mark_initialized()
            return
        self._emit_bytes(OpCode.DEFINE_GLOBAL, global_index)

    def _named_variable(self, name: Token, can_assign: bool) -> None:
        slot = self._resolve_local(name)
        if slot != -1:
            arg, get_op, set_op = slot, OpCode.GET_LOCAL, OpCode.SET_LOCAL
        else:
            arg = self._identifier_constant(name)
            get_op, set_op = OpCode.GET_GLOBAL, OpCode.SET_GLOBAL

        if can_assign and self._match(TokenType.EQUAL):
            self._expression()
            self._emit_bytes(set_op, arg)
        else:
            self._emit_bytes(get_op, arg)

    # Expressions.

    def _parse_precedence(self, precedence: Precedence) -> None:
        self._advance()
        prefix = _rule(self.previous.type).prefix
        if prefix is None:
            self._error("Expect expression.")
            return

        can_assign = precedence <= Precedence.ASSIGNMENT
        prefix(self, can_assign)

        while precedence <= _rule(self.current.type).precedence:
            self._advance()
            infix = _rule(self.previous.type).infix
            if infix is not None:
                infix(self, can_assign)

        if can_assign and self._match(TokenType.EQUAL):
            self._error("Invalid assignment target.")

    def _expression(self) -> None:
        self._parse_precedence(Precedence.ASSIGNMENT)

    def _grouping(self, can_assign: bool) -> None:
        self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after expression")

    def _number(self, can_assign: bool) -> None:
        self._emit_constant(float(self.previous.lexeme))

    def _string(self, can_assign: bool) -> None:
        self._emit_constant(self.previous.lexeme[1:-1])

    def _variable(self, can_assign: bool) -> None:
        self._named_variable(self.previous, can_assign)

    def _literal(self, can_assign: bool) -> None:
        op = _LITERAL_OPS.get(self.previous.type)
        if op is not None:
            self._emit_byte(op)

    def _unary(self, can_assign: bool) -> None:
        operator = self.previous.type
        self._parse_precedence(Precedence.UNARY)
        op = _UNARY_OPS.get(operator)
        if op is not None:
            self._emit_byte(op)

    def _binary(self, can_assign: bool) -> None:
        operator = self.previous.type
        rule = _rule(operator)
        self._parse_precedence(Precedence(rule.precedence + 1))
        self._emit_bytes(*_BINARY_OPS.get(operator, ()))

    def _and(self, can_assign: bool) -> None:
        end_jump = self._emit_jump(OpCode.JUMP_IF_FALSE)
        self._emit_byte(OpCode.POP)
        self._parse_precedence(Precedence.AND)
        self._patch_jump(end_jump)

    def _or(self, can_assign: bool) -> None:
        else_jump = self._emit_jump(OpCode.JUMP_IF_FALSE)
        end_jump = self._emit_jump(OpCode.JUMP)
        self._patch_jump(else_jump)
        self._emit_byte(OpCode.POP)
        self._parse_precedence(Precedence.OR)
        self._patch_jump(end_jump)

    # Statements.

    def _declaration(self) -> None:
        if self._match(TokenType.VAR):
            self._var_declaration()
        else:
            self._statement()
        if self.panic_mode:
            self._synchronize()

    def _var_declaration(self) -> None:
        global_index = self._parse_variable("Expect variable name.")
        if self._match(TokenType.EQUAL):
            self._expression()
        else:
            self._emit_byte(OpCode.NIL)
        self._consume(TokenType.SEMICOLON, "Expect ';' after variable declaration.")
        self._define_variable(global_index)

    def _statement(self) -> None:
        if self._match(TokenType.PRINT):
            self._print_statement()
        elif self._match(TokenType.FOR):
            self._for_statement()
        elif self._match(TokenType.IF):
            self._if_statement()
        elif self._match(TokenType.WHILE):
            self._while_statement()
        elif self._match(TokenType.LEFT_BRACE):
            self._begin_scope()
            self._block()
            self._end_scope()
        else:
            self._expression_statement()

    def _block(self) -> None:
        while not self._check(TokenType.RIGHT_BRACE) and not self._check(TokenType.EOF):
            self._declaration()
        self._consume(TokenType.RIGHT_BRACE, "Expect '}' after block.")

    def _print_statement(self) -> None:
        self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after value.")
        self._emit_byte(OpCode.PRINT)

    def _expression_statement(self) -> None:
        self._expression()
        self._consume(TokenType.SEMICOLON, "Expect ';' after expression.")
        self._emit_byte(OpCode.POP)

    def _if_statement(self) -> None:
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'if'.")
        self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after condition.")

        then_jump = self._emit_jump(OpCode.JUMP_IF_FALSE)
        self._emit_byte(OpCode.POP)
        self._statement()

        else_jump = self._emit_jump(OpCode.JUMP)
        self._patch_jump(then_jump)
        self._emit_byte(OpCode.POP)

        if self._match(TokenType.ELSE):
            self._statement()
        self._patch_jump(else_jump)

    def _while_statement(self) -> None:
        loop_start = len(self.chunk.code)
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'while'.")
        self._expression()
        self._consume(TokenType.RIGHT_PAREN, "Expect ')' after condition.")

        exit_jump = self._emit_jump(OpCode.JUMP_IF_FALSE)
        self._emit_byte(OpCode.POP)
        self._statement()
        self._emit_loop(loop_start)

        self._patch_jump(exit_jump)
        self._emit_byte(OpCode.POP)

    def _for_statement(self) -> None:
        self._begin_scope()
        self._consume(TokenType.LEFT_PAREN, "Expect '(' after 'for'")
        if self._match(TokenType.SEMICOLON):
            pass
        elif self._match(TokenType.VAR):
            self._var_declaration()
        else:
            self._expression_statement()

        loop_start = len(self.chunk.code)
        exit_jump: Optional[int] = None
        if not self._match(TokenType.SEMICOLON):
            self._expression()
            self._consume(TokenType.SEMICOLON, "Expect ';' after loop condition.")
            exit_jump = self._emit_jump(OpCode.JUMP_IF_FALSE)
            self._emit_byte(OpCode.POP)

        if not self._match(TokenType.RIGHT_PAREN):
            body_jump = self._emit_jump(OpCode.JUMP)
            increment_start = len(self.chunk.code)
            self._expression()
            self._emit_byte(OpCode.POP)
            self._consume(TokenType.RIGHT_PAREN, "Expect ')' after for clauses.")
            self._emit_loop(loop_start)
            loop_start = increment_start
            self._patch_jump(body_jump)

        self._statement()
        self._emit_loop(loop_start)
        if exit_jump is not None:
            self._patch_jump(exit_jump)
            self._emit_byte(OpCode.POP)
        self._end_scope()


_NO_RULE = _Rule(None, None, Precedence.NONE)

_RULES: dict[TokenType, _Rule] = {
    TokenType.LEFT_PAREN: _Rule(Parser._grouping, None, Precedence.NONE),
    TokenType.MINUS: _Rule(Parser._unary, Parser._binary, Precedence.TERM),
    TokenType.PLUS: _Rule(None, Parser._binary, Precedence.TERM),
    TokenType.SLASH: _Rule(None, Parser._binary, Precedence.FACTOR),
    TokenType.STAR: _Rule(None, Parser._binary, Precedence.FACTOR),
    TokenType.BANG: _Rule(Parser._unary, None, Precedence.NONE),
    TokenType.BANG_EQUAL: _Rule(None, Parser._binary, Precedence.EQUALITY),
    TokenType.EQUAL_EQUAL: _Rule(None, Parser._binary, Precedence.EQUALITY),
    TokenType.GREATER: _Rule(None, Parser._binary, Precedence.COMPARISON),
    TokenType.GREATER_EQUAL: _Rule(None, Parser._binary, Precedence.COMPARISON),
    TokenType.LESS: _Rule(None, Parser._binary, Precedence.COMPARISON),
    TokenType.LESS_EQUAL: _Rule(None, Parser._binary, Precedence.COMPARISON),
    TokenType.IDENTIFIER: _Rule(Parser._variable, None, Precedence.NONE),
    TokenType.STRING: _Rule(Parser._string, None, Precedence.NONE),
    TokenType.NUMBER: _Rule(Parser._number, None, Precedence.NONE),
    TokenType.AND: _Rule(None, Parser._and, Precedence.AND),
    TokenType.FALSE: _Rule(Parser._literal, None, Precedence.NONE),
    TokenType.NIL: _Rule(Parser._literal, None, Precedence.NONE),
    TokenType.OR: _Rule(None, Parser._or, Precedence.OR),
    TokenType.TRUE: _Rule(Parser._literal, None, Precedence.NONE),
}


def _rule(kind: TokenType) -> _Rule:
    return _RULES.get(kind, _NO_RULE)


def compile_source(source: str) -> Chunk:
    """Compile ``source`` into a new chunk; raise CompileError on failure."""
    return Parser(source, Chunk()).compile()