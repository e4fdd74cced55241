import pytest

from loxvm.chunk import Chunk, OpCode
from loxvm.compiler import CompileError, Parser, compile_source


def _jump_targets(chunk):
    """Yield (opcode, target) for every jump-like instruction in the chunk."""
    widths = {
        OpCode.CONSTANT: 2,
        OpCode.GET_LOCAL: 2,
        OpCode.SET_LOCAL: 2,
        OpCode.GET_GLOBAL: 2,
        OpCode.DEFINE_GLOBAL: 2,
        OpCode.SET_GLOBAL: 2,
        OpCode.JUMP: 3,
        OpCode.JUMP_IF_FALSE: 3,
        OpCode.LOOP: 3,
    }
    offset = 0
    code = chunk.code
    while offset < len(code):
        op = OpCode(code[offset])
        if op in (OpCode.JUMP, OpCode.JUMP_IF_FALSE, OpCode.LOOP):
            jump = (code[offset + 1] << 8) | code[offset + 2]
            sign = -1 if op is OpCode.LOOP else 1
            yield op, offset + 3 + sign * jump
        offset += widths.get(op, 1)


def _errors(source):
    with pytest.raises(CompileError) as info:
        compile_source(source)
    return info.value.errors


def test_print_number():
    chunk = compile_source("print 1;")
    assert list(chunk.code) == [OpCode.CONSTANT, 0, OpCode.PRINT, OpCode.RETURN]
    assert chunk.constants == [1.0]


def test_parser_fills_given_chunk():
    chunk = Chunk()
    result = Parser("print 2;", chunk).compile()
    assert result is chunk
    assert chunk.constants == [2.0]


def test_binary_addition_order():
    chunk = compile_source("print 1 + 2;")
    assert chunk.constants == [1.0, 2.0]
    assert list(chunk.code[-3:]) == [OpCode.ADD, OpCode.PRINT, OpCode.RETURN]


def test_precedence_multiplication_binds_tighter():
    chunk = compile_source("1 + 2 * 3;")
    code = list(chunk.code)
    assert code.index(OpCode.MULTIPLY) < code.index(OpCode.ADD)


@pytest.mark.parametrize(
    "source, ops",
    [
        ("1 <= 2;", [OpCode.GREATER, OpCode.NOT]),
        ("1 >= 2;", [OpCode.LESS, OpCode.NOT]),
        ("1 != 2;", [OpCode.EQUAL, OpCode.NOT]),
        ("1 == 2;", [OpCode.EQUAL]),
    ],
)
def test_comparison_operators(source, ops):
    chunk = compile_source(source)
    tail = list(chunk.code[4:-2])
    assert tail == ops


def test_unary_and_literals():
    chunk = compile_source("!true; -1; nil; false;")
    code = list(chunk.code)
    assert code[:2] == [OpCode.TRUE, OpCode.NOT]
    assert OpCode.NEGATE in code
    assert OpCode.NIL in code
    assert OpCode.FALSE in code


def test_string_constant_strips_quotes():
    chunk = compile_source('print "hi";')
    assert chunk.constants == ["hi"]


def test_global_definition():
    chunk = compile_source("var a = 1;")
    assert chunk.constants == ["a", 1.0]
    assert list(chunk.code) == [
        OpCode.CONSTANT, 1, OpCode.DEFINE_GLOBAL, 0, OpCode.RETURN,
    ]


def test_global_without_initializer_is_nil():
    chunk = compile_source("var a;")
    assert list(chunk.code) == [OpCode.NIL, OpCode.DEFINE_GLOBAL, 0, OpCode.RETURN]


def test_global_assignment_and_read():
    chunk = compile_source("a = 1; print a;")
    code = list(chunk.code)
    assert OpCode.SET_GLOBAL in code
    assert OpCode.GET_GLOBAL in code


def test_local_variable_slots():
    chunk = compile_source("{ var a = 1; print a; }")
    assert list(chunk.code) == [
        OpCode.CONSTANT, 0, OpCode.GET_LOCAL, 0, OpCode.PRINT, OpCode.POP, OpCode.RETURN,
    ]


def test_local_assignment():
    chunk = compile_source("{ var a = 1; a = 2; }")
    assert OpCode.SET_LOCAL in list(chunk.code)


def test_line_numbers_recorded():
    chunk = compile_source("print 1;\nprint 2;")
    assert len(chunk.lines) == len(chunk.code)
    assert chunk.lines[0] == 1
    assert chunk.lines[3] == 2


def test_if_else_jumps_stay_in_code():
    chunk = compile_source("if (true) print 1; else print 2;")
    targets = list(_jump_targets(chunk))
    assert targets
    assert all(0 <= target <= len(chunk.code) for _, target in targets)


def test_while_loop_jumps_back_to_start():
    chunk = compile_source("while (false) print 1;")
    loops = [target for op, target in _jump_targets(chunk) if op is OpCode.LOOP]
    assert loops == [0]


def test_for_loop_structure():
    chunk = compile_source("for (var i = 0; i < 3; i = i + 1) print i;")
    targets = list(_jump_targets(chunk))
    assert any(op is OpCode.LOOP for op, _ in targets)
    assert all(0 <= target <= len(chunk.code) for _, target in targets)


def test_logical_operators_emit_jumps():
    chunk = compile_source("true and false; true or false;")
    ops = [op for op, _ in _jump_targets(chunk)]
    assert OpCode.JUMP_IF_FALSE in ops
    assert OpCode.JUMP in ops


def test_expect_expression_at_end():
    assert _errors("(") == ["[line 1] Error at end: Expect expression."]


def test_missing_semicolon():
    errors = _errors("print 1")
    assert len(errors) == 1
    assert errors[0].endswith("Expect ';' after value.")


@pytest.mark.parametrize("source", ["1 = 2;", "a + b = c;"])
def test_invalid_assignment_target(source):
    errors = _errors(source)
    assert any("Invalid assignment target." in e for e in errors)


def test_read_local_in_own_initializer():
    errors = _errors("{ var a = a; }")
    assert any("Can't read local variable in its own initializer." in e for e in errors)


def test_redeclared_local():
    errors = _errors("{ var a = 1; var a = 2; }")
    assert any("Already a variable with this name in this scope." in e for e in errors)


def test_shadowing_in_inner_scope_is_allowed():
    chunk = compile_source("{ var a = 1; { var a = 2; } }")
    assert chunk.code[-1] == OpCode.RETURN


def test_too_many_constants():
    source = "print " + " + ".join(str(n) for n in range(257)) + ";"
    errors = _errors(source)
    assert any("Too many constants in one chunk." in e for e in errors)


def test_too_many_locals():
    body = " ".join(f"var v{n};" for n in range(257))
    errors = _errors("{ " + body + " }")
    assert any("Too many local variable in function." in e for e in errors)


def test_too_much_code_to_jump_over():
    body = " ".join("print 1;" for _ in range(100))
    errors = _errors("if (true) { " + body + " }")
    assert any("Too much code to jump over" in e for e in errors)


def test_recovery_reports_each_statement():
    errors = _errors("print ;\nprint ;")
    assert len(errors) == 2
    assert errors[1].startswith("[line 2]")


def test_unclosed_block():
    errors = _errors("{ print 1;")
    assert any("Expect '}' after block." in e for e in errors)


def test_compile_error_message_joins_errors():
    with pytest.raises(CompileError) as info:
        compile_source("print ;\nprint ;")
    assert str(info.value) == "\n".join(info.value.errors)