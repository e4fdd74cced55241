from loxvm.chunk import Chunk, OpCode
from loxvm.debug import disassemble_chunk, disassemble_instruction


def constant_chunk():
    chunk = Chunk()
    index = chunk.add_constant(1.2)
    chunk.write(OpCode.CONSTANT, 123)
    chunk.write(index, 123)
    chunk.write(OpCode.RETURN, 123)
    return chunk


def test_chunk_listing_header_and_lines():
    listing = disassemble_chunk(constant_chunk(), "test")
    lines = listing.splitlines()
    assert lines[0] == "== test =="
    assert len(lines) == 3
    assert listing.endswith("\n")


def test_constant_instruction_text():
    text, next_offset = disassemble_instruction(constant_chunk(), 0)
    assert text == "0000  123 OP_CONSTANT         0 '1.2'"
    assert next_offset == 2


def test_repeated_line_is_marked_with_bar():
    text, next_offset = disassemble_instruction(constant_chunk(), 2)
    assert text == "0002    | OP_RETURN"
    assert next_offset == 3


def test_string_constant_is_quoted():
    chunk = Chunk()
    chunk.write(OpCode.GET_GLOBAL, 1)
    chunk.write(chunk.add_constant("name"), 1)
    text, next_offset = disassemble_instruction(chunk, 0)
    assert "OP_GET_GLOBAL" in text
    assert text.endswith("'\"name\"'")
    assert next_offset == 2


def test_byte_instruction_shows_slot():
    chunk = Chunk()
    chunk.write(OpCode.GET_LOCAL, 1)
    chunk.write(3, 1)
    text, next_offset = disassemble_instruction(chunk, 0)
    assert "OP_GET_LOCAL" in text
    assert text.split()[-1] == "3"
    assert next_offset == 2


def test_forward_jump_target():
    chunk = Chunk()
    for byte in (OpCode.JUMP, 0, 5):
        chunk.write(byte, 1)
    text, next_offset = disassemble_instruction(chunk, 0)
    assert "OP_JUMP" in text
    assert text.endswith("-> 8")
    assert next_offset == 3


def test_loop_jumps_backwards():
    chunk = Chunk()
    for byte in (OpCode.NIL, OpCode.POP, OpCode.NIL, OpCode.LOOP, 0, 3):
        chunk.write(byte, 1)
    text, next_offset = disassemble_instruction(chunk, 3)
    assert "OP_LOOP" in text
    assert text.endswith("-> 3")
    assert next_offset == 6


def test_unknown_opcode():
    chunk = Chunk()
    chunk.write(255, 1)
    text, next_offset = disassemble_instruction(chunk, 0)
    assert "Unknown opcode 255" in text
    assert next_offset == 1


def test_missing_line_info():
    chunk = Chunk()
    chunk.code.append(OpCode.RETURN)
    text, next_offset = disassemble_instruction(chunk, 0)
    assert text.startswith("Error: no line info for offset")
    assert next_offset == 1


def test_constant_index_out_of_bounds():
    chunk = Chunk()
    chunk.write(OpCode.CONSTANT, 1)
    chunk.write(7, 1)
    text, next_offset = disassemble_instruction(chunk, 0)
    assert "out of bounds" in text
    assert next_offset == 2


def test_constant_missing_operand():
    chunk = Chunk()
    chunk.write(OpCode.CONSTANT, 1)
    text, next_offset = disassemble_instruction(chunk, 0)
    assert "missing operand" in text
    assert next_offset == 1


def test_listing_covers_every_instruction():
    chunk = Chunk()
    for byte in (OpCode.TRUE, OpCode.NOT, OpCode.PRINT, OpCode.RETURN):
        chunk.write(byte, 4)
    lines = disassemble_chunk(chunk, "ops").splitlines()[1:]
    assert [line.split()[-1] for line in lines] == [
        "OP_TRUE",
        "OP_NOT",
        "OP_PRINT",
        "OP_RETURN",
    ]