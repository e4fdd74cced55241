# loxvm

A small interpreter for a subset of the Lox scripting language. Source text
is scanned into tokens, compiled in a single pass to a bytecode chunk, and
run on a stack-based virtual machine.

## The language

- values: numbers (floating point), strings, `true`, `false` and `nil`
- arithmetic: `+ - * /` (`+` also joins two strings)
- comparison: `== != < <= > >=`
- logic: `! and or`; only `nil` and `false` are falsey
- global variables and block-scoped local variables (`var`)
- statements: `print`, `if`/`else`, `while`, `for`, blocks `{ ... }`
- line comments starting with `//`

`print` writes numbers in shortest `%g` style (`3`, `0.5`, `1e+06`) and
writes strings inside double quotes, so `print "hi";` outputs `"hi"`.

## Installation

```
pip install .
```

## Command line

Run a script:

```
loxvm script.lox
```

Start an interactive prompt by running the command with no arguments:

```
loxvm
```

The prompt shows `> `, reads one line at a time and interprets it. Global
variables stay defined from one line to the next. End of input (Ctrl-D)
leaves the prompt.

Exit status:

| Status | Meaning                       |
|--------|-------------------------------|
| 0      | success                       |
| 64     | more than one argument given  |
| 65     | compile error                 |
| 70     | runtime error                 |
| 74     | the file could not be read    |

Compile errors are reported as `[line N] Error at 'x': message`; runtime
errors give the message followed by `[line N] in script`. Both go to
standard error.

## Example

```
var total = 0;
for (var i = 1; i <= 10; i = i + 1) {
  total = total + i;
}
print total;
print "sum: " + "done";
```

Output:

```
55
"sum: done"
```

## Library use

```python
import io

from loxvm.vm import VM, InterpretResult

out = io.StringIO()
err = io.StringIO()
vm = VM(out=out, err=err)
result = vm.interpret("print 1 + 2;")
assert result is InterpretResult.OK
print(out.getvalue())  # 3
```

`VM.interpret` returns an `InterpretResult` (`OK`, `COMPILE_ERROR` or
`RUNTIME_ERROR`) and writes any error report to the `err` stream. Without
streams, the VM uses standard output and standard error.

Other entry points:

- `loxvm.scanner.scan_tokens(source)` yields every `Token`, ending with EOF.
- `loxvm.compiler.compile_source(source)` returns a `Chunk`, or raises
  `CompileError` whose `errors` attribute lists every reported error.
- `loxvm.debug.disassemble_chunk(chunk, name)` returns a readable listing of
  a chunk's bytecode as a string; `disassemble_instruction(chunk, offset)`
  returns the text of one instruction and the offset of the next.
- `loxvm.cli.run_file(vm, path)` and `loxvm.cli.repl(vm, stream)` run a file
  or a prompt on a given VM.

## What it does not do

- There are no functions, classes, `return`, `this` or `super`; the keywords
  are recognised by the scanner but the compiler does not accept them.
- Strings have no escape sequences, and two strings never compare equal
  with `==`, not even identical ones.
- A chunk holds at most 256 constants and 256 local variables, and a jump
  (in `if`, `while`, `for`, `and`, `or`) can skip at most 255 bytes of code;
  longer bodies are reported as compile errors.