"""Command-line entry point: run a script file or an interactive prompt."""

from __future__ import annotations

import sys
from typing import Optional, Sequence, TextIO

from .vm import VM, InterpretResult

__all__ = ["main", "repl", "run_file"]

EXIT_USAGE = 64
EXIT_DATA_ERROR = 65
EXIT_SOFTWARE = 70
EXIT_IO_ERROR = 74

_EXIT_CODES = {
    InterpretResult.OK: 0,
    InterpretResult.COMPILE_ERROR: EXIT_DATA_ERROR,
    InterpretResult.RUNTIME_ERROR: EXIT_SOFTWARE,
}


def repl(vm: VM, stream: Optional[TextIO] = None) -> None:
    """Read lines from ``stream`` and interpret each one until input ends."""
    stream = stream if stream is not None else sys.stdin
    while True:
        vm.out.write("> ")
        vm.out.flush()
        line = stream.readline()
        if not line.endswith("\n"):
            vm.out.write("\n")
            break
        vm.interpret(line)


def run_file(vm: VM, path: str) -> int:
    """Interpret the file at ``path`` and return the process exit code."""
    try:
        with open(path, encoding="utf-8") as handle:
            source = handle.read()
    except OSError as error:
        vm.err.write(f"Could not read file: {error}\n")
        return EXIT_IO_ERROR
    return _EXIT_CODES[vm.interpret(source)]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run a prompt with no arguments or a script with one; return the exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    vm = VM()
    if not args:
        repl(vm)
        return 0
    if len(args) == 1:
        return run_file(vm, args[0])
    sys.stderr.write("Usage: loxvm [path]\n")
    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())