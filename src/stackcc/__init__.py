"""
stackcc - A Small C-like Compiler for x86-64
============================================

stackcc translates a small C-like language (integer expressions,
variables, comparisons, if/else, while, for, blocks and return) into
x86-64 GNU assembler text in Intel syntax. The listing defines a single
routine, ``main``, whose return value becomes the process exit status
once it is assembled and linked with a C toolchain.

Main Components
---------------
- **compiler**: Lexer, parser, variable table and code generator
    Converts program text into an assembly listing

- **emulator**: Interpreter for the instruction subset the compiler emits
    Runs listings without an assembler, on any host

- **toolchain**: Native build helper
    Assembles and links listings with the system C compiler

Quick Start
-----------
Compile a program:
    >>> from stackcc import compile_source
    >>> asm = compile_source("a = 11; return a + 1;")

Run it in the emulator:
    >>> from stackcc.emulator import run_listing
    >>> run_listing(asm).exit_status
    12

Or use the command-line tool:
    $ stackcc "a = 11; return a + 1;" -o prog.s
    $ cc -o prog prog.s && ./prog; echo $?
    12
    $ stackcc --run "a = 11; return a + 1;"; echo $?
    12

Version History
---------------
1.0.0 - Initial release with compiler, emulator and native build helper
"""

__version__ = "1.0.0"

from stackcc.errors import StackCCError, SourceLocation
from stackcc.compiler import (
    Compiler,
    CompilerOptions,
    CompilerResult,
    compile_source,
    compile_file,
)

__all__ = [
    "__version__",
    "StackCCError",
    "SourceLocation",
    "Compiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_source",
    "compile_file",
]
