#!/usr/bin/env python3
"""
stackcc Pipeline Demo
=====================

This script walks a program through every stage of the compiler:
1. Tokenize the source
2. Parse it and inspect the variable table and AST
3. Generate the assembly listing
4. Run the listing in the emulator
5. Build and run it natively (when a C compiler is available)

Usage:
    source .venv/bin/activate
    python examples/pipeline_demo.py
"""

import platform

from stackcc.compiler import ASTPrinter, Compiler, CompilerOptions
from stackcc.emulator import run_listing
from stackcc.toolchain import compile_and_run, find_c_compiler


SOURCE = """
// Sum of the odd numbers below 20
sum = 0;
for (i = 1; i < 20; i = i + 2)
    sum = sum + i;
return sum;
"""


def main():
    compiler = Compiler(CompilerOptions(emit_comments=True))
    result = compiler.compile_source(SOURCE, "demo.c")

    # ==========================================================================
    # 1. Tokens
    # ==========================================================================
    print(f"Tokens ({result.token_count}):")
    for token in result.tokens[:8]:
        print(f"  {token!r}")
    print("  ...")

    # ==========================================================================
    # 2. Variables and AST
    # ==========================================================================
    # Every variable gets an 8-byte slot below the frame pointer, in the
    # order names first appear.
    print("\nVariables:")
    for variable in result.program.variables:
        print(f"  {variable.name:<6} [rbp-{variable.offset}]")

    print("\nAST:")
    for line in ASTPrinter().print(result.program).splitlines():
        print(f"  {line}")

    # ==========================================================================
    # 3. Assembly
    # ==========================================================================
    print("\nAssembly:")
    print(result.assembly)

    # ==========================================================================
    # 4. Emulator
    # ==========================================================================
    run = run_listing(result.assembly)
    print(f"Emulator: returned {run.return_value} after {run.steps} instructions")

    # ==========================================================================
    # 5. Native build
    # ==========================================================================
    if find_c_compiler() and platform.machine() in ("x86_64", "AMD64"):
        print(f"Native:   exit status {compile_and_run(result.assembly)}")
    else:
        print("Native:   skipped (needs a C compiler on x86-64)")


if __name__ == "__main__":
    main()
