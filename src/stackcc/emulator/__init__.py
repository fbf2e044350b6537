"""
x86-64 Listing Emulator
=======================

Runs the assembly listings stackcc produces without an assembler or an
x86-64 host, which makes compiled programs testable anywhere.

The emulator understands exactly the instruction subset the code
generator emits:

    push pop mov lea add sub imul cqo idiv cmp
    sete setne setl setle movzb jmp je ret

Quick Start
-----------
    >>> from stackcc import compile_source
    >>> from stackcc.emulator import run_listing
    >>> result = run_listing(compile_source("x = 0; while (x < 13) x = x + 1; return x;"))
    >>> result.exit_status
    13

With a step budget::

    >>> from stackcc.emulator import EmulatorConfig
    >>> run_listing(asm, config=EmulatorConfig(max_steps=10_000))
"""

from stackcc.emulator.errors import (
    EmulatorError,
    AsmSyntaxError,
    UnsupportedInstructionError,
    UndefinedLabelError,
    StepLimitExceededError,
    DivisionError,
)
from stackcc.emulator.listing import (
    Listing,
    Instruction,
    Operand,
    OperandKind,
    parse_listing,
)
from stackcc.emulator.machine import (
    Machine,
    EmulatorConfig,
    ExecutionResult,
    run_listing,
)

__all__ = [
    "Machine",
    "EmulatorConfig",
    "ExecutionResult",
    "run_listing",
    "Listing",
    "Instruction",
    "Operand",
    "OperandKind",
    "parse_listing",
    "EmulatorError",
    "AsmSyntaxError",
    "UnsupportedInstructionError",
    "UndefinedLabelError",
    "StepLimitExceededError",
    "DivisionError",
]
