"""
x86-64 Code Generator
=====================

This module generates x86-64 assembly (GNU as, Intel syntax) from the
Program AST. The whole program becomes a single routine, ``main`` by
default, whose return value is the program's result.

Code Generation Strategy
------------------------
The generator treats the hardware stack as an evaluation stack:

1. Evaluating any expression pushes exactly one 64-bit value.
2. Binary operations evaluate left, then right, pop both into RAX/RDI,
   combine them and push the result.
3. Variables live in fixed slots below the frame pointer, ``[rbp-8]``,
   ``[rbp-16]``, ...; a variable's address is pushed first when it is
   the target of an assignment.
4. Statements leave the evaluation stack exactly as they found it. An
   expression statement pops its value into RCX, which no expression
   writes, so falling off the end returns the value of the last one
   executed. A return pops into RAX and jumps past that copy.

Register Usage
--------------
| Register | Usage                                   |
|----------|-----------------------------------------|
| RAX      | Left operand, result, return value      |
| RCX      | Value of the last expression statement  |
| RDI      | Right operand, value being stored       |
| RBP      | Frame pointer (variables at [rbp-N])    |
| RSP      | Top of the evaluation stack             |

Stack Frame Layout
------------------
    +------------------+ <- RSP on entry
    | Return address   |
    +------------------+
    | Saved RBP        |
    +------------------+ <- RBP
    | slot 1  [rbp-8]  |
    | slot 2  [rbp-16] |
    | ...              |
    +------------------+ <- RSP after prologue (16-byte aligned)
    | Temp values      |  (evaluation stack)
    +------------------+

Comparisons
-----------
Only ``==``, ``!=``, ``<`` and ``<=`` reach the generator (the parser
rewrites ``>``/``>=``). Each compiles to ``cmp`` + ``setCC al`` +
``movzb rax, al`` and so always yields 0 or 1.

Control Flow Labels
-------------------
Every if/while/for takes a fresh index N from the label counter and
uses ``.Lelse<N>``, ``.Lbegin<N>`` and ``.Lend<N>``. All returns jump to
the shared epilogue at ``.Lreturn``.

Usage
-----
>>> from stackcc.compiler.parser import parse_source
>>> from stackcc.compiler.codegen import CodeGenerator
>>> asm = CodeGenerator().generate(parse_source("return 42;"))
>>> print(asm)
.intel_syntax noprefix
.globl main
main:
        push    rbp
        ...
"""

import logging
from typing import Optional

from stackcc.compiler.ast import (
    Program,
    Statement,
    BlockStatement,
    ExpressionStatement,
    ReturnStatement,
    IfStatement,
    WhileStatement,
    ForStatement,
    Expression,
    NumberLiteral,
    VariableReference,
    BinaryExpression,
    AssignmentExpression,
    BinaryOperator,
)
from stackcc.compiler.errors import CodeGenError, InternalInvariantError

logger = logging.getLogger(__name__)


# Range of a sign-extended 32-bit immediate, the widest 'push' accepts
IMM32_MIN = -(2**31)
IMM32_MAX = 2**31 - 1

RETURN_LABEL = ".Lreturn"

# Holds the last expression statement value; expression code never writes it
RESULT_REGISTER = "rcx"

# setCC instruction producing 1 when "rax OP rdi" holds
_SET_INSTRUCTIONS = {
    BinaryOperator.EQUAL: "sete",
    BinaryOperator.NOT_EQUAL: "setne",
    BinaryOperator.LESS: "setl",
    BinaryOperator.LESS_EQ: "setle",
}


class CodeGenerator:
    """
    Generates an x86-64 listing from a Program.

    The generator walks the AST post-order and emits straight-line code
    with labels for control flow. A single instance can be reused; each
    generate() call starts with a fresh label counter.

    Attributes:
        entry_symbol: Name of the global routine to emit
        emit_comments: Annotate the listing with '#' comments
        stack_alignment: Alignment the frame size is rounded up to
    """

    def __init__(
        self,
        entry_symbol: str = "main",
        emit_comments: bool = False,
        stack_alignment: int = 16,
    ):
        self.entry_symbol = entry_symbol
        self.emit_comments = emit_comments
        self.stack_alignment = stack_alignment

        self._output: list[str] = []

        # Label generation
        self._label_counter: int = 0

        # Values currently pushed on the evaluation stack
        self._depth: int = 0

        self._frame_size: int = 0

    def generate(self, program: Program) -> str:
        """
        Generate assembly code from a Program.

        Args:
            program: The root AST node

        Returns:
            Complete assembly listing, newline terminated

        Raises:
            InternalInvariantError: If the generated code is inconsistent
        """
        self._output = []
        self._label_counter = 0
        self._depth = 0
        self._frame_size = program.variables.frame_size(self.stack_alignment)

        for variable in program.variables:
            if variable.offset > self._frame_size:
                raise InternalInvariantError(
                    f"frame of {self._frame_size} bytes does not cover "
                    f"'{variable.name}' at [rbp-{variable.offset}]"
                )

        self._emit_header()
        self._emit_prologue(len(program.variables))

        for stmt in program.statements:
            self._generate_statement(stmt)

        self._emit_epilogue()

        logger.debug(
            "generated %d lines, %d labels, frame %d bytes",
            len(self._output), self._label_counter, self._frame_size,
        )
        return "\n".join(self._output) + "\n"

    # =========================================================================
    # Assembly Output Methods
    # =========================================================================

    def _emit(self, line: str = "") -> None:
        self._output.append(line)

    def _emit_comment(self, comment: str) -> None:
        if self.emit_comments:
            self._emit(f"        # {comment}")

    def _emit_label(self, label: str) -> None:
        self._emit(f"{label}:")

    def _emit_instruction(self, mnemonic: str, operand: str = "") -> None:
        if operand:
            self._emit(f"        {mnemonic:<8}{operand}")
        else:
            self._emit(f"        {mnemonic}")

    def _push(self, operand: str) -> None:
        self._emit_instruction("push", operand)
        self._depth += 1

    def _pop(self, register: str) -> None:
        if self._depth <= 0:
            raise InternalInvariantError(f"pop into {register} from an empty evaluation stack")
        self._emit_instruction("pop", register)
        self._depth -= 1

    def _new_label_index(self) -> int:
        index = self._label_counter
        self._label_counter += 1
        return index

    # =========================================================================
    # Routine Structure
    # =========================================================================

    def _emit_header(self) -> None:
        self._emit(".intel_syntax noprefix")
        self._emit(f".globl {self.entry_symbol}")
        self._emit_label(self.entry_symbol)

    def _emit_prologue(self, variable_count: int) -> None:
        self._emit_comment(f"prologue: {variable_count} variables, {self._frame_size} byte frame")
        self._emit_instruction("push", "rbp")
        self._emit_instruction("mov", "rbp, rsp")
        if self._frame_size:
            self._emit_instruction("sub", f"rsp, {self._frame_size}")
        self._emit_instruction("mov", f"{RESULT_REGISTER}, 0")

    def _emit_epilogue(self) -> None:
        # Fall-through result; every return jumps past this
        self._emit_instruction("mov", f"rax, {RESULT_REGISTER}")
        self._emit_label(RETURN_LABEL)
        self._emit_instruction("mov", "rsp, rbp")
        self._emit_instruction("pop", "rbp")
        self._emit_instruction("ret")

    # =========================================================================
    # Statement Code Generation
    # =========================================================================

    def _generate_statement(self, stmt: Statement) -> None:
        """Generate code for any statement; the stack depth must not change."""
        depth_before = self._depth

        if isinstance(stmt, ExpressionStatement):
            self._generate_expression(stmt.expression)
            self._pop(RESULT_REGISTER)
        elif isinstance(stmt, ReturnStatement):
            self._generate_return(stmt)
        elif isinstance(stmt, IfStatement):
            self._generate_if(stmt)
        elif isinstance(stmt, WhileStatement):
            self._generate_while(stmt)
        elif isinstance(stmt, ForStatement):
            self._generate_for(stmt)
        elif isinstance(stmt, BlockStatement):
            for inner in stmt.statements:
                self._generate_statement(inner)
        else:
            raise CodeGenError(f"unsupported statement {type(stmt).__name__}", stmt.location)

        if self._depth != depth_before:
            raise InternalInvariantError(
                f"{type(stmt).__name__} changed the evaluation stack depth "
                f"from {depth_before} to {self._depth}",
                stmt.location,
            )

    def _generate_discarded(self, expr: Expression) -> None:
        """Evaluate a for clause for its effect and drop the value."""
        self._generate_expression(expr)
        self._pop("rax")

    def _generate_condition(self, expr: Expression, false_label: str) -> None:
        """Evaluate a condition and jump to false_label when it is zero."""
        self._generate_expression(expr)
        self._pop("rax")
        self._emit_instruction("cmp", "rax, 0")
        self._emit_instruction("je", false_label)

    def _generate_return(self, stmt: ReturnStatement) -> None:
        self._emit_comment("return")
        self._generate_expression(stmt.value)
        self._pop("rax")
        self._emit_instruction("jmp", RETURN_LABEL)

    def _generate_if(self, stmt: IfStatement) -> None:
        index = self._new_label_index()
        end_label = f".Lend{index}"

        self._emit_comment("if condition")
        if stmt.else_branch is None:
            self._generate_condition(stmt.condition, end_label)
            self._generate_statement(stmt.then_branch)
        else:
            else_label = f".Lelse{index}"
            self._generate_condition(stmt.condition, else_label)
            self._generate_statement(stmt.then_branch)
            self._emit_instruction("jmp", end_label)
            self._emit_label(else_label)
            self._generate_statement(stmt.else_branch)

        self._emit_label(end_label)

    def _generate_while(self, stmt: WhileStatement) -> None:
        index = self._new_label_index()
        begin_label = f".Lbegin{index}"
        end_label = f".Lend{index}"

        self._emit_label(begin_label)
        self._emit_comment("while condition")
        self._generate_condition(stmt.condition, end_label)
        self._generate_statement(stmt.body)
        self._emit_instruction("jmp", begin_label)
        self._emit_label(end_label)

    def _generate_for(self, stmt: ForStatement) -> None:
        if stmt.initializer is not None:
            self._emit_comment("for init")
            self._generate_discarded(stmt.initializer)

        index = self._new_label_index()
        begin_label = f".Lbegin{index}"
        end_label = f".Lend{index}"

        self._emit_label(begin_label)
        if stmt.condition is not None:
            self._emit_comment("for condition")
            self._generate_condition(stmt.condition, end_label)

        self._generate_statement(stmt.body)

        if stmt.update is not None:
            self._emit_comment("for update")
            self._generate_discarded(stmt.update)

        self._emit_instruction("jmp", begin_label)
        self._emit_label(end_label)

    # =========================================================================
    # Expression Code Generation
    # =========================================================================

    def _generate_expression(self, expr: Expression) -> None:
        """Generate code that pushes the value of expr."""
        depth_before = self._depth

        if isinstance(expr, NumberLiteral):
            self._generate_number(expr)
        elif isinstance(expr, VariableReference):
            self._generate_address(expr)
            self._pop("rax")
            self._emit_instruction("mov", "rax, [rax]")
            self._push("rax")
        elif isinstance(expr, AssignmentExpression):
            self._generate_assignment(expr)
        elif isinstance(expr, BinaryExpression):
            self._generate_binary(expr)
        else:
            raise CodeGenError(f"unsupported expression {type(expr).__name__}", expr.location)

        if self._depth != depth_before + 1:
            raise InternalInvariantError(
                f"{type(expr).__name__} left {self._depth - depth_before} values "
                "on the evaluation stack instead of 1",
                expr.location,
            )

    def _generate_number(self, expr: NumberLiteral) -> None:
        if IMM32_MIN <= expr.value <= IMM32_MAX:
            self._push(str(expr.value))
        else:
            self._emit_instruction("mov", f"rax, {expr.value}")
            self._push("rax")

    def _generate_address(self, expr: VariableReference) -> None:
        """Push the address of a variable's stack slot."""
        if not 0 < expr.offset <= self._frame_size:
            raise InternalInvariantError(
                f"'{expr.name}' at [rbp-{expr.offset}] lies outside the "
                f"{self._frame_size} byte frame",
                expr.location,
            )
        self._emit_instruction("lea", f"rax, [rbp-{expr.offset}]")
        self._push("rax")

    def _generate_assignment(self, expr: AssignmentExpression) -> None:
        self._generate_address(expr.target)
        self._generate_expression(expr.value)
        self._pop("rdi")
        self._pop("rax")
        self._emit_instruction("mov", "[rax], rdi")
        self._push("rdi")

    def _generate_binary(self, expr: BinaryExpression) -> None:
        self._generate_expression(expr.left)
        self._generate_expression(expr.right)
        self._pop("rdi")
        self._pop("rax")

        op = expr.operator
        if op == BinaryOperator.ADD:
            self._emit_instruction("add", "rax, rdi")
        elif op == BinaryOperator.SUBTRACT:
            self._emit_instruction("sub", "rax, rdi")
        elif op == BinaryOperator.MULTIPLY:
            self._emit_instruction("imul", "rax, rdi")
        elif op == BinaryOperator.DIVIDE:
            # Sign-extend RAX into RDX:RAX; idiv truncates toward zero
            self._emit_instruction("cqo")
            self._emit_instruction("idiv", "rdi")
        elif op.is_comparison:
            self._emit_instruction("cmp", "rax, rdi")
            self._emit_instruction(_SET_INSTRUCTIONS[op], "al")
            self._emit_instruction("movzb", "rax, al")
        else:
            raise CodeGenError(f"unsupported operator {op.name}", expr.location)

        self._push("rax")


# =============================================================================
# Convenience Functions
# =============================================================================

def generate(program: Program, entry_symbol: Optional[str] = None) -> str:
    """Generate a listing for program with default settings."""
    return CodeGenerator(entry_symbol=entry_symbol or "main").generate(program)
