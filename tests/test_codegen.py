# =============================================================================
# test_codegen.py - Code Generator Unit Tests
# =============================================================================
# Tests for the x86-64 code generator.
#
# Test coverage includes:
#   - Routine header, prologue and epilogue
#   - Expression code (literals, variables, assignment, operators)
#   - Statement code and label allocation
#   - Generator options (entry symbol, comments, alignment)
#   - Internal consistency checks
# =============================================================================

import pytest

from stackcc.compiler.parser import parse_source
from stackcc.compiler.codegen import _SET_INSTRUCTIONS, CodeGenerator, generate
from stackcc.compiler.compiler import CompilerOptions, compile_source
from stackcc.compiler.ast import (
    BinaryOperator,
    ExpressionStatement,
    Program,
    Statement,
    VariableReference,
)
from stackcc.compiler.errors import CodeGenError, InternalInvariantError
from stackcc.compiler.variables import Variable
from stackcc.errors import SourceLocation


# =============================================================================
# Helper Functions
# =============================================================================

LOC = SourceLocation("<test>", 1, 1)


def lines(source: str, **kwargs) -> list[str]:
    """
    Compile source and return the listing with whitespace normalised,
    so 'push    rax' compares equal to 'push rax'.
    """
    asm = CodeGenerator(**kwargs).generate(parse_source(source))
    return [" ".join(line.split()) for line in asm.splitlines() if line.strip()]


def body(source: str) -> list[str]:
    """Return only the instructions between the prologue and the epilogue."""
    listing = lines(source)
    start = listing.index("mov rcx, 0") + 1
    end = listing.index(".Lreturn:") - 1
    return listing[start:end]


# =============================================================================
# Routine Structure
# =============================================================================

class TestRoutineStructure:
    """Test the fixed parts of every listing."""

    def test_return_constant(self):
        assert lines("return 42;") == [
            ".intel_syntax noprefix",
            ".globl main",
            "main:",
            "push rbp",
            "mov rbp, rsp",
            "mov rcx, 0",
            "push 42",
            "pop rax",
            "jmp .Lreturn",
            "mov rax, rcx",
            ".Lreturn:",
            "mov rsp, rbp",
            "pop rbp",
            "ret",
        ]

    def test_empty_program(self):
        """An empty program still forms a complete routine returning 0."""
        assert lines("") == [
            ".intel_syntax noprefix",
            ".globl main",
            "main:",
            "push rbp",
            "mov rbp, rsp",
            "mov rcx, 0",
            "mov rax, rcx",
            ".Lreturn:",
            "mov rsp, rbp",
            "pop rbp",
            "ret",
        ]

    def test_listing_ends_with_newline(self):
        asm = generate(parse_source("return 1;"))
        assert asm.endswith("ret\n")

    @pytest.mark.parametrize("source,frame", [
        ("a = 1;", 16),
        ("a = 1; b = 2;", 16),
        ("a = 1; b = 2; c = 3;", 32),
    ])
    def test_frame_reserved(self, source, frame):
        assert f"sub rsp, {frame}" in lines(source)

    def test_no_frame_without_variables(self):
        assert not any(line.startswith("sub rsp") for line in lines("return 1 + 2;"))

    def test_entry_symbol(self):
        listing = lines("return 0;", entry_symbol="start")
        assert listing[1:3] == [".globl start", "start:"]

    def test_comments(self):
        listing = lines("x = 1; while (x) x = 0; return x;", emit_comments=True)
        assert "# prologue: 1 variables, 16 byte frame" in listing
        assert "# while condition" in listing
        assert "# return" in listing

    def test_no_comments_by_default(self):
        assert not any(line.startswith("#") for line in lines("x = 1; return x;"))

    def test_custom_alignment(self):
        assert "sub rsp, 8" in lines("a = 1;", stack_alignment=8)


# =============================================================================
# Expressions
# =============================================================================

class TestExpressions:
    """Test expression code sequences."""

    def test_small_literal_pushed_directly(self):
        assert body("2147483647;") == ["push 2147483647", "pop rcx"]

    def test_large_literal_goes_through_rax(self):
        assert body("4294967296;") == ["mov rax, 4294967296", "push rax", "pop rcx"]

    def test_variable_read(self):
        assert body("a;")[:5] == [
            "lea rax, [rbp-8]",
            "push rax",
            "pop rax",
            "mov rax, [rax]",
            "push rax",
        ]

    def test_assignment(self):
        assert body("a = 1;") == [
            "lea rax, [rbp-8]",
            "push rax",
            "push 1",
            "pop rdi",
            "pop rax",
            "mov [rax], rdi",
            "push rdi",
            "pop rcx",
        ]

    def test_second_variable_slot(self):
        assert "lea rax, [rbp-16]" in body("a = 1; b = 2;")

    @pytest.mark.parametrize("op,instructions", [
        ("+", ["add rax, rdi"]),
        ("-", ["sub rax, rdi"]),
        ("*", ["imul rax, rdi"]),
        ("/", ["cqo", "idiv rdi"]),
    ])
    def test_arithmetic(self, op, instructions):
        assert body(f"6 {op} 3;") == (
            ["push 6", "push 3", "pop rdi", "pop rax"]
            + instructions
            + ["push rax", "pop rcx"]
        )

    @pytest.mark.parametrize("op,setcc", [
        ("==", "sete"),
        ("!=", "setne"),
        ("<", "setl"),
        ("<=", "setle"),
    ])
    def test_comparison(self, op, setcc):
        assert body(f"1 {op} 2;") == [
            "push 1", "push 2", "pop rdi", "pop rax",
            "cmp rax, rdi", f"{setcc} al", "movzb rax, al",
            "push rax", "pop rcx",
        ]

    def test_greater_than_evaluates_swapped(self):
        """'1 > 2' is generated as '2 < 1'."""
        assert body("1 > 2;")[:2] == ["push 2", "push 1"]
        assert "setl al" in body("1 > 2;")

    def test_unary_minus(self):
        assert body("-5;")[:2] == ["push 0", "push 5"]

    def test_comparison_operators_use_setcc(self):
        comparisons = {op for op in BinaryOperator if op.is_comparison}
        assert comparisons == set(_SET_INSTRUCTIONS)


# =============================================================================
# Statements
# =============================================================================

class TestStatements:
    """Test statement code and label allocation."""

    def test_if_without_else(self):
        assert body("if (1) 2;") == [
            "push 1", "pop rax", "cmp rax, 0", "je .Lend0",
            "push 2", "pop rcx",
            ".Lend0:",
        ]

    def test_if_else(self):
        assert body("if (1) 2; else 3;") == [
            "push 1", "pop rax", "cmp rax, 0", "je .Lelse0",
            "push 2", "pop rcx",
            "jmp .Lend0",
            ".Lelse0:",
            "push 3", "pop rcx",
            ".Lend0:",
        ]

    def test_while(self):
        assert body("while (0) 1;") == [
            ".Lbegin0:",
            "push 0", "pop rax", "cmp rax, 0", "je .Lend0",
            "push 1", "pop rcx",
            "jmp .Lbegin0",
            ".Lend0:",
        ]

    def test_for(self):
        code = body("for (i = 0; i < 2; i = i + 1) 5;")
        begin = code.index(".Lbegin0:")
        # Initializer runs once, before the loop label
        assert code[begin - 1] == "pop rax"
        assert "je .Lend0" in code
        assert code[-2:] == ["jmp .Lbegin0", ".Lend0:"]

    def test_for_without_condition_has_no_test(self):
        code = body("for (;;) return 1;")
        assert code == [".Lbegin0:", "push 1", "pop rax", "jmp .Lreturn", "jmp .Lbegin0", ".Lend0:"]

    def test_labels_unique_per_construct(self):
        listing = lines("if (1) 2; while (0) 3; for (;0;) 4; if (1) 5; else 6;")
        labels = [line for line in listing if line.endswith(":") and line.startswith(".L")]
        assert labels == [
            ".Lend0:",
            ".Lbegin1:", ".Lend1:",
            ".Lbegin2:", ".Lend2:",
            ".Lelse3:", ".Lend3:",
            ".Lreturn:",
        ]

    def test_nested_labels(self):
        listing = lines("while (1) if (0) 1;")
        assert "je .Lend0" in listing
        assert "je .Lend1" in listing

    def test_generator_reuse_resets_labels(self):
        generator = CodeGenerator()
        program = parse_source("while (0) 1;")
        assert generator.generate(program) == generator.generate(program)

    def test_return_jumps_to_shared_epilogue(self):
        listing = lines("if (1) return 1; return 2;")
        assert listing.count("jmp .Lreturn") == 2
        assert listing.count(".Lreturn:") == 1

    def test_expression_statement_result_survives_conditions(self):
        """Conditions and for clauses never write RCX; only expression statements do."""
        code = body("x = 1; for (i = 0; i < 3; i = i + 1) if (i < 0) 2;")
        assert [line for line in code if "rcx" in line] == ["pop rcx", "pop rcx"]

    def test_fallthrough_copies_result_before_epilogue(self):
        listing = lines("if (1) return 1; 2;")
        end = listing.index(".Lreturn:")
        assert listing[end - 2:end] == ["pop rcx", "mov rax, rcx"]

    def test_pushes_and_pops_balance(self):
        """Every statement leaves the evaluation stack empty."""
        code = body("a = b = 3; if (a == 3) { c = a * b; } else c = 0; while (c) c = c - 1;")
        pushes = sum(1 for line in code if line.startswith("push "))
        pops = sum(1 for line in code if line.startswith("pop "))
        assert pushes == pops


# =============================================================================
# Internal Consistency
# =============================================================================

class TestInvariants:
    """Test that the generator rejects inconsistent input."""

    def test_offset_outside_frame(self):
        stmt = ExpressionStatement(
            location=LOC,
            expression=VariableReference(location=LOC, name="ghost", offset=24),
        )
        with pytest.raises(InternalInvariantError) as exc_info:
            CodeGenerator().generate(Program(location=LOC, statements=[stmt]))
        assert "outside" in str(exc_info.value)
        assert str(exc_info.value).startswith("<test>:1:1: error: internal compiler error")

    def test_frame_too_small_for_declared_variable(self):
        program = parse_source("a = 1;")
        program.variables._variables["far"] = Variable("far", 64)
        with pytest.raises(InternalInvariantError) as exc_info:
            CodeGenerator().generate(program)
        assert "does not cover 'far'" in str(exc_info.value)

    def test_unknown_statement(self):
        program = Program(location=LOC, statements=[Statement(location=LOC)])
        with pytest.raises(CodeGenError):
            CodeGenerator().generate(program)

    def test_invariant_error_is_codegen_error(self):
        assert issubclass(InternalInvariantError, CodeGenError)


# =============================================================================
# Compiler Options
# =============================================================================

class TestCompilerOptions:
    """Test option validation and mapping onto the generator."""

    def test_defaults(self):
        options = CompilerOptions()
        assert options.entry_symbol == "main"
        assert options.emit_comments is False
        assert options.stack_alignment == 16

    @pytest.mark.parametrize("alignment", [0, -16, 12, 4])
    def test_invalid_alignment(self, alignment):
        with pytest.raises(ValueError):
            CompilerOptions(stack_alignment=alignment)

    def test_empty_entry_symbol(self):
        with pytest.raises(ValueError):
            CompilerOptions(entry_symbol="")

    def test_options_reach_generator(self):
        asm = compile_source("a = 1;", options=CompilerOptions(entry_symbol="go", stack_alignment=32))
        assert ".globl go" in asm
        assert "sub     rsp, 32" in asm
