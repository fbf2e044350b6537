"""
Compiler Error Hierarchy
========================

This module defines the exceptions raised by the compilation pipeline.
All of them inherit from CompileError, which itself inherits from
StackCCError for consistent handling across the toolchain.

Exception Hierarchy
-------------------
CompileError (base for all compilation errors)
├── LexError - unrecognized character, out-of-range literal
├── ParseError - unexpected or missing token
│   └── InvalidAssignmentTargetError - '=' applied to a non-variable
└── CodeGenError - code generation errors
    └── InternalInvariantError - stack depth or frame size inconsistency

Compilation is fail-fast: the first error aborts the whole run and no
assembly is produced.

Example:
    <input>:1:3: error: expected ';', found '}'
        1 }
          ^
"""

from typing import Optional

from stackcc.errors import StackCCError, SourceLocation


class CompileError(StackCCError):
    """Base exception for all errors raised while compiling a program."""
    pass


# =============================================================================
# Lexical Errors
# =============================================================================

class LexError(CompileError):
    """
    Lexical error in the source text.

    Raised when the lexer meets a character that starts no token, an
    integer literal too large for the 64-bit target, or an unterminated
    block comment.
    """
    pass


class InvalidCharacterError(LexError):
    """Character that matches no token rule."""

    def __init__(
        self,
        char: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        self.char = char
        super().__init__(
            f"invalid character '{char}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


# =============================================================================
# Syntax Errors
# =============================================================================

class ParseError(CompileError):
    """
    Token sequence does not match the grammar at the current position.

    Attributes:
        expected: Description of what the parser was looking for
        found: Text of the token actually found
    """

    def __init__(
        self,
        expected: str,
        found: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        message: Optional[str] = None,
        hint: Optional[str] = None,
        span: int = 1,
    ):
        self.expected = expected
        self.found = found
        super().__init__(
            message or f"expected {expected}, found '{found}'",
            location=location,
            hint=hint,
            source_line=source_line,
            span=span,
        )


class InvalidAssignmentTargetError(ParseError):
    """
    Left side of '=' is not a variable.

    Examples of invalid targets:
        1 = x;
        (a + b) = x;
    """

    def __init__(
        self,
        found: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(
            "variable",
            found,
            location=location,
            source_line=source_line,
            message="invalid assignment target",
            hint="only a variable can appear on the left of '='",
        )


# =============================================================================
# Code Generation Errors
# =============================================================================

class CodeGenError(CompileError):
    """Error during code generation."""
    pass


class InternalInvariantError(CodeGenError):
    """
    The code generator detected an inconsistency in its own output.

    This signals a bug in the parser/generator contract (for example a
    statement leaving values on the evaluation stack), never a problem
    in the user's program.
    """

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(
            f"internal compiler error: {message}",
            location=location,
        )
