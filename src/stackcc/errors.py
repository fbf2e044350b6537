"""
stackcc Error Hierarchy
=======================

This module defines the root of the exception hierarchy for stackcc.
All exceptions inherit from StackCCError, allowing callers to catch
every toolchain error with a single except clause if desired.

Exception Hierarchy
-------------------
StackCCError (base)
├── CompileError (stackcc.compiler.errors)
│   ├── LexError - unrecognized character or malformed literal
│   ├── ParseError - token sequence matches no grammar rule
│   │   └── InvalidAssignmentTargetError - left side of '=' is not a variable
│   └── CodeGenError - code generation failure
│       └── InternalInvariantError - generator contract violated
├── EmulatorError (stackcc.emulator.errors)
│   ├── AsmSyntaxError - malformed assembly line
│   ├── UnsupportedInstructionError - instruction outside the emitted subset
│   ├── UndefinedLabelError - jump to a label that does not exist
│   └── StepLimitExceededError - program did not halt in time
└── ToolchainError (stackcc.toolchain)

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^^^ (underlines the offending token)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source text for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        offset: Character offset from the start of the source (0-indexed)
    """
    filename: str
    line: int
    column: int
    offset: int = 0

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Base Exception Class
# =============================================================================

class StackCCError(Exception):
    """
    Base exception for all stackcc errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The source text at the error location (optional)
        span: Number of columns the caret underlines, at least 1
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        span: int = 1,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        self.span = max(span, 1)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            <input>:2:5: error: expected ';', found 'return'
                x = return 1;
                    ^^^^^^
        """
        lines = [f"{self.location}: error: {self.message}" if self.location else f"error: {self.message}"]

        caret = self._caret_line()
        if caret is not None:
            lines.append(f"    {self.source_line}")
            lines.append(f"    {caret}")

        if self.hint:
            lines.append(f"hint: {self.hint}")

        return "\n".join(lines)

    def _caret_line(self) -> Optional[str]:
        """
        Build the line that underlines the error, or None without context.

        Tabs before the error column are kept so the carets stay under
        the token however the terminal expands them. The underline stops
        at the end of the line.
        """
        if self.source_line is None or self.location is None or self.location.column < 1:
            return None

        prefix = self.source_line[:self.location.column - 1]
        padding = "".join("\t" if char == "\t" else " " for char in prefix)
        room = len(self.source_line) - len(prefix)
        return padding + "^" * max(1, min(self.span, room))
