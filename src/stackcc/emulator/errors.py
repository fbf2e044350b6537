"""
Emulator Error Classes
======================

Errors raised while reading or executing an assembly listing. Each one
points at the listing line involved, using the same
``file:line:column: error:`` format as compile errors.
"""

from typing import Optional

from stackcc.errors import StackCCError, SourceLocation


class EmulatorError(StackCCError):
    """Base class for all emulator errors."""
    pass


class AsmSyntaxError(EmulatorError):
    """A listing line that is not a well-formed label, directive or instruction."""

    def __init__(self, message: str, location: SourceLocation, source_line: str):
        super().__init__(message, location, source_line=source_line)


class UnsupportedInstructionError(EmulatorError):
    """An instruction outside the subset the compiler emits."""

    def __init__(self, mnemonic: str, location: SourceLocation, source_line: str):
        self.mnemonic = mnemonic
        super().__init__(
            f"unsupported instruction '{mnemonic}'",
            location,
            source_line=source_line,
            span=len(mnemonic),
        )


class UndefinedLabelError(EmulatorError):
    """A jump or entry point naming a label the listing does not define."""

    def __init__(
        self,
        label: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.label = label
        super().__init__(f"undefined label '{label}'", location, source_line=source_line)


class StepLimitExceededError(EmulatorError):
    """The program did not halt within the configured number of steps."""

    def __init__(self, max_steps: int):
        self.max_steps = max_steps
        super().__init__(
            f"program did not halt within {max_steps} steps",
            hint="raise EmulatorConfig.max_steps if the program is expected to run longer",
        )


class DivisionError(EmulatorError):
    """idiv with a zero divisor or a quotient that does not fit 64 bits."""
    pass
