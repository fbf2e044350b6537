"""
Assembly Listing Reader
=======================

Parses the Intel-syntax listings produced by the code generator into
instructions the Machine can execute.

Accepted Lines
--------------
- ``.intel_syntax noprefix``, ``.text`` and ``.globl NAME`` directives
- ``label:`` definitions (optionally followed by an instruction)
- ``mnemonic operand[, operand]`` instructions
- blank lines and ``#`` comments

Operands
--------
| Form             | Example        |
|------------------|----------------|
| Register         | rax, rcx, al   |
| Immediate        | 42, -7         |
| Memory           | [rax], [rbp-8] |
| Label            | .Lend0         |

Anything else raises AsmSyntaxError; instructions outside the emitted
subset raise UnsupportedInstructionError, and jumps to labels that are
never defined raise UndefinedLabelError.
"""

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from stackcc.errors import SourceLocation
from stackcc.emulator.errors import (
    AsmSyntaxError,
    UnsupportedInstructionError,
    UndefinedLabelError,
)


REGISTERS = frozenset({"rax", "rcx", "rdi", "rdx", "rbp", "rsp", "al"})

# Operand count of every supported instruction
OPERAND_COUNTS: dict[str, int] = {
    "push": 1,
    "pop": 1,
    "mov": 2,
    "lea": 2,
    "add": 2,
    "sub": 2,
    "imul": 2,
    "cqo": 0,
    "idiv": 1,
    "cmp": 2,
    "sete": 1,
    "setne": 1,
    "setl": 1,
    "setle": 1,
    "movzb": 2,
    "jmp": 1,
    "je": 1,
    "ret": 0,
}

JUMPS = frozenset({"jmp", "je"})

IMM32_MIN = -(2**31)
IMM32_MAX = 2**31 - 1

_LABEL_RE = re.compile(r"^[A-Za-z_.$][\w.$]*$")
_IMMEDIATE_RE = re.compile(r"^[+-]?\d+$")
_MEMORY_RE = re.compile(r"^\[\s*([a-z]+)\s*(?:([+-])\s*(\d+)\s*)?\]$")


class OperandKind(Enum):
    REGISTER = auto()
    IMMEDIATE = auto()
    MEMORY = auto()
    LABEL = auto()


@dataclass(frozen=True)
class Operand:
    """
    One instruction operand.

    Attributes:
        kind: Operand form
        register: Register name (REGISTER, and the base of MEMORY)
        value: Immediate value, or the displacement of MEMORY
        label: Target label name (LABEL)
    """
    kind: OperandKind
    register: Optional[str] = None
    value: int = 0
    label: Optional[str] = None

    def __str__(self) -> str:
        if self.kind == OperandKind.REGISTER:
            return self.register
        if self.kind == OperandKind.IMMEDIATE:
            return str(self.value)
        if self.kind == OperandKind.LABEL:
            return self.label
        if self.value:
            sign = "-" if self.value < 0 else "+"
            return f"[{self.register}{sign}{abs(self.value)}]"
        return f"[{self.register}]"


@dataclass(frozen=True)
class Instruction:
    """
    A parsed instruction.

    Attributes:
        mnemonic: Lower-case instruction name
        operands: Operands in Intel order (destination first)
        line: Line number in the listing (1-indexed)
        text: The listing line, for error reporting
    """
    mnemonic: str
    operands: tuple[Operand, ...]
    line: int
    text: str

    def __str__(self) -> str:
        if self.operands:
            return f"{self.mnemonic} {', '.join(str(op) for op in self.operands)}"
        return self.mnemonic


@dataclass
class Listing:
    """
    A parsed listing.

    Attributes:
        instructions: Instructions in listing order
        labels: Label name -> index of the instruction that follows it
        entry: First symbol declared with .globl, if any
        filename: Listing name used in error messages
    """
    instructions: list[Instruction] = field(default_factory=list)
    labels: dict[str, int] = field(default_factory=dict)
    entry: Optional[str] = None
    filename: str = "<listing>"


class ListingParser:
    """
    Line-oriented parser for assembly listings.

    Usage:
        listing = ListingParser(text).parse()
    """

    def __init__(self, text: str, filename: str = "<listing>"):
        self.text = text
        self.filename = filename
        self._listing = Listing(filename=filename)

    def parse(self) -> Listing:
        """
        Parse the whole listing.

        Raises:
            AsmSyntaxError: On a malformed line
            UnsupportedInstructionError: On an instruction outside the subset
            UndefinedLabelError: On a jump to a label that is never defined
        """
        for line_number, raw in enumerate(self.text.splitlines(), start=1):
            self._parse_line(raw, line_number)

        for instruction in self._listing.instructions:
            if instruction.mnemonic in JUMPS:
                target = instruction.operands[0].label
                if target not in self._listing.labels:
                    raise UndefinedLabelError(
                        target,
                        SourceLocation(self.filename, instruction.line, 1),
                        instruction.text,
                    )

        return self._listing

    def _location(self, line_number: int) -> SourceLocation:
        return SourceLocation(self.filename, line_number, 1)

    def _parse_line(self, raw: str, line_number: int) -> None:
        line = raw.split("#", 1)[0].strip()
        if not line:
            return

        # Label definitions, possibly followed by an instruction
        if ":" in line:
            name, rest = line.split(":", 1)
            name = name.strip()
            if not _LABEL_RE.match(name):
                raise AsmSyntaxError(f"invalid label '{name}'", self._location(line_number), raw)
            if name in self._listing.labels:
                raise AsmSyntaxError(f"label '{name}' defined twice", self._location(line_number), raw)
            self._listing.labels[name] = len(self._listing.instructions)
            line = rest.strip()
            if not line:
                return

        if line.startswith("."):
            self._parse_directive(line, raw, line_number)
            return

        self._listing.instructions.append(self._parse_instruction(line, raw, line_number))

    def _parse_directive(self, line: str, raw: str, line_number: int) -> None:
        parts = line.split()
        directive = parts[0].lower()

        if directive == ".intel_syntax":
            if parts[1:] != ["noprefix"]:
                raise AsmSyntaxError(
                    "only '.intel_syntax noprefix' is supported",
                    self._location(line_number),
                    raw,
                )
        elif directive in (".globl", ".global"):
            if len(parts) != 2 or not _LABEL_RE.match(parts[1]):
                raise AsmSyntaxError(f"{directive} needs one symbol name", self._location(line_number), raw)
            if self._listing.entry is None:
                self._listing.entry = parts[1]
        elif directive == ".text":
            pass
        else:
            raise AsmSyntaxError(f"unsupported directive '{parts[0]}'", self._location(line_number), raw)

    def _parse_instruction(self, line: str, raw: str, line_number: int) -> Instruction:
        parts = line.split(None, 1)
        mnemonic = parts[0].lower()
        location = self._location(line_number)

        if mnemonic not in OPERAND_COUNTS:
            column = raw.find(parts[0]) + 1
            raise UnsupportedInstructionError(
                mnemonic, SourceLocation(self.filename, line_number, column), raw,
            )

        operand_texts = [text.strip() for text in parts[1].split(",")] if len(parts) > 1 else []
        if len(operand_texts) != OPERAND_COUNTS[mnemonic]:
            raise AsmSyntaxError(
                f"'{mnemonic}' takes {OPERAND_COUNTS[mnemonic]} operands, got {len(operand_texts)}",
                location,
                raw,
            )

        operands = tuple(self._parse_operand(text, mnemonic, location, raw) for text in operand_texts)

        if sum(1 for op in operands if op.kind == OperandKind.MEMORY) > 1:
            raise AsmSyntaxError("at most one memory operand is allowed", location, raw)
        if operands and operands[0].kind == OperandKind.IMMEDIATE and mnemonic != "push":
            raise AsmSyntaxError(f"'{mnemonic}' cannot write to an immediate", location, raw)
        if mnemonic == "push" and operands[0].kind == OperandKind.IMMEDIATE:
            if not IMM32_MIN <= operands[0].value <= IMM32_MAX:
                raise AsmSyntaxError("push immediate does not fit 32 bits", location, raw)

        return Instruction(mnemonic, operands, line_number, raw)

    def _parse_operand(self, text: str, mnemonic: str, location: SourceLocation, raw: str) -> Operand:
        lowered = text.lower()

        if mnemonic in JUMPS:
            if not _LABEL_RE.match(text):
                raise AsmSyntaxError(f"invalid jump target '{text}'", location, raw)
            return Operand(OperandKind.LABEL, label=text)

        if lowered in REGISTERS:
            return Operand(OperandKind.REGISTER, register=lowered)

        if _IMMEDIATE_RE.match(text):
            return Operand(OperandKind.IMMEDIATE, value=int(text))

        match = _MEMORY_RE.match(lowered)
        if match:
            base, sign, displacement = match.groups()
            if base not in REGISTERS or base == "al":
                raise AsmSyntaxError(f"invalid base register '{base}'", location, raw)
            value = int(displacement) if displacement else 0
            if sign == "-":
                value = -value
            return Operand(OperandKind.MEMORY, register=base, value=value)

        raise AsmSyntaxError(f"invalid operand '{text}'", location, raw)


def parse_listing(text: str, filename: str = "<listing>") -> Listing:
    """Parse listing text into a Listing."""
    return ListingParser(text, filename).parse()
