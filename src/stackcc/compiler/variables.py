"""
Variable Table
==============

Assigns every distinct identifier a stack slot in the entry routine's
frame. There is no declaration syntax: the first use of a name declares
it, and every later use resolves to the same slot.

Slots are one machine word wide and are numbered in first-appearance
order. Slot ``n`` (1-indexed) lives at ``[rbp - n * WORD_SIZE]``.
"""

from dataclasses import dataclass
from typing import Iterator, Optional


# Width of one stack slot in bytes (x86-64 general purpose register)
WORD_SIZE = 8


@dataclass(frozen=True)
class Variable:
    """
    A named stack slot.

    Attributes:
        name: Identifier as written in the source
        offset: Positive distance in bytes below the frame pointer
    """
    name: str
    offset: int


class VariableTable:
    """
    Mapping from identifier to stack slot, in first-appearance order.

    Example:
        >>> table = VariableTable()
        >>> table.lookup_or_declare("a").offset
        8
        >>> table.lookup_or_declare("b").offset
        16
        >>> table.lookup_or_declare("a").offset
        8
    """

    def __init__(self):
        self._variables: dict[str, Variable] = {}

    def lookup_or_declare(self, name: str) -> Variable:
        """Return the slot for name, allocating the next one on first sight."""
        variable = self._variables.get(name)
        if variable is None:
            variable = Variable(name, (len(self._variables) + 1) * WORD_SIZE)
            self._variables[name] = variable
        return variable

    def lookup(self, name: str) -> Optional[Variable]:
        return self._variables.get(name)

    def frame_size(self, alignment: int = 16) -> int:
        """
        Bytes to reserve for all slots, rounded up to the stack alignment.

        Args:
            alignment: Required stack alignment in bytes (16 on the SysV ABI)
        """
        size = len(self._variables) * WORD_SIZE
        return (size + alignment - 1) // alignment * alignment

    def __len__(self) -> int:
        return len(self._variables)

    def __iter__(self) -> Iterator[Variable]:
        return iter(self._variables.values())

    def __contains__(self, name: str) -> bool:
        return name in self._variables

    def __repr__(self) -> str:
        slots = ", ".join(f"{v.name}@{v.offset}" for v in self)
        return f"VariableTable({slots})"
