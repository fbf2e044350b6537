"""
x86-64 Subset Machine
=====================

Executes listings produced by the code generator without an assembler,
so programs can be run and checked on any host.

Only the state the generated code touches is modelled:

- 64-bit registers RAX, RDI, RDX, RBP, RSP (AL aliases the low byte of RAX)
- ZF, SF and OF, set by ``cmp``, ``add`` and ``sub``
- A sparse 64-bit word memory; unwritten words read as zero

Arithmetic wraps at 64 bits. ``idiv`` truncates toward zero and raises
DivisionError where the hardware would fault.

Execution starts at the entry label with a sentinel return address on
the stack; the ``ret`` that pops it halts the machine and RAX becomes
the result.

Example:
    >>> from stackcc.emulator import Machine, parse_listing
    >>> machine = Machine(parse_listing(asm))
    >>> result = machine.run()
    >>> result.return_value, result.exit_status, result.steps
"""

import logging
from dataclasses import dataclass
from typing import Optional

from stackcc.errors import SourceLocation
from stackcc.emulator.errors import (
    EmulatorError,
    UndefinedLabelError,
    StepLimitExceededError,
    DivisionError,
)
from stackcc.emulator.listing import Instruction, Listing, Operand, OperandKind, parse_listing

logger = logging.getLogger(__name__)


MASK64 = (1 << 64) - 1
SIGN_BIT = 1 << 63

# Return address pushed before entering the routine
HALT_ADDRESS = 0xDEAD_BEEF_0000


def to_signed(value: int) -> int:
    """Interpret a 64-bit pattern as a two's complement integer."""
    value &= MASK64
    return value - (1 << 64) if value & SIGN_BIT else value


@dataclass(frozen=True)
class EmulatorConfig:
    """
    Configuration for machine runs.

    Attributes:
        max_steps: Instructions executed before giving up on a program
        stack_top: Initial RSP value (16-byte aligned)
    """
    max_steps: int = 1_000_000
    stack_top: int = 0x7FFF_F000

    def __post_init__(self):
        if self.max_steps <= 0:
            raise ValueError("max_steps must be positive")
        if self.stack_top % 16:
            raise ValueError("stack_top must be 16-byte aligned")


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of a run.

    Attributes:
        return_value: RAX at halt, as a signed 64-bit integer
        exit_status: Low 8 bits of the return value, as a process sees it
        steps: Number of instructions executed
    """
    return_value: int
    exit_status: int
    steps: int


class Machine:
    """
    Interpreter for the instruction subset the code generator emits.

    Attributes:
        listing: The parsed listing
        config: Run configuration
        registers: Register name -> unsigned 64-bit value
        memory: Address -> unsigned 64-bit value
    """

    def __init__(self, listing: Listing, config: Optional[EmulatorConfig] = None):
        self.listing = listing
        self.config = config or EmulatorConfig()
        self.reset()

    def reset(self) -> None:
        self.registers: dict[str, int] = {
            "rax": 0, "rcx": 0, "rdi": 0, "rdx": 0, "rbp": 0, "rsp": 0,
        }
        self.memory: dict[int, int] = {}
        self.zf = False
        self.sf = False
        self.of = False
        self.pc = 0
        self.steps = 0
        self._halted = False
        self._current: Optional[Instruction] = None

    def run(self, entry: Optional[str] = None) -> ExecutionResult:
        """
        Run the routine at entry until it returns.

        Args:
            entry: Label to start at (default: the listing's .globl symbol,
                   or 'main')

        Raises:
            UndefinedLabelError: If the entry label does not exist
            StepLimitExceededError: If the program runs too long
            EmulatorError: On any other execution fault
        """
        entry = entry or self.listing.entry or "main"
        if entry not in self.listing.labels:
            raise UndefinedLabelError(entry)

        self.reset()
        self.registers["rsp"] = self.config.stack_top
        self._push(HALT_ADDRESS)
        self.pc = self.listing.labels[entry]

        while not self._halted:
            if self.steps >= self.config.max_steps:
                raise StepLimitExceededError(self.config.max_steps)
            if self.pc >= len(self.listing.instructions):
                raise EmulatorError(f"execution ran past the end of the listing from '{entry}'")
            self.step()

        return_value = to_signed(self.registers["rax"])
        logger.debug("halted after %d steps with rax=%d", self.steps, return_value)
        return ExecutionResult(
            return_value=return_value,
            exit_status=return_value & 0xFF,
            steps=self.steps,
        )

    # =========================================================================
    # State Access
    # =========================================================================

    def read_register(self, name: str) -> int:
        if name == "al":
            return self.registers["rax"] & 0xFF
        return self.registers[name]

    def write_register(self, name: str, value: int) -> None:
        if name == "al":
            self.registers["rax"] = (self.registers["rax"] & ~0xFF & MASK64) | (value & 0xFF)
        else:
            self.registers[name] = value & MASK64

    def read_memory(self, address: int) -> int:
        return self.memory.get(address & MASK64, 0)

    def write_memory(self, address: int, value: int) -> None:
        self.memory[address & MASK64] = value & MASK64

    def _address(self, operand: Operand) -> int:
        return (self.read_register(operand.register) + operand.value) & MASK64

    def _read(self, operand: Operand) -> int:
        if operand.kind == OperandKind.REGISTER:
            return self.read_register(operand.register)
        if operand.kind == OperandKind.IMMEDIATE:
            return operand.value & MASK64
        if operand.kind == OperandKind.MEMORY:
            return self.read_memory(self._address(operand))
        raise self._fault(f"cannot read label operand '{operand}'")

    def _write(self, operand: Operand, value: int) -> None:
        if operand.kind == OperandKind.REGISTER:
            self.write_register(operand.register, value)
        elif operand.kind == OperandKind.MEMORY:
            self.write_memory(self._address(operand), value)
        else:
            raise self._fault(f"cannot write to operand '{operand}'")

    def _push(self, value: int) -> None:
        self.registers["rsp"] = (self.registers["rsp"] - 8) & MASK64
        self.write_memory(self.registers["rsp"], value)

    def _pop(self) -> int:
        value = self.read_memory(self.registers["rsp"])
        self.registers["rsp"] = (self.registers["rsp"] + 8) & MASK64
        return value

    def _set_flags(self, result: int, overflow: bool) -> None:
        result &= MASK64
        self.zf = result == 0
        self.sf = bool(result & SIGN_BIT)
        self.of = overflow

    # =========================================================================
    # Instruction Execution
    # =========================================================================

    def step(self) -> None:
        """Execute the instruction at pc."""
        instruction = self.listing.instructions[self.pc]
        self._current = instruction
        self.pc += 1
        self.steps += 1
        self._execute(instruction)

    def _fault(self, message: str, error_class: type = EmulatorError) -> EmulatorError:
        """Build an error pointing at the instruction being executed."""
        if self._current is None:
            return error_class(message)
        return error_class(
            message,
            SourceLocation(self.listing.filename, self._current.line, 1),
            source_line=self._current.text,
        )

    def _execute(self, instruction: Instruction) -> None:
        mnemonic = instruction.mnemonic
        ops = instruction.operands

        if mnemonic == "push":
            self._push(self._read(ops[0]))
        elif mnemonic == "pop":
            self._write(ops[0], self._pop())
        elif mnemonic == "mov":
            self._write(ops[0], self._read(ops[1]))
        elif mnemonic == "lea":
            if ops[1].kind != OperandKind.MEMORY:
                raise self._fault("lea needs a memory source operand")
            self._write(ops[0], self._address(ops[1]))
        elif mnemonic == "movzb":
            self._write(ops[0], self._read(ops[1]) & 0xFF)
        elif mnemonic in ("add", "sub", "cmp"):
            self._arithmetic(mnemonic, ops[0], ops[1])
        elif mnemonic == "imul":
            product = to_signed(self._read(ops[0])) * to_signed(self._read(ops[1]))
            self._write(ops[0], product)
            self.of = to_signed(product) != product
        elif mnemonic == "cqo":
            self.registers["rdx"] = MASK64 if self.registers["rax"] & SIGN_BIT else 0
        elif mnemonic == "idiv":
            self._divide(self._read(ops[0]))
        elif mnemonic == "sete":
            self._write(ops[0], int(self.zf))
        elif mnemonic == "setne":
            self._write(ops[0], int(not self.zf))
        elif mnemonic == "setl":
            self._write(ops[0], int(self.sf != self.of))
        elif mnemonic == "setle":
            self._write(ops[0], int(self.zf or self.sf != self.of))
        elif mnemonic == "jmp":
            self.pc = self.listing.labels[ops[0].label]
        elif mnemonic == "je":
            if self.zf:
                self.pc = self.listing.labels[ops[0].label]
        elif mnemonic == "ret":
            self._return()
        else:
            raise self._fault(f"no handler for '{mnemonic}'")

    def _arithmetic(self, mnemonic: str, destination: Operand, source: Operand) -> None:
        left = to_signed(self._read(destination))
        right = to_signed(self._read(source))
        exact = left + right if mnemonic == "add" else left - right
        self._set_flags(exact, to_signed(exact) != exact)
        if mnemonic != "cmp":
            self._write(destination, exact)

    def _divide(self, divisor: int) -> None:
        divisor = to_signed(divisor)
        if divisor == 0:
            raise self._fault("division by zero", DivisionError)

        dividend = (to_signed(self.registers["rdx"]) << 64) | self.registers["rax"]
        quotient = abs(dividend) // abs(divisor)
        if (dividend < 0) != (divisor < 0):
            quotient = -quotient
        remainder = dividend - quotient * divisor

        if to_signed(quotient) != quotient:
            raise self._fault("quotient does not fit 64 bits", DivisionError)

        self.registers["rax"] = quotient & MASK64
        self.registers["rdx"] = remainder & MASK64

    def _return(self) -> None:
        address = self._pop()
        if address == HALT_ADDRESS:
            self._halted = True
            return
        raise self._fault(f"return to unknown address 0x{address:X}")


# =============================================================================
# Convenience Functions
# =============================================================================

def run_listing(
    text: str,
    entry: Optional[str] = None,
    config: Optional[EmulatorConfig] = None,
) -> ExecutionResult:
    """
    Parse and run a listing.

    Example:
        >>> from stackcc import compile_source
        >>> run_listing(compile_source("return 6 * 7;")).return_value
        42
    """
    return Machine(parse_listing(text), config).run(entry)
