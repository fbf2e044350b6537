"""
Compiler Main Module
====================

This module provides the main compiler interface. It orchestrates the
complete compilation process:

    Source → Lex → Parse → Generate → Assembly

Usage
-----
Command line:
    $ stackcc -f program.c -o program.s

Programmatic:
    >>> from stackcc.compiler import compile_source
    >>> asm = compile_source("return 42;")

The listing is GNU as Intel-syntax x86-64 and links with any C toolchain:

    $ cc -o program program.s && ./program; echo $?

Compilation Pipeline
--------------------
1. **Lexical Analysis**: Convert source to tokens
2. **Parsing**: Build the AST and assign every variable a stack slot
3. **Code Generation**: Convert the AST to x86-64 assembly

Error Handling
--------------
Compilation is fail-fast: the first LexError, ParseError or CodeGenError
propagates to the caller and no assembly is produced.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from stackcc.compiler.lexer import Lexer, Token
from stackcc.compiler.parser import Parser, split_source_lines
from stackcc.compiler.codegen import CodeGenerator
from stackcc.compiler.variables import WORD_SIZE
from stackcc.compiler.ast import Program

logger = logging.getLogger(__name__)


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        entry_symbol: Name of the global routine the listing defines
        emit_comments: Annotate the listing with '#' comments
        stack_alignment: Frame alignment in bytes; a positive multiple of
                         the 8-byte slot size (16 on the SysV ABI)
    """
    entry_symbol: str = "main"
    emit_comments: bool = False
    stack_alignment: int = 16

    def __post_init__(self):
        if not self.entry_symbol:
            raise ValueError("entry_symbol must not be empty")
        if self.stack_alignment <= 0 or self.stack_alignment % WORD_SIZE:
            raise ValueError(
                f"stack_alignment must be a positive multiple of {WORD_SIZE}, "
                f"got {self.stack_alignment}"
            )


@dataclass
class CompilerResult:
    """
    Result of a compilation.

    Attributes:
        filename: Source filename
        success: True if compilation succeeded
        assembly: Generated assembly code
        tokens: Tokens produced by the lexer
        program: The parsed AST
    """
    filename: str = ""
    success: bool = False
    assembly: str = ""
    tokens: list[Token] = field(default_factory=list)
    program: Optional[Program] = None

    @property
    def token_count(self) -> int:
        return len(self.tokens)

    @property
    def variable_count(self) -> int:
        return len(self.program.variables) if self.program else 0


class Compiler:
    """
    Compiler from source text to an x86-64 listing.

    Example:
        compiler = Compiler(CompilerOptions(emit_comments=True))
        result = compiler.compile_file("program.c")
        print(result.assembly)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile source text to assembly.

        Args:
            source: Program text
            filename: Source filename for error messages

        Returns:
            CompilerResult containing the assembly and intermediate stages

        Raises:
            CompileError: If any stage fails
        """
        result = CompilerResult(filename=filename)

        # Stage 1: Lexical analysis
        result.tokens = self._lex(source, filename)
        logger.debug("%s: %d tokens", filename, result.token_count)

        # Stage 2: Parsing
        result.program = self._parse(result.tokens, filename, split_source_lines(source))
        logger.debug(
            "%s: %d statements, %d variables",
            filename, len(result.program.statements), result.variable_count,
        )

        # Stage 3: Code generation
        result.assembly = self._generate(result.program)
        logger.debug("%s: %d assembly lines", filename, result.assembly.count("\n"))

        result.success = True
        return result

    def compile_file(self, filepath: str) -> CompilerResult:
        """
        Compile a source file to assembly.

        Raises:
            CompileError: If compilation fails
            FileNotFoundError: If source file not found
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = path.read_text(encoding="utf-8")
        return self.compile_source(source, str(filepath))

    def _lex(self, source: str, filename: str) -> list[Token]:
        """Tokenize source text."""
        lexer = Lexer(source, filename)
        return list(lexer.tokenize())

    def _parse(self, tokens: list[Token], filename: str, source_lines: list[str]) -> Program:
        """Parse tokens into AST."""
        parser = Parser(tokens, filename, source_lines)
        return parser.parse()

    def _generate(self, program: Program) -> str:
        """Generate assembly from AST."""
        generator = CodeGenerator(
            entry_symbol=self.options.entry_symbol,
            emit_comments=self.options.emit_comments,
            stack_alignment=self.options.stack_alignment,
        )
        return generator.generate(program)


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_source(
    source: str,
    filename: str = "<input>",
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile source text and return the assembly listing.

    Example:
        >>> asm = compile_source("a = 3; return a * 2;")
        >>> asm.splitlines()[0]
        '.intel_syntax noprefix'
    """
    return Compiler(options).compile_source(source, filename).assembly


def compile_file(filepath: str, options: Optional[CompilerOptions] = None) -> str:
    """Compile a source file and return the assembly listing."""
    return Compiler(options).compile_file(filepath).assembly
