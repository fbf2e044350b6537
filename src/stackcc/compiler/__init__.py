"""
stackcc Compiler
================

This package implements the compiler proper: a lexer, a recursive descent
parser that assigns stack slots to variables, and a code generator
emitting x86-64 assembly for a stack-machine evaluation model.

Pipeline
--------
    Source → Lexer → Parser (+ VariableTable) → AST → Code Generator → Assembly

Usage
-----
>>> from stackcc.compiler import compile_source
>>> print(compile_source("x = 0; while (x < 13) x = x + 1; return x;"))

Language Subset
---------------
- One data type: the 64-bit signed integer
- Operators: + - * / == != < <= > >= = and unary + -
- Statements: expression, return, if/else, while, for, { ... }
- Variables need no declaration; the first use declares them
"""

from stackcc.compiler.compiler import (
    Compiler,
    CompilerOptions,
    CompilerResult,
    compile_source,
    compile_file,
)
from stackcc.compiler.errors import (
    CompileError,
    LexError,
    InvalidCharacterError,
    ParseError,
    InvalidAssignmentTargetError,
    CodeGenError,
    InternalInvariantError,
)
from stackcc.compiler.lexer import Lexer, Token, TokenType, tokenize
from stackcc.compiler.parser import Parser, parse_source, parse_expression
from stackcc.compiler.codegen import CodeGenerator
from stackcc.compiler.variables import Variable, VariableTable
from stackcc.compiler.ast import ASTPrinter, format_expression

__all__ = [
    # Compiler
    "Compiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_source",
    "compile_file",
    # Errors
    "CompileError",
    "LexError",
    "InvalidCharacterError",
    "ParseError",
    "InvalidAssignmentTargetError",
    "CodeGenError",
    "InternalInvariantError",
    # Stages
    "Lexer",
    "Token",
    "TokenType",
    "tokenize",
    "Parser",
    "parse_source",
    "parse_expression",
    "CodeGenerator",
    "Variable",
    "VariableTable",
    "ASTPrinter",
    "format_expression",
]
