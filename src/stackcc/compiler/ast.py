"""
Abstract Syntax Tree (AST) Definitions
======================================

This module defines the AST node types produced by the parser and
consumed by the code generator.

Node Hierarchy
--------------
ASTNode (base)
├── Program - root: top-level statements plus the variable table
├── Statements
│   ├── BlockStatement - compound statement { ... }
│   ├── ExpressionStatement - expression evaluated for its side effects
│   ├── ReturnStatement - return statement
│   ├── IfStatement - if/else statement
│   ├── WhileStatement - while loop
│   └── ForStatement - for loop
└── Expressions
    ├── NumberLiteral - integer constant
    ├── VariableReference - read of a variable's stack slot
    ├── BinaryExpression - arithmetic and comparison operators
    └── AssignmentExpression - assignment to a variable

Design Notes
------------
- Unary minus has no node of its own: the parser rewrites ``-x`` as
  ``0 - x`` and drops unary plus.
- ``>`` and ``>=`` have no operator of their own: the parser swaps the
  operands and uses LESS / LESS_EQ.
- Every child node is owned by exactly one parent; the tree has no
  shared subtrees.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from stackcc.errors import SourceLocation
from stackcc.compiler.variables import VariableTable


# =============================================================================
# AST Node Base Classes
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all AST nodes.

    Attributes:
        location: Source location where this node appears
    """
    location: SourceLocation = field(compare=False)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}@{self.location.line}:{self.location.column}"


@dataclass(repr=False)
class Expression(ASTNode):
    """Base class for all nodes that produce a value."""

    def __str__(self) -> str:
        return format_expression(self)


@dataclass(repr=False)
class Statement(ASTNode):
    """Base class for all nodes executed for their effect."""
    pass


# =============================================================================
# Expression Nodes
# =============================================================================

class BinaryOperator(Enum):
    """Binary operator types."""
    # Arithmetic
    ADD = auto()        # +
    SUBTRACT = auto()   # -
    MULTIPLY = auto()   # *
    DIVIDE = auto()     # /

    # Comparison
    EQUAL = auto()      # ==
    NOT_EQUAL = auto()  # !=
    LESS = auto()       # <  (also a > b, as b < a)
    LESS_EQ = auto()    # <= (also a >= b, as b <= a)

    @property
    def symbol(self) -> str:
        return _OPERATOR_SYMBOLS[self]

    @property
    def is_comparison(self) -> bool:
        return self in (
            BinaryOperator.EQUAL,
            BinaryOperator.NOT_EQUAL,
            BinaryOperator.LESS,
            BinaryOperator.LESS_EQ,
        )


_OPERATOR_SYMBOLS = {
    BinaryOperator.ADD: "+",
    BinaryOperator.SUBTRACT: "-",
    BinaryOperator.MULTIPLY: "*",
    BinaryOperator.DIVIDE: "/",
    BinaryOperator.EQUAL: "==",
    BinaryOperator.NOT_EQUAL: "!=",
    BinaryOperator.LESS: "<",
    BinaryOperator.LESS_EQ: "<=",
}


@dataclass(repr=False)
class NumberLiteral(Expression):
    """
    Integer literal expression.

    Attributes:
        value: The integer value
    """
    value: int = 0


@dataclass(repr=False)
class VariableReference(Expression):
    """
    Variable reference expression.

    Attributes:
        name: The variable name
        offset: Stack slot offset below the frame pointer
    """
    name: str = ""
    offset: int = 0


@dataclass(repr=False)
class BinaryExpression(Expression):
    """
    Binary operation expression (left op right).

    Attributes:
        operator: The binary operator
        left: Left operand expression
        right: Right operand expression
    """
    operator: BinaryOperator = None
    left: Expression = None
    right: Expression = None


@dataclass(repr=False)
class AssignmentExpression(Expression):
    """
    Assignment expression (target = value).

    The expression itself evaluates to the assigned value, so
    assignments chain: ``a = b = 1``.

    Attributes:
        target: The variable being assigned
        value: The value to assign
    """
    target: VariableReference = None
    value: Expression = None


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass(repr=False)
class ExpressionStatement(Statement):
    """
    Expression used as a statement (followed by semicolon).

    Attributes:
        expression: The expression
    """
    expression: Expression = None


@dataclass(repr=False)
class ReturnStatement(Statement):
    """
    Return statement.

    Attributes:
        value: The returned expression
    """
    value: Expression = None


@dataclass(repr=False)
class IfStatement(Statement):
    """
    If statement with optional else clause.

    Attributes:
        condition: The condition expression
        then_branch: Statement executed if condition is non-zero
        else_branch: Optional statement executed if condition is zero
    """
    condition: Expression = None
    then_branch: Statement = None
    else_branch: Optional[Statement] = None


@dataclass(repr=False)
class WhileStatement(Statement):
    """
    While loop statement.

    Attributes:
        condition: Loop condition
        body: Loop body statement
    """
    condition: Expression = None
    body: Statement = None


@dataclass(repr=False)
class ForStatement(Statement):
    """
    For loop statement.

    Attributes:
        initializer: Optional expression evaluated once before the loop
        condition: Optional loop condition (absent means always true)
        update: Optional expression evaluated after each iteration
        body: Loop body statement
    """
    initializer: Optional[Expression] = None
    condition: Optional[Expression] = None
    update: Optional[Expression] = None
    body: Statement = None


@dataclass(repr=False)
class BlockStatement(Statement):
    """
    Block/compound statement enclosed in braces.

    Attributes:
        statements: Statements in execution order
    """
    statements: list[Statement] = field(default_factory=list)


# =============================================================================
# Program Root Node
# =============================================================================

@dataclass(repr=False)
class Program(ASTNode):
    """
    Root node of the AST.

    Attributes:
        statements: Top-level statements in execution order
        variables: Every variable the program uses, with its stack slot
    """
    statements: list[Statement] = field(default_factory=list)
    variables: VariableTable = field(default_factory=VariableTable, compare=False)


# =============================================================================
# Expression Formatting
# =============================================================================

def format_expression(expr: Expression) -> str:
    """
    Render an expression fully parenthesised.

    Variables show their slot, which makes precedence, associativity and
    slot assignment visible at a glance:

        >>> from stackcc.compiler.parser import parse_expression
        >>> str(parse_expression("a + b * 2"))
        '(a[rbp-8] + (b[rbp-16] * 2))'
    """
    if isinstance(expr, NumberLiteral):
        return str(expr.value)
    if isinstance(expr, VariableReference):
        return f"{expr.name}[rbp-{expr.offset}]"
    if isinstance(expr, BinaryExpression):
        return f"({format_expression(expr.left)} {expr.operator.symbol} {format_expression(expr.right)})"
    if isinstance(expr, AssignmentExpression):
        return f"({format_expression(expr.target)} = {format_expression(expr.value)})"
    return f"<{type(expr).__name__}>"


# =============================================================================
# AST Printer
# =============================================================================

class ASTPrinter:
    """
    Renders an AST as an indented tree, for ``stackcc --ast``.

    Example output:
        Program (1 variable)
          Expr: (x[rbp-8] = 0)
          While ((x[rbp-8] < 13))
            Expr: (x[rbp-8] = (x[rbp-8] + 1))
          Return x[rbp-8]
    """

    def __init__(self):
        self.indent_level = 0
        self.output: list[str] = []

    def print(self, node: ASTNode) -> str:
        self.output = []
        self.indent_level = 0
        self._visit(node)
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        self.output.append("  " * self.indent_level + text)

    def _nested(self, node: Statement) -> None:
        self.indent_level += 1
        self._visit(node)
        self.indent_level -= 1

    def _visit(self, node: ASTNode) -> None:
        if isinstance(node, Program):
            count = len(node.variables)
            noun = "variable" if count == 1 else "variables"
            self._emit(f"Program ({count} {noun})")
            for stmt in node.statements:
                self._nested(stmt)
        elif isinstance(node, BlockStatement):
            self._emit("Block")
            for stmt in node.statements:
                self._nested(stmt)
        elif isinstance(node, ExpressionStatement):
            self._emit(f"Expr: {format_expression(node.expression)}")
        elif isinstance(node, ReturnStatement):
            self._emit(f"Return {format_expression(node.value)}")
        elif isinstance(node, IfStatement):
            self._emit(f"If ({format_expression(node.condition)})")
            self.indent_level += 1
            self._emit("Then:")
            self._nested(node.then_branch)
            if node.else_branch is not None:
                self._emit("Else:")
                self._nested(node.else_branch)
            self.indent_level -= 1
        elif isinstance(node, WhileStatement):
            self._emit(f"While ({format_expression(node.condition)})")
            self._nested(node.body)
        elif isinstance(node, ForStatement):
            init = format_expression(node.initializer) if node.initializer else ""
            cond = format_expression(node.condition) if node.condition else ""
            update = format_expression(node.update) if node.update else ""
            self._emit(f"For ({init}; {cond}; {update})")
            self._nested(node.body)
        else:
            self._emit(f"<{type(node).__name__}>")
