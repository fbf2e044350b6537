"""
Recursive Descent Parser
========================

This module implements a recursive descent parser for the source
language. It takes the token list from the lexer and builds a Program
AST, registering every identifier it meets in the variable table.

Grammar (EBNF)
--------------
program     ::= statement*
statement   ::= expr ';'
              | 'return' expr ';'
              | 'if' '(' expr ')' statement ('else' statement)?
              | 'while' '(' expr ')' statement
              | 'for' '(' expr? ';' expr? ';' expr? ')' statement
              | '{' statement* '}'

Expression Precedence (lowest to highest)
-----------------------------------------
1. assignment     =            (right-associative)
2. equality       == !=
3. relational     < <= > >=
4. additive       + -
5. multiplicative * /
6. unary          + -          (prefix, at most one)
7. primary        NUMBER, IDENTIFIER, '(' expr ')'

All binary levels are left-associative. ``a > b`` is built as ``b < a``
and ``a >= b`` as ``b <= a``; ``-x`` is built as ``0 - x``.

An ``else`` always attaches to the nearest ``if`` without one: after the
then-branch the parser takes the ``else`` if it is the next token.

Parsing is fail-fast: the first mismatch raises ParseError.

Example Usage
-------------
>>> from stackcc.compiler.parser import parse_source
>>> program = parse_source("a = 1; return a + 2;")
>>> len(program.statements), len(program.variables)
(2, 1)
"""

from typing import Callable, Optional

from stackcc.errors import SourceLocation
from stackcc.compiler.lexer import Token, TokenType, tokenize
from stackcc.compiler.variables import VariableTable
from stackcc.compiler.ast import (
    Program,
    Statement,
    BlockStatement,
    ExpressionStatement,
    ReturnStatement,
    IfStatement,
    WhileStatement,
    ForStatement,
    Expression,
    NumberLiteral,
    VariableReference,
    BinaryExpression,
    AssignmentExpression,
    BinaryOperator,
)
from stackcc.compiler.errors import ParseError, InvalidAssignmentTargetError


class Parser:
    """
    Recursive descent parser.

    Each instance parses one token list and owns the variable table the
    resulting Program carries.

    Attributes:
        tokens: List of tokens to parse, ending with EOF
        filename: Source filename for error reporting
        variables: Variable table filled in while parsing
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source_lines: Optional[list[str]] = None,
    ):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer
            filename: Source filename for error messages
            source_lines: Original source lines for error context
        """
        if not tokens or tokens[-1].type != TokenType.EOF:
            raise ValueError("token list must end with an EOF token")

        self.tokens = tokens
        self.filename = filename
        self.source_lines = source_lines or []
        self.variables = VariableTable()

        self._pos = 0

    def parse(self) -> Program:
        """
        Parse the whole token list.

        Returns:
            Program holding the top-level statements and variable table

        Raises:
            ParseError: If the tokens do not form a valid program
        """
        statements = []
        while not self._at_end():
            statements.append(self._parse_statement())

        return Program(
            location=SourceLocation(self.filename, 1, 1, 0),
            statements=statements,
            variables=self.variables,
        )

    def parse_expression(self) -> Expression:
        """Parse a single expression that must span the whole token list."""
        expr = self._parse_expression()
        if not self._at_end():
            raise self._error("end of input")
        return expr

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self) -> Token:
        return self.tokens[self._pos]

    def _advance(self) -> Token:
        """Consume and return the current token (EOF is never consumed)."""
        token = self.tokens[self._pos]
        if token.type != TokenType.EOF:
            self._pos += 1
        return token

    def _check(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        """Consume the current token if it is one of types."""
        if self._check(*types):
            return self._advance()
        return None

    def _expect(self, token_type: TokenType, description: str) -> Token:
        """
        Consume a token of the given type or fail.

        Raises:
            ParseError: If the current token has a different type
        """
        if self._check(token_type):
            return self._advance()
        raise self._error(description)

    def _error(self, expected: str) -> ParseError:
        current = self._peek()
        return ParseError(
            expected,
            current.text,
            current.location,
            self._get_source_line(current.line),
            span=1 if current.type == TokenType.EOF else len(current.text),
        )

    def _get_source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        token = self._peek()

        if token.type == TokenType.RETURN:
            return self._parse_return_statement()
        if token.type == TokenType.IF:
            return self._parse_if_statement()
        if token.type == TokenType.WHILE:
            return self._parse_while_statement()
        if token.type == TokenType.FOR:
            return self._parse_for_statement()
        if token.type == TokenType.LBRACE:
            return self._parse_block()

        return self._parse_expression_statement()

    def _parse_block(self) -> BlockStatement:
        location = self._expect(TokenType.LBRACE, "'{'").location

        statements = []
        while not self._check(TokenType.RBRACE):
            if self._at_end():
                raise self._error("'}'")
            statements.append(self._parse_statement())
        self._advance()

        return BlockStatement(location=location, statements=statements)

    def _parse_return_statement(self) -> ReturnStatement:
        location = self._expect(TokenType.RETURN, "'return'").location
        value = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")
        return ReturnStatement(location=location, value=value)

    def _parse_if_statement(self) -> IfStatement:
        location = self._expect(TokenType.IF, "'if'").location
        self._expect(TokenType.LPAREN, "'('")
        condition = self._parse_expression()
        self._expect(TokenType.RPAREN, "')'")

        then_branch = self._parse_statement()

        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_statement()

        return IfStatement(
            location=location,
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_while_statement(self) -> WhileStatement:
        location = self._expect(TokenType.WHILE, "'while'").location
        self._expect(TokenType.LPAREN, "'('")
        condition = self._parse_expression()
        self._expect(TokenType.RPAREN, "')'")

        body = self._parse_statement()

        return WhileStatement(location=location, condition=condition, body=body)

    def _parse_for_statement(self) -> ForStatement:
        location = self._expect(TokenType.FOR, "'for'").location
        self._expect(TokenType.LPAREN, "'('")

        initializer = None
        if not self._check(TokenType.SEMICOLON):
            initializer = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")

        condition = None
        if not self._check(TokenType.SEMICOLON):
            condition = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")

        update = None
        if not self._check(TokenType.RPAREN):
            update = self._parse_expression()
        self._expect(TokenType.RPAREN, "')'")

        body = self._parse_statement()

        return ForStatement(
            location=location,
            initializer=initializer,
            condition=condition,
            update=update,
            body=body,
        )

    def _parse_expression_statement(self) -> ExpressionStatement:
        location = self._peek().location
        expression = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "';'")
        return ExpressionStatement(location=location, expression=expression)

    # =========================================================================
    # Expression Parsing (Operator Precedence)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_assignment()

    def _parse_assignment(self) -> Expression:
        """Parse assignment expression (right-associative)."""
        start = self._peek()
        expr = self._parse_equality()

        if self._check(TokenType.ASSIGN):
            if not isinstance(expr, VariableReference):
                raise InvalidAssignmentTargetError(
                    start.text,
                    start.location,
                    self._get_source_line(start.line),
                )
            self._advance()
            value = self._parse_assignment()
            return AssignmentExpression(location=expr.location, target=expr, value=value)

        return expr

    def _parse_equality(self) -> Expression:
        return self._parse_binary(
            self._parse_relational,
            {
                TokenType.EQ: BinaryOperator.EQUAL,
                TokenType.NE: BinaryOperator.NOT_EQUAL,
            },
        )

    def _parse_relational(self) -> Expression:
        """Parse relational expression; > and >= swap operands."""
        return self._parse_binary(
            self._parse_additive,
            {
                TokenType.LT: BinaryOperator.LESS,
                TokenType.LE: BinaryOperator.LESS_EQ,
                TokenType.GT: BinaryOperator.LESS,
                TokenType.GE: BinaryOperator.LESS_EQ,
            },
            swapped=(TokenType.GT, TokenType.GE),
        )

    def _parse_additive(self) -> Expression:
        return self._parse_binary(
            self._parse_multiplicative,
            {
                TokenType.PLUS: BinaryOperator.ADD,
                TokenType.MINUS: BinaryOperator.SUBTRACT,
            },
        )

    def _parse_multiplicative(self) -> Expression:
        return self._parse_binary(
            self._parse_unary,
            {
                TokenType.STAR: BinaryOperator.MULTIPLY,
                TokenType.SLASH: BinaryOperator.DIVIDE,
            },
        )

    def _parse_binary(
        self,
        operand_parser: Callable[[], Expression],
        operators: dict[TokenType, BinaryOperator],
        swapped: tuple[TokenType, ...] = (),
    ) -> Expression:
        """
        Generic left-associative binary expression parser.

        Args:
            operand_parser: Function to parse operands
            operators: Map of token types to binary operators
            swapped: Token types whose operands are built in reverse order
        """
        expr = operand_parser()

        while self._peek().type in operators:
            op_token = self._advance()
            right = operand_parser()
            left = expr
            if op_token.type in swapped:
                left, right = right, left
            expr = BinaryExpression(
                location=expr.location,
                operator=operators[op_token.type],
                left=left,
                right=right,
            )

        return expr

    def _parse_unary(self) -> Expression:
        """Parse an optional prefix sign followed by a primary expression."""
        if self._match(TokenType.PLUS):
            return self._parse_primary()

        token = self._match(TokenType.MINUS)
        if token:
            return BinaryExpression(
                location=token.location,
                operator=BinaryOperator.SUBTRACT,
                left=NumberLiteral(location=token.location, value=0),
                right=self._parse_primary(),
            )

        return self._parse_primary()

    def _parse_primary(self) -> Expression:
        token = self._peek()

        if token.type == TokenType.NUMBER:
            self._advance()
            return NumberLiteral(location=token.location, value=token.value)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            variable = self.variables.lookup_or_declare(token.value)
            return VariableReference(
                location=token.location,
                name=variable.name,
                offset=variable.offset,
            )

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN, "')'")
            return expr

        raise self._error("expression")


# =============================================================================
# Convenience Functions
# =============================================================================

def split_source_lines(source: str) -> list[str]:
    """Split source at newlines only, the way the lexer counts lines."""
    return [line.rstrip("\r") for line in source.split("\n")]


def parse_source(source: str, filename: str = "<input>") -> Program:
    """
    Parse source text into a Program.

    Combines lexing and parsing.

    Raises:
        LexError: If the source cannot be tokenized
        ParseError: If parsing fails
    """
    tokens = tokenize(source, filename)
    parser = Parser(tokens, filename, split_source_lines(source))
    return parser.parse()


def parse_expression(source: str, filename: str = "<input>") -> Expression:
    """Parse source text holding a single expression (no trailing ';')."""
    tokens = tokenize(source, filename)
    parser = Parser(tokens, filename, split_source_lines(source))
    return parser.parse_expression()
