"""Implement a parser for formula expressions.

A formula is a combination of literals, column names, operators, and functions that
is evaluated once for each row. This module provides a parser for formulas
with the following features:

- Arithmetic operators: ``+, -, *, /, %``
- Comparison operators: ``=, ==, <, >, <=, >=, <>, !=``
- Logical operators: ``AND, OR, NOT`` (``&&`` and ``||`` are accepted too)
- Parentheses for grouping
- Function calls with arguments, like ``SUM(amount)`` or ``IF(qty > 10, 1, 0)``
- Column names and literals

The parser returns an abstract syntax tree (AST) made of nested dictionaries,
which is then evaluated by :class:`tabshaper.formula.evaluator.FormulaEvaluator`.

The parser is implemented as a recursive descent parser, with each method in the
expression parser class corresponding to a different level of the grammar, from the
lowest precedence (``OR``) to the highest one (literals and function calls).

The formula ``price * qty > 100 AND NOT discounted`` results in::

    {
        "type": "conjunction",
        "op": "AND",
        "left": {
            "type": "comparison",
            "op": ">",
            "left": {
                "type": "binary_op",
                "op": "*",
                "left": {"type": "identifier", "value": "price"},
                "right": {"type": "identifier", "value": "qty"},
            },
            "right": {"type": "literal", "value": 100},
        },
        "right": {
            "type": "unary_op",
            "op": "NOT",
            "operand": {"type": "identifier", "value": "discounted"},
        },
    }
"""

import re

from .tokenize import (
    EOFToken,
    IdentifierToken,
    LiteralToken,
    OperatorToken,
    PunctuationToken,
    Token,
    Tokenizer,
)

_ESCAPE_RE = re.compile(r"\\(.)")


def parse_formula(text: str) -> dict:
    """Tokenize and parse a formula text, returning its AST.

    Formulas nested too deeply to be parsed are reported
    as a :class:`FormulaParseError` like any other malformed formula.
    """
    tokens = Tokenizer(text).tokenize()
    try:
        return ExpressionParser(tokens).parse()
    except RecursionError as e:
        raise FormulaParseError("Expression is nested too deeply.") from e


class ExpressionParser:
    """A parser for formula expressions.

    Handles parsing of expressions like "a + b", "x > 5 AND y < 7" or "SUM(x) * 2".
    into an abstract syntax tree (AST).
    """

    def __init__(self, tokens: list[Token]) -> None:
        """
        :param tokens: A list of tokens representing the expression.
        """
        if not tokens or isinstance(tokens[0], EOFToken):
            raise FormulaParseError("Empty expression.")
        self.tokens = tokens
        self.pos = 0  # Current position in the tokens list
        self.current_token = tokens[self.pos]

    def advance(self) -> None:
        """Advance the parser to the next token."""
        self.pos += 1
        if self.pos < len(self.tokens):
            self.current_token = self.tokens[self.pos]
        else:
            self.current_token = EOFToken()  # End of input

    def parse(self) -> dict:
        """Parse the whole formula and return its abstract syntax tree (AST).

        The whole list of tokens must be consumed, trailing tokens
        that are not part of the expression are an error.
        """
        ast = self.parse_expression()
        if not isinstance(self.current_token, EOFToken):
            raise FormulaParseError(f"Unexpected token: {self.current_token}")
        return ast

    def parse_expression(self) -> dict:
        """Parse an expression, which are terms connected by OR"""
        term = self.parse_term()
        while self.is_operator("OR"):
            op = self.current_token.value.upper()
            self.advance()
            right = self.parse_term()
            term = {"type": "conjunction", "op": op, "left": term, "right": right}
        return term

    def parse_term(self) -> dict:
        """Parse a term, which are factors connected by AND."""
        factor = self.parse_factor()
        while self.is_operator("AND"):
            op = self.current_token.value.upper()
            self.advance()
            right = self.parse_factor()
            factor = {"type": "conjunction", "op": op, "left": factor, "right": right}
        return factor

    def parse_factor(self) -> dict:
        """Parse a factor, which are comparison expressions possibly negated by NOT."""
        if self.is_operator("NOT"):
            self.advance()
            operand = self.parse_factor()
            return {"type": "unary_op", "op": "NOT", "operand": operand}
        else:
            return self.parse_comparison()

    def parse_comparison(self) -> dict:
        """Parse a comparison between two mathematical expressions.

        If there is no comparison operator, it will return the left side as is.
        """
        left = self.parse_additive_expr()
        if self.is_operator("=", "==", "<", ">", "<=", ">=", "<>", "!="):
            op = self.current_token.value
            self.advance()
            right = self.parse_additive_expr()
            return {"type": "comparison", "op": op, "left": left, "right": right}
        else:
            return left

    def parse_additive_expr(self) -> dict:
        """Parse addition and subtraction expressions as they have lowest math precedence."""
        expr = self.parse_multiplicative_expr()
        while self.is_operator("+", "-"):
            op = self.current_token.value
            self.advance()
            right = self.parse_multiplicative_expr()
            expr = {"type": "binary_op", "op": op, "left": expr, "right": right}
        return expr

    def parse_multiplicative_expr(self) -> dict:
        """Parse multiplication, division and modulo expressions."""
        expr = self.parse_unary_expr()
        while self.is_operator("*", "/", "%"):
            op = self.current_token.value
            self.advance()
            right = self.parse_unary_expr()
            expr = {"type": "binary_op", "op": op, "left": expr, "right": right}
        return expr

    def parse_unary_expr(self) -> dict:
        """Parse unary mathematical expressions. Like -X"""
        if self.is_operator("-"):
            op = self.current_token.value
            self.advance()
            operand = self.parse_unary_expr()
            return {"type": "unary_op", "op": op, "operand": operand}
        else:
            return self.parse_primary()

    def parse_primary(self) -> dict:
        """Parse primary expressions: parenthesis expressions or atoms."""
        if self.is_punctuation("("):
            self.advance()
            expr = self.parse_expression()
            if not self.is_punctuation(")"):
                raise FormulaParseError("Expected ')'")
            self.advance()
            return expr
        else:
            return self.parse_atom()

    def parse_atom(self) -> dict:
        """Parse an identifier, literal, or function call.

        In case of literals it also casts them to Python values.
        """
        token = self.current_token
        if isinstance(token, IdentifierToken):
            identifier = token.value
            self.advance()
            if self.is_punctuation("("):
                return self.parse_function_call(identifier)
            else:
                return {"type": "identifier", "value": identifier}
        elif isinstance(token, LiteralToken):
            value = token.value
            self.advance()
            return {"type": "literal", "value": self.cast_literal(value)}
        else:
            raise FormulaParseError(f"Unexpected token: {token}")

    def parse_function_call(self, function_name: str) -> dict:
        """Parse the arguments of a function call.

        The arguments are parsed as expressions too,
        the name of the function is normalized to uppercase
        as function names are case insensitive.
        """
        self.advance()  # Consume '('
        args = []
        if not self.is_punctuation(")"):
            while True:
                args.append(self.parse_expression())
                if self.is_punctuation(","):
                    self.advance()
                else:
                    break
        if not self.is_punctuation(")"):
            raise FormulaParseError("Expected ')'")
        self.advance()  # Consume ')'
        return {"type": "function_call", "name": function_name.upper(), "args": args}

    def is_operator(self, *ops: str) -> bool:
        """Check if the current token is an OperatorToken with a value in ops."""
        return isinstance(
            self.current_token, OperatorToken
        ) and self.current_token.value.upper() in [op.upper() for op in ops]

    def is_punctuation(self, *chars: str) -> bool:
        """Check if the current token is a PunctuationToken with a value in chars."""
        return (
            isinstance(self.current_token, PunctuationToken)
            and self.current_token.value in chars
        )

    def cast_literal(self, value: str) -> str | float | int | bool | None:
        """Cast a literal in a formula to a Python value.

        Quoted strings have their quotes removed and escapes resolved,
        ``TRUE``, ``FALSE`` and ``NULL`` become the corresponding Python
        values and numbers are converted to integers or floats.
        """
        if value[0] == value[-1] and value[0] in ("'", '"'):
            return _ESCAPE_RE.sub(lambda m: m.group(1), value[1:-1])
        elif value == "TRUE":
            return True
        elif value == "FALSE":
            return False
        elif value == "NULL":
            return None
        try:
            return int(value)
        except ValueError:
            return float(value)


class FormulaParseError(Exception):
    """Exception raised for errors in formula parsing."""

    pass
