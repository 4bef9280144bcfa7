"""Tokenizer for the formula language.

Given a formula like ``IF(price > 100, price * 0.9, price)``
the tokenizer produces a sequence of tokens like::

    [IF, (, price, >, 100, ,, price, *, 0.9, ,, price, ), EOF]

The tokenizer is regex based, each kind of token is matched
by a regular expression and the first expression that matches
at the current position decides the token.

Column names that are not valid identifiers, like names
containing spaces, can be written between square brackets: ``[Unit Price] * 2``.
"""

import re


class Token:
    """A token of the formula language.

    Tokens are compared by type and value, which
    makes easy to check the output of the tokenizer.
    """

    def __init__(self, value: str) -> None:
        """
        :param value: The text of the token.
        """
        self.value = value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return False
        return type(self) is type(other) and self.value == other.value

    def __hash__(self) -> int:
        return hash((type(self), self.value))


class IdentifierToken(Token):
    """Names of columns and functions."""


class LiteralToken(Token):
    """Numbers, quoted strings and the ``TRUE``, ``FALSE``, ``NULL`` keywords.

    The value is the text as it was written, quotes included.
    """


class OperatorToken(Token):
    """Arithmetic, comparison and logical operators."""


class PunctuationToken(Token):
    """Parentheses and the comma separating function arguments."""


class EOFToken(Token):
    """Marks the end of the formula."""

    def __init__(self, value: str = "") -> None:
        super().__init__(value)


KEYWORD_OPERATORS = ("AND", "OR", "NOT")
KEYWORD_LITERALS = ("TRUE", "FALSE", "NULL")


class Tokenizer:
    """Split a formula into tokens.

    >>> Tokenizer("LEN(name) >= 3").tokenize()
    [IdentifierToken('LEN'), PunctuationToken('('), IdentifierToken('name'), PunctuationToken(')'), OperatorToken('>='), LiteralToken('3'), EOFToken('')]
    """

    TOKEN_SPECIFICATION = [
        ("WHITESPACE", r"\s+"),
        ("NUMBER", r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"),
        ("STRING", r"'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\""),
        ("BRACKETED", r"\[[^\]]+\]"),
        ("WORD", r"[A-Za-z_][A-Za-z0-9_]*"),
        ("OPERATOR", r"<=|>=|<>|!=|==|&&|\|\||[-+*/%<>=]"),
        ("PUNCTUATION", r"[(),]"),
    ]
    TOKEN_REGEX = re.compile(
        "|".join(f"(?P<{name}>{regex})" for name, regex in TOKEN_SPECIFICATION)
    )

    def __init__(self, text: str) -> None:
        """
        :param text: The formula text to tokenize.
        """
        self.text = text

    def tokenize(self) -> list[Token]:
        """Produce the list of tokens, always terminated by an :class:`EOFToken`."""
        tokens: list[Token] = []
        pos = 0
        while pos < len(self.text):
            match = self.TOKEN_REGEX.match(self.text, pos)
            if match is None:
                raise FormulaTokenizeException(
                    f"Unexpected character {self.text[pos]!r} at position {pos}"
                )
            kind = match.lastgroup
            value = match.group()
            pos = match.end()

            if kind == "WHITESPACE":
                continue
            elif kind in ("NUMBER", "STRING"):
                tokens.append(LiteralToken(value))
            elif kind == "BRACKETED":
                tokens.append(IdentifierToken(value[1:-1].strip()))
            elif kind == "WORD":
                if value.upper() in KEYWORD_OPERATORS:
                    tokens.append(OperatorToken(value.upper()))
                elif value.upper() in KEYWORD_LITERALS:
                    tokens.append(LiteralToken(value.upper()))
                else:
                    tokens.append(IdentifierToken(value))
            elif kind == "OPERATOR":
                tokens.append(OperatorToken({"&&": "AND", "||": "OR"}.get(value, value)))
            else:
                tokens.append(PunctuationToken(value))

        tokens.append(EOFToken())
        return tokens


class FormulaTokenizeException(Exception):
    """An exception raised when the formula contains text that can't be tokenized."""

    pass
