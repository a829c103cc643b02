"""Lark-based lexer for arithmetic expressions.

Classifies expression text into a flat token stream once, so later passes
substitute whole tokens instead of rewriting strings.

Token kinds:
- ``NUMBER``: a run of digits and ``.`` (``12``, ``3.5``)
- ``OPERATOR``: ``+ - * /``
- ``LPAREN`` / ``RPAREN``
- ``IDENTIFIER``: an uppercase variable name (``GROSS``, ``PF_2``)
- ``PLACEHOLDER``: a contextual placeholder (``{{#num_of_days}}``)
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple

from lark import Lark, UnexpectedInput

from varcalc.formulas.errors import InvalidCharacterError

GRAMMAR = r"""
start: item*

?item: NUMBER
    | IDENTIFIER
    | PLACEHOLDER
    | OPERATOR
    | LPAREN
    | RPAREN

NUMBER: /[0-9.]+/
IDENTIFIER: /[A-Z][A-Z0-9_]*/
PLACEHOLDER: /\{\{#[^}]+\}\}/
OPERATOR: /[+\-*\/]/
LPAREN: "("
RPAREN: ")"

%import common.WS
%ignore WS
"""

_lexer = Lark(GRAMMAR, parser="lalr", lexer="basic", start="start", keep_all_tokens=True)


class TokenKind(str, Enum):
    NUMBER = "NUMBER"
    OPERATOR = "OPERATOR"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    IDENTIFIER = "IDENTIFIER"
    PLACEHOLDER = "PLACEHOLDER"


class Token(NamedTuple):
    """A classified expression token.

    ``value`` is set on NUMBER tokens produced by substitution; literal
    NUMBER tokens keep ``value=None`` and are parsed at evaluation time.
    """

    kind: TokenKind
    text: str
    value: float | None = None
    position: int | None = None

    @property
    def placeholder_name(self) -> str:
        """Name inside a ``{{#name}}`` placeholder."""
        return self.text[3:-2]


def number_token(value: float, position: int | None = None) -> Token:
    """Build a NUMBER token carrying an already-computed value."""
    return Token(TokenKind.NUMBER, repr(value), value, position)


# Word-like kinds that may not touch each other (``2A`` is not two tokens).
_WORDS = (TokenKind.NUMBER, TokenKind.IDENTIFIER)


def tokenize(text: str) -> list[Token]:
    """Split expression text into classified tokens.

    Args:
        text: Raw expression, e.g. ``"(GROSS / 30) * {{#num_of_days}}"``.

    Returns:
        Tokens in source order. Whitespace is dropped; adjacent literal
        numbers are joined later by :func:`merge_literals`.

    Raises:
        InvalidCharacterError: On any character no token can start with, or
            when a number and an identifier run together.
    """
    try:
        tree = _lexer.parse(text)
    except UnexpectedInput as exc:
        raise InvalidCharacterError(getattr(exc, "pos_in_stream", None)) from exc

    tokens: list[Token] = []
    prev = None
    for raw in tree.children:
        kind = TokenKind(raw.type)
        if (
            prev is not None
            and kind in _WORDS
            and TokenKind(prev.type) in _WORDS
            and prev.end_pos == raw.start_pos
        ):
            raise InvalidCharacterError(raw.start_pos)
        tokens.append(Token(kind, str(raw), None, raw.start_pos))
        prev = raw
    return tokens


def merge_literals(tokens: list[Token]) -> list[Token]:
    """Join runs of adjacent literal NUMBER tokens into one.

    Whitespace carries no meaning inside an expression, so ``1 2`` reads as
    ``12`` and a context binding of ``3`` before ``5`` reads as ``35``.
    Tokens carrying a substituted value are never joined.
    """
    out: list[Token] = []
    for token in tokens:
        prev = out[-1] if out else None
        if (
            prev is not None
            and token.kind is TokenKind.NUMBER
            and prev.kind is TokenKind.NUMBER
            and token.value is None
            and prev.value is None
        ):
            out[-1] = prev._replace(text=prev.text + token.text)
            continue
        out.append(token)
    return out
