"""Shunting-yard conversion of infix token streams to postfix order."""

from __future__ import annotations

from varcalc.formulas.errors import InvalidCharacterError, MismatchedParenthesesError
from varcalc.formulas.lexer import Token, TokenKind

# Higher binds tighter. All operators are left-associative.
PRECEDENCE: dict[str, int] = {
    "+": 1,
    "-": 1,
    "*": 2,
    "/": 2,
}


def to_postfix(tokens: list[Token]) -> list[Token]:
    """Reorder infix tokens into postfix (Reverse Polish) order.

    Parentheses steer the reordering and never appear in the output.

    Args:
        tokens: Infix tokens containing only numbers, operators and
            parentheses.

    Returns:
        Tokens in postfix order.

    Raises:
        MismatchedParenthesesError: On an unmatched ``)`` (immediately) or a
            ``(`` left open at the end of input.
        InvalidCharacterError: If an identifier or placeholder was not
            substituted before parsing.
    """
    output: list[Token] = []
    ops: list[Token] = []

    for token in tokens:
        if token.kind is TokenKind.NUMBER:
            output.append(token)
        elif token.kind is TokenKind.OPERATOR:
            prec = PRECEDENCE[token.text]
            # >= pops equal precedence: left associativity
            while (
                ops
                and ops[-1].kind is TokenKind.OPERATOR
                and PRECEDENCE[ops[-1].text] >= prec
            ):
                output.append(ops.pop())
            ops.append(token)
        elif token.kind is TokenKind.LPAREN:
            ops.append(token)
        elif token.kind is TokenKind.RPAREN:
            while ops and ops[-1].kind is not TokenKind.LPAREN:
                output.append(ops.pop())
            if not ops:
                raise MismatchedParenthesesError()
            ops.pop()
        else:
            raise InvalidCharacterError(token.position)

    while ops:
        op = ops.pop()
        if op.kind is TokenKind.LPAREN:
            raise MismatchedParenthesesError()
        output.append(op)

    return output
