"""Recursive descent parser for condition expressions.

Grammar (precedence low -> high):
  or_expr     := and_expr ('||' and_expr)*
  and_expr    := not_expr ('&&' not_expr)*
  not_expr    := '!' not_expr | comparison
  comparison  := string_op (('==' | '!=' | '>' | '<' | '>=' | '<=') string_op)*
  string_op   := primary (('contains' | 'startsWith' | 'endsWith') primary)*
  primary     := NUMBER | STRING | BOOLEAN | IDENTIFIER | '(' or_expr ')'

Binary levels fold to the left, so ``a == b == c`` is ``(a == b) == c``.
"""

from .errors import ExpressionSyntaxError
from .nodes import BinaryOp
from .nodes import Identifier
from .nodes import Literal
from .nodes import Node
from .nodes import StringOp
from .nodes import UnaryOp
from .tokenizer import STRING_OPERATORS
from .tokenizer import Token
from .tokenizer import TokenType

COMPARISON_OPS = ("==", "!=", ">", "<", ">=", "<=")
LITERAL_TYPES = (TokenType.NUMBER, TokenType.STRING, TokenType.BOOLEAN)


class Parser:
    """Single-use cursor over one token list.

    Attributes:
        tokens: Tokens from the tokenizer, terminated by an EOF token
        pos: Index of the current token
    """

    def __init__(self, tokens: list[Token]) -> None:
        if not tokens or tokens[-1].type != TokenType.EOF:
            tokens = [*tokens, Token(TokenType.EOF, "")]
        self.tokens = tokens
        self.pos = 0

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        # EOF is never consumed past
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    def _expect(self, token_type: TokenType) -> Token:
        token = self._current()
        if token.type != token_type:
            raise ExpressionSyntaxError(f"Expected {token_type.value}, got {token.type.value}")
        return self._advance()

    def parse(self) -> Node:
        """Parse one expression.

        Tokens left over after a complete expression are ignored.

        Raises:
            ExpressionSyntaxError: On a missing ')' or a token that cannot start an expression
        """
        return self._parse_or()

    def _parse_or(self) -> Node:
        left = self._parse_and()
        while self._current().is_operator("||"):
            self._advance()
            left = BinaryOp("||", left, self._parse_and())
        return left

    def _parse_and(self) -> Node:
        left = self._parse_not()
        while self._current().is_operator("&&"):
            self._advance()
            left = BinaryOp("&&", left, self._parse_not())
        return left

    def _parse_not(self) -> Node:
        if self._current().is_operator("!"):
            self._advance()
            return UnaryOp("!", self._parse_not())
        return self._parse_comparison()

    def _parse_comparison(self) -> Node:
        left = self._parse_string_op()
        while self._current().is_operator(*COMPARISON_OPS):
            operator = str(self._advance().value)
            left = BinaryOp(operator, left, self._parse_string_op())
        return left

    def _parse_string_op(self) -> Node:
        left = self._parse_primary()
        while self._current().is_operator(*STRING_OPERATORS):
            operator = str(self._advance().value)
            left = StringOp(operator, left, self._parse_primary())
        return left

    def _parse_primary(self) -> Node:
        token = self._current()

        if token.type in LITERAL_TYPES:
            self._advance()
            return Literal(token.value)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Identifier(str(token.value))

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_or()
            self._expect(TokenType.RPAREN)
            return expr

        if token.type == TokenType.EOF:
            raise ExpressionSyntaxError("Unexpected end of expression")
        raise ExpressionSyntaxError(f"Unexpected token: {token.type.value} {token.value!r}")


def parse(tokens: list[Token]) -> Node:
    """Parse a token list into an expression tree."""
    return Parser(tokens).parse()
