"""Tokenizer for condition expressions.

Lexing is lenient: characters that cannot start a token are dropped instead
of raising, so malformed input degrades to a shorter token stream.
"""

from dataclasses import dataclass
from enum import Enum

KEYWORD_OPERATORS = {"and": "&&", "or": "||", "not": "!"}
STRING_OPERATORS = ("contains", "startsWith", "endsWith")
TWO_CHAR_OPERATORS = ("!=", "==", ">=", "<=", "&&", "||")
ONE_CHAR_OPERATORS = ("!", ">", "<")
ESCAPES = {"n": "\n", "t": "\t"}


class TokenType(str, Enum):
    """Kinds of token the tokenizer emits."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    LPAREN = "lparen"
    RPAREN = "rparen"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    """A single lexical token."""

    type: TokenType
    value: str | float | bool

    def is_operator(self, *values: str) -> bool:
        """Return True if this is an operator token with one of the given values."""
        return self.type == TokenType.OPERATOR and self.value in values


def _is_alpha(char: str) -> bool:
    return char == "_" or ("a" <= char <= "z") or ("A" <= char <= "Z")


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def _is_alphanumeric(char: str) -> bool:
    return _is_alpha(char) or _is_digit(char)


class Tokenizer:
    """Single-use cursor over one expression string."""

    def __init__(self, text: str):
        self.text = text.strip()
        self.pos = 0

    def _peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        if index < len(self.text):
            return self.text[index]
        return ""

    def _advance(self) -> str:
        char = self._peek()
        self.pos += 1
        return char

    def _read_string(self, quote: str) -> str:
        chars = []
        self._advance()  # opening quote
        while self._peek() and self._peek() != quote:
            if self._peek() == "\\":
                self._advance()
                escaped = self._advance()
                chars.append(ESCAPES.get(escaped, escaped))
            else:
                chars.append(self._advance())
        self._advance()  # closing quote (no-op at end of input)
        return "".join(chars)

    def _read_number(self) -> float:
        start = self.pos
        while _is_digit(self._peek()) or self._peek() == ".":
            self._advance()
        run = self.text[start : self.pos]
        # Only the first decimal point counts; "1.2.3" reads as 1.2
        return float(".".join(run.split(".")[:2]))

    def _read_braced_identifier(self) -> str:
        self.pos += 2  # {{
        start = self.pos
        while self._peek() and not (self._peek() == "}" and self._peek(1) == "}"):
            self._advance()
        name = self.text[start : self.pos]
        self.pos += 2  # }}
        return name.strip()

    def _read_word(self) -> str:
        start = self.pos
        while _is_alphanumeric(self._peek()):
            self._advance()
        return self.text[start : self.pos]

    def _classify_word(self, word: str) -> Token:
        if word == "true":
            return Token(TokenType.BOOLEAN, True)
        if word == "false":
            return Token(TokenType.BOOLEAN, False)
        if word in KEYWORD_OPERATORS:
            return Token(TokenType.OPERATOR, KEYWORD_OPERATORS[word])
        if word in STRING_OPERATORS:
            return Token(TokenType.OPERATOR, word)
        return Token(TokenType.IDENTIFIER, word)

    def tokenize(self) -> list[Token]:
        """Scan the whole input and return its tokens, ending with EOF."""
        tokens: list[Token] = []

        while self.pos < len(self.text):
            char = self._peek()

            if char.isspace():
                self._advance()
                continue

            if char in ("'", '"'):
                tokens.append(Token(TokenType.STRING, self._read_string(char)))
                continue

            if _is_digit(char):
                tokens.append(Token(TokenType.NUMBER, self._read_number()))
                continue

            if char == "{" and self._peek(1) == "{":
                tokens.append(Token(TokenType.IDENTIFIER, self._read_braced_identifier()))
                continue

            if _is_alpha(char):
                tokens.append(self._classify_word(self._read_word()))
                continue

            pair = char + self._peek(1)
            if pair in TWO_CHAR_OPERATORS:
                tokens.append(Token(TokenType.OPERATOR, pair))
                self.pos += 2
                continue

            if char in ONE_CHAR_OPERATORS:
                tokens.append(Token(TokenType.OPERATOR, char))
                self._advance()
                continue

            if char == "(":
                tokens.append(Token(TokenType.LPAREN, "("))
                self._advance()
                continue

            if char == ")":
                tokens.append(Token(TokenType.RPAREN, ")"))
                self._advance()
                continue

            # Unknown character, skip
            self._advance()

        tokens.append(Token(TokenType.EOF, ""))
        return tokens


def tokenize(text: str) -> list[Token]:
    """Tokenize an expression string."""
    return Tokenizer(text).tokenize()
