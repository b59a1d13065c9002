"""
The hyscript scanner: source text to a stream of tokens with byte-offset spans.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from hyscript.hyscript_errors import LexError, ParseError


@dataclass(frozen=True)
class Span:
    """A half-open [start, end) range of offsets into the source text."""
    start: int
    end: int

    def contains(self, offset: int) -> bool:
        """Cursor hit-test; inclusive on both ends so a cursor just past a
        token still counts as inside it."""
        return self.start <= offset <= self.end

    def __repr__(self) -> str:
        return f"Span({self.start}, {self.end})"


class TokenType(Enum):
    IDENTIFIER = "Identifier"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    STRING = "String"
    NULL = "Null"

    ASSIGN = "="
    ADD_ASSIGN = "+="
    SUB_ASSIGN = "-="
    MUL_ASSIGN = "*="
    QUO_ASSIGN = "/="
    REM_ASSIGN = "%="
    AND_ASSIGN = "&="
    OR_ASSIGN = "|="
    XOR_ASSIGN = "^="
    SHL_ASSIGN = "<<="
    SHR_ASSIGN = ">>="
    AND_NOT_ASSIGN = "&^="

    ADD = "+"
    SUB = "-"
    MUL = "*"
    QUO = "/"
    REM = "%"

    AND = "&"
    NOT = "!"
    OR = "|"
    XOR = "^"
    SHL = "<<"
    SHR = ">>"
    AND_NOT = "&^"

    LOGICAL_AND = "&&"
    LOGICAL_OR = "||"

    EQUAL = "=="
    LESSER = "<"
    GREATER = ">"
    NOT_EQUAL = "!="
    LESSER_EQUAL = "<="
    GREATER_EQUAL = ">="

    LEFT_PAREN = "("
    LEFT_BRACKET = "["
    LEFT_BRACE = "{"
    COMMA = ","
    PERIOD = "."

    RIGHT_PAREN = ")"
    RIGHT_BRACKET = "]"
    RIGHT_BRACE = "}"
    COLON = ":"
    SEMICOLON = ";"
    TERNARY = "?"

    BOOLEAN_KEYWORD = "BooleanKeyword"
    NUMBER_KEYWORD = "NumberKeyword"
    STRING_KEYWORD = "StringKeyword"
    LET_KEYWORD = "LetKeyword"
    RETURN_KEYWORD = "ReturnKeyword"
    FUNCTION_KEYWORD = "FunctionKeyword"
    LAMBDA_KEYWORD = "LambdaKeyword"
    IF_KEYWORD = "IfKeyword"
    ELSE_KEYWORD = "ElseKeyword"
    FOR_KEYWORD = "ForKeyword"
    WHILE_KEYWORD = "WhileKeyword"
    BREAK_KEYWORD = "BreakKeyword"
    CONTINUE_KEYWORD = "ContinueKeyword"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Token:
    type: TokenType
    span: Span


KEYWORDS = {
    "Boolean": TokenType.BOOLEAN_KEYWORD,
    "Number": TokenType.NUMBER_KEYWORD,
    "String": TokenType.STRING_KEYWORD,
    "let": TokenType.LET_KEYWORD,
    "return": TokenType.RETURN_KEYWORD,
    "function": TokenType.FUNCTION_KEYWORD,
    "lambda": TokenType.LAMBDA_KEYWORD,
    "if": TokenType.IF_KEYWORD,
    "else": TokenType.ELSE_KEYWORD,
    "for": TokenType.FOR_KEYWORD,
    "while": TokenType.WHILE_KEYWORD,
    "break": TokenType.BREAK_KEYWORD,
    "continue": TokenType.CONTINUE_KEYWORD,
    "true": TokenType.BOOLEAN,
    "false": TokenType.BOOLEAN,
    "null": TokenType.NULL,
}

THREE_CHAR_OPERATORS = {
    "<<=": TokenType.SHL_ASSIGN,
    ">>=": TokenType.SHR_ASSIGN,
    "&^=": TokenType.AND_NOT_ASSIGN,
}

TWO_CHAR_OPERATORS = {
    "&&": TokenType.LOGICAL_AND,
    "&^": TokenType.AND_NOT,
    "||": TokenType.LOGICAL_OR,
    "<=": TokenType.LESSER_EQUAL,
    "<<": TokenType.SHL,
    ">=": TokenType.GREATER_EQUAL,
    ">>": TokenType.SHR,
    "==": TokenType.EQUAL,
    "!=": TokenType.NOT_EQUAL,
    "+=": TokenType.ADD_ASSIGN,
    "-=": TokenType.SUB_ASSIGN,
    "*=": TokenType.MUL_ASSIGN,
    "/=": TokenType.QUO_ASSIGN,
    "%=": TokenType.REM_ASSIGN,
    "&=": TokenType.AND_ASSIGN,
    "|=": TokenType.OR_ASSIGN,
    "^=": TokenType.XOR_ASSIGN,
}

ONE_CHAR_OPERATORS = {
    "=": TokenType.ASSIGN,
    "+": TokenType.ADD,
    "-": TokenType.SUB,
    "*": TokenType.MUL,
    "/": TokenType.QUO,
    "%": TokenType.REM,
    "&": TokenType.AND,
    "|": TokenType.OR,
    "^": TokenType.XOR,
    "<": TokenType.LESSER,
    ">": TokenType.GREATER,
    "!": TokenType.NOT,
    "(": TokenType.LEFT_PAREN,
    "[": TokenType.LEFT_BRACKET,
    "{": TokenType.LEFT_BRACE,
    ",": TokenType.COMMA,
    ".": TokenType.PERIOD,
    ")": TokenType.RIGHT_PAREN,
    "]": TokenType.RIGHT_BRACKET,
    "}": TokenType.RIGHT_BRACE,
    ":": TokenType.COLON,
    ";": TokenType.SEMICOLON,
    "?": TokenType.TERNARY,
}


def is_decimal(ch: str) -> bool:
    return ch != "" and "0" <= ch <= "9"


def is_hex(ch: str) -> bool:
    return ch != "" and ("0" <= ch <= "9" or "a" <= ch <= "f" or "A" <= ch <= "F")


def is_letter(ch: str) -> bool:
    return ch != "" and ("a" <= ch <= "z" or "A" <= ch <= "Z")


def is_number(ch: str) -> bool:
    return is_decimal(ch) or is_hex(ch) or ch in (".", "x", "X")


def is_ident(ch: str) -> bool:
    return is_letter(ch) or is_decimal(ch) or ch == "_"


def is_whitespace(ch: str) -> bool:
    return ch in (" ", "\t", "\n", "\r")


class Scanner:
    """Single-pass tokenizer. Holds nothing but a cursor into the source."""

    def __init__(self, source: str):
        self.source = source
        self.p = 0

    @property
    def eof(self) -> bool:
        return self.p >= len(self.source)

    def _peek(self, n: int = 1) -> str:
        return self.source[self.p:self.p + n]

    def _must_advance(self) -> str:
        if self.eof:
            raise LexError(self.p, "Unexpected end of expression")
        ch = self.source[self.p]
        self.p += 1
        return ch

    def _accept(self, ch: str) -> bool:
        if self._peek() == ch:
            self.p += 1
            return True
        return False

    def _skip_whitespace_and_comments(self):
        while True:
            if is_whitespace(self._peek()):
                while is_whitespace(self._peek()):
                    self.p += 1
                continue
            if self._peek(2) == "//":
                self.p += 2
                while not self.eof and self._peek() != "\n":
                    self.p += 1
                continue
            if self._peek(2) == "/*":
                self.p += 2
                # An unterminated block comment runs to the end of input.
                while not self.eof and self._peek(2) != "*/":
                    self.p += 1
                self.p = min(self.p + 2, len(self.source))
                continue
            break

    def _scan_ident(self) -> Token:
        start = self.p
        ch = self._peek()
        if not is_letter(ch) and ch != "_":
            raise LexError(self.p, f"Invalid identifier character {ch}")
        self.p += 1
        while is_ident(self._peek()):
            self.p += 1
        span = Span(start, self.p)
        return Token(KEYWORDS.get(self.source[start:self.p], TokenType.IDENTIFIER), span)

    def _scan_number(self) -> Token:
        start = self.p
        ch = self._must_advance()
        if not is_number(ch) and ch != "-":
            raise LexError(self.p, f"Invalid number character {ch}")
        while is_number(self._peek()):
            self.p += 1
        return Token(TokenType.NUMBER, Span(start, self.p))

    def _scan_string(self) -> Token:
        start = self.p
        if not self._accept('"'):
            raise LexError(self.p, f"Expected \", got {self._peek()}")
        while True:
            if self.eof:
                raise LexError(self.p, "Unterminated string")
            if self._accept('"'):
                break
            if self._accept("\\"):
                if self.eof:
                    raise LexError(self.p, "Unterminated string")
                self.p += 1
                continue
            self.p += 1
        return Token(TokenType.STRING, Span(start, self.p))

    def scan(self) -> Optional[Token]:
        """Returns the next token, or None at end of input."""
        self._skip_whitespace_and_comments()
        if self.eof:
            return None
        start = self.p
        c = self._peek()
        cc = self._peek(2)
        if is_letter(c) or c == "_":
            return self._scan_ident()
        if is_decimal(c) or (c in ("-", ".") and is_decimal(cc[1:])):
            return self._scan_number()
        if c == '"':
            return self._scan_string()
        # Longest match first; the cursor is rewound between attempts.
        for width, table in ((3, THREE_CHAR_OPERATORS), (2, TWO_CHAR_OPERATORS), (1, ONE_CHAR_OPERATORS)):
            self.p = start + width
            token_type = table.get(self.source[start:start + width])
            if token_type is not None:
                return Token(token_type, Span(start, self.p))
        self.p = start
        raise LexError(self.p, f"Unhandled character: '{c}'")

    def must_scan(self) -> Token:
        token = self.scan()
        if token is None:
            raise ParseError("Unexpected end of expression")
        return token
