"""
Jack Lexer (Tokenizer)
======================

This module implements the lexer for the Jack class language. It converts
source text into a list of classified tokens for the parser.

Token Categories
----------------
- Keywords: class, method, function, let, while, true, this, ...
- Symbols: every other single non-space character ({ } ( ) + < = ...)
- Identifiers: runs of letters and digits that are not keywords
- Integer literals: runs made only of digits
- String literals: "double quoted", no escape sequences

Symbols are never merged: `<=` is the two tokens `<` and `=`. Jack has no
compound operators, so this is exactly the language's token set.

Comments
--------
- Single-line: // comment
- Multi-line: /* comment */ (non-nesting)

Comments and whitespace are skipped before token boundaries are looked
for; they never appear in the token list.

Example Usage
-------------
>>> from jack_sdk.compiler.lexer import tokenize
>>> for token in tokenize('let x = 42;'):
...     print(token)
Token(keyword, 'let', 1:1)
Token(identifier, 'x', 1:5)
Token(symbol, '=', 1:7)
Token(integerConstant, '42', 1:9)
Token(symbol, ';', 1:11)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional
import string

from jack_sdk.errors import SourceLocation
from jack_sdk.compiler.errors import (
    JackSyntaxError,
    UnterminatedStringError,
    UnexpectedTokenError,
)


# =============================================================================
# Token Kind Enumeration
# =============================================================================

class TokenKind(Enum):
    """
    Lexical classes of the Jack language.

    The values double as the element names of the XML token listing.
    """
    KEYWORD = "keyword"
    SYMBOL = "symbol"
    IDENTIFIER = "identifier"
    INTEGER_LITERAL = "integerConstant"
    STRING_LITERAL = "stringConstant"


# =============================================================================
# Reserved Words and Operator Sets
# =============================================================================

KEYWORDS = frozenset({
    "class", "constructor", "function", "method",
    "field", "static", "var",
    "int", "char", "boolean", "void",
    "true", "false", "null", "this",
    "let", "do", "if", "else", "while", "return",
})

PRIMITIVE_TYPES = ("int", "char", "boolean")

# Binary operators of `term (op term)*`
OPERATORS = ("+", "-", "*", "/", "&", "|", "<", ">", "=")

UNARY_OPERATORS = ("-", "~")

KEYWORD_CONSTANTS = ("true", "false", "null", "this")

# Entity forms used by the XML token listing
XML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "&": "&amp;",
}


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single classified token.

    Two tokens are equal when kind and text match; the position fields
    are only used for diagnostics.

    Attributes:
        kind: The TokenKind classification
        text: Source text (string literals without their quotes)
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    kind: TokenKind
    text: str
    line: int = field(default=0, compare=False)
    column: int = field(default=0, compare=False)
    filename: str = field(default="<input>", compare=False)

    def __repr__(self) -> str:
        return f"Token({self.kind.value}, {self.text!r}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    def is_keyword(self, *words: str) -> bool:
        """Return True if this is a keyword, optionally one of `words`."""
        if self.kind != TokenKind.KEYWORD:
            return False
        return not words or self.text in words

    def is_symbol(self, *symbols: str) -> bool:
        """Return True if this is a symbol, optionally one of `symbols`."""
        if self.kind != TokenKind.SYMBOL:
            return False
        return not symbols or self.text in symbols

    def to_xml(self) -> str:
        """Render as `<kind> text </kind>` with XML entities escaped."""
        escaped = "".join(XML_ESCAPES.get(ch, ch) for ch in self.text)
        tag = self.kind.value
        return f"<{tag}> {escaped} </{tag}>"


def tokens_to_xml(tokens: list[Token]) -> str:
    """Render a full token listing wrapped in a <tokens> element."""
    lines = ["<tokens>"]
    lines.extend(token.to_xml() for token in tokens)
    lines.append("</tokens>")
    return "\n".join(lines)


# =============================================================================
# Lexer Implementation
# =============================================================================

class JackLexer:
    """
    Tokenizes Jack source code.

    Usage:
        lexer = JackLexer(source_text, "Main.jack")
        tokens = list(lexer.tokenize())

    All scanning state lives on the instance; a new lexer is created for
    every source unit.

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
    """

    # Characters making up an alphanumeric chunk
    ALNUM_CHARS = string.ascii_letters + string.digits

    WHITESPACE = " \t\n\r\f\v"

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        # Current position in source
        self._pos = 0
        self._line = 1
        self._column = 1

        # Track line start position for error reporting
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects in source order

        Raises:
            JackSyntaxError: On an unterminated comment or string literal
        """
        while True:
            self._skip_whitespace_and_comments()
            if self._at_end():
                return
            yield self._scan_token()

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Look at a character without advancing; empty string past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume and return the current character, tracking line/column."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _make_token(self, kind: TokenKind, text: str, line: int, column: int) -> Token:
        return Token(kind, text, line, column, self.filename)

    def _get_current_line(self) -> str:
        """Get the current line of source text for error reporting."""
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace_and_comments(self) -> None:
        while not self._at_end():
            char = self._peek()

            if char in self.WHITESPACE:
                self._advance()
                continue

            if char == "/" and self._peek(1) == "/":
                self._skip_single_line_comment()
                continue

            if char == "/" and self._peek(1) == "*":
                self._skip_multi_line_comment()
                continue

            break

    def _skip_single_line_comment(self) -> None:
        while not self._at_end() and self._peek() != "\n":
            self._advance()

    def _skip_multi_line_comment(self) -> None:
        """
        Skip a block comment. The first `*/` closes it; comments do not nest.

        Raises:
            JackSyntaxError: If the comment is not terminated
        """
        start_line = self._line
        start_col = self._column

        self._advance()
        self._advance()

        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

        raise JackSyntaxError(
            "unterminated multi-line comment",
            SourceLocation(self.filename, start_line, start_col),
            hint="add closing */ to terminate the comment",
        )

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        start_line = self._line
        start_column = self._column

        char = self._peek()

        if char in self.ALNUM_CHARS:
            return self._scan_alphanumeric(start_line, start_column)

        if char == '"':
            return self._scan_string(start_line, start_column)

        # Every other character is a symbol of its own
        return self._make_token(TokenKind.SYMBOL, self._advance(), start_line, start_column)

    def _scan_alphanumeric(self, start_line: int, start_column: int) -> Token:
        """
        Scan a run of letters and digits and classify it.

        keyword > integer literal (digits only) > identifier
        """
        chars = []
        while self._peek() and self._peek() in self.ALNUM_CHARS:
            chars.append(self._advance())
        text = "".join(chars)

        if text in KEYWORDS:
            kind = TokenKind.KEYWORD
        elif text.isdigit():
            kind = TokenKind.INTEGER_LITERAL
        else:
            kind = TokenKind.IDENTIFIER

        return self._make_token(kind, text, start_line, start_column)

    def _scan_string(self, start_line: int, start_column: int) -> Token:
        """
        Scan a double-quoted string literal verbatim.

        Raises:
            UnterminatedStringError: End of line or input before closing quote
        """
        self._advance()  # opening "

        chars = []
        while not self._at_end():
            char = self._peek()

            if char == '"':
                self._advance()
                return self._make_token(
                    TokenKind.STRING_LITERAL, "".join(chars), start_line, start_column
                )

            if char == "\n":
                break

            chars.append(self._advance())

        raise UnterminatedStringError(
            SourceLocation(self.filename, start_line, start_column),
            self._get_current_line(),
        )


def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Tokenize a complete source unit."""
    return list(JackLexer(source, filename).tokenize())


# =============================================================================
# Token Stream
# =============================================================================

class TokenStream:
    """
    Left-to-right cursor over one unit's tokens with one-token lookahead.

    The stream is never rewound. `peek()` returns None once every token
    has been consumed.
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source_lines: Optional[list[str]] = None,
    ):
        self.tokens = tokens
        self.filename = filename
        self.source_lines = source_lines or []
        self._pos = 0

    def __len__(self) -> int:
        return len(self.tokens)

    def at_end(self) -> bool:
        return self._pos >= len(self.tokens)

    def peek(self) -> Optional[Token]:
        if self.at_end():
            return None
        return self.tokens[self._pos]

    def peek_kind(self) -> Optional[TokenKind]:
        token = self.peek()
        return token.kind if token is not None else None

    def peek_text(self) -> Optional[str]:
        token = self.peek()
        return token.text if token is not None else None

    def advance(self, expected: str = "a token") -> Token:
        """
        Consume and return the current token.

        Raises:
            UnexpectedTokenError: If the stream is exhausted
        """
        if self.at_end():
            raise UnexpectedTokenError("end of input", expected, self.end_location())
        token = self.tokens[self._pos]
        self._pos += 1
        return token

    def end_location(self) -> SourceLocation:
        """Location just past the last token, for end-of-input errors."""
        if not self.tokens:
            return SourceLocation(self.filename, 1, 1)
        last = self.tokens[-1]
        return SourceLocation(last.filename, last.line, last.column + len(last.text))

    def source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None
