"""
Jack Compiler Error Hierarchy
=============================

This module defines the exception hierarchy for the Jack compiler.
All exceptions inherit from JackCompilerError, which itself inherits
from the base JackError for consistent error handling across the SDK.

Exception Hierarchy
-------------------
JackCompilerError (base for all compiler errors)
├── JackSyntaxError - lexer and parser errors
│   ├── UnterminatedStringError - missing closing quote
│   └── UnexpectedTokenError - expect() mismatch
├── JackSemanticError - resolution errors
│   ├── UndeclaredIdentifierError - name not in any scope
│   └── DuplicateDeclarationError - name declared twice in one scope
└── CodeGenError - invalid VM instruction operands

Every error aborts compilation of the current class. There is no error
recovery: the first error is the only error reported for a unit.

Example:
    Main.jack:5:17: error: undeclared identifier 'cont'
        let count = cont + 1;
                    ^
"""

from typing import Optional

from jack_sdk.errors import JackError, SourceLocation


# =============================================================================
# Base Compiler Exception
# =============================================================================

class JackCompilerError(JackError):
    """
    Base exception for all Jack compiler errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred
        hint: A suggestion for fixing the error
        source_line: The actual source text at the error location
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

            Main.jack:3:9: error: unexpected token 'let'
                let x = 1
                ^
            hint: expected ';'
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


# =============================================================================
# Syntax Errors (Lexer and Parser)
# =============================================================================

class JackSyntaxError(JackCompilerError):
    """
    Syntax error in Jack source code.

    Raised when the lexer or parser meets input that cannot be tokenized
    or does not match the grammar.
    """
    pass


class UnterminatedStringError(JackSyntaxError):
    """
    Unterminated string literal.

    Raised when a string literal is not closed before the end of the
    line or the end of the file.
    """

    def __init__(
        self,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(
            "unterminated string literal",
            location=location,
            hint="add closing '\"' to complete the string",
            source_line=source_line,
        )


class UnexpectedTokenError(JackSyntaxError):
    """
    The lookahead token does not match what the grammar requires.

    Attributes:
        found: Text of the token found, or "end of input"
        expected: Description of what was expected
    """

    def __init__(
        self,
        found: str,
        expected: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected
        super().__init__(
            f"expected {expected}, got {found}",
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Semantic Errors (Scope Resolution)
# =============================================================================

class JackSemanticError(JackCompilerError):
    """
    Semantic error in Jack source code.

    The code is syntactically correct but refers to names that cannot be
    resolved or declares the same name twice.
    """
    pass


class UndeclaredIdentifierError(JackSemanticError):
    """Reference to an identifier that resolves in no scope."""

    def __init__(
        self,
        identifier: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        self.identifier = identifier
        super().__init__(
            f"undeclared identifier '{identifier}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class DuplicateDeclarationError(JackSemanticError):
    """Identifier declared more than once in the same scope."""

    def __init__(
        self,
        identifier: str,
        scope: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.identifier = identifier
        self.scope = scope
        super().__init__(
            f"redeclaration of '{identifier}' in {scope} scope",
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Code Generation Errors
# =============================================================================

class CodeGenError(JackCompilerError):
    """
    Invalid VM instruction requested from the emitter.

    Raised for unknown segments or commands, negative operands and
    writes to the constant segment.
    """
    pass
