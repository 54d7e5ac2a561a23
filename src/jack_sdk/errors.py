"""
Jack SDK Error Hierarchy
========================

This module defines the root of the exception hierarchy for the Jack SDK.
All exceptions inherit from JackError, allowing callers to catch every
SDK-related error with a single except clause if desired.

Exception Hierarchy
-------------------
JackError (base)
└── JackCompilerError (jack_sdk.compiler.errors)
    ├── JackSyntaxError - lexer and parser errors
    ├── JackSemanticError - scope and resolution errors
    └── CodeGenError - invalid VM instruction operands

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
            ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass


# =============================================================================
# Base Exception Class
# =============================================================================

class JackError(Exception):
    """
    Base exception for all Jack SDK errors.

        try:
            compile_file("Main.jack")
        except JackError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"
