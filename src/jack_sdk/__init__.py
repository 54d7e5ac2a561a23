"""
Jack SDK - Compiler Front End for the Jack Class Language
=========================================================

This package compiles programs written in Jack, a small object-based
language, into code for a stack-oriented virtual machine (VM). The VM code
is consumed by a separate VM translator and assembler.

Main Components
---------------
- **compiler**: Jack to VM compiler (jackc)
    Lexer, scope table, single-pass parser/code generator and VM emitter

Quick Start
-----------
Compile a class:
    >>> from jack_sdk import compile_jack
    >>> vm = compile_jack('class Main { function void main() { return; } }')

Or use the command-line tool:
    $ jackc Main.jack
    $ jackc Pong/
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from jack_sdk.errors import JackError, SourceLocation
from jack_sdk.compiler import (
    JackCompiler,
    CompilerOptions,
    CompilerResult,
    compile_jack,
    compile_file,
    JackCompilerError,
    JackSyntaxError,
    JackSemanticError,
)

__all__ = [
    "__version__",
    "JackError",
    "SourceLocation",
    "JackCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_jack",
    "compile_file",
    "JackCompilerError",
    "JackSyntaxError",
    "JackSemanticError",
]
