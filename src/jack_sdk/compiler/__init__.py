"""
Jack Compiler
=============

This package compiles classes written in the Jack language to code for
the stack-based VM.

- A lexer (tokenizer) for Jack source
- A two-tier scope table for static, field, argument and local variables
- A recursive descent parser that emits VM code while it parses
- An emitter that serializes VM instructions

Pipeline
--------
    Jack Source → Lexer → Parser/Code Generator → Emitter → VM code

There is no syntax tree: code is generated production by production.

Usage
-----
>>> from jack_sdk.compiler import compile_jack
>>> source = '''
... class Main {
...     function void main() {
...         do Output.printInt(1 + 2);
...         return;
...     }
... }
... '''
>>> print(compile_jack(source))
function Main.main 0
push constant 1
push constant 2
add
call Output.printInt 1
pop temp 0
return
"""

from jack_sdk.compiler.compiler import (
    JackCompiler,
    CompilerOptions,
    CompilerResult,
    compile_jack,
    compile_file,
    find_sources,
)
from jack_sdk.compiler.errors import (
    JackCompilerError,
    JackSyntaxError,
    UnterminatedStringError,
    UnexpectedTokenError,
    JackSemanticError,
    UndeclaredIdentifierError,
    DuplicateDeclarationError,
    CodeGenError,
)
from jack_sdk.compiler.lexer import JackLexer, Token, TokenKind, TokenStream, tokenize, tokens_to_xml
from jack_sdk.compiler.scope import ScopeTable, Declaration, StorageKind
from jack_sdk.compiler.emitter import VMEmitter, Segment
from jack_sdk.compiler.parser import JackParser, ParseTreeWriter

__all__ = [
    # Main API
    "JackCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_jack",
    "compile_file",
    "find_sources",
    # Errors
    "JackCompilerError",
    "JackSyntaxError",
    "UnterminatedStringError",
    "UnexpectedTokenError",
    "JackSemanticError",
    "UndeclaredIdentifierError",
    "DuplicateDeclarationError",
    "CodeGenError",
    # Lexer
    "JackLexer",
    "Token",
    "TokenKind",
    "TokenStream",
    "tokenize",
    "tokens_to_xml",
    # Scope table
    "ScopeTable",
    "Declaration",
    "StorageKind",
    # Emitter
    "VMEmitter",
    "Segment",
    # Parser
    "JackParser",
    "ParseTreeWriter",
]
