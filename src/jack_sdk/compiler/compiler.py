"""
Jack Compiler Main Module
=========================

This module provides the main compiler interface. It runs the pipeline
for one class at a time:

    Source → Lex → Parse + Generate → VM code

Usage
-----
Command line:
    $ jackc Main.jack            # writes Main.vm
    $ jackc Square/              # compiles every .jack file in the directory

Programmatic:
    >>> from jack_sdk.compiler import compile_jack
    >>> print(compile_jack('class Main { function void main() { return; } }'))
    function Main.main 0
    return

Error Handling
--------------
The first error aborts the unit and propagates as a JackCompilerError;
no partial VM code is produced. Every unit gets a fresh lexer, scope
table, emitter and label counter, so one failing class cannot affect the
next one compiled by the same JackCompiler.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jack_sdk.compiler.lexer import JackLexer, Token, tokens_to_xml
from jack_sdk.compiler.parser import JackParser, ParseTreeWriter

logger = logging.getLogger(__name__)


# Classes of the Jack operating system, always valid call qualifiers
OS_CLASSES = (
    "Array",
    "Keyboard",
    "Math",
    "Memory",
    "Output",
    "Screen",
    "String",
    "Sys",
)

SOURCE_SUFFIX = ".jack"
VM_SUFFIX = ".vm"


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        known_classes: Extra class names accepted as call qualifiers
                       (the OS classes are always accepted). When compiling
                       a directory every class in it is added here.
        strict_class_names: If True, an unresolved call qualifier must be a
                            known class. If False (default), any name with
                            an upper-case initial is taken as a class name.
        emit_tokens: Also render the XML token listing of each unit.
        emit_parse_tree: Also render the XML parse-tree listing of each unit.
    """
    known_classes: list[str] = None
    strict_class_names: bool = False
    emit_tokens: bool = False
    emit_parse_tree: bool = False

    def __post_init__(self):
        if self.known_classes is None:
            self.known_classes = []


@dataclass
class CompilerResult:
    """
    Result of compiling one class.

    Attributes:
        filename: Source filename
        class_name: Name of the compiled class
        success: True if compilation succeeded
        vm_code: Generated VM code, one instruction per line
        tokens_xml: XML token listing (only with emit_tokens)
        parse_tree_xml: XML parse-tree listing (only with emit_parse_tree)
        token_count: Number of tokens lexed
    """
    filename: str = ""
    class_name: str = ""
    success: bool = False
    vm_code: str = ""
    tokens_xml: str = ""
    parse_tree_xml: str = ""
    token_count: int = 0


class JackCompiler:
    """
    Jack compiler producing VM code.

    Example:
        compiler = JackCompiler()
        result = compiler.compile_file("Main.jack")
        print(result.vm_code)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()

    @property
    def known_classes(self) -> list[str]:
        return list(OS_CLASSES) + list(self.options.known_classes)

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile one class to VM code.

        Args:
            source: Jack source of exactly one class
            filename: Source filename for error messages

        Returns:
            CompilerResult with the VM code

        Raises:
            JackCompilerError: On the first lexical, syntax or semantic error
        """
        result = CompilerResult(filename=filename)

        tokens = self._lex(source, filename)
        result.token_count = len(tokens)
        if self.options.emit_tokens:
            result.tokens_xml = tokens_to_xml(tokens)

        parse_tree = ParseTreeWriter() if self.options.emit_parse_tree else None
        parser = JackParser(
            tokens,
            filename,
            source.splitlines(),
            known_classes=self.known_classes,
            strict_class_names=self.options.strict_class_names,
            parse_tree=parse_tree,
        )
        result.vm_code = parser.parse()
        result.class_name = parser.class_name
        if parse_tree is not None:
            result.parse_tree_xml = parse_tree.getvalue()
        result.success = True

        logger.debug(
            f"Compiled {filename}: class {result.class_name}, "
            f"{result.token_count} tokens, {len(parser.emitter.lines)} instructions"
        )
        return result

    def compile_file(self, filepath: str | Path) -> CompilerResult:
        """
        Compile a Jack source file.

        Raises:
            JackCompilerError: If compilation fails
            FileNotFoundError: If the source file does not exist
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = path.read_text(encoding="utf-8")
        return self.compile_source(source, str(path))

    def _lex(self, source: str, filename: str) -> list[Token]:
        lexer = JackLexer(source, filename)
        return list(lexer.tokenize())


# =============================================================================
# Source Discovery
# =============================================================================

def find_sources(path: str | Path) -> list[Path]:
    """
    Return the Jack sources named by `path`.

    A file is returned as is; a directory yields its .jack files in
    sorted order.

    Raises:
        FileNotFoundError: If `path` does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"No such file or directory: {path}")
    if path.is_dir():
        return sorted(p for p in path.iterdir() if p.suffix == SOURCE_SUFFIX and p.is_file())
    return [path]


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_jack(
    source: str,
    filename: str = "<input>",
    known_classes: Optional[list[str]] = None,
) -> str:
    """
    Compile Jack source code to VM code.

    Raises:
        JackCompilerError: If compilation fails

    Example:
        >>> vm = compile_jack('class Main { function void main() { return; } }')
    """
    options = CompilerOptions(known_classes=known_classes or [])
    result = JackCompiler(options).compile_source(source, filename)
    return result.vm_code


def compile_file(
    filepath: str | Path,
    output_path: Optional[str | Path] = None,
) -> str:
    """
    Compile a Jack source file to VM code.

    Args:
        filepath: Path to the .jack file
        output_path: Optional path to write the VM code to

    Returns:
        Generated VM code

    Raises:
        JackCompilerError: If compilation fails
        FileNotFoundError: If source file not found
    """
    result = JackCompiler().compile_file(filepath)

    if output_path:
        Path(output_path).write_text(result.vm_code + "\n", encoding="utf-8")

    return result.vm_code
