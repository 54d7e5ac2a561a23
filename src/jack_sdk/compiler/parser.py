"""
Jack Recursive Descent Parser and VM Code Generator
====================================================

This module parses one Jack class and emits VM code while it parses.
There is no syntax tree: every production writes its instructions as soon
as the construct is recognized, resolving identifiers through the scope
table on the way.

Grammar
-------
class          ::= 'class' IDENTIFIER '{' classVarDec* subroutineDec* '}'
classVarDec    ::= ('static' | 'field') type IDENTIFIER (',' IDENTIFIER)* ';'
subroutineDec  ::= ('constructor' | 'function' | 'method') (type | 'void')
                   IDENTIFIER '(' parameterList ')' '{' varDec* statements '}'
parameterList  ::= (type IDENTIFIER (',' type IDENTIFIER)*)?
varDec         ::= 'var' type IDENTIFIER (',' IDENTIFIER)* ';'
statements     ::= (let | if | while | do | return)*
let            ::= 'let' IDENTIFIER ('[' expression ']')? '=' expression ';'
if             ::= 'if' '(' expression ')' '{' statements '}'
                   ('else' '{' statements '}')?
while          ::= 'while' '(' expression ')' '{' statements '}'
do             ::= 'do' subroutineCall ';'
return         ::= 'return' expression? ';'
expression     ::= term (op term)*
term           ::= INTEGER | STRING | keywordConstant | unaryOp term
                 | '(' expression ')' | IDENTIFIER | IDENTIFIER '[' expression ']'
                 | subroutineCall
subroutineCall ::= IDENTIFIER '(' expressionList ')'
                 | IDENTIFIER '.' IDENTIFIER '(' expressionList ')'

One token of lookahead always selects the production; the parser never
backtracks.

Expressions
-----------
Jack has no operator precedence. `a + b * c` is evaluated strictly left to
right, the same as `(a + b) * c`:

    push a / push b / add / push c / call Math.multiply 2

Control Flow
------------
Labels are L1, L2, ... drawn from one counter per class:

    while:  label L1, <cond>, not, if-goto L2, <body>, goto L1, label L2
    if:     <cond>, not, if-goto L1, <then>, goto L2, label L1, <else>, label L2

Parse-Tree Listing
------------------
Given a ParseTreeWriter, the parser also records the XML parse-tree listing
as it goes: each production opens and closes an element (<class>,
<statements>, <expression>, <term>, ...) and each consumed token is written
in the token-listing form. Code generation is unaffected.

Example Usage
-------------
>>> from jack_sdk.compiler.lexer import tokenize
>>> from jack_sdk.compiler.parser import JackParser
>>> source = 'class Main { function void main() { return; } }'
>>> print(JackParser(tokenize(source)).parse())
function Main.main 0
return
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from jack_sdk.compiler.lexer import (
    Token,
    TokenKind,
    TokenStream,
    PRIMITIVE_TYPES,
    OPERATORS,
    UNARY_OPERATORS,
    KEYWORD_CONSTANTS,
)
from jack_sdk.compiler.scope import ScopeTable, StorageKind, Declaration
from jack_sdk.compiler.emitter import VMEmitter, Segment, segment_for
from jack_sdk.compiler.errors import (
    UnexpectedTokenError,
    JackSemanticError,
    UndeclaredIdentifierError,
    DuplicateDeclarationError,
)

logger = logging.getLogger(__name__)


SUBROUTINE_KINDS = ("constructor", "function", "method")
CLASS_VAR_KINDS = ("static", "field")

# Binary operators with a native VM command
ARITHMETIC_OPERATORS = {
    "+": "add",
    "-": "sub",
    "&": "and",
    "|": "or",
    "<": "lt",
    ">": "gt",
    "=": "eq",
}

# Binary operators lowered to OS calls
CALL_OPERATORS = {
    "*": "Math.multiply",
    "/": "Math.divide",
}

UNARY_COMMANDS = {
    "-": "neg",
    "~": "not",
}

# Largest value `push constant` accepts (15-bit constants)
MAX_INTEGER_CONSTANT = 32767


# =============================================================================
# Parse-Tree XML Listing
# =============================================================================

class ParseTreeWriter:
    """
    Collects the XML parse-tree listing while a class is parsed.

    Each grammar production becomes an element and every consumed token is
    written with Token.to_xml() at the current nesting depth:

        <class>
          <keyword> class </keyword>
          <identifier> Main </identifier>
          ...
        </class>
    """

    INDENT = "  "

    def __init__(self):
        self._lines: list[str] = []
        self._depth = 0

    def open(self, tag: str) -> None:
        self._lines.append(f"{self.INDENT * self._depth}<{tag}>")
        self._depth += 1

    def close(self, tag: str) -> None:
        self._depth -= 1
        self._lines.append(f"{self.INDENT * self._depth}</{tag}>")

    def token(self, token: Token) -> None:
        self._lines.append(f"{self.INDENT * self._depth}{token.to_xml()}")

    def getvalue(self) -> str:
        return "\n".join(self._lines)


# =============================================================================
# Per-Class Code Generation State
# =============================================================================

@dataclass
class CodegenContext:
    """
    Mutable state of one class compilation.

    A new context is created for every class, so the label counter and
    subroutine bookkeeping never carry over between units.

    Attributes:
        class_name: Name of the class being compiled
        subroutine_kind: constructor, function or method being compiled
        subroutine_name: Name of the subroutine being compiled
        label_counter: Last label number handed out
        subroutines: Subroutine name -> kind for this class
        local_calls: Unqualified call sites, checked when the class closes
    """
    class_name: str = ""
    subroutine_kind: str = ""
    subroutine_name: str = ""
    label_counter: int = 0
    subroutines: dict[str, str] = field(default_factory=dict)
    local_calls: list[Token] = field(default_factory=list)

    def new_label(self) -> str:
        """Return the next program-unique label."""
        self.label_counter += 1
        return f"L{self.label_counter}"

    @property
    def qualified_subroutine(self) -> str:
        return f"{self.class_name}.{self.subroutine_name}"


# =============================================================================
# Parser
# =============================================================================

class JackParser:
    """
    Single-pass parser and VM code generator for one Jack class.

    Attributes:
        stream: Token stream being consumed
        scope: Scope table for the class
        emitter: Destination of generated VM instructions
        context: Class-level code generation state
        parse_tree: Optional XML parse-tree listing written alongside
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source_lines: Optional[list[str]] = None,
        emitter: Optional[VMEmitter] = None,
        known_classes: Iterable[str] = (),
        strict_class_names: bool = False,
        parse_tree: Optional[ParseTreeWriter] = None,
    ):
        """
        Initialize the parser.

        Args:
            tokens: Tokens of one source unit
            filename: Source filename for error messages
            source_lines: Original source lines for error context
            emitter: VM emitter to write to (a new one by default)
            known_classes: Class names accepted as call qualifiers
            strict_class_names: Only accept known classes as qualifiers
            parse_tree: Writer receiving the XML parse-tree listing
        """
        self.filename = filename
        self.stream = TokenStream(tokens, filename, source_lines)
        self.scope = ScopeTable()
        self.emitter = emitter if emitter is not None else VMEmitter()
        self.context = CodegenContext()
        self.strict_class_names = strict_class_names
        self.parse_tree = parse_tree
        self._known_classes: set[str] = set(known_classes)

    @property
    def class_name(self) -> str:
        return self.context.class_name

    def parse(self) -> str:
        """
        Compile the class and return its VM code.

        Raises:
            JackSyntaxError: If the tokens do not match the grammar
            JackSemanticError: If an identifier cannot be resolved
        """
        self._compile_class()
        return self.emitter.getvalue()

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _advance(self) -> Token:
        """Consume the lookahead, recording it in the parse tree."""
        token = self.stream.advance()
        if self.parse_tree is not None:
            self.parse_tree.token(token)
        return token

    def _open(self, tag: str) -> None:
        if self.parse_tree is not None:
            self.parse_tree.open(tag)

    def _close(self, tag: str) -> None:
        if self.parse_tree is not None:
            self.parse_tree.close(tag)

    def _check(self, text: str) -> bool:
        """True if the lookahead is the keyword or symbol `text`."""
        token = self.stream.peek()
        return (
            token is not None
            and token.kind in (TokenKind.KEYWORD, TokenKind.SYMBOL)
            and token.text == text
        )

    def _check_any(self, texts: Iterable[str]) -> bool:
        return any(self._check(text) for text in texts)

    def _optional(self, text: str) -> Optional[Token]:
        """Consume the lookahead if it is `text`."""
        if self._check(text):
            return self._advance()
        return None

    def _optional_any(self, texts: Iterable[str]) -> Optional[Token]:
        for text in texts:
            if self._check(text):
                return self._advance()
        return None

    def _expect(self, text: str) -> Token:
        """
        Consume the lookahead, which must be `text`.

        Raises:
            UnexpectedTokenError: If the lookahead is anything else
        """
        if self._check(text):
            return self._advance()
        raise self._unexpected(f"'{text}'")

    def _expect_one_of(self, texts: tuple[str, ...]) -> Token:
        token = self._optional_any(texts)
        if token is None:
            choices = ", ".join(f"'{t}'" for t in texts)
            raise self._unexpected(f"one of {choices}")
        return token

    def _expect_identifier(self, what: str = "identifier") -> Token:
        if self.stream.peek_kind() != TokenKind.IDENTIFIER:
            raise self._unexpected(what)
        return self._advance()

    def _expect_type(self, allow_void: bool = False) -> Token:
        """Consume a type: a primitive keyword or a class name."""
        token = self.stream.peek()
        keywords = PRIMITIVE_TYPES + ("void",) if allow_void else PRIMITIVE_TYPES
        if token is not None and token.is_keyword(*keywords):
            return self._advance()
        if token is not None and token.kind == TokenKind.IDENTIFIER:
            # Any class named in a declaration may qualify calls
            self._known_classes.add(token.text)
            return self._advance()
        raise self._unexpected("return type" if allow_void else "type")

    # =========================================================================
    # Error Helpers
    # =========================================================================

    def _unexpected(self, expected: str) -> UnexpectedTokenError:
        token = self.stream.peek()
        if token is None:
            return UnexpectedTokenError("end of input", expected, self.stream.end_location())
        return UnexpectedTokenError(
            f"'{token.text}'",
            expected,
            token.location,
            self.stream.source_line(token.line),
        )

    def _semantic_error(
        self,
        message: str,
        token: Token,
        hint: Optional[str] = None,
    ) -> JackSemanticError:
        return JackSemanticError(
            message,
            token.location,
            hint=hint,
            source_line=self.stream.source_line(token.line),
        )

    def _undeclared(self, token: Token, hint: Optional[str] = None) -> UndeclaredIdentifierError:
        return UndeclaredIdentifierError(
            token.text,
            token.location,
            self.stream.source_line(token.line),
            hint=hint,
        )

    # =========================================================================
    # Scope Helpers
    # =========================================================================

    def _define(self, name: Token, declared_type: str, kind) -> Declaration:
        try:
            return self.scope.define(name.text, declared_type, kind)
        except DuplicateDeclarationError as e:
            raise DuplicateDeclarationError(
                e.identifier,
                e.scope,
                name.location,
                self.stream.source_line(name.line),
            ) from None

    def _resolve_variable(self, name: Token) -> Declaration:
        """Look up a variable reference; unresolved names are fatal."""
        declaration = self.scope.lookup(name.text)
        if declaration is None:
            raise self._undeclared(name)
        if (
            declaration.storage_kind == StorageKind.FIELD
            and self.context.subroutine_kind == "function"
        ):
            raise self._semantic_error(
                f"field '{name.text}' cannot be used in function "
                f"'{self.context.qualified_subroutine}'",
                name,
                hint="fields are only accessible from methods and constructors",
            )
        return declaration

    def _push_variable(self, declaration: Declaration) -> None:
        self.emitter.write_push(segment_for(declaration.storage_kind), declaration.slot_index)

    def _pop_variable(self, declaration: Declaration) -> None:
        self.emitter.write_pop(segment_for(declaration.storage_kind), declaration.slot_index)

    def _is_class_name(self, name: str) -> bool:
        if name in self._known_classes:
            return True
        # By convention Jack class names start with an upper-case letter
        return not self.strict_class_names and name[:1].isupper()

    # =========================================================================
    # Class Structure
    # =========================================================================

    def _compile_class(self) -> None:
        self._open("class")
        self._expect("class")
        name = self._expect_identifier("class name")
        self.context.class_name = name.text
        self._known_classes.add(name.text)
        logger.debug(f"Compiling class {name.text}")

        self._expect("{")
        while self._check_any(CLASS_VAR_KINDS):
            self._compile_class_var_dec()
        while self._check_any(SUBROUTINE_KINDS):
            self._compile_subroutine()
        self._expect("}")
        self._close("class")

        if not self.stream.at_end():
            raise self._unexpected("end of input after class")

        self._verify_local_calls()

    def _compile_class_var_dec(self) -> None:
        self._open("classVarDec")
        kind = self._expect_one_of(CLASS_VAR_KINDS)
        var_type = self._expect_type()
        self._compile_var_names(var_type.text, kind.text)
        self._expect(";")
        self._close("classVarDec")

    def _compile_var_names(self, var_type: str, kind) -> None:
        """IDENTIFIER (',' IDENTIFIER)* sharing one type and kind."""
        self._define(self._expect_identifier("variable name"), var_type, kind)
        while self._optional(","):
            self._define(self._expect_identifier("variable name"), var_type, kind)

    def _compile_subroutine(self) -> None:
        self._open("subroutineDec")
        kind = self._expect_one_of(SUBROUTINE_KINDS)
        self._expect_type(allow_void=True)
        name = self._expect_identifier("subroutine name")

        if name.text in self.context.subroutines:
            raise DuplicateDeclarationError(
                name.text, "class", name.location, self.stream.source_line(name.line)
            )
        self.context.subroutines[name.text] = kind.text
        self.context.subroutine_kind = kind.text
        self.context.subroutine_name = name.text

        self.scope.start_subroutine()
        if kind.text == "method":
            # The receiver occupies argument 0
            self.scope.define("this", self.context.class_name, StorageKind.ARGUMENT)

        self._expect("(")
        self._compile_parameter_list()
        self._expect(")")

        self._open("subroutineBody")
        self._expect("{")
        while self._check("var"):
            self._compile_var_dec()

        n_locals = self.scope.var_count(StorageKind.LOCAL)
        logger.debug(
            f"  {kind.text} {self.context.qualified_subroutine}: {n_locals} locals"
        )
        self.emitter.write_function(self.context.qualified_subroutine, n_locals)
        self._compile_prologue(kind.text)

        self._compile_statements()
        self._expect("}")
        self._close("subroutineBody")
        self._close("subroutineDec")

    def _compile_prologue(self, kind: str) -> None:
        """Set up the `this` pointer for constructors and methods."""
        if kind == "constructor":
            self.emitter.write_push(Segment.CONSTANT, self.scope.var_count(StorageKind.FIELD))
            self.emitter.write_call("Memory.alloc", 1)
            self.emitter.write_pop(Segment.POINTER, 0)
        elif kind == "method":
            self.emitter.write_push(Segment.ARGUMENT, 0)
            self.emitter.write_pop(Segment.POINTER, 0)

    def _compile_parameter_list(self) -> None:
        # Parameters arrive on the stack: declare only, emit nothing
        self._open("parameterList")
        if not self._check(")"):
            while True:
                param_type = self._expect_type()
                self._define(self._expect_identifier("parameter name"), param_type.text, StorageKind.ARGUMENT)
                if not self._optional(","):
                    break
        self._close("parameterList")

    def _compile_var_dec(self) -> None:
        self._open("varDec")
        self._expect("var")
        var_type = self._expect_type()
        self._compile_var_names(var_type.text, StorageKind.LOCAL)
        self._expect(";")
        self._close("varDec")

    def _verify_local_calls(self) -> None:
        """Unqualified calls must name a method of this class."""
        class_name = self.context.class_name
        for call in self.context.local_calls:
            kind = self.context.subroutines.get(call.text)
            if kind is None:
                raise self._undeclared(call, hint=f"class {class_name} has no subroutine '{call.text}'")
            if kind != "method":
                raise self._semantic_error(
                    f"'{class_name}.{call.text}' is a {kind}, not a method",
                    call,
                    hint=f"call it as {class_name}.{call.text}(...)",
                )

    # =========================================================================
    # Statements
    # =========================================================================

    def _compile_statements(self) -> None:
        handlers = {
            "let": self._compile_let,
            "if": self._compile_if,
            "while": self._compile_while,
            "do": self._compile_do,
            "return": self._compile_return,
        }
        self._open("statements")
        while True:
            token = self.stream.peek()
            if token is None or not token.is_keyword(*handlers):
                break
            handlers[token.text]()
        self._close("statements")

    def _compile_let(self) -> None:
        self._open("letStatement")
        self._expect("let")
        target = self._resolve_variable(self._expect_identifier("variable name"))

        if self._optional("["):
            # Element address = base + index
            self._push_variable(target)
            self._compile_expression()
            self._expect("]")
            self.emitter.write_arithmetic("add")

            self._expect("=")
            self._compile_expression()
            self._expect(";")

            # Value goes to temp 0 while THAT is aimed at the element
            self.emitter.write_pop(Segment.TEMP, 0)
            self.emitter.write_pop(Segment.POINTER, 1)
            self.emitter.write_push(Segment.TEMP, 0)
            self.emitter.write_pop(Segment.THAT, 0)
        else:
            self._expect("=")
            self._compile_expression()
            self._expect(";")
            self._pop_variable(target)
        self._close("letStatement")

    def _compile_if(self) -> None:
        self._open("ifStatement")
        self._expect("if")
        else_label = self.context.new_label()
        end_label = self.context.new_label()

        self._expect("(")
        self._compile_expression()
        self._expect(")")
        self.emitter.write_arithmetic("not")
        self.emitter.write_if(else_label)

        self._compile_block()
        self.emitter.write_goto(end_label)
        self.emitter.write_label(else_label)

        if self._optional("else"):
            self._compile_block()
        self.emitter.write_label(end_label)
        self._close("ifStatement")

    def _compile_while(self) -> None:
        self._open("whileStatement")
        self._expect("while")
        start_label = self.context.new_label()
        end_label = self.context.new_label()

        self.emitter.write_label(start_label)
        self._expect("(")
        self._compile_expression()
        self._expect(")")
        self.emitter.write_arithmetic("not")
        self.emitter.write_if(end_label)

        self._compile_block()
        self.emitter.write_goto(start_label)
        self.emitter.write_label(end_label)
        self._close("whileStatement")

    def _compile_block(self) -> None:
        self._expect("{")
        self._compile_statements()
        self._expect("}")

    def _compile_do(self) -> None:
        self._open("doStatement")
        self._expect("do")
        self._compile_call(self._expect_identifier("subroutine name"))
        self._expect(";")
        # Discard the return value
        self.emitter.write_pop(Segment.TEMP, 0)
        self._close("doStatement")

    def _compile_return(self) -> None:
        self._open("returnStatement")
        self._expect("return")
        if not self._check(";"):
            self._compile_expression()
        self._expect(";")
        self.emitter.write_return()
        self._close("returnStatement")

    # =========================================================================
    # Expressions
    # =========================================================================

    def _compile_expression(self) -> None:
        """term (op term)*, strictly left to right."""
        self._open("expression")
        self._compile_term()
        while True:
            op = self._optional_any(OPERATORS)
            if op is None:
                break
            self._compile_term()
            if op.text in CALL_OPERATORS:
                self.emitter.write_call(CALL_OPERATORS[op.text], 2)
            else:
                self.emitter.write_arithmetic(ARITHMETIC_OPERATORS[op.text])
        self._close("expression")

    def _compile_term(self) -> None:
        token = self.stream.peek()
        if token is None:
            raise self._unexpected("a term")

        self._open("term")
        if token.kind == TokenKind.INTEGER_LITERAL:
            self._advance()
            self._compile_integer_constant(token)

        elif token.kind == TokenKind.STRING_LITERAL:
            self._advance()
            self._compile_string(token.text)

        elif token.is_keyword(*KEYWORD_CONSTANTS):
            self._advance()
            self._compile_keyword_constant(token)

        elif token.is_symbol(*UNARY_OPERATORS):
            self._advance()
            self._compile_term()
            self.emitter.write_arithmetic(UNARY_COMMANDS[token.text])

        elif token.is_symbol("("):
            self._advance()
            self._compile_expression()
            self._expect(")")

        elif token.kind == TokenKind.IDENTIFIER:
            self._advance()
            self._compile_identifier_term(token)

        else:
            raise self._unexpected("a term")
        self._close("term")

    def _compile_integer_constant(self, token: Token) -> None:
        value = int(token.text)
        if value > MAX_INTEGER_CONSTANT:
            raise self._semantic_error(
                f"integer constant {token.text} is out of range",
                token,
                hint=f"integer constants must be between 0 and {MAX_INTEGER_CONSTANT}",
            )
        self.emitter.write_push(Segment.CONSTANT, value)

    def _compile_string(self, text: str) -> None:
        """Build the string at run time one character at a time."""
        self.emitter.write_push(Segment.CONSTANT, len(text))
        self.emitter.write_call("String.new", 1)
        for char in text:
            self.emitter.write_push(Segment.CONSTANT, ord(char))
            self.emitter.write_call("String.appendChar", 2)

    def _compile_keyword_constant(self, token: Token) -> None:
        if token.text == "true":
            self.emitter.write_push(Segment.CONSTANT, 1)
            self.emitter.write_arithmetic("neg")
        elif token.text in ("false", "null"):
            self.emitter.write_push(Segment.CONSTANT, 0)
        else:
            self._compile_this(token)

    def _compile_this(self, token: Token) -> None:
        receiver = self.scope.lookup("this")
        if receiver is not None:
            self._push_variable(receiver)
        elif self.context.subroutine_kind == "constructor":
            self.emitter.write_push(Segment.POINTER, 0)
        else:
            raise self._semantic_error(
                f"'this' cannot be used in function '{self.context.qualified_subroutine}'",
                token,
            )

    def _compile_identifier_term(self, name: Token) -> None:
        if self._optional("["):
            self._push_variable(self._resolve_variable(name))
            self._compile_expression()
            self._expect("]")
            self.emitter.write_arithmetic("add")
            self.emitter.write_pop(Segment.POINTER, 1)
            self.emitter.write_push(Segment.THAT, 0)
        elif self._check("(") or self._check("."):
            self._compile_call(name)
        else:
            self._push_variable(self._resolve_variable(name))

    def _compile_call(self, name: Token) -> None:
        """
        Compile `name(...)` or `name.sub(...)`.

        A qualifier that resolves in the scope table is an object: its value
        is pushed as the implicit receiver and its declared type names the
        class. Otherwise the qualifier must be a class name.
        """
        separator = self._expect_one_of(("(", "."))
        receiver_args = 0

        if separator.text == ".":
            sub_name = self._expect_identifier("subroutine name")
            self._expect("(")
            if name.text in self.scope:
                declaration = self._resolve_variable(name)
                if declaration.declared_type in PRIMITIVE_TYPES:
                    raise self._semantic_error(
                        f"cannot call '{sub_name.text}' on '{name.text}' "
                        f"of primitive type {declaration.declared_type}",
                        name,
                    )
                self._push_variable(declaration)
                target = f"{declaration.declared_type}.{sub_name.text}"
                receiver_args = 1
            elif self._is_class_name(name.text):
                target = f"{name.text}.{sub_name.text}"
            else:
                raise self._undeclared(name, hint="not a variable in scope or a known class")
        else:
            if self.context.subroutine_kind == "function":
                raise self._semantic_error(
                    f"method '{name.text}' called without a receiver in function "
                    f"'{self.context.qualified_subroutine}'",
                    name,
                    hint=f"call functions as {self.context.class_name}.{name.text}(...)",
                )
            self.emitter.write_push(Segment.POINTER, 0)
            self.context.local_calls.append(name)
            target = f"{self.context.class_name}.{name.text}"
            receiver_args = 1

        n_args = self._compile_expression_list()
        self._expect(")")
        self.emitter.write_call(target, n_args + receiver_args)

    def _compile_expression_list(self) -> int:
        """Compile comma-separated expressions; return how many."""
        self._open("expressionList")
        count = 0
        if not self._check(")"):
            self._compile_expression()
            count = 1
            while self._optional(","):
                self._compile_expression()
                count += 1
        self._close("expressionList")
        return count
