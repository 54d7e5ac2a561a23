# =============================================================================
# test_codegen.py - Parser and Code Generation Tests
# =============================================================================
# Tests that Jack classes compile to the expected VM instruction sequences.
#
# Test coverage includes:
#   - Subroutine headers and prologues
#   - Statements: let, if, while, do, return
#   - Expressions: left-to-right evaluation, unary operators, constants
#   - Strings and arrays
#   - Subroutine calls on objects, classes and `this`
#   - Syntax and semantic errors
# =============================================================================

import pytest
from jack_sdk.compiler import compile_jack, JackParser, ParseTreeWriter, tokenize
from jack_sdk.compiler.scope import StorageKind
from jack_sdk.compiler.errors import (
    JackSyntaxError,
    JackSemanticError,
    UnexpectedTokenError,
    UnterminatedStringError,
    UndeclaredIdentifierError,
    DuplicateDeclarationError,
)


# =============================================================================
# Helper Functions
# =============================================================================

def vm(source: str) -> list[str]:
    """Compile a class and return its VM lines."""
    return compile_jack(source).splitlines()


def main_body(body: str, decls: str = "") -> list[str]:
    """
    Compile `body` as the statements of Main.main and return the lines
    between the function header and the final return.
    """
    lines = vm(f"class Main {{ function void main() {{ {decls} {body} return; }} }}")
    assert lines[-1] == "return"
    return lines[1:-1]


# =============================================================================
# Class and Subroutine Structure Tests
# =============================================================================

class TestStructure:
    """Function headers, local counts and prologues."""

    def test_minimal_class(self):
        assert compile_jack(
            "class Main { function void main() { return; } }"
        ) == "function Main.main 0\nreturn"

    def test_class_without_subroutines(self):
        """Fields alone produce no VM code."""
        assert compile_jack("class Empty { field int x; }") == ""

    def test_local_count_excludes_parameters(self):
        lines = vm("""
            class Main {
                function void f(int a, int b) {
                    var int c, d;
                    var boolean e;
                    return;
                }
            }
        """)
        assert lines[0] == "function Main.f 3"

    def test_subroutines_in_source_order(self):
        lines = vm("""
            class Util {
                function int one() { return 1; }
                function int two() { return 2; }
            }
        """)
        assert lines == [
            "function Util.one 0", "push constant 1", "return",
            "function Util.two 0", "push constant 2", "return",
        ]

    def test_constructor_prologue(self):
        lines = vm("""
            class Point {
                field int x, y;
                static int count;
                constructor Point new(int ax, int ay) {
                    let x = ax;
                    let y = ay;
                    return this;
                }
            }
        """)
        assert lines == [
            "function Point.new 0",
            "push constant 2",
            "call Memory.alloc 1",
            "pop pointer 0",
            "push argument 0",
            "pop this 0",
            "push argument 1",
            "pop this 1",
            "push pointer 0",
            "return",
        ]

    def test_method_prologue_and_arguments(self):
        """The receiver is argument 0; declared parameters start at 1."""
        lines = vm("""
            class Point {
                field int x, y;
                method void set(int ax, int ay) {
                    let x = ax;
                    let y = ay;
                    return;
                }
            }
        """)
        assert lines == [
            "function Point.set 0",
            "push argument 0",
            "pop pointer 0",
            "push argument 1",
            "pop this 0",
            "push argument 2",
            "pop this 1",
            "return",
        ]

    def test_method_returns_field(self):
        lines = vm("""
            class Point {
                field int x;
                method int getX() { return x; }
            }
        """)
        assert lines == [
            "function Point.getX 0",
            "push argument 0",
            "pop pointer 0",
            "push this 0",
            "return",
        ]

    def test_this_in_method(self):
        lines = vm("""
            class Node {
                method Node self() { return this; }
            }
        """)
        assert lines[-2:] == ["push argument 0", "return"]

    def test_class_scope_slots(self):
        """Interleaved static and field declarations number independently."""
        parser = JackParser(tokenize("class C { static int a; field int b; static int c; }"))
        parser.parse()
        assert (parser.scope.kind_of("a"), parser.scope.index_of("a")) == (StorageKind.STATIC, 0)
        assert (parser.scope.kind_of("b"), parser.scope.index_of("b")) == (StorageKind.FIELD, 0)
        assert (parser.scope.kind_of("c"), parser.scope.index_of("c")) == (StorageKind.STATIC, 1)

    def test_static_variables(self):
        lines = vm("""
            class Counter {
                static int count;
                function void inc() {
                    let count = count + 1;
                    return;
                }
            }
        """)
        assert lines == [
            "function Counter.inc 0",
            "push static 0",
            "push constant 1",
            "add",
            "pop static 0",
            "return",
        ]


# =============================================================================
# Statement Tests
# =============================================================================

class TestStatements:
    """Control flow and assignment."""

    def test_while(self):
        lines = vm("""
            class Main {
                function void main() {
                    var int x;
                    while (x) { let x = x; }
                    return;
                }
            }
        """)
        assert lines == [
            "function Main.main 1",
            "label L1",
            "push local 0",
            "not",
            "if-goto L2",
            "push local 0",
            "pop local 0",
            "goto L1",
            "label L2",
            "return",
        ]

    def test_if_else(self):
        assert main_body(
            "if (x) { let x = 1; } else { let x = 2; }", "var int x;"
        ) == [
            "push local 0",
            "not",
            "if-goto L1",
            "push constant 1",
            "pop local 0",
            "goto L2",
            "label L1",
            "push constant 2",
            "pop local 0",
            "label L2",
        ]

    def test_if_without_else(self):
        assert main_body("if (x) { let x = 0; }", "var int x;") == [
            "push local 0",
            "not",
            "if-goto L1",
            "push constant 0",
            "pop local 0",
            "goto L2",
            "label L1",
            "label L2",
        ]

    def test_nested_labels(self):
        """Outer constructs draw their labels before inner ones."""
        assert main_body(
            "while (x) { if (x) { let x = 0; } }", "var int x;"
        ) == [
            "label L1",
            "push local 0",
            "not",
            "if-goto L2",
            "push local 0",
            "not",
            "if-goto L3",
            "push constant 0",
            "pop local 0",
            "goto L4",
            "label L3",
            "label L4",
            "goto L1",
            "label L2",
        ]

    def test_labels_unique_across_subroutines(self):
        lines = vm("""
            class Main {
                function void a() { while (true) { } return; }
                function void b() { while (true) { } return; }
            }
        """)
        labels = [line for line in lines if line.startswith("label")]
        assert labels == ["label L1", "label L2", "label L3", "label L4"]

    def test_empty_blocks(self):
        """Empty loop bodies still get both labels and the jumps."""
        assert main_body("while (false) { }") == [
            "label L1",
            "push constant 0",
            "not",
            "if-goto L2",
            "goto L1",
            "label L2",
        ]

    def test_do_discards_result(self):
        assert main_body("do Output.println();") == [
            "call Output.println 0",
            "pop temp 0",
        ]

    def test_return_value(self):
        """The returned expression is pushed before return."""
        lines = vm("class Main { function int f() { return 5; } }")
        assert lines == ["function Main.f 0", "push constant 5", "return"]


# =============================================================================
# Expression Tests
# =============================================================================

class TestExpressions:
    """Expressions are evaluated strictly left to right."""

    DECLS = "var int a, b, c;"

    def test_no_precedence(self):
        assert main_body("let a = a + b * c;", self.DECLS) == [
            "push local 0",
            "push local 1",
            "add",
            "push local 2",
            "call Math.multiply 2",
            "pop local 0",
        ]

    def test_same_as_parenthesized_prefix(self):
        """a + b * c groups as (a + b) * c."""
        flat = main_body("let a = a + b * c;", self.DECLS)
        grouped = main_body("let a = (a + b) * c;", self.DECLS)
        assert flat == grouped

    def test_parentheses_group(self):
        """Parentheses override left-to-right evaluation."""
        assert main_body("let a = a - (b - c);", self.DECLS) == [
            "push local 0",
            "push local 1",
            "push local 2",
            "sub",
            "sub",
            "pop local 0",
        ]

    @pytest.mark.parametrize("op, command", [
        ("+", "add"), ("-", "sub"), ("&", "and"), ("|", "or"),
        ("<", "lt"), (">", "gt"), ("=", "eq"),
    ])
    def test_binary_operators(self, op, command):
        assert main_body(f"let a = b {op} c;", self.DECLS)[2] == command

    def test_division(self):
        assert main_body("let a = b / c;", self.DECLS)[2] == "call Math.divide 2"

    def test_unary_minus(self):
        assert main_body("let a = -b;", self.DECLS) == ["push local 1", "neg", "pop local 0"]

    def test_unary_not(self):
        assert main_body("let a = ~b;", self.DECLS) == ["push local 1", "not", "pop local 0"]

    def test_unary_binds_to_term(self):
        """Unary minus applies to b only, not to b + c."""
        assert main_body("let a = -b + c;", self.DECLS) == [
            "push local 1",
            "neg",
            "push local 2",
            "add",
            "pop local 0",
        ]

    def test_true(self):
        """true is -1: push 1, then negate."""
        assert main_body("let a = true;", self.DECLS) == ["push constant 1", "neg", "pop local 0"]

    def test_false_and_null(self):
        assert main_body("let a = false;", self.DECLS) == ["push constant 0", "pop local 0"]
        assert main_body("let a = null;", self.DECLS) == ["push constant 0", "pop local 0"]

    def test_string_constant(self):
        assert main_body('do Output.printString("Hi");') == [
            "push constant 2",
            "call String.new 1",
            "push constant 72",
            "call String.appendChar 2",
            "push constant 105",
            "call String.appendChar 2",
            "call Output.printString 1",
            "pop temp 0",
        ]

    def test_empty_string(self):
        assert main_body('do Output.printString("");') == [
            "push constant 0",
            "call String.new 1",
            "call Output.printString 1",
            "pop temp 0",
        ]

    def test_string_keeps_whitespace_runs(self):
        """Spaces inside a string literal are not collapsed."""
        assert main_body('do Output.printString("a   b");')[0] == "push constant 5"

    def test_string_keeps_comment_markers(self):
        """`//` inside a string literal does not start a comment."""
        lines = main_body('do Output.printString("a//b");')
        assert lines[0] == "push constant 4"
        assert lines.count("push constant 47") == 2


# =============================================================================
# Array Tests
# =============================================================================

class TestArrays:
    """Element access goes through pointer 1 and the that segment."""

    DECLS = "var Array a; var int i, x;"

    def test_array_read(self):
        assert main_body("let x = a[i];", self.DECLS) == [
            "push local 0",
            "push local 1",
            "add",
            "pop pointer 1",
            "push that 0",
            "pop local 2",
        ]

    def test_array_write(self):
        assert main_body("let a[i] = x;", self.DECLS) == [
            "push local 0",
            "push local 1",
            "add",
            "push local 2",
            "pop temp 0",
            "pop pointer 1",
            "push temp 0",
            "pop that 0",
        ]

    def test_array_copy(self):
        """The right-hand element read cannot clobber the target address."""
        assert main_body("let a[i] = a[x];", self.DECLS) == [
            "push local 0",
            "push local 1",
            "add",
            "push local 0",
            "push local 2",
            "add",
            "pop pointer 1",
            "push that 0",
            "pop temp 0",
            "pop pointer 1",
            "push temp 0",
            "pop that 0",
        ]


# =============================================================================
# Subroutine Call Tests
# =============================================================================

class TestCalls:
    """Calls on variables, class names and the current object."""

    def test_method_on_local(self):
        assert main_body("do p.move(1);", "var Point p;") == [
            "push local 0",
            "push constant 1",
            "call Point.move 2",
            "pop temp 0",
        ]

    def test_method_on_field(self):
        lines = vm("""
            class Game {
                field Ball ball;
                method void step() { do ball.move(); return; }
            }
        """)
        assert lines == [
            "function Game.step 0",
            "push argument 0",
            "pop pointer 0",
            "push this 0",
            "call Ball.move 1",
            "pop temp 0",
            "return",
        ]

    def test_class_function(self):
        assert main_body("let p = Point.new(1, 2);", "var Point p;") == [
            "push constant 1",
            "push constant 2",
            "call Point.new 2",
            "pop local 0",
        ]

    def test_nested_call_arguments(self):
        assert main_body("do Output.printInt(Math.max(1, 2));") == [
            "push constant 1",
            "push constant 2",
            "call Math.max 2",
            "call Output.printInt 1",
            "pop temp 0",
        ]

    def test_local_method_call(self):
        lines = vm("""
            class Game {
                method void run() { do step(); return; }
                method void step() { return; }
            }
        """)
        assert lines == [
            "function Game.run 0",
            "push argument 0",
            "pop pointer 0",
            "push pointer 0",
            "call Game.step 1",
            "pop temp 0",
            "return",
            "function Game.step 0",
            "push argument 0",
            "pop pointer 0",
            "return",
        ]

    def test_local_method_call_from_constructor(self):
        lines = vm("""
            class Game {
                constructor Game new() { do reset(); return this; }
                method void reset() { return; }
            }
        """)
        assert lines[:6] == [
            "function Game.new 0",
            "push constant 0",
            "call Memory.alloc 1",
            "pop pointer 0",
            "push pointer 0",
            "call Game.reset 1",
        ]

    def test_variable_shadows_class_name(self):
        """A qualifier that is a variable is always treated as an object."""
        assert main_body("do Screen.clear();", "var Board Screen;") == [
            "push local 0",
            "call Board.clear 1",
            "pop temp 0",
        ]

    def test_local_shadows_field(self):
        lines = vm("""
            class Box {
                field int x;
                method int f() { var int x; let x = 1; return x; }
            }
        """)
        assert "pop local 0" in lines
        assert "pop this 0" not in lines


# =============================================================================
# Error Tests
# =============================================================================

class TestErrors:
    """The first error aborts compilation of the class."""

    def test_missing_semicolon(self):
        with pytest.raises(UnexpectedTokenError) as exc_info:
            compile_jack("class Main { function void main() { var int x; let x = 1 } }")
        assert exc_info.value.expected == "';'"
        assert exc_info.value.found == "'}'"

    def test_error_location_and_source_line(self):
        source = "class Main {\n  function void main() {\n    let = 1;\n  }\n}"
        with pytest.raises(UnexpectedTokenError) as exc_info:
            compile_jack(source, "Main.jack")
        message = str(exc_info.value)
        assert message.startswith("Main.jack:3:9: error:")
        assert "    let = 1;" in message

    def test_missing_class_keyword(self):
        with pytest.raises(JackSyntaxError):
            compile_jack("Main { }")

    def test_truncated_source(self):
        with pytest.raises(UnexpectedTokenError) as exc_info:
            compile_jack("class Main { function void main() {")
        assert exc_info.value.found == "end of input"

    def test_tokens_after_class(self):
        """Only one class is allowed per unit."""
        with pytest.raises(UnexpectedTokenError):
            compile_jack("class A { } class B { }")

    def test_do_requires_call(self):
        with pytest.raises(UnexpectedTokenError):
            main_body("do x;", "var int x;")

    def test_bad_term(self):
        with pytest.raises(UnexpectedTokenError):
            main_body("let x = ;", "var int x;")

    def test_unterminated_string(self):
        with pytest.raises(UnterminatedStringError):
            compile_jack('class Main { function void main() { do Output.printString("hi); return; } }')

    def test_undeclared_variable(self):
        with pytest.raises(UndeclaredIdentifierError) as exc_info:
            main_body("let x = y;", "var int x;")
        assert exc_info.value.identifier == "y"

    def test_undeclared_assignment_target(self):
        with pytest.raises(UndeclaredIdentifierError):
            main_body("let y = 1;")

    def test_unknown_lowercase_qualifier(self):
        with pytest.raises(UndeclaredIdentifierError) as exc_info:
            main_body("do foo.bar();")
        assert exc_info.value.identifier == "foo"

    def test_unqualified_call_in_function(self):
        """A function has no this to call a method on."""
        with pytest.raises(JackSemanticError):
            vm("class Main { function void main() { do run(); return; } method void run() { return; } }")

    def test_unknown_local_method(self):
        """Unqualified calls must name a subroutine of this class."""
        with pytest.raises(UndeclaredIdentifierError) as exc_info:
            vm("class Game { method void run() { do missing(); return; } }")
        assert exc_info.value.identifier == "missing"

    def test_unqualified_call_to_function(self):
        """Unqualified calls must name a method, not a function."""
        with pytest.raises(JackSemanticError):
            vm("class Game { method void run() { do helper(); return; } function void helper() { return; } }")

    def test_field_in_function(self):
        with pytest.raises(JackSemanticError):
            vm("class Box { field int x; function int f() { return x; } }")

    def test_this_in_function(self):
        with pytest.raises(JackSemanticError):
            vm("class Box { function Box f() { return this; } }")

    def test_duplicate_local(self):
        with pytest.raises(DuplicateDeclarationError):
            main_body("", "var int x; var char x;")

    def test_parameter_redeclared_as_local(self):
        """Parameters and locals share one scope."""
        with pytest.raises(DuplicateDeclarationError):
            vm("class Main { function void f(int a) { var int a; return; } }")

    def test_duplicate_field(self):
        with pytest.raises(DuplicateDeclarationError) as exc_info:
            vm("class Main { field int x; static int x; }")
        assert exc_info.value.location is not None

    def test_duplicate_subroutine(self):
        """Two subroutines of the same name in one class."""
        with pytest.raises(DuplicateDeclarationError):
            vm("class Main { function void f() { return; } function void f() { return; } }")

    def test_integer_constant_out_of_range(self):
        """Constants above 32767 do not fit a 15-bit push constant."""
        with pytest.raises(JackSemanticError) as exc_info:
            compile_jack("class Main { function int main() { return 99999; } }", "Main.jack")
        assert "out of range" in str(exc_info.value)
        assert str(exc_info.value).startswith("Main.jack:1:43:")

    def test_integer_constant_just_out_of_range(self):
        """32768 is one past the largest constant."""
        with pytest.raises(JackSemanticError):
            main_body("let x = 32768;", "var int x;")

    def test_largest_integer_constant(self):
        """32767 is the largest accepted constant."""
        assert main_body("let x = 32767;", "var int x;") == [
            "push constant 32767",
            "pop local 0",
        ]

    def test_method_call_on_primitive_variable(self):
        """A variable of type int has no class to call into."""
        with pytest.raises(JackSemanticError) as exc_info:
            main_body("do x.foo();", "var int x;")
        assert "primitive type int" in str(exc_info.value)


# =============================================================================
# Parse-Tree Listing Tests
# =============================================================================

def parse_tree(source: str) -> list[str]:
    """Parse a class with a ParseTreeWriter and return the listing lines."""
    writer = ParseTreeWriter()
    JackParser(tokenize(source), parse_tree=writer).parse()
    return writer.getvalue().splitlines()


def contains_run(lines: list[str], run: list[str]) -> bool:
    """True if `run` appears as consecutive lines of `lines`."""
    return any(lines[i:i + len(run)] == run for i in range(len(lines)))


class TestParseTree:
    """XML listing of the productions recognized while compiling."""

    def test_minimal_class(self):
        assert parse_tree("class Main { function void main() { return; } }") == [
            "<class>",
            "  <keyword> class </keyword>",
            "  <identifier> Main </identifier>",
            "  <symbol> { </symbol>",
            "  <subroutineDec>",
            "    <keyword> function </keyword>",
            "    <keyword> void </keyword>",
            "    <identifier> main </identifier>",
            "    <symbol> ( </symbol>",
            "    <parameterList>",
            "    </parameterList>",
            "    <symbol> ) </symbol>",
            "    <subroutineBody>",
            "      <symbol> { </symbol>",
            "      <statements>",
            "        <returnStatement>",
            "          <keyword> return </keyword>",
            "          <symbol> ; </symbol>",
            "        </returnStatement>",
            "      </statements>",
            "      <symbol> } </symbol>",
            "    </subroutineBody>",
            "  </subroutineDec>",
            "  <symbol> } </symbol>",
            "</class>",
        ]

    def test_declarations(self):
        lines = [line.strip() for line in parse_tree(
            "class P { field int x, y; method void m(int a) { var char c; return; } }"
        )]
        assert contains_run(lines, [
            "<classVarDec>",
            "<keyword> field </keyword>",
            "<keyword> int </keyword>",
            "<identifier> x </identifier>",
            "<symbol> , </symbol>",
            "<identifier> y </identifier>",
            "<symbol> ; </symbol>",
            "</classVarDec>",
        ])
        assert contains_run(lines, [
            "<parameterList>",
            "<keyword> int </keyword>",
            "<identifier> a </identifier>",
            "</parameterList>",
        ])
        assert contains_run(lines, [
            "<varDec>",
            "<keyword> var </keyword>",
            "<keyword> char </keyword>",
            "<identifier> c </identifier>",
            "<symbol> ; </symbol>",
            "</varDec>",
        ])

    def test_nested_terms(self):
        """A unary operator's operand is a term inside the term."""
        lines = parse_tree(
            "class A { field int x; method void m() { let x = -x; return; } }"
        )
        start = lines.index("        <letStatement>")
        assert lines[start:start + 15] == [
            "        <letStatement>",
            "          <keyword> let </keyword>",
            "          <identifier> x </identifier>",
            "          <symbol> = </symbol>",
            "          <expression>",
            "            <term>",
            "              <symbol> - </symbol>",
            "              <term>",
            "                <identifier> x </identifier>",
            "              </term>",
            "            </term>",
            "          </expression>",
            "          <symbol> ; </symbol>",
            "        </letStatement>",
            "        <returnStatement>",
        ]

    def test_do_call_is_not_a_term(self):
        """The call of a do statement sits directly in doStatement."""
        lines = [line.strip() for line in parse_tree(
            "class Main { function void main() { do Output.println(); return; } }"
        )]
        assert contains_run(lines, [
            "<doStatement>",
            "<keyword> do </keyword>",
            "<identifier> Output </identifier>",
            "<symbol> . </symbol>",
            "<identifier> println </identifier>",
            "<symbol> ( </symbol>",
            "<expressionList>",
            "</expressionList>",
            "<symbol> ) </symbol>",
            "<symbol> ; </symbol>",
            "</doStatement>",
        ])

    def test_if_else_blocks(self):
        lines = [line.strip() for line in parse_tree(
            "class Main { function void main() { if (true) { } else { } return; } }"
        )]
        assert contains_run(lines, [
            "<ifStatement>",
            "<keyword> if </keyword>",
            "<symbol> ( </symbol>",
            "<expression>",
            "<term>",
            "<keyword> true </keyword>",
            "</term>",
            "</expression>",
            "<symbol> ) </symbol>",
            "<symbol> { </symbol>",
            "<statements>",
            "</statements>",
            "<symbol> } </symbol>",
            "<keyword> else </keyword>",
            "<symbol> { </symbol>",
            "<statements>",
            "</statements>",
            "<symbol> } </symbol>",
            "</ifStatement>",
        ])

    def test_escaped_operator(self):
        """Operators are escaped as XML entities."""
        lines = [line.strip() for line in parse_tree(
            "class Main { function void main() { var int a; let a = a < 1; return; } }"
        )]
        assert "<symbol> &lt; </symbol>" in lines

    def test_code_generation_unchanged(self):
        """Recording the parse tree does not change the VM code."""
        source = "class Main { function void main() { var int a; while (a < 3) { let a = a + 1; } return; } }"
        parser = JackParser(tokenize(source), parse_tree=ParseTreeWriter())
        assert parser.parse() == compile_jack(source)


# =============================================================================
# Strict Class Name Tests
# =============================================================================

class TestClassNames:
    """How unresolved call qualifiers are accepted."""

    SOURCE = "class Main { function void main() { do Foo.bar(); return; } }"

    def test_capitalized_qualifier_accepted(self):
        """Without strict mode an upper-case initial marks a class."""
        assert "call Foo.bar 0" in vm(self.SOURCE)

    def test_strict_rejects_unknown_class(self):
        parser = JackParser(tokenize(self.SOURCE), strict_class_names=True)
        with pytest.raises(UndeclaredIdentifierError):
            parser.parse()

    def test_strict_accepts_known_class(self):
        parser = JackParser(tokenize(self.SOURCE), known_classes=["Foo"], strict_class_names=True)
        assert "call Foo.bar 0" in parser.parse().splitlines()

    def test_strict_accepts_own_class(self):
        source = "class Main { function void main() { do Main.helper(); return; } function void helper() { return; } }"
        parser = JackParser(tokenize(source), strict_class_names=True)
        assert "call Main.helper 0" in parser.parse().splitlines()

    def test_strict_accepts_declared_types(self):
        """A declared variable type counts as a known class."""
        source = "class Main { field Foo f; function void main() { do Foo.bar(); return; } }"
        parser = JackParser(tokenize(source), strict_class_names=True)
        assert "call Foo.bar 0" in parser.parse().splitlines()
