"""
VM Code Emitter
===============

Serializes intermediate-machine (VM) instructions, one line per call, in
exactly the order they are requested. The emitter does no buffering beyond
keeping the lines in order and never reorders or rewrites them.

Instruction Format
------------------
| Method            | Output                  |
|-------------------|-------------------------|
| write_push        | push SEGMENT INDEX      |
| write_pop         | pop SEGMENT INDEX       |
| write_arithmetic  | add, sub, neg, ...      |
| write_label       | label NAME              |
| write_goto        | goto NAME               |
| write_if          | if-goto NAME            |
| write_call        | call NAME NARGS         |
| write_function    | function NAME NLOCALS   |
| write_return      | return                  |

Usage
-----
>>> emitter = VMEmitter()
>>> emitter.write_function("Main.main", 0)
>>> emitter.write_return()
>>> print(emitter.getvalue())
function Main.main 0
return
"""

from enum import Enum
from typing import Optional, TextIO, Union

from jack_sdk.compiler.errors import CodeGenError
from jack_sdk.compiler.scope import StorageKind


class Segment(str, Enum):
    """VM memory segments."""
    CONSTANT = "constant"
    ARGUMENT = "argument"
    LOCAL = "local"
    STATIC = "static"
    THIS = "this"
    THAT = "that"
    POINTER = "pointer"
    TEMP = "temp"


# Storage kind -> segment addressing that kind's slots
KIND_TO_SEGMENT: dict[StorageKind, Segment] = {
    StorageKind.STATIC: Segment.STATIC,
    StorageKind.FIELD: Segment.THIS,
    StorageKind.ARGUMENT: Segment.ARGUMENT,
    StorageKind.LOCAL: Segment.LOCAL,
}

ARITHMETIC_COMMANDS = frozenset({
    "add", "sub", "neg", "eq", "gt", "lt", "and", "or", "not",
})

SegmentLike = Union[Segment, str]


def segment_for(kind: StorageKind) -> Segment:
    """Segment addressing variables of `kind`."""
    return KIND_TO_SEGMENT[StorageKind(kind)]


class VMEmitter:
    """
    Writes VM instructions.

    Lines are kept in `lines`; when `stream` is given every line is also
    written to it as soon as it is produced.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self._lines: list[str] = []
        self._stream = stream

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def getvalue(self) -> str:
        """All instructions joined by newlines (no trailing newline)."""
        return "\n".join(self._lines)

    def _emit(self, line: str) -> None:
        self._lines.append(line)
        if self._stream is not None:
            self._stream.write(line + "\n")

    # =========================================================================
    # Operand Validation
    # =========================================================================

    @staticmethod
    def _segment(segment: SegmentLike) -> Segment:
        try:
            return Segment(segment)
        except ValueError:
            raise CodeGenError(f"unknown VM segment '{segment}'") from None

    @staticmethod
    def _count(value: int, what: str) -> int:
        if not isinstance(value, int) or value < 0:
            raise CodeGenError(f"{what} must be a non-negative integer, got {value!r}")
        return value

    @staticmethod
    def _name(name: str, what: str) -> str:
        if not name or any(ch.isspace() for ch in name):
            raise CodeGenError(f"invalid {what} name {name!r}")
        return name

    # =========================================================================
    # Instructions
    # =========================================================================

    def write_push(self, segment: SegmentLike, index: int) -> None:
        seg = self._segment(segment)
        self._emit(f"push {seg.value} {self._count(index, 'segment index')}")

    def write_pop(self, segment: SegmentLike, index: int) -> None:
        seg = self._segment(segment)
        if seg is Segment.CONSTANT:
            raise CodeGenError("cannot pop into the constant segment")
        self._emit(f"pop {seg.value} {self._count(index, 'segment index')}")

    def write_arithmetic(self, command: str) -> None:
        if command not in ARITHMETIC_COMMANDS:
            raise CodeGenError(f"unknown arithmetic command '{command}'")
        self._emit(command)

    def write_label(self, label: str) -> None:
        self._emit(f"label {self._name(label, 'label')}")

    def write_goto(self, label: str) -> None:
        self._emit(f"goto {self._name(label, 'label')}")

    def write_if(self, label: str) -> None:
        self._emit(f"if-goto {self._name(label, 'label')}")

    def write_call(self, name: str, nargs: int) -> None:
        self._emit(f"call {self._name(name, 'subroutine')} {self._count(nargs, 'argument count')}")

    def write_function(self, name: str, nlocals: int) -> None:
        self._emit(f"function {self._name(name, 'function')} {self._count(nlocals, 'local count')}")

    def write_return(self) -> None:
        self._emit("return")
