"""
Two-Tier Scope Table
====================

Maps identifiers to declaration records for the class being compiled.

Scopes
------
| Storage kind | Scope      | Lifetime               | VM segment |
|--------------|------------|------------------------|------------|
| static       | class      | whole class            | static     |
| field        | class      | whole class            | this       |
| argument     | subroutine | one subroutine body    | argument   |
| local        | subroutine | one subroutine body    | local      |

Slot indices are assigned per storage kind in declaration order, starting
at 0, and are never reused while the scope lives. They are exactly the
operands of the `push`/`pop` instructions that address the variable.

Lookup checks the subroutine scope first, so a parameter or local shadows a
class variable of the same name.

Example
-------
>>> table = ScopeTable()
>>> table.define("a", "int", "static").slot_index
0
>>> table.define("b", "int", "field").slot_index
0
>>> table.define("c", "int", "static").slot_index
1
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from jack_sdk.compiler.errors import (
    DuplicateDeclarationError,
    UndeclaredIdentifierError,
)


class StorageKind(str, Enum):
    """Where a variable lives."""
    STATIC = "static"
    FIELD = "field"
    ARGUMENT = "argument"
    LOCAL = "local"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        lowered = value.lower()
        for member in cls:
            if member.value == lowered:
                return member
        # Short names used in declarations and older tooling
        return {"arg": cls.ARGUMENT, "var": cls.LOCAL}.get(lowered)

    @property
    def is_class_level(self) -> bool:
        return self in (StorageKind.STATIC, StorageKind.FIELD)


CLASS_KINDS = (StorageKind.STATIC, StorageKind.FIELD)
SUBROUTINE_KINDS = (StorageKind.ARGUMENT, StorageKind.LOCAL)


@dataclass(frozen=True)
class Declaration:
    """
    One declared variable.

    Attributes:
        name: Identifier as written in source
        declared_type: Primitive type name or class name
        storage_kind: StorageKind of the declaration
        slot_index: Zero-based slot within its storage kind
    """
    name: str
    declared_type: str
    storage_kind: StorageKind
    slot_index: int

    def __str__(self) -> str:
        return (
            f"name={self.name}, type={self.declared_type}, "
            f"kind={self.storage_kind.value}, index={self.slot_index}"
        )


KindLike = Union[StorageKind, str]


class ScopeTable:
    """
    Class-level and subroutine-level variable mappings.

    One table belongs to one compilation unit. `start_subroutine()` must be
    called before each subroutine's parameters are declared.
    """

    def __init__(self):
        self._class_scope: dict[str, Declaration] = {}
        self._subroutine_scope: dict[str, Declaration] = {}
        self._counters: dict[StorageKind, int] = {kind: 0 for kind in StorageKind}

    def reset(self) -> None:
        """Forget everything, ready for a new class."""
        self._class_scope.clear()
        self.start_subroutine()
        for kind in CLASS_KINDS:
            self._counters[kind] = 0

    def start_subroutine(self) -> None:
        """Discard the subroutine scope and reset argument/local counters."""
        self._subroutine_scope = {}
        for kind in SUBROUTINE_KINDS:
            self._counters[kind] = 0

    def define(
        self,
        name: str,
        declared_type: str,
        storage_kind: KindLike,
    ) -> Declaration:
        """
        Declare `name` at the next free slot of `storage_kind`.

        Raises:
            DuplicateDeclarationError: `name` already exists in the same scope
            ValueError: Unknown storage kind
        """
        kind = StorageKind(storage_kind)
        if kind.is_class_level:
            target, scope_name = self._class_scope, "class"
        else:
            target, scope_name = self._subroutine_scope, "subroutine"

        if name in target:
            raise DuplicateDeclarationError(name, scope_name)

        declaration = Declaration(name, declared_type, kind, self._counters[kind])
        self._counters[kind] += 1
        target[name] = declaration
        return declaration

    def lookup(self, name: str) -> Optional[Declaration]:
        """Resolve `name`, subroutine scope first; None when unresolved."""
        declaration = self._subroutine_scope.get(name)
        if declaration is None:
            declaration = self._class_scope.get(name)
        return declaration

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def contains(self, name: str) -> bool:
        return name in self

    def _require(self, name: str) -> Declaration:
        declaration = self.lookup(name)
        if declaration is None:
            raise UndeclaredIdentifierError(name)
        return declaration

    def kind_of(self, name: str) -> StorageKind:
        return self._require(name).storage_kind

    def type_of(self, name: str) -> str:
        return self._require(name).declared_type

    def index_of(self, name: str) -> int:
        return self._require(name).slot_index

    def var_count(self, storage_kind: KindLike) -> int:
        """Number of variables declared so far with `storage_kind`."""
        return self._counters[StorageKind(storage_kind)]

    @property
    def class_declarations(self) -> list[Declaration]:
        return list(self._class_scope.values())

    @property
    def subroutine_declarations(self) -> list[Declaration]:
        return list(self._subroutine_scope.values())

    def __str__(self) -> str:
        class_part = ",".join(str(d) for d in self._class_scope.values())
        sub_part = ",".join(str(d) for d in self._subroutine_scope.values())
        return f"{class_part} & {sub_part}"
