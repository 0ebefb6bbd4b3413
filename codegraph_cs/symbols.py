"""Symbols produced by the declaration pass and resolved type references."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .type_syntax import NamedTypeSyntax, TypeSyntax

SPECIAL_TYPE_NAMES: Dict[str, str] = {
    "bool": "System.Boolean",
    "byte": "System.Byte",
    "sbyte": "System.SByte",
    "char": "System.Char",
    "decimal": "System.Decimal",
    "double": "System.Double",
    "float": "System.Single",
    "int": "System.Int32",
    "uint": "System.UInt32",
    "nint": "System.IntPtr",
    "nuint": "System.UIntPtr",
    "long": "System.Int64",
    "ulong": "System.UInt64",
    "short": "System.Int16",
    "ushort": "System.UInt16",
    "object": "System.Object",
    "string": "System.String",
    "void": "System.Void",
    "dynamic": "dynamic",
}

_REFERENCE_KEYWORDS = {"object", "string", "dynamic", "void"}


class TypeKind(str, Enum):
    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"
    STRUCT = "struct"
    RECORD = "record"
    RECORD_STRUCT = "record struct"


class Symbol:
    name: str
    containing: Optional["Symbol"]


class NamespaceSymbol(Symbol):
    def __init__(self, name: str, containing: Optional["NamespaceSymbol"] = None) -> None:
        self.name = name
        self.containing = containing
        self.namespaces: Dict[str, NamespaceSymbol] = {}
        self.types: Dict[Tuple[str, int], NamedTypeSymbol] = {}

    @property
    def is_global(self) -> bool:
        return self.containing is None

    def get_or_add_namespace(self, name: str) -> "NamespaceSymbol":
        child = self.namespaces.get(name)
        if child is None:
            child = NamespaceSymbol(name, self)
            self.namespaces[name] = child
        return child

    def __repr__(self) -> str:
        return f"NamespaceSymbol({self.name!r})"


class NamedTypeSymbol(Symbol):
    def __init__(
        self,
        name: str,
        type_kind: TypeKind,
        containing: Union[NamespaceSymbol, "NamedTypeSymbol"],
        type_parameters: Tuple[str, ...] = (),
    ) -> None:
        self.name = name
        self.type_kind = type_kind
        self.containing = containing
        self.type_parameters = type_parameters
        self.types: Dict[Tuple[str, int], NamedTypeSymbol] = {}
        # Bases as written: (syntax, binding scope, position in its base list),
        # across all partial declarations. Resolved after the declaration pass.
        self.base_syntax: List[Tuple[TypeSyntax, object, int]] = []
        self.base_type: Optional[TypeRef] = None
        self.interfaces: List[TypeRef] = []

    @property
    def arity(self) -> int:
        return len(self.type_parameters)

    @property
    def is_interface(self) -> bool:
        return self.type_kind is TypeKind.INTERFACE

    @property
    def is_value_type(self) -> bool:
        return self.type_kind in (TypeKind.STRUCT, TypeKind.ENUM, TypeKind.RECORD_STRUCT)

    def __repr__(self) -> str:
        return f"NamedTypeSymbol({self.name!r}, {self.type_kind.value})"


@dataclass
class Parameter:
    name: str
    type: "TypeRef"
    modifiers: Tuple[str, ...] = ()


class MemberSymbol(Symbol):
    def __init__(
        self,
        name: str,
        containing: NamedTypeSymbol,
        explicit_interface: Optional["TypeRef"] = None,
    ) -> None:
        self.name = name
        self.containing = containing
        self.explicit_interface = explicit_interface

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class MethodSymbol(MemberSymbol):
    def __init__(
        self,
        name: str,
        containing: NamedTypeSymbol,
        type_parameters: Tuple[str, ...] = (),
        parameters: Optional[List[Parameter]] = None,
        explicit_interface: Optional["TypeRef"] = None,
    ) -> None:
        super().__init__(name, containing, explicit_interface)
        self.type_parameters = type_parameters
        self.parameters = parameters or []


class PropertySymbol(MemberSymbol):
    pass


class FieldSymbol(MemberSymbol):
    pass


class EnumMemberSymbol(MemberSymbol):
    pass


# ---------------------------------------------------------------------------
# Type references
# ---------------------------------------------------------------------------

class TypeRef:
    @property
    def is_root_object(self) -> bool:
        return False

    @property
    def is_interface(self) -> bool:
        return False

    @property
    def is_value_type(self) -> bool:
        return False


@dataclass(frozen=True)
class SpecialTypeRef(TypeRef):
    keyword: str

    @property
    def is_root_object(self) -> bool:
        return self.keyword == "object"

    @property
    def is_value_type(self) -> bool:
        return self.keyword not in _REFERENCE_KEYWORDS


@dataclass(frozen=True, eq=False)
class NamedTypeRef(TypeRef):
    symbol: NamedTypeSymbol
    type_args: Tuple[TypeRef, ...] = ()

    @property
    def is_interface(self) -> bool:
        return self.symbol.is_interface

    @property
    def is_value_type(self) -> bool:
        return self.symbol.is_value_type


@dataclass(frozen=True)
class TypeParameterRef(TypeRef):
    name: str


@dataclass(frozen=True)
class ArrayTypeRef(TypeRef):
    element: TypeRef
    rank: int = 1


@dataclass(frozen=True)
class NullableTypeRef(TypeRef):
    element: TypeRef


@dataclass(frozen=True)
class PointerTypeRef(TypeRef):
    element: TypeRef


@dataclass(frozen=True)
class TupleTypeRef(TypeRef):
    elements: Tuple[Tuple[TypeRef, Optional[str]], ...]

    @property
    def is_value_type(self) -> bool:
        return True


@dataclass(frozen=True)
class ErrorTypeRef(TypeRef):
    """A type name that did not resolve against the analyzed sources.

    ``names`` keeps the written segments; ``type_args`` holds the resolved
    arguments of every segment, flattened in order.
    """

    names: Tuple[str, ...]
    arities: Tuple[int, ...] = ()
    type_args: Tuple[TypeRef, ...] = field(default=())
    raw: Optional[str] = None

    @property
    def simple_name(self) -> str:
        return self.names[-1] if self.names else (self.raw or "")

    @property
    def is_root_object(self) -> bool:
        return self.names in (("Object",), ("System", "Object"))

    @property
    def is_interface(self) -> bool:
        name = self.simple_name
        return len(name) > 1 and name[0] == "I" and name[1].isupper()

    @classmethod
    def from_syntax(cls, syntax: NamedTypeSyntax, type_args: Tuple[TypeRef, ...]) -> "ErrorTypeRef":
        return cls(
            names=tuple(segment.name for segment in syntax.segments),
            arities=tuple(segment.arity for segment in syntax.segments),
            type_args=type_args,
        )
