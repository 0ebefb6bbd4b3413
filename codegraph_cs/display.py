"""Rendering of symbols to canonical ids and human-readable signatures."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List

from .symbols import (
    SPECIAL_TYPE_NAMES,
    ArrayTypeRef,
    EnumMemberSymbol,
    ErrorTypeRef,
    FieldSymbol,
    MemberSymbol,
    MethodSymbol,
    NamedTypeRef,
    NamedTypeSymbol,
    NamespaceSymbol,
    NullableTypeRef,
    Parameter,
    PointerTypeRef,
    PropertySymbol,
    SpecialTypeRef,
    Symbol,
    TupleTypeRef,
    TypeParameterRef,
    TypeRef,
)

_RENDERED_MODIFIERS = ("ref", "out", "in", "params")


@dataclass(frozen=True)
class SymbolDisplayFormat:
    """How a symbol is turned into text.

    Instances are immutable; build variants with :meth:`with_options`.
    """

    qualify_names: bool = True
    include_containing_type: bool = True
    include_type_parameters: bool = True
    include_parameters: bool = True
    include_parameter_names: bool = False
    include_parameter_modifiers: bool = True
    use_special_type_keywords: bool = True

    def with_options(self, **changes: bool) -> "SymbolDisplayFormat":
        return replace(self, **changes)


FULLY_QUALIFIED_FORMAT = SymbolDisplayFormat()

SIGNATURE_FORMAT = SymbolDisplayFormat(
    qualify_names=False,
    include_containing_type=False,
    include_parameter_names=True,
)


def to_display_string(symbol: Symbol, fmt: SymbolDisplayFormat) -> str:
    if isinstance(symbol, NamespaceSymbol):
        return _namespace(symbol, fmt)
    if isinstance(symbol, NamedTypeSymbol):
        return _type_symbol(symbol, fmt)
    if isinstance(symbol, MethodSymbol):
        return _method(symbol, fmt)
    if isinstance(symbol, (PropertySymbol, FieldSymbol, EnumMemberSymbol)):
        return _member_prefix(symbol, fmt) + symbol.name
    raise TypeError(f"cannot display {symbol!r}")


def type_to_display_string(type_ref: TypeRef, fmt: SymbolDisplayFormat) -> str:
    if isinstance(type_ref, SpecialTypeRef):
        if fmt.use_special_type_keywords:
            return type_ref.keyword
        return SPECIAL_TYPE_NAMES.get(type_ref.keyword, type_ref.keyword)
    if isinstance(type_ref, NamedTypeRef):
        return _named_type(type_ref, fmt)
    if isinstance(type_ref, TypeParameterRef):
        return type_ref.name
    if isinstance(type_ref, ArrayTypeRef):
        return type_to_display_string(type_ref.element, fmt) + "[" + "," * (type_ref.rank - 1) + "]"
    if isinstance(type_ref, NullableTypeRef):
        element = type_to_display_string(type_ref.element, fmt)
        # Nullable reference annotations are not part of the type identity.
        return element + "?" if type_ref.element.is_value_type else element
    if isinstance(type_ref, PointerTypeRef):
        return type_to_display_string(type_ref.element, fmt) + "*"
    if isinstance(type_ref, TupleTypeRef):
        parts = []
        for element, name in type_ref.elements:
            text = type_to_display_string(element, fmt)
            parts.append(f"{text} {name}" if name else text)
        return "(" + ", ".join(parts) + ")"
    if isinstance(type_ref, ErrorTypeRef):
        return _error_type(type_ref, fmt)
    raise TypeError(f"cannot display {type_ref!r}")


def _namespace(symbol: NamespaceSymbol, fmt: SymbolDisplayFormat) -> str:
    if symbol.is_global:
        return ""
    if not fmt.qualify_names:
        return symbol.name
    parts: List[str] = []
    current = symbol
    while current is not None and not current.is_global:
        parts.append(current.name)
        current = current.containing
    return ".".join(reversed(parts))


def _type_params(names, fmt: SymbolDisplayFormat) -> str:
    if not names or not fmt.include_type_parameters:
        return ""
    return "<" + ", ".join(names) + ">"


def _type_symbol(symbol: NamedTypeSymbol, fmt: SymbolDisplayFormat) -> str:
    text = symbol.name + _type_params(symbol.type_parameters, fmt)
    if not fmt.qualify_names:
        return text
    prefix = _container_prefix(symbol.containing, fmt)
    return prefix + text


def _container_prefix(container, fmt: SymbolDisplayFormat) -> str:
    if isinstance(container, NamedTypeSymbol):
        return _type_symbol(container, fmt) + "."
    if isinstance(container, NamespaceSymbol) and not container.is_global:
        return _namespace(container, fmt) + "."
    return ""


def _named_type(type_ref: NamedTypeRef, fmt: SymbolDisplayFormat) -> str:
    symbol = type_ref.symbol
    text = symbol.name
    if type_ref.type_args and fmt.include_type_parameters:
        text += "<" + ", ".join(type_to_display_string(a, fmt) for a in type_ref.type_args) + ">"
    elif not type_ref.type_args:
        text += _type_params(symbol.type_parameters, fmt)
    if not fmt.qualify_names:
        return text
    return _container_prefix(symbol.containing, fmt) + text


def _error_type(type_ref: ErrorTypeRef, fmt: SymbolDisplayFormat) -> str:
    if type_ref.raw is not None:
        return type_ref.raw
    args = list(type_ref.type_args)
    parts = []
    for name, arity in zip(type_ref.names, type_ref.arities or (0,) * len(type_ref.names)):
        segment_args, args = args[:arity], args[arity:]
        if segment_args and fmt.include_type_parameters:
            name += "<" + ", ".join(type_to_display_string(a, fmt) for a in segment_args) + ">"
        parts.append(name)
    if not fmt.qualify_names:
        return parts[-1] if parts else ""
    return ".".join(parts)


def _member_prefix(symbol: MemberSymbol, fmt: SymbolDisplayFormat) -> str:
    prefix = ""
    if fmt.include_containing_type:
        prefix = _type_symbol(symbol.containing, fmt) + "."
    if symbol.explicit_interface is not None:
        prefix += type_to_display_string(symbol.explicit_interface, fmt) + "."
    return prefix


def _parameter(parameter: Parameter, fmt: SymbolDisplayFormat) -> str:
    parts: List[str] = []
    if fmt.include_parameter_modifiers:
        parts.extend(m for m in parameter.modifiers if m in _RENDERED_MODIFIERS)
    parts.append(type_to_display_string(parameter.type, fmt))
    if fmt.include_parameter_names:
        parts.append(parameter.name)
    return " ".join(parts)


def _method(symbol: MethodSymbol, fmt: SymbolDisplayFormat) -> str:
    text = _member_prefix(symbol, fmt) + symbol.name + _type_params(symbol.type_parameters, fmt)
    if fmt.include_parameters:
        text += "(" + ", ".join(_parameter(p, fmt) for p in symbol.parameters) + ")"
    return text


@dataclass(frozen=True)
class AnalysisOptions:
    """Formats shared by every component of one run.

    Built once at startup and handed to the aggregators and walkers so that
    every unit renders ids the same way.
    """

    id_format: SymbolDisplayFormat = FULLY_QUALIFIED_FORMAT
    signature_format: SymbolDisplayFormat = SIGNATURE_FORMAT
