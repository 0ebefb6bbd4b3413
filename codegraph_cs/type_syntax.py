"""Parsing of C# type text into small syntax records.

The tree-sitter grammar exposes type syntax with node shapes that vary
between grammar releases, so a type reference is parsed from its source text
(comments blanked out). Parameter, type parameter and base lists are walked
node by node and only their individual types go through the text parser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

PREDEFINED_TYPES = {
    "bool", "byte", "sbyte", "char", "decimal", "double", "float", "int",
    "uint", "nint", "nuint", "long", "ulong", "short", "ushort", "object",
    "string", "void", "dynamic",
}

PARAMETER_MODIFIERS = ("this", "scoped", "ref", "out", "in", "params", "readonly")

_TOKEN_RE = re.compile(r"\s*(?:(@?[^\W\d]\w*)|(::)|(\S))", re.UNICODE)


class TypeSyntax:
    """Base class for parsed type references."""


@dataclass(frozen=True)
class PredefinedTypeSyntax(TypeSyntax):
    keyword: str


@dataclass(frozen=True)
class NameSegment:
    name: str
    type_args: Tuple[TypeSyntax, ...] = ()

    @property
    def arity(self) -> int:
        return len(self.type_args)


@dataclass(frozen=True)
class NamedTypeSyntax(TypeSyntax):
    segments: Tuple[NameSegment, ...]
    alias: Optional[str] = None  # "global" in global::A.B


@dataclass(frozen=True)
class ArrayTypeSyntax(TypeSyntax):
    element: TypeSyntax
    rank: int = 1


@dataclass(frozen=True)
class NullableTypeSyntax(TypeSyntax):
    element: TypeSyntax


@dataclass(frozen=True)
class PointerTypeSyntax(TypeSyntax):
    element: TypeSyntax


@dataclass(frozen=True)
class TupleTypeSyntax(TypeSyntax):
    elements: Tuple[Tuple[TypeSyntax, Optional[str]], ...]


@dataclass(frozen=True)
class RawTypeSyntax(TypeSyntax):
    """Type text the parser does not understand, kept verbatim."""

    text: str


@dataclass(frozen=True)
class ParameterSyntax:
    name: str
    type: Optional[TypeSyntax]
    modifiers: Tuple[str, ...] = ()


class TypeSyntaxError(ValueError):
    pass


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def _tokenize(text: str) -> List[str]:
    tokens: List[str] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            break
        tokens.append(match.group(1) or match.group(2) or match.group(3))
        pos = match.end()
    return tokens


class _TypeParser:
    def __init__(self, tokens: List[str]) -> None:
        self.tokens = tokens
        self.pos = 0

    def peek(self, offset: int = 0) -> Optional[str]:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def take(self, expected: Optional[str] = None) -> str:
        token = self.peek()
        if token is None or (expected is not None and token != expected):
            raise TypeSyntaxError(f"expected {expected or 'token'}, got {token!r}")
        self.pos += 1
        return token

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def parse_type(self) -> TypeSyntax:
        token = self.peek()
        if token == "(":
            result: TypeSyntax = self._parse_tuple()
        elif token is not None and _is_identifier(token):
            result = self._parse_name()
        else:
            raise TypeSyntaxError(f"unexpected token {token!r}")
        while True:
            token = self.peek()
            if token == "?":
                self.take()
                result = NullableTypeSyntax(result)
            elif token == "*":
                self.take()
                result = PointerTypeSyntax(result)
            elif token == "[":
                self.take()
                rank = 1
                while self.peek() == ",":
                    self.take()
                    rank += 1
                self.take("]")
                result = ArrayTypeSyntax(result, rank)
            else:
                return result

    def _parse_tuple(self) -> TupleTypeSyntax:
        self.take("(")
        elements: List[Tuple[TypeSyntax, Optional[str]]] = []
        while True:
            element = self.parse_type()
            name = None
            if self.peek() is not None and _is_identifier(self.peek()):
                name = _strip_verbatim(self.take())
            elements.append((element, name))
            if self.peek() == ",":
                self.take()
                continue
            self.take(")")
            return TupleTypeSyntax(tuple(elements))

    def _parse_name(self) -> TypeSyntax:
        alias = None
        if self.peek(1) == "::":
            alias = self.take()
            self.take("::")
        segments = [self._parse_segment()]
        while self.peek() == "." and self.peek(1) is not None and _is_identifier(self.peek(1)):
            self.take(".")
            segments.append(self._parse_segment())
        if alias is None and len(segments) == 1 and not segments[0].type_args:
            if segments[0].name in PREDEFINED_TYPES:
                return PredefinedTypeSyntax(segments[0].name)
        return NamedTypeSyntax(tuple(segments), alias)

    def _parse_segment(self) -> NameSegment:
        name = _strip_verbatim(self.take())
        args: List[TypeSyntax] = []
        if self.peek() == "<":
            self.take("<")
            if self.peek() in (",", ">"):
                # Unbound generic such as Dictionary<,>
                arity = 1
                while self.peek() == ",":
                    self.take()
                    arity += 1
                self.take(">")
                return NameSegment(name, tuple(RawTypeSyntax("") for _ in range(arity)))
            while True:
                args.append(self.parse_type())
                if self.peek() == ",":
                    self.take()
                    continue
                self.take(">")
                break
        return NameSegment(name, tuple(args))


def _is_identifier(token: str) -> bool:
    return bool(token) and (token[0] == "@" or token[0].isalpha() or token[0] == "_")


def _strip_verbatim(name: str) -> str:
    return name[1:] if name.startswith("@") else name


def parse_type(text: str) -> TypeSyntax:
    """Parse C# type text; unparseable text becomes a RawTypeSyntax."""
    tokens = _tokenize(text)
    if not tokens:
        return RawTypeSyntax("")
    parser = _TypeParser(tokens)
    try:
        result = parser.parse_type()
    except TypeSyntaxError:
        return RawTypeSyntax(normalize_whitespace(text))
    if not parser.at_end():
        return RawTypeSyntax(normalize_whitespace(text))
    return result


# ----------------------------------------------------------------------
# Lists read from syntax nodes
# ----------------------------------------------------------------------

def read_type_parameters(tree: Any, list_node: Optional[Any]) -> Tuple[str, ...]:
    """Names declared by a ``type_parameter_list`` node."""
    if list_node is None:
        return ()
    names: List[str] = []
    for child in list_node.named_children:
        if child.type != "type_parameter":
            continue
        name_node = child.child_by_field_name("name")
        if name_node is None:
            identifiers = [c for c in child.named_children if c.type == "identifier"]
            name_node = identifiers[-1] if identifiers else None
        if name_node is not None:
            names.append(_strip_verbatim(tree.text(name_node)))
    return tuple(names)


def read_base_types(tree: Any, base_list: Any) -> List[TypeSyntax]:
    """Types named by a ``base_list`` node, primary constructor arguments dropped."""
    bases: List[TypeSyntax] = []
    for child in base_list.named_children:
        if child.type in ("comment", "argument_list"):
            continue
        if child.type == "primary_constructor_base_type":
            child = child.child_by_field_name("type") or next(
                (c for c in child.named_children if c.type not in ("comment", "argument_list")),
                None,
            )
            if child is None:
                continue
        bases.append(parse_type(tree.code_text(child)))
    return bases


def read_parameters(tree: Any, list_node: Any) -> List[ParameterSyntax]:
    """Parameters of a ``parameter_list`` node.

    Grammar releases differ on whether ``params`` arrays get a node of their
    own, so the list is cut at its comma tokens and each run of child nodes
    is read as one parameter.
    """
    params: List[ParameterSyntax] = []
    for group in _comma_groups(list_node):
        if len(group) == 1 and group[0].type in ("parameter", "parameter_array"):
            group = list(group[0].children)
        param = _parameter_from_nodes(tree, group)
        if param is not None:
            params.append(param)
    return params


def _comma_groups(list_node: Any) -> List[List[Any]]:
    groups: List[List[Any]] = [[]]
    for child in list_node.children:
        if child.type in ("(", ")", "comment"):
            continue
        if child.type == ",":
            groups.append([])
        else:
            groups[-1].append(child)
    return [group for group in groups if group]


def _parameter_from_nodes(tree: Any, nodes: List[Any]) -> Optional[ParameterSyntax]:
    parts: List[Any] = []
    for node in nodes:
        if node.type in ("=", "equals_value_clause"):
            break
        if node.type in ("comment", "attribute_list"):
            continue
        parts.append(node)
    if not parts:
        return None
    name = _strip_verbatim(tree.text(parts.pop()))
    modifiers: List[str] = []
    while parts and tree.text(parts[0]) in PARAMETER_MODIFIERS:
        modifiers.append(tree.text(parts.pop(0)))
    type_text = " ".join(tree.code_text(part) for part in parts)
    return ParameterSyntax(
        name=name,
        type=parse_type(type_text) if type_text.strip() else None,
        modifiers=tuple(modifiers),
    )
