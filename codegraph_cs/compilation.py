"""Declaration binding for a set of C# syntax trees.

A :class:`Compilation` runs a declaration pass over every tree of a project
(plus the trees of referenced projects, used for lookup only), merges
namespaces and partial types into a single symbol table and resolves base
lists and member signatures. A :class:`SemanticModel` answers
``get_declared_symbol`` for the declarations of one tree.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .display import SymbolDisplayFormat, to_display_string, type_to_display_string
from .symbols import (
    ArrayTypeRef,
    EnumMemberSymbol,
    ErrorTypeRef,
    FieldSymbol,
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
    TypeKind,
    TypeParameterRef,
    TypeRef,
)
from .syntax import OPAQUE_NODE_TYPES, SyntaxTree, child_of_type, children_of_type, name_of
from .type_syntax import (
    ArrayTypeSyntax,
    NamedTypeSyntax,
    NullableTypeSyntax,
    PointerTypeSyntax,
    PredefinedTypeSyntax,
    RawTypeSyntax,
    TupleTypeSyntax,
    TypeSyntax,
    parse_type,
    read_base_types,
    read_parameters,
    read_type_parameters,
)

logger = logging.getLogger(__name__)

TYPE_DECLARATIONS: Dict[str, TypeKind] = {
    "class_declaration": TypeKind.CLASS,
    "interface_declaration": TypeKind.INTERFACE,
    "enum_declaration": TypeKind.ENUM,
    "struct_declaration": TypeKind.STRUCT,
    "record_declaration": TypeKind.RECORD,
    "record_struct_declaration": TypeKind.RECORD_STRUCT,
}

_USING_RE = re.compile(
    r"^(?P<global>global\s+)?using\s+(?P<static>static\s+)?"
    r"(?:(?P<alias>@?\w+)\s*=\s*)?(?P<target>[^;]+?)\s*;?\s*$",
    re.DOTALL,
)

NamespaceOrType = Union[NamespaceSymbol, TypeRef]


def node_key(node: Any) -> Tuple[str, int, int]:
    return node.type, node.start_byte, node.end_byte


@dataclass
class _Scope:
    """One level of the lookup chain used to bind type names."""

    parent: Optional["_Scope"] = None
    namespace: Optional[NamespaceSymbol] = None
    type: Optional[NamedTypeSymbol] = None
    type_parameters: Tuple[str, ...] = ()
    using_syntax: List[Tuple[Optional[str], TypeSyntax]] = field(default_factory=list)
    _imports: Optional[List[NamespaceOrType]] = None
    _aliases: Optional[Dict[str, NamespaceOrType]] = None


@dataclass
class _PendingMember:
    tree: SyntaxTree
    node: Any
    scope: _Scope
    containing: NamedTypeSymbol


class Compilation:
    """Symbol table and binder for one project's syntax trees."""

    def __init__(
        self,
        name: str,
        trees: Sequence[SyntaxTree],
        reference_trees: Sequence[SyntaxTree] = (),
    ) -> None:
        self.name = name
        self.trees = list(trees)
        self.global_namespace = NamespaceSymbol("")
        self._declared: Dict[int, Dict[Tuple[str, int, int], Symbol]] = {}
        self._pending_members: List[_PendingMember] = []
        self._types: List[NamedTypeSymbol] = []
        self._global_usings: List[Tuple[Optional[str], TypeSyntax]] = []

        for tree in self.trees:
            self._declare_tree(tree, own=True)
        for tree in reference_trees:
            self._declare_tree(tree, own=False)
        self._bind_bases()
        self._bind_members()

    def get_semantic_model(self, tree: SyntaxTree) -> "SemanticModel":
        if id(tree) not in self._declared:
            raise KeyError(f"{tree.file_path} is not part of compilation {self.name}")
        return SemanticModel(self, tree)

    # ------------------------------------------------------------------
    # Declaration pass
    # ------------------------------------------------------------------

    def _declare_tree(self, tree: SyntaxTree, own: bool) -> None:
        declared: Dict[Tuple[str, int, int], Symbol] = {}
        if own:
            self._declared[id(tree)] = declared
        scope = _Scope(namespace=self.global_namespace)
        self._declare_children(tree, tree.root, self.global_namespace, scope, declared, own)

    def _declare_children(
        self,
        tree: SyntaxTree,
        node: Any,
        container: Union[NamespaceSymbol, NamedTypeSymbol],
        scope: _Scope,
        declared: Dict,
        own: bool,
    ) -> None:
        children = node.children
        for index, child in enumerate(children):
            if child.type == "using_directive" and isinstance(container, NamespaceSymbol):
                self._declare_using(tree, child, scope)
            elif child.type == "file_scoped_namespace_declaration" and isinstance(container, NamespaceSymbol):
                inner = self._declare_namespace(tree, child, container, scope, declared)
                if inner is None:
                    continue
                namespace, inner_scope = inner
                self._declare_children(tree, child, namespace, inner_scope, declared, own)
                trailing = _TrailingNodes(children[index + 1:])
                self._declare_children(tree, trailing, namespace, inner_scope, declared, own)
                return
            else:
                self._declare_node(tree, child, container, scope, declared, own)

    def _declare_node(self, tree, node, container, scope, declared, own) -> None:
        if node.type == "namespace_declaration" and isinstance(container, NamespaceSymbol):
            inner = self._declare_namespace(tree, node, container, scope, declared)
            body = node.child_by_field_name("body")
            if inner is not None and body is not None:
                self._declare_children(tree, body, inner[0], inner[1], declared, own)
            elif body is not None:
                self._declare_children(tree, body, container, scope, declared, own)
        elif node.type in TYPE_DECLARATIONS:
            self._declare_type(tree, node, container, scope, declared, own)
        elif node.type in ("method_declaration", "property_declaration", "field_declaration",
                           "enum_member_declaration"):
            if own and isinstance(container, NamedTypeSymbol):
                self._pending_members.append(_PendingMember(tree, node, scope, container))
        elif node.type not in OPAQUE_NODE_TYPES and node.child_count:
            self._declare_children(tree, node, container, scope, declared, own)

    def _declare_using(self, tree: SyntaxTree, node: Any, scope: _Scope) -> None:
        match = _USING_RE.match(tree.code_text(node).strip())
        if match is None or match.group("static"):
            return
        alias = match.group("alias")
        entry = (alias.lstrip("@") if alias else None, parse_type(match.group("target")))
        if match.group("global"):
            self._global_usings.append(entry)
        else:
            scope.using_syntax.append(entry)

    def _declare_namespace(self, tree, node, container, scope, declared):
        name_node = name_of(node)
        if name_node is None:
            return None
        syntax = parse_type(tree.code_text(name_node))
        if not isinstance(syntax, NamedTypeSyntax) or any(s.type_args for s in syntax.segments):
            return None
        namespace = container
        for segment in syntax.segments:
            namespace = namespace.get_or_add_namespace(segment.name)
            scope = _Scope(parent=scope, namespace=namespace)
        declared[node_key(node)] = namespace
        return namespace, scope

    def _declare_type(self, tree, node, container, scope, declared, own) -> None:
        name_node = name_of(node)
        body = node.child_by_field_name("body")
        if name_node is None:
            if body is not None:
                self._declare_children(tree, body, container, scope, declared, own)
            return
        type_kind = TYPE_DECLARATIONS[node.type]
        if type_kind is TypeKind.RECORD and any(c.type == "struct" for c in node.children):
            type_kind = TypeKind.RECORD_STRUCT
        type_params_node = child_of_type(node, "type_parameter_list")
        type_params = read_type_parameters(tree, type_params_node)
        name = tree.text(name_node).lstrip("@")

        symbol = container.types.get((name, len(type_params)))
        if symbol is None:
            symbol = NamedTypeSymbol(name, type_kind, container, type_params)
            container.types[(name, len(type_params))] = symbol
            self._types.append(symbol)

        type_scope = _Scope(parent=scope, type=symbol, type_parameters=type_params)
        base_list = child_of_type(node, "base_list")
        if base_list is not None:
            for position, base in enumerate(read_base_types(tree, base_list)):
                symbol.base_syntax.append((base, type_scope, position))
        declared[node_key(node)] = symbol
        if body is not None:
            self._declare_children(tree, body, symbol, type_scope, declared, own)

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def _bind_bases(self) -> None:
        for symbol in self._types:
            if symbol.type_kind is TypeKind.ENUM:
                continue
            seen = set()
            for syntax, scope, position in symbol.base_syntax:
                resolved = self.bind_type(syntax, scope)
                key = _type_identity(resolved)
                if key in seen:
                    continue
                seen.add(key)
                if (
                    symbol.type_kind in (TypeKind.CLASS, TypeKind.RECORD)
                    and position == 0
                    and symbol.base_type is None
                    and not resolved.is_interface
                ):
                    symbol.base_type = resolved
                else:
                    symbol.interfaces.append(resolved)
            if symbol.type_kind in (TypeKind.CLASS, TypeKind.RECORD) and symbol.base_type is None:
                symbol.base_type = SpecialTypeRef("object")

    def _bind_members(self) -> None:
        for pending in self._pending_members:
            declared = self._declared[id(pending.tree)]
            for key, symbol in self._bind_member(pending):
                declared[key] = symbol

    def _bind_member(self, pending: _PendingMember) -> Iterable[Tuple[Tuple[str, int, int], Symbol]]:
        tree, node, scope, containing = pending.tree, pending.node, pending.scope, pending.containing
        if node.type == "field_declaration":
            declaration = child_of_type(node, "variable_declaration")
            if declaration is None:
                return []
            result = []
            for declarator in children_of_type(declaration, "variable_declarator"):
                name_node = name_of(declarator) or child_of_type(declarator, "identifier")
                if name_node is not None:
                    name = tree.text(name_node).lstrip("@")
                    result.append((node_key(declarator), FieldSymbol(name, containing)))
            return result

        name_node = name_of(node)
        if name_node is None:
            return []
        name = tree.text(name_node).lstrip("@")
        if node.type == "enum_member_declaration":
            return [(node_key(node), EnumMemberSymbol(name, containing))]

        explicit = None
        specifier = child_of_type(node, "explicit_interface_specifier")
        if specifier is not None:
            explicit = self.bind_type(parse_type(tree.code_text(specifier).rstrip(". \t\n")), scope)
        if node.type == "property_declaration":
            return [(node_key(node), PropertySymbol(name, containing, explicit))]

        type_params_node = child_of_type(node, "type_parameter_list")
        type_params = read_type_parameters(tree, type_params_node)
        method_scope = _Scope(parent=scope, type_parameters=type_params)
        parameters = []
        params_node = node.child_by_field_name("parameters") or child_of_type(node, "parameter_list")
        if params_node is not None:
            for param in read_parameters(tree, params_node):
                param_type = (
                    self.bind_type(param.type, method_scope)
                    if param.type is not None
                    else ErrorTypeRef(names=(), raw="?")
                )
                parameters.append(Parameter(param.name, param_type, param.modifiers))
        return [(node_key(node), MethodSymbol(name, containing, type_params, parameters, explicit))]

    def bind_type(self, syntax: TypeSyntax, scope: _Scope) -> TypeRef:
        if isinstance(syntax, PredefinedTypeSyntax):
            return SpecialTypeRef(syntax.keyword)
        if isinstance(syntax, ArrayTypeSyntax):
            return ArrayTypeRef(self.bind_type(syntax.element, scope), syntax.rank)
        if isinstance(syntax, NullableTypeSyntax):
            return NullableTypeRef(self.bind_type(syntax.element, scope))
        if isinstance(syntax, PointerTypeSyntax):
            return PointerTypeRef(self.bind_type(syntax.element, scope))
        if isinstance(syntax, TupleTypeSyntax):
            return TupleTypeRef(tuple((self.bind_type(t, scope), n) for t, n in syntax.elements))
        if isinstance(syntax, NamedTypeSyntax):
            return self._bind_named(syntax, scope)
        if isinstance(syntax, RawTypeSyntax):
            return ErrorTypeRef(names=(), raw=syntax.text)
        raise TypeError(f"unexpected type syntax {syntax!r}")

    def _bind_named(self, syntax: NamedTypeSyntax, scope: _Scope) -> TypeRef:
        args_per_segment = [
            tuple(self.bind_type(arg, scope) for arg in segment.type_args)
            for segment in syntax.segments
        ]
        first = syntax.segments[0]
        if syntax.alias == "global":
            current: Optional[NamespaceOrType] = self._member(
                self.global_namespace, first.name, first.arity, args_per_segment[0]
            )
        elif syntax.alias is not None:
            alias_target = self._lookup_alias(syntax.alias, scope)
            current = None
            if isinstance(alias_target, NamespaceSymbol):
                current = self._member(alias_target, first.name, first.arity, args_per_segment[0])
        else:
            current = self._lookup_simple(first.name, first.arity, args_per_segment[0], scope)

        for segment, args in zip(syntax.segments[1:], args_per_segment[1:]):
            if current is None:
                break
            current = self._member(current, segment.name, segment.arity, args)

        if current is None or isinstance(current, NamespaceSymbol):
            flat_args = tuple(arg for args in args_per_segment for arg in args)
            return ErrorTypeRef.from_syntax(syntax, flat_args)
        return current

    def _member(self, container: NamespaceOrType, name: str, arity: int, args) -> Optional[NamespaceOrType]:
        if isinstance(container, NamespaceSymbol):
            symbol = container.types.get((name, arity))
            if symbol is not None:
                return NamedTypeRef(symbol, args)
            if arity == 0:
                return container.namespaces.get(name)
            return None
        if isinstance(container, NamedTypeRef):
            nested = container.symbol.types.get((name, arity))
            if nested is not None:
                return NamedTypeRef(nested, args)
        return None

    def _lookup_simple(self, name: str, arity: int, args, scope: Optional[_Scope]) -> Optional[NamespaceOrType]:
        while scope is not None:
            if arity == 0 and name in scope.type_parameters:
                return TypeParameterRef(name)
            if scope.type is not None:
                nested = scope.type.types.get((name, arity))
                if nested is not None:
                    return NamedTypeRef(nested, args)
            if scope.namespace is not None:
                found = self._member(scope.namespace, name, arity, args)
                if found is not None:
                    return found
                if arity == 0:
                    aliased = self._aliases(scope).get(name)
                    if aliased is not None:
                        return aliased
                for imported in self._imports(scope):
                    if isinstance(imported, NamespaceSymbol):
                        symbol = imported.types.get((name, arity))
                        if symbol is not None:
                            return NamedTypeRef(symbol, args)
            scope = scope.parent
        return None

    def _lookup_alias(self, alias: str, scope: Optional[_Scope]) -> Optional[NamespaceOrType]:
        while scope is not None:
            if scope.namespace is not None:
                found = self._aliases(scope).get(alias)
                if found is not None:
                    return found
            scope = scope.parent
        return None

    def _using_entries(self, scope: _Scope) -> List[Tuple[Optional[str], TypeSyntax]]:
        if scope.parent is None:
            return self._global_usings + scope.using_syntax
        return scope.using_syntax

    def _resolve_using_target(self, syntax: TypeSyntax) -> Optional[NamespaceOrType]:
        # Using targets bind from the global namespace, without other usings.
        root_scope = _Scope(namespace=self.global_namespace, _imports=[], _aliases={})
        if isinstance(syntax, NamedTypeSyntax):
            current: Optional[NamespaceOrType] = self.global_namespace
            flat_args: List[TypeRef] = []
            for segment in syntax.segments:
                args = tuple(self.bind_type(a, root_scope) for a in segment.type_args)
                flat_args.extend(args)
                if current is not None:
                    current = self._member(current, segment.name, segment.arity, args)
            if current is None:
                return ErrorTypeRef.from_syntax(syntax, tuple(flat_args))
            return current
        return self.bind_type(syntax, root_scope)

    def _aliases(self, scope: _Scope) -> Dict[str, NamespaceOrType]:
        if scope._aliases is None:
            scope._aliases = {}
            for alias, target in self._using_entries(scope):
                if alias is None:
                    continue
                resolved = self._resolve_using_target(target)
                if resolved is not None:
                    scope._aliases[alias] = resolved
        return scope._aliases

    def _imports(self, scope: _Scope) -> List[NamespaceOrType]:
        if scope._imports is None:
            scope._imports = []
            for alias, target in self._using_entries(scope):
                if alias is not None:
                    continue
                resolved = self._resolve_using_target(target)
                if isinstance(resolved, NamespaceSymbol):
                    scope._imports.append(resolved)
        return scope._imports


class _TrailingNodes:
    """Siblings that follow a file-scoped namespace, treated as its body."""

    type = "file_scoped_namespace_body"

    def __init__(self, children: List[Any]) -> None:
        self.children = children


def _type_identity(type_ref: TypeRef) -> Any:
    if isinstance(type_ref, NamedTypeRef):
        return id(type_ref.symbol), tuple(_type_identity(a) for a in type_ref.type_args)
    return type_ref


class SemanticModel:
    """Declared-symbol lookup and name rendering for one syntax tree."""

    def __init__(self, compilation: Compilation, tree: SyntaxTree) -> None:
        self.compilation = compilation
        self.tree = tree
        self._declared = compilation._declared[id(tree)]

    def get_declared_symbol(self, node: Any) -> Optional[Symbol]:
        return self._declared.get(node_key(node))

    def to_display_string(self, symbol: Union[Symbol, TypeRef], fmt: SymbolDisplayFormat) -> str:
        if isinstance(symbol, TypeRef):
            return type_to_display_string(symbol, fmt)
        return to_display_string(symbol, fmt)
