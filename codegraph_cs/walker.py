"""Unit walker: turns one compilation unit into graph nodes and edges.

The walk is depth-first and pre-order over the declarations exactly as they
are nested in the source. Each recognized declaration kind has one handler;
everything else is descended into so that declarations nested under
unrecognized syntax (structs, records, preprocessor blocks, error recovery
nodes) still attach to the innermost active container.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from .compilation import SemanticModel
from .display import AnalysisOptions
from .documentation import extract_documentation
from .models import CodeEdge, CodeNode, EdgeKind, GraphFragment, NodeKind
from .symbols import NamedTypeSymbol, Symbol
from .syntax import OPAQUE_NODE_TYPES, child_of_type, children_of_type, line_span

logger = logging.getLogger(__name__)


class CodeStructureWalker:
    """Collects the nodes and edges contributed by one syntax tree."""

    def __init__(
        self,
        semantic_model: SemanticModel,
        file_path: str,
        options: Optional[AnalysisOptions] = None,
    ) -> None:
        self._model = semantic_model
        self._tree = semantic_model.tree
        self._file_path = file_path
        self._options = options or AnalysisOptions()
        self._fragment = GraphFragment()
        self._container_ids: List[str] = []
        self._handlers: Dict[str, Callable[[Any], None]] = {
            "namespace_declaration": self._visit_namespace,
            "class_declaration": self._visit_class,
            "interface_declaration": self._visit_interface,
            "enum_declaration": self._visit_enum,
            "enum_member_declaration": self._visit_enum_member,
            "method_declaration": self._visit_method,
            "property_declaration": self._visit_property,
            "field_declaration": self._visit_field,
        }

    def walk(self, root: Any = None) -> GraphFragment:
        self.visit(root if root is not None else self._tree.root)
        return self._fragment

    def get_results(self) -> GraphFragment:
        return self._fragment

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def visit(self, node: Any) -> None:
        handler = self._handlers.get(node.type)
        if handler is not None:
            handler(node)
        elif node.type not in OPAQUE_NODE_TYPES:
            self._visit_children(node.children)

    def _visit_children(self, children: Sequence[Any]) -> None:
        for index, child in enumerate(children):
            if child.type == "file_scoped_namespace_declaration":
                # Everything after "namespace X;" belongs to X.
                self._visit_file_scoped_namespace(child, children[index + 1:])
                return
            self.visit(child)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _id(self, symbol: Symbol) -> str:
        return self._model.to_display_string(symbol, self._options.id_format)

    def _comment(self, node: Any) -> Optional[str]:
        result = extract_documentation(self._tree, node)
        if result.failed:
            logger.warning("Warning: %s", result.warning)
        return result.summary

    def _new_node(
        self,
        symbol: Symbol,
        kind: NodeKind,
        node: Any,
        documented: bool = True,
        signature: Optional[str] = None,
    ) -> CodeNode:
        start_line, end_line = line_span(node)
        return CodeNode(
            id=self._id(symbol),
            kind=kind,
            name=symbol.name,
            file_path=self._file_path,
            start_line=start_line,
            end_line=end_line,
            comment=self._comment(node) if documented else None,
            signature=signature,
            code_snippet=self._tree.text(node) if documented else None,
        )

    def _add_node(self, code_node: CodeNode) -> None:
        self._fragment.add_node(code_node)
        # Emitted even when the id was already present (partial declarations).
        if self._container_ids:
            self._add_edge(self._container_ids[-1], code_node.id, EdgeKind.CONTAINS)

    def _add_edge(self, source_id: str, target_id: str, kind: EdgeKind) -> None:
        self._fragment.add_edge(CodeEdge(source_id, target_id, kind))

    def _visit_container(self, container_id: str, children: Sequence[Any]) -> None:
        self._container_ids.append(container_id)
        try:
            self._visit_children(children)
        finally:
            self._container_ids.pop()

    def _body_children(self, node: Any) -> Sequence[Any]:
        body = node.child_by_field_name("body")
        return body.children if body is not None else node.children

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def _visit_namespace(self, node: Any) -> None:
        symbol = self._model.get_declared_symbol(node)
        if symbol is None:
            self._visit_children(self._body_children(node))
            return
        code_node = self._new_node(symbol, NodeKind.NAMESPACE, node, documented=False)
        self._add_node(code_node)
        self._visit_container(code_node.id, self._body_children(node))

    def _visit_file_scoped_namespace(self, node: Any, trailing: Sequence[Any]) -> None:
        members = list(node.children) + list(trailing)
        symbol = self._model.get_declared_symbol(node)
        if symbol is None:
            self._visit_children(members)
            return
        code_node = self._new_node(symbol, NodeKind.NAMESPACE, node, documented=False)
        if trailing:
            code_node.end_line = max(code_node.end_line, trailing[-1].end_point[0] + 1)
        self._add_node(code_node)
        self._visit_container(code_node.id, members)

    def _visit_type(self, node: Any, kind: NodeKind) -> None:
        symbol = self._model.get_declared_symbol(node)
        if not isinstance(symbol, NamedTypeSymbol):
            self._visit_children(self._body_children(node))
            return
        code_node = self._new_node(symbol, kind, node)
        self._add_node(code_node)

        if kind is NodeKind.CLASS:
            base_type = symbol.base_type
            if base_type is not None and not base_type.is_root_object:
                self._add_edge(code_node.id, self._type_id(base_type), EdgeKind.INHERITS_FROM)
            for interface in symbol.interfaces:
                self._add_edge(code_node.id, self._type_id(interface), EdgeKind.IMPLEMENTS)
        elif kind is NodeKind.INTERFACE:
            for interface in symbol.interfaces:
                self._add_edge(code_node.id, self._type_id(interface), EdgeKind.INHERITS_FROM)

        self._visit_container(code_node.id, self._body_children(node))

    def _type_id(self, type_ref) -> str:
        return self._model.to_display_string(type_ref, self._options.id_format)

    def _visit_class(self, node: Any) -> None:
        self._visit_type(node, NodeKind.CLASS)

    def _visit_interface(self, node: Any) -> None:
        self._visit_type(node, NodeKind.INTERFACE)

    def _visit_enum(self, node: Any) -> None:
        self._visit_type(node, NodeKind.ENUM)

    # ------------------------------------------------------------------
    # Members (leaves: their bodies hold no declarations)
    # ------------------------------------------------------------------

    def _visit_enum_member(self, node: Any) -> None:
        symbol = self._model.get_declared_symbol(node)
        if symbol is not None:
            self._add_node(self._new_node(symbol, NodeKind.ENUM_MEMBER, node))

    def _visit_method(self, node: Any) -> None:
        symbol = self._model.get_declared_symbol(node)
        if symbol is not None:
            signature = self._model.to_display_string(symbol, self._options.signature_format)
            self._add_node(self._new_node(symbol, NodeKind.METHOD, node, signature=signature))

    def _visit_property(self, node: Any) -> None:
        symbol = self._model.get_declared_symbol(node)
        if symbol is not None:
            self._add_node(self._new_node(symbol, NodeKind.PROPERTY, node))

    def _visit_field(self, node: Any) -> None:
        declaration = child_of_type(node, "variable_declaration")
        if declaration is None:
            return
        declarators = children_of_type(declaration, "variable_declarator")
        symbols = [(d, self._model.get_declared_symbol(d)) for d in declarators]
        if not any(symbol is not None for _, symbol in symbols):
            return
        comment = self._comment(node)
        snippet = self._tree.text(node)
        for declarator, symbol in symbols:
            if symbol is None:
                continue
            start_line, end_line = line_span(declarator)
            self._add_node(CodeNode(
                id=self._id(symbol),
                kind=NodeKind.FIELD,
                name=symbol.name,
                file_path=self._file_path,
                start_line=start_line,
                end_line=end_line,
                comment=comment,
                code_snippet=snippet,
            ))
