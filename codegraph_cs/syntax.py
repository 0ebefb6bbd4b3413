"""Tree-sitter front end: C# grammar loading and syntax tree helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple

logger = logging.getLogger(__name__)

GRAMMAR_MODULE = "tree_sitter_c_sharp"

_language: Any = None

# Nodes whose subtrees never hold namespace, type or member declarations.
OPAQUE_NODE_TYPES = frozenset({
    "global_statement",
    "using_directive",
    "extern_alias_directive",
    "attribute_list",
    "base_list",
    "type_parameter_list",
    "type_parameter_constraints_clause",
    "parameter_list",
    "constructor_declaration",
    "destructor_declaration",
    "operator_declaration",
    "conversion_operator_declaration",
    "indexer_declaration",
    "event_declaration",
    "event_field_declaration",
    "delegate_declaration",
    "comment",
})


def load_language() -> Optional[Any]:
    """Return the tree-sitter C# ``Language``, or None if unavailable.

    The Language object is immutable and shared; parsers are not, so every
    caller gets its own from :func:`new_parser`.
    """
    global _language
    if _language is not None:
        return _language
    try:
        import importlib

        from tree_sitter import Language  # type: ignore[import-untyped]

        mod = importlib.import_module(GRAMMAR_MODULE)
        _language = Language(mod.language())
        logger.debug("Loaded tree-sitter grammar %s", GRAMMAR_MODULE)
    except ImportError:
        logger.warning(
            "Grammar package '%s' not installed. Install with: pip install %s",
            GRAMMAR_MODULE, GRAMMAR_MODULE.replace("_", "-"),
        )
        return None
    except Exception as exc:
        logger.warning("Could not load tree-sitter grammar for C#: %s", exc)
        return None
    return _language


def new_parser() -> Optional[Any]:
    language = load_language()
    if language is None:
        return None
    from tree_sitter import Parser as TSParser  # type: ignore[import-untyped]

    return TSParser(language)


class SyntaxTree:
    """One parsed compilation unit."""

    def __init__(self, file_path: str, source: bytes, tree: Any) -> None:
        self.file_path = file_path
        self.source = source
        self.tree = tree

    @property
    def root(self) -> Any:
        return self.tree.root_node

    @classmethod
    def parse(cls, parser: Any, source: str, file_path: str) -> "SyntaxTree":
        source_bytes = source.encode("utf-8")
        return cls(file_path, source_bytes, parser.parse(source_bytes))

    def text(self, node: Any) -> str:
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def code_text(self, node: Any) -> str:
        """Text of *node* with nested comments blanked out."""
        pieces: List[bytes] = []
        cursor = node.start_byte
        for comment in _comments_within(node):
            pieces.append(self.source[cursor:comment.start_byte])
            pieces.append(b" ")
            cursor = comment.end_byte
        pieces.append(self.source[cursor:node.end_byte])
        return b"".join(pieces).decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"SyntaxTree({self.file_path!r})"


def _comments_within(node: Any) -> List[Any]:
    found: List[Any] = []
    stack = [node]
    while stack:
        current = stack.pop()
        for child in current.children:
            if child.type == "comment":
                found.append(child)
            else:
                stack.append(child)
    found.sort(key=lambda n: n.start_byte)
    return found


def line_span(node: Any) -> Tuple[int, int]:
    """1-indexed inclusive line range of *node*."""
    return node.start_point[0] + 1, node.end_point[0] + 1


def name_of(node: Any) -> Optional[Any]:
    name = node.child_by_field_name("name")
    if name is None or name.is_missing or name.end_byte == name.start_byte:
        return None
    return name


def child_of_type(node: Any, *types: str) -> Optional[Any]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def children_of_type(node: Any, *types: str) -> List[Any]:
    return [child for child in node.children if child.type in types]


def leading_comments(node: Any) -> List[Any]:
    """Comment nodes directly in front of *node*, in source order.

    Tree-sitter stores comments as sibling nodes, so the run of comment
    siblings preceding the declaration plays the role of leading trivia.
    Comments that tree-sitter attached inside the declaration ahead of its
    first token are included as well.
    """
    comments: List[Any] = []
    sibling = node.prev_sibling
    while sibling is not None and sibling.type == "comment":
        comments.append(sibling)
        sibling = sibling.prev_sibling
    comments.reverse()
    for child in node.children:
        if child.type != "comment":
            break
        comments.append(child)
    return comments


def read_source(path: Path) -> str:
    return path.read_text(encoding="utf-8-sig", errors="replace")
