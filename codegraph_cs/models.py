"""Core data models shared by the walker, the aggregators and the serializer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional


class NodeKind(str, Enum):
    NAMESPACE = "Namespace"
    CLASS = "Class"
    INTERFACE = "Interface"
    ENUM = "Enum"
    ENUM_MEMBER = "EnumMember"
    METHOD = "Method"
    PROPERTY = "Property"
    FIELD = "Field"


class EdgeKind(str, Enum):
    CONTAINS = "CONTAINS"
    INHERITS_FROM = "INHERITS_FROM"
    IMPLEMENTS = "IMPLEMENTS"


@dataclass
class CodeNode:
    id: str
    kind: NodeKind
    name: str
    file_path: str
    start_line: int
    end_line: int
    comment: Optional[str] = None
    signature: Optional[str] = None
    code_snippet: Optional[str] = None


@dataclass
class CodeEdge:
    source_id: str
    target_id: str
    kind: EdgeKind


@dataclass
class GraphFragment:
    """Nodes keyed by id plus an append-only edge list.

    Insertion is first-writer-wins: a node whose id is already present is
    discarded. Edges are never deduplicated.
    """

    nodes: Dict[str, CodeNode] = field(default_factory=dict)
    edges: List[CodeEdge] = field(default_factory=list)

    def add_node(self, node: CodeNode) -> bool:
        """Insert *node* unless its id is taken. Returns True if inserted."""
        if node.id in self.nodes:
            return False
        self.nodes[node.id] = node
        return True

    def add_edge(self, edge: CodeEdge) -> None:
        self.edges.append(edge)

    def merge(self, other: "GraphFragment") -> None:
        for node in other.nodes.values():
            self.add_node(node)
        self.edges.extend(other.edges)

    @classmethod
    def merged(cls, fragments: Iterable["GraphFragment"]) -> "GraphFragment":
        result = cls()
        for fragment in fragments:
            result.merge(fragment)
        return result

    def __len__(self) -> int:
        return len(self.nodes)


@dataclass
class AnalysisResult:
    nodes: List[CodeNode]
    edges: List[CodeEdge]

    @classmethod
    def from_fragment(cls, fragment: GraphFragment) -> "AnalysisResult":
        return cls(nodes=list(fragment.nodes.values()), edges=list(fragment.edges))


@dataclass
class DocumentationResult:
    """Outcome of reading a declaration's documentation comment."""

    summary: Optional[str] = None
    warning: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.warning is not None


@dataclass
class UnitOutcome:
    """Outcome of walking one document: a fragment or a failure reason."""

    unit_name: str
    fragment: Optional[GraphFragment] = None
    error: Optional[str] = None
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.fragment is not None

    @classmethod
    def success(cls, unit_name: str, fragment: GraphFragment) -> "UnitOutcome":
        return cls(unit_name=unit_name, fragment=fragment)

    @classmethod
    def failure(cls, unit_name: str, error: str) -> "UnitOutcome":
        return cls(unit_name=unit_name, error=error)

    @classmethod
    def skip(cls, unit_name: str, reason: str) -> "UnitOutcome":
        return cls(unit_name=unit_name, error=reason, skipped=True)
