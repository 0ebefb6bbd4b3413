"""JSON rendering of analysis results."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import AnalysisResult, CodeEdge, CodeNode


def node_to_dict(node: CodeNode) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": node.id,
        "type": node.kind.value,
        "name": node.name,
        "filePath": node.file_path,
        "startLine": node.start_line,
        "endLine": node.end_line,
    }
    if node.comment is not None:
        payload["comment"] = node.comment
    if node.signature is not None:
        payload["signature"] = node.signature
    if node.code_snippet is not None:
        payload["codeSnippet"] = node.code_snippet
    return payload


def edge_to_dict(edge: CodeEdge) -> Dict[str, Any]:
    return {"sourceId": edge.source_id, "targetId": edge.target_id, "type": edge.kind.value}


def to_payload(result: AnalysisResult) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "nodes": [node_to_dict(node) for node in result.nodes],
        "edges": [edge_to_dict(edge) for edge in result.edges],
    }


def dumps(result: AnalysisResult, indent: Optional[int] = 2) -> str:
    """Render *result* as JSON text. ``indent=None`` gives compact output."""
    return json.dumps(to_payload(result), indent=indent, ensure_ascii=False)


def write_json(result: AnalysisResult, output_file: Path, indent: Optional[int] = 2) -> None:
    output_file.write_text(dumps(result, indent) + "\n", encoding="utf-8")
