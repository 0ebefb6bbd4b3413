"""XML documentation comment extraction."""

from __future__ import annotations

import re
from typing import Any, List
from xml.etree import ElementTree

from .models import DocumentationResult
from .syntax import SyntaxTree, leading_comments, line_span

_LINE_DOC_RE = re.compile(r"^\s*///(?!/) ?")


def _is_line_doc(text: str) -> bool:
    return text.startswith("///") and not text.startswith("////")


def _is_block_doc(text: str) -> bool:
    return text.startswith("/**") and not text.startswith("/**/")


def _first_doc_block(tree: SyntaxTree, node: Any) -> List[str]:
    """Lines of the first structured doc comment ahead of *node*, markers removed."""
    lines: List[str] = []
    for comment in leading_comments(node):
        text = tree.text(comment)
        if _is_line_doc(text):
            lines.append(_LINE_DOC_RE.sub("", text, count=1))
        elif lines:
            break
        elif _is_block_doc(text):
            body = text[3:-2] if text.endswith("*/") else text[3:]
            return [re.sub(r"^\s*\* ?", "", line) for line in body.splitlines()]
    return lines


def extract_documentation(tree: SyntaxTree, node: Any) -> DocumentationResult:
    """Trimmed ``<summary>`` text of the doc comment in front of *node*.

    Malformed markup is reported through ``DocumentationResult.warning``
    instead of raising.
    """
    lines = _first_doc_block(tree, node)
    if not lines:
        return DocumentationResult()
    content = "\n".join(lines)
    try:
        root = ElementTree.fromstring(f"<root>{content}</root>")
    except ElementTree.ParseError as exc:
        start_line, _ = line_span(node)
        return DocumentationResult(
            warning=f"Failed to parse XML comment for node near line {start_line} "
                    f"in {tree.file_path}: {exc}",
        )
    summary = root.find(".//summary")
    if summary is None:
        return DocumentationResult()
    text = "".join(summary.itertext())
    return DocumentationResult(summary="\n".join(line.strip() for line in text.strip().splitlines()))
