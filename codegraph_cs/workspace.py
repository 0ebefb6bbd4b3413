"""Solution and project loading.

Reads ``.sln``, ``.slnx`` and ``.csproj`` descriptors into a
:class:`Solution` of :class:`Project` objects. Projects build their
:class:`~codegraph_cs.compilation.Compilation` lazily and off the event
loop, so several projects can be compiled concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set
from xml.etree import ElementTree

from .compilation import Compilation, SemanticModel
from .config import GENERATED_FILE_PATTERNS, SKIP_DIRS, SOURCE_EXTENSIONS
from .syntax import SyntaxTree, new_parser, read_source

logger = logging.getLogger(__name__)

SUPPORTED_DESCRIPTORS = (".sln", ".slnx", ".csproj")

_SLN_HEADER = "Microsoft Visual Studio Solution File"
_SLN_PROJECT_RE = re.compile(
    r'^Project\("\{(?P<type>[^}]*)\}"\)\s*=\s*"(?P<name>[^"]*)"\s*,\s*"(?P<path>[^"]*)"',
    re.MULTILINE,
)
_AUTO_GENERATED_RE = re.compile(r"<auto-?generated", re.IGNORECASE)


class WorkspaceLoadError(Exception):
    """A solution or project descriptor could not be read or understood."""


class UnsupportedDescriptorError(WorkspaceLoadError):
    """The input path is not a .sln, .slnx or .csproj file."""


class SourceCodeKind(str, Enum):
    REGULAR = "regular"
    SCRIPT = "script"


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _msbuild_path(base: Path, value: str) -> Path:
    return (base / value.strip().replace("\\", "/")).resolve()


class Document:
    def __init__(self, project: "Project", file_path: Path) -> None:
        self.project = project
        self.file_path = file_path
        self._is_generated: Optional[bool] = None

    @property
    def name(self) -> str:
        return self.file_path.name

    @property
    def source_kind(self) -> SourceCodeKind:
        return SourceCodeKind.SCRIPT if self.file_path.suffix.lower() == ".csx" else SourceCodeKind.REGULAR

    @property
    def supports_syntax_tree(self) -> bool:
        return self.file_path.suffix.lower() in SOURCE_EXTENSIONS

    @property
    def supports_semantic_model(self) -> bool:
        return self.supports_syntax_tree

    @property
    def is_generated(self) -> bool:
        if self._is_generated is None:
            self._is_generated = _looks_generated(self.file_path)
        return self._is_generated

    async def get_syntax_tree(self) -> Optional[SyntaxTree]:
        compilation = await self.project.get_compilation()
        if compilation is None:
            return None
        return self.project.syntax_tree_for(self)

    async def get_semantic_model(self) -> Optional[SemanticModel]:
        compilation = await self.project.get_compilation()
        tree = self.project.syntax_tree_for(self)
        if compilation is None or tree is None:
            return None
        return compilation.get_semantic_model(tree)

    def __repr__(self) -> str:
        return f"Document({str(self.file_path)!r})"


def _looks_generated(path: Path) -> bool:
    name = path.name.lower()
    if any(name.endswith(pattern) for pattern in GENERATED_FILE_PATTERNS):
        return True
    if name.startswith("temporarygeneratedfile_"):
        return True
    try:
        with open(path, "r", encoding="utf-8-sig", errors="replace") as f:
            head = f.read(1024)
    except OSError:
        return False
    for line in head.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if not (stripped.startswith("//") or stripped.startswith("/*") or stripped.startswith("*")):
            break
        if _AUTO_GENERATED_RE.search(stripped):
            return True
    return False


class Project:
    """One C# project and its documents."""

    def __init__(
        self,
        name: str,
        file_path: Path,
        solution: "Solution",
        load_error: Optional[str] = None,
    ) -> None:
        self.name = name
        self.file_path = file_path
        self.solution = solution
        self.load_error = load_error
        self.documents: List[Document] = []
        self.project_references: List[Path] = []
        self._compilation: Optional[Compilation] = None
        self._compilation_built = False
        self._trees: Dict[Path, SyntaxTree] = {}
        self._lock = asyncio.Lock()

    def add_document(self, file_path: Path) -> Document:
        document = Document(self, file_path)
        self.documents.append(document)
        return document

    def syntax_tree_for(self, document: Document) -> Optional[SyntaxTree]:
        return self._trees.get(document.file_path)

    async def get_compilation(self) -> Optional[Compilation]:
        async with self._lock:
            if not self._compilation_built:
                loop = asyncio.get_running_loop()
                self._compilation = await loop.run_in_executor(None, self._build_compilation)
                self._compilation_built = True
        return self._compilation

    def _build_compilation(self) -> Optional[Compilation]:
        if self.load_error is not None:
            logger.warning("Project %s failed to load: %s", self.name, self.load_error)
            return None
        parser = new_parser()
        if parser is None:
            return None

        trees: List[SyntaxTree] = []
        for document in self.documents:
            if document.source_kind is not SourceCodeKind.REGULAR or not document.supports_syntax_tree:
                continue
            tree = _parse(parser, document.file_path)
            if tree is not None:
                self._trees[document.file_path] = tree
                trees.append(tree)

        reference_trees: List[SyntaxTree] = []
        for referenced in self.solution.referenced_projects(self):
            for document in referenced.documents:
                if document.source_kind is SourceCodeKind.REGULAR and document.supports_syntax_tree:
                    tree = _parse(parser, document.file_path)
                    if tree is not None:
                        reference_trees.append(tree)

        logger.debug(
            "Compiling %s: %d trees, %d referenced trees", self.name, len(trees), len(reference_trees),
        )
        return Compilation(self.name, trees, reference_trees)

    def __repr__(self) -> str:
        return f"Project({self.name!r})"


def _parse(parser, path: Path) -> Optional[SyntaxTree]:
    try:
        source = read_source(path)
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None
    return SyntaxTree.parse(parser, source, str(path))


class Solution:
    def __init__(self, file_path: Path) -> None:
        self.file_path = file_path
        self.projects: List[Project] = []

    def project_by_path(self, path: Path) -> Optional[Project]:
        for project in self.projects:
            if project.file_path == path:
                return project
        return None

    def referenced_projects(self, project: Project) -> List[Project]:
        """Transitive project references of *project*, nearest first."""
        result: List[Project] = []
        seen: Set[Path] = {project.file_path}
        pending = list(project.project_references)
        while pending:
            path = pending.pop(0)
            if path in seen:
                continue
            seen.add(path)
            referenced = self.project_by_path(path)
            if referenced is None:
                continue
            result.append(referenced)
            pending.extend(referenced.project_references)
        return result


# ===================================================================
# Loading
# ===================================================================

class Workspace:
    """Entry point: ``Workspace.open(path)`` returns a loaded Solution."""

    @staticmethod
    def open(path: Path) -> Solution:
        path = Path(path).resolve()
        suffix = path.suffix.lower()
        if suffix not in SUPPORTED_DESCRIPTORS:
            raise UnsupportedDescriptorError(
                f"Invalid file type '{path.suffix}'. Please provide a .sln, .slnx or .csproj file."
            )
        if suffix == ".csproj":
            return _open_project(path)
        if suffix == ".slnx":
            return _open_slnx(path)
        return _open_sln(path)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise WorkspaceLoadError(f"Could not read {path}: {exc}") from exc


def _open_sln(path: Path) -> Solution:
    text = _read_text(path)
    if _SLN_HEADER not in text:
        raise WorkspaceLoadError(f"{path} is not a Visual Studio solution file")
    solution = Solution(path)
    for match in _SLN_PROJECT_RE.finditer(text):
        project_path = match.group("path")
        if not project_path.lower().endswith(".csproj"):
            continue
        _add_project(solution, _msbuild_path(path.parent, project_path), strict=False)
    return solution


def _open_slnx(path: Path) -> Solution:
    try:
        root = ElementTree.fromstring(_read_text(path))
    except ElementTree.ParseError as exc:
        raise WorkspaceLoadError(f"Malformed solution file {path}: {exc}") from exc
    solution = Solution(path)
    for element in root.iter():
        if _local(element.tag) != "Project":
            continue
        project_path = element.get("Path", "")
        if project_path.lower().endswith(".csproj"):
            _add_project(solution, _msbuild_path(path.parent, project_path), strict=False)
    return solution


def _open_project(path: Path) -> Solution:
    solution = Solution(path)
    _add_project(solution, path, strict=True)
    # Referenced projects are loaded into the same solution, as MSBuild does.
    index = 0
    while index < len(solution.projects):
        for reference in solution.projects[index].project_references:
            if solution.project_by_path(reference) is None:
                _add_project(solution, reference, strict=False)
        index += 1
    return solution


def _add_project(solution: Solution, path: Path, strict: bool) -> Project:
    try:
        try:
            project = load_project(path, solution)
        except (OSError, ValueError) as exc:
            # Globbing item patterns can fail on unreadable directories or odd patterns.
            raise WorkspaceLoadError(f"Could not load project {path}: {exc}") from exc
    except WorkspaceLoadError as exc:
        if strict:
            raise
        logger.warning("Skipping project %s: %s", path, exc)
        project = Project(path.stem, path, solution, load_error=str(exc))
    solution.projects.append(project)
    return project


def load_project(path: Path, solution: Solution) -> Project:
    """Parse one .csproj file into a Project with its documents."""
    try:
        root = ElementTree.fromstring(_read_text(path))
    except ElementTree.ParseError as exc:
        raise WorkspaceLoadError(f"Malformed project file {path}: {exc}") from exc

    project = Project(path.stem, path, solution)
    project_dir = path.parent
    properties = {
        _local(prop.tag): (prop.text or "").strip()
        for group in root if _local(group.tag) == "PropertyGroup"
        for prop in group
    }
    sdk_style = bool(root.get("Sdk")) or any(
        _local(child.tag) == "Sdk" or (_local(child.tag) == "Import" and child.get("Sdk"))
        for child in root
    )
    default_items = sdk_style and properties.get("EnableDefaultCompileItems", "true").lower() != "false"

    included: Dict[Path, None] = {}
    if default_items:
        for file_path in _default_compile_items(project_dir):
            included[file_path] = None

    removed: Set[Path] = set()
    for item in root.iter():
        tag = _local(item.tag)
        if tag == "Compile":
            for pattern in _split_items(item.get("Include")):
                excluded = set(_glob(project_dir, _split_items(item.get("Exclude"))))
                for file_path in _glob(project_dir, [pattern]):
                    if file_path not in excluded:
                        included[file_path] = None
            removed.update(_glob(project_dir, _split_items(item.get("Remove"))))
        elif tag == "ProjectReference" and item.get("Include"):
            project.project_references.append(_msbuild_path(project_dir, item.get("Include")))

    for file_path in included:
        if file_path not in removed:
            project.add_document(file_path)
    logger.debug("Loaded project %s with %d documents", project.name, len(project.documents))
    return project


def _split_items(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(";") if part.strip() and "$(" not in part]


def _glob(base: Path, patterns: List[str]) -> List[Path]:
    results: List[Path] = []
    for pattern in patterns:
        parts = [part for part in pattern.replace("\\", "/").split("/") if part]
        root = base
        # Literal leading segments (including "..") are joined, not globbed.
        while parts and not any(ch in parts[0] for ch in "*?"):
            root = root / parts.pop(0)
        if not parts:
            candidate = root.resolve()
            if candidate.is_file():
                results.append(candidate)
            continue
        if parts[-1] == "**":
            parts.append("*")
        root = root.resolve()
        if root.is_dir():
            results.extend(sorted(p.resolve() for p in root.glob("/".join(parts)) if p.is_file()))
    return results


def _default_compile_items(project_dir: Path) -> List[Path]:
    items = []
    for file_path in sorted(project_dir.rglob("*.cs")):
        relative = file_path.relative_to(project_dir)
        if any(part in SKIP_DIRS or part.startswith(".") for part in relative.parts[:-1]):
            continue
        items.append(file_path.resolve())
    return items
