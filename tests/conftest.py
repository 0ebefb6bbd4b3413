"""Pytest configuration and fixtures for CodeGraph CS tests."""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from codegraph_cs.compilation import Compilation
from codegraph_cs.logging_config import PACKAGE_LOGGER
from codegraph_cs.models import GraphFragment
from codegraph_cs.syntax import SyntaxTree, new_parser
from codegraph_cs.walker import CodeStructureWalker

SDK_CSPROJ = """<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
  </PropertyGroup>
</Project>
"""


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo CLI logging setup so caplog sees records in every test."""
    yield
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def csharp_parser():
    """A tree-sitter parser for C#; skips the test if the grammar is missing."""
    parser = new_parser()
    if parser is None:
        pytest.skip("tree-sitter C# grammar not installed")
    return parser


@pytest.fixture
def sample_solution(temp_dir: Path) -> Path:
    """Copy of the sample solution, so tests never touch the fixture tree."""
    target = temp_dir / "sample_solution"
    shutil.copytree(Path(__file__).parent / "fixtures" / "sample_solution", target)
    return target / "Sample.sln"


@pytest.fixture
def compile_sources(csharp_parser):
    """Build a Compilation from in-memory C# sources."""

    def _compile(*sources: str, name: str = "Test"):
        trees = [
            SyntaxTree.parse(csharp_parser, source, f"/src/Unit{index}.cs")
            for index, source in enumerate(sources)
        ]
        return Compilation(name, trees), trees

    return _compile


@pytest.fixture
def walk_sources(compile_sources):
    """Walk every source of one compilation and merge the fragments."""

    def _walk(*sources: str) -> GraphFragment:
        compilation, trees = compile_sources(*sources)
        fragment = GraphFragment()
        for tree in trees:
            model = compilation.get_semantic_model(tree)
            fragment.merge(CodeStructureWalker(model, tree.file_path).walk())
        return fragment

    return _walk


@pytest.fixture
def write_project(temp_dir: Path):
    """Write a project directory with a .csproj and the given files."""

    def _write(name: str, files: dict, csproj: str = SDK_CSPROJ) -> Path:
        project_dir = temp_dir / name
        project_dir.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            path = project_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        project_file = project_dir / f"{name}.csproj"
        project_file.write_text(csproj, encoding="utf-8")
        return project_file

    return _write
