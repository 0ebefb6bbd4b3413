"""Tests for solution and project loading."""

import asyncio
from pathlib import Path

import pytest

from codegraph_cs import workspace
from codegraph_cs.workspace import (
    SourceCodeKind,
    UnsupportedDescriptorError,
    Workspace,
    WorkspaceLoadError,
)

LEGACY_CSPROJ = """<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="15.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <ItemGroup>
    <Compile Include="Src\\Main.cs" />
    <Compile Include="Properties\\AssemblyInfo.cs" />
  </ItemGroup>
</Project>
"""


def _names(project):
    return sorted(document.name for document in project.documents)


class TestOpen:
    """Test descriptor dispatch and failures."""

    def test_unsupported_suffix(self, temp_dir: Path):
        path = temp_dir / "notes.txt"
        path.write_text("hello")
        with pytest.raises(UnsupportedDescriptorError, match="Invalid file type"):
            Workspace.open(path)

    def test_malformed_project_file(self, temp_dir: Path):
        path = temp_dir / "Broken.csproj"
        path.write_text("<Project Sdk=")
        with pytest.raises(WorkspaceLoadError, match="Malformed project file"):
            Workspace.open(path)

    def test_solution_without_header(self, temp_dir: Path):
        path = temp_dir / "Bad.sln"
        path.write_text("this is not a solution")
        with pytest.raises(WorkspaceLoadError):
            Workspace.open(path)

    def test_missing_solution_file(self, temp_dir: Path):
        with pytest.raises(WorkspaceLoadError, match="Could not read"):
            Workspace.open(temp_dir / "Nope.sln")

    def test_malformed_slnx(self, temp_dir: Path):
        path = temp_dir / "Bad.slnx"
        path.write_text("<Solution><Project Path=")
        with pytest.raises(WorkspaceLoadError, match="Malformed solution file"):
            Workspace.open(path)


class TestSolution:
    """Test .sln and .slnx parsing."""

    def test_sln_lists_csharp_projects(self, sample_solution: Path):
        solution = Workspace.open(sample_solution)

        assert [p.name for p in solution.projects] == ["Core", "App", "Missing"]
        missing = solution.projects[2]
        assert missing.load_error is not None
        assert missing.documents == []

    def test_slnx_projects_inside_folders(self, sample_solution: Path):
        slnx = sample_solution.parent / "Sample.slnx"
        slnx.write_text(
            "<Solution>\n"
            '  <Folder Name="/src/">\n'
            '    <Project Path="Core/Core.csproj" />\n'
            "  </Folder>\n"
            '  <Project Path="App/App.csproj" />\n'
            '  <Project Path="Tools/Tools.vbproj" />\n'
            "</Solution>\n"
        )
        solution = Workspace.open(slnx)
        assert [p.name for p in solution.projects] == ["Core", "App"]

    def test_opening_project_loads_references(self, sample_solution: Path):
        solution = Workspace.open(sample_solution.parent / "App" / "App.csproj")

        assert [p.name for p in solution.projects] == ["App", "Core"]
        app = solution.projects[0]
        assert [p.name for p in solution.referenced_projects(app)] == ["Core"]

    def test_reference_cycles_terminate(self, write_project):
        cyclic = (
            '<Project Sdk="Microsoft.NET.Sdk"><ItemGroup>'
            '<ProjectReference Include="..\\{0}\\{0}.csproj" />'
            "</ItemGroup></Project>"
        )
        left = write_project("Left", {}, cyclic.format("Right"))
        write_project("Right", {}, cyclic.format("Left"))

        solution = Workspace.open(left)

        assert [p.name for p in solution.projects] == ["Left", "Right"]
        assert [p.name for p in solution.referenced_projects(solution.projects[0])] == ["Right"]

    def test_unreadable_items_fail_only_that_project(self, sample_solution: Path, monkeypatch):
        def _denied(project_dir):
            if project_dir.name == "Core":
                raise PermissionError(f"Permission denied: '{project_dir}'")
            return []

        monkeypatch.setattr(workspace, "_default_compile_items", _denied)
        solution = Workspace.open(sample_solution)

        assert [p.name for p in solution.projects] == ["Core", "App", "Missing"]
        core, app = solution.projects[0], solution.projects[1]
        assert "Permission denied" in core.load_error
        assert core.documents == []
        assert app.load_error is None

    def test_unreadable_items_abort_opened_project(self, sample_solution: Path, monkeypatch):
        def _denied(project_dir):
            raise PermissionError("Permission denied")

        monkeypatch.setattr(workspace, "_default_compile_items", _denied)
        with pytest.raises(WorkspaceLoadError, match="Could not load project"):
            Workspace.open(sample_solution.parent / "Core" / "Core.csproj")


class TestProjectItems:
    """Test compile item evaluation."""

    def test_default_items_skip_bin_obj_and_hidden(self, write_project):
        path = write_project("Lib", {
            "A.cs": "class A {}",
            "Sub/B.cs": "class B {}",
            "bin/Debug/C.cs": "class C {}",
            "obj/D.cs": "class D {}",
            ".hidden/E.cs": "class E {}",
            "notes.txt": "ignored",
        })
        project = Workspace.open(path).projects[0]
        assert _names(project) == ["A.cs", "B.cs"]

    def test_compile_include_and_remove(self, write_project, temp_dir: Path):
        shared = temp_dir / "Shared"
        shared.mkdir()
        (shared / "Common.cs").write_text("class Common {}")
        csproj = (
            '<Project Sdk="Microsoft.NET.Sdk">\n'
            "  <ItemGroup>\n"
            '    <Compile Include="..\\Shared\\*.cs" />\n'
            '    <Compile Remove="Legacy\\**" />\n'
            '    <Compile Include="build.csx" />\n'
            "  </ItemGroup>\n"
            "</Project>\n"
        )
        path = write_project("Lib", {
            "A.cs": "class A {}",
            "Legacy/Old.cs": "class Old {}",
            "build.csx": "var x = 1;",
        }, csproj)

        project = Workspace.open(path).projects[0]

        assert _names(project) == ["A.cs", "Common.cs", "build.csx"]
        kinds = {d.name: d.source_kind for d in project.documents}
        assert kinds["build.csx"] is SourceCodeKind.SCRIPT
        assert kinds["A.cs"] is SourceCodeKind.REGULAR

    def test_default_items_can_be_disabled(self, write_project):
        csproj = (
            '<Project Sdk="Microsoft.NET.Sdk">\n'
            "  <PropertyGroup><EnableDefaultCompileItems>false</EnableDefaultCompileItems></PropertyGroup>\n"
            '  <ItemGroup><Compile Include="Only.cs" /></ItemGroup>\n'
            "</Project>\n"
        )
        path = write_project("Lib", {"Only.cs": "class Only {}", "Other.cs": "class Other {}"}, csproj)
        assert _names(Workspace.open(path).projects[0]) == ["Only.cs"]

    def test_legacy_project_uses_explicit_items(self, write_project):
        path = write_project("Old", {
            "Src/Main.cs": "class Main {}",
            "Properties/AssemblyInfo.cs": "",
            "Unlisted.cs": "class Unlisted {}",
        }, LEGACY_CSPROJ)
        assert _names(Workspace.open(path).projects[0]) == ["AssemblyInfo.cs", "Main.cs"]


class TestDocuments:
    """Test document classification."""

    @pytest.mark.parametrize("name", [
        "View.g.cs", "View.g.i.cs", "Form1.Designer.cs", "Model.generated.cs",
        "TemporaryGeneratedFile_1234.cs",
    ])
    def test_generated_by_name(self, write_project, name):
        path = write_project("Lib", {name: "class X {}"})
        assert Workspace.open(path).projects[0].documents[0].is_generated

    def test_generated_by_header(self, write_project):
        path = write_project("Lib", {
            "Gen.cs": "// <auto-generated>\n//   by a tool\n// </auto-generated>\nclass Gen {}\n",
            "Hand.cs": "// Written by hand.\nclass Hand {}\n",
        })
        flags = {d.name: d.is_generated for d in Workspace.open(path).projects[0].documents}
        assert flags == {"Gen.cs": True, "Hand.cs": False}

    def test_supported_documents(self, write_project):
        path = write_project("Lib", {"A.cs": "class A {}"})
        document = Workspace.open(path).projects[0].documents[0]
        assert document.supports_syntax_tree and document.supports_semantic_model


class TestCompilation:
    """Test asynchronous compilation access."""

    def test_failed_project_has_no_compilation(self, sample_solution: Path):
        solution = Workspace.open(sample_solution)
        missing = solution.projects[2]
        assert asyncio.run(missing.get_compilation()) is None

    def test_compilation_is_cached(self, csharp_parser, sample_solution: Path):
        core = Workspace.open(sample_solution).projects[0]

        async def twice():
            return await core.get_compilation(), await core.get_compilation()

        first, second = asyncio.run(twice())
        assert first is not None
        assert first is second

    def test_documents_expose_tree_and_model(self, csharp_parser, write_project):
        path = write_project("Lib", {"A.cs": "namespace N { class A {} }"})
        document = Workspace.open(path).projects[0].documents[0]

        async def load():
            return await document.get_syntax_tree(), await document.get_semantic_model()

        tree, model = asyncio.run(load())
        assert tree is not None
        assert model is not None
        assert model.tree is tree

    def test_script_documents_have_no_model(self, csharp_parser, write_project):
        csproj = '<Project Sdk="Microsoft.NET.Sdk"><ItemGroup><Compile Include="run.csx" /></ItemGroup></Project>'
        path = write_project("Lib", {"run.csx": "var x = 1;"}, csproj)
        script = [d for d in Workspace.open(path).projects[0].documents if d.name == "run.csx"][0]
        assert asyncio.run(script.get_semantic_model()) is None

    def test_referenced_sources_resolve_but_are_not_owned(self, csharp_parser, sample_solution: Path):
        solution = Workspace.open(sample_solution)
        app = solution.projects[1]
        compilation = asyncio.run(app.get_compilation())

        assert [Path(t.file_path).name for t in compilation.trees] == ["Program.cs"]
        shapes = compilation.global_namespace.namespaces["Sample"].namespaces["Core"].namespaces["Shapes"]
        assert ("Shape", 0) in shapes.types
