"""
Tests for the Package Builder

- Deterministic archives (same tree, same hash)
- Fixed exclusion set
- Vendoring per package manager
- Dependency failures are fatal
"""

import asyncio
import hashlib
import io
import os
import zipfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from launchpad.builder import (
    Artifact,
    PackageBuilder,
    artifact_file_name,
    build_zip,
    describe_artifact,
    is_excluded,
    read_members,
)
from launchpad.builder.package_builder import FIXED_DATE_TIME
from launchpad.builder.vendoring import POETRY_EXPORT_FILE, npm_install_args
from launchpad.core.error_recovery import DependencyResolutionFailed, ErrorType
from launchpad.inspector import ProjectClassification, inspect_project

from tests.conftest import FakeCommandRunner


class TestExclusions:
    """Which source paths stay out of the archive."""

    @pytest.mark.parametrize("path", [
        ".git/HEAD",
        "lib/.git/config",
        ".github/workflows/deploy.yml",
        "docs/guide.txt",
        "README.md",
        "README",
        "lib/NOTES.md",
        ".gitignore",
        ".gitattributes",
        ".env",
        "node_modules/jest/index.js",
        "pkg/__pycache__/mod.cpython-312.pyc",
        "pkg/mod.pyc",
        ".venv/bin/python",
        "launchpad.toml",
    ])
    def test_excluded(self, path):
        assert is_excluded(Path(path))

    @pytest.mark.parametrize("path", [
        "index.js",
        "handler.py",
        "lib/docs/template.html",
        "lib/node_modules_helper.js",
        "package.json",
        "requirements.txt",
    ])
    def test_included(self, path):
        assert not is_excluded(Path(path))


class TestBuildZip:
    """Archive normalization."""

    def test_entries_are_normalized(self, tmp_path):
        (tmp_path / "b.js").write_text("b")
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "run.sh").write_text("#!/bin/sh\n")
        os.chmod(tmp_path / "a" / "run.sh", 0o755)

        content, members = build_zip(tmp_path)

        assert members == ("a/run.sh", "b.js")
        with zipfile.ZipFile(io.BytesIO(content)) as zf:
            infos = {i.filename: i for i in zf.infolist()}
        assert all(i.date_time == FIXED_DATE_TIME for i in infos.values())
        assert (infos["a/run.sh"].external_attr >> 16) & 0o777 == 0o755
        assert (infos["b.js"].external_attr >> 16) & 0o777 == 0o644

    def test_mtime_does_not_change_hash(self, tmp_path):
        (tmp_path / "index.js").write_text("x")
        first, _ = build_zip(tmp_path)
        os.utime(tmp_path / "index.js", (1_000_000_000, 1_000_000_000))
        second, _ = build_zip(tmp_path)

        assert first == second


class TestPackageBuilder:
    """End-to-end builds with a fake dependency tool."""

    @pytest.mark.asyncio
    async def test_node_build_vendors_production_dependencies(self, node_project, command_runner):
        builder = PackageBuilder(command_runner=command_runner)
        analysis = inspect_project(node_project)

        artifact = await builder.build(node_project, analysis, "develop")

        assert artifact.file_name == "app-develop.zip"
        assert artifact.classification == ProjectClassification.NODE
        assert list(artifact.members) == [
            "index.js",
            "lib/util.js",
            "node_modules/uuid/index.js",
            "package-lock.json",
            "package.json",
        ]
        # Lockfile present: npm ci, run in staging rather than the source tree
        assert command_runner.calls[0].args == npm_install_args(True)
        assert Path(command_runner.calls[0].cwd) != node_project
        assert not (node_project / "node_modules" / "uuid").exists()

    @pytest.mark.asyncio
    async def test_artifact_written_to_output_dir(self, node_project, command_runner):
        builder = PackageBuilder(output_dir="dist", component="orders", command_runner=command_runner)
        artifact = await builder.build(node_project, inspect_project(node_project), "staging")

        written = node_project / "dist" / "orders-staging.zip"
        assert written.read_bytes() == artifact.content
        assert hashlib.sha256(written.read_bytes()).hexdigest() == artifact.sha256

    @pytest.mark.asyncio
    async def test_filesystem_work_runs_off_the_event_loop(self, node_project, command_runner, monkeypatch):
        offloaded = []
        real_to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args):
            offloaded.append(func.__name__)
            return await real_to_thread(func, *args)

        monkeypatch.setattr("launchpad.builder.package_builder.asyncio.to_thread", recording_to_thread)
        await PackageBuilder(command_runner=command_runner).build(node_project, inspect_project(node_project), "develop")

        assert offloaded == ["stage_sources", "build_zip", "write_artifact"]

    @pytest.mark.asyncio
    async def test_rebuild_is_byte_identical(self, node_project):
        """Two builds of an unchanged tree give the same hash (output dir is not packaged)."""
        analysis = inspect_project(node_project)
        first = await PackageBuilder(command_runner=FakeCommandRunner()).build(node_project, analysis, "develop")
        second = await PackageBuilder(command_runner=FakeCommandRunner()).build(node_project, analysis, "develop")

        assert first.sha256 == second.sha256
        assert first.content == second.content
        assert not any(m.startswith("dist/") for m in second.members)

    @pytest.mark.asyncio
    async def test_changed_source_changes_hash(self, node_project, command_runner):
        analysis = inspect_project(node_project)
        builder = PackageBuilder(command_runner=command_runner)
        first = await builder.build(node_project, analysis, "develop", write=False)
        (node_project / "index.js").write_text("exports.handler = async () => 201;\n")
        second = await builder.build(node_project, analysis, "develop", write=False)

        assert first.sha256 != second.sha256

    @pytest.mark.asyncio
    async def test_pip_build(self, tmp_path, command_runner):
        (tmp_path / "requirements.txt").write_text("requests==2.31.0\n")
        (tmp_path / "handler.py").write_text("def handler(event, context):\n    return {}\n")

        artifact = await PackageBuilder(command_runner=command_runner).build(
            tmp_path, inspect_project(tmp_path), "develop", write=False
        )

        assert "requests/__init__.py" in artifact.members
        assert "handler.py" in artifact.members
        args = command_runner.calls[0].args
        assert args[:4] == ["pip", "install", "-r", "requirements.txt"]
        assert args[args.index("--target") + 1] == command_runner.calls[0].cwd

    @pytest.mark.asyncio
    async def test_poetry_build_exports_then_installs(self, tmp_path, command_runner):
        (tmp_path / "pyproject.toml").write_text('[tool.poetry]\nname = "svc"\n')
        (tmp_path / "handler.py").write_text("")

        artifact = await PackageBuilder(command_runner=command_runner).build(
            tmp_path, inspect_project(tmp_path), "develop", write=False
        )

        assert command_runner.programs == ["poetry export", "pip install"]
        assert POETRY_EXPORT_FILE in command_runner.calls[1].args
        assert POETRY_EXPORT_FILE not in artifact.members
        assert "requests/__init__.py" in artifact.members

    @pytest.mark.asyncio
    async def test_unknown_runtime_packages_sources_only(self, tmp_path, command_runner):
        (tmp_path / "main.sh").write_text("echo hi\n")

        artifact = await PackageBuilder(command_runner=command_runner).build(
            tmp_path, inspect_project(tmp_path), "develop", write=False
        )

        assert artifact.classification == ProjectClassification.UNKNOWN
        assert artifact.members == ("main.sh",)
        assert command_runner.calls == []

    @pytest.mark.asyncio
    async def test_dependency_failure_is_fatal(self, node_project):
        builder = PackageBuilder(command_runner=FakeCommandRunner(fail=True))

        with pytest.raises(DependencyResolutionFailed) as exc_info:
            await builder.build(node_project, inspect_project(node_project), "develop")

        assert exc_info.value.error_type == ErrorType.DEPENDENCY_RESOLUTION_FAILED
        assert "404" in exc_info.value.message
        assert not (node_project / "dist" / "app-develop.zip").exists()

    @pytest.mark.asyncio
    async def test_dependency_timeout_is_fatal(self, node_project):
        builder = PackageBuilder(command_runner=FakeCommandRunner(timed_out=True))

        with pytest.raises(DependencyResolutionFailed) as exc_info:
            await builder.build(node_project, inspect_project(node_project), "develop")

        assert exc_info.value.details["timed_out"] is True


class TestArtifact:
    """The artifact model."""

    def test_hash_must_match_content(self):
        with pytest.raises(ValidationError):
            Artifact(
                component="app",
                environment="develop",
                classification=ProjectClassification.NODE,
                content=b"zip",
                sha256="0" * 64,
            )

    def test_is_immutable(self):
        artifact = Artifact.from_bytes(b"zip", "app", "develop", ProjectClassification.NODE)
        with pytest.raises(ValidationError):
            artifact.environment = "production"

    def test_naming_and_description(self):
        artifact = Artifact.from_bytes(b"zip", "app", "develop", ProjectClassification.NODE)

        assert artifact_file_name("app", "develop") == "app-develop.zip"
        assert artifact.short_hash == artifact.sha256[:12]
        assert describe_artifact(artifact).startswith("app-develop.zip (3 bytes")
        assert describe_artifact(None) == "not built"

    def test_read_members(self, tmp_path):
        (tmp_path / "index.js").write_text("x")
        content, _ = build_zip(tmp_path)
        assert read_members(content) == ["index.js"]
