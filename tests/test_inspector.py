"""
Tests for the Project Inspector

- Marker precedence for every combination
- Package manager detection (npm, pip, poetry)
- Unknown is a result, not an error
"""

import json

import pytest

from launchpad.core.error_recovery import ErrorType
from launchpad.inspector import (
    PackageManager,
    ProjectClassification,
    describe,
    inspect_files,
    inspect_project,
    is_poetry_project,
    read_package_json,
    read_requirements_txt,
    runtime_dependencies,
)
from launchpad.inspector.manifest_reader import read_pyproject


class TestInspectFiles:
    """Classification from root file names."""

    @pytest.mark.parametrize("python_marker", ["requirements.txt", "pyproject.toml", "Pipfile", "setup.py"])
    def test_node_wins_over_every_python_marker(self, python_marker):
        """package.json plus any Python marker is Node, with a warning."""
        analysis = inspect_files(["package.json", python_marker])

        assert analysis.classification == ProjectClassification.NODE
        assert analysis.package_manager == PackageManager.NPM
        assert analysis.is_ambiguous
        assert any("Ambiguous" in w for w in analysis.warnings)

    def test_ambiguity_is_tagged_with_its_error_type(self):
        analysis = inspect_files(["package.json", "requirements.txt"])

        assert analysis.warnings == (
            f"{ErrorType.CLASSIFICATION_AMBIGUOUS.value}: "
            "Ambiguous runtime markers (package.json, requirements.txt): using NodeRuntime",
        )

    def test_node_only(self):
        analysis = inspect_files(["package.json", "index.js"])

        assert analysis.classification == ProjectClassification.NODE
        assert not analysis.is_ambiguous
        assert analysis.warnings == ()
        assert not analysis.has_lockfile

    def test_node_lockfile_detected(self):
        analysis = inspect_files(["package.json", "package-lock.json"])
        assert analysis.has_lockfile

    @pytest.mark.parametrize("python_marker", ["requirements.txt", "pyproject.toml", "Pipfile", "setup.py"])
    def test_any_python_marker_is_python(self, python_marker):
        analysis = inspect_files([python_marker, "handler.py"])
        assert analysis.classification == ProjectClassification.PYTHON

    def test_requirements_uses_pip(self):
        analysis = inspect_files(["requirements.txt", "pyproject.toml"], is_poetry=True)
        assert analysis.package_manager == PackageManager.PIP

    def test_poetry_pyproject_uses_poetry(self):
        analysis = inspect_files(["pyproject.toml", "poetry.lock"], is_poetry=True)

        assert analysis.package_manager == PackageManager.POETRY
        assert analysis.has_lockfile

    def test_python_without_dependency_manifest_warns(self):
        analysis = inspect_files(["setup.py"])

        assert analysis.package_manager == PackageManager.NONE
        assert len(analysis.warnings) == 1

    def test_no_markers_is_unknown(self):
        """Unknown is a valid terminal classification with a warning."""
        analysis = inspect_files(["main.go", "go.mod"])

        assert analysis.classification == ProjectClassification.UNKNOWN
        assert not analysis.is_known
        assert analysis.package_manager == PackageManager.NONE
        assert analysis.warnings

    def test_markers_are_sorted(self):
        analysis = inspect_files(["setup.py", "package.json", "requirements.txt"])
        assert analysis.markers == ("package.json", "requirements.txt", "setup.py")


class TestInspectProject:
    """Classification of directories on disk."""

    def test_node_project(self, node_project):
        analysis = inspect_project(node_project)

        assert analysis.classification == ProjectClassification.NODE
        assert analysis.has_lockfile
        assert describe(analysis) == "NodeRuntime"

    def test_poetry_project(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            '[tool.poetry]\nname = "svc"\n\n[tool.poetry.dependencies]\npython = "^3.11"\nrequests = "^2.31"\n'
        )
        analysis = inspect_project(tmp_path)

        assert analysis.classification == ProjectClassification.PYTHON
        assert analysis.package_manager == PackageManager.POETRY

    def test_pep621_pyproject_is_not_poetry(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "svc"\n')
        assert not is_poetry_project(tmp_path)
        assert inspect_project(tmp_path).package_manager == PackageManager.NONE

    def test_marker_in_subdirectory_is_ignored(self, tmp_path):
        (tmp_path / "frontend").mkdir()
        (tmp_path / "frontend" / "package.json").write_text("{}")

        assert inspect_project(tmp_path).classification == ProjectClassification.UNKNOWN

    def test_missing_path_is_unknown(self, tmp_path):
        analysis = inspect_project(tmp_path / "nope")
        assert analysis.classification == ProjectClassification.UNKNOWN

    def test_describe_none(self):
        assert describe(None) == "not inspected"


class TestManifestReader:
    """Reading dependency manifests."""

    def test_package_json_runtime_only(self, node_project):
        result = read_package_json(node_project)

        assert result["success"]
        assert result["runtime_dependencies"] == ["uuid"]
        assert result["dev_dependencies"] == ["jest"]

    def test_invalid_package_json(self, tmp_path):
        (tmp_path / "package.json").write_text("{not json")
        assert not read_package_json(tmp_path)["success"]

    def test_requirements_names(self, tmp_path):
        (tmp_path / "requirements.txt").write_text(
            "# pinned\nrequests==2.31.0\n\n-r base.txt\nboto3>=1.34  # aws\npydantic[email]\n"
        )
        result = read_requirements_txt(tmp_path)
        assert result["runtime_dependencies"] == ["requests", "boto3", "pydantic"]

    def test_runtime_dependencies_across_manifests(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"dependencies": {"axios": "1"}}))
        (tmp_path / "pyproject.toml").write_text(
            '[tool.poetry.dependencies]\npython = "^3.11"\nhttpx = "*"\n'
        )
        assert runtime_dependencies(tmp_path) == ["axios", "httpx"]

    def test_pyproject_with_invalid_utf8_is_ignored(self, tmp_path):
        (tmp_path / "pyproject.toml").write_bytes(b"[tool.poetry]\nname = \"\xff\xfe\"\n")

        assert read_pyproject(tmp_path) == {}
        assert not is_poetry_project(tmp_path)
        assert inspect_project(tmp_path).package_manager == PackageManager.NONE
