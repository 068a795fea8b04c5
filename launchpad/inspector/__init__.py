"""Project inspection - runtime classification from marker files."""

from launchpad.inspector.project_inspector import (
    ProjectClassification,
    PackageManager,
    ProjectAnalysis,
    inspect_files,
    inspect_project,
    describe,
)
from launchpad.inspector.manifest_reader import (
    read_package_json,
    read_requirements_txt,
    is_poetry_project,
    runtime_dependencies,
)

__all__ = [
    "ProjectClassification",
    "PackageManager",
    "ProjectAnalysis",
    "inspect_files",
    "inspect_project",
    "describe",
    "read_package_json",
    "read_requirements_txt",
    "is_poetry_project",
    "runtime_dependencies",
]
