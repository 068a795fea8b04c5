"""
Project Inspector

Classifies a source tree's runtime from its marker files:
- Which runtime the function targets (Node, Python, unknown)
- Which package manager resolves its production dependencies
- Whether the classification was ambiguous
"""

from pathlib import Path
from typing import Optional, List, Iterable, Tuple
from dataclasses import dataclass, field
from enum import Enum

from launchpad.core.error_recovery import ClassificationAmbiguous, ErrorRecoverySystem
from launchpad.core.logger import get_logger
from launchpad.inspector.manifest_reader import is_poetry_project

logger = get_logger("inspector")
_recovery = ErrorRecoverySystem()


class ProjectClassification(str, Enum):
    """Runtimes we can package. Add a member plus a marker rule to extend."""
    NODE = "NodeRuntime"
    PYTHON = "PythonRuntime"
    UNKNOWN = "Unknown"


class PackageManager(str, Enum):
    NPM = "npm"
    PIP = "pip"
    POETRY = "poetry"
    NONE = "none"


NODE_MARKERS = ("package.json",)
PYTHON_MARKERS = ("requirements.txt", "pyproject.toml", "Pipfile", "setup.py")


@dataclass(frozen=True)
class ProjectAnalysis:
    """Result of project inspection. Immutable for the whole build."""
    classification: ProjectClassification
    package_manager: PackageManager
    markers: Tuple[str, ...] = ()
    has_lockfile: bool = False
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_ambiguous(self) -> bool:
        return any(m in self.markers for m in NODE_MARKERS) and any(
            m in self.markers for m in PYTHON_MARKERS
        )

    @property
    def is_known(self) -> bool:
        return self.classification != ProjectClassification.UNKNOWN


def inspect_files(file_names: Iterable[str], is_poetry: bool = False) -> ProjectAnalysis:
    """
    Classify a project from the names of its root-level files.

    Node wins over Python when both markers are present: a Lambda bundle with
    a package.json is deployed with the Node toolchain, and the Python files
    are treated as build helpers.

    Args:
        file_names: Root-level file names
        is_poetry: pyproject.toml declares [tool.poetry]

    Returns:
        ProjectAnalysis (never raises; Unknown is a valid result)
    """
    files = set(file_names)
    node_found = [m for m in NODE_MARKERS if m in files]
    python_found = [m for m in PYTHON_MARKERS if m in files]
    markers = tuple(sorted(node_found + python_found))
    warnings: List[str] = []

    if node_found:
        if python_found:
            ambiguity = ClassificationAmbiguous(
                f"Ambiguous runtime markers ({', '.join(markers)}): using NodeRuntime",
                details={"markers": list(markers)},
            )
            decision = _recovery.handle_error(ambiguity, "inspect")
            logger.warning(f"[INSPECTOR] ⚠️ {decision.error_type.value}: {decision.message}")
            warnings.append(f"{decision.error_type.value}: {decision.message}")
        has_lock = "package-lock.json" in files or "npm-shrinkwrap.json" in files
        return ProjectAnalysis(
            classification=ProjectClassification.NODE,
            package_manager=PackageManager.NPM,
            markers=markers,
            has_lockfile=has_lock,
            warnings=tuple(warnings),
        )

    if python_found:
        if "requirements.txt" in files:
            manager = PackageManager.PIP
        elif "pyproject.toml" in files and is_poetry:
            manager = PackageManager.POETRY
        else:
            manager = PackageManager.NONE
            warnings.append(
                "Python project without requirements.txt or Poetry metadata: "
                "no dependencies will be vendored"
            )
        return ProjectAnalysis(
            classification=ProjectClassification.PYTHON,
            package_manager=manager,
            markers=markers,
            has_lockfile="poetry.lock" in files,
            warnings=tuple(warnings),
        )

    return ProjectAnalysis(
        classification=ProjectClassification.UNKNOWN,
        package_manager=PackageManager.NONE,
        warnings=("No runtime marker found (package.json, requirements.txt, "
                  "pyproject.toml): language-specific steps skipped",),
    )


def inspect_project(project_path: str | Path) -> ProjectAnalysis:
    """
    Inspect a project directory.

    Args:
        project_path: Path to the project root

    Returns:
        ProjectAnalysis
    """
    path = Path(project_path)

    if not path.exists() or not path.is_dir():
        logger.warning(f"[INSPECTOR] ⚠️ Project path does not exist: {path}")
        return inspect_files([])

    files = [f.name for f in path.iterdir() if f.is_file()]
    poetry = "pyproject.toml" in files and is_poetry_project(path)
    analysis = inspect_files(files, is_poetry=poetry)

    logger.info(
        f"[INSPECTOR] 🔍 {path.name}: {analysis.classification.value} "
        f"(manager={analysis.package_manager.value}, markers={list(analysis.markers)})"
    )
    for warning in analysis.warnings:
        logger.warning(f"[INSPECTOR] ⚠️ {warning}")

    return analysis


def describe(analysis: Optional[ProjectAnalysis]) -> str:
    """Short human label for reports."""
    if analysis is None:
        return "not inspected"
    return analysis.classification.value
