"""
Package Builder

Produces a deterministic deployment archive from a source tree:
- Copies the runtime file set into a staging directory (fixed exclusions)
- Vendors production dependencies for the detected runtime
- Zips staging with sorted members, normalized timestamps and permissions

Same inputs give a byte-identical archive and therefore the same hash.
"""

import asyncio
import fnmatch
import io
import os
import shutil
import stat
import tempfile
import zipfile
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from launchpad.builder.models import Artifact, artifact_file_name
from launchpad.builder.vendoring import CommandRunner, DependencyVendor
from launchpad.core.error_recovery import ArtifactBuildFailed, LaunchpadError
from launchpad.core.logger import get_logger, log_timing
from launchpad.inspector.project_inspector import ProjectAnalysis
from launchpad.terminal import execute_command

logger = get_logger("builder")

# Earliest timestamp a ZIP entry can carry
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
COMPRESS_LEVEL = 9

# ============================================================================
# EXCLUSION SET
# ============================================================================

# Skipped at any depth of the source tree
EXCLUDED_DIRS_ANYWHERE = {".git", "__pycache__", ".pytest_cache", ".mypy_cache"}

# Skipped only at the project root
EXCLUDED_ROOT_DIRS = {".github", "docs", "node_modules", ".venv", "venv", ".launchpad"}

EXCLUDED_FILE_NAMES = {
    ".gitignore",
    ".gitattributes",
    ".gitmodules",
    ".env",
    ".DS_Store",
    "launchpad.toml",
}

EXCLUDED_FILE_PATTERNS = ["README*", "*.md", "*.pyc", "*.pyo"]


def is_excluded(relative: Path) -> bool:
    """True when a source path (relative to the project root) stays out of the archive."""
    parts = relative.parts
    if not parts:
        return False
    if parts[0] in EXCLUDED_ROOT_DIRS:
        return True
    if any(part in EXCLUDED_DIRS_ANYWHERE for part in parts):
        return True
    name = parts[-1]
    if name in EXCLUDED_FILE_NAMES:
        return True
    return any(fnmatch.fnmatch(name, pattern) for pattern in EXCLUDED_FILE_PATTERNS)


def iter_source_files(project_root: Path, extra_excludes: Tuple[Path, ...] = ()) -> Iterator[Path]:
    """Yield files to package, relative to project_root, in sorted order."""
    resolved_excludes = [p.resolve() for p in extra_excludes]
    for dirpath, dirnames, filenames in os.walk(project_root):
        current = Path(dirpath)
        rel_dir = current.relative_to(project_root)

        kept = []
        for d in sorted(dirnames):
            full = current / d
            if is_excluded(rel_dir / d) or full.resolve() in resolved_excludes:
                continue
            kept.append(d)
        dirnames[:] = kept

        for name in sorted(filenames):
            rel = rel_dir / name
            if not is_excluded(rel):
                yield rel


def _entry_mode(path: Path) -> int:
    """0755 for executables, 0644 otherwise."""
    return 0o755 if os.access(path, os.X_OK) else 0o644


def _archive_members(root: Path) -> List[str]:
    members = []
    for path in root.rglob("*"):
        if path.is_file() and "__pycache__" not in path.parts and path.suffix not in (".pyc", ".pyo"):
            members.append(path.relative_to(root).as_posix())
    return sorted(members)


def build_zip(root: Path) -> Tuple[bytes, Tuple[str, ...]]:
    """
    Zip a directory deterministically.

    Returns:
        (archive bytes, member names)
    """
    members = _archive_members(root)
    buffer = io.BytesIO()

    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for member in members:
            source = root / member
            info = zipfile.ZipInfo(member, date_time=FIXED_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.create_system = 3  # unix, so external_attr is honoured
            info.external_attr = (stat.S_IFREG | _entry_mode(source)) << 16
            zf.writestr(info, source.read_bytes(), compresslevel=COMPRESS_LEVEL)

    return buffer.getvalue(), tuple(members)


def write_artifact(path: Path, content: bytes) -> None:
    """
    Write an archive atomically (write-then-rename), so a reader never sees
    a half-written zip.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(".tmp")
    try:
        temp_path.write_bytes(content)
        temp_path.replace(path)
    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise ArtifactBuildFailed(f"Failed to write artifact to {path}: {e}")


class PackageBuilder:
    """
    Builds {component}-{environment}.zip for a classified project.

    Usage:
        builder = PackageBuilder(output_dir="dist", component="app")
        artifact = await builder.build("/path/to/project", analysis, "develop")
    """

    def __init__(
        self,
        output_dir: str | Path = "dist",
        component: str = "app",
        dependency_timeout: int = 600,
        command_runner: CommandRunner = execute_command,
    ):
        self.output_dir = Path(output_dir)
        self.component = component
        self.vendor = DependencyVendor(timeout=dependency_timeout, command_runner=command_runner)

    def _output_dir_for(self, project_root: Path) -> Path:
        return self.output_dir if self.output_dir.is_absolute() else project_root / self.output_dir

    def stage_sources(self, project_root: Path, staging: Path) -> int:
        """Copy the runtime file set into staging; returns the file count."""
        count = 0
        excludes = (self._output_dir_for(project_root),)
        for rel in iter_source_files(project_root, extra_excludes=excludes):
            dest = staging / rel
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(project_root / rel, dest)
            count += 1
        return count

    @log_timing(logger)
    async def build(
        self,
        project_path: str | Path,
        analysis: ProjectAnalysis,
        environment_name: str,
        write: bool = True,
    ) -> Artifact:
        """
        Build the artifact.

        Args:
            project_path: Project root
            analysis: Inspector output (selects the vendoring strategy)
            environment_name: Used in the artifact file name
            write: Also write the archive to the output directory

        Raises:
            DependencyResolutionFailed: If dependencies cannot be vendored
            ArtifactBuildFailed: For any other packaging error
        """
        project_root = Path(project_path).resolve()
        if not project_root.is_dir():
            raise ArtifactBuildFailed(f"Project path is not a directory: {project_root}")

        try:
            with tempfile.TemporaryDirectory(prefix="launchpad_build_") as tmp:
                staging = Path(tmp)
                copied = await asyncio.to_thread(self.stage_sources, project_root, staging)
                logger.info(f"[BUILDER] 📦 Staged {copied} source files for {analysis.classification.value}")

                await self.vendor.vendor(analysis, staging)

                content, members = await asyncio.to_thread(build_zip, staging)
        except LaunchpadError:
            raise
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            raise ArtifactBuildFailed(f"Failed to package {project_root.name}: {e}")

        artifact = Artifact.from_bytes(
            content,
            component=self.component,
            environment=environment_name,
            classification=analysis.classification,
            members=members,
        )

        if write:
            target = self._output_dir_for(project_root) / artifact_file_name(self.component, environment_name)
            await asyncio.to_thread(write_artifact, target, content)
            logger.info(f"[BUILDER] ✅ Wrote {target} ({artifact.size:,} bytes, sha256={artifact.short_hash})")
        else:
            logger.info(f"[BUILDER] ✅ Built {artifact.file_name} ({artifact.size:,} bytes, sha256={artifact.short_hash})")

        return artifact


def read_members(content: bytes) -> List[str]:
    """Names inside an archive (used by reports and tests)."""
    with zipfile.ZipFile(io.BytesIO(content)) as zf:
        return zf.namelist()


def describe_artifact(artifact: Optional[Artifact]) -> str:
    if artifact is None:
        return "not built"
    return f"{artifact.file_name} ({artifact.size:,} bytes, sha256 {artifact.short_hash})"
