"""
Manifest Reader Utility

Library-based reading of dependency manifests:
- package.json (npm projects)
- requirements.txt (pip projects)
- pyproject.toml (Poetry projects)

Used to decide the vendoring strategy and to describe the bundle in logs.
"""

import json
import re
import tomllib
from pathlib import Path
from typing import Dict, Any, List

from launchpad.core.logger import get_logger

logger = get_logger("manifest_reader")

REQUIREMENT_NAME_RE = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._-]*)")


def read_package_json(project_path: str | Path) -> Dict[str, Any]:
    """
    Read package.json production dependencies.

    Returns:
        Dict with name, runtime_dependencies, dev_dependencies, success
    """
    pkg_path = Path(project_path) / "package.json"

    if not pkg_path.exists():
        return {"success": False, "error": "package.json not found"}

    try:
        with open(pkg_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"[MANIFEST] Invalid JSON in package.json: {e}")
        return {"success": False, "error": f"Invalid JSON: {e}"}

    runtime = sorted(data.get("dependencies", {}))
    dev = sorted(data.get("devDependencies", {}))
    logger.debug(f"[MANIFEST] package.json: {len(runtime)} runtime, {len(dev)} dev dependencies")

    return {
        "success": True,
        "name": data.get("name", ""),
        "runtime_dependencies": runtime,
        "dev_dependencies": dev,
    }


def read_requirements_txt(project_path: str | Path) -> Dict[str, Any]:
    """
    Read requirement names from requirements.txt.

    Comments, blank lines and pip options (-r, --index-url) are skipped.
    """
    req_path = Path(project_path) / "requirements.txt"

    if not req_path.exists():
        return {"success": False, "error": "requirements.txt not found"}

    names: List[str] = []
    with open(req_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.split("#", 1)[0].strip()
            if not line or line.startswith("-"):
                continue
            match = REQUIREMENT_NAME_RE.match(line)
            if match:
                names.append(match.group(1))

    return {"success": True, "runtime_dependencies": names}


def read_pyproject(project_path: str | Path) -> Dict[str, Any]:
    """Parse pyproject.toml; empty dict when missing or invalid."""
    path = Path(project_path) / "pyproject.toml"
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError, OSError) as e:
        logger.warning(f"[MANIFEST] Unreadable pyproject.toml: {e}")
        return {}


def is_poetry_project(project_path: str | Path) -> bool:
    """True when pyproject.toml carries a [tool.poetry] table."""
    return "poetry" in read_pyproject(project_path).get("tool", {})


def runtime_dependencies(project_path: str | Path) -> List[str]:
    """Names of production dependencies across whichever manifests exist."""
    deps: List[str] = []
    pkg = read_package_json(project_path)
    if pkg.get("success"):
        deps.extend(pkg["runtime_dependencies"])
    reqs = read_requirements_txt(project_path)
    if reqs.get("success"):
        deps.extend(reqs["runtime_dependencies"])
    poetry = read_pyproject(project_path).get("tool", {}).get("poetry", {})
    deps.extend(name for name in poetry.get("dependencies", {}) if name.lower() != "python")
    return deps
