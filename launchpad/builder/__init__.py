"""
Package Builder

Deterministic, content-addressed deployment archives with vendored
production dependencies.
"""

from launchpad.builder.models import Artifact, artifact_file_name
from launchpad.builder.package_builder import (
    PackageBuilder,
    build_zip,
    is_excluded,
    iter_source_files,
    read_members,
    describe_artifact,
)
from launchpad.builder.vendoring import DependencyVendor

__all__ = [
    "Artifact",
    "artifact_file_name",
    "PackageBuilder",
    "build_zip",
    "is_excluded",
    "iter_source_files",
    "read_members",
    "describe_artifact",
    "DependencyVendor",
]
