"""Environment resolution and promotion gating."""

from launchpad.environments.models import (
    Environment,
    Resolution,
    ResolutionStatus,
    normalize_ref,
)
from launchpad.environments.quality_gates import (
    GateCheck,
    GateCheckStatus,
    QualityGate,
)
from launchpad.environments.resolver import (
    EnvironmentResolver,
    match_environment,
)

__all__ = [
    "Environment",
    "Resolution",
    "ResolutionStatus",
    "normalize_ref",
    "GateCheck",
    "GateCheckStatus",
    "QualityGate",
    "EnvironmentResolver",
    "match_environment",
]
