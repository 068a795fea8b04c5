"""Status Reporter: run summaries and the stores they are upserted into."""

from launchpad.reporter.models import (
    RunStatus,
    RunSummary,
    StageName,
    StageOutcome,
    StageStatus,
)
from launchpad.reporter.stores import (
    DatabaseStatusStore,
    GitHubCommentStore,
    StatusStore,
    marker_for,
)
from launchpad.reporter.status_reporter import (
    StatusReporter,
    render_summary,
    signature_for,
)

__all__ = [
    "RunStatus",
    "RunSummary",
    "StageName",
    "StageOutcome",
    "StageStatus",
    "DatabaseStatusStore",
    "GitHubCommentStore",
    "StatusStore",
    "marker_for",
    "StatusReporter",
    "render_summary",
    "signature_for",
]
