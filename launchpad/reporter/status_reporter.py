"""
Status Reporter

Renders the run summary as markdown and upserts it as the single status
record of the pull request. Reporting never changes the outcome of a run:
store errors are logged and swallowed.
"""

from typing import Optional, List

from launchpad.core.logger import get_logger, truncate_for_log
from launchpad.reporter.models import RUN_ICONS, STAGE_ICONS, RunSummary
from launchpad.reporter.stores import StatusStore, marker_for

logger = get_logger("reporter")


def signature_for(component: str, pull_request: int) -> str:
    """Stable per-pipeline key: launchpad:{component}:pr-{number}"""
    return f"launchpad:{component}:pr-{pull_request}"


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ").strip() or "-"


def render_summary(summary: RunSummary, signature: Optional[str] = None) -> str:
    """Markdown body of the status record."""
    lines: List[str] = []
    if signature:
        lines.append(marker_for(signature))

    lines.append(f"### {RUN_ICONS[summary.status]} Launchpad: {summary.headline}")
    lines.append("")

    facts = [f"**Runtime:** {summary.classification}"]
    if summary.ref:
        facts.append(f"**Ref:** `{summary.ref}`")
    if summary.sha:
        facts.append(f"**Commit:** `{summary.sha[:7]}`")
    lines.append(" | ".join(facts))
    lines.append("")

    if summary.stages:
        lines.append("| Stage | Status | Detail |")
        lines.append("|-------|--------|--------|")
        for outcome in summary.stages:
            lines.append(
                f"| {outcome.stage.value} | {STAGE_ICONS[outcome.status]} {outcome.status.value} "
                f"| {_cell(outcome.detail)} |"
            )
        lines.append("")

    if summary.warnings:
        lines.append("**Warnings**")
        lines.extend(f"- {w}" for w in summary.warnings)
        lines.append("")

    if summary.log_url:
        lines.append(f"[Detailed log]({summary.log_url})")

    return "\n".join(lines).rstrip() + "\n"


class StatusReporter:
    """
    Publishes run summaries.

    Usage:
        reporter = StatusReporter(GitHubCommentStore(repo, token), component="app")
        await reporter.report(summary, pull_request=12)
    """

    def __init__(self, store: Optional[StatusStore], component: str = "app"):
        self.store = store
        self.component = component

    async def report(self, summary: RunSummary, pull_request: Optional[int] = None) -> str:
        """
        Render and upsert the summary.

        Push events (no pull request) and runs without a store only log it.

        Returns:
            The rendered body
        """
        signature = signature_for(self.component, pull_request) if pull_request is not None else None
        body = render_summary(summary, signature)

        logger.info(f"[REPORTER] 📋 {summary.headline}")
        for outcome in summary.stages:
            logger.info(f"[REPORTER]    {outcome.stage.value}: {outcome.status.value} {truncate_for_log(outcome.detail, 200)}".rstrip())

        if pull_request is None:
            logger.info("[REPORTER] ⏭️ No pull request for this event, status record not published")
            return body
        if self.store is None:
            logger.warning(f"[REPORTER] ⚠️ No status store configured, PR #{pull_request} not updated")
            return body

        try:
            await self.store.upsert(signature, body, pull_request=pull_request)
        except Exception as e:
            logger.error(f"[REPORTER] ❌ Failed to publish status for PR #{pull_request}: {e}")

        return body
