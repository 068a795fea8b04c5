"""
Launchpad Command Line Interface

    launchpad run      Full pipeline for a source-control event
    launchpad inspect  Print the runtime classification of a project
    launchpad package  Build the artifact for an environment, no deploy
    launchpad history  List recorded deployment attempts

CI variables (GITHUB_REF, GITHUB_EVENT_PATH, ...) are read here and nowhere
else; the pipeline only sees the TriggerEvent built from them.
"""

import argparse
import asyncio
import json
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from launchpad.builder import PackageBuilder, describe_artifact
from launchpad.config import CONFIG_FILE_NAME, ConfigError, LaunchpadConfig, RuntimeSettings, load_config
from launchpad.core.error_recovery import ErrorRecoverySystem, LaunchpadError
from launchpad.core.logger import get_logger, setup_logging
from launchpad.database import close_database, configure_database, health_check
from launchpad.inspector import inspect_project, runtime_dependencies
from launchpad.orchestrator import EXIT_CANCELLED, Pipeline, TriggerEvent
from launchpad.services import DeploymentHistory

logger = get_logger("cli")

EXIT_CONFIG_ERROR = 1


def read_pull_request_number(event_path: Optional[str]) -> Optional[int]:
    """PR number from the CI event payload, if the event is a pull request."""
    if not event_path or not Path(event_path).is_file():
        return None
    try:
        with open(event_path, encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"[CLI] ⚠️ Could not read event payload {event_path}: {e}")
        return None
    pull_request = payload.get("pull_request")
    if isinstance(pull_request, dict) and pull_request.get("number") is not None:
        return int(pull_request["number"])
    return None


def trigger_from_args(args) -> TriggerEvent:
    """Explicit flags win; CI variables fill the gaps."""
    ref = args.ref or os.getenv("GITHUB_REF")
    if not ref:
        raise ConfigError("No ref given: pass --ref or set GITHUB_REF")
    pull_request = args.pr if args.pr is not None else read_pull_request_number(os.getenv("GITHUB_EVENT_PATH"))
    return TriggerEvent(ref=ref, pull_request=pull_request, sha=args.sha or os.getenv("GITHUB_SHA"))


def _load_optional_config(project: Path, config_file: Optional[str]) -> LaunchpadConfig:
    if config_file or (project / CONFIG_FILE_NAME).exists():
        return load_config(project, config_file)
    return LaunchpadConfig()


async def _run_cancellable(coro):
    """Run a coroutine as a task that SIGINT/SIGTERM cancel."""
    task = asyncio.ensure_future(coro)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable on this platform/thread
            pass
    try:
        return await task
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass


# ============================================================================
# COMMANDS
# ============================================================================

async def cmd_run(args) -> int:
    """Run the full pipeline"""
    project = Path(args.project).resolve()
    config = load_config(project, args.config)
    runtime = RuntimeSettings.from_env()
    event = trigger_from_args(args)

    configure_database(runtime.database_url)
    pipeline = Pipeline.from_config(project, config, runtime)
    try:
        result = await _run_cancellable(pipeline.run(event))
    except asyncio.CancelledError:
        print("🛑 Run cancelled")
        return EXIT_CANCELLED
    finally:
        await close_database()

    if args.json:
        print(json.dumps({
            "exit_code": result.exit_code,
            "headline": result.summary.headline,
            "stages": [s.model_dump(mode="json") for s in result.stages],
            "artifact_sha256": result.artifact.sha256 if result.artifact else None,
        }, indent=2))
    else:
        print(result.report)
    return result.exit_code


async def cmd_inspect(args) -> int:
    """Print the runtime classification"""
    analysis = inspect_project(args.path)
    dependencies = runtime_dependencies(args.path)
    if args.json:
        print(json.dumps({
            "classification": analysis.classification.value,
            "package_manager": analysis.package_manager.value,
            "markers": list(analysis.markers),
            "runtime_dependencies": dependencies,
            "warnings": list(analysis.warnings),
        }, indent=2))
    else:
        print(f"🔍 {analysis.classification.value} (package manager: {analysis.package_manager.value})")
        if dependencies:
            print(f"   dependencies: {', '.join(dependencies)}")
        for warning in analysis.warnings:
            print(f"  ⚠️ {warning}")
    return 0


async def cmd_package(args) -> int:
    """Build the artifact only"""
    project = Path(args.path).resolve()
    config = _load_optional_config(project, args.config)
    settings = config.pipeline

    analysis = inspect_project(project)
    builder = PackageBuilder(
        output_dir=args.output_dir or settings.output_dir,
        component=settings.component,
        dependency_timeout=settings.dependency_timeout,
    )
    try:
        artifact = await builder.build(project, analysis, args.environment)
    except LaunchpadError as e:
        print(f"❌ {e.message}")
        return ErrorRecoverySystem().exit_code_for(e.error_type)

    print(f"📦 {describe_artifact(artifact)}")
    print(f"   sha256 {artifact.sha256}")
    return 0


async def cmd_history(args) -> int:
    """List deployment attempts"""
    runtime = RuntimeSettings.from_env()
    configure_database(runtime.database_url)
    try:
        if not await health_check():
            print("❌ Deployment history database unavailable")
            return 1
        attempts = await DeploymentHistory().list_attempts(args.environment, limit=args.limit)
    finally:
        await close_database()

    if not attempts:
        print("📂 No deployment attempts recorded.")
        return 0
    for attempt in attempts:
        print(
            f"  {attempt.timestamp:%Y-%m-%d %H:%M:%S}  {attempt.environment:<12} "
            f"{attempt.outcome.value:<9} {attempt.artifact_hash[:12]}  {attempt.attempt_id[:8]}"
            + (f"  {attempt.detail}" if attempt.detail else "")
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="launchpad", description="Launchpad - serverless deployment pipeline")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Inspect, build, resolve, deploy and report")
    run_parser.add_argument("--project", default=".", help="Project root (default: current directory)")
    run_parser.add_argument("--config", help=f"Path to {CONFIG_FILE_NAME}")
    run_parser.add_argument("--ref", help="Source ref (default: $GITHUB_REF)")
    run_parser.add_argument("--pr", type=int, help="Pull request number (default: from $GITHUB_EVENT_PATH)")
    run_parser.add_argument("--sha", help="Commit SHA (default: $GITHUB_SHA)")
    run_parser.add_argument("--json", action="store_true", help="Output as JSON")
    run_parser.set_defaults(func=cmd_run)

    inspect_parser = subparsers.add_parser("inspect", help="Print the runtime classification")
    inspect_parser.add_argument("path", nargs="?", default=".", help="Project root")
    inspect_parser.add_argument("--json", action="store_true", help="Output as JSON")
    inspect_parser.set_defaults(func=cmd_inspect)

    package_parser = subparsers.add_parser("package", help="Build the deployment artifact only")
    package_parser.add_argument("path", nargs="?", default=".", help="Project root")
    package_parser.add_argument("--environment", required=True, help="Environment name used in the artifact name")
    package_parser.add_argument("--config", help=f"Path to {CONFIG_FILE_NAME}")
    package_parser.add_argument("--output-dir", help="Override the output directory")
    package_parser.set_defaults(func=cmd_package)

    history_parser = subparsers.add_parser("history", help="List recorded deployment attempts")
    history_parser.add_argument("environment", nargs="?", help="Only this environment")
    history_parser.add_argument("--limit", type=int, default=20, help="Maximum attempts to show")
    history_parser.set_defaults(func=cmd_history)

    return parser


def main(argv=None) -> int:
    load_dotenv()
    setup_logging()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except ConfigError as e:
        print(f"❌ {e}")
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        return EXIT_CANCELLED


if __name__ == "__main__":
    sys.exit(main())
