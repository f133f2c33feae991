"""Command-line entry point: print failed CI build links for a range of merged PRs."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from flakescan.core.config import Settings
from flakescan.core.errors import FlakeScanError, MissingCredentialError
from flakescan.dependencies import build_jenkins_client, build_service, get_settings
from flakescan.services.unstable_links import render_report
from flakescan.telemetry import configure_metrics, exporter_from_settings, shutdown_metrics

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flakescan",
        description="Find failed CI builds whose triggering commit is the last commit of a PR "
        "merged between two commits (inclusive).",
    )
    parser.add_argument("commits", nargs="*", metavar="COMMIT", help="START and END commits, as an alternative to the flags")
    parser.add_argument(
        "--test-type",
        "--test_type",
        dest="test_type",
        default="ut",
        help="CI job to scan: ut, kafka-test, mysql-test, pulsar-test, storage-test (default: ut)",
    )
    parser.add_argument("--start-commit", "--start_commit", dest="start_commit", help="Merge commit the range starts with")
    parser.add_argument("--end-commit", "--end_commit", dest="end_commit", help="Merge commit the range ends with")
    parser.add_argument("--github-token", "--github_token", dest="github_token", help="GitHub access token")
    parser.add_argument("--owner", help="Repository owner")
    parser.add_argument("--repo", help="Repository name")
    parser.add_argument("--base-branch", help="Base branch pull requests target")
    parser.add_argument("--fail-fast", action="store_true", default=None, help="Abort on the first unreadable build")
    parser.add_argument("--report-path", help="Append the run report as JSON to this file")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    return parser


def resolve_commits(args: argparse.Namespace, parser: argparse.ArgumentParser) -> tuple[str, str]:
    if args.commits:
        if len(args.commits) != 2:
            parser.error("expected exactly two positional commits: START END")
        if args.start_commit or args.end_commit:
            parser.error("pass commits either positionally or with --start-commit/--end-commit, not both")
        return args.commits[0], args.commits[1]
    if not args.start_commit or not args.end_commit:
        parser.error("--start-commit and --end-commit are required")
    return args.start_commit, args.end_commit


def apply_overrides(config: Settings, args: argparse.Namespace) -> Settings:
    updates: dict[str, object] = {}
    if args.github_token:
        updates["github_token"] = args.github_token
    if args.owner:
        updates["github_owner"] = args.owner
    if args.repo:
        updates["github_repo"] = args.repo
    if args.base_branch:
        updates["base_branch"] = args.base_branch
    if args.fail_fast is not None:
        updates["fail_fast"] = args.fail_fast
    if args.report_path:
        updates["report_backend"] = "file"
        updates["report_path"] = args.report_path
    if args.log_level:
        updates["log_level"] = args.log_level
    return config.model_copy(update=updates)


def main(argv: Sequence[str] | None = None, *, config: Settings | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    start_commit, end_commit = resolve_commits(args, parser)
    config = apply_overrides(config or get_settings(), args)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        job_url = config.job_url(args.test_type)
        exporter = exporter_from_settings(config)
    except ValueError as exc:
        # Unknown test type or report backend.
        print(f"[ERROR] {exc}")
        return 2
    except OSError as exc:
        print(f"[ERROR] cannot prepare report file {config.report_path}: {exc}")
        return 2
    logger.info("scanning %s for commits %s..%s", job_url, start_commit, end_commit)

    configure_metrics(config)
    try:
        with build_jenkins_client(config, args.test_type) as jenkins:
            service = build_service(config, jenkins, exporter)
            report = service.run(start_commit, end_commit, test_type=args.test_type)
    except MissingCredentialError as exc:
        print(f"[ERROR] {exc}")
        return 2
    except FlakeScanError as exc:
        print(f"[ERROR] {exc}")
        return 1
    except OSError as exc:
        print(f"[ERROR] failed to write report to {exporter.path}: {exc}")
        return 1
    finally:
        shutdown_metrics()

    for line in render_report(report):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
