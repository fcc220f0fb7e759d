"""CLI entry point for gl-reader."""

from __future__ import annotations

import argparse
import os
import sys
import urllib.parse

import requests

# Ensure all commands are registered by importing the commands package
import gl_reader.commands  # noqa: F401
from gl_reader.commands import get_command_registry
from gl_reader.config import load_config_file
from gl_reader.errors import ConfigError
from gl_reader.logging_utils import setup_logging
from gl_reader.models import DEFAULT_MAX_RETRIES
from gl_reader.reader import GitLabUrlReader


def build_config(args: argparse.Namespace) -> dict:
    """Merge the optional JSON config file with GITLAB_URL / --gitlab-url."""
    config = load_config_file(args.config) if args.config else {}
    gitlab_url = args.gitlab_url or os.environ.get("GITLAB_URL")
    if gitlab_url:
        parsed = urllib.parse.urlsplit(gitlab_url)
        if not parsed.scheme or not parsed.netloc:
            raise ConfigError(f"Invalid GitLab URL: {gitlab_url!r}")
        entries = config.setdefault("integrations", {}).setdefault("gitlab", [])
        if not any(entry.get("host", "gitlab.com") == parsed.netloc for entry in entries):
            entries.append({"host": parsed.netloc, "baseUrl": gitlab_url.rstrip("/")})
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gl-reader",
        description="Read files, trees and glob searches from GitLab web URLs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
    GITLAB_TOKEN - GitLab token sent as a Bearer token (optional for public projects)
    GITLAB_URL   - Self-hosted GitLab instance URL, may include a relative path

Examples:
    # Print a single file
    gl-reader read-url https://gitlab.com/myorg/myproject/-/blob/main/README.md

    # Write a sub-directory of a repository to disk
    gl-reader read-tree https://gitlab.com/myorg/myproject/-/tree/main/docs --output-dir ./docs

    # Skip the download when nothing changed since the last run
    gl-reader read-tree https://gitlab.com/myorg/myproject --etag 1f2e3d4c

    # Find files by glob, JSON summary on stderr
    gl-reader --json search 'https://gitlab.com/myorg/myproject/-/tree/main/docs/**/index.*'
""",
    )
    parser.add_argument("--json", action="store_true", dest="json_output", help="Output results as JSON lines (to stderr)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", default=None, help="JSON config file with integrations.gitlab and gitlab sections")
    parser.add_argument(
        "--gitlab-url", default=None, help="Self-hosted GitLab instance URL (default: from GITLAB_URL env)"
    )
    parser.add_argument(
        "--max-retries",
        type=int,
        default=DEFAULT_MAX_RETRIES,
        help=f"Maximum retry attempts for transient errors (default: {DEFAULT_MAX_RETRIES})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    registry = get_command_registry()
    for name, cmd_cls in sorted(registry.items()):
        sub = subparsers.add_parser(name, help=cmd_cls.__doc__)
        sub.add_argument("target_url", help="GitLab web URL")
        cmd_cls.add_arguments(sub)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.token = os.environ.get("GITLAB_TOKEN") or None

    # Setup logging
    logger = setup_logging(json_mode=args.json_output, verbose=args.verbose)

    try:
        registrations = GitLabUrlReader.factory(build_config(args), max_retries=args.max_retries)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    reader = next((r.reader for r in registrations if r.predicate(args.target_url)), None)
    if reader is None:
        logger.error(f"No GitLab integration configured for {args.target_url}")
        return 1
    logger.debug(f"Using reader {reader}")

    registry = get_command_registry()
    command = registry[args.command](reader=reader, args=args)

    try:
        result = command.run(args.target_url)
    except requests.RequestException as e:
        logger.error(f"Fatal transport error: {e}")
        return 1
    except OSError as e:
        logger.error(f"Could not write output: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    # Exit code: non-zero unless the read succeeded or was short-circuited
    return 0 if result.status in ("ok", "not_modified") else 1


if __name__ == "__main__":
    sys.exit(main())
