"""Single file read command."""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

from gl_reader.errors import GitLabReaderError, NotFoundError, NotModifiedError
from gl_reader.models import ReadResult
from gl_reader.commands.base import Command, register_command


def parse_since(value: str) -> datetime:
    """argparse type for ISO 8601 timestamps; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO 8601 timestamp: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@register_command("read-url")
class ReadUrlCommand(Command):
    """Read a single file from a blob or job artifact URL."""

    @staticmethod
    def add_arguments(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--etag", default=None, help="Skip the download if the file still has this ETag")
        parser.add_argument(
            "--since",
            type=parse_since,
            default=None,
            help="Skip the download if the file was not modified after this ISO 8601 timestamp",
        )
        parser.add_argument("--output", "-o", default=None, help="Write the file here instead of stdout")

    def run(self, url: str) -> ReadResult:
        try:
            response = self.reader.read_url(
                url, etag=self.args.etag, last_modified_after=self.args.since, token=self.args.token
            )
        except NotModifiedError:
            return self._record(ReadResult(command=self.command_name, url=url, status="not_modified", etag=self.args.etag))
        except NotFoundError as e:
            return self._record(ReadResult(command=self.command_name, url=url, status="not_found", detail=str(e)))
        except GitLabReaderError as e:
            return self._record(ReadResult(command=self.command_name, url=url, status="error", detail=str(e)))

        data = response.buffer()
        if self.args.output:
            Path(self.args.output).write_bytes(data)
        else:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()

        return self._record(
            ReadResult(
                command=self.command_name,
                url=url,
                status="ok",
                path=self.args.output or "",
                etag=response.etag,
                size=len(data),
            )
        )
