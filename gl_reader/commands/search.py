"""Glob search command."""

from __future__ import annotations

import argparse

from gl_reader.errors import GitLabReaderError, NotFoundError, NotModifiedError
from gl_reader.models import ReadResult
from gl_reader.commands.base import Command, register_command


@register_command("search")
class SearchCommand(Command):
    """Find files matching a glob, e.g. https://gitlab.com/org/repo/-/tree/main/docs/**/*.md"""

    @staticmethod
    def add_arguments(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--etag", default=None, help="Skip the search if the latest commit has this SHA")

    def run(self, url: str) -> ReadResult:
        try:
            result = self.reader.search(url, etag=self.args.etag, token=self.args.token)
        except NotModifiedError:
            return self._record(ReadResult(command=self.command_name, url=url, status="not_modified", etag=self.args.etag))
        except NotFoundError as e:
            return self._record(ReadResult(command=self.command_name, url=url, status="not_found", detail=str(e)))
        except GitLabReaderError as e:
            return self._record(ReadResult(command=self.command_name, url=url, status="error", detail=str(e)))

        for found in result.files:
            print(found.url)

        return self._record(
            ReadResult(
                command=self.command_name,
                url=url,
                status="ok" if result.files else "not_found",
                etag=result.etag,
                size=len(result.files),
                detail=f"{len(result.files)} matches",
            )
        )
