"""Repository tree read command."""

from __future__ import annotations

import argparse

from gl_reader.errors import GitLabReaderError, NotFoundError, NotModifiedError
from gl_reader.models import ReadResult
from gl_reader.commands.base import Command, register_command
from gl_reader.commands.read_url import parse_since


@register_command("read-tree")
class ReadTreeCommand(Command):
    """Download a repository tree (optionally a sub-directory) and list or write its files."""

    @staticmethod
    def add_arguments(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--etag", default=None, help="Skip the download if the latest commit has this SHA")
        parser.add_argument(
            "--since",
            type=parse_since,
            default=None,
            help="Skip the download if the latest commit is not newer than this ISO 8601 timestamp",
        )
        parser.add_argument(
            "--output-dir", default=None, help="Write the files below this directory instead of listing them"
        )

    def run(self, url: str) -> ReadResult:
        try:
            tree = self.reader.read_tree(
                url, etag=self.args.etag, last_modified_after=self.args.since, token=self.args.token
            )
        except NotModifiedError:
            return self._record(ReadResult(command=self.command_name, url=url, status="not_modified", etag=self.args.etag))
        except NotFoundError as e:
            return self._record(ReadResult(command=self.command_name, url=url, status="not_found", detail=str(e)))
        except GitLabReaderError as e:
            return self._record(ReadResult(command=self.command_name, url=url, status="error", detail=str(e)))

        files = tree.files()
        if self.args.output_dir:
            tree.dir(self.args.output_dir)
        else:
            for tree_file in files:
                print(tree_file.path)

        return self._record(
            ReadResult(
                command=self.command_name,
                url=url,
                status="ok",
                path=self.args.output_dir or "",
                etag=tree.etag,
                size=len(files),
                detail=f"{len(files)} files",
            )
        )
