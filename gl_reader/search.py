"""Glob search over a GitLab repository tree."""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Callable

from wcmatch import glob as wcglob

from gl_reader.errors import NotFoundError, ParseError
from gl_reader.models import GitLabTarget, RouteKind, SearchResponse, SearchResponseFile
from gl_reader.retriever import TreeRetriever

_GLOB_CHARS = re.compile(r"[*?\[\]{}!]")


def is_glob(pattern: str) -> bool:
    return bool(_GLOB_CHARS.search(pattern))


def static_prefix(pattern: str) -> str:
    """Leading path segments of ``pattern`` that contain no glob characters."""
    prefix = []
    for segment in pattern.split("/"):
        if is_glob(segment):
            break
        prefix.append(segment)
    return "/".join(s for s in prefix if s)


# "**" spans directories, "{a,b}" expands, "*" stays within one segment.
GLOB_FLAGS = wcglob.GLOBSTAR | wcglob.BRACE | wcglob.FORCEUNIX


def compile_glob(pattern: str) -> Callable[[str], bool]:
    """Matcher for tree-relative paths; the pattern is anchored at the tree root."""
    pattern = pattern.lstrip("/")

    def matches(path: str) -> bool:
        return wcglob.globmatch(path, pattern, flags=GLOB_FLAGS)

    return matches


class SearchEngine:
    """Runs one tree fetch per search and filters its files against a glob."""

    def __init__(self, retriever: TreeRetriever):
        self.retriever = retriever
        self.logger = logging.getLogger("gl-reader")

    def search(self, target: GitLabTarget, etag: str | None = None, token: str | None = None) -> SearchResponse:
        pattern = target.file_path
        if not pattern or target.ref is None:
            raise ParseError(f"Search URL must name a ref and a path or glob: {target.url!r}")

        if not is_glob(pattern):
            return self._read_single(target, etag, token)

        prefix = static_prefix(pattern)
        matches = compile_glob(pattern)
        path_prefix = f"{prefix}/" if prefix else ""
        tree_target = dataclasses.replace(target, route_kind=RouteKind.TREE, file_path=prefix or None)
        self.logger.debug(f"Searching {target.repository_path}@{target.ref} for '{pattern}' below '{prefix}'")

        tree = self.retriever.read_tree(
            tree_target,
            etag=etag,
            token=token,
            filter=lambda path: matches(f"{path_prefix}{path}"),
        )
        files = [
            SearchResponseFile(
                url=target.web_url(f"{path_prefix}{tree_file.path}"),
                loader=tree_file.content,
                last_modified_at=tree_file.last_modified_at,
            )
            for tree_file in tree.files()
        ]
        return SearchResponse(files=files, etag=tree.etag)

    def _read_single(self, target: GitLabTarget, etag: str | None, token: str | None) -> SearchResponse:
        """A literal path: read it as a blob and return it under the input URL."""
        blob_target = target
        if target.route_kind == RouteKind.TREE:
            blob_target = dataclasses.replace(target, route_kind=RouteKind.SCOPED_BLOB)
        try:
            response = self.retriever.read_file(blob_target, etag=etag, token=token)
        except NotFoundError:
            self.logger.debug(f"Literal search path not found: {target.url}")
            return SearchResponse(files=[], etag="")
        return SearchResponse(
            files=[
                SearchResponseFile(
                    url=target.url,
                    loader=response.buffer,
                    last_modified_at=response.last_modified_at,
                )
            ],
            etag=response.etag or "",
        )
