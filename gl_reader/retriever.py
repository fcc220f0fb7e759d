"""Retrieval of repository trees and single files."""

from __future__ import annotations

import logging
import posixpath
import tempfile
from collections.abc import Callable
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from pathlib import Path

from gl_reader.archive import ArchiveHandle, filename_from_disposition
from gl_reader.client import GitLabClient, check_response
from gl_reader.errors import GitLabReaderError
from gl_reader.freshness import ConditionalFetchGuard, Freshness
from gl_reader.models import GitLabTarget, ReadUrlResponse, RouteKind, TreeFile
from gl_reader.resolver import UrlResolver


class ReadTreeResponse:
    """Extracted tree of one retrieval; files are listed once and reused."""

    def __init__(self, files: list[TreeFile], etag: str, last_modified_at: datetime | None = None):
        self._files = files
        self.etag = etag
        self.last_modified_at = last_modified_at

    def files(self) -> list[TreeFile]:
        return list(self._files)

    def dir(self, target_dir: str | Path | None = None) -> str:
        """Write every file below ``target_dir`` (a new temp dir by default) and return its path."""
        root = Path(target_dir) if target_dir else Path(tempfile.mkdtemp(prefix="gl-reader-"))
        root.mkdir(parents=True, exist_ok=True)
        resolved_root = root.resolve()
        for tree_file in self._files:
            dest = (resolved_root / tree_file.path).resolve()
            if not dest.is_relative_to(resolved_root):
                raise GitLabReaderError(f"Refusing to write outside of {root}: {tree_file.path}")
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(tree_file.content())
        return str(root)


def _http_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


class TreeRetriever:
    """Downloads archives and raw files for resolved targets."""

    def __init__(self, client: GitLabClient, resolver: UrlResolver, guard: ConditionalFetchGuard):
        self.client = client
        self.resolver = resolver
        self.guard = guard
        self.logger = logging.getLogger("gl-reader")

    def _resolve_ref(self, target: GitLabTarget, token: str | None) -> tuple[int, str]:
        """Project id and ref; the default branch is looked up when the URL names no ref."""
        if target.ref is not None:
            return self.resolver.get_project_id(target, token), target.ref
        project = self.resolver.get_project(target, token)
        branch = project.get("default_branch")
        if not branch:
            raise GitLabReaderError(f"Project '{target.repository_path}' has no default branch")
        self.logger.debug(f"Using default branch '{branch}' for {target.repository_path}")
        return int(project["id"]), branch

    def read_tree(
        self,
        target: GitLabTarget,
        etag: str | None = None,
        last_modified_after: datetime | None = None,
        token: str | None = None,
        filter: Callable[[str], bool] | None = None,
    ) -> ReadTreeResponse:
        """Download the repository archive for the target and extract it, scoped to ``file_path``."""
        project_id, ref = self._resolve_ref(target, token)
        freshness = self.guard.check(
            target.api_base_url,
            project_id,
            ref,
            target.file_path,
            etag=etag,
            last_modified_after=last_modified_after,
            token=token,
        )

        params = {"sha": ref}
        if target.file_path:
            params["path"] = target.file_path
        resp = self.client.get(
            f"{target.api_base_url}/projects/{project_id}/repository/archive",
            params=params,
            token=token,
        )
        check_response(resp, f"Failed to read tree (archive) from {target.url}")

        archive = ArchiveHandle(
            data=resp.content,
            etag=freshness.etag,
            content_type=resp.headers.get("Content-Type"),
            filename=filename_from_disposition(resp.headers.get("Content-Disposition")),
        )
        files = archive.extract(subpath=target.file_path, filter=filter, last_modified_at=freshness.last_modified_at)
        self.logger.debug(f"Read {len(files)} files from {target.url} at {freshness.etag or ref}")
        return ReadTreeResponse(files, etag=freshness.etag, last_modified_at=freshness.last_modified_at)

    def read_file(
        self,
        target: GitLabTarget,
        etag: str | None = None,
        last_modified_after: datetime | None = None,
        token: str | None = None,
    ) -> ReadUrlResponse:
        """Raw download of one file (blob) or job artifact, with HTTP revalidation headers."""
        fetch_url = self.resolver.fetch_url(target, token)

        headers = {}
        if etag:
            headers["If-None-Match"] = etag
        if last_modified_after:
            if last_modified_after.tzinfo is None:
                last_modified_after = last_modified_after.replace(tzinfo=timezone.utc)
            headers["If-Modified-Since"] = format_datetime(last_modified_after.astimezone(timezone.utc), usegmt=True)

        resp = self.client.get(fetch_url, token=token, headers=headers)
        check_response(resp, f"{target.url} could not be read as {fetch_url}")
        return ReadUrlResponse(
            data=resp.content,
            etag=resp.headers.get("ETag"),
            last_modified_at=_http_date(resp.headers.get("Last-Modified")),
        )

    def fetch(
        self,
        target: GitLabTarget,
        etag: str | None = None,
        last_modified_after: datetime | None = None,
        token: str | None = None,
        filter: Callable[[str], bool] | None = None,
    ) -> ReadTreeResponse:
        """Whole-archive download for tree routes, single-file download for blob and artifact routes."""
        if target.route_kind == RouteKind.TREE:
            return self.read_tree(
                target, etag=etag, last_modified_after=last_modified_after, token=token, filter=filter
            )

        freshness = Freshness(etag="")
        if target.route_kind.is_blob:
            project_id = self.resolver.get_project_id(target, token)
            freshness = self.guard.check(
                target.api_base_url,
                project_id,
                target.ref,
                target.file_path,
                etag=etag,
                last_modified_after=last_modified_after,
                token=token,
            )
            response = self.read_file(target, token=token)
        else:
            response = self.read_file(target, etag=etag, last_modified_after=last_modified_after, token=token)

        name = posixpath.basename(target.file_path or "")
        files = []
        if filter is None or filter(name):
            files.append(TreeFile(path=name, loader=response.buffer, last_modified_at=response.last_modified_at))
        return ReadTreeResponse(
            files,
            etag=freshness.etag or response.etag or "",
            last_modified_at=freshness.last_modified_at or response.last_modified_at,
        )
