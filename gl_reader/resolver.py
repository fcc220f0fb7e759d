"""Resolution of GitLab web URLs into targets and REST API endpoints."""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

from gl_reader.cache import ProjectIdCache
from gl_reader.client import GitLabClient
from gl_reader.config import GitLabIntegrationConfig
from gl_reader.errors import ParseError
from gl_reader.models import API_V4, GitLabTarget, RouteKind

# A repository path is at least namespace/project.
MIN_REPOSITORY_SEGMENTS = 2


class UrlResolver:
    """Parses GitLab web URLs and builds the matching API URLs."""

    def __init__(self, integration: GitLabIntegrationConfig, client: GitLabClient, cache: ProjectIdCache):
        self.integration = integration
        self.client = client
        self.cache = cache
        self.logger = logging.getLogger("gl-reader")

    # -- Parsing --

    def parse(self, url: str) -> GitLabTarget:
        """
        Parse a GitLab web URL into a GitLabTarget.

        The repository path ends at the first route marker (``-/blob``,
        ``-/jobs/artifacts``, ``-/tree``, ``blob`` or ``tree``). Group and
        project boundaries are not visible in the path, so everything before
        the marker is taken as the repository path. A URL without a marker is
        a bare repository root.
        """
        parsed = urllib.parse.urlsplit(url.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ParseError(f"Not an absolute GitLab URL: {url!r}")

        origin = f"{parsed.scheme}://{parsed.netloc}"
        relative_path = self.integration.relative_path
        path = urllib.parse.unquote(parsed.path)
        if relative_path and (path == relative_path or path.startswith(f"{relative_path}/")):
            path = path[len(relative_path) :]
        else:
            relative_path = ""

        segments = [s for s in path.split("/") if s]
        route_kind, marker, index, tail = self._find_marker(segments, url)

        repository = segments[:index]
        if route_kind == RouteKind.TREE and not marker and repository and repository[-1].endswith(".git"):
            repository[-1] = repository[-1][: -len(".git")]
        if len(repository) < MIN_REPOSITORY_SEGMENTS:
            raise ParseError(f"Could not find a repository path in {url!r}")

        ref: str | None = tail[0] if tail else None
        file_path: str | None = "/".join(tail[1:]) or None

        if route_kind.is_blob and (ref is None or file_path is None):
            raise ParseError(f"Blob URL must contain a ref and a file path: {url!r}")
        if route_kind == RouteKind.JOB_ARTIFACT:
            if len(tail) < 3 or tail[1] != "raw":
                raise ParseError(f"Job artifact URL must have the form <ref>/raw/<path>: {url!r}")
            file_path = "/".join(tail[2:])

        if parsed.netloc == self.integration.host:
            api_base_url = self.integration.api_base_url
        else:
            api_base_url = f"{origin}{relative_path}{API_V4}"

        return GitLabTarget(
            url=url,
            host=parsed.netloc,
            origin=origin,
            relative_path=relative_path,
            api_base_url=api_base_url,
            group_path=tuple(repository[:-1]),
            project=repository[-1],
            route_kind=route_kind,
            marker=marker,
            ref=ref,
            file_path=file_path,
            query=parsed.query if route_kind == RouteKind.JOB_ARTIFACT else "",
        )

    def _find_marker(self, segments: list[str], url: str) -> tuple[RouteKind, str, int, list[str]]:
        """Locate the first route marker; returns (kind, marker, marker index, segments after it)."""
        for i in range(MIN_REPOSITORY_SEGMENTS, len(segments)):
            seg = segments[i]
            if seg == "-":
                rest = segments[i + 1 :]
                if rest[:1] == ["blob"]:
                    return RouteKind.SCOPED_BLOB, "-/blob", i, segments[i + 2 :]
                if rest[:2] == ["jobs", "artifacts"]:
                    return RouteKind.JOB_ARTIFACT, "-/jobs/artifacts", i, segments[i + 3 :]
                if rest[:1] == ["tree"]:
                    return RouteKind.TREE, "-/tree", i, segments[i + 2 :]
                route = "/".join(rest[:1])
                raise ParseError(f"Unsupported GitLab route '-/{route}' in {url!r}")
            # Unscoped routes: the first "blob" or "tree" segment wins, so a
            # group literally named "blob" cannot be addressed this way.
            if seg == "blob":
                return RouteKind.UNSCOPED_BLOB, "blob", i, segments[i + 1 :]
            if seg == "tree":
                return RouteKind.TREE, "tree", i, segments[i + 1 :]
        return RouteKind.TREE, "", len(segments), []

    # -- Project id lookup --

    def get_project(self, target: GitLabTarget, token: str | None = None) -> dict[str, Any]:
        """Fetch the project by path and remember its id."""
        encoded_path = urllib.parse.quote(target.repository_path, safe="")
        project = self.client.get_json(
            f"{target.api_base_url}/projects/{encoded_path}",
            token=token,
            not_found_message=f"Project '{target.repository_path}' not found on {target.cache_identity}",
        )
        self.cache.set_project_id(target.cache_identity, target.repository_path, int(project["id"]))
        return project

    def get_project_id(self, target: GitLabTarget, token: str | None = None) -> int:
        cached = self.cache.get_project_id(target.cache_identity, target.repository_path)
        if cached is not None:
            self.logger.debug(f"Project id cache hit: {target.repository_path} -> {cached}")
            return cached

        self.logger.debug(f"Project id cache miss: {target.repository_path}")
        return int(self.get_project(target, token)["id"])

    # -- API URL builders --

    def file_fetch_url(self, target: GitLabTarget, token: str | None = None) -> str:
        """Raw file endpoint for the target's ref and file path."""
        if target.ref is None or not target.file_path:
            raise ParseError(f"URL does not point at a file: {target.url!r}")
        project_id = self.get_project_id(target, token)
        encoded_file = urllib.parse.quote(target.file_path, safe="")
        query = urllib.parse.urlencode({"ref": target.ref})
        return f"{target.api_base_url}/projects/{project_id}/repository/files/{encoded_file}/raw?{query}"

    def artifact_fetch_url(self, target: GitLabTarget, token: str | None = None) -> str:
        """Job artifact endpoint, preserving the ``?job=`` query."""
        if target.route_kind != RouteKind.JOB_ARTIFACT:
            raise ParseError(f"Unable to process url as a GitLab artifact: {target.url!r}")
        project_id = self.get_project_id(target, token)
        ref = urllib.parse.quote(target.ref or "", safe="")
        url = f"{target.api_base_url}/projects/{project_id}/jobs/artifacts/{ref}/raw/{urllib.parse.quote(target.file_path or '')}"
        if target.query:
            url = f"{url}?{target.query}"
        return url

    def fetch_url(self, target: GitLabTarget, token: str | None = None) -> str:
        """API URL for a single-file read; only blob and artifact routes qualify."""
        if target.route_kind == RouteKind.JOB_ARTIFACT:
            return self.artifact_fetch_url(target, token)
        if target.route_kind.is_blob:
            return self.file_fetch_url(target, token)
        path = urllib.parse.urlsplit(target.url).path
        raise ParseError(f"Failed converting {path} to a project id. Url path must include /blob/.")
