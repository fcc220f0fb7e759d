"""Conditional fetch decisions based on the latest commit of a ref/path."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from gl_reader.client import GitLabClient
from gl_reader.errors import NotModifiedError


@dataclass(frozen=True)
class Freshness:
    """Identity of the current content; an empty etag means it could not be determined."""

    etag: str
    last_modified_at: datetime | None = None


def parse_commit_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ConditionalFetchGuard:
    """Raises NotModifiedError before a download when the caller's copy is current."""

    def __init__(self, client: GitLabClient):
        self.client = client
        self.logger = logging.getLogger("gl-reader")

    def latest_commit(
        self,
        api_base_url: str,
        project_id: int,
        ref: str,
        path: str | None = None,
        token: str | None = None,
    ) -> dict | None:
        """Most recent commit on ``ref`` touching ``path``, or None when there is none."""
        params = {"ref_name": ref}
        if path:
            params["path"] = path
        commits = self.client.get_json(
            f"{api_base_url}/projects/{project_id}/repository/commits",
            params=params,
            token=token,
            not_found_message=f"Branch '{ref}' not found",
        )
        if not commits:
            return None
        return commits[0]

    def check(
        self,
        api_base_url: str,
        project_id: int,
        ref: str,
        path: str | None = None,
        etag: str | None = None,
        last_modified_after: datetime | None = None,
        token: str | None = None,
    ) -> Freshness:
        commit = self.latest_commit(api_base_url, project_id, ref, path, token)
        if commit is None:
            self.logger.debug(f"No commits match ref={ref} path={path}, freshness unknown")
            return Freshness(etag="")

        current = Freshness(etag=str(commit.get("id", "")), last_modified_at=parse_commit_date(commit.get("committed_date")))

        if etag and current.etag and etag == current.etag:
            raise NotModifiedError(etag=current.etag)
        if last_modified_after is not None and current.last_modified_at is not None:
            if last_modified_after.tzinfo is None:
                last_modified_after = last_modified_after.replace(tzinfo=timezone.utc)
            if current.last_modified_at <= last_modified_after:
                raise NotModifiedError(etag=current.etag)
        return current
