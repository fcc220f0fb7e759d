"""Data models and constants for gl-reader."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_GITLAB_HOST = "gitlab.com"
API_V4 = "/api/v4"

# Retry configuration
DEFAULT_MAX_RETRIES = 3
RETRY_BACKOFF_FACTOR = 0.5  # seconds
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
REQUEST_TIMEOUT = 60  # seconds

# Project id cache defaults
DEFAULT_PROJECT_ID_CACHE_TTL_MS = 10 * 60 * 1000
DEFAULT_PROJECT_ID_CACHE_MAX_SIZE = 1000


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RouteKind(Enum):
    SCOPED_BLOB = "scoped_blob"
    UNSCOPED_BLOB = "unscoped_blob"
    JOB_ARTIFACT = "job_artifact"
    TREE = "tree"

    @property
    def is_blob(self) -> bool:
        return self in (RouteKind.SCOPED_BLOB, RouteKind.UNSCOPED_BLOB)


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GitLabTarget:
    """A GitLab web URL broken down into repository, ref and file path."""

    url: str
    host: str
    origin: str
    relative_path: str
    api_base_url: str
    group_path: tuple[str, ...]
    project: str
    route_kind: RouteKind
    marker: str = ""  # route marker as written in the URL, e.g. "-/blob"
    ref: str | None = None
    file_path: str | None = None
    query: str = ""

    @property
    def repository_path(self) -> str:
        return "/".join((*self.group_path, self.project))

    @property
    def cache_identity(self) -> str:
        return f"{self.origin}{self.relative_path}"

    def web_url(self, path: str | None = None) -> str:
        """Web URL of ``path`` under the same ref and route marker."""
        parts = [f"{self.origin}{self.relative_path}", self.repository_path]
        if self.ref is not None:
            parts.extend([self.marker or "-/tree", self.ref])
        if path:
            parts.append(path.strip("/"))
        return "/".join(parts)


@dataclass
class TreeFile:
    """A single file of an extracted repository tree."""

    path: str
    loader: Callable[[], bytes] = field(repr=False)
    last_modified_at: datetime | None = None

    def content(self) -> bytes:
        return self.loader()


@dataclass
class ReadUrlResponse:
    """Result of a single-file read."""

    data: bytes = field(repr=False)
    etag: str | None = None
    last_modified_at: datetime | None = None

    def buffer(self) -> bytes:
        return self.data


@dataclass
class SearchResponseFile:
    url: str
    loader: Callable[[], bytes] = field(repr=False)
    last_modified_at: datetime | None = None

    def content(self) -> bytes:
        return self.loader()


@dataclass
class SearchResponse:
    files: list[SearchResponseFile]
    etag: str


@dataclass
class ReadResult:
    """Outcome of a single CLI command, for human or JSON output."""

    command: str
    url: str
    status: str  # "ok", "not_modified", "not_found", "error"
    path: str = ""
    etag: str | None = None
    size: int | None = None
    detail: str = ""

    def to_dict(self) -> dict:
        d = {
            "command": self.command,
            "url": self.url,
            "status": self.status,
        }
        if self.path:
            d["path"] = self.path
        if self.etag is not None:
            d["etag"] = self.etag
        if self.size is not None:
            d["size"] = self.size
        if self.detail:
            d["detail"] = self.detail
        return d
