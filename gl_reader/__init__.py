"""
gl-reader: read files, trees and glob searches from GitLab web URLs.

Resolves blob, tree and job-artifact URLs (scoped or unscoped, gitlab.com or
self-hosted below a relative path) into GitLab REST API calls, caches the
path -> project id lookup, and skips downloads when the caller's ETag still
matches the latest commit.

Environment (CLI only):
    GITLAB_TOKEN - GitLab token (optional for public projects)
    GITLAB_URL   - Self-hosted GitLab instance URL
"""

from gl_reader.cache import LruTtlProjectIdCache, ProjectIdCache
from gl_reader.client import GitLabClient
from gl_reader.config import GitLabIntegrationConfig, ReaderOptions
from gl_reader.errors import (
    ArchiveError,
    AuthorizationError,
    ConfigError,
    GitLabReaderError,
    NotFoundError,
    NotModifiedError,
    ParseError,
    UpstreamError,
)
from gl_reader.models import GitLabTarget, RouteKind
from gl_reader.reader import GitLabUrlReader, ReaderRegistration

__version__ = "0.1.0"
__all__ = [
    "ArchiveError",
    "AuthorizationError",
    "ConfigError",
    "GitLabClient",
    "GitLabIntegrationConfig",
    "GitLabReaderError",
    "GitLabTarget",
    "GitLabUrlReader",
    "LruTtlProjectIdCache",
    "NotFoundError",
    "NotModifiedError",
    "ParseError",
    "ProjectIdCache",
    "ReaderOptions",
    "ReaderRegistration",
    "RouteKind",
    "UpstreamError",
    "__version__",
]
