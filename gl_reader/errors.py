"""Exception hierarchy for gl-reader."""

from __future__ import annotations


class GitLabReaderError(Exception):
    """Base class for all reader errors."""


class ConfigError(GitLabReaderError, ValueError):
    """Integration or reader configuration is invalid."""


class ParseError(GitLabReaderError, ValueError):
    """The URL does not match any recognized GitLab route shape."""


class NotFoundError(GitLabReaderError):
    """Repository, branch, project or file does not exist."""


class NotModifiedError(GitLabReaderError):
    """The caller's etag / last-modified token is still current."""

    def __init__(self, message: str = "Not modified", etag: str | None = None):
        super().__init__(message)
        self.etag = etag


class UpstreamError(GitLabReaderError):
    """GitLab answered with an unexpected status code."""

    def __init__(self, status: int, body: str, url: str):
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"GitLab error {status} for {url}: {body[:500]}")


class AuthorizationError(UpstreamError):
    """GitLab rejected the credentials (401/403)."""


class ArchiveError(GitLabReaderError):
    """A downloaded archive could not be read."""
