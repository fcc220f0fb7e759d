"""Integration and reader configuration."""

from __future__ import annotations

import json
import urllib.parse
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from gl_reader.errors import ConfigError
from gl_reader.models import (
    API_V4,
    DEFAULT_GITLAB_HOST,
    DEFAULT_PROJECT_ID_CACHE_MAX_SIZE,
    DEFAULT_PROJECT_ID_CACHE_TTL_MS,
)


@dataclass(frozen=True)
class GitLabIntegrationConfig:
    """Connection details for one GitLab instance."""

    host: str = DEFAULT_GITLAB_HOST
    api_base_url: str = f"https://{DEFAULT_GITLAB_HOST}{API_V4}"
    base_url: str = f"https://{DEFAULT_GITLAB_HOST}"
    token: str | None = None

    @property
    def relative_path(self) -> str:
        """Path prefix of a self-hosted instance served below the root, e.g. ``/gitlab``."""
        if self.host == DEFAULT_GITLAB_HOST:
            return ""
        return urllib.parse.urlsplit(self.base_url).path.rstrip("/")

    def request_headers(self, token: str | None = None) -> dict[str, str]:
        token = token or self.token
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}


@dataclass(frozen=True)
class ReaderOptions:
    """Options resolved once when a reader is constructed."""

    project_id_cache_ttl: float = DEFAULT_PROJECT_ID_CACHE_TTL_MS / 1000  # seconds
    project_id_cache_max_size: int = DEFAULT_PROJECT_ID_CACHE_MAX_SIZE


def _check_url(value: str, key: str) -> str:
    parsed = urllib.parse.urlsplit(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"Invalid URL for '{key}': {value!r}")
    return value.rstrip("/")


def read_integration_config(data: dict[str, Any]) -> GitLabIntegrationConfig:
    """Build a GitLabIntegrationConfig from one ``integrations.gitlab`` entry."""
    host = data.get("host", DEFAULT_GITLAB_HOST)
    if not isinstance(host, str) or not host or "/" in host:
        raise ConfigError(f"Invalid GitLab host: {host!r}")

    token = data.get("token")
    if token is not None and (not isinstance(token, str) or not token.strip()):
        raise ConfigError(f"Invalid token for GitLab integration '{host}': must be a non-empty string")

    base_url = data.get("baseUrl") or f"https://{host}"
    api_base_url = data.get("apiBaseUrl")
    if not api_base_url:
        if host == DEFAULT_GITLAB_HOST:
            api_base_url = f"https://{DEFAULT_GITLAB_HOST}{API_V4}"
        else:
            api_base_url = f"{base_url.rstrip('/')}{API_V4}"

    return GitLabIntegrationConfig(
        host=host,
        api_base_url=_check_url(api_base_url, "apiBaseUrl"),
        base_url=_check_url(base_url, "baseUrl"),
        token=token.strip() if token else None,
    )


def read_integration_configs(config: dict[str, Any]) -> list[GitLabIntegrationConfig]:
    """Read every configured GitLab integration, adding gitlab.com if it is missing."""
    entries = config.get("integrations", {}).get("gitlab", []) or []
    integrations = [read_integration_config(entry) for entry in entries]
    if not any(i.host == DEFAULT_GITLAB_HOST for i in integrations):
        integrations.append(GitLabIntegrationConfig())
    return integrations


def read_reader_options(config: dict[str, Any]) -> ReaderOptions:
    """Read the project id cache settings from the ``gitlab`` section."""
    section = config.get("gitlab", {}) or {}
    ttl_ms = section.get("projectIdMapCacheTTL", DEFAULT_PROJECT_ID_CACHE_TTL_MS)
    max_size = section.get("projectIdMapCacheMaxSize", DEFAULT_PROJECT_ID_CACHE_MAX_SIZE)
    if isinstance(ttl_ms, bool) or not isinstance(ttl_ms, (int, float)) or ttl_ms <= 0:
        raise ConfigError(f"gitlab.projectIdMapCacheTTL must be a positive number, got {ttl_ms!r}")
    if isinstance(max_size, bool) or not isinstance(max_size, int) or max_size <= 0:
        raise ConfigError(f"gitlab.projectIdMapCacheMaxSize must be a positive integer, got {max_size!r}")
    return ReaderOptions(project_id_cache_ttl=ttl_ms / 1000, project_id_cache_max_size=max_size)


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load a JSON configuration document."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data
