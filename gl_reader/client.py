"""GitLab HTTP transport with retry support."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from gl_reader.config import GitLabIntegrationConfig
from gl_reader.errors import AuthorizationError, NotFoundError, NotModifiedError, UpstreamError
from gl_reader.models import (
    DEFAULT_MAX_RETRIES,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF_FACTOR,
    RETRYABLE_STATUS_CODES,
)


def check_response(resp: requests.Response, not_found_message: str | None = None) -> requests.Response:
    """Map a GitLab response onto the reader's error taxonomy."""
    status = resp.status_code
    if 200 <= status < 300:
        return resp
    if status == 304:
        raise NotModifiedError(etag=resp.headers.get("ETag"))
    if status == 404:
        raise NotFoundError(not_found_message or f"Not found: {resp.url}")
    if status in (401, 403):
        raise AuthorizationError(status, resp.text, resp.url)
    raise UpstreamError(status, resp.text, resp.url)


class GitLabClient:
    """Thin wrapper around the GitLab REST API v4 with retry logic."""

    def __init__(
        self,
        integration: GitLabIntegrationConfig,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.integration = integration
        self.session = requests.Session()
        self.max_retries = max_retries
        self.timeout = timeout
        self.logger = logging.getLogger("gl-reader")

    def _request(
        self,
        method: str,
        url: str,
        token: str | None = None,
        headers: dict[str, str] | None = None,
        **kwargs,
    ) -> requests.Response:
        """Make an HTTP request with retry logic for transient failures."""
        request_headers = self.integration.request_headers(token)
        request_headers.update(headers or {})
        last_exception: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                self.logger.debug(
                    f"{method.upper()} {url} {kwargs.get('params', '')} "
                    f"(attempt {attempt + 1}/{self.max_retries + 1})"
                )
                resp = self.session.request(method, url, headers=request_headers, timeout=self.timeout, **kwargs)

                # Retry on rate limit or server errors
                if resp.status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                    wait_time = self._calculate_backoff(resp, attempt)
                    self.logger.warning(f"Retryable error {resp.status_code}, waiting {wait_time:.1f}s before retry")
                    time.sleep(wait_time)
                    continue

                if resp.status_code >= 400 and resp.status_code != 404:
                    self.logger.debug(f"API error {resp.status_code}: {resp.text[:500]}")
                return resp

            except requests.exceptions.ConnectionError as e:
                last_exception = e
                if attempt < self.max_retries:
                    wait_time = RETRY_BACKOFF_FACTOR * (2**attempt)
                    self.logger.warning(f"Connection error, retrying in {wait_time:.1f}s: {e}")
                    time.sleep(wait_time)
                    continue
                raise

        # Should not reach here, but safety net
        if last_exception:
            raise last_exception
        raise RuntimeError("Unexpected retry loop exit")

    def _calculate_backoff(self, resp: requests.Response, attempt: int) -> float:
        """Calculate backoff time, respecting Retry-After header for 429s."""
        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After")
            if retry_after:
                try:
                    return float(retry_after)
                except ValueError:
                    pass  # Fall through to exponential backoff
        return RETRY_BACKOFF_FACTOR * (2**attempt)

    def get(
        self,
        url: str,
        params: dict | None = None,
        token: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        return self._request("GET", url, token=token, headers=headers, params=params)

    def get_json(
        self,
        url: str,
        params: dict | None = None,
        token: str | None = None,
        not_found_message: str | None = None,
    ) -> Any:
        resp = self.get(url, params=params, token=token)
        return check_response(resp, not_found_message).json()
