"""GitLab URL reader: the public entry point tying resolver, cache, retriever and search together."""

from __future__ import annotations

import logging
import urllib.parse
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from gl_reader.cache import LruTtlProjectIdCache, ProjectIdCache
from gl_reader.client import GitLabClient
from gl_reader.config import (
    GitLabIntegrationConfig,
    ReaderOptions,
    read_integration_configs,
    read_reader_options,
)
from gl_reader.errors import ParseError
from gl_reader.freshness import ConditionalFetchGuard
from gl_reader.models import DEFAULT_MAX_RETRIES, ReadUrlResponse, RouteKind, SearchResponse
from gl_reader.resolver import UrlResolver
from gl_reader.retriever import ReadTreeResponse, TreeRetriever
from gl_reader.search import SearchEngine


@dataclass
class ReaderRegistration:
    """A reader together with the predicate selecting the URLs it handles."""

    reader: GitLabUrlReader
    predicate: Callable[[str], bool]


class GitLabUrlReader:
    """
    Reads files, trees and glob searches from one GitLab instance.

    The project id cache defaults to an LruTtlProjectIdCache sized from
    ``options``; pass ``project_id_cache`` to share or replace it.
    """

    def __init__(
        self,
        integration: GitLabIntegrationConfig,
        project_id_cache: ProjectIdCache | None = None,
        options: ReaderOptions | None = None,
        client: GitLabClient | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.integration = integration
        self.options = options or ReaderOptions()
        if project_id_cache is None:
            project_id_cache = LruTtlProjectIdCache(
                ttl=self.options.project_id_cache_ttl,
                max_size=self.options.project_id_cache_max_size,
            )
        self.project_id_cache = project_id_cache
        self.client = client or GitLabClient(integration, max_retries=max_retries)
        self.resolver = UrlResolver(integration, self.client, self.project_id_cache)
        self.guard = ConditionalFetchGuard(self.client)
        self.retriever = TreeRetriever(self.client, self.resolver, self.guard)
        self.search_engine = SearchEngine(self.retriever)
        self.logger = logging.getLogger("gl-reader")

    @classmethod
    def factory(cls, config: dict[str, Any], max_retries: int = DEFAULT_MAX_RETRIES) -> list[ReaderRegistration]:
        """One reader per configured GitLab integration, all built from the same options."""
        options = read_reader_options(config)
        registrations = []
        for integration in read_integration_configs(config):
            reader = cls(integration, options=options, max_retries=max_retries)
            registrations.append(ReaderRegistration(reader=reader, predicate=reader.handles))
        return registrations

    def handles(self, url: str) -> bool:
        return urllib.parse.urlsplit(url).netloc == self.integration.host

    def read_url(
        self,
        url: str,
        etag: str | None = None,
        last_modified_after: datetime | None = None,
        token: str | None = None,
    ) -> ReadUrlResponse:
        """Read a single blob or job artifact."""
        target = self.resolver.parse(url)
        return self.retriever.read_file(target, etag=etag, last_modified_after=last_modified_after, token=token)

    def read_tree(
        self,
        url: str,
        etag: str | None = None,
        last_modified_after: datetime | None = None,
        token: str | None = None,
        filter: Callable[[str], bool] | None = None,
    ) -> ReadTreeResponse:
        """Read the tree at ``url``; blob URLs narrow it to the file they name."""
        target = self.resolver.parse(url)
        return self.retriever.fetch(
            target, etag=etag, last_modified_after=last_modified_after, token=token, filter=filter
        )

    def search(self, url: str, etag: str | None = None, token: str | None = None) -> SearchResponse:
        target = self.resolver.parse(url)
        if target.route_kind == RouteKind.JOB_ARTIFACT:
            raise ParseError(f"Job artifact URLs cannot be searched: {url!r}")
        return self.search_engine.search(target, etag=etag, token=token)

    def __str__(self) -> str:
        return f"gitlab{{host={self.integration.host},authed={bool(self.integration.token)}}}"
