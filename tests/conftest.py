"""Shared test fixtures for gl-reader tests."""

import io
import sys
import tarfile
import zipfile
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from gl_reader.cache import LruTtlProjectIdCache
from gl_reader.client import GitLabClient
from gl_reader.config import GitLabIntegrationConfig
from gl_reader.reader import GitLabUrlReader
from gl_reader.resolver import UrlResolver

# Constants for use in tests - pytest makes conftest.py fixtures available,
# but these constants need to be imported directly from tests
MOCK_GITLAB_URL = "https://gitlab.example.com"
MOCK_API_URL = f"{MOCK_GITLAB_URL}/api/v4"
GITLAB_COM_URL = "https://gitlab.com"
GITLAB_COM_API_URL = f"{GITLAB_COM_URL}/api/v4"

ARCHIVE_FILES = {
    "docs/index.md": "# Test\n",
    "mkdocs.yml": "site_name: Test\n",
}


def make_tar_gz(files: dict[str, str], top_dir: str = "mock-main-sha123abc") -> bytes:
    """Build a GitLab-style .tar.gz archive with every file below ``top_dir``."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(f"{top_dir}/{name}")
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def make_zip(files: dict[str, str], top_dir: str = "mock-main-sha123abc") -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(f"{top_dir}/", "")
        for name, content in files.items():
            archive.writestr(f"{top_dir}/{name}", content)
    return buffer.getvalue()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gitlab_com_integration() -> GitLabIntegrationConfig:
    """gitlab.com with a configured token."""
    return GitLabIntegrationConfig(token="gl-dummy-token")


@pytest.fixture
def self_hosted_integration() -> GitLabIntegrationConfig:
    """Self-hosted instance served at the root."""
    return GitLabIntegrationConfig(
        host="gitlab.example.com",
        api_base_url=MOCK_API_URL,
        base_url=MOCK_GITLAB_URL,
        token="0123456789",
    )


@pytest.fixture
def relative_path_integration() -> GitLabIntegrationConfig:
    """Self-hosted instance served below /gitlab."""
    return GitLabIntegrationConfig(
        host="gitlab.mycompany.com",
        api_base_url="https://gitlab.mycompany.com/gitlab/api/v4",
        base_url="https://gitlab.mycompany.com/gitlab",
        token="0123456789",
    )


@pytest.fixture
def cache(clock) -> LruTtlProjectIdCache:
    return LruTtlProjectIdCache(ttl=60, max_size=500, clock=clock)


@pytest.fixture
def make_resolver(cache):
    """Factory for a UrlResolver over the given integration, sharing the test cache."""

    def _make(integration: GitLabIntegrationConfig) -> UrlResolver:
        return UrlResolver(integration, GitLabClient(integration, max_retries=0), cache)

    return _make


@pytest.fixture
def resolver(make_resolver, gitlab_com_integration) -> UrlResolver:
    return make_resolver(gitlab_com_integration)


@pytest.fixture
def reader(gitlab_com_integration, cache) -> GitLabUrlReader:
    """Reader for gitlab.com without retries."""
    return GitLabUrlReader(gitlab_com_integration, project_id_cache=cache, max_retries=0)


@pytest.fixture
def archive_bytes() -> bytes:
    return make_tar_gz(ARCHIVE_FILES)
