"""Tests for project id resolution and API URL building."""

import pytest
import responses

from gl_reader.errors import AuthorizationError, NotFoundError, ParseError, UpstreamError

from conftest import GITLAB_COM_API_URL


def add_project(path: str, project_id: int = 12345, base: str = GITLAB_COM_API_URL, **kwargs):
    responses.add(responses.GET, f"{base}/projects/{path}", json={"id": project_id}, **kwargs)


class TestFileFetchUrl:
    """Tests for blob -> raw file endpoint mapping."""

    @responses.activate
    def test_scoped_route_in_subgroups(self, resolver):
        add_project("groupA%2Fteams%2FteamA%2FsubgroupA%2FrepoA")
        target = resolver.parse(
            "https://gitlab.com/groupA/teams/teamA/subgroupA/repoA/-/blob/branch/my/path/to/file.yaml"
        )
        assert resolver.fetch_url(target) == (
            "https://gitlab.com/api/v4/projects/12345/repository/files/my%2Fpath%2Fto%2Ffile.yaml/raw?ref=branch"
        )

    @responses.activate
    def test_unscoped_branch_named_blob(self, resolver):
        add_project("group%2Fproject")
        target = resolver.parse("https://gitlab.com/group/project/blob/blob/folder/file.yaml")
        assert resolver.fetch_url(target) == (
            "https://gitlab.com/api/v4/projects/12345/repository/files/folder%2Ffile.yaml/raw?ref=blob"
        )

    @responses.activate
    def test_spaces_are_encoded(self, resolver):
        add_project("group%2Fproject")
        target = resolver.parse("https://gitlab.com/group/project/-/blob/branch/folder/file with spaces.yaml")
        assert resolver.fetch_url(target) == (
            "https://gitlab.com/api/v4/projects/12345/repository/files/folder%2Ffile%20with%20spaces.yaml/raw?ref=branch"
        )

    @responses.activate
    def test_self_hosted_with_relative_path(self, make_resolver, relative_path_integration):
        add_project("group%2Fproject", base="https://gitlab.mycompany.com/gitlab/api/v4")
        resolver = make_resolver(relative_path_integration)
        target = resolver.parse("https://gitlab.mycompany.com/gitlab/group/project/-/blob/branch/folder/file.yaml")
        assert resolver.fetch_url(target) == (
            "https://gitlab.mycompany.com/gitlab/api/v4/projects/12345/repository/files/folder%2Ffile.yaml/raw?ref=branch"
        )

    def test_tree_route_is_rejected(self, resolver):
        target = resolver.parse("https://gitlab.com/some/random/endpoint")
        with pytest.raises(ParseError, match="Url path must include /blob/"):
            resolver.fetch_url(target)


class TestArtifactFetchUrl:
    @responses.activate
    def test_job_artifact_keeps_query(self, resolver):
        add_project("group%2Fsubgroup%2Fproject")
        target = resolver.parse(
            "https://gitlab.com/group/subgroup/project/-/jobs/artifacts/branch/raw/my/path/to/file.yaml?job=myJob"
        )
        assert resolver.fetch_url(target) == (
            "https://gitlab.com/api/v4/projects/12345/jobs/artifacts/branch/raw/my/path/to/file.yaml?job=myJob"
        )

    def test_rejects_non_artifact_target(self, resolver):
        target = resolver.parse("https://gitlab.com/group/project/-/blob/main/file.yaml")
        with pytest.raises(ParseError):
            resolver.artifact_fetch_url(target)

    @responses.activate
    def test_unknown_project(self, resolver):
        responses.add(responses.GET, f"{GITLAB_COM_API_URL}/projects/groupA%2Fsubgroup%2Fproject", status=404)
        target = resolver.parse(
            "https://gitlab.com/groupA/subgroup/project/-/jobs/artifacts/branch/raw/file.yaml?job=myJob"
        )
        with pytest.raises(NotFoundError):
            resolver.fetch_url(target)


class TestProjectIdCaching:
    """Tests for read-through caching of project ids."""

    @responses.activate
    def test_uses_cached_project_id(self, resolver, cache):
        cache.set_project_id("https://gitlab.com", "group/project", 67890)
        target = resolver.parse("https://gitlab.com/group/project/-/blob/branch/folder/file.yaml")

        assert resolver.fetch_url(target) == (
            "https://gitlab.com/api/v4/projects/67890/repository/files/folder%2Ffile.yaml/raw?ref=branch"
        )
        assert len(responses.calls) == 0

    @responses.activate
    def test_miss_fetches_and_caches(self, resolver, cache):
        add_project("group%2Fproject")
        target = resolver.parse("https://gitlab.com/group/project/-/blob/branch/folder/file.yaml")

        assert resolver.get_project_id(target) == 12345
        assert cache.get_project_id("https://gitlab.com", "group/project") == 12345

    @responses.activate
    def test_relative_path_is_part_of_identity(self, make_resolver, cache, relative_path_integration):
        cache.set_project_id("https://gitlab.mycompany.com/gitlab", "group/project", 54321)
        resolver = make_resolver(relative_path_integration)
        target = resolver.parse("https://gitlab.mycompany.com/gitlab/group/project/-/blob/branch/file.yaml")

        assert resolver.get_project_id(target) == 54321
        assert len(responses.calls) == 0

    @responses.activate
    def test_one_lookup_within_ttl_and_one_more_after(self, resolver, clock):
        add_project("group%2Fproject")
        target = resolver.parse("https://gitlab.com/group/project/-/blob/branch/file.yaml")

        resolver.get_project_id(target)
        resolver.get_project_id(target)
        assert len(responses.calls) == 1

        clock.advance(61)
        resolver.get_project_id(target)
        assert len(responses.calls) == 2

    @responses.activate
    def test_different_projects_are_cached_separately(self, resolver, cache):
        add_project("group1%2Fproject1", 11111)
        add_project("group2%2Fproject2", 22222)

        first = resolver.parse("https://gitlab.com/group1/project1")
        second = resolver.parse("https://gitlab.com/group2/project2")

        assert resolver.get_project_id(first) == 11111
        assert resolver.get_project_id(second) == 22222
        assert cache.get_project_id("https://gitlab.com", "group1/project1") == 11111
        assert cache.get_project_id("https://gitlab.com", "group2/project2") == 22222


class TestLookupErrors:
    @responses.activate
    def test_401_is_authorization_error(self, resolver):
        responses.add(
            responses.GET,
            f"{GITLAB_COM_API_URL}/projects/user%2Fproject",
            status=401,
            json={"message": "401 Unauthorized"},
        )
        target = resolver.parse("https://gitlab.com/user/project/-/blob/branch/file.yaml")
        with pytest.raises(AuthorizationError) as exc_info:
            resolver.get_project_id(target)
        assert exc_info.value.status == 401

    @responses.activate
    def test_500_is_upstream_error(self, resolver):
        responses.add(responses.GET, f"{GITLAB_COM_API_URL}/projects/user%2Fproject", status=500, body="boom")
        target = resolver.parse("https://gitlab.com/user/project/-/blob/branch/file.yaml")
        with pytest.raises(UpstreamError) as exc_info:
            resolver.get_project_id(target)
        assert exc_info.value.status == 500
        assert exc_info.value.body == "boom"
        assert "user%2Fproject" in exc_info.value.url

    @responses.activate
    def test_failed_lookup_is_not_cached(self, resolver, cache):
        responses.add(responses.GET, f"{GITLAB_COM_API_URL}/projects/user%2Fproject", status=404)
        target = resolver.parse("https://gitlab.com/user/project/-/blob/branch/file.yaml")
        with pytest.raises(NotFoundError):
            resolver.get_project_id(target)
        assert len(cache) == 0


class TestAuthHeaders:
    @responses.activate
    def test_integration_token_is_sent(self, resolver):
        add_project("group%2Fproject")
        resolver.get_project_id(resolver.parse("https://gitlab.com/group/project"))
        assert responses.calls[0].request.headers["Authorization"] == "Bearer gl-dummy-token"

    @responses.activate
    def test_user_token_overrides_integration_token(self, resolver):
        add_project("user%2Fproject")
        resolver.get_project_id(resolver.parse("https://gitlab.com/user/project"), token="gl-user-token")
        assert responses.calls[0].request.headers["Authorization"] == "Bearer gl-user-token"
