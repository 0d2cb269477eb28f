"""Unit tests for the GitHub provider against a mocked HTTP transport."""

import asyncio
import json
from pathlib import Path

import httpx
import pytest

from langpulse.providers import get_provider
from langpulse.providers.github import GitHubProvider, PayloadError
from langpulse.storage.sqlite import HttpCache


def _repo(name: str, owner: str = "octo", **extra):
    data = {"id": len(name), "name": name, "owner": {"login": owner}, "stargazers_count": 10}
    data.update(extra)
    return data


class Recorder:
    """MockTransport handler that routes by path and keeps every request."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes[request.url.path]
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)


@pytest.fixture
def make_provider(settings):
    def _make(routes, cache=None):
        recorder = Recorder(routes)
        transport = httpx.MockTransport(recorder)
        provider = GitHubProvider(settings, transport=transport, async_transport=transport, cache=cache)
        return provider, recorder

    return _make


class TestTopRepositories:
    """Tests for the repository search call."""

    def test_query_and_parsing(self, make_provider) -> None:
        """Search is by language, stars descending, first page only."""
        provider, rec = make_provider({"/search/repositories": {"items": [_repo("a"), _repo("b")]}})

        repos = provider.fetch_top_repositories("C++", 10)

        assert [r.name for r in repos] == ["a", "b"]
        params = rec.requests[0].url.params
        assert params["q"] == "language:C++"
        assert (params["sort"], params["order"], params["per_page"], params["page"]) == ("stars", "desc", "10", "1")

    def test_auth_and_user_agent_headers(self, make_provider) -> None:
        """Token and user agent accompany every request."""
        provider, rec = make_provider({"/search/repositories": {"items": []}})

        provider.fetch_top_repositories("Rust")

        headers = rec.requests[0].headers
        assert headers["Authorization"] == "Bearer t0ken"
        assert headers["User-Agent"] == "langpulse/0.1.0"
        assert headers["Accept"] == "application/vnd.github+json"

    @pytest.mark.parametrize(("requested", "sent"), [(0, "1"), (500, "100"), (25, "25")])
    def test_per_page_clamped(self, make_provider, requested, sent) -> None:
        """The page size is clamped to what the API accepts."""
        provider, rec = make_provider({"/search/repositories": {"items": []}})

        provider.fetch_top_repositories("Java", requested)

        assert rec.requests[0].url.params["per_page"] == sent

    def test_missing_items_is_payload_error(self, make_provider) -> None:
        """A search response without ``items`` fails the call."""
        provider, _ = make_provider({"/search/repositories": {"message": "weird"}})

        with pytest.raises(PayloadError):
            provider.fetch_top_repositories("Java")

    def test_http_error_propagates(self, make_provider) -> None:
        """Non-success statuses surface as httpx errors."""
        provider, _ = make_provider({"/search/repositories": lambda r: httpx.Response(500, json={})})

        with pytest.raises(httpx.HTTPStatusError):
            provider.fetch_top_repositories("Java")

    def test_invalid_json(self, make_provider) -> None:
        """A body that is not JSON is a payload error."""
        provider, _ = make_provider({"/search/repositories": lambda r: httpx.Response(200, text="<html>")})

        with pytest.raises(PayloadError, match="invalid JSON"):
            provider.fetch_top_repositories("Java")


class TestRepositoryDetails:
    """Tests for forks, commits and issues."""

    def test_forks_newest_first_and_direct_only(self, make_provider) -> None:
        """Forks of forks are filtered out."""
        provider, rec = make_provider(
            {
                "/repos/octo/tool/forks": [
                    _repo("tool", owner="alice"),
                    _repo("tool", owner="bob", parent={"full_name": "alice/tool"}),
                    _repo("tool", owner="carol", parent={"full_name": "Octo/Tool"}),
                ]
            }
        )

        forks = provider.fetch_repo_forks("octo", "tool")

        assert [f.owner.login for f in forks] == ["alice", "carol"]
        params = rec.requests[0].url.params
        assert (params["sort"], params["per_page"]) == ("newest", "100")

    def test_recent_commits_window(self, make_provider) -> None:
        """Commits are listed fifty at a time."""
        provider, rec = make_provider(
            {"/repos/octo/tool/commits": [{"sha": "a1", "commit": {"author": {"date": "2024-01-01T00:00:00Z"}}}]}
        )

        commits = provider.fetch_recent_commits("octo", "tool")

        assert [c.sha for c in commits] == ["a1"]
        assert rec.requests[0].url.params["per_page"] == "50"

    def test_commit_detail(self, make_provider) -> None:
        """The detail endpoint supplies files."""
        provider, _ = make_provider(
            {"/repos/octo/tool/commits/a1": {"sha": "a1", "files": [{"filename": "x.c", "changes": 2}]}}
        )

        commit = provider.fetch_commit_with_files("octo", "tool", "a1")

        assert [(f.path, f.change_score) for f in commit.files_changed] == [("x.c", 2)]

    def test_open_issues_exclude_pull_requests(self, make_provider) -> None:
        """Pull requests and closed entries are dropped."""
        provider, rec = make_provider(
            {
                "/repos/octo/tool/issues": [
                    {"title": "real issue", "state": "open"},
                    {"title": "a PR", "state": "open", "pull_request": {"url": "..."}},
                    {"title": "stale", "state": "closed"},
                ]
            }
        )

        issues = provider.fetch_open_issues("octo", "tool")

        assert [i.title for i in issues] == ["real issue"]
        assert rec.requests[0].url.params["state"] == "open"

    def test_non_array_response(self, make_provider) -> None:
        """List endpoints must return arrays."""
        provider, _ = make_provider({"/repos/octo/tool/issues": {"message": "Not Found"}})

        with pytest.raises(PayloadError):
            provider.fetch_open_issues("octo", "tool")

    def test_async_commits(self, make_provider) -> None:
        """The async variant hits the same endpoint."""
        provider, rec = make_provider({"/repos/octo/fork/commits": [{"sha": "b2"}]})

        async def run():
            async with provider.async_client() as client:
                return await provider.fetch_recent_commits_async(client, "octo", "fork")

        commits = asyncio.run(run())

        assert [c.sha for c in commits] == ["b2"]
        assert rec.requests[0].url.path == "/repos/octo/fork/commits"


class TestEtagCache:
    """Tests for conditional requests."""

    def test_not_modified_served_from_cache(self, make_provider, tmp_path: Path) -> None:
        """A 304 answer reuses the cached body."""
        calls = []

        def search(request: httpx.Request) -> httpx.Response:
            calls.append(request.headers.get("If-None-Match"))
            if request.headers.get("If-None-Match") == '"v1"':
                return httpx.Response(304)
            return httpx.Response(200, json={"items": [_repo("cached")]}, headers={"ETag": '"v1"'})

        provider, _ = make_provider(
            {"/search/repositories": search}, cache=HttpCache(tmp_path / "cache.sqlite")
        )

        first = provider.fetch_top_repositories("Rust")
        second = provider.fetch_top_repositories("Rust")

        assert calls == [None, '"v1"']
        assert [r.name for r in first] == [r.name for r in second] == ["cached"]

    def test_cache_round_trip(self, tmp_path: Path) -> None:
        """Entries are stored and read back by URL."""
        cache = HttpCache(tmp_path / "c.sqlite")
        cache.set("https://api.test/x", '"e"', None, json.dumps([1]), "2024-01-01T00:00:00+00:00")

        entry = cache.get("https://api.test/x")

        assert entry["etag"] == '"e"'
        assert json.loads(entry["body"]) == [1]
        assert cache.get("https://api.test/missing") is None


class TestGetProvider:
    """Tests for provider lookup."""

    def test_github(self, settings) -> None:
        """The GitHub provider is known by name."""
        provider = get_provider("github", settings)

        assert isinstance(provider, GitHubProvider)
        assert provider.cache is None

    def test_unknown(self, settings) -> None:
        """Unknown names are rejected."""
        with pytest.raises(ValueError, match="Unknown provider"):
            get_provider("gitlab", settings)
