from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from langpulse.config import Settings, env_bool
from langpulse.core.models import Commit, Issue, Repository
from langpulse.metrics import record
from langpulse.storage.sqlite import HttpCache
from langpulse.utils import (
    github_auth_headers,
    http_async_client,
    http_client,
    http_get,
    http_get_async,
    utcnow_iso,
)

from .parse import (
    PayloadError,
    is_direct_fork,
    parse_commit,
    parse_issue,
    parse_repository,
)

# Single-page windows; pagination beyond the first page is not followed.
SEARCH_MAX_PER_PAGE = 100
FORKS_PER_PAGE = 100
COMMITS_PER_PAGE = 50
ISSUES_PER_PAGE = 100


def _path(template: str, **params: Any) -> str:
    return f"{template}?{httpx.QueryParams(params)}"


class GitHubProvider:
    id = "github"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
        cache: Optional[HttpCache] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self._transport = transport
        self._async_transport = async_transport
        if cache is None and env_bool("LANGPULSE_HTTP_CACHE", True):
            cache = HttpCache()
        self.cache = cache
        self._client: Optional[httpx.Client] = None

    def _auth_headers(self) -> dict[str, str]:
        return github_auth_headers(self.settings)

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = http_client(self.settings, transport=self._transport)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "GitHubProvider":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _cache_key(self, path: str) -> str:
        return f"{self.settings.api_base.rstrip('/')}{path}"

    def _prepare(self, path: str) -> tuple[dict[str, str], Optional[dict[str, Any]]]:
        headers = self._auth_headers()
        cached = self.cache.get(self._cache_key(path)) if self.cache else None
        if cached and cached.get("etag"):
            headers["If-None-Match"] = cached["etag"]
        return headers, cached

    def _decode(self, path: str, resp: httpx.Response, cached: Optional[dict[str, Any]]) -> Any:
        if resp.status_code == 304 and cached:
            body = cached["body"]
        else:
            resp.raise_for_status()
            body = resp.text
            if self.cache is not None:
                self.cache.set(
                    self._cache_key(path),
                    resp.headers.get("ETag"),
                    resp.headers.get("Last-Modified"),
                    body,
                    utcnow_iso(),
                )
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise PayloadError(f"invalid JSON from {path}: {e}") from e

    def _cached_get_json(self, path: str, op: str) -> Any:
        headers, cached = self._prepare(path)
        with record(op):
            resp = http_get(self.client, path, headers=headers)
        return self._decode(path, resp, cached)

    async def _cached_get_json_async(self, client: httpx.AsyncClient, path: str, op: str) -> Any:
        headers, cached = self._prepare(path)
        with record(op):
            resp = await http_get_async(client, path, headers=headers)
        return self._decode(path, resp, cached)

    @staticmethod
    def _as_list(data: Any, what: str) -> list[Any]:
        if not isinstance(data, list):
            raise PayloadError(f"GitHub {what} response was not an array")
        return data

    def fetch_top_repositories(self, language: str, per_page: int = 10) -> list[Repository]:
        per_page = max(1, min(per_page, SEARCH_MAX_PER_PAGE))
        path = _path(
            "/search/repositories",
            q=f"language:{language}",
            sort="stars",
            order="desc",
            per_page=per_page,
            page=1,
        )
        data = self._cached_get_json(path, "github.search")
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise PayloadError("GitHub search response missing `items` array")
        return [parse_repository(item) for item in items]

    def fetch_repo_forks(self, owner: str, name: str) -> list[Repository]:
        path = _path(f"/repos/{owner}/{name}/forks", sort="newest", per_page=FORKS_PER_PAGE, page=1)
        items = self._as_list(self._cached_get_json(path, "github.forks"), "forks")
        base = f"{owner}/{name}"
        return [parse_repository(item) for item in items if is_direct_fork(item, base)]

    def fetch_recent_commits(self, owner: str, name: str) -> list[Commit]:
        path = _path(f"/repos/{owner}/{name}/commits", per_page=COMMITS_PER_PAGE, page=1)
        items = self._as_list(self._cached_get_json(path, "github.commits"), "commits")
        return [parse_commit(item) for item in items]

    async def fetch_recent_commits_async(
        self, client: httpx.AsyncClient, owner: str, name: str
    ) -> list[Commit]:
        path = _path(f"/repos/{owner}/{name}/commits", per_page=COMMITS_PER_PAGE, page=1)
        data = await self._cached_get_json_async(client, path, "github.commits")
        return [parse_commit(item) for item in self._as_list(data, "commits")]

    def fetch_commit_with_files(self, owner: str, name: str, sha: str) -> Commit:
        return parse_commit(self._cached_get_json(f"/repos/{owner}/{name}/commits/{sha}", "github.commit"))

    def fetch_open_issues(self, owner: str, name: str) -> list[Issue]:
        path = _path(f"/repos/{owner}/{name}/issues", state="open", per_page=ISSUES_PER_PAGE, page=1)
        items = self._as_list(self._cached_get_json(path, "github.issues"), "issues")
        # the issues endpoint also lists pull requests
        issues = [parse_issue(item) for item in items if "pull_request" not in item]
        return [i for i in issues if i.state == "open"]

    def async_client(self) -> httpx.AsyncClient:
        return http_async_client(self.settings, transport=self._async_transport)
