"""Shared pytest fixtures for langpulse tests.

Factories build frozen model instances with sensible defaults so each test
only spells out the fields it cares about.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from langpulse.config import Settings
from langpulse.core.models import Commit, FileChange, Issue, Owner, Repository

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    """Keep tests off the user's token, cache and heuristics file."""
    for name in (
        "GITHUB_TOKEN",
        "GH_TOKEN",
        "GITHUB_API_BASE",
        "LANGPULSE_HEURISTICS_FILE",
        "LANGPULSE_MIN_SOURCE_RATIO",
        "LANGPULSE_TOP_N",
        "SENTRY_DSN",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LANGPULSE_HTTP_CACHE", "0")
    monkeypatch.setenv("LANGPULSE_CACHE_DB", str(tmp_path / "http_cache.sqlite"))


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base="https://api.test", github_token="t0ken")


@pytest.fixture
def make_repo() -> Callable[..., Repository]:
    def _make(name: str = "repo", owner: str = "octocat", **fields: Any) -> Repository:
        return Repository(name=name, owner=Owner(login=owner), **fields)

    return _make


@pytest.fixture
def make_commit() -> Callable[..., Commit]:
    counter = iter(range(1, 10_000))

    def _make(
        files: dict[str, int] | None = None,
        author_date: datetime | None = None,
        sha: str | None = None,
    ) -> Commit:
        changes = tuple(FileChange.scored(path, score) for path, score in (files or {}).items())
        return Commit(
            sha=sha or f"{next(counter):040x}",
            author_date=author_date,
            files_changed=changes,
        )

    return _make


@pytest.fixture
def make_issue() -> Callable[..., Issue]:
    def _make(title: str = "bug", **fields: Any) -> Issue:
        fields.setdefault("created_at", T0)
        fields.setdefault("updated_at", T0 + timedelta(days=1))
        return Issue(title=title, **fields)

    return _make
