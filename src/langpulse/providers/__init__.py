from __future__ import annotations

from typing import Protocol

from langpulse.config import Settings
from langpulse.core.models import Commit, Issue, Repository

from .github import GitHubProvider


class Provider(Protocol):
    id: str

    def fetch_top_repositories(self, language: str, per_page: int = 10) -> list[Repository]: ...

    def fetch_repo_forks(self, owner: str, name: str) -> list[Repository]: ...

    def fetch_recent_commits(self, owner: str, name: str) -> list[Commit]: ...

    def fetch_commit_with_files(self, owner: str, name: str, sha: str) -> Commit: ...

    def fetch_open_issues(self, owner: str, name: str) -> list[Issue]: ...


def get_provider(name: str, settings: Settings | None = None) -> GitHubProvider:
    if name == "github":
        return GitHubProvider(settings)
    raise ValueError(f"Unknown provider: {name}")

__all__ = ["get_provider", "Provider"]
