from __future__ import annotations

from typing import Any, Optional

import redis

from langpulse.core.models import Issue, LanguageReport, Owner, Repository

from .base import StorageBackend, report_row, repo_row


def _hash(values: dict[str, Any]) -> dict[str, str]:
    # redis rejects None; keep every field so readers see a stable shape
    return {k: "" if v is None else str(v) for k, v in values.items()}


class RedisStorage(StorageBackend):
    """Hashes keyed as ``repo:{owner}:{name}``, ``author:{login}``,
    ``issue:{repo_id}:{index}`` and ``report:{language}``.
    """

    def __init__(self, url: str = "redis://localhost:6379/0", client: Optional[Any] = None) -> None:
        self.url = url
        self._client = client

    def _redis(self) -> Any:
        if self._client is None:
            self._client = redis.Redis.from_url(self.url, decode_responses=True)
        return self._client

    def ensure_schema(self) -> None:
        # schemaless
        return None

    @staticmethod
    def repo_key(repo: Repository) -> str:
        return f"repo:{repo.owner.login}:{repo.name}"

    def save_repository(self, repo: Repository) -> int:
        pipe = self._redis().pipeline()
        pipe.hset(self.repo_key(repo), mapping=_hash(repo_row(repo)))
        self._queue_owner(pipe, repo.owner)
        for idx, issue in enumerate(repo.issues):
            self._queue_issue(pipe, repo.id, idx, issue)
        pipe.execute()
        return 2 + len(repo.issues)

    def _queue_owner(self, pipe: Any, owner: Owner) -> None:
        pipe.hset(
            f"author:{owner.login}",
            mapping=_hash(
                {
                    "login": owner.login,
                    "id": owner.id,
                    "url": owner.html_url,
                    "site_admin": str(owner.site_admin).lower(),
                }
            ),
        )

    def _queue_issue(self, pipe: Any, repo_id: int, index: int, issue: Issue) -> None:
        pipe.hset(
            f"issue:{repo_id}:{index}",
            mapping=_hash(
                {
                    "title": issue.title,
                    "body": issue.body,
                    "state": issue.state,
                    "url": issue.html_url,
                    "created_at": issue.created_at.isoformat() if issue.created_at else None,
                    "updated_at": issue.updated_at.isoformat() if issue.updated_at else None,
                }
            ),
        )

    def save_report(self, report: LanguageReport) -> int:
        self._redis().hset(f"report:{report.language}", mapping=_hash(report_row(report)))
        return 1

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
