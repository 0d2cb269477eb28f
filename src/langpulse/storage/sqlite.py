from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from langpulse.core.models import LanguageReport, Repository

from .base import StorageBackend, report_row, repo_row


def _default_cache_path() -> Path:
    env = os.getenv("LANGPULSE_CACHE_DB")
    if env:
        return Path(env).expanduser()
    base = Path(os.getenv("XDG_CACHE_HOME", Path.home() / ".cache"))
    path = base / "langpulse" / "http_cache.sqlite"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


_CACHE_SCHEMA = """
CREATE TABLE IF NOT EXISTS langpulse_http_cache (
    url TEXT PRIMARY KEY,
    etag TEXT,
    last_modified TEXT,
    body TEXT NOT NULL,
    fetched_at TEXT NOT NULL
)
"""


@dataclass
class HttpCache:
    """ETag cache for GitHub GET responses, keyed by full URL."""

    path: Path = field(default_factory=_default_cache_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        conn.execute(_CACHE_SCHEMA)
        return conn

    def get(self, url: str) -> Optional[dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT etag, last_modified, body, fetched_at FROM langpulse_http_cache WHERE url = ?",
                (url,),
            ).fetchone()
        return dict(row) if row else None

    def set(self, url: str, etag: Optional[str], last_modified: Optional[str], body: str, fetched_at: str) -> None:
        # responses without validators can never be revalidated
        if not etag and not last_modified:
            return
        with self._connect() as conn:
            conn.execute(
                "REPLACE INTO langpulse_http_cache (url, etag, last_modified, body, fetched_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (url, etag, last_modified, body, fetched_at),
            )


class SQLiteStorage(StorageBackend):
    def __init__(self, dsn: str) -> None:
        # dsn examples: sqlite:///abs/path.db, sqlite:///:memory:
        if dsn == "sqlite:///:memory:":
            self.path = ":memory:"
        elif dsn.startswith("sqlite:///"):
            self.path = dsn[len("sqlite:///") :]
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        else:
            raise ValueError(f"Unsupported sqlite DSN: {dsn}")
        self._conn = sqlite3.connect(self.path)

    def ensure_schema(self) -> None:
        with self._conn as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS langpulse_repos (
                    full_name TEXT PRIMARY KEY,
                    url TEXT NOT NULL,
                    name TEXT NOT NULL,
                    owner TEXT NOT NULL,
                    language TEXT NOT NULL,
                    stars INTEGER NOT NULL DEFAULT 0,
                    forks INTEGER NOT NULL DEFAULT 0,
                    open_issues INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS langpulse_issues (
                    repo_full_name TEXT NOT NULL,
                    idx INTEGER NOT NULL,
                    title TEXT NOT NULL,
                    body TEXT,
                    state TEXT NOT NULL,
                    url TEXT,
                    created_at TEXT,
                    updated_at TEXT,
                    PRIMARY KEY (repo_full_name, idx)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS langpulse_reports (
                    language TEXT PRIMARY KEY,
                    total_stars INTEGER NOT NULL,
                    total_forks INTEGER NOT NULL,
                    total_open_issues INTEGER NOT NULL,
                    new_fork_commits INTEGER NOT NULL,
                    total_repo_commits INTEGER NOT NULL,
                    top_files TEXT NOT NULL
                )
                """
            )

    def save_repository(self, repo: Repository) -> int:
        row = repo_row(repo)
        issues = [
            (
                row["full_name"],
                idx,
                i.title,
                i.body,
                i.state,
                i.html_url,
                i.created_at.isoformat() if i.created_at else None,
                i.updated_at.isoformat() if i.updated_at else None,
            )
            for idx, i in enumerate(repo.issues)
        ]
        with self._conn as conn:
            conn.execute(
                """
                REPLACE INTO langpulse_repos (full_name, url, name, owner, language, stars, forks, open_issues)
                VALUES (:full_name, :url, :name, :owner, :language, :stars, :forks, :open_issues)
                """,
                row,
            )
            conn.execute("DELETE FROM langpulse_issues WHERE repo_full_name = ?", (row["full_name"],))
            conn.executemany(
                """
                INSERT INTO langpulse_issues (repo_full_name, idx, title, body, state, url, created_at, updated_at)
                VALUES (?,?,?,?,?,?,?,?)
                """,
                issues,
            )
        return 1 + len(issues)

    def save_report(self, report: LanguageReport) -> int:
        with self._conn as conn:
            conn.execute(
                """
                REPLACE INTO langpulse_reports (
                    language, total_stars, total_forks, total_open_issues,
                    new_fork_commits, total_repo_commits, top_files
                )
                VALUES (
                    :language, :total_stars, :total_forks, :total_open_issues,
                    :new_fork_commits, :total_repo_commits, :top_files
                )
                """,
                report_row(report),
            )
        return 1

    def close(self) -> None:
        self._conn.close()
