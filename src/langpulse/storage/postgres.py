from __future__ import annotations

import os
from typing import Any

try:  # optional dependency at runtime
    import psycopg  # type: ignore[reportMissingImports]
except Exception:  # pragma: no cover
    psycopg = None  # type: ignore[assignment]

from langpulse.core.models import LanguageReport, Repository

from .base import StorageBackend, report_row, repo_row


def get_dsn(explicit: str | None = None) -> str:
    if explicit:
        return explicit
    env = os.getenv("LANGPULSE_PG_DSN") or os.getenv("DATABASE_URL")
    if not env:
        raise RuntimeError("Postgres DSN not provided. Set LANGPULSE_PG_DSN or DATABASE_URL.")
    return env


def ensure_schema(conn: Any) -> None:
    with conn.cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS langpulse_repos (
                full_name TEXT PRIMARY KEY,
                url TEXT NOT NULL,
                name TEXT NOT NULL,
                owner TEXT NOT NULL,
                language TEXT NOT NULL,
                stars BIGINT NOT NULL DEFAULT 0,
                forks BIGINT NOT NULL DEFAULT 0,
                open_issues BIGINT NOT NULL DEFAULT 0,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            CREATE TABLE IF NOT EXISTS langpulse_reports (
                language TEXT PRIMARY KEY,
                total_stars BIGINT NOT NULL,
                total_forks BIGINT NOT NULL,
                total_open_issues BIGINT NOT NULL,
                new_fork_commits BIGINT NOT NULL,
                total_repo_commits BIGINT NOT NULL,
                top_files JSONB NOT NULL,
                generated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            );
            """
        )


def save_repository(conn: Any, repo: Repository) -> int:
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO langpulse_repos (full_name, url, name, owner, language, stars, forks, open_issues)
            VALUES (%(full_name)s, %(url)s, %(name)s, %(owner)s, %(language)s,
                    %(stars)s, %(forks)s, %(open_issues)s)
            ON CONFLICT (full_name) DO UPDATE SET
              stars = EXCLUDED.stars,
              forks = EXCLUDED.forks,
              open_issues = EXCLUDED.open_issues,
              updated_at = now()
            """,
            repo_row(repo),
        )
    return 1


def save_report(conn: Any, report: LanguageReport) -> int:
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO langpulse_reports (
                language, total_stars, total_forks, total_open_issues,
                new_fork_commits, total_repo_commits, top_files
            )
            VALUES (%(language)s, %(total_stars)s, %(total_forks)s, %(total_open_issues)s,
                    %(new_fork_commits)s, %(total_repo_commits)s, %(top_files)s::jsonb)
            ON CONFLICT (language) DO UPDATE SET
              total_stars = EXCLUDED.total_stars,
              total_forks = EXCLUDED.total_forks,
              total_open_issues = EXCLUDED.total_open_issues,
              new_fork_commits = EXCLUDED.new_fork_commits,
              total_repo_commits = EXCLUDED.total_repo_commits,
              top_files = EXCLUDED.top_files,
              generated_at = now()
            """,
            report_row(report),
        )
    return 1


class PostgresStorage(StorageBackend):
    def __init__(self, dsn: str | None = None, conn: Any = None) -> None:
        if conn is None:
            if psycopg is None:  # pragma: no cover
                raise RuntimeError("psycopg is not installed. pip install 'langpulse[postgres]'")
            conn = psycopg.connect(get_dsn(dsn), autocommit=True)
        self._conn = conn

    def ensure_schema(self) -> None:
        ensure_schema(self._conn)

    def save_repository(self, repo: Repository) -> int:
        return save_repository(self._conn, repo)

    def save_report(self, report: LanguageReport) -> int:
        return save_report(self._conn, report)

    def close(self) -> None:
        self._conn.close()
