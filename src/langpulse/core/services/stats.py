from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime, timezone

from langpulse.core.models import LanguageReport, RepoMetrics, Repository, StatsConfig


def _aware(dt: datetime) -> datetime:
    # naive timestamps are taken as UTC so they compare with aware ones
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def aggregate_totals(repos: Sequence[Repository]) -> tuple[int, int, int]:
    """Return ``(total_stars, total_forks, total_open_issues)``.

    Open issues are counted from the fetched ``issues`` sequence, not from the
    ``open_issue_count`` reported by the search API.
    """
    total_stars = sum(r.star_count for r in repos)
    total_forks = sum(r.fork_count for r in repos)
    total_open_issues = sum(len(r.issues) for r in repos)
    return total_stars, total_forks, total_open_issues


def top_modified_files(repo: Repository, limit: int = 3) -> list[tuple[str, int]]:
    """Most modified paths across ``repo.recent_commits``.

    Scores accumulate per path; ordering is descending score, then ascending
    path. An empty list means the commits carried no file detail.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")
    by_file: dict[str, int] = defaultdict(int)
    for commit in repo.recent_commits:
        for change in commit.files_changed:
            by_file[change.path] += change.change_score
    items = sorted(by_file.items(), key=lambda kv: (-kv[1], kv[0]))
    return items[:limit]


def count_new_commits(fork: Repository) -> int:
    if fork.created_at is None:
        return 0
    created = _aware(fork.created_at)
    return sum(
        1
        for c in fork.recent_commits
        if c.author_date is not None and _aware(c.author_date) > created
    )


def new_fork_commit_count(repo: Repository, max_forks_to_process: int = 20) -> int:
    """Commits made in forks after they were created.

    Only the first ``max_forks_to_process`` forks are looked at, in the order
    the provider returned them (newest first).
    """
    if max_forks_to_process <= 0:
        raise ValueError(f"max_forks_to_process must be positive, got {max_forks_to_process}")
    assert all(f.slug != repo.slug for f in repo.forks), f"{repo.slug} lists itself as a fork"
    return sum(count_new_commits(fork) for fork in repo.forks[:max_forks_to_process])


def build_language_report(
    language: str,
    repos: Sequence[Repository],
    config: StatsConfig | None = None,
) -> LanguageReport:
    cfg = config or StatsConfig()
    total_stars, total_forks, total_open_issues = aggregate_totals(repos)
    metrics = tuple(
        RepoMetrics(slug=r.slug, top_files=tuple(top_modified_files(r, cfg.top_files_limit)))
        for r in repos
    )
    fork_commits = sum(new_fork_commit_count(r, cfg.max_forks_to_process) for r in repos)
    return LanguageReport(
        language=language,
        total_stars=total_stars,
        total_forks=total_forks,
        total_open_issues=total_open_issues,
        per_repo_top_files=metrics,
        new_fork_commit_count=fork_commits,
        total_repo_commits=sum(r.commit_count for r in repos),
    )
