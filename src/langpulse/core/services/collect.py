from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from langpulse.config import Settings
from langpulse.core.models import LanguageReport, Repository, StatsConfig
from langpulse.core.services.stats import build_language_report
from langpulse.providers import Provider
from langpulse.providers.github import GitHubProvider, PayloadError
from langpulse.storage.base import StorageBackend
from langpulse.utils import get_logger

# per-item acquisition failures that degrade to empty data
FETCH_ERRORS = (httpx.HTTPError, PayloadError)


@dataclass
class LanguageAnalysis:
    language: str
    repos: list[Repository]
    report: LanguageReport
    stored: int = 0


@dataclass
class BatchResult:
    analyses: list[LanguageAnalysis] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)


def _with_commits_and_issues(provider: Provider, repo: Repository, settings: Settings) -> Repository:
    log = get_logger()
    owner, name = repo.owner.login, repo.name
    update: dict[str, Any] = {}
    try:
        listed = provider.fetch_recent_commits(owner, name)
    except FETCH_ERRORS as e:
        log.warning("commits_failed", repo=repo.slug, error=str(e))
    else:
        detailed = []
        for commit in listed[: settings.max_commits_with_files]:
            try:
                detailed.append(provider.fetch_commit_with_files(owner, name, commit.sha))
            except FETCH_ERRORS as e:
                log.warning("commit_detail_failed", repo=repo.slug, sha=commit.sha[:7], error=str(e))
        update["commit_count"] = len(listed)
        update["recent_commits"] = tuple(detailed)
        log.info("commits_fetched", repo=repo.slug, listed=len(listed), detailed=len(detailed))
    try:
        update["issues"] = tuple(provider.fetch_open_issues(owner, name))
        log.info("issues_fetched", repo=repo.slug, open_issues=len(update["issues"]))
    except FETCH_ERRORS as e:
        log.warning("issues_failed", repo=repo.slug, error=str(e))
    return repo.model_copy(update=update)


def _with_forks(provider: Provider, repo: Repository) -> Repository:
    log = get_logger()
    try:
        forks = provider.fetch_repo_forks(repo.owner.login, repo.name)
    except FETCH_ERRORS as e:
        log.warning("forks_failed", repo=repo.slug, error=str(e))
        return repo
    log.info("forks_fetched", repo=repo.slug, forks=len(forks))
    return repo.model_copy(update={"forks": tuple(forks)})


def _fork_with_commits(provider: Provider, fork: Repository) -> Repository:
    try:
        commits = provider.fetch_recent_commits(fork.owner.login, fork.name)
    except FETCH_ERRORS as e:
        get_logger().warning("fork_commits_failed", fork=fork.slug, error=str(e))
        return fork
    return fork.model_copy(update={"recent_commits": tuple(commits), "commit_count": len(commits)})


def _replace_forks(repo: Repository, processed: list[Repository], limit: int) -> Repository:
    return repo.model_copy(update={"forks": tuple(processed) + repo.forks[limit:]})


def _collect_base(provider: Provider, language: str, settings: Settings) -> list[Repository]:
    log = get_logger()
    repos = provider.fetch_top_repositories(language, settings.top_n)
    log.info("top_repositories_fetched", language=language, count=len(repos))
    repos = [_with_commits_and_issues(provider, r, settings) for r in repos]
    return [_with_forks(provider, r) for r in repos]


def collect_language(provider: Provider, language: str, settings: Settings) -> list[Repository]:
    """Fetch a language snapshot: top repos, their commits, issues, forks and
    the recent commits of the first ``max_forks_to_process`` forks.

    Only the top repository search is allowed to fail the whole language.
    """
    limit = settings.max_forks_to_process
    out = []
    for repo in _collect_base(provider, language, settings):
        processed = [_fork_with_commits(provider, f) for f in repo.forks[:limit]]
        out.append(_replace_forks(repo, processed, limit))
    return out


async def collect_language_async(
    provider: GitHubProvider, language: str, settings: Settings
) -> list[Repository]:
    """Same snapshot as :func:`collect_language`, fork commits fetched concurrently."""
    log = get_logger()
    limit = settings.max_forks_to_process
    # the base snapshot uses the blocking client; keep it off the event loop
    repos = await asyncio.to_thread(_collect_base, provider, language, settings)
    semaphore = asyncio.Semaphore(max(1, min(settings.concurrency, 20)))

    async def fetch_fork(client: httpx.AsyncClient, fork: Repository) -> Repository:
        async with semaphore:
            try:
                commits = await provider.fetch_recent_commits_async(client, fork.owner.login, fork.name)
            except FETCH_ERRORS as e:
                log.warning("fork_commits_failed", fork=fork.slug, error=str(e))
                return fork
        return fork.model_copy(update={"recent_commits": tuple(commits), "commit_count": len(commits)})

    async with provider.async_client() as client:
        batches = await asyncio.gather(
            *(asyncio.gather(*(fetch_fork(client, f) for f in r.forks[:limit])) for r in repos)
        )
    return [_replace_forks(r, list(processed), limit) for r, processed in zip(repos, batches)]


def _store(storage: StorageBackend, repos: Iterable[Repository], report: LanguageReport) -> int:
    log = get_logger()
    written = 0
    for repo in repos:
        try:
            written += storage.save_repository(repo)
        except Exception as e:
            log.error("store_repository_failed", repo=repo.slug, error=str(e))
    try:
        written += storage.save_report(report)
    except Exception as e:
        log.error("store_report_failed", language=report.language, error=str(e))
    return written


def analyze_language(
    provider: Provider,
    language: str,
    settings: Settings,
    storage: Optional[StorageBackend] = None,
    concurrent: bool = False,
) -> LanguageAnalysis:
    if concurrent and isinstance(provider, GitHubProvider):
        repos = asyncio.run(collect_language_async(provider, language, settings))
    else:
        repos = collect_language(provider, language, settings)
    stats = StatsConfig(max_forks_to_process=settings.max_forks_to_process)
    report = build_language_report(language, repos, stats)
    stored = _store(storage, repos, report) if storage is not None else 0
    return LanguageAnalysis(language=language, repos=repos, report=report, stored=stored)


def analyze_languages(
    provider: Provider,
    languages: Iterable[str],
    settings: Settings,
    storage: Optional[StorageBackend] = None,
    concurrent: bool = False,
) -> BatchResult:
    """Analyze each language; one language failing does not stop the rest."""
    log = get_logger()
    batch = BatchResult()
    for language in languages:
        try:
            batch.analyses.append(analyze_language(provider, language, settings, storage, concurrent))
        except Exception as e:
            log.error("language_failed", language=language, error=str(e))
            batch.failures[language] = str(e)
    return batch
