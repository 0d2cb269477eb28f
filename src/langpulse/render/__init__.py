"""Console text for language reports and source classification attempts."""

from __future__ import annotations

from typing import Any, Optional

from langpulse.core.models import ClassificationResult, LanguageReport, Repository

NO_FILES_MESSAGE = "No files modified in recent commits"


def format_language_report(report: LanguageReport) -> str:
    lines = [
        f"Language: {report.language}",
        f"Total stars: {report.total_stars}",
        f"Total forks: {report.total_forks}",
        "Top-3 Most modified file per repo:",
    ]
    for metrics in report.per_repo_top_files:
        lines.append(f"  Repo name: {metrics.slug}")
        if not metrics.top_files:
            lines.append(f"    {NO_FILES_MESSAGE}")
            continue
        for idx, (path, _score) in enumerate(metrics.top_files, start=1):
            lines.append(f"    File name{idx}: {path}")
    lines.append(f"New commits in forked repos: {report.new_fork_commit_count}")
    lines.append(f"Open issues in top-10 repos: {report.total_open_issues}")
    return "\n".join(lines)


def format_classification_attempt(repo: Repository, result: ClassificationResult) -> str:
    verdict = "source code" if result.is_source_code_repo else "documentation/tutorial"
    exts = ", ".join(sorted(result.extensions_seen)) or "-"
    return (
        f"{repo.slug}: {repo.star_count} stars, {result.source_file_count} source files, "
        f"{result.source_percent} source ratio, {verdict} [{exts}]"
    )


def format_best_source(
    language: str, repo: Optional[Repository], result: Optional[ClassificationResult]
) -> str:
    if repo is None or result is None:
        return f"No suitable source code repository found for {language}"
    return "\n".join(
        [
            f"Best source code repository for {language}: {repo.slug}",
            f"  - Stars: {repo.star_count}",
            f"  - Source files: {result.source_file_count}",
            f"  - Source ratio: {result.source_percent}",
            f"  - File extensions: {sorted(result.extensions_seen)}",
        ]
    )


def report_to_dict(report: LanguageReport) -> dict[str, Any]:
    data = report.model_dump(mode="json", exclude={"per_repo_top_files"})
    data["per_repo_top_files"] = {
        m.slug: [{"path": path, "score": score} for path, score in m.top_files]
        for m in report.per_repo_top_files
    }
    return data


def report_rows(report: LanguageReport) -> list[dict[str, Any]]:
    """Flat rows, one per (repo, file) pair, for tabular exporters."""
    rows: list[dict[str, Any]] = []
    for m in report.per_repo_top_files:
        for rank, (path, score) in enumerate(m.top_files, start=1):
            rows.append(
                {"language": report.language, "repo": m.slug, "rank": rank, "path": path, "score": score}
            )
    return rows
