from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console

from langpulse.config import DEFAULT_LANGUAGES, ConfigError, Settings
from langpulse.core.models import ClassificationResult, Repository, SourceCodeHeuristicConfig
from langpulse.core.services.classify import classify, find_best_source_repo, load_heuristics
from langpulse.core.services.collect import analyze_languages
from langpulse.exporters import write_json, write_reports_parquet
from langpulse.metrics import init_sentry_from_env
from langpulse.providers import get_provider
from langpulse.render import (
    format_best_source,
    format_classification_attempt,
    format_language_report,
)
from langpulse.storage import open_backend
from langpulse.vcs import list_files, make_clone_classifier

app = typer.Typer(help="Per-language GitHub activity reports")
console = Console(highlight=False, soft_wrap=True)


def _settings(**overrides: Any) -> Settings:
    try:
        return replace(Settings.from_env(), **{k: v for k, v in overrides.items() if v is not None})
    except ConfigError as e:
        raise typer.BadParameter(str(e)) from e


def _heuristics(source: str, settings: Settings, **overrides: Any) -> SourceCodeHeuristicConfig:
    """Flags win over LANGPULSE_MIN_SOURCE_RATIO, which wins over the file."""
    if overrides.get("min_ratio") is None:
        overrides["min_ratio"] = settings.min_source_ratio
    try:
        cfg = load_heuristics(source)
        values = {k: v for k, v in overrides.items() if v is not None}
        return SourceCodeHeuristicConfig(**{**cfg.model_dump(), **values})
    except (ValidationError, ValueError, OSError) as e:
        raise typer.BadParameter(f"Invalid heuristics: {e}") from e


@app.callback()
def main() -> None:
    init_sentry_from_env()


@app.command()
def version() -> None:
    """Show version."""
    from langpulse import __version__

    rprint({"langpulse": __version__})


@app.command()
def report(
    language: Optional[list[str]] = typer.Option(None, "--language", "-l", help="Language to report on; repeatable"),
    top_n: Optional[int] = typer.Option(None, help="Number of top repositories per language"),
    out: Optional[str] = typer.Option(None, help="Also write reports: path, '-' for JSON on stdout, or parquet:/path"),
    save: Optional[str] = typer.Option(
        None, help="Storage DSN (redis://, sqlite:///, postgresql://) or 'redis' for REDIS_URL"
    ),
    concurrent: bool = typer.Option(True, help="Fetch fork commits concurrently"),
) -> None:
    """Fetch top repositories per language and print activity reports."""
    settings = _settings(top_n=top_n)
    languages = language or list(DEFAULT_LANGUAGES)
    dsn = settings.redis_url if save == "redis" else save
    try:
        storage = open_backend(dsn) if dsn else None
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    provider = get_provider("github", settings)
    try:
        if storage is not None:
            storage.ensure_schema()
        batch = analyze_languages(provider, languages, settings, storage=storage, concurrent=concurrent)
    finally:
        provider.close()
        if storage is not None:
            storage.close()

    for analysis in batch.analyses:
        console.print(format_language_report(analysis.report), markup=False)
        console.print()
    for lang, error in batch.failures.items():
        console.print(f"failed to process {lang}: {error}", markup=False, style="red")

    reports = [a.report for a in batch.analyses]
    if out and out.startswith("parquet:"):
        rows = write_reports_parquet(reports, out.split(":", 1)[1])
        rprint({"parquet_rows": rows})
    elif out:
        write_json(reports, out=out)
    if batch.failures:
        raise typer.Exit(code=1)


@app.command("classify")
def classify_path(
    path: Path = typer.Argument(..., exists=True, file_okay=False, help="Directory to inspect"),
    heuristics: str = typer.Option("default", help="'default' or a heuristics TOML file"),
    max_depth: Optional[int] = typer.Option(None, help="Directory depth to scan"),
    min_ratio: Optional[float] = typer.Option(None, help="Minimum share of source files"),
    out: str = typer.Option("-", help="JSON output destination (path or -)"),
) -> None:
    """Classify a local checkout as source code or documentation."""
    cfg = _heuristics(heuristics, _settings(), max_scan_depth=max_depth, min_ratio=min_ratio)
    result: ClassificationResult = classify(list_files(path, cfg.max_scan_depth), cfg)
    write_json(result, out=out)
    verdict = "source code" if result.is_source_code_repo else "documentation/tutorial"
    console.print(f"{path}: {result.source_file_count}/{result.total_file_count} source files, "
                  f"{result.source_percent} -> {verdict}", markup=False)


@app.command("find-source")
def find_source(
    language: Optional[list[str]] = typer.Option(None, "--language", "-l", help="Language to inspect; repeatable"),
    workdir: Optional[Path] = typer.Option(None, help="Where clones are placed"),
    heuristics: str = typer.Option("default", help="'default' or a heuristics TOML file"),
    top_n: Optional[int] = typer.Option(None, help="Number of candidates per language"),
) -> None:
    """Clone top repositories in popularity order until one looks like real source code."""
    settings = _settings(top_n=top_n)
    cfg = _heuristics(heuristics, settings)
    clone_root = workdir or settings.clone_dir
    failed = False

    def show(repo: Repository, result: ClassificationResult) -> None:
        console.print("    " + format_classification_attempt(repo, result), markup=False)

    with get_provider("github", settings) as provider:
        for lang in language or list(DEFAULT_LANGUAGES):
            console.print(f"Processing {lang} repositories...", markup=False)
            try:
                candidates = provider.fetch_top_repositories(lang, settings.top_n)
            except Exception as e:
                console.print(f"failed to process {lang}: {e}", markup=False, style="red")
                failed = True
                continue
            classify_fn = make_clone_classifier(clone_root, cfg, lang)
            search = find_best_source_repo(candidates, classify_fn, on_attempt=show)
            for repo, error in search.failures:
                console.print(f"    failed to inspect {repo.slug}: {error}", markup=False, style="yellow")
            console.print(format_best_source(lang, search.best, search.result), markup=False)
            console.print()
    if failed:
        raise typer.Exit(code=1)
