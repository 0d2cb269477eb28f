"""Unit tests for console rendering and exporters."""

import json

from langpulse.core.models import ClassificationResult, LanguageReport, RepoMetrics
from langpulse.exporters import write_json
from langpulse.render import (
    format_best_source,
    format_classification_attempt,
    format_language_report,
    report_rows,
    report_to_dict,
)


def _report() -> LanguageReport:
    return LanguageReport(
        language="Rust",
        total_stars=300,
        total_forks=40,
        total_open_issues=12,
        per_repo_top_files=(
            RepoMetrics(slug="a/one", top_files=(("src/lib.rs", 9), ("Cargo.toml", 3))),
            RepoMetrics(slug="b/two", top_files=()),
        ),
        new_fork_commit_count=5,
        total_repo_commits=80,
    )


def _result(is_source: bool = True) -> ClassificationResult:
    return ClassificationResult(
        is_source_code_repo=is_source,
        source_file_count=3,
        total_file_count=12,
        source_ratio=0.25,
        extensions_seen=frozenset({"rs", "md"}),
    )


class TestLanguageReportText:
    """Tests for the console report layout."""

    def test_full_layout(self) -> None:
        """Every section appears in order with numbered files."""
        assert format_language_report(_report()).splitlines() == [
            "Language: Rust",
            "Total stars: 300",
            "Total forks: 40",
            "Top-3 Most modified file per repo:",
            "  Repo name: a/one",
            "    File name1: src/lib.rs",
            "    File name2: Cargo.toml",
            "  Repo name: b/two",
            "    No files modified in recent commits",
            "New commits in forked repos: 5",
            "Open issues in top-10 repos: 12",
        ]


class TestClassificationText:
    """Tests for source search output."""

    def test_attempt_line(self, make_repo) -> None:
        """Attempts show stars, counts, ratio and sorted extensions."""
        repo = make_repo("tool", owner="octo", star_count=42)

        line = format_classification_attempt(repo, _result(False))

        assert line == "octo/tool: 42 stars, 3 source files, 25.0% source ratio, documentation/tutorial [md, rs]"

    def test_best_source(self, make_repo) -> None:
        """The winner is described over several lines."""
        text = format_best_source("Rust", make_repo("tool", owner="octo", star_count=42), _result())

        assert text.splitlines()[0] == "Best source code repository for Rust: octo/tool"
        assert "  - Source ratio: 25.0%" in text
        assert "  - File extensions: ['md', 'rs']" in text

    def test_no_winner(self) -> None:
        """A language without a source repository says so."""
        assert format_best_source("C", None, None) == "No suitable source code repository found for C"


class TestStructuredOutput:
    """Tests for dict, row and JSON output."""

    def test_report_to_dict(self) -> None:
        """Top files become a slug-keyed mapping."""
        data = report_to_dict(_report())

        assert data["per_repo_top_files"]["a/one"][0] == {"path": "src/lib.rs", "score": 9}
        assert data["per_repo_top_files"]["b/two"] == []
        assert data["total_repo_commits"] == 80

    def test_report_rows_rank(self) -> None:
        """Rows are ranked within each repository."""
        rows = report_rows(_report())

        assert [(r["repo"], r["rank"], r["path"]) for r in rows] == [
            ("a/one", 1, "src/lib.rs"),
            ("a/one", 2, "Cargo.toml"),
        ]

    def test_write_json_to_file(self, tmp_path) -> None:
        """Reports and classification results serialize together."""
        out = tmp_path / "out.json"

        write_json({"reports": [_report()], "result": _result()}, out=str(out))

        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["reports"][0]["language"] == "Rust"
        assert sorted(data["result"]["extensions_seen"]) == ["md", "rs"]

    def test_write_json_stdout(self, capsys) -> None:
        """``-`` writes to standard output."""
        write_json(_result(), out="-")

        assert json.loads(capsys.readouterr().out)["source_file_count"] == 3
