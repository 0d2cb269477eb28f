from __future__ import annotations

from .classify import (
    classify,
    default_heuristics,
    find_best_source_repo,
    load_heuristics,
    select_best_source_repo,
)
from .stats import (
    aggregate_totals,
    build_language_report,
    new_fork_commit_count,
    top_modified_files,
)

__all__ = [
    "aggregate_totals",
    "build_language_report",
    "classify",
    "default_heuristics",
    "find_best_source_repo",
    "load_heuristics",
    "new_fork_commit_count",
    "select_best_source_repo",
    "top_modified_files",
]
