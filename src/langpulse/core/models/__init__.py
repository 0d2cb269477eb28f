from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Owner(_Frozen):
    login: str
    id: int = 0
    html_url: Optional[str] = None
    site_admin: bool = False


class FileChange(_Frozen):
    path: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    status: Optional[str] = None

    @property
    def change_score(self) -> int:
        if self.changes:
            return self.changes
        return self.additions + self.deletions

    @classmethod
    def scored(cls, path: str, score: int) -> "FileChange":
        return cls(path=path, changes=score)


class Commit(_Frozen):
    sha: str
    message: Optional[str] = None
    # None when the payload has no author section or an unparsable date
    author_date: Optional[datetime] = None
    files_changed: tuple[FileChange, ...] = ()


class Issue(_Frozen):
    title: str
    body: Optional[str] = None
    state: str = "open"
    html_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Repository(_Frozen):
    id: int = 0
    name: str
    owner: Owner
    full_name: Optional[str] = None
    html_url: Optional[str] = None
    language: Optional[str] = None
    star_count: int = 0
    fork_count: int = 0
    open_issue_count: int = 0
    created_at: Optional[datetime] = None
    forks: tuple["Repository", ...] = ()
    recent_commits: tuple[Commit, ...] = ()
    issues: tuple[Issue, ...] = ()
    commit_count: int = 0

    @property
    def slug(self) -> str:
        return f"{self.owner.login}/{self.name}"


class RepoMetrics(_Frozen):
    slug: str
    top_files: tuple[tuple[str, int], ...] = ()


class LanguageReport(_Frozen):
    language: str
    total_stars: int = 0
    total_forks: int = 0
    total_open_issues: int = 0
    per_repo_top_files: tuple[RepoMetrics, ...] = ()
    new_fork_commit_count: int = 0
    total_repo_commits: int = 0

    def top_files_for(self, slug: str) -> tuple[tuple[str, int], ...]:
        for metrics in self.per_repo_top_files:
            if metrics.slug == slug:
                return metrics.top_files
        raise KeyError(slug)


class ClassificationResult(_Frozen):
    is_source_code_repo: bool
    source_file_count: int
    total_file_count: int
    source_ratio: float = Field(ge=0.0, le=1.0)
    extensions_seen: frozenset[str] = frozenset()

    @property
    def source_percent(self) -> str:
        return f"{self.source_ratio * 100:.1f}%"


class SourceCodeHeuristicConfig(_Frozen):
    """Inputs of the extension/ratio heuristic.

    Extensions are matched case-insensitively and without a leading dot,
    so ``".RS"`` and ``"rs"`` name the same extension.
    """

    source_extensions: frozenset[str]
    min_ratio: float = Field(default=0.10, ge=0.0, le=1.0)
    min_source_files: int = Field(default=1, ge=0)
    max_scan_depth: int = Field(default=8, ge=0)

    @field_validator("source_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: object) -> frozenset[str]:
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError("source_extensions must be a collection of extensions")
        return frozenset(str(ext).strip().lstrip(".").lower() for ext in value)


class StatsConfig(_Frozen):
    max_forks_to_process: int = Field(default=20, gt=0)
    top_files_limit: int = Field(default=3, gt=0)


Repository.model_rebuild()
