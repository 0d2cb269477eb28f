from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

import tomllib

from langpulse.core.models import ClassificationResult, Repository, SourceCodeHeuristicConfig
from langpulse.utils import get_logger

ClassifyFn = Callable[[Repository], ClassificationResult]

# Language sources we report on, plus build/manifest files of real projects.
DEFAULT_SOURCE_EXTENSIONS = frozenset(
    {
        "java", "c", "cpp", "cc", "cxx", "h", "hpp", "rs",
        "cmake", "makefile", "gradle", "maven", "pom", "cargo",
        "toml", "xml", "properties", "yaml", "yml", "json", "sh", "bat",
    }
)


def default_heuristics(**overrides: Any) -> SourceCodeHeuristicConfig:
    values: dict[str, Any] = {"source_extensions": DEFAULT_SOURCE_EXTENSIONS}
    values.update(overrides)
    return SourceCodeHeuristicConfig(**values)


def load_heuristics(source: str = "default") -> SourceCodeHeuristicConfig:
    """Load heuristics from ``"default"`` or a TOML file path.

    ``LANGPULSE_HEURISTICS_FILE`` replaces ``"default"`` when it names an
    existing file. The TOML layout is::

        [heuristics]
        source_extensions = ["rs", "toml"]   # replaces the built-in set
        extra_extensions = ["kt"]            # added to whichever set is used
        min_ratio = 0.1
        min_source_files = 1
        max_scan_depth = 8
    """
    if source in ("default", "auto"):
        env_path = os.getenv("LANGPULSE_HEURISTICS_FILE")
        if env_path and os.path.exists(env_path):
            source = env_path
        else:
            return default_heuristics()
    if not source.endswith(".toml"):
        raise ValueError(f"Unsupported heuristics source: {source}")
    with open(source, "rb") as f:
        data = tomllib.load(f)
    spec = data.get("heuristics", {})
    # an explicit empty list is honoured, not replaced by the defaults
    extensions = set(spec["source_extensions"] if "source_extensions" in spec else DEFAULT_SOURCE_EXTENSIONS)
    extensions.update(spec.get("extra_extensions") or [])
    overrides: dict[str, Any] = {"source_extensions": extensions}
    for key in ("min_ratio", "min_source_files", "max_scan_depth"):
        if key in spec:
            overrides[key] = spec[key]
    return default_heuristics(**overrides)


def file_extension(path: str) -> Optional[str]:
    name = path.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return None
    ext = name.rsplit(".", 1)[1]
    return ext.lower() or None


def classify(paths: Sequence[str], config: SourceCodeHeuristicConfig) -> ClassificationResult:
    """Decide whether a file listing is predominantly source code.

    ``paths`` must hold regular files only, already bounded to
    ``config.max_scan_depth`` by whoever walked the tree. Names without an
    extension (``Makefile``, ``Dockerfile``) count toward the total but never
    as source.
    """
    total = len(paths)
    source = 0
    seen: set[str] = set()
    for path in paths:
        ext = file_extension(path)
        if ext is None:
            continue
        seen.add(ext)
        if ext in config.source_extensions:
            source += 1
    ratio = source / total if total else 0.0
    is_source = total > 0 and ratio >= config.min_ratio and source >= config.min_source_files
    return ClassificationResult(
        is_source_code_repo=is_source,
        source_file_count=source,
        total_file_count=total,
        source_ratio=ratio,
        extensions_seen=frozenset(seen),
    )


@dataclass
class SourceSearch:
    best: Optional[Repository] = None
    result: Optional[ClassificationResult] = None
    attempts: list[tuple[Repository, ClassificationResult]] = field(default_factory=list)
    failures: list[tuple[Repository, str]] = field(default_factory=list)


def find_best_source_repo(
    candidates: Iterable[Repository],
    classify_fn: ClassifyFn,
    on_attempt: Optional[Callable[[Repository, ClassificationResult], None]] = None,
) -> SourceSearch:
    """Scan candidates in order and stop at the first source code repository.

    A candidate whose ``classify_fn`` raises is recorded as a failure and the
    scan moves on.
    """
    log = get_logger()
    search = SourceSearch()
    for repo in candidates:
        try:
            result = classify_fn(repo)
        except Exception as e:
            log.warning("classify_failed", repo=repo.slug, error=str(e))
            search.failures.append((repo, str(e)))
            continue
        search.attempts.append((repo, result))
        if on_attempt is not None:
            on_attempt(repo, result)
        if result.is_source_code_repo:
            search.best = repo
            search.result = result
            break
    return search


def select_best_source_repo(
    candidates: Iterable[Repository], classify_fn: ClassifyFn
) -> Optional[Repository]:
    return find_best_source_repo(candidates, classify_fn).best
