"""Shallow clones and bounded file listings for source classification."""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

from langpulse.core.models import ClassificationResult, Repository, SourceCodeHeuristicConfig
from langpulse.core.services.classify import classify
from langpulse.utils import get_logger

_SKIPPED_DIRS = {".git"}


class CloneError(RuntimeError):
    pass


def clone_repository(
    slug: str,
    dest: Path,
    timeout: int = 300,
    base_url: str = "https://github.com",
) -> Path:
    """``git clone --depth 1`` of ``slug`` into ``dest``."""
    log = get_logger()
    url = f"{base_url.rstrip('/')}/{slug}.git"
    dest.parent.mkdir(parents=True, exist_ok=True)
    cmd = ["git", "clone", "--depth", "1", "--quiet", url, str(dest)]
    log.info("clone_start", repo=slug, dest=str(dest))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as e:
        raise CloneError("git command not found. Please install git.") from e
    except subprocess.TimeoutExpired as e:
        raise CloneError(f"Cloning {slug} timed out after {timeout}s") from e
    if result.returncode != 0:
        raise CloneError(f"Failed to clone repository {slug}: {result.stderr.strip()}")
    log.info("clone_done", repo=slug)
    return dest


def list_files(root: Path, max_depth: int) -> list[str]:
    """Relative POSIX paths of regular files under ``root``.

    Depth 0 lists only the entries directly in ``root``; depth ``n`` descends
    ``n`` directories further.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth}")
    files: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = current.relative_to(root)
        depth = len(rel_dir.parts)
        if depth >= max_depth:
            dirnames[:] = []
        else:
            dirnames[:] = [d for d in dirnames if d not in _SKIPPED_DIRS]
        for name in filenames:
            path = current / name
            if path.is_symlink() or not path.is_file():
                continue
            files.append((rel_dir / name).as_posix())
    return sorted(files)


def remove_clone(path: Path) -> bool:
    try:
        shutil.rmtree(path)
    except OSError as e:
        get_logger().warning("cleanup_failed", path=str(path), error=str(e))
        return False
    return True


def make_clone_classifier(
    workdir: Path,
    config: SourceCodeHeuristicConfig,
    language: str,
    cloner: Callable[[str, Path], Path] = clone_repository,
) -> Callable[[Repository], ClassificationResult]:
    """Build a ``classify_fn`` that clones, lists and classifies a repository.

    Clones that turn out not to be source code are removed right away; the
    winning clone is kept for inspection.
    """

    def classify_repo(repo: Repository) -> ClassificationResult:
        dest = workdir / f"{language.lower()}-{repo.name}"
        if dest.exists():
            remove_clone(dest)
        cloner(repo.slug, dest)
        result = classify(list_files(dest, config.max_scan_depth), config)
        if not result.is_source_code_repo:
            remove_clone(dest)
        return result

    return classify_repo
