"""Configuration helpers.

Prefer environment variables for secrets and tokens.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_USER_AGENT = "langpulse/0.1.0"
DEFAULT_REDIS_URL = "redis://127.0.0.1:6379/0"
DEFAULT_LANGUAGES = ("Java", "C", "C++", "Rust")


class ConfigError(ValueError):
    pass


def env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "on"}


def env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {val!r}") from e


def env_float(name: str, default: Optional[float] = None) -> Optional[float]:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {val!r}") from e


@dataclass(frozen=True)
class Settings:
    github_token: Optional[str] = None
    api_base: str = DEFAULT_API_BASE
    user_agent: str = DEFAULT_USER_AGENT
    redis_url: str = DEFAULT_REDIS_URL
    clone_dir: Path = Path(".langpulse") / "clones"
    top_n: int = 10
    max_commits_with_files: int = 50
    max_forks_to_process: int = 20
    # None leaves the heuristics file (or built-in default) in charge
    min_source_ratio: Optional[float] = None
    concurrency: int = 5

    def __post_init__(self) -> None:
        if self.min_source_ratio is not None and not 0.0 <= self.min_source_ratio <= 1.0:
            raise ConfigError(f"min_source_ratio must be within [0, 1], got {self.min_source_ratio}")
        for name in ("top_n", "max_commits_with_files", "max_forks_to_process", "concurrency"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            github_token=env_str("GITHUB_TOKEN") or env_str("GH_TOKEN"),
            api_base=env_str("GITHUB_API_BASE", DEFAULT_API_BASE) or DEFAULT_API_BASE,
            user_agent=env_str("GITHUB_USER_AGENT", DEFAULT_USER_AGENT) or DEFAULT_USER_AGENT,
            redis_url=env_str("REDIS_URL", DEFAULT_REDIS_URL) or DEFAULT_REDIS_URL,
            clone_dir=Path(env_str("LANGPULSE_CLONE_DIR") or cls.clone_dir).expanduser(),
            top_n=env_int("LANGPULSE_TOP_N", cls.top_n),
            max_commits_with_files=env_int("LANGPULSE_MAX_COMMITS_WITH_FILES", cls.max_commits_with_files),
            max_forks_to_process=env_int("LANGPULSE_MAX_FORKS", cls.max_forks_to_process),
            min_source_ratio=env_float("LANGPULSE_MIN_SOURCE_RATIO"),
            concurrency=max(1, min(env_int("LANGPULSE_CONCURRENCY", cls.concurrency), 20)),
        )
