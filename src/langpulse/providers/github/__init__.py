from __future__ import annotations

from .client import GitHubProvider
from .parse import (
    PayloadError,
    parse_commit,
    parse_file_change,
    parse_issue,
    parse_owner,
    parse_repository,
)

__all__ = [
    "GitHubProvider",
    "PayloadError",
    "parse_commit",
    "parse_file_change",
    "parse_issue",
    "parse_owner",
    "parse_repository",
]
