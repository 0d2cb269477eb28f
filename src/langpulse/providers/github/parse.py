"""GitHub REST payloads to langpulse models.

Missing optional fields degrade to defaults or ``None``; missing identity
fields raise :class:`PayloadError`.
"""

from __future__ import annotations

from typing import Any, cast

from langpulse.core.models import Commit, FileChange, Issue, Owner, Repository
from langpulse.utils import parse_timestamp


class PayloadError(ValueError):
    pass


def _obj(value: Any, context: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise PayloadError(f"{context} expected to be a JSON object")
    return cast(dict[str, Any], value)


def _required_str(data: dict[str, Any], key: str, context: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise PayloadError(f"{context}: missing `{key}`")
    return value


def _int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def parse_owner(value: Any) -> Owner:
    data = _obj(value, "owner")
    return Owner(
        login=_required_str(data, "login", "owner"),
        id=_int(data.get("id")),
        html_url=data.get("html_url"),
        site_admin=bool(data.get("site_admin", False)),
    )


def parse_repository(value: Any) -> Repository:
    data = _obj(value, "repository")
    return Repository(
        id=_int(data.get("id")),
        name=_required_str(data, "name", "repository"),
        owner=parse_owner(data.get("owner")),
        full_name=data.get("full_name"),
        html_url=data.get("html_url"),
        language=data.get("language"),
        star_count=_int(data.get("stargazers_count")),
        fork_count=_int(data.get("forks_count")),
        open_issue_count=_int(data.get("open_issues_count")),
        created_at=parse_timestamp(data.get("created_at")),
    )


def parse_file_change(value: Any) -> FileChange:
    data = _obj(value, "commit file")
    return FileChange(
        path=_required_str(data, "filename", "commit file"),
        additions=_int(data.get("additions")),
        deletions=_int(data.get("deletions")),
        changes=_int(data.get("changes")),
        status=data.get("status"),
    )


def parse_commit(value: Any) -> Commit:
    data = _obj(value, "commit")
    summary = data.get("commit") if isinstance(data.get("commit"), dict) else {}
    author = summary.get("author") if isinstance(summary.get("author"), dict) else {}
    files = data.get("files")
    return Commit(
        sha=_required_str(data, "sha", "commit"),
        message=summary.get("message"),
        author_date=parse_timestamp(author.get("date")),
        files_changed=tuple(parse_file_change(f) for f in files) if isinstance(files, list) else (),
    )


def parse_issue(value: Any) -> Issue:
    data = _obj(value, "issue")
    return Issue(
        title=_required_str(data, "title", "issue"),
        body=data.get("body"),
        state=str(data.get("state") or "open"),
        html_url=data.get("html_url"),
        created_at=parse_timestamp(data.get("created_at")),
        updated_at=parse_timestamp(data.get("updated_at")),
    )


def is_direct_fork(item: Any, base_full_name: str) -> bool:
    """False for a fork whose ``parent`` is some other fork of the base."""
    parent = item.get("parent") if isinstance(item, dict) else None
    if not isinstance(parent, dict) or not parent.get("full_name"):
        return True
    return str(parent["full_name"]).lower() == base_full_name.lower()
