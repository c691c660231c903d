"""Conversion of raw GitHub REST payloads into domain records."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .exceptions import InvalidRepositoryError
from .models import (
    BranchRecord,
    CommitRecord,
    CommitWithFiles,
    ContributorRecord,
    FileChangeRecord,
    FileStatus,
    PullRequestRecord,
    PullRequestState,
    RepositoryInfo,
    ReviewRecord,
    ReviewState,
)

logger = logging.getLogger(__name__)

GITHUB_URL_PATTERNS = (
    re.compile(r"^https?://github\.com/([^/]+)/([^/]+)/?$"),
    re.compile(r"^github\.com/([^/]+)/([^/]+)/?$"),
    re.compile(r"^([^/\s]+)/([^/\s]+)$"),
)

REVIEW_STATES = {
    "APPROVED": ReviewState.APPROVED,
    "CHANGES_REQUESTED": ReviewState.CHANGES_REQUESTED,
    "COMMENTED": ReviewState.COMMENTED,
}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a GitHub API timestamp.

    Args:
        value: ISO 8601 string, possibly ending in ``Z``

    Returns:
        Timezone-aware datetime (naive input is taken as UTC), or None when
        the value is missing or malformed
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparsable timestamp: {value!r}")
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_commit(payload: Dict[str, Any]) -> CommitRecord:
    """Build a commit record from a commits-endpoint item."""
    commit = _dict(payload.get("commit"))
    git_author = _dict(commit.get("author"))
    account = _dict(payload.get("author"))

    return CommitRecord(
        id=str(payload.get("sha", "")),
        author_login=account.get("login") or None,
        author_display_name=git_author.get("name") or "",
        timestamp=parse_timestamp(git_author.get("date")),
        message=commit.get("message") or "",
        avatar_url=account.get("avatar_url") or None,
    )


def _file_status(raw: Any) -> FileStatus:
    if raw == "added":
        return FileStatus.ADDED
    if raw == "removed":
        return FileStatus.REMOVED
    # renamed, copied and changed files still exist after the commit
    return FileStatus.MODIFIED


def parse_commit_with_files(payload: Dict[str, Any]) -> CommitWithFiles:
    """Build a commit with its file list from a commit-detail payload."""
    record = parse_commit(payload)
    files = tuple(
        FileChangeRecord(
            commit_id=record.id,
            filename=entry.get("filename", ""),
            status=_file_status(entry.get("status")),
            changed_lines=int(entry.get("changes") or 0),
            additions=int(entry.get("additions") or 0),
            deletions=int(entry.get("deletions") or 0),
        )
        for entry in payload.get("files") or []
        if isinstance(entry, dict) and entry.get("filename")
    )
    return CommitWithFiles(commit=record, files=files)


def parse_pull_request(payload: Dict[str, Any]) -> PullRequestRecord:
    """Build a pull request record.

    A pull request with ``merged_at`` set is reported as merged whatever the
    raw ``state`` says.
    """
    merged_at = parse_timestamp(payload.get("merged_at"))
    if merged_at is not None:
        state = PullRequestState.MERGED
    elif payload.get("state") == "open":
        state = PullRequestState.OPEN
    else:
        state = PullRequestState.CLOSED

    labels = frozenset(
        label.get("name", "")
        for label in payload.get("labels") or []
        if isinstance(label, dict) and label.get("name")
    )

    return PullRequestRecord(
        number=int(payload.get("number", 0)),
        title=payload.get("title") or "",
        state=state,
        created_at=parse_timestamp(payload.get("created_at")),
        author=_dict(payload.get("user")).get("login") or "",
        merged_at=merged_at,
        closed_at=parse_timestamp(payload.get("closed_at")),
        additions=int(payload.get("additions") or 0),
        deletions=int(payload.get("deletions") or 0),
        labels=labels,
        is_draft=bool(payload.get("draft", False)),
        head_ref=_dict(payload.get("head")).get("ref"),
    )


def parse_review(payload: Dict[str, Any], pr_number: int) -> Optional[ReviewRecord]:
    """Build a review record; pending and dismissed reviews yield None."""
    state = REVIEW_STATES.get(str(payload.get("state", "")).upper())
    if state is None:
        return None

    return ReviewRecord(
        pr_number=pr_number,
        reviewer_login=_dict(payload.get("user")).get("login") or "",
        state=state,
        submitted_at=parse_timestamp(payload.get("submitted_at")),
    )


def parse_branch(payload: Dict[str, Any], default_branch: str) -> BranchRecord:
    """Build a branch record.

    The branch list endpoint only carries the head sha; date, author and
    message are filled in when the payload includes the full commit.
    """
    head = _dict(payload.get("commit"))
    commit = _dict(head.get("commit"))
    git_author = _dict(commit.get("author"))
    name = payload.get("name", "")

    return BranchRecord(
        name=name,
        last_commit_sha=head.get("sha", ""),
        last_commit_timestamp=parse_timestamp(git_author.get("date")),
        last_commit_author=git_author.get("name") or "",
        last_commit_message=commit.get("message") or "",
        is_default=name == default_branch,
    )


def parse_contributor(payload: Dict[str, Any]) -> ContributorRecord:
    return ContributorRecord(
        login=payload.get("login", ""),
        contributions=int(payload.get("contributions") or 0),
        avatar_url=payload.get("avatar_url") or "",
        html_url=payload.get("html_url") or "",
        type=payload.get("type") or "User",
    )


def parse_repository(payload: Dict[str, Any]) -> RepositoryInfo:
    return RepositoryInfo(
        name=payload.get("name", ""),
        full_name=payload.get("full_name", ""),
        default_branch=payload.get("default_branch") or "main",
        description=payload.get("description"),
        stargazers_count=int(payload.get("stargazers_count") or 0),
        forks_count=int(payload.get("forks_count") or 0),
        language=payload.get("language"),
        private=bool(payload.get("private", False)),
        html_url=payload.get("html_url") or "",
    )


def parse_github_url(url: str) -> Optional[Tuple[str, str]]:
    """Extract ``(owner, repo)`` from a GitHub URL or ``owner/repo`` string.

    Examples:
        >>> parse_github_url("https://github.com/octocat/hello-world.git")
        ('octocat', 'hello-world')

        >>> parse_github_url("not a repo") is None
        True
    """
    text = (url or "").strip()
    for pattern in GITHUB_URL_PATTERNS:
        match = pattern.match(text)
        if match:
            owner, repo = match.groups()
            if repo.endswith(".git"):
                repo = repo[: -len(".git")]
            if owner and repo:
                return owner, repo
    return None


def split_repository(value: str) -> Tuple[str, str]:
    """Like :func:`parse_github_url` but raises on invalid input.

    Raises:
        InvalidRepositoryError: If no owner/repo pair can be extracted
    """
    parsed = parse_github_url(value)
    if parsed is None:
        raise InvalidRepositoryError(
            f"Invalid repository '{value}'. Expected owner/repo or a github.com URL."
        )
    return parsed
