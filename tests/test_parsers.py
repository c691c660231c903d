from datetime import datetime, timezone

import pytest

from gitflux.exceptions import InvalidRepositoryError
from gitflux.models import FileStatus, IdentityKind, PullRequestState, ReviewState
from gitflux.parsers import (
    parse_branch,
    parse_commit,
    parse_commit_with_files,
    parse_contributor,
    parse_github_url,
    parse_pull_request,
    parse_repository,
    parse_review,
    parse_timestamp,
    split_repository,
)


def test_parse_timestamp():
    assert parse_timestamp("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2024-01-01T10:00:00").tzinfo is not None
    assert parse_timestamp("2024-01-01T12:00:00+02:00") == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [None, "", "yesterday", 1704103200, "2024-13-45T00:00:00Z"])
def test_parse_timestamp_rejects_garbage(value):
    assert parse_timestamp(value) is None


def test_parse_commit_prefers_account_login():
    record = parse_commit(
        {
            "sha": "abc123",
            "commit": {"author": {"name": "Alice A.", "date": "2024-01-01T10:00:00Z"}, "message": "Fix"},
            "author": {"login": "alice", "avatar_url": "https://avatars/alice"},
        }
    )

    assert record.id == "abc123"
    assert record.author_login == "alice"
    assert record.identity.kind is IdentityKind.HANDLE
    assert record.message == "Fix"
    assert record.avatar_url == "https://avatars/alice"


def test_parse_commit_without_account_uses_display_name():
    record = parse_commit(
        {"sha": "def456", "commit": {"author": {"name": "Bob", "date": "not-a-date"}}, "author": None}
    )

    assert record.author_login is None
    assert record.identity.kind is IdentityKind.DISPLAY_NAME
    assert record.identity.value == "Bob"
    assert record.timestamp is None


def test_parse_commit_with_files():
    commit = parse_commit_with_files(
        {
            "sha": "abc",
            "commit": {"author": {"name": "A", "date": "2024-01-01T00:00:00Z"}},
            "files": [
                {"filename": "new.py", "status": "added", "additions": 10, "changes": 10},
                {"filename": "old.py", "status": "removed", "deletions": 4, "changes": 4},
                {"filename": "moved.py", "status": "renamed"},
                {"status": "modified"},
            ],
        }
    )

    assert [(f.filename, f.status) for f in commit.files] == [
        ("new.py", FileStatus.ADDED),
        ("old.py", FileStatus.REMOVED),
        ("moved.py", FileStatus.MODIFIED),
    ]
    assert commit.files[0].changed_lines == 10
    assert commit.files[1].deletions == 4
    assert all(f.commit_id == "abc" for f in commit.files)


@pytest.mark.parametrize(
    "state, merged_at, expected",
    [
        ("open", None, PullRequestState.OPEN),
        ("closed", None, PullRequestState.CLOSED),
        ("closed", "2024-01-02T00:00:00Z", PullRequestState.MERGED),
    ],
)
def test_parse_pull_request_state(state, merged_at, expected):
    pr = parse_pull_request({"number": 3, "state": state, "merged_at": merged_at})

    assert pr.state is expected


def test_parse_pull_request_fields():
    pr = parse_pull_request(
        {
            "number": 12,
            "title": "Add feature",
            "state": "open",
            "created_at": "2024-01-01T00:00:00Z",
            "user": {"login": "alice"},
            "labels": [{"name": "bug"}, {"name": ""}, "junk"],
            "draft": True,
            "head": {"ref": "feature/x"},
            "additions": 5,
            "deletions": 2,
        }
    )

    assert pr.author == "alice"
    assert pr.labels == frozenset({"bug"})
    assert pr.is_draft
    assert pr.head_ref == "feature/x"
    assert pr.lines_changed == 7


def test_parse_review_states():
    approved = parse_review({"state": "approved", "user": {"login": "bob"}, "submitted_at": "2024-01-01T00:00:00Z"}, 4)

    assert approved.state is ReviewState.APPROVED
    assert approved.pr_number == 4
    assert parse_review({"state": "PENDING"}, 4) is None
    assert parse_review({"state": "DISMISSED"}, 4) is None


def test_parse_branch():
    branch = parse_branch(
        {
            "name": "main",
            "commit": {
                "sha": "s1",
                "commit": {"author": {"name": "Alice", "date": "2024-01-05T00:00:00Z"}, "message": "Merge"},
            },
        },
        default_branch="main",
    )

    assert branch.is_default
    assert branch.last_commit_sha == "s1"
    assert branch.last_commit_timestamp == datetime(2024, 1, 5, tzinfo=timezone.utc)
    assert branch.last_commit_author == "Alice"

    bare = parse_branch({"name": "feature", "commit": {"sha": "s2"}}, default_branch="main")
    assert not bare.is_default
    assert bare.last_commit_timestamp is None


def test_parse_contributor_and_repository():
    contributor = parse_contributor({"login": "alice", "contributions": 42})
    repository = parse_repository({"name": "repo", "full_name": "octo/repo", "default_branch": None})

    assert contributor.contributions == 42
    assert contributor.type == "User"
    assert repository.default_branch == "main"
    assert repository.full_name == "octo/repo"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("octocat/hello-world", ("octocat", "hello-world")),
        ("https://github.com/octocat/hello-world", ("octocat", "hello-world")),
        ("https://github.com/octocat/hello-world.git", ("octocat", "hello-world")),
        ("http://github.com/octocat/hello-world/", ("octocat", "hello-world")),
        ("github.com/octocat/hello-world", ("octocat", "hello-world")),
        ("  octocat/hello-world  ", ("octocat", "hello-world")),
    ],
)
def test_parse_github_url(value, expected):
    assert parse_github_url(value) == expected


@pytest.mark.parametrize("value", ["", "not a repo", "octocat", "a/b/c", "https://gitlab.com/a/b"])
def test_parse_github_url_rejects_invalid(value):
    assert parse_github_url(value) is None


def test_split_repository_raises_for_invalid_input():
    with pytest.raises(InvalidRepositoryError):
        split_repository("not a repo")
