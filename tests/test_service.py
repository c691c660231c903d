import json
from datetime import datetime, timezone

import pytest
import requests

from gitflux.cancellation import CancellationToken
from gitflux.config import Config
from gitflux.errors import ErrorKind
from gitflux.models import CommitRecord, PullRequestRecord, PullRequestState
from gitflux.service import RepositoryAnalytics, transformation_key


def make_response(body):
    response = requests.Response()
    response.status_code = 200
    response.reason = "OK"
    response.encoding = "utf-8"
    response._content = json.dumps(body).encode("utf-8")
    response.headers.update({"X-RateLimit-Remaining": "4000", "X-RateLimit-Reset": "0", "X-RateLimit-Limit": "5000"})
    return response


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.headers = {}

    def get(self, url, params=None, timeout=None):
        self.calls.append(url)
        return self.responses.pop(0)

    def close(self):
        pass


@pytest.fixture(autouse=True)
def token(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")


def commit(sha, day):
    return CommitRecord(
        id=sha,
        author_login="alice",
        author_display_name="Alice",
        timestamp=datetime(2024, 1, day, 12, tzinfo=timezone.utc),
    )


def test_transformation_key_samples_record_ids():
    records = [commit("a", 1), commit("b", 2)]

    assert transformation_key("heatmap", records, "30d") == "heatmap:30d:2:a,b"


def test_cancelled_fetch_sends_no_requests():
    session = FakeSession()
    analytics = RepositoryAnalytics(Config(), session=session)
    cancel = CancellationToken()
    cancel.cancel()

    result = analytics.fetch_analytics_data("octo", "repo", "30d", analytics.fetch_options(cancel_token=cancel))

    assert result.error.kind is ErrorKind.CANCELLED
    assert session.calls == []


def test_aggregations_are_cached_per_input(monkeypatch):
    from gitflux.analytics import compute_heatmap as real_compute_heatmap

    calls = []

    def counting(records, period):
        calls.append(period)
        return real_compute_heatmap(records, period)

    monkeypatch.setattr("gitflux.service.compute_heatmap", counting)
    analytics = RepositoryAnalytics(Config(), session=FakeSession())
    records = [commit("a", 1), commit("b", 2)]

    first = analytics.compute_heatmap(records, "30d")
    second = analytics.compute_heatmap(list(records), "30d")
    analytics.compute_heatmap(records, "90d")

    assert second == first
    assert second is not first
    assert len(calls) == 2
    assert analytics.cache_stats()["transform"]["total"] == 2


def test_mutating_a_result_leaves_the_cached_copy_intact():
    analytics = RepositoryAnalytics(Config(), session=FakeSession())
    records = [commit("a", 1), commit("b", 2)]

    first = analytics.compute_heatmap(records, "30d")
    first.total_commits = 99
    for bucket in first.buckets:
        bucket.contributors.clear()
    second = analytics.compute_heatmap(records, "30d")

    assert second.total_commits == 2
    assert sum(len(bucket.contributors) for bucket in second.buckets) == 2


def test_timeline_reflects_state_changes_of_the_same_pull_request():
    analytics = RepositoryAnalytics(Config(), session=FakeSession())
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    opened = PullRequestRecord(number=7, title="Add cache", state=PullRequestState.OPEN, created_at=created, author="alice")
    merged = PullRequestRecord(
        number=7,
        title="Add cache",
        state=PullRequestState.MERGED,
        created_at=created,
        author="alice",
        merged_at=datetime(2024, 1, 3, tzinfo=timezone.utc),
        closed_at=datetime(2024, 1, 3, tzinfo=timezone.utc),
    )

    before = analytics.compute_timeline([opened])
    after = analytics.compute_timeline([merged])

    assert before.total_merged == 0
    assert after.total_merged == 1
    assert len(analytics.transform_cache) == 0


def test_empty_input_is_not_cached():
    analytics = RepositoryAnalytics(Config(), session=FakeSession())

    heatmap = analytics.compute_heatmap([], "30d")
    timeline = analytics.compute_timeline(None)

    assert heatmap.total_commits == 0
    assert timeline.entries == []
    assert len(analytics.transform_cache) == 0


def test_invalidate_cache_scoping():
    analytics = RepositoryAnalytics(Config(), session=FakeSession())
    analytics.fetch_cache.set("octo/repo:commit-activity:30d", 1)
    analytics.fetch_cache.set("octo/other:commit-activity:30d", 2)
    analytics.fetch_cache.set("acme/repo:commit-activity:30d", 3)
    analytics.transform_cache.set("heatmap:30d:1:a", 4)

    assert analytics.invalidate_cache("octo", "repo") == 1
    assert analytics.invalidate_cache("octo") == 1
    assert analytics.cache_stats()["transform"]["total"] == 1

    assert analytics.invalidate_cache() == 2
    assert analytics.cache_stats() == {
        "fetch": {"total": 0, "valid": 0, "expired": 0},
        "transform": {"total": 0, "valid": 0, "expired": 0},
    }


def commit_payload(sha, date, filenames):
    return {
        "sha": sha,
        "commit": {"author": {"name": "Alice", "date": date}, "message": sha},
        "author": {"login": "alice"},
        "files": [{"filename": name, "status": "modified"} for name in filenames],
    }


def test_file_change_analysis_end_to_end():
    first = commit_payload("a", "2024-01-02T10:00:00Z", ["src/app.py", "README.md"])
    second = commit_payload("b", "2024-01-03T10:00:00Z", ["src/app.py"])
    session = FakeSession(make_response([first, second]), make_response(first), make_response(second))
    analytics = RepositoryAnalytics(Config(), session=session)

    result = analytics.fetch_file_change_analysis("octo", "repo", "30d", analytics.fetch_options(page_delay=0))

    assert result.ok
    analysis = result.data
    assert analysis.total_changes == 3
    assert [(f.filename, f.change_count) for f in analysis.files] == [("src/app.py", 2), ("README.md", 1)]
    assert session.calls == [
        "https://api.github.com/repos/octo/repo/commits",
        "https://api.github.com/repos/octo/repo/commits/a",
        "https://api.github.com/repos/octo/repo/commits/b",
    ]

    again = analytics.fetch_file_change_analysis("octo", "repo", "30d", analytics.fetch_options(page_delay=0))

    assert again.from_cache
    assert again.data == analysis
    assert len(session.calls) == 3
