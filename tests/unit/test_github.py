"""Tests for the GitHub issues provider."""

from typing import Any

import pytest

from cloud_export.api import GitHubApi
from cloud_export.providers.github import GitHubIssuesProvider
from tests.unit.fakes import FakeHttp

API_URL = "https://api.github.com"
ISSUES_URL = f"{API_URL}/repos/octo/hello/issues"


def _issue(number: int, comments: int = 0) -> dict[str, Any]:
    return {
        "number": number,
        "title": f"Issue {number}",
        "comments": comments,
        "comments_url": f"{ISSUES_URL}/{number}/comments",
    }


def _api(fake_http: FakeHttp) -> GitHubApi:
    return GitHubApi(API_URL, "octo", "token", transport=fake_http.transport)


@pytest.mark.asyncio
async def test_get_issues_walks_numbered_pages_until_empty(fake_http: FakeHttp) -> None:
    fake_http.add_pages(ISSUES_URL, {"1": [_issue(1), _issue(2)], "2": [_issue(3)], "3": []}, param="page")

    async with _api(fake_http) as api:
        issues = await GitHubIssuesProvider(api).get_issues("octo/hello", fetch_comments=False)

    assert [i["number"] for i in issues] == [1, 2, 3]
    requests = fake_http.calls(ISSUES_URL)
    assert [r.url.params["page"] for r in requests] == ["1", "2", "3"]
    assert all(r.url.params["state"] == "all" for r in requests)
    assert all("comments_data" not in i for i in issues)


@pytest.mark.asyncio
async def test_get_issues_skips_comment_requests_for_uncommented_issues(fake_http: FakeHttp) -> None:
    fake_http.add_pages(ISSUES_URL, {"1": [_issue(1)], "2": []}, param="page")

    async with _api(fake_http) as api:
        issues = await GitHubIssuesProvider(api).get_issues("octo/hello", fetch_comments=True)

    assert issues[0]["comments_data"] == []
    assert fake_http.calls(f"{ISSUES_URL}/1/comments") == []


@pytest.mark.asyncio
async def test_get_issues_attaches_comments(fake_http: FakeHttp) -> None:
    comments_url = f"{ISSUES_URL}/7/comments"
    fake_http.add_pages(ISSUES_URL, {"1": [_issue(7, comments=2)], "2": []}, param="page")
    fake_http.add_pages(comments_url, {"1": [{"id": 1}, {"id": 2}], "2": []}, param="page")

    async with _api(fake_http) as api:
        issues = await GitHubIssuesProvider(api).get_issues("octo/hello", fetch_comments=True)

    assert issues[0]["comments_data"] == [{"id": 1}, {"id": 2}]
    assert len(fake_http.calls(comments_url)) == 2


@pytest.mark.asyncio
async def test_get_issues_logs_page_counts(fake_http: FakeHttp, log_messages: list[str]) -> None:
    fake_http.add_pages(ISSUES_URL, {"1": [_issue(1), _issue(2)], "2": []}, param="page")

    async with _api(fake_http) as api:
        await GitHubIssuesProvider(api).get_issues("octo/hello", fetch_comments=False)

    assert "Fetched 2 issues for repository 'octo/hello'" in log_messages
