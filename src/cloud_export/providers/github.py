"""Export GitHub issues and, optionally, their comments."""

from typing import TYPE_CHECKING, Any

from loguru import logger

from cloud_export.api import GitHubApi
from cloud_export.pagination import walk_numbered_pages

if TYPE_CHECKING:
    from loguru import Logger

PAGE_SIZE = 100


class GitHubIssuesProvider:
    """Fetch all issues (open and closed, pull requests included) of a repository."""

    def __init__(self, api: GitHubApi, log: "Logger | None" = None) -> None:
        self.api = api
        self.log = log or logger

    async def get_issues(self, repository: str, *, fetch_comments: bool) -> list[dict[str, Any]]:
        """Return every issue of repository ("owner/name").

        With fetch_comments, each issue gets a "comments_data" list.
        """

        async def fetch_page(page: int) -> list[dict[str, Any]]:
            issues: list[dict[str, Any]] = await self.api.get_json(
                f"/repos/{repository}/issues",
                params={"state": "all", "per_page": PAGE_SIZE, "page": page},
            )
            return issues

        issues = await walk_numbered_pages(
            fetch_page,
            description=f"issues for repository {repository!r}",
            log=self.log,
        )

        if fetch_comments:
            for issue in issues:
                issue["comments_data"] = await self.get_comments(issue)

        return issues

    async def get_comments(self, issue: dict[str, Any]) -> list[dict[str, Any]]:
        """Fetch the comments of one issue; issues without comments cost no request."""
        if not issue.get("comments"):
            return []

        async def fetch_page(page: int) -> list[dict[str, Any]]:
            comments: list[dict[str, Any]] = await self.api.get_json(
                issue["comments_url"],
                params={"per_page": PAGE_SIZE, "page": page},
            )
            return comments

        return await walk_numbered_pages(
            fetch_page,
            description=f"comments for issue #{issue.get('number')}",
            log=self.log,
        )
