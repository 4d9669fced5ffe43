"""GitHub REST API client."""

from __future__ import annotations

import math
from typing import Any

from ..common.http import ProviderClient

GITHUB_API_URL = "https://api.github.com"
STAR_MEDIA_TYPE = "application/vnd.github.star+json"


class GitHubClient(ProviderClient):
    provider = "github"
    base_url = GITHUB_API_URL

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers["Accept"] = "application/vnd.github+json"
        headers["X-GitHub-Api-Version"] = "2022-11-28"
        return headers

    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        return await self._request("GET", f"/repos/{owner}/{repo}") or {}

    async def get_recent_stargazers(
        self, owner: str, repo: str, per_page: int = 10
    ) -> list[dict[str, Any]]:
        """The newest stargazers with ``starred_at``, newest first.

        GitHub lists stargazers oldest first, so the last page is requested.
        """
        repository = await self.get_repository(owner, repo)
        count = int(repository.get("stargazers_count") or 0)
        if count == 0:
            return []
        page = max(1, math.ceil(count / per_page))
        stars = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/stargazers",
            params={"per_page": per_page, "page": page},
            headers={"Accept": STAR_MEDIA_TYPE},
        ) or []
        return sorted(stars, key=lambda star: star.get("starred_at") or "", reverse=True)

    async def create_issue(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str | None = None,
        labels: list[str] | None = None,
        assignees: list[str] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": title}
        if body is not None:
            payload["body"] = body
        if labels:
            payload["labels"] = labels
        if assignees:
            payload["assignees"] = assignees
        return await self._request("POST", f"/repos/{owner}/{repo}/issues", json=payload) or {}

    async def add_comment(
        self, owner: str, repo: str, issue_number: int, body: str
    ) -> dict[str, Any]:
        return await self._request(
            "POST", f"/repos/{owner}/{repo}/issues/{issue_number}/comments", json={"body": body}
        ) or {}

    async def close_issue(self, owner: str, repo: str, issue_number: int) -> dict[str, Any]:
        return await self._request(
            "PATCH", f"/repos/{owner}/{repo}/issues/{issue_number}", json={"state": "closed"}
        ) or {}

    async def add_labels(
        self, owner: str, repo: str, issue_number: int, labels: list[str]
    ) -> list[dict[str, Any]]:
        return await self._request(
            "POST", f"/repos/{owner}/{repo}/issues/{issue_number}/labels", json={"labels": labels}
        ) or []

    async def star_repository(self, owner: str, repo: str) -> None:
        await self._request("PUT", f"/user/starred/{owner}/{repo}")

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str | None = None,
        draft: bool = False,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": title, "head": head, "base": base, "draft": draft}
        if body is not None:
            payload["body"] = body
        return await self._request("POST", f"/repos/{owner}/{repo}/pulls", json=payload) or {}

    async def merge_pull_request(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        merge_method: str = "merge",
        commit_title: str | None = None,
        commit_message: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"merge_method": merge_method}
        if commit_title:
            payload["commit_title"] = commit_title
        if commit_message:
            payload["commit_message"] = commit_message
        return await self._request(
            "PUT", f"/repos/{owner}/{repo}/pulls/{pull_number}/merge", json=payload
        ) or {}

    async def create_repository(
        self,
        name: str,
        description: str | None = None,
        private: bool = False,
        auto_init: bool = False,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": name, "private": private, "auto_init": auto_init}
        if description is not None:
            payload["description"] = description
        return await self._request("POST", "/user/repos", json=payload) or {}
