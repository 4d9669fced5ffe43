"""GitHub stargazer polling; one marker cursor per watched repository."""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ...core.logger import get_logger
from ...engine.cursors import collect_until
from ...engine.polling import DetectedEvent, PollPartition, PollTarget
from ..common.adapter import CredentialClientAdapter
from .client import GitHubClient
from .triggers import Actor, NewStar, RepositoryConfig, RepositoryRef

logger = get_logger("providers.github.polling")

REPO_STARS = "repoStars"

# Stored for repositories without stars so the first star is still reported
NO_STARS = 0


def _stargazer_id(star: dict[str, Any]) -> Any:
    return star["user"]["id"]


class GitHubPollingAdapter(CredentialClientAdapter):
    provider = "github"
    client_class = GitHubClient

    def plan(self, partition: PollPartition) -> list[PollTarget]:
        by_repo: dict[str, list[int]] = defaultdict(list)
        repos: dict[str, RepositoryConfig] = {}
        for workflow_id in partition.tasks.get("new_star", []):
            try:
                registration = partition.registrations[workflow_id]
                config = RepositoryConfig.model_validate(registration.config)
            except PydanticValidationError as exc:
                logger.warning("Ignoring workflow %s with bad repository: %s", workflow_id, exc)
                continue
            by_repo[config.full_name].append(workflow_id)
            repos.setdefault(config.full_name, config)

        return [
            PollTarget(
                key=REPO_STARS,
                sub_key=full_name,
                workflows={"new_star": workflow_ids},
                params={"owner": repos[full_name].owner, "repo": repos[full_name].repo},
            )
            for full_name, workflow_ids in by_repo.items()
        ]

    async def fetch_snapshot(
        self, client: GitHubClient, target: PollTarget, cursor: Any
    ) -> list[dict[str, Any]]:
        return await client.get_recent_stargazers(target.params["owner"], target.params["repo"])

    def seed(self, snapshot: list[dict[str, Any]], target: PollTarget) -> Any:
        return _stargazer_id(snapshot[0]) if snapshot else NO_STARS

    def diff(
        self, cursor: Any, snapshot: list[dict[str, Any]], target: PollTarget
    ) -> list[DetectedEvent]:
        owner, repo = target.params["owner"], target.params["repo"]
        full_name = f"{owner}/{repo}"
        repository = RepositoryRef(
            name=repo, full_name=full_name, url=f"https://github.com/{full_name}"
        )
        return [
            DetectedEvent(
                "new_star",
                NewStar(
                    repository=repository,
                    sender=Actor(login=star["user"]["login"], url=star["user"].get("html_url")),
                    starred_at=star.get("starred_at", ""),
                ).to_event(),
            )
            for star in collect_until(snapshot, _stargazer_id, cursor)
        ]

    def advance(
        self,
        cursor: Any,
        snapshot: list[dict[str, Any]],
        events: list[DetectedEvent],
        target: PollTarget,
    ) -> Any:
        if not events or not snapshot:
            return cursor
        return _stargazer_id(snapshot[0])
