"""GitHub issue and repository actions."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator

from ...registry.capabilities import Action, ActionContext, CapabilityConfig
from ...registry.kinds import ActionKind
from .client import GitHubClient


class RepositoryInput(CapabilityConfig):
    owner: str = Field(..., min_length=1, description="Repository owner")
    repo: str = Field(..., min_length=1, description="Repository name")


class CreateIssueConfig(RepositoryInput):
    title: str = Field(..., min_length=1, description="Issue title")
    body: str | None = Field(default=None, description="Issue body")
    labels: list[str] = Field(default_factory=list, description="Labels to apply")
    assignees: list[str] = Field(default_factory=list, description="Users to assign")


class IssueInput(RepositoryInput):
    issue_number: int = Field(..., gt=0, description="Issue number")


class AddCommentConfig(IssueInput):
    body: str = Field(..., min_length=1, description="Comment text")


class AddLabelConfig(IssueInput):
    labels: list[str] = Field(..., min_length=1, description="Labels to add")

    @field_validator("labels", mode="before")
    @classmethod
    def split_labels(cls, value: Any) -> Any:
        # Templated configs often render a comma-separated string
        if isinstance(value, str):
            return [label.strip() for label in value.split(",") if label.strip()]
        return value


class CreatePullRequestConfig(RepositoryInput):
    title: str = Field(..., min_length=1, description="Pull request title")
    head: str = Field(..., min_length=1, description="Branch holding the changes")
    base: str = Field(..., min_length=1, description="Branch to merge into")
    body: str | None = Field(default=None, description="Pull request description")
    draft: bool = Field(default=False, description="Open as a draft")


class MergePullRequestConfig(RepositoryInput):
    pull_number: int = Field(..., gt=0, description="Pull request number")
    commit_title: str | None = Field(default=None, description="Merge commit title")
    commit_message: str | None = Field(default=None, description="Merge commit message")
    merge_method: Literal["merge", "squash", "rebase"] = Field(
        default="merge", description="How the branch is merged"
    )


class CreateRepositoryConfig(CapabilityConfig):
    name: str = Field(..., min_length=1, description="Repository name")
    description: str | None = Field(default=None, description="Repository description")
    private: bool = Field(default=False, description="Create a private repository")
    auto_init: bool = Field(default=False, description="Start with an initial commit")


class GitHubAction(Action):
    requires_credentials = True

    def client(self, context: ActionContext) -> GitHubClient:
        return GitHubClient(context.access_token, config=context.http_config)


class CreateIssueAction(GitHubAction):
    kind = ActionKind.GITHUB_CREATE_ISSUE
    name = "Create Issue"
    description = "Open a new issue in a repository"
    config_model = CreateIssueConfig

    async def execute(self, config: CreateIssueConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            issue = await client.create_issue(
                config.owner,
                config.repo,
                config.title,
                body=config.body,
                labels=config.labels,
                assignees=config.assignees,
            )
        return {
            "number": issue.get("number"),
            "id": issue.get("id"),
            "title": issue.get("title"),
            "url": issue.get("html_url"),
            "state": issue.get("state"),
        }


class AddCommentAction(GitHubAction):
    kind = ActionKind.GITHUB_ADD_COMMENT
    name = "Add Comment"
    description = "Comment on an issue or pull request"
    config_model = AddCommentConfig

    async def execute(self, config: AddCommentConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            comment = await client.add_comment(
                config.owner, config.repo, config.issue_number, config.body
            )
        return {"id": comment.get("id"), "url": comment.get("html_url")}


class CloseIssueAction(GitHubAction):
    kind = ActionKind.GITHUB_CLOSE_ISSUE
    name = "Close Issue"
    description = "Close an issue"
    config_model = IssueInput

    async def execute(self, config: IssueInput, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            issue = await client.close_issue(config.owner, config.repo, config.issue_number)
        return {
            "number": issue.get("number"),
            "state": issue.get("state"),
            "url": issue.get("html_url"),
        }


class AddLabelAction(GitHubAction):
    kind = ActionKind.GITHUB_ADD_LABEL
    name = "Add Label"
    description = "Add labels to an issue"
    config_model = AddLabelConfig

    async def execute(self, config: AddLabelConfig, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            labels = await client.add_labels(
                config.owner, config.repo, config.issue_number, config.labels
            )
        return {"labels": [label.get("name") for label in labels]}


class StarRepositoryAction(GitHubAction):
    kind = ActionKind.GITHUB_STAR_REPOSITORY
    name = "Star Repository"
    description = "Star a repository as the authenticated user"
    config_model = RepositoryInput

    async def execute(self, config: RepositoryInput, context: ActionContext) -> dict[str, Any]:
        async with self.client(context) as client:
            await client.star_repository(config.owner, config.repo)
        return {"starred": f"{config.owner}/{config.repo}"}


class CreatePullRequestAction(GitHubAction):
    kind = ActionKind.GITHUB_CREATE_PULL_REQUEST
    name = "Create Pull Request"
    description = "Open a pull request between two branches"
    config_model = CreatePullRequestConfig

    async def execute(
        self, config: CreatePullRequestConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            pull = await client.create_pull_request(
                config.owner,
                config.repo,
                config.title,
                config.head,
                config.base,
                body=config.body,
                draft=config.draft,
            )
        return {
            "number": pull.get("number"),
            "id": pull.get("id"),
            "title": pull.get("title"),
            "url": pull.get("html_url"),
            "state": pull.get("state"),
        }


class MergePullRequestAction(GitHubAction):
    kind = ActionKind.GITHUB_MERGE_PULL_REQUEST
    name = "Merge Pull Request"
    description = "Merge an open pull request"
    config_model = MergePullRequestConfig

    async def execute(
        self, config: MergePullRequestConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            merge = await client.merge_pull_request(
                config.owner,
                config.repo,
                config.pull_number,
                merge_method=config.merge_method,
                commit_title=config.commit_title,
                commit_message=config.commit_message,
            )
        return {
            "merged": bool(merge.get("merged")),
            "message": merge.get("message"),
            "sha": merge.get("sha"),
        }


class CreateRepositoryAction(GitHubAction):
    kind = ActionKind.GITHUB_CREATE_REPOSITORY
    name = "Create Repository"
    description = "Create a repository for the authenticated user"
    config_model = CreateRepositoryConfig

    async def execute(
        self, config: CreateRepositoryConfig, context: ActionContext
    ) -> dict[str, Any]:
        async with self.client(context) as client:
            repository = await client.create_repository(
                config.name,
                description=config.description,
                private=config.private,
                auto_init=config.auto_init,
            )
        return {
            "id": repository.get("id"),
            "name": repository.get("name"),
            "fullName": repository.get("full_name"),
            "url": repository.get("html_url"),
            "private": repository.get("private"),
        }
