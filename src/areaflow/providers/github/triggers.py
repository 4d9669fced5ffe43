"""GitHub triggers: polled stargazers and repository webhook events."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from ...registry.capabilities import CapabilityConfig, EventPayload, Trigger, TriggerType


class RepositoryConfig(CapabilityConfig):
    owner: str = Field(..., min_length=1, description="Repository owner")
    repo: str = Field(..., min_length=1, description="Repository name")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class PushConfig(RepositoryConfig):
    branch: str | None = Field(default=None, description="Only pushes to this branch")


class RepositoryRef(EventPayload):
    name: str
    full_name: str
    url: str | None = None


class Actor(EventPayload):
    login: str
    url: str | None = None


class NewStar(EventPayload):
    action: str = "starred"
    repository: RepositoryRef
    sender: Actor
    starred_at: str


class IssueRef(EventPayload):
    number: int
    title: str
    body: str | None = None
    state: str
    url: str
    labels: list[str] = Field(default_factory=list)


class NewIssue(EventPayload):
    action: str
    issue: IssueRef
    repository: RepositoryRef
    sender: Actor


class CommitAuthor(BaseModel):
    name: str | None = None
    email: str | None = None


class Commit(EventPayload):
    id: str
    message: str
    author: CommitAuthor = Field(default_factory=CommitAuthor)


class Push(EventPayload):
    ref: str
    before: str
    after: str
    repository: RepositoryRef
    pusher: CommitAuthor
    commits: list[Commit] = Field(default_factory=list)


class LabelConfig(RepositoryConfig):
    label: str | None = Field(default=None, description="Only this label (any when unset)")


class PullRequestRef(EventPayload):
    number: int
    title: str
    body: str | None = None
    state: str
    url: str
    head: str | None = None
    base: str | None = None


class NewPullRequest(EventPayload):
    action: str
    pull_request: PullRequestRef
    repository: RepositoryRef
    sender: Actor


class LabelRef(EventPayload):
    name: str


class IssueLabeled(EventPayload):
    action: str
    label: LabelRef
    issue: IssueRef
    repository: RepositoryRef
    sender: Actor


class ReviewRequested(EventPayload):
    action: str
    pull_request: PullRequestRef
    requested_reviewer: Actor
    repository: RepositoryRef
    sender: Actor


class ReleaseRef(EventPayload):
    tag_name: str
    name: str | None = None
    body: str | None = None
    url: str
    draft: bool = False
    prerelease: bool = False


class ReleasePublished(EventPayload):
    action: str
    release: ReleaseRef
    repository: RepositoryRef
    sender: Actor


def _repository(body: Mapping[str, Any]) -> RepositoryRef:
    repository = body["repository"]
    return RepositoryRef(
        name=repository["name"],
        full_name=repository["full_name"],
        url=repository.get("html_url"),
    )


def _actor(user: Mapping[str, Any] | None) -> Actor:
    user = user or {}
    return Actor(login=user.get("login", ""), url=user.get("html_url"))


def repository_coordinates(body: Mapping[str, Any]) -> dict[str, str]:
    """``owner``/``repo`` of a repository webhook body, for matching."""
    repository = body["repository"]
    owner = (repository.get("owner") or {}).get("login")
    if not owner:
        owner = repository["full_name"].split("/", 1)[0]
    return {"owner": owner, "repo": repository["name"]}


def _issue(issue: Mapping[str, Any]) -> IssueRef:
    return IssueRef(
        number=issue["number"],
        title=issue["title"],
        body=issue.get("body"),
        state=issue.get("state", "open"),
        url=issue.get("html_url", ""),
        labels=[label.get("name", "") for label in issue.get("labels") or []],
    )


def _pull_request(pull: Mapping[str, Any]) -> PullRequestRef:
    return PullRequestRef(
        number=pull["number"],
        title=pull["title"],
        body=pull.get("body"),
        state=pull.get("state", "open"),
        url=pull.get("html_url", ""),
        head=(pull.get("head") or {}).get("ref"),
        base=(pull.get("base") or {}).get("ref"),
    )


def issue_event(body: Mapping[str, Any]) -> dict[str, Any]:
    """Trigger payload for an ``issues`` webhook delivery."""
    return NewIssue(
        action=body.get("action", "opened"),
        issue=_issue(body["issue"]),
        repository=_repository(body),
        sender=_actor(body.get("sender")),
    ).to_event()


def issue_labeled_event(body: Mapping[str, Any]) -> dict[str, Any]:
    """Trigger payload for an ``issues`` delivery with action ``labeled``."""
    return IssueLabeled(
        action=body.get("action", "labeled"),
        label=LabelRef(name=(body.get("label") or {}).get("name", "")),
        issue=_issue(body["issue"]),
        repository=_repository(body),
        sender=_actor(body.get("sender")),
    ).to_event()


def pull_request_event(body: Mapping[str, Any]) -> dict[str, Any]:
    """Trigger payload for a ``pull_request`` delivery with action ``opened``."""
    return NewPullRequest(
        action=body.get("action", "opened"),
        pull_request=_pull_request(body["pull_request"]),
        repository=_repository(body),
        sender=_actor(body.get("sender")),
    ).to_event()


def review_requested_event(body: Mapping[str, Any]) -> dict[str, Any]:
    """Trigger payload for a ``pull_request`` delivery with action ``review_requested``.

    Team review requests carry ``requested_team`` instead of a reviewer; the
    team slug is reported as the login.
    """
    reviewer = body.get("requested_reviewer")
    if not reviewer and body.get("requested_team"):
        team = body["requested_team"]
        reviewer = {
            "login": team.get("slug") or team.get("name", ""),
            "html_url": team.get("html_url"),
        }
    return ReviewRequested(
        action=body.get("action", "review_requested"),
        pull_request=_pull_request(body["pull_request"]),
        requested_reviewer=_actor(reviewer),
        repository=_repository(body),
        sender=_actor(body.get("sender")),
    ).to_event()


def release_event(body: Mapping[str, Any]) -> dict[str, Any]:
    """Trigger payload for a ``release`` delivery with action ``published``."""
    release = body["release"]
    return ReleasePublished(
        action=body.get("action", "published"),
        release=ReleaseRef(
            tag_name=release["tag_name"],
            name=release.get("name"),
            body=release.get("body"),
            url=release.get("html_url", ""),
            draft=bool(release.get("draft")),
            prerelease=bool(release.get("prerelease")),
        ),
        repository=_repository(body),
        sender=_actor(body.get("sender")),
    ).to_event()


def push_event(body: Mapping[str, Any]) -> dict[str, Any]:
    """Trigger payload for a ``push`` webhook delivery."""
    pusher = body.get("pusher") or {}
    return Push(
        ref=body["ref"],
        before=body.get("before", ""),
        after=body.get("after", ""),
        repository=_repository(body),
        pusher=CommitAuthor(name=pusher.get("name"), email=pusher.get("email")),
        commits=[
            Commit(
                id=commit["id"],
                message=commit.get("message", ""),
                author=CommitAuthor.model_validate(commit.get("author") or {}),
            )
            for commit in body.get("commits") or []
        ],
    ).to_event()


def same_repository(config: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
    """Case-insensitive ``owner``/``repo`` equality between a config and an event."""
    return (
        str(config.get("owner", "")).lower() == str(event.get("owner", "")).lower()
        and str(config.get("repo", "")).lower() == str(event.get("repo", "")).lower()
    )


class NewStarTrigger(Trigger):
    provider = "github"
    id = "new_star"
    name = "New Star"
    description = "Triggers when someone stars a repository"
    requires_credentials = True
    trigger_type = TriggerType.POLLING
    config_model = RepositoryConfig
    output_model = NewStar


class NewIssueTrigger(Trigger):
    provider = "github"
    id = "new_issue"
    name = "New Issue Created"
    description = "Triggers when a new issue is created in a repository"
    trigger_type = TriggerType.WEBHOOK
    config_model = RepositoryConfig
    output_model = NewIssue

    def matches(self, config: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        return same_repository(config, event)


class PushTrigger(Trigger):
    provider = "github"
    id = "push"
    name = "Push to Repository"
    description = "Triggers when code is pushed to a repository"
    trigger_type = TriggerType.WEBHOOK
    config_model = PushConfig
    output_model = Push

    def matches(self, config: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        if not same_repository(config, event):
            return False
        branch = config.get("branch")
        return not branch or event.get("ref") == f"refs/heads/{branch}"


class NewPullRequestTrigger(Trigger):
    provider = "github"
    id = "new_pull_request"
    name = "New Pull Request"
    description = "Triggers when a pull request is opened in a repository"
    trigger_type = TriggerType.WEBHOOK
    config_model = RepositoryConfig
    output_model = NewPullRequest

    def matches(self, config: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        return same_repository(config, event)


class IssueLabeledTrigger(Trigger):
    provider = "github"
    id = "issue_labeled"
    name = "Issue Labeled"
    description = "Triggers when a label is added to an issue"
    trigger_type = TriggerType.WEBHOOK
    config_model = LabelConfig
    output_model = IssueLabeled

    def matches(self, config: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        if not same_repository(config, event):
            return False
        label = config.get("label")
        return not label or str(label).lower() == str(event.get("label") or "").lower()


class PullRequestReviewRequestedTrigger(Trigger):
    provider = "github"
    id = "pr_review_requested"
    name = "PR Review Requested"
    description = "Triggers when a review is requested on a pull request"
    trigger_type = TriggerType.WEBHOOK
    config_model = RepositoryConfig
    output_model = ReviewRequested

    def matches(self, config: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        return same_repository(config, event)


class ReleasePublishedTrigger(Trigger):
    provider = "github"
    id = "release_published"
    name = "Release Published"
    description = "Triggers when a release is published in a repository"
    trigger_type = TriggerType.WEBHOOK
    config_model = RepositoryConfig
    output_model = ReleasePublished

    def matches(self, config: Mapping[str, Any], event: Mapping[str, Any]) -> bool:
        return same_repository(config, event)
