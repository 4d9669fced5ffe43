"""GitHub: stargazer polling, repository webhook triggers and repository actions."""

from .actions import (
    AddCommentAction,
    AddLabelAction,
    CloseIssueAction,
    CreateIssueAction,
    CreatePullRequestAction,
    CreateRepositoryAction,
    MergePullRequestAction,
    StarRepositoryAction,
)
from .client import GitHubClient
from .polling import GitHubPollingAdapter
from .triggers import (
    IssueLabeledTrigger,
    NewIssueTrigger,
    NewPullRequestTrigger,
    NewStarTrigger,
    PullRequestReviewRequestedTrigger,
    PushTrigger,
    ReleasePublishedTrigger,
    issue_event,
    issue_labeled_event,
    pull_request_event,
    push_event,
    release_event,
    repository_coordinates,
    review_requested_event,
)

__all__ = [
    "AddCommentAction",
    "AddLabelAction",
    "CloseIssueAction",
    "CreateIssueAction",
    "CreatePullRequestAction",
    "CreateRepositoryAction",
    "GitHubClient",
    "GitHubPollingAdapter",
    "IssueLabeledTrigger",
    "MergePullRequestAction",
    "NewIssueTrigger",
    "NewPullRequestTrigger",
    "NewStarTrigger",
    "PullRequestReviewRequestedTrigger",
    "PushTrigger",
    "ReleasePublishedTrigger",
    "StarRepositoryAction",
    "issue_event",
    "issue_labeled_event",
    "pull_request_event",
    "push_event",
    "release_event",
    "repository_coordinates",
    "review_requested_event",
]
