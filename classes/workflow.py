"""
Commit and pull request workflow.

Steps run in order and each one only runs if the previous one succeeded.
A failing step raises WorkflowStepError naming the step; nothing already
done (work item, commit, push) is undone.
"""

import logging
import webbrowser
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from config.config import Config
from classes.exceptions import AzureDevOpsToolError, ValidationError, WorkflowStepError
from classes.git_operations import GitRepository, resolve_repository_name
from classes.models import (
    PullRequestRecord,
    PullRequestRequest,
    WorkItemRecord,
    WorkItemRequest,
    WorkItemState,
    WorkItemType,
    normalize_reviewers,
)
from classes.pull_request_client import PullRequestClient, build_pull_request_description
from classes.work_item_client import WorkItemSubmissionClient

logger = logging.getLogger(__name__)

STEP_CREATE_WORK_ITEM = "create work item"
STEP_DETECT_CHANGES = "detect staged changes"
STEP_COMMIT = "commit"
STEP_RESOLVE_BRANCH = "resolve branch"
STEP_PUSH = "force-push"
STEP_RESOLVE_REPOSITORY = "resolve repository"
STEP_CREATE_PULL_REQUEST = "create pull request"
STEP_OPEN_BROWSER = "open browser"


@dataclass
class WorkflowAnswers:
    """Raw answers gathered from flags or prompts."""
    title: str
    create_work_item: bool = True
    work_item_type: str = "Bug"
    reviewers: List[str] = field(default_factory=list)
    open_browser: bool = False
    target_branch: str = ""


@dataclass
class WorkflowPlan:
    """What the workflow will do, decided before anything runs."""
    title: str
    work_item_request: Optional[WorkItemRequest]
    reviewers: List[str]
    target_branch: str
    open_browser: bool = False


@dataclass
class WorkflowResult:
    work_item: Optional[WorkItemRecord]
    commit_message: str
    staged_files: List[str]
    branch: str
    repository: str
    pull_request: PullRequestRecord


def build_workflow_plan(answers: WorkflowAnswers, default_reviewers: Optional[List[str]] = None,
                        email_domain: Optional[str] = None, target_branch: Optional[str] = None,
                        area_path: str = "", iteration_path: str = "", assigned_to: str = "") -> WorkflowPlan:
    """
    Turn answers into a plan. Pure: no prompts, no external calls.

    The work item, when requested, is created in the In Review state.
    Reviewers are the defaults followed by the user's additions, each
    suffixed with the email domain.

    Raises:
        ValidationError: For an empty title or unknown work item type
    """
    work_item_request = None
    if answers.create_work_item:
        work_item_request = WorkItemRequest(
            title=answers.title,
            work_item_type=WorkItemType.normalize(answers.work_item_type),
            state=WorkItemState.IN_REVIEW,
            area_path=area_path,
            iteration_path=iteration_path,
            assigned_to=assigned_to,
        )
    elif not answers.title or not answers.title.strip():
        raise ValidationError("Commit title must not be empty")

    defaults = Config.DEFAULT_REVIEWERS if default_reviewers is None else default_reviewers
    domain = Config.EMAIL_DOMAIN if email_domain is None else email_domain
    return WorkflowPlan(
        title=answers.title,
        work_item_request=work_item_request,
        reviewers=normalize_reviewers(list(defaults) + list(answers.reviewers), domain),
        target_branch=answers.target_branch or target_branch or Config.TARGET_BRANCH,
        open_browser=answers.open_browser,
    )


class CommitAndPullRequestWorkflow:
    """Creates a work item, commits, force-pushes and opens a pull request."""

    def __init__(self, submission_client: Optional[WorkItemSubmissionClient], git: GitRepository,
                 pr_client: PullRequestClient, renderer=None,
                 browser_opener: Callable[[str], bool] = webbrowser.open):
        self.submission_client = submission_client
        self.git = git
        self.pr_client = pr_client
        self.renderer = renderer
        self.browser_opener = browser_opener

    def _step(self, name, func, *args, **kwargs):
        logger.debug("Workflow step: %s", name)
        try:
            return func(*args, **kwargs)
        except (AzureDevOpsToolError, OSError) as err:
            logger.error("Workflow stopped at step '%s': %s", name, err)
            raise WorkflowStepError(name, err) from err

    def _report(self, message):
        if self.renderer is not None:
            self.renderer.success(message)

    def run(self, plan: WorkflowPlan) -> WorkflowResult:
        """
        Execute the plan.

        Returns:
            WorkflowResult describing everything that was done

        Raises:
            WorkflowStepError: At the first failing step
        """
        work_item = None
        if plan.work_item_request is not None:
            if self.submission_client is None:
                raise WorkflowStepError(STEP_CREATE_WORK_ITEM, ValueError("No submission client configured"))
            work_item = self._step(STEP_CREATE_WORK_ITEM,
                                   self.submission_client.create_work_item, plan.work_item_request)
            self._report(f"Work item created: {work_item.compact()}")

        staged = self._step(STEP_DETECT_CHANGES, self.git.staged_files)
        if not staged:
            logger.warning("No staged changes; creating an empty commit")

        commit_message = work_item.compact() if work_item else plan.title
        self._step(STEP_COMMIT, self.git.commit, commit_message, allow_empty=not staged)
        self._report(f"Committed: {commit_message}")

        branch = self._step(STEP_RESOLVE_BRANCH, self.git.current_branch)
        self._step(STEP_PUSH, self.git.force_push, branch)
        self._report(f"Pushed {branch}")

        repository = self._step(STEP_RESOLVE_REPOSITORY,
                                lambda: resolve_repository_name(self.git.remote_url()))

        work_item_id = work_item.id if work_item else None

        def create_pull_request():
            pr_request = PullRequestRequest(
                source_branch=branch,
                target_branch=plan.target_branch,
                title=commit_message,
                description=build_pull_request_description(
                    commit_message, branch, plan.target_branch, work_item_id, staged),
                work_item_id=work_item_id,
                reviewers=plan.reviewers,
            )
            return self.pr_client.create_pull_request(pr_request, repository)

        pull_request = self._step(STEP_CREATE_PULL_REQUEST, create_pull_request)
        self._report(f"Pull request created: {pull_request.url}")

        if plan.open_browser and pull_request.url:
            self._step(STEP_OPEN_BROWSER, self.browser_opener, pull_request.url)

        return WorkflowResult(
            work_item=work_item,
            commit_message=commit_message,
            staged_files=staged,
            branch=branch,
            repository=repository,
            pull_request=pull_request,
        )
