"""Pull request operations for Azure DevOps."""

import logging
from typing import List, Optional

from config.config import Config
from classes.az_cli import AzureCli
from classes.models import PullRequestRecord, PullRequestRequest
from classes.session import SessionGuarantor, SessionProvider, run_with_reauth

logger = logging.getLogger(__name__)


def build_pull_request_description(title: str, source_branch: str, target_branch: str,
                                   work_item_id: Optional[int] = None,
                                   changed_files: Optional[List[str]] = None) -> str:
    """Markdown description for an automatically created pull request."""
    lines = [f"## {title}", "", f"Merges `{source_branch}` into `{target_branch}`."]
    if work_item_id:
        lines += ["", f"Related work item: #{work_item_id}"]
    if changed_files:
        lines += ["", "### Changed files"]
        lines += [f"- `{path}`" for path in changed_files]
    else:
        lines += ["", "_No staged file changes; this pull request carries an empty commit._"]
    return "\n".join(lines)


class PullRequestClient:
    """Client for pull request operations."""

    def __init__(self, organization=None, project=None, cli: Optional[AzureCli] = None,
                 session: Optional[SessionProvider] = None):
        """
        Args:
            organization: Azure DevOps organization name or URL
            project: Project name
            cli: Azure CLI runner
            session: Session provider ensured between attempts
        """
        self.organization = organization or Config.AZURE_DEVOPS_ORG
        self.project = project or Config.AZURE_DEVOPS_PROJECT
        self.cli = cli or AzureCli()
        self.session = session or SessionGuarantor(self.cli)

    def pull_request_url(self, repository: str, pull_request_id: int) -> str:
        return (f"{Config.organization_url(self.organization)}/{self.project}"
                f"/_git/{repository}/pullrequest/{pull_request_id}")

    def create_pull_request(self, request: PullRequestRequest, repository: str) -> PullRequestRecord:
        """
        Create a pull request.

        Args:
            request: Pull request parameters
            repository: Repository name

        Returns:
            PullRequestRecord with its web URL

        Raises:
            TransportError: If `az repos pr create` keeps failing
        """
        args = [
            "repos", "pr", "create",
            "--organization", Config.organization_url(self.organization),
            "--project", self.project,
            "--repository", repository,
            "--source-branch", request.source_branch,
            "--target-branch", request.target_branch,
            "--title", request.title,
            "--description", request.description,
        ]
        if request.work_item_id:
            args += ["--work-items", str(request.work_item_id)]
        if request.reviewers:
            args += ["--reviewers", *request.reviewers]

        logger.info("Creating pull request %s -> %s in %s",
                    request.source_branch, request.target_branch, repository)
        response = run_with_reauth(
            lambda: self.cli.run(args),
            self.session,
            f"Creating pull request '{request.title}'",
        )

        record = PullRequestRecord.from_api(response)
        if not record.repository:
            record.repository = repository
        if not record.url:
            record.url = self.pull_request_url(repository, record.pull_request_id)
        logger.info("Created pull request #%s", record.pull_request_id)
        return record
