import argparse
import sys

from classes.az_cli import AzureCli
from classes.detail_fetcher import WorkItemDetailFetcher
from classes.exceptions import (
    AzureDevOpsToolError,
    ConfigurationError,
    ValidationError,
    WorkflowStepError,
)
from classes.git_operations import GitRepository
from classes.models import WorkItemRequest, WorkItemState, WorkItemType
from classes.pull_request_client import PullRequestClient
from classes.session import SessionGuarantor
from classes.work_item_client import TRANSPORTS, WorkItemSubmissionClient, create_transport
from classes.work_item_lister import MyWorkItemsLister, WorkItemQuery
from classes.workflow import CommitAndPullRequestWorkflow, build_workflow_plan
from config.config import Config
from entry_points.interactive import prompt_work_item_request, prompt_workflow_answers
from helpers.console import ConsoleRenderer
from helpers.logger import configure_logging

# State selector flags, in the order they are offered
STATE_FLAGS = {
    "new": WorkItemState.NEW,
    "active": WorkItemState.ACTIVE,
    "in_review": WorkItemState.IN_REVIEW,
    "committed": WorkItemState.COMMITTED,
    "approved": WorkItemState.APPROVED,
}

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def explain_commands():
    """
    Explains all available commands and their arguments.
    """
    explanation = """
Azure DevOps work item and pull request workflow:

Commands:
  --create-bug / --create-pbi / --create-task
      Creates a Bug, Product Backlog Item or Task.
      Required arguments:
        --title : Title of the work item.
      State (pick at most one, default --active):
        --new | --active | --in-review | --committed | --approved
      Optional arguments:
        --tags           : Extra tags (comma-separated). 'autogen' is always added.
        --area-path      : Area path (default AZURE_DEVOPS_AREA_PATH or the project).
        --iteration-path : Iteration path (default AZURE_DEVOPS_ITERATION_PATH or the project).
        --assigned-to    : Assignee (default AZURE_DEVOPS_ASSIGNEE or the signed-in az user).
        --transport      : cli (default, az devops invoke), rest or sdk (both need AZURE_DEVOPS_PAT).
        --compact        : Print only '#<id>: <title>'.
      Example:
        python run.py --create-bug --title "Login fails on IE" --new

  --create-work-item
      Prompts for every field of a new work item.

  --list-my-work-items
      Lists work items assigned to you, newest first, five per page.
      Press 'n' for the next page, any other key to stop.

  --commit-and-pr
      Creates a work item in 'In Review' (unless --no-work-item), commits the staged
      changes (an empty commit when nothing is staged), force-pushes the current branch
      and creates a pull request.
      Optional arguments:
        --title           : Commit / work item title (prompted when missing).
        --no-work-item    : Skip work item creation and use the bare title.
        --work-item-type  : Bug (default), Product Backlog Item or Task.
        --reviewers       : Additional reviewers (comma-separated).
        --target-branch   : Target branch (default AZURE_DEVOPS_TARGET_BRANCH or 'dev').
        --open            : Open the pull request in a browser.

Environment Variables:
  AZURE_DEVOPS_ORG               : Azure DevOps organization name.
  AZURE_DEVOPS_PROJECT           : Azure DevOps project name.
  AZURE_DEVOPS_PAT               : Personal access token for the rest and sdk transports.
  AZURE_DEVOPS_DEFAULT_REVIEWERS : Reviewers added to every pull request (comma-separated).
  AZURE_DEVOPS_EMAIL_DOMAIN      : Domain appended to reviewer names.

Use --help for a detailed usage guide.
"""
    print(explanation)


def resolve_state(args):
    """State picked by the mutually exclusive state flags, Active when none is set."""
    for flag, state in STATE_FLAGS.items():
        if getattr(args, flag, False):
            return state
    return WorkItemState.ACTIVE


def split_csv(value):
    return [item.strip() for item in value.split(',') if item.strip()] if value else []


def resolve_default_assignee(session):
    """Configured assignee, else the signed-in az user, else nobody."""
    if Config.DEFAULT_ASSIGNEE:
        return Config.DEFAULT_ASSIGNEE
    try:
        return session.current_user()
    except AzureDevOpsToolError as err:
        print(f"Could not determine the signed-in user ({err}); leaving the work item unassigned.",
              file=sys.stderr)
        return ""


def work_item_defaults(args, project, session):
    return {
        "area_path": args.area_path or Config.DEFAULT_AREA_PATH or project,
        "iteration_path": args.iteration_path or Config.DEFAULT_ITERATION_PATH or project,
        "assigned_to": args.assigned_to or resolve_default_assignee(session),
    }


def build_request_from_args(args, work_item_type, defaults):
    """
    Work item request for the --create-* commands.

    Raises:
        ValidationError: For an empty title
    """
    return WorkItemRequest(
        title=args.title or "",
        work_item_type=work_item_type,
        state=resolve_state(args),
        area_path=defaults.get("area_path", ""),
        iteration_path=defaults.get("iteration_path", ""),
        assigned_to=defaults.get("assigned_to", ""),
        tags=split_csv(args.tags),
    )


def handle_create_work_item(args, organization, project, work_item_type, renderer, cli):
    if not args.title:
        raise ValidationError("--title is required to create a work item")
    session = SessionGuarantor(cli)
    request = build_request_from_args(args, work_item_type, work_item_defaults(args, project, session))
    transport = create_transport(args.transport, organization, project, cli=cli)
    client = WorkItemSubmissionClient(transport, session)
    record = client.create_work_item(request)
    renderer.render_created(record, compact=args.compact)
    return EXIT_OK


def handle_interactive_create(args, organization, project, renderer, cli):
    session = SessionGuarantor(cli)
    request = prompt_work_item_request(defaults=work_item_defaults(args, project, session))
    transport = create_transport(args.transport, organization, project, cli=cli)
    record = WorkItemSubmissionClient(transport, session).create_work_item(request)
    renderer.render_created(record, compact=args.compact)
    return EXIT_OK


def handle_list_my_work_items(args, organization, project, renderer, cli):
    session = SessionGuarantor(cli)
    lister = MyWorkItemsLister(
        query=WorkItemQuery(organization, project, cli=cli, session=session),
        fetcher=WorkItemDetailFetcher(organization, cli=cli, session=session),
        renderer=renderer,
    )
    lister.run()
    return EXIT_OK


def handle_commit_and_pr(args, organization, project, renderer, cli):
    session = SessionGuarantor(cli)
    answers = prompt_workflow_answers(
        title=args.title,
        create_work_item=False if args.no_work_item else None,
        work_item_type=args.work_item_type,
        reviewers=split_csv(args.reviewers) if args.reviewers is not None else None,
        open_browser=True if args.open else None,
        target_branch=args.target_branch,
    )
    defaults = work_item_defaults(args, project, session) if answers.create_work_item else {}
    plan = build_workflow_plan(answers, **defaults)

    submission_client = None
    if plan.work_item_request is not None:
        transport = create_transport(args.transport, organization, project, cli=cli)
        submission_client = WorkItemSubmissionClient(transport, session)

    workflow = CommitAndPullRequestWorkflow(
        submission_client=submission_client,
        git=GitRepository(),
        pr_client=PullRequestClient(organization, project, cli=cli, session=session),
        renderer=renderer,
    )
    result = workflow.run(plan)
    print(result.pull_request.url)
    return EXIT_OK


def build_parser():
    parser = argparse.ArgumentParser(description="Azure DevOps work item and pull request workflow")
    parser.add_argument("--organization", help="Azure DevOps organization name (optional, fallback to AZURE_DEVOPS_ORG environment variable)")
    parser.add_argument("--project", help="Azure DevOps project name (optional, fallback to AZURE_DEVOPS_PROJECT environment variable)")
    parser.add_argument("--explain", action="store_true", help="Explain all commands and arguments")
    parser.add_argument("--log-level", default=Config.LOG_LEVEL, help="Logging level (default: WARNING)")

    # Commands
    parser.add_argument("--create-bug", action="store_true", help="Create a Bug")
    parser.add_argument("--create-pbi", action="store_true", help="Create a Product Backlog Item")
    parser.add_argument("--create-task", action="store_true", help="Create a Task")
    parser.add_argument("--create-work-item", action="store_true", help="Create a work item interactively")
    parser.add_argument("--list-my-work-items", action="store_true", help="Page through work items assigned to you")
    parser.add_argument("--commit-and-pr", action="store_true",
                        help="Create a work item, commit, force-push and open a pull request")

    # Work item fields
    parser.add_argument("--title", help="Title of the work item / commit")
    states = parser.add_mutually_exclusive_group()
    states.add_argument("--new", action="store_true", help="Create in state New")
    states.add_argument("--active", action="store_true", help="Create in state Active (default)")
    states.add_argument("--in-review", action="store_true", help="Create in state In Review")
    states.add_argument("--committed", action="store_true", help="Create in state Committed")
    states.add_argument("--approved", action="store_true", help="Create in state Approved")
    parser.add_argument("--tags", help="Comma-separated list of extra tags")
    parser.add_argument("--area-path", help="Area path of the work item")
    parser.add_argument("--iteration-path", help="Iteration path of the work item")
    parser.add_argument("--assigned-to", help="Assignee of the work item")
    parser.add_argument("--transport", choices=sorted(TRANSPORTS), default="cli",
                        help="How work items are submitted (default: cli)")
    parser.add_argument("--compact", action="store_true", help="Print only '#<id>: <title>'")

    # Workflow
    parser.add_argument("--no-work-item", action="store_true", help="Do not create a work item in --commit-and-pr")
    parser.add_argument("--work-item-type", help="Work item type for --commit-and-pr (default: Bug)")
    parser.add_argument("--reviewers", help="Comma-separated list of additional reviewers")
    parser.add_argument("--target-branch", help="Pull request target branch (default: dev)")
    parser.add_argument("--open", action="store_true", help="Open the pull request in a browser")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Handle explain command
    if args.explain:
        explain_commands()
        return EXIT_OK

    configure_logging(args.log_level)

    organization = args.organization or Config.AZURE_DEVOPS_ORG
    project = args.project or Config.AZURE_DEVOPS_PROJECT
    try:
        renderer = ConsoleRenderer(organization, project)
    except ConfigurationError as err:
        print(f"Error: {err}")
        return EXIT_USAGE
    cli = AzureCli()

    # Dispatch table for operations
    operations = {
        "create_bug": lambda: handle_create_work_item(args, organization, project, WorkItemType.BUG, renderer, cli),
        "create_pbi": lambda: handle_create_work_item(args, organization, project, WorkItemType.PRODUCT_BACKLOG_ITEM, renderer, cli),
        "create_task": lambda: handle_create_work_item(args, organization, project, WorkItemType.TASK, renderer, cli),
        "create_work_item": lambda: handle_interactive_create(args, organization, project, renderer, cli),
        "list_my_work_items": lambda: handle_list_my_work_items(args, organization, project, renderer, cli),
        "commit_and_pr": lambda: handle_commit_and_pr(args, organization, project, renderer, cli),
    }

    # Determine which operation to execute
    for operation_name, operation_func in operations.items():
        if getattr(args, operation_name, False):
            try:
                Config.validate_organization(organization, project)
                return operation_func()
            except (ValidationError, ConfigurationError) as err:
                renderer.error(f"Error: {err}")
                return EXIT_USAGE
            except WorkflowStepError as err:
                renderer.error(f"Error: {err}")
                renderer.notice("Steps completed before the failure were not rolled back.")
                return EXIT_FAILURE
            except AzureDevOpsToolError as err:
                renderer.error(f"Error: {err}")
                return EXIT_FAILURE
            except (KeyboardInterrupt, EOFError):
                renderer.notice("Cancelled.")
                return EXIT_FAILURE

    print("Error: No valid operation provided.")
    parser.print_help()
    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
