"""
Prompt-driven input gathering for the interactive commands.

Only input collection lives here; what the answers mean is decided by
plain functions (WorkItemRequest validation, build_workflow_plan).
"""

from classes.exceptions import ValidationError
from classes.models import WorkItemRequest, WorkItemState, WorkItemType
from classes.workflow import WorkflowAnswers


def ask(prompt, question, default=""):
    suffix = f" [{default}]" if default else ""
    answer = prompt(f"{question}{suffix}: ").strip()
    return answer or default


def ask_yes_no(prompt, question, default=True):
    hint = "Y/n" if default else "y/N"
    answer = prompt(f"{question} [{hint}]: ").strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def ask_until_valid(prompt, question, convert, default="", report=print):
    """Re-ask until `convert` accepts the answer."""
    while True:
        answer = ask(prompt, question, default)
        try:
            return convert(answer)
        except ValidationError as err:
            report(f"  {err}")


def _non_empty(value):
    if not value.strip():
        raise ValidationError("A value is required")
    return value


def _split_csv(value):
    return [item.strip() for item in value.split(',') if item.strip()]


def prompt_work_item_request(prompt=None, defaults=None, report=print):
    """
    Ask for every work item field in turn.

    Args:
        prompt: input()-like callable, input() when omitted
        defaults: dict with area_path, iteration_path and assigned_to defaults
        report: Callable used to show validation problems

    Returns:
        WorkItemRequest
    """
    prompt = prompt or input
    defaults = defaults or {}
    choices = "/".join(t.value for t in WorkItemType)
    states = "/".join(s.value for s in WorkItemState)

    title = ask_until_valid(prompt, "Title", _non_empty, report=report)
    work_item_type = ask_until_valid(prompt, f"Type ({choices})", WorkItemType.normalize,
                                     default=WorkItemType.BUG.value, report=report)
    state = ask_until_valid(prompt, f"State ({states})", WorkItemState.normalize,
                            default=WorkItemState.ACTIVE.value, report=report)
    area_path = ask(prompt, "Area path", defaults.get("area_path", ""))
    iteration_path = ask(prompt, "Iteration path", defaults.get("iteration_path", ""))
    assigned_to = ask(prompt, "Assigned to", defaults.get("assigned_to", ""))
    tags = _split_csv(ask(prompt, "Extra tags (comma separated)"))

    return WorkItemRequest(
        title=title,
        work_item_type=work_item_type,
        state=state,
        area_path=area_path,
        iteration_path=iteration_path,
        assigned_to=assigned_to,
        tags=tags,
    )


def prompt_workflow_answers(prompt=None, title=None, create_work_item=None, work_item_type=None,
                            reviewers=None, open_browser=None, target_branch="", report=print):
    """Ask only for the workflow answers that were not given as flags."""
    prompt = prompt or input
    if not title:
        title = ask_until_valid(prompt, "Commit / work item title", _non_empty, report=report)
    if create_work_item is None:
        create_work_item = ask_yes_no(prompt, "Create a work item in 'In Review' state?", default=True)
    if create_work_item and not work_item_type:
        work_item_type = ask_until_valid(prompt, "Work item type", WorkItemType.normalize,
                                         default=WorkItemType.BUG.value, report=report).value
    if reviewers is None:
        reviewers = _split_csv(ask(prompt, "Additional reviewers (comma separated)"))
    if open_browser is None:
        open_browser = ask_yes_no(prompt, "Open the pull request in a browser?", default=False)

    return WorkflowAnswers(
        title=title,
        create_work_item=create_work_item,
        work_item_type=work_item_type or WorkItemType.BUG.value,
        reviewers=reviewers,
        open_browser=open_browser,
        target_branch=target_branch or "",
    )
