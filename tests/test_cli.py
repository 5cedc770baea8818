"""Tests for the command line entry point and interactive prompts."""

from unittest.mock import Mock, patch

import pytest

from classes.exceptions import ValidationError
from classes.models import PullRequestRecord, WorkItemState, WorkItemType
from entry_points import main as cli_main
from entry_points.interactive import prompt_work_item_request, prompt_workflow_answers
from tests.conftest import FakeCli, FakeSession, arg_value, az_failure, read_in_file, work_item_payload


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("entry_points.main.configure_logging"):
        yield


@pytest.fixture
def az(monkeypatch):
    """FakeCli installed as the entry point's az runner."""
    bodies = []

    def handler(args):
        if args[:2] == ["account", "show"]:
            return {"user": {"name": "signed.in@example.com"}}
        if args[:2] == ["devops", "invoke"]:
            bodies.append(read_in_file(args))
            fields = {operation["path"].rsplit("/", 1)[-1]: operation["value"] for operation in bodies[-1]}
            return work_item_payload(101, fields["System.Title"], fields["System.State"])
        return {}

    cli = FakeCli(handler)
    cli.bodies = bodies
    monkeypatch.setattr(cli_main, "AzureCli", lambda: cli)
    return cli


def parse(*argv):
    return cli_main.build_parser().parse_args(list(argv))


class TestArgumentHandling:

    def test_state_defaults_to_active(self):
        assert cli_main.resolve_state(parse("--create-bug", "--title", "x")) is WorkItemState.ACTIVE

    @pytest.mark.parametrize("flag, expected", [
        ("--new", WorkItemState.NEW),
        ("--in-review", WorkItemState.IN_REVIEW),
        ("--committed", WorkItemState.COMMITTED),
        ("--approved", WorkItemState.APPROVED),
    ])
    def test_state_flags(self, flag, expected):
        assert cli_main.resolve_state(parse("--create-bug", flag)) is expected

    def test_state_flags_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse("--create-bug", "--new", "--active")

    def test_request_from_args(self):
        args = parse("--create-bug", "--title", "Login fails on IE", "--tags", "ui, login")
        request = cli_main.build_request_from_args(args, WorkItemType.BUG, {"area_path": "TestProject"})
        assert request.title == "Login fails on IE"
        assert request.state is WorkItemState.ACTIVE
        assert request.area_path == "TestProject"
        assert request.tags == ["autogen", "ui", "login"]

    def test_defaults_fall_back_to_project(self):
        defaults = cli_main.work_item_defaults(parse("--create-bug"), "TestProject", FakeSession())
        assert defaults == {
            "area_path": "TestProject",
            "iteration_path": "TestProject",
            "assigned_to": "me@example.com",
        }

    def test_assignee_lookup_failure_leaves_unassigned(self):
        session = Mock()
        session.current_user.side_effect = ValidationError("no account")
        assert cli_main.resolve_default_assignee(session) == ""


class TestMain:

    def test_create_bug_defaults_to_active(self, az, capsys):
        exit_code = cli_main.main(["--create-bug", "--title", "Login fails on IE", "--compact"])

        assert exit_code == 0
        assert capsys.readouterr().out.strip() == "#101: Login fails on IE"
        fields = {operation["path"]: operation["value"] for operation in az.bodies[0]}
        assert fields["/fields/System.State"] == "Active"
        assert fields["/fields/System.AssignedTo"] == "signed.in@example.com"
        assert fields["/fields/System.AreaPath"] == "TestProject"

    def test_create_bug_with_new_flag(self, az):
        assert cli_main.main(["--create-bug", "--title", "Login fails on IE", "--new"]) == 0
        fields = {operation["path"]: operation["value"] for operation in az.bodies[0]}
        assert fields["/fields/System.State"] == "New"

    def test_create_task_uses_task_route(self, az):
        assert cli_main.main(["--create-task", "--title", "Write docs", "--assigned-to", "me"]) == 0
        invoke = az.calls_starting_with("devops", "invoke")[0]
        assert "type=Task" in invoke
        assert arg_value(invoke, "--organization") == "https://dev.azure.com/testorg"
        assert not az.calls_starting_with("account", "show")

    def test_missing_title_is_a_usage_error(self, az, capsys):
        assert cli_main.main(["--create-pbi"]) == 2
        assert "--title is required" in capsys.readouterr().out
        assert az.calls == []

    def test_missing_organization(self, az, monkeypatch):
        monkeypatch.setattr(cli_main.Config, "AZURE_DEVOPS_ORG", "")
        assert cli_main.main(["--create-bug", "--title", "x"]) == 2

    def test_unknown_display_timezone_is_a_usage_error(self, az, monkeypatch, capsys):
        monkeypatch.setattr(cli_main.Config, "DISPLAY_TIMEZONE", "Mars/Base")
        assert cli_main.main(["--list-my-work-items"]) == 2
        assert "Unknown display timezone 'Mars/Base'" in capsys.readouterr().out
        assert az.calls == []

    def test_no_operation(self, capsys):
        assert cli_main.main([]) == 2
        assert "No valid operation" in capsys.readouterr().out

    def test_explain(self, capsys):
        assert cli_main.main(["--explain"]) == 0
        assert "--commit-and-pr" in capsys.readouterr().out

    def test_transport_failure_exit_code(self, monkeypatch, capsys):
        def handler(args):
            if args[:2] == ["devops", "invoke"]:
                raise az_failure("TF400813: not authorized")
            return {}

        cli = FakeCli(handler)
        monkeypatch.setattr(cli_main, "AzureCli", lambda: cli)
        assert cli_main.main(["--create-bug", "--title", "x", "--assigned-to", "me"]) == 1
        assert "TF400813" in capsys.readouterr().out

    def test_list_my_work_items(self, monkeypatch, capsys):
        def handler(args):
            if args[:2] == ["devops", "invoke"]:
                return {"workItems": [{"id": 1}, {"id": 2}]}
            if args[:3] == ["boards", "work-item", "show"]:
                work_item_id = int(arg_value(args, "--id"))
                return work_item_payload(work_item_id, f"Item {work_item_id}")
            return {}

        monkeypatch.setattr(cli_main, "AzureCli", lambda: FakeCli(handler))
        assert cli_main.main(["--list-my-work-items"]) == 0
        output = capsys.readouterr().out
        assert "Work items 1-2 of 2 (page 1)" in output
        assert "#2: Item 2" in output

    def test_commit_and_pr_without_work_item(self, az, monkeypatch, capsys):
        # open browser: no
        monkeypatch.setattr("builtins.input", scripted("n"))
        git = Mock()
        git.staged_files.return_value = []
        git.current_branch.return_value = "feature/docs"
        git.remote_url.return_value = "https://dev.azure.com/testorg/TestProject/_git/myrepo"
        pr_client = Mock()
        pr_client.create_pull_request.return_value = PullRequestRecord(
            9, "Docs", "active", "myrepo", "https://dev.azure.com/testorg/TestProject/_git/myrepo/pullrequest/9")
        monkeypatch.setattr(cli_main, "GitRepository", lambda: git)
        monkeypatch.setattr(cli_main, "PullRequestClient", lambda *args, **kwargs: pr_client)

        exit_code = cli_main.main(["--commit-and-pr", "--no-work-item", "--title", "Docs",
                                   "--reviewers", "alice"])

        assert exit_code == 0
        git.commit.assert_called_once_with("Docs", allow_empty=True)
        pr_request = pr_client.create_pull_request.call_args.args[0]
        assert pr_request.reviewers == ["alice@example.com"]
        assert az.calls_starting_with("devops", "invoke") == []
        assert capsys.readouterr().out.strip().endswith("/pullrequest/9")

    def test_commit_and_pr_step_failure(self, az, monkeypatch, capsys):
        # create work item: yes, type: default, open browser: no
        monkeypatch.setattr("builtins.input", scripted("y", "", "n"))
        git = Mock()
        git.staged_files.return_value = ["a.py"]
        git.current_branch.side_effect = ValidationError("Not on a branch (detached HEAD)")
        monkeypatch.setattr(cli_main, "GitRepository", lambda: git)

        exit_code = cli_main.main(["--commit-and-pr", "--title", "Fix login", "--reviewers", "",
                                   "--assigned-to", "me"])
        output = capsys.readouterr().out

        assert exit_code == 1
        assert "Step 'resolve branch' failed" in output
        assert len(az.bodies) == 1
        git.force_push.assert_not_called()


def scripted(*answers):
    replies = iter(answers)
    return lambda question: next(replies)


class TestInteractivePrompts:

    def test_work_item_request(self):
        reports = []
        request = prompt_work_item_request(
            prompt=scripted("Login fails on IE", "epic", "pbi", "", "", "Proj\\Sprint 1", "", "ui"),
            defaults={"area_path": "Proj", "assigned_to": "me@example.com"},
            report=reports.append,
        )
        assert request.work_item_type is WorkItemType.PRODUCT_BACKLOG_ITEM
        assert request.state is WorkItemState.ACTIVE
        assert request.area_path == "Proj"
        assert request.iteration_path == "Proj\\Sprint 1"
        assert request.assigned_to == "me@example.com"
        assert request.tags == ["autogen", "ui"]
        assert len(reports) == 1

    def test_empty_title_is_asked_again(self):
        reports = []
        request = prompt_work_item_request(
            prompt=scripted("", "Real title", "", "in review", "", "", "", ""),
            report=reports.append,
        )
        assert request.title == "Real title"
        assert request.state is WorkItemState.IN_REVIEW
        assert reports == ["  A value is required"]

    def test_workflow_answers_only_ask_for_missing(self):
        prompt = Mock(side_effect=["y", "task", "bob, carol", "n"])
        answers = prompt_workflow_answers(prompt=prompt, title="Fix login")
        assert answers.create_work_item is True
        assert answers.work_item_type == "Task"
        assert answers.reviewers == ["bob", "carol"]
        assert answers.open_browser is False
        assert prompt.call_count == 4

    def test_workflow_answers_from_flags(self):
        prompt = Mock()
        answers = prompt_workflow_answers(prompt=prompt, title="Docs", create_work_item=False,
                                          reviewers=[], open_browser=True)
        prompt.assert_not_called()
        assert answers.create_work_item is False
        assert answers.work_item_type == "Bug"
