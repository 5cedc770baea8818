"""Unit tests for git plumbing."""

import pytest

from classes.exceptions import GitCommandError, ValidationError
from classes.git_operations import GitRepository, resolve_repository_name
from tests.conftest import FakeGitRunner


@pytest.mark.parametrize("remote_url", [
    "https://dev.azure.com/testorg/TestProject/_git/myrepo",
    "https://testorg@dev.azure.com/testorg/TestProject/_git/myrepo/",
    "git@ssh.dev.azure.com:v3/testorg/TestProject/myrepo",
    "https://github.com/someone/myrepo.git",
    "myrepo.git",
])
def test_resolve_repository_name(remote_url):
    assert resolve_repository_name(remote_url) == "myrepo"


@pytest.mark.parametrize("remote_url", ["", "   ", "https://host/.git"])
def test_resolve_repository_name_rejects_empty(remote_url):
    with pytest.raises(ValidationError):
        resolve_repository_name(remote_url)


class TestGitRepository:

    def test_staged_files(self):
        runner = FakeGitRunner({"diff": ("src/app.py\nREADME.md\n", 0, "")})
        assert GitRepository(runner=runner).staged_files() == ["src/app.py", "README.md"]
        assert runner.commands[0] == ["git", "diff", "--cached", "--name-only"]

    def test_nothing_staged(self):
        assert GitRepository(runner=FakeGitRunner()).staged_files() == []

    def test_empty_commit(self):
        runner = FakeGitRunner()
        GitRepository(runner=runner).commit("#42: Fix login", allow_empty=True)
        assert runner.commands[0] == ["git", "commit", "-m", "#42: Fix login", "--allow-empty"]

    def test_regular_commit(self):
        runner = FakeGitRunner()
        GitRepository(runner=runner).commit("Docs")
        assert "--allow-empty" not in runner.commands[0]

    def test_current_branch(self):
        runner = FakeGitRunner({"rev-parse": ("feature/login\n", 0, "")})
        assert GitRepository(runner=runner).current_branch() == "feature/login"

    def test_detached_head(self):
        runner = FakeGitRunner({"rev-parse": ("HEAD\n", 0, "")})
        with pytest.raises(ValidationError, match="detached HEAD"):
            GitRepository(runner=runner).current_branch()

    def test_force_push_same_name(self):
        runner = FakeGitRunner()
        GitRepository(runner=runner).force_push("feature/login")
        assert runner.commands[0] == ["git", "push", "--force", "origin", "feature/login:feature/login"]

    def test_failure_raises(self):
        runner = FakeGitRunner({"push": ("", 1, "rejected by hook")})
        with pytest.raises(GitCommandError, match="rejected by hook") as exc_info:
            GitRepository(runner=runner).force_push("main")
        assert exc_info.value.returncode == 1

    def test_missing_git(self):
        def runner(command, **kwargs):
            raise FileNotFoundError("git")

        with pytest.raises(GitCommandError, match="not found"):
            GitRepository(runner=runner).remote_url()
