"""Pytest configuration and shared fixtures for all tests."""

import json
import subprocess
import threading

import pytest

from classes.exceptions import AzCliError
from config.config import Config


# ===========================
# Fakes
# ===========================


class FakeCli:
    """Stands in for AzureCli: records every call and answers through a handler."""

    def __init__(self, handler=None):
        self.calls = []
        self.handler = handler or (lambda args: {})
        self._lock = threading.Lock()

    def run(self, args, output_json=True):
        args = list(args)
        with self._lock:
            self.calls.append(args)
        return self.handler(args)

    def calls_starting_with(self, *prefix):
        return [call for call in self.calls if call[:len(prefix)] == list(prefix)]


class FakeSession:
    """Session provider that only counts how often it was ensured."""

    def __init__(self, user="me@example.com"):
        self.ensure_calls = 0
        self.user = user

    def ensure(self):
        self.ensure_calls += 1

    def current_user(self):
        return self.user


class FakeGitRunner:
    """subprocess.run replacement for git commands, keyed by git subcommand."""

    def __init__(self, responses=None):
        self.commands = []
        self.responses = responses or {}

    def __call__(self, command, **kwargs):
        self.commands.append(list(command))
        stdout, returncode, stderr = self.responses.get(command[1], ("", 0, ""))
        return subprocess.CompletedProcess(command, returncode, stdout=stdout, stderr=stderr)


def az_failure(stderr="ERROR: Please run 'az login' to setup account."):
    return AzCliError(["az", "devops", "invoke"], 1, stderr)


def arg_value(args, flag):
    """Value following `flag` in an az argument list."""
    return args[args.index(flag) + 1]


def read_in_file(args):
    """Decoded body of the --in-file passed to `az devops invoke`."""
    with open(arg_value(args, "--in-file"), encoding="utf-8") as handle:
        return json.load(handle)


def work_item_payload(work_item_id, title="Work item", state="Active", created="2024-03-01T10:00:00Z"):
    return {
        "id": work_item_id,
        "fields": {
            "System.Id": work_item_id,
            "System.Title": title,
            "System.State": state,
            "System.CreatedDate": created,
            "System.WorkItemType": "Bug",
        },
    }


# ===========================
# Fixtures
# ===========================


@pytest.fixture
def fake_session():
    """Session provider counting ensure() calls."""
    return FakeSession()


@pytest.fixture
def fake_cli():
    """Recording az runner answering {} to everything."""
    return FakeCli()


@pytest.fixture(autouse=True)
def clean_env_vars(monkeypatch):
    """Keep local .env files and shell variables out of the tests."""
    monkeypatch.delenv(Config.PAT_ENV_VAR, raising=False)
    monkeypatch.setattr(Config, "AZURE_DEVOPS_ORG", "testorg")
    monkeypatch.setattr(Config, "AZURE_DEVOPS_PROJECT", "TestProject")
    monkeypatch.setattr(Config, "DEFAULT_AREA_PATH", "")
    monkeypatch.setattr(Config, "DEFAULT_ITERATION_PATH", "")
    monkeypatch.setattr(Config, "DEFAULT_ASSIGNEE", "")
    monkeypatch.setattr(Config, "DEFAULT_REVIEWERS", [])
    monkeypatch.setattr(Config, "EMAIL_DOMAIN", "example.com")
    monkeypatch.setattr(Config, "TARGET_BRANCH", "dev")
    monkeypatch.setattr(Config, "DISPLAY_TIMEZONE", "UTC")


# ===========================
# Test Markers
# ===========================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: mark test as an integration test")
