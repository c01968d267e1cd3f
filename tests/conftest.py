"""
Root conftest.py - Shared Pytest fixtures.

Provides fixtures for:
- A Cucumber report file on disk.
- PublisherSettings with a valid minimal configuration.
- A scripted fake of the Xray client that records every call.
- Mocked HTTP responses for the real client.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest

from xray_publisher.config.loader import PublisherSettings
from xray_publisher.jira_client.xray_client import AuthConfigurationError
from xray_publisher.pipeline.base import StepResult, StepStatus


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def rejected(status_code: int = 400, body: str = "bad request") -> StepResult:
    """Build a failed StepResult as the client reports a tracker rejection."""
    return StepResult(
        status=StepStatus.REJECTED,
        status_code=status_code,
        error=f"Error response received:\nStatus: {status_code}\nBody: {body}",
    )


def make_response(
    status_code: int = 200,
    payload: Any = None,
    text: str = "",
) -> MagicMock:
    """Build a mocked requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text or (json.dumps(payload) if payload is not None else "")
    if payload is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = payload
    return response


class FakeXrayClient:
    """
    Scripted stand-in for XrayClient.

    Every call is recorded in ``calls`` as (operation, args). Results are
    taken from ``results[operation]``: a single StepResult, or a list
    consumed one item per call.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, tuple]] = []
        self.results: Dict[str, Any] = {
            "get_issue_type": StepResult.ok("Test Plan"),
            "import_report": StepResult.ok("EXEC-1"),
        }
        self.auth_error: Optional[Exception] = None

    def _record(self, operation: str, *args: Any) -> StepResult:
        self.calls.append((operation, args))
        result = self.results.get(operation, StepResult.ok(True))
        if isinstance(result, list):
            return result.pop(0)
        return result

    def operations(self) -> List[str]:
        return [name for name, _ in self.calls]

    def remote_operations(self) -> List[str]:
        return [name for name in self.operations() if not name.startswith("configure_")]

    def configure_endpoint(self, url: str) -> None:
        self.calls.append(("configure_endpoint", (url,)))

    def configure_basic_auth(self, username: str, password: str) -> None:
        self.calls.append(("configure_basic_auth", (username, password)))
        if self.auth_error:
            raise self.auth_error

    def configure_extended_auth(
        self, username: str, password: str, jira_token: str, xray_token: str
    ) -> None:
        self.calls.append(
            ("configure_extended_auth", (username, password, jira_token, xray_token))
        )
        if self.auth_error:
            raise self.auth_error

    def get_issue_type(self, issue_key: str) -> StepResult:
        return self._record("get_issue_type", issue_key)

    def import_report(self, report: bytes) -> StepResult:
        return self._record("import_report", report)

    def update_summary(self, issue_key: str, summary: str) -> StepResult:
        return self._record("update_summary", issue_key, summary)

    def update_description(self, issue_key: str, description: str) -> StepResult:
        return self._record("update_description", issue_key, description)

    def update_assignee(self, issue_key: str, assignee: str) -> StepResult:
        return self._record("update_assignee", issue_key, assignee)

    def update_test_environments(self, issue_key: str, environments: List[str]) -> StepResult:
        return self._record("update_test_environments", issue_key, environments)

    def update_affected_versions(self, issue_key: str, versions: List[str]) -> StepResult:
        return self._record("update_affected_versions", issue_key, versions)

    def update_labels(self, issue_key: str, labels: List[str]) -> StepResult:
        return self._record("update_labels", issue_key, labels)

    def close_execution(self, issue_key: str) -> StepResult:
        return self._record("close_execution", issue_key)

    def add_execution_to_plan(self, plan_key: str, execution_key: str) -> StepResult:
        return self._record("add_execution_to_plan", plan_key, execution_key)

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cucumber_report() -> List[Dict[str, Any]]:
    """Return a minimal Cucumber JSON report."""
    return [
        {
            "id": "login",
            "name": "Login",
            "keyword": "Feature",
            "elements": [
                {
                    "id": "login;valid-user",
                    "name": "Valid user",
                    "keyword": "Scenario",
                    "type": "scenario",
                    "tags": [{"name": "@PROJ-101"}],
                    "steps": [
                        {
                            "keyword": "Given ",
                            "name": "a registered user",
                            "result": {"status": "passed", "duration": 1000},
                        }
                    ],
                }
            ],
        }
    ]


@pytest.fixture
def report_file(tmp_path: Path, cucumber_report: List[Dict[str, Any]]) -> Path:
    """Write the Cucumber report to a temporary file."""
    path = tmp_path / "cucumber.json"
    path.write_text(json.dumps(cucumber_report), encoding="utf-8")
    return path


@pytest.fixture
def settings(report_file: Path) -> PublisherSettings:
    """Valid settings with no optional field update requested."""
    return PublisherSettings(
        path=str(report_file),
        test_plan_id="PROJ-100",
        jira_url="https://jira.example.com",
        jira_username="ci-bot",
        jira_password="secret",
    )


@pytest.fixture
def fake_client() -> FakeXrayClient:
    """Fake Xray client where every operation succeeds."""
    return FakeXrayClient()


@pytest.fixture
def auth_error() -> AuthConfigurationError:
    return AuthConfigurationError("Cannot encode Jira credentials")
