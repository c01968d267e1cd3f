"""
Xray REST API Client.

Provides a dedicated client for the Jira / Xray REST calls made while
publishing a test report:
- Authentication (basic, or extended with per-purpose API keys).
- Checking the issue type of the target Test Plan.
- Importing a Cucumber report as a new Test Execution.
- Editing fields of the Test Execution and closing it.
- Linking the Test Execution to its Test Plan.

Every remote operation returns a StepResult and never raises; only the
authentication setup methods propagate errors.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import requests
import urllib3
from loguru import logger
from urllib3.exceptions import InsecureRequestWarning

from xray_publisher.jira_client.execution_update import (
    DEFAULT_TEST_ENVIRONMENTS_FIELD,
    affected_versions_fields,
    assignee_fields,
    description_fields,
    labels_fields,
    summary_fields,
    test_environments_fields,
)
from xray_publisher.pipeline.base import StepResult, StepStatus


class XrayClientError(Exception):
    """Raised when an Xray API operation fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteRejection(XrayClientError):
    """The tracker answered with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(
            f"Error response received:\nStatus: {status_code}\nBody: {body}",
            status_code=status_code,
        )
        self.body = body


class TransportError(XrayClientError):
    """The request never got a usable answer (connection, timeout, TLS)."""

    pass


class AuthConfigurationError(XrayClientError):
    """Raised when authentication headers cannot be built."""

    pass


class AuthMode(Enum):
    """Authentication mode, fixed for the lifetime of a client."""

    BASIC = "basic"
    EXTENDED = "extended"


@dataclass
class XrayEndpoint:
    """Tracker location; the Xray API version follows the auth mode."""

    base_url: str = ""
    auth_mode: AuthMode = AuthMode.BASIC

    @property
    def api_version(self) -> str:
        return "1.0" if self.auth_mode is AuthMode.EXTENDED else "2.0"


class XrayClient:
    """
    Client for the Jira Xray REST API.

    Holds the tracker endpoint and two header sets: one for general issue
    operations and one for import / Test Plan operations. In basic mode both
    are the same set.

    Usage::

        client = XrayClient()
        client.configure_endpoint("https://jira.example.com")
        client.configure_basic_auth("ci-bot", "secret")
        result = client.get_issue_type("PROJ-100")
        if result.is_success:
            print(result.data)  # "Test Plan"
    """

    ENDPOINTS = {
        "issue": "/rest/api/2/issue/{issue_key}",
        "transitions": "/rest/api/2/issue/{issue_key}/transitions",
        "import_cucumber": "/rest/raven/{version}/import/execution/cucumber",
        "testplan_executions": "/rest/raven/{version}/api/testplan/{plan_key}/testexecution",
    }

    DEFAULT_HEADERS = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }

    def __init__(
        self,
        verify_ssl: bool = False,
        timeout_sec: Optional[float] = None,
        api_key_header: str = "itx-apikey",
        close_transition_id: str = "2",
        test_environments_field: str = DEFAULT_TEST_ENVIRONMENTS_FIELD,
    ) -> None:
        """
        Initialize the Xray client.

        Args:
            verify_ssl: Whether to verify TLS certificates. Off by default for
                        internal deployments with self-signed certificates.
            timeout_sec: Request timeout in seconds (None waits indefinitely).
            api_key_header: Header name carrying the API tokens in extended mode.
            close_transition_id: Workflow transition used to close executions.
            test_environments_field: Custom field id of "Test Environments".
        """
        self._endpoint = XrayEndpoint()
        self._headers: Dict[str, str] = dict(self.DEFAULT_HEADERS)
        self._import_headers: Dict[str, str] = self._headers
        self.verify_ssl = verify_ssl
        self.timeout_sec = timeout_sec
        self.api_key_header = api_key_header
        self.close_transition_id = close_transition_id
        self.test_environments_field = test_environments_field
        self._session: Optional[requests.Session] = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def base_url(self) -> str:
        return self._endpoint.base_url

    @property
    def auth_mode(self) -> AuthMode:
        return self._endpoint.auth_mode

    @property
    def api_version(self) -> str:
        """Xray API version used for import and Test Plan endpoints."""
        return self._endpoint.api_version

    @property
    def headers(self) -> Dict[str, str]:
        """Headers for general issue operations."""
        return self._headers

    @property
    def import_headers(self) -> Dict[str, str]:
        """Headers for import and Test Plan operations."""
        return self._import_headers

    def configure_endpoint(self, url: str) -> None:
        """Set the Jira installation base URL."""
        self._endpoint.base_url = (url or "").rstrip("/")
        logger.info(f"Jira base url set to: {self._endpoint.base_url}")

    def configure_basic_auth(self, username: str, password: str) -> None:
        """
        Use a single header set with Basic authorization for every call.

        Raises:
            AuthConfigurationError: If the credentials cannot be encoded.
        """
        headers = dict(self.DEFAULT_HEADERS)
        headers.update(self._basic_auth_header(username, password))
        self._headers = headers
        self._import_headers = headers
        self._endpoint.auth_mode = AuthMode.BASIC
        logger.info("Jira internal headers have been set")

    def configure_extended_auth(
        self,
        username: str,
        password: str,
        jira_token: str,
        xray_token: str,
    ) -> None:
        """
        Use separate header sets for issue and import/Test Plan operations.

        Both carry the Basic authorization; each adds its own API key.
        Switches the Xray API version to 1.0.

        Raises:
            AuthConfigurationError: If the headers cannot be built.
        """
        self._headers = self._api_key_headers(username, password, jira_token)
        self._import_headers = self._api_key_headers(username, password, xray_token)
        self._endpoint.auth_mode = AuthMode.EXTENDED
        logger.info("Jira external headers have been set")

    def _basic_auth_header(self, username: str, password: str) -> Dict[str, str]:
        try:
            token = base64.b64encode(f"{username}:{password}".encode("utf-8"))
        except (TypeError, UnicodeEncodeError) as e:
            logger.error(f"Cannot encode Jira credentials: {e}")
            raise AuthConfigurationError(f"Cannot encode Jira credentials: {e}") from e
        return {"Authorization": f"Basic {token.decode('ascii')}"}

    def _api_key_headers(
        self, username: str, password: str, token: str
    ) -> Dict[str, str]:
        if token is None:
            raise AuthConfigurationError(
                f"Missing API token for header '{self.api_key_header}'"
            )
        headers = self._basic_auth_header(username, password)
        headers[self.api_key_header] = str(token)
        headers.update(self.DEFAULT_HEADERS)
        return headers

    def _get_session(self) -> requests.Session:
        """Get or create the HTTP session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.verify = self.verify_ssl
            if not self.verify_ssl:
                urllib3.disable_warnings(InsecureRequestWarning)
        return self._session

    def _url(self, name: str, **params: str) -> str:
        path = self.ENDPOINTS[name].format(version=self.api_version, **params)
        return f"{self._endpoint.base_url}{path}"

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        **kwargs: Any,
    ) -> requests.Response:
        """
        Send a request and accept only success responses.

        Raises:
            RemoteRejection: If the tracker answered with a non-2xx status.
            TransportError: If no response was received.
        """
        session = self._get_session()
        logger.debug(f"Xray API {method} {url}")

        try:
            response = session.request(
                method=method,
                url=url,
                headers=headers,
                timeout=self.timeout_sec,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Cannot reach Jira at {url}: {e}") from e

        if not response.ok:
            raise RemoteRejection(response.status_code, response.text)
        return response

    @staticmethod
    def _failure(operation: str, error: XrayClientError) -> StepResult:
        logger.error(f"Xray API {operation} failed: {error}")
        status = (
            StepStatus.REJECTED
            if isinstance(error, RemoteRejection)
            else StepStatus.TRANSPORT_ERROR
        )
        return StepResult(
            status=status,
            message=f"{operation} failed",
            status_code=error.status_code,
            error=str(error),
        )

    def _send(
        self,
        operation: str,
        method: str,
        url: str,
        headers: Dict[str, str],
        **kwargs: Any,
    ) -> StepResult:
        """Send a request whose only result of interest is success."""
        try:
            response = self._request(method, url, headers, **kwargs)
        except XrayClientError as e:
            return self._failure(operation, e)
        return StepResult(
            data=True, message=f"{operation} succeeded", status_code=response.status_code
        )

    def _update_fields(
        self, operation: str, issue_key: str, fields: Dict[str, Any]
    ) -> StepResult:
        url = self._url("issue", issue_key=issue_key)
        return self._send(operation, "PUT", url, self._headers, json={"fields": fields})

    # ------------------------------------------------------------------
    # Issue Operations
    # ------------------------------------------------------------------

    def get_issue_type(self, issue_key: str) -> StepResult:
        """
        Fetch the issue type name of an issue.

        Args:
            issue_key: Jira issue key (e.g., "PROJ-100").

        Returns:
            StepResult whose data is the issue type name (e.g., "Test Plan").
        """
        url = self._url("issue", issue_key=issue_key)
        logger.info(f"Issue url is: {url}")

        try:
            response = self._request("GET", url, self._headers)
        except XrayClientError as e:
            return self._failure("get issue type", e)

        try:
            issue_type = response.json()["fields"]["issuetype"]["name"]
        except (ValueError, KeyError, TypeError) as e:
            return self._failure(
                "get issue type",
                RemoteRejection(response.status_code, f"unexpected issue payload: {e}"),
            )
        return StepResult(data=issue_type, status_code=response.status_code)

    def update_summary(self, issue_key: str, summary: str) -> StepResult:
        """Rename an issue."""
        return self._update_fields("update summary", issue_key, summary_fields(summary))

    def update_description(self, issue_key: str, description: str) -> StepResult:
        """Replace the description of an issue."""
        return self._update_fields(
            "update description", issue_key, description_fields(description)
        )

    def update_assignee(self, issue_key: str, assignee: str) -> StepResult:
        """
        Change the assignee of an issue.

        Args:
            issue_key: Jira issue key.
            assignee: Jira user name.
        """
        return self._update_fields(
            "update assignee", issue_key, assignee_fields(assignee)
        )

    def update_test_environments(
        self, issue_key: str, environments: List[str]
    ) -> StepResult:
        """Set the Test Environments custom field."""
        return self._update_fields(
            "update test environments",
            issue_key,
            test_environments_fields(environments, self.test_environments_field),
        )

    def update_affected_versions(self, issue_key: str, versions: List[str]) -> StepResult:
        """Set the Affects Version/s field."""
        return self._update_fields(
            "update affected versions", issue_key, affected_versions_fields(versions)
        )

    def update_labels(self, issue_key: str, labels: List[str]) -> StepResult:
        return self._update_fields("update labels", issue_key, labels_fields(labels))

    def close_execution(self, issue_key: str) -> StepResult:
        """Move a Test Execution issue through the closing transition."""
        url = self._url("transitions", issue_key=issue_key)
        body = {"transition": {"id": self.close_transition_id}}
        return self._send("close execution", "POST", url, self._headers, json=body)

    # ------------------------------------------------------------------
    # Xray Operations
    # ------------------------------------------------------------------

    def import_report(self, report: bytes) -> StepResult:
        """
        Import a Cucumber JSON report, creating a new Test Execution.

        Args:
            report: Raw report file content.

        Returns:
            StepResult whose data is the created Test Execution key.
        """
        url = self._url("import_cucumber")
        logger.info(f"Import url is: {url}")

        try:
            response = self._request("POST", url, self._import_headers, data=report)
        except XrayClientError as e:
            return self._failure("import report", e)

        try:
            issue_key = response.json()["testExecIssue"]["key"]
        except (ValueError, KeyError, TypeError) as e:
            return self._failure(
                "import report",
                RemoteRejection(response.status_code, f"unexpected import payload: {e}"),
            )
        return StepResult(data=issue_key, status_code=response.status_code)

    def add_execution_to_plan(self, plan_key: str, execution_key: str) -> StepResult:
        """
        Add a Test Execution to a Test Plan.

        Args:
            plan_key: Test Plan issue key.
            execution_key: Test Execution issue key.
        """
        url = self._url("testplan_executions", plan_key=plan_key)
        logger.info(f"Add test execution url is: {url}")
        return self._send(
            "add execution to plan",
            "POST",
            url,
            self._import_headers,
            json={"add": [execution_key]},
        )

    def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            self._session.close()
            self._session = None
            logger.debug("Xray client session closed")
