"""
Report Publisher Module.

Runs the ordered publishing pipeline for a Cucumber report:

    validate input -> configure client -> check report file
    -> check Test Plan type -> import report -> update fields
    -> close execution -> link execution to Test Plan

Every step up to closing the execution is fatal on failure and raises a
PipelineError. Linking to the Test Plan is retried once and only degrades
the run when it still fails.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional

from loguru import logger

from xray_publisher.jira_client.execution_update import (
    ExecutionUpdateRequest,
    is_blank,
    split_multi_value,
)
from xray_publisher.jira_client.xray_client import AuthConfigurationError
from xray_publisher.pipeline.base import StepResult, run_with_retry
from xray_publisher.pipeline.errors import (
    ConfigurationStepError,
    DegradedLinkageWarning,
    PreconditionError,
    RemoteStepError,
    ValidationError,
)

if TYPE_CHECKING:
    from xray_publisher.config.loader import PublisherSettings
    from xray_publisher.jira_client.xray_client import XrayClient

TEST_PLAN_ISSUE_TYPE = "Test Plan"
PLAN_LINK_ATTEMPTS = 2


@dataclass
class PipelineResult:
    """
    Outcome of a successful publishing run.

    Attributes:
        report_key: Key of the created Test Execution issue.
        warnings: Degraded steps that did not fail the run.
    """

    report_key: str
    warnings: List[DegradedLinkageWarning] = field(default_factory=list)

    @property
    def is_degraded(self) -> bool:
        return bool(self.warnings)


class ReportPublisher:
    """
    Publishes a Cucumber report into Jira Xray.

    The client is configured by the publisher itself (endpoint and
    authentication) before the first remote call.

    Usage::

        publisher = ReportPublisher(client=XrayClient(), settings=settings)
        result = publisher.run()
        print(result.report_key)
    """

    def __init__(self, client: "XrayClient", settings: "PublisherSettings") -> None:
        self.client = client
        self.settings = settings

    def run(self) -> PipelineResult:
        """
        Execute the whole pipeline.

        Returns:
            PipelineResult carrying the Test Execution key.

        Raises:
            ValidationError: If the Test Plan id is blank.
            ConfigurationStepError: If the client cannot be configured.
            PreconditionError: If the report or the Test Plan is not usable.
            RemoteStepError: If a mandatory tracker operation fails.
        """
        settings = self.settings

        self._validate_inputs()
        self._configure_client()
        report_path = self._check_report_file(settings.path)
        self._check_test_plan(settings.test_plan_id)

        report_key = self._import_report(report_path)
        self._apply_updates(report_key)
        self._close_execution(report_key)

        result = PipelineResult(report_key=report_key)
        warning = self._link_to_plan(settings.test_plan_id, report_key)
        if warning is not None:
            result.warnings.append(warning)
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _validate_inputs(self) -> None:
        if is_blank(self.settings.test_plan_id):
            logger.error(
                "Parameter test-plan-id validation failed. "
                "Cannot be blank, null or whitespace."
            )
            raise ValidationError("TestPlanId cannot be blank, null or whitespace.")

    def _configure_client(self) -> None:
        settings = self.settings
        try:
            self.client.configure_endpoint(settings.jira_url)
            if settings.use_extended_auth:
                self.client.configure_extended_auth(
                    settings.jira_username,
                    settings.jira_password,
                    settings.jira_token,
                    settings.xray_token,
                )
            else:
                self.client.configure_basic_auth(
                    settings.jira_username, settings.jira_password
                )
        except AuthConfigurationError as e:
            raise ConfigurationStepError(f"Cannot configure Jira client: {e}") from e

    @staticmethod
    def _check_report_file(path: Optional[str]) -> Path:
        if is_blank(path):
            raise PreconditionError("Report path cannot be blank.")
        report_path = Path(path)
        if not report_path.is_file():
            raise PreconditionError(f"Report file not accessible: {report_path}")
        return report_path

    def _check_test_plan(self, plan_key: str) -> None:
        result = self.client.get_issue_type(plan_key)
        if result.is_failure:
            raise PreconditionError(
                f"Cannot determine issue type for {plan_key}: {result.error}"
            )
        if result.data != TEST_PLAN_ISSUE_TYPE:
            raise PreconditionError(f"Wrong issue type ({result.data}) for {plan_key}")
        logger.info(f"Test plan found: {plan_key}")

    def _import_report(self, report_path: Path) -> str:
        try:
            report = report_path.read_bytes()
        except OSError as e:
            raise PreconditionError(f"Cannot read report {report_path}: {e}") from e

        result = self.client.import_report(report)
        if result.is_failure or not result.data:
            raise RemoteStepError("Error importing report into jira", result)
        logger.info(f"Report imported on: {result.data}")
        return result.data

    def _apply_updates(self, report_key: str) -> ExecutionUpdateRequest:
        settings = self.settings
        client = self.client
        # (label, attribute, raw input, split on ';', update call)
        steps: List[tuple] = [
            ("summary", "summary", settings.summary, False, client.update_summary),
            ("description", "description", settings.description, False, client.update_description),
            ("assignee", "assignee", settings.assignee, False, client.update_assignee),
            ("test environments", "test_environments", settings.test_environments, True,
             client.update_test_environments),
            ("affected versions", "affected_versions", settings.affected_versions, True,
             client.update_affected_versions),
            ("labels", "labels", settings.labels, True, client.update_labels),
        ]

        applied = ExecutionUpdateRequest()
        for label, attribute, raw, multi_value, update in steps:
            if is_blank(raw):
                continue
            value = split_multi_value(raw) if multi_value else raw
            self._update_field(label, report_key, value, update)
            setattr(applied, attribute, value)

        if applied.is_empty:
            logger.info(f"No field update requested for {report_key}")
        else:
            logger.debug(
                f"Field updates for {report_key}: "
                f"{applied.to_fields(settings.test_environments_field)}"
            )
        return applied

    @staticmethod
    def _update_field(
        label: str,
        report_key: str,
        value: object,
        update: Callable[[str, object], StepResult],
    ) -> None:
        logger.info(f"Update {label} for {report_key} to {value}")
        result = update(report_key, value)
        if result.is_failure:
            raise RemoteStepError(
                f"Error changing {label} of the execution issue {report_key}.", result
            )
        logger.info(f"Changed execution {label}")

    def _close_execution(self, report_key: str) -> None:
        result = self.client.close_execution(report_key)
        if result.is_failure:
            raise RemoteStepError(f"Error closing test execution {report_key}", result)
        logger.info(f"Test execution {report_key} closed")

    def _link_to_plan(
        self, plan_key: str, report_key: str
    ) -> Optional[DegradedLinkageWarning]:
        result = run_with_retry(
            "add execution to plan",
            lambda: self.client.add_execution_to_plan(plan_key, report_key),
            max_attempts=PLAN_LINK_ATTEMPTS,
        )
        if result.is_failure:
            warning = DegradedLinkageWarning(plan_key, report_key, result.error or "")
            logger.warning(str(warning))
            return warning
        logger.info(f"Test execution {report_key} added to test plan {plan_key}")
        return None
