"""
Pipeline error taxonomy.

Every fatal condition raised by the publishing pipeline derives from
PipelineError and is reported once by the command-line entry point.
"""

from __future__ import annotations

from typing import Optional

from xray_publisher.pipeline.base import StepResult


class PipelineError(Exception):
    """Base class for fatal publishing failures."""

    pass


class ValidationError(PipelineError):
    """Raised when a required input is missing or blank."""

    pass


class PreconditionError(PipelineError):
    """Raised when the report file or the target Test Plan is not usable."""

    pass


class ConfigurationStepError(PipelineError):
    """Raised when the tracker client cannot be configured."""

    pass


class RemoteStepError(PipelineError):
    """Raised when a tracker operation fails at a step that must succeed."""

    def __init__(self, message: str, result: Optional[StepResult] = None) -> None:
        super().__init__(message)
        self.result = result


class DegradedLinkageWarning(UserWarning):
    """Recorded when the execution could not be linked to its Test Plan."""

    def __init__(self, plan_key: str, execution_key: str, reason: str = "") -> None:
        super().__init__(
            f"Error adding test execution {execution_key} to test plan {plan_key}"
            + (f": {reason}" if reason else "")
        )
        self.plan_key = plan_key
        self.execution_key = execution_key
        self.reason = reason
