"""
Pipeline Step Base Module.

Provides the explicit outcome type returned by every tracker operation and the
bounded-retry helper used by the publishing pipeline.

Every remote operation reports a StepResult instead of raising, so the
pipeline decides per step whether a failure is fatal or degraded.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from loguru import logger


class StepStatus(Enum):
    """Status of a single tracker operation."""

    SUCCESS = "success"
    REJECTED = "rejected"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class StepResult:
    """
    Outcome of a tracker operation.

    Attributes:
        status: SUCCESS, or the kind of failure (tracker rejection vs. transport).
        data: Operation return value on success (issue type, issue key, True).
        message: Human-readable outcome description.
        status_code: HTTP status code when the tracker answered.
        error: Diagnostic text when the operation failed.
    """

    status: StepStatus = StepStatus.SUCCESS
    data: Any = None
    message: str = ""
    status_code: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = True, message: str = "") -> "StepResult":
        """Build a successful result."""
        return cls(status=StepStatus.SUCCESS, data=data, message=message)

    @property
    def is_success(self) -> bool:
        """Check if the operation completed successfully."""
        return self.status == StepStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        """Check if the operation failed."""
        return not self.is_success

    def to_dict(self) -> dict:
        """Serialize the result to a dictionary for reporting."""
        return {
            "status": self.status.value,
            "data": self.data,
            "message": self.message,
            "status_code": self.status_code,
            "error": self.error,
        }


def run_with_retry(
    name: str,
    operation: Callable[[], StepResult],
    max_attempts: int = 2,
) -> StepResult:
    """
    Run an operation until it succeeds or the attempts are used up.

    Attempts are made back to back, without delay.

    Args:
        name: Operation name used in log messages.
        operation: Zero-argument callable returning a StepResult.
        max_attempts: Total number of attempts, including the first one.

    Returns:
        The first successful StepResult, or the last failed one.

    Raises:
        ValueError: If max_attempts is lower than 1.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    result = StepResult(status=StepStatus.TRANSPORT_ERROR, error="not attempted")
    for attempt in range(1, max_attempts + 1):
        result = operation()
        if result.is_success:
            if attempt > 1:
                logger.info(f"'{name}' succeeded on attempt {attempt}/{max_attempts}")
            return result
        logger.warning(
            f"'{name}' failed (attempt {attempt}/{max_attempts}): {result.error}"
        )
    return result
