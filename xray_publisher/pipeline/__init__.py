"""
Publishing Pipeline Module.

Contains the step outcome type, the bounded-retry helper and the error
taxonomy. The pipeline itself lives in xray_publisher.pipeline.publisher.
"""

from xray_publisher.pipeline.base import StepResult, StepStatus, run_with_retry
from xray_publisher.pipeline.errors import (
    ConfigurationStepError,
    DegradedLinkageWarning,
    PipelineError,
    PreconditionError,
    RemoteStepError,
    ValidationError,
)

__all__ = [
    "StepResult",
    "StepStatus",
    "run_with_retry",
    "PipelineError",
    "ValidationError",
    "PreconditionError",
    "ConfigurationStepError",
    "RemoteStepError",
    "DegradedLinkageWarning",
]
