"""
Jira Xray Client Module.

Provides integration with the Jira / Xray REST API for:
- Importing Cucumber reports as Test Execution issues.
- Editing and closing Test Execution issues.
- Linking Test Executions to Test Plans.
"""

from xray_publisher.jira_client.xray_client import (
    AuthConfigurationError,
    AuthMode,
    RemoteRejection,
    TransportError,
    XrayClient,
    XrayClientError,
    XrayEndpoint,
)
from xray_publisher.jira_client.execution_update import ExecutionUpdateRequest

__all__ = [
    "XrayClient",
    "XrayClientError",
    "RemoteRejection",
    "TransportError",
    "AuthConfigurationError",
    "AuthMode",
    "XrayEndpoint",
    "ExecutionUpdateRequest",
]
