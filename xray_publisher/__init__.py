"""
Xray Report Publisher - Core Package.

This package contains the logic for publishing a Cucumber test report to
Jira Xray from a CI pipeline step:
- Jira Client: Xray/Jira REST API access (import, field updates, transitions).
- Pipeline: The ordered publishing steps and their error policy.
- Configuration: Step parameters from YAML, CI environment and CLI flags.
"""

__version__ = "0.1.0"
