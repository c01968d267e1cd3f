"""
CI Pipeline Step Entry Point.

Publishes a Cucumber report to Jira Xray from a CI job. Parameters come
from a settings file, CI action inputs (INPUT_* environment variables) or
command-line flags, in increasing order of precedence.

Usage:
    xray-publisher --path target/cucumber.json --test-plan-id PROJ-100 \\
        --jira-url https://jira.example.com --jira-username ci --jira-password ***
    xray-publisher --config publish.yaml --summary "Nightly run"
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Mapping, Optional

from loguru import logger

from xray_publisher.config.loader import (
    PARAMETERS,
    ConfigurationError,
    PublisherSettings,
    SettingsLoader,
)
from xray_publisher.jira_client.xray_client import XrayClient
from xray_publisher.pipeline.errors import PipelineError, RemoteStepError
from xray_publisher.pipeline.publisher import ReportPublisher

REPORT_KEY_OUTPUT = "report-key"

_HELP = {
    "path": "Cucumber JSON report to import",
    "test-plan-id": "Key of the Test Plan the execution is added to",
    "jira-url": "Jira instance base URL",
    "jira-username": "Jira user name",
    "jira-password": "Jira password",
    "jira-token": "API key for Jira issue operations (cloud-env only)",
    "xray-token": "API key for Xray import/Test Plan operations (cloud-env only)",
    "cloud-env": "'true' selects extended authentication with API keys",
    "description": "New description of the Test Execution",
    "summary": "New summary of the Test Execution",
    "assignee": "Jira user to assign the Test Execution to",
    "testEnvironments": "Test environments, separated by ';'",
    "affected-versions": "Affected versions, separated by ';'",
    "labels": "Labels, separated by ';'",
    "debug": "Debug flag (logged only)",
    "verify-ssl": "Verify TLS certificates (default: false)",
    "timeout-sec": "Request timeout in seconds (default: none)",
    "api-key-header": "Header carrying API keys (default: itx-apikey)",
    "close-transition-id": "Transition used to close the execution (default: 2)",
    "test-environments-field": "Custom field id of Test Environments",
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for the publishing step."""
    parser = argparse.ArgumentParser(
        description="Publish a Cucumber report to Jira Xray"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML/JSON settings file with parameters keyed by input name",
    )
    for name in PARAMETERS:
        parser.add_argument(
            f"--{name}",
            dest=name,
            type=str,
            default=None,
            help=_HELP.get(name, ""),
        )
    return parser.parse_args(argv)


def set_output(name: str, value: str, environ: Optional[Mapping[str, str]] = None) -> None:
    """
    Publish a step output.

    Appends ``name=value`` to the file named by GITHUB_OUTPUT when set,
    otherwise prints it to stdout.
    """
    environ = os.environ if environ is None else environ
    output_file = environ.get("GITHUB_OUTPUT")
    if output_file:
        with open(output_file, "a", encoding="utf-8") as f:
            f.write(f"{name}={value}\n")
    else:
        print(f"{name}={value}")


def set_failed(message: str) -> int:
    """Report a failed run and return the exit status."""
    logger.error(message)
    print(f"::error::{message}")
    return 1


def log_parameters(settings: PublisherSettings) -> None:
    logger.info("=" * 80)
    for name, value in settings.to_parameters(mask_secrets=True).items():
        logger.info(f"{name}: {value}")
    logger.info("=" * 80)


def main(
    argv: Optional[List[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    """Main entry point for the publishing step."""
    args = parse_args(argv)
    overrides = {name: getattr(args, name) for name in PARAMETERS}
    client: Optional[XrayClient] = None

    try:
        settings = SettingsLoader().load(
            config_file=Path(args.config) if args.config else None,
            environ=environ,
            overrides=overrides,
        )
        log_parameters(settings)

        client = XrayClient(
            verify_ssl=settings.verify_tls,
            timeout_sec=settings.timeout,
            api_key_header=settings.api_key_header,
            close_transition_id=settings.close_transition_id,
            test_environments_field=settings.test_environments_field,
        )
        result = ReportPublisher(client=client, settings=settings).run()
        set_output(REPORT_KEY_OUTPUT, result.report_key, environ)
    except RemoteStepError as e:
        if e.result is not None:
            logger.debug(f"Failed step result: {e.result.to_dict()}")
        return set_failed(str(e))
    except (PipelineError, ConfigurationError) as e:
        return set_failed(str(e))
    except OSError as e:
        return set_failed(f"Cannot write step output {REPORT_KEY_OUTPUT}: {e}")
    finally:
        if client is not None:
            client.close()

    if result.is_degraded:
        logger.warning(
            f"Report {result.report_key} published with "
            f"{len(result.warnings)} warning(s)"
        )
    else:
        logger.info(f"Report {result.report_key} published")
    return 0


if __name__ == "__main__":
    sys.exit(main())
