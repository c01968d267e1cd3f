"""
Settings Loader Module.

Collects the publishing step parameters from up to three sources,
lowest precedence first:
- An optional YAML/JSON settings file, validated against a JSON schema.
- CI action inputs exposed as environment variables (INPUT_<NAME>).
- Explicit overrides, usually parsed command-line flags.

Parameters keep their action input names (e.g. "test-plan-id").
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import jsonschema
import yaml
from loguru import logger

SETTINGS_SCHEMA_PATH = Path(__file__).parent / "schemas" / "publisher_settings_schema.json"

# Input name -> PublisherSettings attribute
PARAMETERS: Dict[str, str] = {
    "path": "path",
    "test-plan-id": "test_plan_id",
    "jira-url": "jira_url",
    "jira-username": "jira_username",
    "jira-password": "jira_password",
    "jira-token": "jira_token",
    "xray-token": "xray_token",
    "cloud-env": "cloud_env",
    "description": "description",
    "summary": "summary",
    "assignee": "assignee",
    "testEnvironments": "test_environments",
    "affected-versions": "affected_versions",
    "labels": "labels",
    "debug": "debug",
    "verify-ssl": "verify_ssl",
    "timeout-sec": "timeout_sec",
    "api-key-header": "api_key_header",
    "close-transition-id": "close_transition_id",
    "test-environments-field": "test_environments_field",
}

SECRET_PARAMETERS = {"jira-password", "jira-token", "xray-token"}


class ConfigurationError(Exception):
    """Raised when the settings are invalid or cannot be loaded."""

    pass


def input_env_name(name: str) -> str:
    """
    Environment variable carrying an action input.

    Examples:
        test-plan-id -> INPUT_TEST-PLAN-ID
        testEnvironments -> INPUT_TESTENVIRONMENTS
    """
    return f"INPUT_{name.replace(' ', '_').upper()}"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"true", "1", "yes", "on"}


@dataclass
class PublisherSettings:
    """
    Parameters of one publishing run.

    Values are kept as the strings the CI platform hands over; typed
    views are exposed as properties.
    """

    path: str = ""
    test_plan_id: str = ""
    jira_url: str = ""
    jira_username: str = ""
    jira_password: str = ""
    jira_token: str = ""
    xray_token: str = ""
    cloud_env: str = ""
    description: str = ""
    summary: str = ""
    assignee: str = ""
    test_environments: str = ""
    affected_versions: str = ""
    labels: str = ""
    debug: str = ""
    verify_ssl: str = "false"
    timeout_sec: str = ""
    api_key_header: str = "itx-apikey"
    close_transition_id: str = "2"
    test_environments_field: str = "customfield_15567"

    @property
    def use_extended_auth(self) -> bool:
        """Extended (dual API key) auth is selected only by the exact value "true"."""
        return self.cloud_env == "true"

    @property
    def verify_tls(self) -> bool:
        return _as_bool(self.verify_ssl)

    @property
    def timeout(self) -> Optional[float]:
        """Request timeout in seconds, None when not set."""
        if not self.timeout_sec.strip():
            return None
        try:
            timeout = float(self.timeout_sec)
        except ValueError as e:
            raise ConfigurationError(
                f"Parameter timeout-sec must be a number, got '{self.timeout_sec}'"
            ) from e
        if timeout <= 0:
            raise ConfigurationError(
                f"Parameter timeout-sec must be positive, got {timeout}"
            )
        return timeout

    def to_parameters(self, mask_secrets: bool = True) -> Dict[str, str]:
        """Return the settings keyed by input name, secrets masked by default."""
        parameters = {}
        for name, attribute in PARAMETERS.items():
            value = getattr(self, attribute)
            if mask_secrets and name in SECRET_PARAMETERS and value:
                value = "***"
            parameters[name] = value
        return parameters


class SettingsLoader:
    """
    Builds PublisherSettings from a settings file, environment and overrides.

    Attributes:
        schema_path: JSON schema that settings files are validated against.
    """

    SUPPORTED_EXTENSIONS = {".yaml", ".yml", ".json"}

    def __init__(self, schema_path: str | Path = SETTINGS_SCHEMA_PATH) -> None:
        self.schema_path = Path(schema_path)
        self._validator: Optional[jsonschema.Draft7Validator] = None

    def load(
        self,
        config_file: Optional[str | Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> PublisherSettings:
        """
        Merge all sources into a PublisherSettings.

        Args:
            config_file: Optional YAML/JSON settings file.
            environ: Environment mapping (defaults to os.environ).
            overrides: Values keyed by input name; None values are ignored.

        Returns:
            The merged settings.

        Raises:
            ConfigurationError: If the file is unreadable, invalid or
                an override names an unknown parameter.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, str] = {}

        if config_file:
            for name, value in self.load_file(config_file).items():
                values[name] = _as_text(value)

        for name in PARAMETERS:
            env_name = input_env_name(name)
            if env_name in environ:
                values[name] = environ[env_name]

        for name, value in (overrides or {}).items():
            if name not in PARAMETERS:
                raise ConfigurationError(f"Unknown parameter: {name}")
            if value is not None:
                values[name] = _as_text(value)

        settings = PublisherSettings(
            **{PARAMETERS[name]: value for name, value in values.items()}
        )
        logger.debug(f"Settings loaded from {len(values)} parameter(s)")
        return settings

    def load_file(self, config_file: str | Path) -> Dict[str, Any]:
        """
        Read and validate a settings file.

        Raises:
            ConfigurationError: If the file cannot be read, parsed or validated.
        """
        file_path = Path(config_file)
        suffix = file_path.suffix.lower()
        if suffix not in self.SUPPORTED_EXTENSIONS:
            raise ConfigurationError(
                f"Unsupported file format '{suffix}'. "
                f"Supported: {sorted(self.SUPPORTED_EXTENSIONS)}"
            )

        logger.info(f"Loading settings: {file_path}")
        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Failed to read file {file_path}: {e}") from e

        try:
            if suffix in {".yaml", ".yml"}:
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to parse {file_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Settings file must contain a mapping (dict), "
                f"got {type(data).__name__}: {file_path}"
            )

        self._validate(data, file_path)
        return data

    def _get_validator(self) -> jsonschema.Draft7Validator:
        if self._validator is None:
            try:
                schema = json.loads(self.schema_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigurationError(
                    f"Failed to load settings schema {self.schema_path}: {e}"
                ) from e
            self._validator = jsonschema.Draft7Validator(schema)
        return self._validator

    def _validate(self, data: Dict[str, Any], file_path: Path) -> None:
        """Reject unknown parameters and values of the wrong YAML type."""
        errors = sorted(
            self._get_validator().iter_errors(data), key=lambda e: list(e.path)
        )
        if not errors:
            return

        problems = []
        for error in errors:
            name = ".".join(str(p) for p in error.absolute_path) or "(root)"
            problems.append(f"  [{name}] {error.message}")
        raise ConfigurationError(
            f"Settings validation failed for {file_path} "
            f"({len(errors)} error(s)):\n" + "\n".join(problems)
        )

