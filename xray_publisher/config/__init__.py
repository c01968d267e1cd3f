"""
Configuration Management Module.

Handles loading and validation of the publishing step parameters from
settings files (YAML/JSON), CI action inputs and command-line flags.
"""

from xray_publisher.config.loader import (
    ConfigurationError,
    PublisherSettings,
    SettingsLoader,
)

__all__ = ["ConfigurationError", "PublisherSettings", "SettingsLoader"]
