"""Configuration loading for the process migrator.

Handles reading the configuration file, ``.env`` files and environment
variable overrides.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from process_migrator.models.configuration import ConfigurationFile, Mode
from process_migrator.models.migration_error import ConfigurationError

config_logger = logging.getLogger("process_migrator.config_loader")

DEFAULT_CONFIGURATION_TEMPLATE = """\
# Process migrator configuration.
# Tokens may also be supplied through PROCESS_MIGRATOR_SOURCE_ACCOUNT_TOKEN and
# PROCESS_MIGRATOR_TARGET_ACCOUNT_TOKEN, or on the command line.

# Required for export/migrate: Azure DevOps organization URL
sourceAccountUrl: "https://dev.azure.com/source-organization"
# Required for export/migrate: personal access token (keep this file private)
sourceAccountToken: ""
# Required for export/migrate: name of the process to export
sourceProcessName: ""

# Required for import/migrate: Azure DevOps organization URL
targetAccountUrl: "https://dev.azure.com/target-organization"
# Required for import/migrate: personal access token (keep this file private)
targetAccountToken: ""
# Optional: override the process name during import/migrate
# targetProcessName: ""

options:
  # Verbose/Information/Warning/Error
  logLevel: Information
  logFilename: output/processMigrator.log
  processFilename: output/process.json
  # Overwrite destination picklists whose items differ from the source
  overwritePicklist: false
  # Log a warning and continue when a rule cannot be created
  continueOnRuleImportFailure: false
  # Log a warning and continue when an identity default value cannot be set
  continueOnIdentityDefaultValueFailure: false
  # Skip pages, groups and controls contributed by extensions
  skipImportFormContributions: false
  enableRetries: true
  maxRetries: 3
  retryBaseDelayMs: 1000
  maxWorkers: 8
"""


class EnvironmentOverrides(BaseSettings):
    """Settings read from ``PROCESS_MIGRATOR_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PROCESS_MIGRATOR_",
        case_sensitive=False,
        extra="ignore",
    )

    source_account_token: str | None = None
    target_account_token: str | None = None
    log_level: str | None = None


def write_default_configuration(config_file_path: Path) -> bool:
    """Write the default configuration template unless the file already exists.

    Returns:
        True if the template was written

    """
    if config_file_path.exists():
        return False
    config_file_path.parent.mkdir(parents=True, exist_ok=True)
    config_file_path.write_text(DEFAULT_CONFIGURATION_TEMPLATE, encoding="utf-8")
    config_logger.info("Generated default configuration file as '%s'.", config_file_path)
    return True


class ConfigLoader:
    """Loads the configuration file and applies environment variable overrides."""

    def __init__(self, config_file_path: Path = Path("config/config.yaml")) -> None:
        """Initialize the configuration loader.

        Args:
            config_file_path (Path): Path to the YAML (or JSON) configuration file

        Raises:
            ConfigurationError: If the file is missing or invalid

        """
        self.config_file_path = config_file_path

        # Load environment variables before reading overrides
        self._load_environment_configuration()

        raw = self._load_config_file(config_file_path)
        try:
            configuration = ConfigurationFile.model_validate(raw)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
            )
            msg = f"Invalid configuration file '{config_file_path}': {problems}"
            raise ConfigurationError(msg) from e

        self.configuration = self._apply_environment_overrides(configuration)

    def _load_environment_configuration(self) -> None:
        """Load .env then .env.local; later files override earlier ones."""
        load_dotenv(".env")
        if Path(".env.local").exists():
            load_dotenv(".env.local", override=True)
            config_logger.debug("Loaded local overrides from .env.local")

    def _load_config_file(self, config_file_path: Path) -> dict[str, Any]:
        """Load configuration from a YAML file. JSON is a subset of YAML."""
        if not config_file_path.exists():
            write_default_configuration(config_file_path)
            msg = (
                f"Cannot find configuration file '{config_file_path}'. "
                "A default configuration was generated there, fill it in and run again."
            )
            raise ConfigurationError(msg)

        try:
            with config_file_path.open("r", encoding="utf-8") as config_file:
                data = yaml.safe_load(config_file)
        except yaml.YAMLError as e:
            msg = f"Cannot parse configuration file '{config_file_path}': {e}"
            raise ConfigurationError(msg) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            msg = f"Configuration file '{config_file_path}' must contain a mapping"
            raise ConfigurationError(msg)
        return data

    def _apply_environment_overrides(self, configuration: ConfigurationFile) -> ConfigurationFile:
        """Override tokens and log level from PROCESS_MIGRATOR_* variables."""
        overrides = EnvironmentOverrides()
        update: dict[str, Any] = {}
        if overrides.source_account_token:
            update["source_account_token"] = overrides.source_account_token
            config_logger.debug("Applied environment override for source account token")
        if overrides.target_account_token:
            update["target_account_token"] = overrides.target_account_token
            config_logger.debug("Applied environment override for target account token")
        if overrides.log_level:
            update["options"] = configuration.options.model_copy(update={"log_level": overrides.log_level})
            config_logger.debug("Applied environment override for log level: %s", overrides.log_level)
        return configuration.model_copy(update=update) if update else configuration


def load_configuration(
    config_file_path: Path,
    mode: Mode,
    source_token: str | None = None,
    target_token: str | None = None,
) -> ConfigurationFile:
    """Load, override and validate the configuration for a run.

    Command line tokens win over the environment, which wins over the file.

    Raises:
        ConfigurationError: Listing every problem found for ``mode``

    """
    configuration = ConfigLoader(config_file_path).configuration

    update: dict[str, Any] = {}
    if source_token:
        update["source_account_token"] = source_token
    if target_token:
        update["target_account_token"] = target_token
    if update:
        configuration = configuration.model_copy(update=update)

    problems = configuration.problems_for_mode(mode)
    if problems:
        msg = "Configuration validation failed: " + " ".join(problems)
        raise ConfigurationError(msg)
    return configuration
