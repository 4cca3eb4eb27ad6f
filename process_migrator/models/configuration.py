"""Configuration file schema.

Keys use camelCase in the configuration file; snake_case is accepted too.
"""

from enum import Enum
from pathlib import Path
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_LOG_FILE = Path("output/processMigrator.log")
DEFAULT_PROCESS_FILE = Path("output/process.json")

VALID_LOG_LEVELS = frozenset(
    {"error", "warning", "information", "verbose", "debug", "info", "notice", "success", "critical"}
)


class Mode(str, Enum):
    """What a run does."""

    EXPORT = "export"
    IMPORT = "import"
    MIGRATE = "migrate"

    @property
    def exports(self) -> bool:
        return self in (Mode.EXPORT, Mode.MIGRATE)

    @property
    def imports(self) -> bool:
        return self in (Mode.IMPORT, Mode.MIGRATE)


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class ConfigurationOptions(_ConfigModel):
    """Options controlling logging, payload location and import tolerance."""

    log_level: str = Field(default="Information", description="Verbose/Information/Warning/Error")
    log_filename: Path = Field(default=DEFAULT_LOG_FILE, description="Log file path")
    process_filename: Path = Field(default=DEFAULT_PROCESS_FILE, description="Process payload file path")
    overwrite_picklist: StrictBool = Field(
        default=False, description="Overwrite destination picklists whose items differ"
    )
    continue_on_rule_import_failure: StrictBool = Field(
        default=False, description="Log a warning instead of failing when a rule cannot be created"
    )
    continue_on_identity_default_value_failure: StrictBool = Field(
        default=False, description="Log a warning when an identity field default value cannot be set"
    )
    skip_import_form_contributions: StrictBool = Field(
        default=False, description="Skip pages, groups and controls contributed by extensions"
    )
    enable_retries: StrictBool = Field(default=True, description="Retry transient network failures")
    max_retries: int = Field(default=3, ge=0, le=10, description="Retries per step")
    retry_base_delay_ms: int = Field(default=1000, ge=0, description="Base backoff delay in milliseconds")
    max_workers: int = Field(default=8, ge=1, le=64, description="Concurrent requests during export")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the configured log level name."""
        if v.lower() not in VALID_LOG_LEVELS:
            msg = f"'{v}' is not a valid log level, use Verbose, Information, Warning or Error"
            raise ValueError(msg)
        return v


def _is_valid_url(url: str | None) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class ConfigurationFile(_ConfigModel):
    """Accounts, process names and options of a run."""

    source_account_url: str | None = None
    source_account_token: str | None = None
    source_process_name: str | None = None
    target_account_url: str | None = None
    target_account_token: str | None = None
    target_process_name: str | None = None
    options: ConfigurationOptions = Field(default_factory=ConfigurationOptions)

    def problems_for_mode(self, mode: Mode) -> list[str]:
        """Return every setting missing or invalid for running in ``mode``."""
        problems: list[str] = []
        if mode.exports:
            if not _is_valid_url(self.source_account_url):
                problems.append(f"Missing or invalid source account url: '{self.source_account_url}'.")
            if not self.source_account_token:
                problems.append("Missing personal access token for source account.")
            if not self.source_process_name:
                problems.append("Missing source process name.")
        if mode.imports:
            if not _is_valid_url(self.target_account_url):
                problems.append(f"Missing or invalid target account url: '{self.target_account_url}'.")
            if not self.target_account_token:
                problems.append("Missing personal access token for target account.")
        return problems
