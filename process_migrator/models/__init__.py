"""Models package for data structures used in the application."""

from process_migrator.models.configuration import ConfigurationFile, ConfigurationOptions, Mode
from process_migrator.models.migration_error import ErrorKind, MigrationError, classify_error
from process_migrator.models.migration_results import ImportSummary, MigrationResult
from process_migrator.models.payload import PICKLIST_NO_ACTION, ProcessPayload

__all__ = [
    "PICKLIST_NO_ACTION",
    "ConfigurationFile",
    "ConfigurationOptions",
    "ErrorKind",
    "ImportSummary",
    "MigrationError",
    "MigrationResult",
    "Mode",
    "ProcessPayload",
    "classify_error",
]
