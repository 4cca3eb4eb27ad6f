"""
Result models for tracking export and import runs.
"""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from process_migrator.models.configuration import Mode
from process_migrator.models.migration_error import ErrorKind

# Replay order; summary rows follow it
ARTIFACTS = (
    "picklists",
    "fields",
    "work_item_types",
    "type_fields",
    "pages",
    "groups",
    "controls",
    "states",
    "rules",
    "behaviors",
    "type_behaviors",
)


class ImportSummary(BaseModel):
    """Per-artifact counters collected while replaying a payload."""

    counters: dict[str, dict[str, int]] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)

    def record(self, artifact: str, action: str, count: int = 1) -> None:
        """Count ``action`` (created/updated/deleted/skipped/...) for ``artifact``."""
        row = self.counters.setdefault(artifact, {})
        row[action] = row.get(action, 0) + count

    def count(self, artifact: str, action: str) -> int:
        return self.counters.get(artifact, {}).get(action, 0)

    def add_warning(self, warning: str) -> None:
        """Add a warning message from a tolerated failure."""
        self.warnings.append(warning)


class MigrationResult(BaseModel):
    """Represents the overall result of a run."""

    mode: Mode
    success: bool = False
    error_kind: ErrorKind | None = None
    message: str = ""
    payload_file: Path | None = None
    process_type_id: str | None = None
    start_time: str = Field(default_factory=lambda: datetime.now().isoformat())
    elapsed_seconds: float = 0.0
    summary: ImportSummary | None = None
