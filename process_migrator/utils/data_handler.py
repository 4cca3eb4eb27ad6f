"""Data handler module for serialization and deserialization of data.

This module provides a consistent interface for loading and saving the
process payload and other pydantic models as JSON documents.
"""

import json
from pathlib import Path
from typing import Any, TypeVar, cast

from pydantic import BaseModel

from process_migrator import config
from process_migrator.models.migration_error import MigrationError

T = TypeVar("T", bound=BaseModel)


def _json_default(value: Any) -> Any:
    """Best-effort encoder for non-JSON-native objects.

    - Convert pathlib.Path to str
    - Convert Pydantic models to dict
    - Fallback to string representation for unknown objects
    """
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True)
    return str(value)


def save(
    data: Any,
    filepath: str | Path,
    indent: int = 2,
    ensure_ascii: bool = False,
) -> Path:
    """Save data to a JSON file, automatically handling Pydantic models.

    Pydantic models are dumped with their aliases (camelCase) and without
    unset optional values.

    Args:
        data: The data to save (Pydantic model or any JSON-serializable data)
        filepath: Target file; parent directories are created
        indent: JSON indentation level
        ensure_ascii: Whether to escape non-ASCII characters

    Returns:
        The path written

    Raises:
        MigrationError: If saving fails

    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    try:
        if isinstance(data, BaseModel):
            data = data.model_dump(by_alias=True, exclude_none=True)

        with filepath.open("w", encoding="utf-8") as f:
            json.dump(
                data,
                f,
                indent=indent,
                ensure_ascii=ensure_ascii,
                default=_json_default,
            )

        config.logger.debug("Saved data to %s", filepath)
    except Exception as e:
        msg = f"Failed to save data to {filepath}"
        raise MigrationError(msg) from e
    return filepath


def load(model_class: type[T], filepath: str | Path) -> T:
    """Load data from a JSON file and convert to specified model type.

    Args:
        model_class: Pydantic model class to load into
        filepath: File to load from

    Returns:
        Instance of model_class

    Raises:
        FileNotFoundError: If the file doesn't exist
        MigrationError: If data loading or parsing fails

    """
    filepath = Path(filepath)

    if not filepath.exists():
        msg = f"File not found: {filepath}"
        raise FileNotFoundError(msg)

    try:
        with filepath.open("r", encoding="utf-8") as f:
            data = json.load(f)

        result = cast("T", model_class.model_validate(data))

        config.logger.debug("Loaded data from %s", filepath)
        return result
    except Exception as e:
        msg = f"Failed to load data from {filepath}: {e}"
        raise MigrationError(msg) from e
