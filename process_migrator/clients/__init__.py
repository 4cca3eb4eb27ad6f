"""API clients package for the process migrator.

Lazily expose the REST client to avoid importing requests at package import
time.
"""

__all__ = ["AzureDevOpsClient"]


def __getattr__(name: str) -> object:  # pragma: no cover - simple lazy import shim
    if name == "AzureDevOpsClient":
        from .ado_client import AzureDevOpsClient as _AzureDevOpsClient  # noqa: PLC0415

        return _AzureDevOpsClient
    raise AttributeError(name)
