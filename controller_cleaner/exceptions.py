"""Exception hierarchy shared by the asset store and the scan pipeline."""

from __future__ import annotations


class ControllerCleanerError(Exception):
    """Base class for all controller-cleaner errors."""


class AssetStoreError(ControllerCleanerError):
    """The backing asset storage could not be read or written."""


class UnityYamlError(AssetStoreError):
    """A Unity YAML document could not be parsed or serialized."""

    def __init__(self, message: str, *, file_id: int | None = None) -> None:
        if file_id is not None:
            message = f"document &{file_id}: {message}"
        super().__init__(message)
        self.file_id = file_id


class GraphReadFailure(ControllerCleanerError):
    """Reading the controller graph failed mid-scan."""


class ScanCancelled(ControllerCleanerError):
    """Raised inside scan tasks once cancellation has been requested."""
