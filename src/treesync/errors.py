"""Exception hierarchy for plan construction.

Only ``PathNotFoundError`` is ever absorbed (a missing tree lists as empty);
everything else aborts planning and reaches the caller unchanged.
"""
from __future__ import annotations

from typing import Iterable


class TreeSyncError(Exception):
    """Base class for all treesync errors."""


class FilesystemError(TreeSyncError):
    """Listing or metadata access failed."""


class PathNotFoundError(FilesystemError):
    """The listing root does not exist."""


class InvalidPathError(TreeSyncError, ValueError):
    """A path is not a descendant of the root it was listed under."""


class PlanFilterError(TreeSyncError):
    """A copy filter returned something other than a subsequence of its input."""


class UpdateNotAllowedError(TreeSyncError):
    """Files differ between source and target but updates are disabled."""

    def __init__(self, paths: Iterable[str]) -> None:
        self.paths = sorted(paths)
        preview = ", ".join(self.paths[:5])
        if len(self.paths) > 5:
            preview += f", ... ({len(self.paths) - 5} more)"
        super().__init__(
            "Some files need to be copied but they already exist in the destination. "
            f"Aborting because not running in update mode: {preview}"
        )
