"""treesync — plan copies and deletes that bring a target tree in line with a source tree.

The planner lists both trees, classifies every relative path as copy, delete
or unchanged under the update/delete policy, and emits an ordered plan whose
single delete step runs after every copy. It never transfers bytes itself.

Public API:
- RecursiveCopyableDataset
- ReconciliationPlan
- ReconciliationPolicy
- SyncConfig
"""

from .config import SyncConfig
from .errors import (
    FilesystemError,
    InvalidPathError,
    PathNotFoundError,
    PlanFilterError,
    TreeSyncError,
    UpdateNotAllowedError,
)
from .fs import FileSystem, LocalFileSystem
from .models import ReconciliationPlan, ReconciliationPolicy
from .planner.dataset import RecursiveCopyableDataset, find_datasets

__all__ = [
    "FileSystem",
    "FilesystemError",
    "InvalidPathError",
    "LocalFileSystem",
    "PathNotFoundError",
    "PlanFilterError",
    "RecursiveCopyableDataset",
    "ReconciliationPlan",
    "ReconciliationPolicy",
    "SyncConfig",
    "TreeSyncError",
    "UpdateNotAllowedError",
    "find_datasets",
]
