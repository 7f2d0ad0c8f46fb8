from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator, Mapping, Optional

from .paths import is_within

if TYPE_CHECKING:
    from .fs import FileSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileStatus:
    """One regular file as reported by a filesystem listing."""
    path: Path
    size: int
    mtime_ms: int


@dataclass(frozen=True)
class FileEntry:
    """A listed file keyed by its path relative to the tree root."""
    rel_path: str
    abs_path: Path
    size: int
    mtime_ms: int


@dataclass(frozen=True)
class TreeSnapshot:
    """Point-in-time view of one tree: relative path -> FileEntry."""

    root: Path
    entries: Mapping[str, FileEntry] = field(default_factory=dict)

    def paths(self) -> frozenset[str]:
        return frozenset(self.entries)

    def get(self, rel_path: str) -> Optional[FileEntry]:
        return self.entries.get(rel_path)

    def __getitem__(self, rel_path: str) -> FileEntry:
        return self.entries[rel_path]

    def __contains__(self, rel_path: object) -> bool:
        return rel_path in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def total_bytes(self) -> int:
        return sum(e.size for e in self.entries.values())


@dataclass(frozen=True)
class ReconciliationPolicy:
    """Update/delete behaviour, resolved to booleans before planning.

    allow_update: overwrite files that differ between source and target
    allow_delete: remove target files that no longer exist in the source
    prune_empty_directories: after deleting, remove directories left empty
        up to the dataset's target root
    """
    allow_update: bool = False
    allow_delete: bool = False
    prune_empty_directories: bool = False


@dataclass(frozen=True)
class OwnerAndPermission:
    owner: Optional[str] = None
    group: Optional[str] = None
    mode: Optional[int] = None


@dataclass(frozen=True)
class CopyIntent:
    """One file that must be transferred from source to destination."""
    source: FileEntry
    destination: Path
    ancestor_metadata: Any = None
    file_set: str = ""


@dataclass(frozen=True)
class DeleteIntent:
    target: FileEntry


@dataclass(frozen=True)
class DeleteStep:
    """Single atomic unit that deletes every stale or replaced target file.

    The step must not run before every path in ``depends_on`` (the
    destinations of the copies in the same plan) has been committed.
    A delete whose path is also a copy destination is a replacement: the
    committed copy already overwrote it, so ``execute`` leaves it alone.
    """

    file_set: str
    deletes: tuple[DeleteIntent, ...]
    prune_empty_directories: bool
    target_root: Path
    depends_on: tuple[Path, ...] = ()
    priority: int = 1

    @property
    def prune_root(self) -> Optional[Path]:
        return self.target_root if self.prune_empty_directories else None

    @property
    def paths(self) -> list[Path]:
        return [d.target.abs_path for d in self.deletes]

    @property
    def replaced(self) -> frozenset[Path]:
        destinations = set(self.depends_on)
        return frozenset(p for p in self.paths if p in destinations)

    @property
    def stale_paths(self) -> list[Path]:
        replaced = self.replaced
        return [p for p in self.paths if p not in replaced]

    def is_completed(self, fs: "FileSystem") -> bool:
        return not any(fs.exists(p) for p in self.stale_paths)

    def execute(self, fs: "FileSystem") -> int:
        """Delete the stale files, then prune emptied directories.

        Returns the number of files actually deleted; files already gone and
        replaced files are skipped.
        """
        deleted = 0
        parents: set[Path] = set()
        for path in self.stale_paths:
            if fs.exists(path):
                fs.delete(path)
                deleted += 1
            parents.add(path.parent)

        if self.prune_root is not None:
            # deepest first so nested empty directories collapse upwards
            for parent in sorted(parents, key=lambda p: len(p.parts), reverse=True):
                self._prune_empty_parents(fs, parent, self.prune_root)

        logger.info(
            f"Delete step for {self.file_set}: deleted {deleted}/{len(self.deletes)} files, "
            f"{len(self.replaced)} replaced by copies"
        )
        return deleted

    @staticmethod
    def _prune_empty_parents(fs: "FileSystem", start: Path, limit: Path) -> None:
        current = start
        while current != limit and is_within(limit, current):
            if not fs.exists(current) or not fs.is_empty_dir(current):
                return
            fs.remove_dir(current)
            logger.debug(f"Pruned empty directory {current}")
            current = current.parent


@dataclass(frozen=True)
class ReconciliationPlan:
    """Copies followed by an optional delete step, tagged with the dataset URN."""

    file_set: str
    copy_intents: tuple[CopyIntent, ...] = ()
    delete_step: Optional[DeleteStep] = None

    def work_units(self) -> list[CopyIntent | DeleteStep]:
        units: list[CopyIntent | DeleteStep] = list(self.copy_intents)
        if self.delete_step is not None:
            units.append(self.delete_step)
        return units

    @property
    def copy_bytes(self) -> int:
        return sum(c.source.size for c in self.copy_intents)

    @property
    def is_empty(self) -> bool:
        return not self.copy_intents and self.delete_step is None

    def to_dict(self) -> dict[str, Any]:
        step = self.delete_step
        return {
            "file_set": self.file_set,
            "copies": [
                {
                    "source": str(c.source.abs_path),
                    "destination": str(c.destination),
                    "size": c.source.size,
                    "mtime_ms": c.source.mtime_ms,
                    "ancestor_metadata": _jsonable(c.ancestor_metadata),
                }
                for c in self.copy_intents
            ],
            "delete_step": None if step is None else {
                "paths": [str(p) for p in step.paths],
                "replaced": sorted(str(p) for p in step.replaced),
                "prune_empty_directories": step.prune_empty_directories,
                "target_root": str(step.target_root),
                "depends_on": [str(p) for p in step.depends_on],
                "priority": step.priority,
            },
        }


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Path):
        return str(value)
    return value
