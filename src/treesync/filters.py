"""Path selectors for listing and copy filters for plan assembly.

Selectors receive a path relative to the listing root (forward slashes) and
return True to keep the file. Copy filters thin an ordered list of copy
candidates; they never add or reorder entries.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from fnmatch import fnmatch
from typing import Any, Callable, Protocol, Sequence

from .fs import FileSystem
from .models import CopyIntent

logger = logging.getLogger(__name__)

PathSelector = Callable[[str], bool]


def matches_ignore_pattern(rel_path: str, patterns: Sequence[str]) -> bool:
    """Check if a relative path matches any ignore pattern.

    Supported forms:
    - "**/.DS_Store" - the suffix anywhere in the tree
    - ".staging/**"  - everything under a top-level directory
    - "logs/**/*.gz" - fnmatch over the whole relative path
    - "*.tmp"        - fnmatch over the whole relative path
    """
    rel_path = rel_path.replace("\\", "/")
    parts = rel_path.split("/")

    for pattern in patterns:
        pattern = pattern.replace("\\", "/")

        if pattern.startswith("**/"):
            suffix = pattern[3:]
            if fnmatch(rel_path, suffix):
                return True
            for i in range(len(parts)):
                if fnmatch(parts[i], suffix) or fnmatch("/".join(parts[i:]), suffix):
                    return True
        elif pattern.endswith("/**"):
            prefix = pattern[:-3]
            if rel_path == prefix or rel_path.startswith(prefix + "/"):
                return True
        elif fnmatch(rel_path, pattern):
            return True

    return False


def ignore_filter(patterns: Sequence[str]) -> PathSelector:
    patterns = list(patterns)

    def _select(rel_path: str) -> bool:
        return not matches_ignore_pattern(rel_path, patterns)

    return _select


def hidden_filter(rel_path: str) -> bool:
    """Reject files with any path component starting with '.' or '_'."""
    return not any(part.startswith((".", "_")) for part in rel_path.split("/") if part != ".")


def all_of(*selectors: PathSelector) -> PathSelector:
    def _select(rel_path: str) -> bool:
        return all(s(rel_path) for s in selectors)

    return _select


class CopyableFileFilter(Protocol):
    def filter(
        self,
        source_fs: FileSystem,
        target_fs: FileSystem,
        candidates: Sequence[CopyIntent],
    ) -> list[CopyIntent]:
        ...


class AcceptAllFilter:
    def filter(self, source_fs: FileSystem, target_fs: FileSystem, candidates: Sequence[CopyIntent]) -> list[CopyIntent]:
        return list(candidates)


@dataclass
class SizeBudgetFilter:
    """Keep candidates, in order, while their total size fits the budget.

    A candidate that would overflow the budget is skipped; smaller ones
    after it may still fit.
    """
    max_bytes: int

    def __post_init__(self) -> None:
        if self.max_bytes < 0:
            raise ValueError(f"Invalid max_bytes: {self.max_bytes}. Must be >= 0.")

    def filter(self, source_fs: FileSystem, target_fs: FileSystem, candidates: Sequence[CopyIntent]) -> list[CopyIntent]:
        kept: list[CopyIntent] = []
        used = 0
        for c in candidates:
            if used + c.source.size > self.max_bytes:
                continue
            used += c.source.size
            kept.append(c)
        if len(kept) < len(candidates):
            logger.info(
                f"Size budget {self.max_bytes} bytes: kept {len(kept)}/{len(candidates)} files ({used} bytes)"
            )
        return kept


@dataclass
class MaxFilesFilter:
    max_files: int

    def __post_init__(self) -> None:
        if self.max_files < 0:
            raise ValueError(f"Invalid max_files: {self.max_files}. Must be >= 0.")

    def filter(self, source_fs: FileSystem, target_fs: FileSystem, candidates: Sequence[CopyIntent]) -> list[CopyIntent]:
        return list(candidates[: self.max_files])


@dataclass
class FilterChain:
    filters: list[CopyableFileFilter] = field(default_factory=list)

    def filter(self, source_fs: FileSystem, target_fs: FileSystem, candidates: Sequence[CopyIntent]) -> list[CopyIntent]:
        current = list(candidates)
        for f in self.filters:
            current = f.filter(source_fs, target_fs, current)
        return current


_FILTERS: dict[str, Callable[..., CopyableFileFilter]] = {
    "accept_all": lambda **_: AcceptAllFilter(),
    "size_budget": lambda max_bytes, **_: SizeBudgetFilter(max_bytes=int(max_bytes)),
    "max_files": lambda max_files, **_: MaxFilesFilter(max_files=int(max_files)),
}


def build_copy_filter(name: str, **options: Any) -> CopyableFileFilter:
    """Instantiate a copy filter by its configured name."""
    try:
        factory = _FILTERS[name]
    except KeyError:
        raise ValueError(f"Unknown copy filter: {name}. Must be one of {tuple(_FILTERS)}.") from None
    try:
        return factory(**options)
    except TypeError as e:
        raise ValueError(f"Missing option for copy filter {name}: {e}") from e
