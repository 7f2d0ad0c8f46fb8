from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..ancestors import AncestorResolver, no_ancestor_metadata
from ..filters import AcceptAllFilter, CopyableFileFilter, PathSelector
from ..fs import FileSystem
from ..models import ReconciliationPlan, ReconciliationPolicy, TreeSnapshot
from ..paths import deepest_non_glob_path, relativize
from .assembler import apply_copy_filter, assemble, build_copy_intents
from .lister import list_tree
from .reconciler import reconcile

logger = logging.getLogger(__name__)


@dataclass
class RecursiveCopyableDataset:
    """A directory tree whose files are all copied under a publish directory.

    ``glob`` is the pattern the dataset was discovered with; its deepest
    non-wildcard ancestor is the search root that destination paths are
    computed against. Without a glob the root is its own search root.
    """

    fs: FileSystem
    root: Path
    glob: Optional[str] = None
    policy: ReconciliationPolicy = field(default_factory=ReconciliationPolicy)
    path_filter: Optional[PathSelector] = None
    copy_filter: CopyableFileFilter = field(default_factory=AcceptAllFilter)
    ancestor_resolver: AncestorResolver = no_ancestor_metadata
    parallel_listing: bool = False

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    @property
    def dataset_root(self) -> Path:
        return self.root

    @property
    def urn(self) -> str:
        return str(self.root)

    @property
    def search_root(self) -> Path:
        return deepest_non_glob_path(self.glob if self.glob else self.root)

    def target_root(self, publish_dir: Path) -> Path:
        rel = relativize(self.root, self.search_root)
        return Path(publish_dir) if rel == "." else Path(publish_dir) / rel

    def _list_both(self, target_fs: FileSystem, target_root: Path) -> tuple[TreeSnapshot, TreeSnapshot]:
        if not self.parallel_listing:
            return (
                list_tree(self.fs, self.root, self.path_filter),
                list_tree(target_fs, target_root, self.path_filter),
            )
        with ThreadPoolExecutor(max_workers=2) as executor:
            src = executor.submit(list_tree, self.fs, self.root, self.path_filter)
            tgt = executor.submit(list_tree, target_fs, target_root, self.path_filter)
            return src.result(), tgt.result()

    def get_copy_plan(self, target_fs: FileSystem, publish_dir: Path) -> ReconciliationPlan:
        """List both trees, reconcile them and assemble the plan."""
        publish_dir = Path(publish_dir)
        target_root = self.target_root(publish_dir)
        logger.info(f"Planning {self.urn} -> {target_root}")

        source, target = self._list_both(target_fs, target_root)
        result = reconcile(source, target, self.policy)

        candidates = build_copy_intents(
            self.fs, source, result.to_copy, self.search_root, publish_dir, self.urn, self.ancestor_resolver
        )
        copies = apply_copy_filter(self.copy_filter, self.fs, target_fs, candidates)

        # An updated file whose copy was filtered out keeps its current target version.
        kept_sources = {c.source.rel_path for c in copies}
        dropped = {p for p in result.updated if p not in kept_sources}
        if dropped:
            logger.info(f"Keeping {len(dropped)} outdated target files whose copies were filtered out")
        delete_entries = [target[p] for p in result.to_delete if p not in dropped]

        return assemble(copies, delete_entries, self.policy, target_root, self.urn)


def find_datasets(fs: FileSystem, glob: str, **dataset_kwargs: Any) -> list[RecursiveCopyableDataset]:
    """One dataset per directory matched by ``glob``, sorted by path."""
    roots = [p for p in fs.glob(glob) if fs.is_dir(p)]
    logger.info(f"Found {len(roots)} datasets for {glob}")
    return [RecursiveCopyableDataset(fs=fs, root=r, glob=glob, **dataset_kwargs) for r in roots]
