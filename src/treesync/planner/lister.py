from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..errors import InvalidPathError, PathNotFoundError
from ..filters import PathSelector
from ..fs import FileSystem
from ..models import FileEntry, TreeSnapshot
from ..paths import relativize

logger = logging.getLogger(__name__)


def list_tree(fs: FileSystem, root: Path, selector: Optional[PathSelector] = None) -> TreeSnapshot:
    """Snapshot every regular file at or below ``root`` accepted by ``selector``.

    A missing root yields an empty snapshot (e.g. the first sync into a new
    target). Any other listing failure propagates.
    """
    root = Path(root)
    predicate = None
    if selector is not None:
        def predicate(p: Path) -> bool:
            return selector(relativize(p, root))

    try:
        statuses = fs.list_recursive(root, predicate)
    except PathNotFoundError:
        logger.debug(f"{root} does not exist, treating as empty")
        return TreeSnapshot(root=root, entries={})

    entries: dict[str, FileEntry] = {}
    for st in statuses:
        rel = relativize(st.path, root)
        if rel in entries:
            raise InvalidPathError(f"Duplicate path {rel} in listing of {root}")
        entries[rel] = FileEntry(rel_path=rel, abs_path=Path(st.path), size=st.size, mtime_ms=st.mtime_ms)

    logger.debug(f"Snapshot of {root}: {len(entries)} files")
    return TreeSnapshot(root=root, entries=entries)
