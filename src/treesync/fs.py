from __future__ import annotations

import glob as _glob
import logging
import os
import stat
from pathlib import Path
from typing import Callable, Optional, Protocol

from .errors import FilesystemError, PathNotFoundError
from .models import FileStatus, OwnerAndPermission

logger = logging.getLogger(__name__)

PathPredicate = Callable[[Path], bool]


class FileSystem(Protocol):
    """Filesystem capability handed to the lister and the delete step.

    Implementations may be local, remote or in-memory. Failures are reported
    as ``FilesystemError``; an absent listing root as ``PathNotFoundError``.
    """

    def list_recursive(self, root: Path, predicate: Optional[PathPredicate] = None) -> list[FileStatus]:
        ...

    def exists(self, path: Path) -> bool:
        ...

    def is_dir(self, path: Path) -> bool:
        ...

    def delete(self, path: Path) -> None:
        ...

    def is_empty_dir(self, path: Path) -> bool:
        ...

    def remove_dir(self, path: Path) -> None:
        ...

    def owner_and_permission(self, path: Path) -> OwnerAndPermission:
        ...

    def glob(self, pattern: str) -> list[Path]:
        ...


def _status(path: Path, st: os.stat_result) -> FileStatus:
    return FileStatus(path=path, size=st.st_size, mtime_ms=st.st_mtime_ns // 1_000_000)


class LocalFileSystem:
    """``FileSystem`` backed by the local OS."""

    def list_recursive(self, root: Path, predicate: Optional[PathPredicate] = None) -> list[FileStatus]:
        root = Path(root)
        try:
            st = root.stat()
        except FileNotFoundError as e:
            raise PathNotFoundError(f"Path not found: {root}") from e
        except OSError as e:
            raise FilesystemError(f"Cannot stat {root}: {e}") from e

        if stat.S_ISREG(st.st_mode):
            if predicate is None or predicate(root):
                return [_status(root, st)]
            return []

        def _raise(err: OSError) -> None:
            raise FilesystemError(f"Listing failed under {root}: {err}") from err

        statuses: list[FileStatus] = []
        for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
            for name in filenames:
                p = Path(dirpath) / name
                try:
                    fst = p.stat()
                except FileNotFoundError:
                    # removed between readdir and stat
                    continue
                except OSError as e:
                    raise FilesystemError(f"Cannot stat {p}: {e}") from e
                if not stat.S_ISREG(fst.st_mode):
                    continue
                if predicate is not None and not predicate(p):
                    continue
                statuses.append(_status(p, fst))
        logger.debug(f"Listed {len(statuses)} files under {root}")
        return statuses

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def is_dir(self, path: Path) -> bool:
        return Path(path).is_dir()

    def delete(self, path: Path) -> None:
        try:
            Path(path).unlink()
        except OSError as e:
            raise FilesystemError(f"Cannot delete {path}: {e}") from e

    def is_empty_dir(self, path: Path) -> bool:
        p = Path(path)
        if not p.is_dir():
            return False
        try:
            with os.scandir(p) as it:
                return next(it, None) is None
        except OSError as e:
            raise FilesystemError(f"Cannot list {p}: {e}") from e

    def remove_dir(self, path: Path) -> None:
        try:
            Path(path).rmdir()
        except OSError as e:
            raise FilesystemError(f"Cannot remove directory {path}: {e}") from e

    def owner_and_permission(self, path: Path) -> OwnerAndPermission:
        try:
            st = Path(path).stat()
        except OSError as e:
            raise FilesystemError(f"Cannot stat {path}: {e}") from e
        return OwnerAndPermission(
            owner=_user_name(st.st_uid),
            group=_group_name(st.st_gid),
            mode=stat.S_IMODE(st.st_mode),
        )

    def glob(self, pattern: str) -> list[Path]:
        return sorted(Path(p) for p in _glob.glob(os.fspath(pattern)))


def _user_name(uid: int) -> str:
    try:
        import pwd
        return pwd.getpwuid(uid).pw_name
    except (ImportError, KeyError):
        return str(uid)


def _group_name(gid: int) -> str:
    try:
        import grp
        return grp.getgrgid(gid).gr_name
    except (ImportError, KeyError):
        return str(gid)
