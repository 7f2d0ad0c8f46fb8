from __future__ import annotations

from pathlib import Path, PurePath

from .errors import InvalidPathError

GLOB_CHARS = frozenset("*?[]{}")


def has_glob(part: str) -> bool:
    return any(c in GLOB_CHARS for c in part)


def relativize(path: str | PurePath, root: str | PurePath) -> str:
    """Return ``path`` relative to ``root`` with forward slashes.

    Pure path algebra: nothing is resolved, since the paths may live on a
    remote filesystem. ``"."`` is returned when the two are equal.
    """
    try:
        rel = PurePath(path).relative_to(PurePath(root))
    except ValueError as e:
        raise InvalidPathError(f"{path} is not a descendant of {root}") from e
    return rel.as_posix()


def is_within(root: str | PurePath, path: str | PurePath) -> bool:
    try:
        relativize(path, root)
        return True
    except InvalidPathError:
        return False


def deepest_non_glob_path(pattern: str | PurePath) -> Path:
    """Longest leading prefix of ``pattern`` that contains no wildcard.

    ``/data/*/events/2024`` -> ``/data``. A pattern without wildcards is
    returned as-is.
    """
    p = PurePath(pattern)
    kept: list[str] = []
    for part in p.parts:
        if has_glob(part):
            break
        kept.append(part)
    if not kept:
        return Path(".")
    return Path(*kept)
