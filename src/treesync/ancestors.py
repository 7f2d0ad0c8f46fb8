"""Ancestor metadata attached to copy intents.

The planner treats the value as opaque: a resolver is called with the source
filesystem, the file's parent directory and the search root, and whatever it
returns is stored on the intent unchanged.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from .errors import InvalidPathError
from .fs import FileSystem
from .models import OwnerAndPermission
from .paths import is_within

AncestorResolver = Callable[[FileSystem, Path, Path], Any]

PRESERVE_CHARS = frozenset("ugp")


def no_ancestor_metadata(fs: FileSystem, parent: Path, search_root: Path) -> None:
    return None


def _validate_preserve(preserve: str) -> str:
    unknown = set(preserve) - PRESERVE_CHARS
    if unknown:
        raise ValueError(f"Invalid preserve flags: {''.join(sorted(unknown))}. Must be a subset of 'ugp'.")
    return preserve


def resolve_owner_and_permissions(
    fs: FileSystem, from_path: Path, to_path: Path, preserve: str = "ugp"
) -> list[OwnerAndPermission]:
    """Owner/group/mode of ``from_path`` and each ancestor below ``to_path``.

    Walks upwards while the parent is still within ``to_path``, so ``to_path``
    itself is not included. Attributes not named in ``preserve`` are None.
    """
    _validate_preserve(preserve)
    if not is_within(to_path, from_path):
        raise InvalidPathError(f"{to_path} is not an ancestor of {from_path}")

    result: list[OwnerAndPermission] = []
    current = Path(from_path)
    while current.parent != current and is_within(to_path, current.parent):
        full = fs.owner_and_permission(current)
        result.append(OwnerAndPermission(
            owner=full.owner if "u" in preserve else None,
            group=full.group if "g" in preserve else None,
            mode=full.mode if "p" in preserve else None,
        ))
        current = current.parent
    return result


def owner_and_permission_resolver(preserve: str) -> AncestorResolver:
    _validate_preserve(preserve)

    def _resolve(fs: FileSystem, parent: Path, search_root: Path) -> list[OwnerAndPermission]:
        return resolve_owner_and_permissions(fs, parent, search_root, preserve)

    return _resolve
