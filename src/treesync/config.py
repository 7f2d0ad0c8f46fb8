from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .ancestors import AncestorResolver, no_ancestor_metadata, owner_and_permission_resolver
from .filters import (
    CopyableFileFilter,
    FilterChain,
    PathSelector,
    all_of,
    build_copy_filter,
    hidden_filter,
    ignore_filter,
)
from .models import ReconciliationPolicy

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_LEVEL_ENV = "TREESYNC_LOG_LEVEL"


def _expand(p: str) -> str:
    return os.path.expandvars(os.path.expanduser(p))


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for planning one glob of datasets into a publish directory."""

    glob: str
    publish_dir: Path

    ignore: list[str] = field(default_factory=list)
    skip_hidden: bool = True

    # Policy
    update: bool = False
    delete: bool = False
    delete_empty_directories: bool = False

    # Copy filter
    filter_name: str = "accept_all"  # accept_all|size_budget|max_files
    max_bytes: int = 0
    max_files: int = 0

    # Copy
    preserve: str = ""  # subset of "ugp"
    parallel_listing: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None  # supports {date}, {datetime}

    def __post_init__(self):
        """Expand ~ and environment variables in the paths."""
        object.__setattr__(self, "glob", _expand(str(self.glob)))
        object.__setattr__(self, "publish_dir", Path(_expand(str(self.publish_dir))))

    def policy(self) -> ReconciliationPolicy:
        return ReconciliationPolicy(
            allow_update=self.update,
            allow_delete=self.delete,
            prune_empty_directories=self.delete_empty_directories,
        )

    def path_filter(self) -> PathSelector | None:
        selectors: list[PathSelector] = []
        if self.skip_hidden:
            selectors.append(hidden_filter)
        if self.ignore:
            selectors.append(ignore_filter(self.ignore))
        if not selectors:
            return None
        return all_of(*selectors)

    def copy_filter(self) -> CopyableFileFilter:
        return FilterChain([
            build_copy_filter(self.filter_name, max_bytes=self.max_bytes, max_files=self.max_files)
        ])

    def ancestor_resolver(self) -> AncestorResolver:
        if not self.preserve:
            return no_ancestor_metadata
        return owner_and_permission_resolver(self.preserve)

    @staticmethod
    def from_toml(path: str | Path) -> "SyncConfig":
        data = tomllib.loads(Path(path).read_text(encoding="utf-8"))
        dataset = data.get("dataset", {})
        target = data.get("target", {})
        policy = data.get("policy", {})
        filt = data.get("filter", {})
        copy = data.get("copy", {})
        logging_config = data.get("logging", {})

        if "glob" not in dataset:
            raise ValueError("Invalid config: [dataset] glob is required")
        if "publish_dir" not in target:
            raise ValueError("Invalid config: [target] publish_dir is required")

        filter_name = filt.get("name", "accept_all")
        max_bytes = int(filt.get("max_bytes", 0))
        max_files = int(filt.get("max_files", 0))
        if filter_name not in ("accept_all", "size_budget", "max_files"):
            raise ValueError(f"Invalid filter name: {filter_name}. Must be one of accept_all, size_budget, max_files.")
        required = {"size_budget": "max_bytes", "max_files": "max_files"}.get(filter_name)
        if required and required not in filt:
            raise ValueError(f"Invalid config: [filter] {required} is required for filter {filter_name}")
        if max_bytes < 0:
            raise ValueError(f"Invalid max_bytes: {max_bytes}. Must be >= 0.")
        if max_files < 0:
            raise ValueError(f"Invalid max_files: {max_files}. Must be >= 0.")

        preserve = str(copy.get("preserve", ""))
        if set(preserve) - set("ugp"):
            raise ValueError(f"Invalid preserve: {preserve}. Must be a subset of 'ugp'.")

        # Environment variable takes precedence if explicitly set
        log_level_env = os.environ.get(LOG_LEVEL_ENV)
        if log_level_env is not None:
            log_level = log_level_env.upper()
        else:
            log_level = str(logging_config.get("level", "INFO")).upper()
        if log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {log_level}. Must be one of: {VALID_LOG_LEVELS}")

        return SyncConfig(
            glob=dataset["glob"],
            publish_dir=target["publish_dir"],
            ignore=list(dataset.get("ignore", [])),
            skip_hidden=bool(dataset.get("skip_hidden", True)),
            update=bool(policy.get("update", False)),
            delete=bool(policy.get("delete", False)),
            delete_empty_directories=bool(policy.get("delete_empty_directories", False)),
            filter_name=filter_name,
            max_bytes=max_bytes,
            max_files=max_files,
            preserve=preserve,
            parallel_listing=bool(copy.get("parallel_listing", False)),
            log_level=log_level,
            log_file=logging_config.get("log_file") or None,
        )
