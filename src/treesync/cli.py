from __future__ import annotations

import dataclasses
import json
import logging
from datetime import datetime
from pathlib import Path

import typer

from .config import SyncConfig
from .errors import TreeSyncError
from .fs import LocalFileSystem
from .models import ReconciliationPlan
from .planner.dataset import RecursiveCopyableDataset, find_datasets

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _resolve_log_path(log_path_template: str | None) -> str | None:
    """Resolve log file path with date/time pattern substitution.

    Supports:
    - {date}: YYYYMMDD (e.g., 20260123)
    - {datetime}: YYYYMMDD_HHMMSS (e.g., 20260123_142030)
    """
    if not log_path_template:
        return None

    now = datetime.now()
    resolved = (
        log_path_template
        .replace("{date}", now.strftime("%Y%m%d"))
        .replace("{datetime}", now.strftime("%Y%m%d_%H%M%S"))
    )

    log_path = Path(resolved)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return str(log_path)


def _setup_logging(log_file: str | None, log_level: str, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, log_level.upper(), logging.INFO)

    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(fmt, datefmt))
    handlers.append(console)

    if log_file:
        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5
        )
        file_handler.setFormatter(logging.Formatter(fmt, datefmt))
        handlers.append(file_handler)

    logger = logging.getLogger("treesync")
    logger.setLevel(level)
    for h in handlers:
        logger.addHandler(h)


def _load(config: str, log_file: str | None, verbose: bool) -> SyncConfig:
    try:
        cfg = SyncConfig.from_toml(config)
    except (OSError, ValueError) as e:
        raise typer.BadParameter(f"Cannot load {config}: {e}") from e
    # CLI flag > config setting > None
    effective_log_file = log_file or _resolve_log_path(cfg.log_file)
    if effective_log_file or verbose:
        _setup_logging(effective_log_file, cfg.log_level, verbose)
    return cfg


def _datasets(cfg: SyncConfig, fs: LocalFileSystem) -> list[RecursiveCopyableDataset]:
    return find_datasets(
        fs,
        cfg.glob,
        policy=cfg.policy(),
        path_filter=cfg.path_filter(),
        copy_filter=cfg.copy_filter(),
        ancestor_resolver=cfg.ancestor_resolver(),
        parallel_listing=cfg.parallel_listing,
    )


def _plans(cfg: SyncConfig) -> tuple[LocalFileSystem, list[ReconciliationPlan]]:
    fs = LocalFileSystem()
    try:
        return fs, [ds.get_copy_plan(fs, cfg.publish_dir) for ds in _datasets(cfg, fs)]
    except TreeSyncError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def init(glob: str = typer.Option(..., help="Dataset glob or directory"),
         publish_dir: str = typer.Option(..., help="Directory datasets are published under"),
         out: str = typer.Option("treesync.toml", help="Write example config to this path")):
    """Write a starter treesync.toml."""
    outp = Path(out)
    outp.write_text(f"""[dataset]
glob = "{glob}"
ignore = ["**/.DS_Store"]
skip_hidden = true

[target]
publish_dir = "{publish_dir}"

[policy]
# Like distcp -update: overwrite files that differ in the target
update = false
# Like distcp -delete: remove target files missing from the source
delete = false
delete_empty_directories = false

[filter]
name = "accept_all"

[copy]
preserve = ""
parallel_listing = false

[logging]
level = "INFO"
""", encoding="utf-8")
    typer.echo(f"Wrote {outp}")


@app.command()
def datasets(config: str = typer.Option("treesync.toml")):
    """List the dataset roots matched by the configured glob."""
    cfg = _load(config, None, False)
    fs = LocalFileSystem()
    found = _datasets(cfg, fs)
    typer.echo(f"Search root: {found[0].search_root if found else cfg.glob}")
    for ds in found:
        typer.echo(f"  {ds.urn} -> {ds.target_root(cfg.publish_dir)}")


@app.command()
def plan(config: str = typer.Option("treesync.toml"),
         update: bool = typer.Option(None, help="Override [policy] update"),
         delete: bool = typer.Option(None, help="Override [policy] delete"),
         log_file: str = typer.Option(None, "--log-file", "-l", help="Log file path"),
         verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging")):
    """Print the copy/delete plan of every dataset as JSON."""
    cfg = _load(config, log_file, verbose)
    if update is not None:
        cfg = dataclasses.replace(cfg, update=update)
    if delete is not None:
        cfg = dataclasses.replace(cfg, delete=delete)

    _fs, plans = _plans(cfg)
    typer.echo(json.dumps([p.to_dict() for p in plans], indent=2))


@app.command()
def prune(config: str = typer.Option("treesync.toml"),
          yes: bool = typer.Option(False, "--yes", "-y", help="Actually delete; default is a dry run"),
          log_file: str = typer.Option(None, "--log-file", "-l", help="Log file path"),
          verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging")):
    """Run only the delete steps of the plans (stale files and empty directories)."""
    cfg = _load(config, log_file, verbose)
    fs, plans = _plans(cfg)

    total = 0
    for p in plans:
        step = p.delete_step
        if step is None:
            continue
        if step.depends_on:
            typer.echo(f"Skipping {p.file_set}: {len(step.depends_on)} copies must land first", err=True)
            continue
        if not yes:
            for path in step.paths:
                typer.echo(f"would delete {path}")
            continue
        try:
            total += step.execute(fs)
        except TreeSyncError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)

    if yes:
        typer.echo(f"Deleted {total} files.")


if __name__ == "__main__":
    app()
