"""Run folders for layout jobs: input drawing, artifacts, manifest, log."""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

LATEST_NAME = "latest"


@dataclass
class RunPaths:
    run_id: str
    run_dir: Path
    input_dir: Path
    artifacts_dir: Path
    log_path: Path
    manifest_path: Path
    layout_path: Path
    summary_path: Path

    def artifact(self, name: str) -> Path:
        return self.artifacts_dir / name


def slugify(value: str) -> str:
    value = re.sub(r"[^a-z0-9]+", "-", value.strip().lower())
    return value.strip("-") or "layout"


def create_run_id(name: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d_%H%M%S")
    return f"{stamp}_{slugify(name)}"


def prepare_run_dir(runs_root: str, name: str) -> RunPaths:
    run_id = create_run_id(name)
    run_dir = Path(runs_root) / run_id
    suffix = 1
    while run_dir.exists():
        suffix += 1
        run_dir = Path(runs_root) / f"{run_id}_{suffix}"

    paths = RunPaths(
        run_id=run_dir.name,
        run_dir=run_dir,
        input_dir=run_dir / "input",
        artifacts_dir=run_dir / "artifacts",
        log_path=run_dir / "run.log",
        manifest_path=run_dir / "manifest.json",
        layout_path=run_dir / "layout.json",
        summary_path=run_dir / "summary.md",
    )
    paths.input_dir.mkdir(parents=True, exist_ok=True)
    paths.artifacts_dir.mkdir(parents=True, exist_ok=True)
    return paths


def copy_input_file(source_path: str, input_dir: Path) -> Path:
    src = Path(source_path)
    dst = input_dir / src.name
    if src.resolve() != dst.resolve():
        shutil.copy2(src, dst)
    return dst


def attach_run_log(paths: RunPaths, level: int = logging.DEBUG) -> logging.Handler:
    """Mirror log records into the run folder until the handler is removed."""
    handler = logging.FileHandler(paths.log_path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logging.getLogger().addHandler(handler)
    return handler


def detach_run_log(handler: logging.Handler) -> None:
    logging.getLogger().removeHandler(handler)
    handler.close()


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def update_latest_pointer(runs_root: str, run_dir: Path) -> None:
    latest = Path(runs_root) / LATEST_NAME
    if latest.is_symlink() or latest.is_file():
        latest.unlink()
    elif latest.exists():
        shutil.rmtree(latest)

    try:
        latest.symlink_to(os.path.relpath(run_dir, runs_root))
    except OSError:
        # No symlinks on this filesystem; leave a pointer file instead.
        latest.mkdir(parents=True, exist_ok=True)
        (latest / "latest_run.txt").write_text(run_dir.name, encoding="utf-8")
