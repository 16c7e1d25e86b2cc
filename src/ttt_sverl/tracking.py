"""
Optional MLflow tracking for explanation runs.

MLflow is imported only when tracking is requested, and every call soft-fails:
a missing or broken backend never aborts an explanation. Logging helpers are
no-ops unless a run was opened with maybe_mlflow_run.
"""
from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import numpy as np


@contextmanager
def maybe_mlflow_run(enabled: bool, run_name: str, log_dir: Optional[Path] = None) -> Iterator[bool]:
    """Yield True when an MLflow run is active for the body of the block."""
    if not enabled:
        yield False
        return
    try:
        import mlflow  # type: ignore

        if log_dir is not None:
            mlflow.set_tracking_uri((log_dir / "mlruns").resolve().as_uri())
        run = mlflow.start_run(run_name=run_name)
    except Exception as e:
        logging.warning("MLflow tracking unavailable (%s: %s); continuing without it", type(e).__name__, e)
        yield False
        return
    with run:
        yield True


def _active_mlflow() -> Any:
    # A run can only be active if maybe_mlflow_run already imported mlflow
    mlflow = sys.modules.get("mlflow")
    if mlflow is None or mlflow.active_run() is None:
        return None
    return mlflow


def log_params(params: Dict[str, object]) -> None:
    mlflow = _active_mlflow()
    if mlflow is None:
        return
    try:
        mlflow.log_params(params)
    except Exception as e:
        logging.debug("mlflow.log_params failed: %s", e)


def log_grid_metrics(prefix: str, grid: np.ndarray) -> None:
    """One metric per cell, named <prefix>_<x>_<y>, plus the grid total."""
    mlflow = _active_mlflow()
    if mlflow is None:
        return
    metrics = {f"{prefix}_{x}_{y}": float(grid[y, x]) for y in range(grid.shape[0]) for x in range(grid.shape[1])}
    metrics[f"{prefix}_total"] = float(grid.sum())
    try:
        mlflow.log_metrics(metrics)
    except Exception as e:
        logging.debug("mlflow.log_metrics failed: %s", e)


def log_artifact(path: Path) -> None:
    mlflow = _active_mlflow()
    if mlflow is None:
        return
    try:
        mlflow.log_artifact(str(path))
    except Exception as e:
        logging.debug("mlflow.log_artifact failed: %s", e)
