"""
Explanation runs: compute one explanation for a board and optionally export it.

Exports are long-format rows (one per feature, or per feature and action for
the policy explanation) written as CSV and/or Parquet, with a manifest.json
recording arguments, provenance, and checksums.
"""
from __future__ import annotations

import csv
import hashlib
import importlib.util
import json
import logging
import sys
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from .game_basics import Board
from .paths import get_git_commit, get_git_is_dirty
from .policy import POLICY_NAMES, make_policy
from .shapley import base_value, explain_policy
from .sverl import check_gamma, check_mode, sverl
from .symmetry import ALL_SYMS, transform_board, transform_grid, transform_grid_of_grids
from .tracking import log_artifact, log_grid_metrics, log_params

METHODS = ('shapley', 'sverl')
FORMATS = ('csv', 'parquet', 'both')
EXPORT_VERSION = "1.0.0"


@dataclass
class ExplainArgs:
    board: str
    method: str = "shapley"
    policy: str = "minimax"
    depth_limit: Optional[int] = None
    gamma: float = 0.5
    mode: str = "local"
    out: Optional[Path] = None
    format: str = "csv"
    check_symmetry: bool = False
    cli_argv: List[str] | None = None


@dataclass
class Explanation:
    board: Board
    method: str
    policy: str
    grid: np.ndarray
    distribution: np.ndarray
    base: Optional[np.ndarray] = None
    mode: Optional[str] = None
    gamma: Optional[float] = None
    elapsed_s: float = 0.0
    symmetry_residual: Optional[float] = None
    files: Dict[str, str] = field(default_factory=dict)

    def rows(self) -> List[Dict[str, Any]]:
        key = self.board.to_string()
        out: List[Dict[str, Any]] = []
        for fx, fy in self.board.positions():
            if self.method == 'sverl':
                out.append({
                    'board_state': key,
                    'policy': self.policy,
                    'mode': self.mode,
                    'gamma': self.gamma,
                    'feature_x': fx,
                    'feature_y': fy,
                    'attribution': float(self.grid[fy, fx]),
                })
                continue
            for ax, ay in self.board.positions():
                out.append({
                    'board_state': key,
                    'policy': self.policy,
                    'feature_x': fx,
                    'feature_y': fy,
                    'action_x': ax,
                    'action_y': ay,
                    'attribution': float(self.grid[fy, fx, ay, ax]),
                    'base_value': float(self.base[ay, ax]),
                    'policy_value': float(self.distribution[ay, ax]),
                })
        return out


def _schema_hash(rows: List[Dict[str, Any]]) -> str:
    keys = sorted({k for r in rows for k in r.keys()})
    return hashlib.sha256("\n".join(keys).encode("utf-8")).hexdigest()


def _sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open('rb') as f:
        for chunk in iter(lambda: f.read(8192), b''):
            h.update(chunk)
    return h.hexdigest()


def _have_parquet() -> bool:
    return (importlib.util.find_spec('pandas') is not None
            and importlib.util.find_spec('pyarrow') is not None)


def _package_versions() -> Dict[str, str]:
    versions: Dict[str, str] = {}
    for pkg in ("numpy", "pandas", "pyarrow", "mlflow"):
        if importlib.util.find_spec(pkg) is None:
            continue
        ver = getattr(__import__(pkg), "__version__", None)
        if ver:
            versions[pkg] = ver
    return versions


def compute_explanation(args: ExplainArgs) -> Explanation:
    if args.method not in METHODS:
        raise ValueError(f"Unknown method: {args.method} (expected one of {', '.join(METHODS)})")
    board = Board.from_string(args.board)
    policy = make_policy(args.policy, args.depth_limit)
    t0 = time.perf_counter()
    distribution = policy(board)
    if args.method == 'shapley':
        grid = explain_policy(board, policy)
        expl = Explanation(board, args.method, args.policy, grid, distribution,
                           base=base_value(board, policy))
    else:
        gamma = check_gamma(args.gamma)
        mode = check_mode(args.mode)
        grid = sverl(board, policy, gamma=gamma, mode=mode)
        expl = Explanation(board, args.method, args.policy, grid, distribution, mode=mode, gamma=gamma)
    expl.elapsed_s = time.perf_counter() - t0
    logging.info("%s explanation (%s policy) took %.3fs", args.method, args.policy, expl.elapsed_s)
    return expl


def symmetry_residual(args: ExplainArgs, expl: Explanation) -> float:
    """Largest gap between explaining a transformed board and transforming the explanation.

    Both policies treat the 8 board symmetries alike, so this is zero up to
    floating-point error.
    """
    worst = 0.0
    for kind in ALL_SYMS:
        if kind == 'id':
            continue
        moved = compute_explanation(replace(args, board=transform_board(expl.board, kind).to_string()))
        if expl.method == 'sverl':
            expected = transform_grid(expl.grid, kind)
        else:
            expected = transform_grid_of_grids(expl.grid, kind)
        worst = max(worst, float(np.abs(moved.grid - expected).max()))
    logging.info("symmetry residual over %d transformations: %.3g", len(ALL_SYMS) - 1, worst)
    return worst


def run_explain(args: ExplainArgs) -> Explanation:
    fmt = (args.format or "csv").lower()
    if fmt not in FORMATS:
        raise ValueError(f"Unknown export format: {args.format}")
    if args.out is not None and fmt == "parquet" and not _have_parquet():
        # Strict: only parquet was asked for, so fail before writing anything
        raise RuntimeError(
            "Parquet dependencies not available (install pandas and pyarrow). "
            "Use pip install .[parquet] to enable parquet support."
        )
    expl = compute_explanation(args)
    if args.check_symmetry:
        expl.symmetry_residual = symmetry_residual(args, expl)
    log_params({
        "board": args.board,
        "method": args.method,
        "policy": args.policy,
        "depth_limit": args.depth_limit,
        "gamma": args.gamma,
        "mode": args.mode,
        "check_symmetry": args.check_symmetry,
    })
    if args.method == 'sverl':
        log_grid_metrics("sverl", expl.grid)
    else:
        log_grid_metrics("shapley_mass", expl.grid.sum(axis=(2, 3)))
    if args.out is None:
        return expl

    args.out.mkdir(parents=True, exist_ok=True)
    rows = expl.rows()
    csv_path = args.out / "attribution.csv"
    parquet_path = args.out / "attribution.parquet"
    if fmt in {"csv", "both"}:
        with csv_path.open('w', newline='') as f:
            w = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
            w.writeheader()
            w.writerows(rows)
        expl.files["csv"] = str(csv_path)
        logging.info("Wrote %s (%d rows)", csv_path, len(rows))
    if fmt in {"parquet", "both"}:
        if _have_parquet():
            try:
                import pandas as pd  # type: ignore

                pd.DataFrame(rows).to_parquet(parquet_path)
                expl.files["parquet"] = str(parquet_path)
                logging.info("Wrote %s", parquet_path)
            except Exception as e:
                logging.warning("Failed to write Parquet file: %s: %s", type(e).__name__, e)
        else:
            logging.warning(
                "Parquet dependencies not available; proceeding with CSV only "
                "(manifest records parquet_written=false)."
            )

    manifest = {
        "export_version": EXPORT_VERSION,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "args": {
            "board": args.board,
            "method": args.method,
            "policy": args.policy,
            "depth_limit": args.depth_limit,
            "gamma": expl.gamma,
            "mode": expl.mode,
            "format": fmt,
            "check_symmetry": args.check_symmetry,
        },
        "git_commit": get_git_commit(),
        "git_is_dirty": get_git_is_dirty(),
        "python": {"python_version": sys.version.split(" ")[0], "packages": _package_versions()},
        "cli_argv": args.cli_argv,
        "row_count": len(rows),
        "schema_hash": _schema_hash(rows),
        "elapsed_s": expl.elapsed_s,
        "symmetry_residual": expl.symmetry_residual,
        "files": expl.files,
        "checksums": {label: _sha256_file(Path(p)) for label, p in expl.files.items()},
        "parquet_written": "parquet" in expl.files,
    }
    manifest_path = args.out / "manifest.json"
    manifest_path.write_text(json.dumps(manifest, indent=2))
    logging.info("Wrote %s", manifest_path)
    log_artifact(manifest_path)
    for p in expl.files.values():
        log_artifact(Path(p))
    return expl


@dataclass
class BenchArgs:
    board: str = "000000000"
    policies: List[str] = field(default_factory=lambda: list(POLICY_NAMES))
    gamma: float = 0.5


def run_bench(args: BenchArgs) -> List[Dict[str, Any]]:
    """Time Shapley, local SVERL and global SVERL for each policy on one board."""
    results: List[Dict[str, Any]] = []
    for name in args.policies:
        jobs = [
            ExplainArgs(board=args.board, method="shapley", policy=name),
            ExplainArgs(board=args.board, method="sverl", policy=name, gamma=args.gamma, mode="local"),
            ExplainArgs(board=args.board, method="sverl", policy=name, gamma=args.gamma, mode="global"),
        ]
        for job in jobs:
            expl = compute_explanation(job)
            label = job.method if job.method == "shapley" else f"sverl_{job.mode}"
            results.append({
                "policy": name,
                "method": label,
                "seconds": expl.elapsed_s,
                "total": float(expl.grid.sum()),
            })
            logging.info("policy=%s method=%s took %.1fms", name, label, expl.elapsed_s * 1000.0)
    return results
