from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from .explain import FORMATS, METHODS, BenchArgs, ExplainArgs, run_bench, run_explain
from .game_basics import Board
from .grids import format_grid
from .policy import POLICY_NAMES, MinimaxPolicy, make_policy
from .sverl import MODES
from .tracking import maybe_mlflow_run


def _add_policy_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--policy", choices=POLICY_NAMES, default="minimax", help="Policy to explain (default: minimax)")
    p.add_argument(
        "--depth",
        type=int,
        default=None,
        help="Minimax ply limit; moves at the cutoff are scored as terminal (default: none)",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ttt-sverl", description="Shapley and SVERL explanations for tic-tac-toe policies")
    sub = p.add_subparsers(dest="cmd")
    p.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("--info", action="store_true", help="Print environment and dependency info and exit")

    p_pol = sub.add_parser("policy", help="Show a policy's distribution for a board (9 digits, 0=empty,1=X,2=O)")
    p_pol.add_argument("--board", required=True, help="Board string, e.g., 100020000")
    _add_policy_args(p_pol)

    p_exp = sub.add_parser("explain", help="Explain a policy on a board with Shapley values or SVERL")
    p_exp.add_argument("--board", required=True, help="Board string, e.g., 100020000")
    p_exp.add_argument("--method", choices=METHODS, default="shapley", help="Attribution method (default: shapley)")
    _add_policy_args(p_exp)
    p_exp.add_argument("--gamma", type=float, default=0.5, help="SVERL discount factor in [0,1] (default: 0.5)")
    p_exp.add_argument("--mode", choices=MODES, default="local", help="SVERL attribution mode (default: local)")
    p_exp.add_argument("--out", type=Path, default=None, help="Directory for exported rows and manifest")
    p_exp.add_argument(
        "--format",
        choices=FORMATS,
        default="csv",
        help="Export format: csv (default), parquet, both",
    )
    p_exp.add_argument(
        "--check-symmetry",
        action="store_true",
        help="Also explain the 7 transformed boards and report the largest deviation",
    )
    p_exp.add_argument("--tracking", choices=["none", "mlflow"], default="none", help="Experiment tracking backend")
    p_exp.add_argument(
        "--log-dir",
        type=Path,
        default=Path("runs"),
        help="Directory for tracking logs/artifacts (for mlflow local backend)",
    )

    p_bench = sub.add_parser("bench", help="Time Shapley and SVERL on a board for every policy")
    p_bench.add_argument("--board", default="000000000", help="Board string (default: empty board)")
    p_bench.add_argument("--gamma", type=float, default=0.5, help="SVERL discount factor (default: 0.5)")

    return p


def _parse_board(raw: Optional[str]) -> Optional[Board]:
    try:
        board = Board.from_string(raw or "")
    except ValueError:
        logging.error("Invalid board string. Must be a square number of 0/1/2 digits.")
        return None
    if not board.is_valid_state():
        logging.error("Board is not a valid reachable state.")
        return None
    return board


def _print_info() -> None:
    import importlib.util
    import platform
    import sys

    print(f"python={sys.version.split()[0]} platform={platform.platform()}")
    for pkg in ["numpy", "pandas", "pyarrow", "mlflow"]:
        if importlib.util.find_spec(pkg) is None:
            print(f"{pkg}=<not installed>")
        else:
            print(f"{pkg}={getattr(__import__(pkg), '__version__', '?')}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if getattr(ns, "verbose", False) else logging.INFO,
                        format="[%(levelname)s] %(message)s")

    if getattr(ns, "version", False):
        try:
            from importlib.metadata import version as _ver

            print(_ver("ttt-sverl"))
        except Exception:
            print("unknown")
        return 0
    if getattr(ns, "info", False):
        _print_info()
        return 0

    if ns.cmd == "policy":
        board = _parse_board(ns.board)
        if board is None:
            return 2
        try:
            policy = make_policy(ns.policy, ns.depth)
        except ValueError as e:
            logging.error("%s", e)
            return 2
        for line in format_grid(policy(board)):
            logging.info("%s", line)
        if isinstance(policy, MinimaxPolicy):
            action, value = policy.choose(board)
            logging.info("action=%s value=%.4f", action, value)
        return 0

    if ns.cmd == "explain":
        board = _parse_board(ns.board)
        if board is None:
            return 2
        args = ExplainArgs(
            board=board.to_string(),
            method=ns.method,
            policy=ns.policy,
            depth_limit=ns.depth,
            gamma=ns.gamma,
            mode=ns.mode,
            out=ns.out,
            format=ns.format,
            check_symmetry=ns.check_symmetry,
            cli_argv=list(argv) if argv is not None else None,
        )
        try:
            with maybe_mlflow_run(ns.tracking == "mlflow", run_name=f"explain_{ns.method}", log_dir=ns.log_dir):
                expl = run_explain(args)
        except (ValueError, RuntimeError) as e:
            logging.error("%s", e)
            return 2
        grid = expl.grid if expl.method == "sverl" else expl.grid.sum(axis=(2, 3))
        label = f"sverl[{expl.mode}, gamma={expl.gamma}]" if expl.method == "sverl" else "shapley (mass moved per feature)"
        logging.info("%s:", label)
        for line in format_grid(grid):
            logging.info("%s", line)
        if expl.symmetry_residual is not None:
            logging.info("symmetry_residual=%.3g", expl.symmetry_residual)
        if args.out is not None:
            logging.info("Exported explanation to: %s", args.out)
        return 0

    if ns.cmd == "bench":
        board = _parse_board(ns.board)
        if board is None:
            return 2
        try:
            run_bench(BenchArgs(board=board.to_string(), gamma=ns.gamma))
        except ValueError as e:
            logging.error("%s", e)
            return 2
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
