#!/usr/bin/env python3
from __future__ import annotations

import json
import math
import statistics as stats
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

from ttt_sverl.explain import BenchArgs, run_bench
from ttt_sverl.paths import explanations_dir
from ttt_sverl.tracking import log_params, maybe_mlflow_run


def ci95(values: List[float]) -> Tuple[float, float]:
    if not values:
        return (float("nan"), float("nan"))
    m = stats.fmean(values)
    s = stats.pstdev(values) if len(values) > 1 else 0.0
    return m, 1.96 * (s / math.sqrt(len(values)))


@dataclass
class Config:
    repeats: int = 3
    board: str = "000000000"
    gamma: float = 0.5
    policies: List[str] = field(default_factory=lambda: ["random", "minimax"])
    tracking: str = "none"  # or "mlflow"
    log_dir: Path = Path("runs")


def main() -> int:
    cfg = Config()
    timings: Dict[str, List[float]] = defaultdict(list)
    with maybe_mlflow_run(cfg.tracking == "mlflow", run_name="benchmarks", log_dir=cfg.log_dir):
        log_params({"repeats": cfg.repeats, "board": cfg.board, "gamma": cfg.gamma})
        for _ in range(cfg.repeats):
            for r in run_bench(BenchArgs(board=cfg.board, policies=cfg.policies, gamma=cfg.gamma)):
                timings[f"{r['policy']}/{r['method']}"].append(r["seconds"])
        summary = {}
        for label, values in sorted(timings.items()):
            m, h = ci95(values)
            summary[label] = {"mean_s": m, "ci95_half_s": h, "n": len(values)}
            print(f"{label}: mean={m:.4f}s ± {h:.4f}s (95% CI)")
        out = explanations_dir() / "benchmarks.json"
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(summary, indent=2))
        print(f"Wrote {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
