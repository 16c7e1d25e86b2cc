import csv
import json
from pathlib import Path

import numpy as np
import pytest

from ttt_sverl.explain import (
    BenchArgs,
    ExplainArgs,
    compute_explanation,
    run_bench,
    run_explain,
    symmetry_residual,
)


def test_explain_without_out_writes_nothing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    expl = run_explain(ExplainArgs(board="100020000", method="sverl", policy="random", gamma=0.5))
    assert expl.grid.shape == (3, 3)
    assert expl.files == {}
    assert not any(tmp_path.iterdir())


def test_export_creates_csv_and_manifest(tmp_path: Path):
    out = tmp_path / "exp"
    expl = run_explain(ExplainArgs(board="100020000", method="shapley", policy="random", out=out))
    rows = list(csv.DictReader((out / "attribution.csv").read_text().splitlines()))
    assert len(rows) == 81
    assert {"feature_x", "feature_y", "action_x", "action_y", "attribution"} <= set(rows[0])
    manifest = json.loads((out / "manifest.json").read_text())
    assert manifest["export_version"]
    assert manifest["row_count"] == 81
    assert manifest["args"]["method"] == "shapley"
    assert manifest["checksums"]["csv"]
    assert manifest["parquet_written"] is False
    # Rows reconstruct the policy distribution
    for ax, ay in expl.board.positions():
        total = sum(float(r["attribution"]) for r in rows if (int(r["action_x"]), int(r["action_y"])) == (ax, ay))
        base = next(float(r["base_value"]) for r in rows if (int(r["action_x"]), int(r["action_y"])) == (ax, ay))
        assert abs(total + base - expl.distribution[ay, ax]) < 1e-9


def test_sverl_export_has_one_row_per_cell(tmp_path: Path):
    out = tmp_path / "sverl"
    run_explain(ExplainArgs(board="121211200", method="sverl", policy="minimax", mode="global", gamma=0.9, out=out))
    rows = list(csv.DictReader((out / "attribution.csv").read_text().splitlines()))
    assert len(rows) == 9
    assert all(r["mode"] == "global" for r in rows)


def test_format_both_graceful_without_parquet_deps(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    import importlib

    real_find_spec = importlib.util.find_spec

    def fake_find_spec(name: str, package=None):  # type: ignore[override]
        if name in {"pandas", "pyarrow"}:
            return None
        return real_find_spec(name, package)

    monkeypatch.setattr(importlib.util, "find_spec", fake_find_spec)
    out = tmp_path / "exp_both"
    run_explain(ExplainArgs(board="121211200", method="sverl", policy="random", out=out, format="both"))
    assert (out / "attribution.csv").exists()
    assert not (out / "attribution.parquet").exists()
    assert json.loads((out / "manifest.json").read_text())["parquet_written"] is False


def test_format_parquet_raises_without_deps(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    import importlib

    real_find_spec = importlib.util.find_spec

    def fake_find_spec(name: str, package=None):  # type: ignore[override]
        if name in {"pandas", "pyarrow"}:
            return None
        return real_find_spec(name, package)

    monkeypatch.setattr(importlib.util, "find_spec", fake_find_spec)
    out = tmp_path / "exp_parquet"
    with pytest.raises(RuntimeError):
        run_explain(ExplainArgs(board="100020000", out=out, format="parquet"))
    assert not out.exists() or not any(out.iterdir())


@pytest.mark.parametrize("bad", [
    dict(method="lime"),
    dict(policy="greedy"),
    dict(method="sverl", gamma=2.0),
    dict(method="sverl", mode="both"),
    dict(format="xlsx"),
])
def test_bad_arguments_raise_value_error(bad):
    with pytest.raises(ValueError):
        run_explain(ExplainArgs(board="100020000", **bad))


def test_compute_explanation_matches_distribution():
    expl = compute_explanation(ExplainArgs(board="122010000", method="sverl", policy="minimax", gamma=1.0))
    assert expl.distribution[2, 2] == 1.0
    assert expl.mode == "local"
    assert np.isfinite(expl.grid).all()


def test_run_bench_reports_every_method():
    results = run_bench(BenchArgs(board="121211200", policies=["random"], gamma=0.5))
    assert [r["method"] for r in results] == ["shapley", "sverl_local", "sverl_global"]
    assert all(r["seconds"] >= 0.0 for r in results)


def test_symmetry_check_records_residual(tmp_path: Path):
    out = tmp_path / "sym"
    expl = run_explain(ExplainArgs(board="100020000", method="shapley", policy="minimax", out=out, check_symmetry=True))
    assert expl.symmetry_residual is not None
    assert expl.symmetry_residual < 1e-9
    manifest = json.loads((out / "manifest.json").read_text())
    assert manifest["args"]["check_symmetry"] is True
    assert manifest["symmetry_residual"] == pytest.approx(expl.symmetry_residual)


def test_global_sverl_is_equivariant_under_board_symmetries():
    args = ExplainArgs(board="121211200", method="sverl", policy="random", gamma=0.9, mode="global")
    assert symmetry_residual(args, compute_explanation(args)) < 1e-9


def test_symmetry_check_is_off_by_default(tmp_path: Path):
    out = tmp_path / "nosym"
    expl = run_explain(ExplainArgs(board="121211200", method="sverl", policy="random", out=out))
    assert expl.symmetry_residual is None
    assert json.loads((out / "manifest.json").read_text())["symmetry_residual"] is None
