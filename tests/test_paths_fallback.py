from pathlib import Path

from ttt_sverl.paths import explanations_dir, get_git_is_dirty, repo_root


def test_repo_root_prefers_cwd_when_no_git_and_no_env(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("TTT_SVERL_REPO_ROOT", raising=False)
    monkeypatch.delenv("TTT_SVERL_OUT", raising=False)
    monkeypatch.chdir(tmp_path)
    import ttt_sverl.paths as P

    monkeypatch.setattr(P, "_find_git_root", lambda start: None)
    assert repo_root() == tmp_path
    assert explanations_dir() == tmp_path / "explanations"


def test_env_overrides(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("TTT_SVERL_REPO_ROOT", str(tmp_path / "root"))
    assert repo_root() == tmp_path / "root"
    monkeypatch.setenv("TTT_SVERL_OUT", str(tmp_path / "elsewhere"))
    assert explanations_dir() == tmp_path / "elsewhere"


def test_git_status_unknown_outside_a_repo(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("TTT_SVERL_REPO_ROOT", str(tmp_path))
    assert get_git_is_dirty() is None
