from __future__ import annotations

import json
import os
import subprocess
from pathlib import Path

import pytest

from repo_stats import analysis_extract
from repo_stats.analysis_extract import extract_history
from repo_stats.analysis_run import run_pipeline
from repo_stats.analysis_write import result_to_dict
from repo_stats.config import AnalysisConfig
from repo_stats.errors import EmptyRepositoryError, RepositoryNotFoundError


def _run(cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> str:
    proc = subprocess.run(cmd, cwd=str(cwd), env=env, check=True, capture_output=True, text=True)
    return proc.stdout


def _init(repo: Path) -> Path:
    repo.mkdir()
    _run(["git", "init", "-q"], cwd=repo)
    _run(["git", "config", "user.name", "Test User"], cwd=repo)
    _run(["git", "config", "user.email", "test@example.com"], cwd=repo)
    _run(["git", "config", "commit.gpgsign", "false"], cwd=repo)
    return repo


def _write(repo: Path, path: str, lines: int, *, prefix: str = "line") -> None:
    p = repo / path
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text("".join(f"{prefix} {path} {i}\n" for i in range(lines)), encoding="utf-8")


def _append(repo: Path, path: str, lines: int) -> None:
    p = repo / path
    with p.open("a", encoding="utf-8") as f:
        for i in range(lines):
            f.write(f"extra {i}\n")


def _mv(repo: Path, old: str, new: str) -> None:
    (repo / new).parent.mkdir(parents=True, exist_ok=True)
    _run(["git", "mv", old, new], cwd=repo)


def _commit(repo: Path, message: str, day: int, *, author: str = "Test User", email: str = "test@example.com") -> None:
    _run(["git", "add", "-A"], cwd=repo)
    env = os.environ.copy()
    date = f"2025-01-{day:02d}T12:00:00+00:00"
    env["GIT_AUTHOR_DATE"] = date
    env["GIT_COMMITTER_DATE"] = date
    env["GIT_AUTHOR_NAME"] = author
    env["GIT_AUTHOR_EMAIL"] = email
    _run(["git", "commit", "-q", "-m", message], cwd=repo, env=env)


def _config(**kw: object) -> AnalysisConfig:
    base = {"jobs": 2, "progress_interval_s": 0.0}
    base.update(kw)
    return AnalysisConfig(**base)  # type: ignore[arg-type]


def _cumulative(result) -> list[int]:
    return [p.cumulative_lines for p in result.linear_series]


def test_move_into_excluded_directory_and_back(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    _write(repo, "a.py", 40)
    _write(repo, "b.py", 60)
    _commit(repo, "feat: add a and b", 1)
    _mv(repo, "a.py", "build/a.py")
    _mv(repo, "b.py", "build/b.py")
    _commit(repo, "chore: move to build", 2)
    _write(repo, "src/c.py", 20)
    _commit(repo, "feat: add c", 3)
    _mv(repo, "build/a.py", "a.py")
    _commit(repo, "chore: restore a", 4)

    result = run_pipeline(repo, _config())

    assert _cumulative(result) == [100, 0, 20, 60]
    assert result.commits[1].lines_deleted == 100
    assert result.total_lines == 60
    assert result.anomalies == []
    assert [p.files for p in result.time_series] == [2, 0, 1, 2]


def test_edit_while_excluded_counts_on_return(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    _write(repo, "b.py", 10)
    _commit(repo, "feat: add b", 1)
    _mv(repo, "b.py", "build/b.py")
    _commit(repo, "chore: park b", 2)
    _append(repo, "build/b.py", 5)
    _commit(repo, "feat: grow parked b", 3)
    _mv(repo, "build/b.py", "b.py")
    _commit(repo, "chore: unpark b", 4)

    result = run_pipeline(repo, _config())

    assert _cumulative(result) == [10, 0, 0, 15]
    assert result.commits[2].files == ()
    assert result.commits[3].lines_added == 15
    size_on_disk = (repo / "b.py").stat().st_size
    assert result.total_bytes == size_on_disk


def test_bytes_are_exact_not_estimated(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    (repo / "short.py").write_text("a\nb\nc\n", encoding="utf-8")
    _commit(repo, "feat: short lines", 1)

    commits, errors = extract_history(repo, _config())

    assert errors == []
    fc = commits[0].files[0]
    assert fc.lines_added == 3
    assert fc.bytes_added == 6
    assert fc.bytes_added != fc.lines_added * 50
    assert not fc.bytes_estimated


def test_root_commit_is_pure_addition_and_order_is_oldest_first(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    _write(repo, "a.py", 3)
    _write(repo, "lib/b.py", 4)
    _commit(repo, "feat: first", 1)
    _append(repo, "a.py", 2)
    _commit(repo, "feat: second", 2)

    commits, _ = extract_history(repo, _config())

    assert [c.message for c in commits] == ["feat: first", "feat: second"]
    assert {f.status for f in commits[0].files} == {"A"}
    assert all(f.old_path is None for f in commits[0].files)
    assert commits[0].lines_added == 7
    assert commits[1].files[0].status == "M"


def test_merge_commits_are_kept_with_zero_stats(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    _write(repo, "a.py", 10)
    _commit(repo, "feat: a", 1)
    _run(["git", "checkout", "-q", "-b", "feature"], cwd=repo)
    _write(repo, "b.py", 5)
    _commit(repo, "feat: b", 2)
    _run(["git", "checkout", "-q", "-"], cwd=repo)
    _write(repo, "c.py", 3)
    _commit(repo, "feat: c", 3)
    env = os.environ.copy()
    env["GIT_AUTHOR_DATE"] = env["GIT_COMMITTER_DATE"] = "2025-01-04T12:00:00+00:00"
    _run(["git", "merge", "-q", "--no-ff", "-m", "Merge branch 'feature'", "feature"], cwd=repo, env=env)

    result = run_pipeline(repo, _config())

    merge = result.commits[-1]
    assert merge.is_merge
    assert merge.files == ()
    assert result.total_lines == 18
    assert _cumulative(result)[-1] == 18
    assert all(a.sha != merge.sha for a in result.awards.most_lines_added)


def test_max_commits_keeps_most_recent_and_adopts_unseen_files(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    _write(repo, "a.py", 10)
    _commit(repo, "feat: a", 1)
    _write(repo, "b.py", 3)
    _commit(repo, "feat: b", 2)
    _append(repo, "a.py", 2)
    _commit(repo, "feat: grow a", 3)

    result = run_pipeline(repo, _config(max_commits=2))

    assert [c.message for c in result.commits] == ["feat: b", "feat: grow a"]
    assert result.total_lines == 15
    assert len(result.anomalies) == 1
    assert "a.py" in result.anomalies[0]


def test_two_runs_are_identical(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    _write(repo, "a.py", 10)
    _write(repo, "docs/guide.html", 30)
    _commit(repo, "feat: parser groundwork", 1, author="Ann", email="ann@example.com")
    _append(repo, "a.py", 3)
    _commit(repo, "fix: parser crash", 2, author="Bob", email="bob@example.com")
    _mv(repo, "a.py", "src/a.py")
    _commit(repo, "refactor: move parser", 3, author="Ann", email="ann@example.com")

    first = json.dumps(result_to_dict(run_pipeline(repo, _config(jobs=1))), sort_keys=True)
    second = json.dumps(result_to_dict(run_pipeline(repo, _config(jobs=4))), sort_keys=True)

    assert first == second
    data = json.loads(first)
    assert data["totals"]["lines"] == 13
    assert [w["text"] for w in data["word_cloud"]][0] == "parser"
    assert data["contributors"][0]["email"] == "ann@example.com"


def test_failed_commit_lookup_is_zero_filled(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    repo = _init(tmp_path / "r")
    _write(repo, "a.py", 10)
    _commit(repo, "feat: a", 1)
    _write(repo, "b.py", 4)
    _commit(repo, "feat: b", 2)
    broken = _run(["git", "rev-parse", "HEAD"], cwd=repo).strip()

    real_diff_tree = analysis_extract.diff_tree

    def flaky_diff_tree(repo_path: Path, sha: str) -> tuple[int, str, str]:
        if sha == broken:
            return 128, "", "fatal: simulated"
        return real_diff_tree(repo_path, sha)

    monkeypatch.setattr(analysis_extract, "diff_tree", flaky_diff_tree)
    result = run_pipeline(repo, _config())

    assert len(result.commits) == 2
    assert result.commits[1].extraction_error
    assert result.commits[1].files == ()
    assert len(result.errors) == 1
    assert broken[:12] in result.errors[0]
    assert result.total_lines == 10


def test_progress_reports_processing_commits(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    for day in range(1, 4):
        _write(repo, f"f{day}.py", day)
        _commit(repo, f"feat: {day}", day)

    events: list[tuple[str, object, object]] = []
    run_pipeline(repo, _config(), progress=lambda s, c=None, t=None: events.append((s, c, t)))

    counted = [e for e in events if e[0] == "Processing commits"]
    assert counted[-1] == ("Processing commits", 3, 3)


def test_not_a_repository(tmp_path: Path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()
    with pytest.raises(RepositoryNotFoundError) as ei:
        run_pipeline(plain, _config())
    assert ei.value.code == "REPO_NOT_FOUND"
    with pytest.raises(RepositoryNotFoundError):
        run_pipeline(tmp_path / "missing", _config())


def test_repository_without_commits(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    with pytest.raises(EmptyRepositoryError) as ei:
        run_pipeline(repo, _config())
    assert ei.value.code == "NO_COMMITS"


def test_truncated_history_with_vendored_edits_records_no_anomalies(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    _write(repo, "app.py", 4)
    for i in range(5):
        _write(repo, f"node_modules/m{i}.js", 3)
    _commit(repo, "feat: vendor deps", 1)
    for i in range(5):
        _append(repo, f"node_modules/m{i}.js", 2)
    _commit(repo, "chore: update deps", 2)

    result = run_pipeline(repo, _config(max_commits=1))

    assert len(result.commits) == 1
    assert result.anomalies == []
    assert result.total_lines == 0
    assert result.commits[0].files == ()


def test_top_files_and_categories_come_from_included_state(tmp_path: Path) -> None:
    repo = _init(tmp_path / "r")
    _write(repo, "src/app.py", 30)
    _write(repo, "tests/test_app.py", 12)
    _write(repo, "vendor/huge.js", 500)
    _commit(repo, "feat: app", 1)
    _append(repo, "tests/test_app.py", 5)
    _commit(repo, "test: more", 2)

    result = run_pipeline(repo, _config(bucket="year"))

    assert [(t.path, t.value) for t in result.largest_files] == [("src/app.py", 30), ("tests/test_app.py", 17)]
    assert [t.path for t in result.most_churned_files] == ["src/app.py", "tests/test_app.py"]
    point = result.time_series[-1]
    assert point.cumulative_lines_by_category["Application"] == 30
    assert point.cumulative_lines_by_category["Test"] == 17
    data = result_to_dict(result)
    assert data["largest_files"][0]["path"] == "src/app.py"
