from __future__ import annotations

from itertools import count

from repo_stats.analysis_exclusions import ExclusionPolicy
from repo_stats.analysis_reconcile import ReconcileState, check_invariant, reconcile_commit, reconcile_history
from repo_stats.models import CommitRecord, FileChange

_seq = count(1)


def _commit(*files: FileChange, message: str = "change") -> CommitRecord:
    n = next(_seq)
    return CommitRecord.create(
        sha=f"{n:040x}",
        author_name="Dev",
        author_email="dev@example.com",
        timestamp=f"2025-01-{(n % 28) + 1:02d}T12:00:00+00:00",
        message=message,
        files=files,
    )


def _add(path: str, lines: int, nbytes: int | None = None) -> FileChange:
    return FileChange.create(path, status="A", lines_added=lines, bytes_added=nbytes if nbytes is not None else lines * 10)


def _edit(path: str, added: int, deleted: int = 0) -> FileChange:
    return FileChange.create(path, status="M", lines_added=added, lines_deleted=deleted, bytes_added=added * 10, bytes_deleted=deleted * 10)


def _move(old: str, new: str, added: int = 0, deleted: int = 0) -> FileChange:
    return FileChange.create(
        new,
        old_path=old,
        status="R",
        lines_added=added,
        lines_deleted=deleted,
        bytes_added=added * 10,
        bytes_deleted=deleted * 10,
    )


def _cumulative(commits: list[CommitRecord]) -> list[int]:
    out = []
    total = 0
    for c in commits:
        total += c.net_lines
        out.append(total)
    return out


def test_files_moved_into_and_out_of_excluded_directory() -> None:
    history = [
        _commit(_add("a.py", 40), _add("b.py", 60)),
        _commit(_move("a.py", "build/a.py"), _move("b.py", "build/b.py")),
        _commit(_add("src/c.py", 20)),
        _commit(_move("build/a.py", "a.py")),
    ]
    res = reconcile_history(history, ExclusionPolicy())

    assert _cumulative(res.commits) == [100, 0, 20, 60]
    assert res.commits[1].lines_deleted == 100
    assert res.commits[1].lines_added == 0
    assert res.commits[3].lines_added == 40
    assert set(res.state.included) == {"a.py", "src/c.py"}
    assert set(res.state.dormant) == {"build/b.py"}
    assert res.file_counts == [2, 0, 1, 2]
    assert check_invariant(res.commits, res.state)


def test_edits_while_excluded_collapse_to_current_size_on_return() -> None:
    history = [
        _commit(_add("b.py", 10)),
        _commit(_move("b.py", "build/b.py")),
        _commit(_edit("build/b.py", 5)),
        _commit(_move("build/b.py", "b.py")),
    ]
    res = reconcile_history(history, ExclusionPolicy())

    assert _cumulative(res.commits) == [10, 0, 0, 15]
    assert res.commits[2].files == ()
    assert res.commits[2].excluded_files == 1
    assert res.commits[3].lines_added == 15
    assert res.state.included["b.py"].lines == 15
    assert res.state.included["b.py"].bytes == 150
    assert check_invariant(res.commits, res.state)


def test_edit_in_same_commit_as_move_is_counted_once() -> None:
    history = [
        _commit(_add("x.py", 10)),
        _commit(_move("x.py", "build/x.py", added=3)),
        _commit(_move("build/x.py", "x.py", added=2, deleted=1)),
    ]
    res = reconcile_history(history, ExclusionPolicy())
    assert _cumulative(res.commits) == [10, 0, 14]
    assert res.commits[1].lines_deleted == 10


def test_included_edits_and_renames_pass_through() -> None:
    history = [
        _commit(_add("src/a.py", 10)),
        _commit(_edit("src/a.py", 4, 2)),
        _commit(_move("src/a.py", "lib/a.py", added=1)),
    ]
    res = reconcile_history(history, ExclusionPolicy())
    assert [c.net_lines for c in res.commits] == [10, 2, 1]
    assert res.commits[2].files[0].old_path == "src/a.py"
    assert res.state.included == {"lib/a.py": res.state.included["lib/a.py"]}
    assert res.state.included["lib/a.py"].lines == 13


def test_new_file_under_excluded_path_contributes_nothing() -> None:
    history = [
        _commit(_add("dist/bundle.js", 500)),
        _commit(_move("dist/bundle.js", "bundle.js")),
    ]
    res = reconcile_history(history, ExclusionPolicy())
    assert res.commits[0].net_lines == 0
    assert res.commits[0].excluded_files == 1
    assert "dist/bundle.js" not in res.state.included
    # Moving it out restores the size it had while excluded.
    assert res.commits[1].lines_added == 500
    assert check_invariant(res.commits, res.state)


def test_delete_emits_tracked_size() -> None:
    history = [
        _commit(_add("a.py", 30)),
        _commit(FileChange.create("a.py", status="D", lines_deleted=30, bytes_deleted=300)),
    ]
    res = reconcile_history(history, ExclusionPolicy())
    assert _cumulative(res.commits) == [30, 0]
    assert res.state.included == {}
    assert res.commits[1].bytes_deleted == 300


def test_delete_of_excluded_file_is_dropped() -> None:
    history = [
        _commit(_add("build/a.py", 30)),
        _commit(FileChange.create("build/a.py", status="D", lines_deleted=30)),
    ]
    res = reconcile_history(history, ExclusionPolicy())
    assert _cumulative(res.commits) == [0, 0]
    assert res.state.dormant == {}


def test_copy_seeds_new_path_from_source() -> None:
    history = [
        _commit(_add("a.py", 12)),
        _commit(FileChange.create("b.py", old_path="a.py", status="C", lines_added=1)),
    ]
    res = reconcile_history(history, ExclusionPolicy())
    assert res.commits[1].lines_added == 13
    assert res.state.included["a.py"].lines == 12
    assert res.state.included["b.py"].lines == 13
    assert check_invariant(res.commits, res.state)


def test_orphan_rename_uses_size_lookup_and_is_recorded() -> None:
    calls: list[tuple[str, str]] = []

    def lookup(sha: str, path: str) -> tuple[int, int] | None:
        calls.append((sha, path))
        return (25, 900)

    history = [_commit(_move("old/never_seen.py", "src/new.py"))]
    res = reconcile_history(history, ExclusionPolicy(), lookup)

    assert calls == [(history[0].sha, "src/new.py")]
    assert res.commits[0].lines_added == 25
    assert res.commits[0].bytes_added == 900
    assert res.state.included["src/new.py"].lines == 25
    assert len(res.state.anomalies) == 1
    assert "src/new.py" in res.state.anomalies[0]
    assert check_invariant(res.commits, res.state)


def test_orphan_rename_without_lookup_uses_own_delta() -> None:
    history = [_commit(_move("gone.py", "here.py", added=7, deleted=2))]
    res = reconcile_history(history, ExclusionPolicy())
    assert res.commits[0].lines_added == 5
    assert res.state.included["here.py"].lines == 5
    assert res.state.anomalies


def test_merge_and_zero_filled_commits_pass_through_empty() -> None:
    merge = CommitRecord.create(
        sha="f" * 40,
        author_name="Dev",
        author_email="dev@example.com",
        timestamp="2025-02-01T00:00:00+00:00",
        message="Merge branch 'x'",
        parents=2,
    )
    state = ReconcileState()
    out = reconcile_commit(state, merge, ExclusionPolicy())
    assert out.files == ()
    assert out.is_merge
    assert state.included == {}


def test_original_commit_is_not_modified() -> None:
    raw = _commit(_add("a.py", 5), _add("docs/x.html", 50))
    res = reconcile_history([raw], ExclusionPolicy())
    assert len(raw.files) == 2
    assert raw.lines_added == 55
    assert len(res.commits[0].files) == 1
    assert res.commits[0].lines_added == 5


def test_invariant_holds_after_every_prefix() -> None:
    history = [
        _commit(_add("a.py", 40), _add("b.py", 60), _add("vendor/lib.js", 1000)),
        _commit(_move("a.py", "build/a.py", added=2), _edit("b.py", 5, 5)),
        _commit(_edit("build/a.py", 10), _move("vendor/lib.js", "lib.js")),
        _commit(_move("build/a.py", "src/a.py", deleted=4)),
        _commit(FileChange.create("b.py", status="D", lines_deleted=60)),
    ]
    state = ReconcileState()
    adjusted: list[CommitRecord] = []
    policy = ExclusionPolicy()
    for c in history:
        adjusted.append(reconcile_commit(state, c, policy))
        assert check_invariant(adjusted, state)
    assert state.total_lines == 1000 + 48


def test_edits_to_unseen_excluded_files_are_silent_and_skip_lookup() -> None:
    calls: list[tuple[str, str]] = []

    def lookup(sha: str, path: str) -> tuple[int, int] | None:
        calls.append((sha, path))
        return (99, 9900)

    history = [_commit(*(_edit(f"node_modules/m{i}.js", 3) for i in range(5)))]
    res = reconcile_history(history, ExclusionPolicy(), lookup)

    assert calls == []
    assert res.state.anomalies == []
    assert res.commits[0].files == ()
    assert res.commits[0].excluded_files == 5
    assert res.state.total_lines == 0
    assert res.state.unsized == {f"node_modules/m{i}.js" for i in range(5)}


def test_unseen_excluded_file_is_sized_when_it_moves_out() -> None:
    calls: list[tuple[str, str]] = []

    def lookup(sha: str, path: str) -> tuple[int, int] | None:
        calls.append((sha, path))
        return (40, 1200)

    history = [
        _commit(_edit("vendor/lib.js", 2)),
        _commit(_move("vendor/lib.js", "vendor/pkg/lib.js")),
        _commit(_move("vendor/pkg/lib.js", "src/lib.js", added=1)),
    ]
    res = reconcile_history(history, ExclusionPolicy(), lookup)

    assert calls == [(history[2].sha, "src/lib.js")]
    assert _cumulative(res.commits) == [0, 0, 40]
    assert res.state.included["src/lib.js"].bytes == 1200
    assert res.state.unsized == set()
    assert res.state.dormant == {}
    assert len(res.state.anomalies) == 1
    assert "src/lib.js" in res.state.anomalies[0]
    assert check_invariant(res.commits, res.state)


def test_deleting_unseen_excluded_file_clears_it() -> None:
    history = [
        _commit(_edit("dist/app.js", 4)),
        _commit(FileChange.create("dist/app.js", status="D", lines_deleted=10)),
    ]
    res = reconcile_history(history, ExclusionPolicy())
    assert res.state.dormant == {}
    assert res.state.unsized == set()
    assert res.state.anomalies == []
