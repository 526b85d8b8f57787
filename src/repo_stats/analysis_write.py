from __future__ import annotations

import dataclasses
import json
from pathlib import Path

from .git import author_url, commit_url
from .models import AnalysisResult


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def write_json(path: Path, data: object) -> None:
    path.write_text(json.dumps(data, indent=2, sort_keys=False), encoding="utf-8")


def result_to_dict(result: AnalysisResult) -> dict[str, object]:
    """
    Plain JSON-ready view of a run. Depends only on the repository contents and
    the config, so two runs over the same history serialize identically.
    """
    commits = []
    for c in result.commits:
        row = dataclasses.asdict(c)
        row["files"] = [dataclasses.asdict(f) for f in c.files]
        row["url"] = commit_url(result.web_url, c.sha)
        commits.append(row)

    return {
        "repo_path": result.repo_path,
        "remote_url": result.remote_url,
        "web_url": result.web_url,
        "totals": {
            "commits": len(result.commits),
            "contributors": len(result.contributors),
            "lines": result.total_lines,
            "bytes": result.total_bytes,
        },
        "commits": commits,
        "contributors": [
            {**dataclasses.asdict(s), "url": author_url(result.web_url, s.email)} for s in result.contributors
        ],
        "file_types": [dataclasses.asdict(s) for s in result.file_types],
        "time_series": [dataclasses.asdict(p) for p in result.time_series],
        "linear_series": [dataclasses.asdict(p) for p in result.linear_series],
        "file_heat": [dataclasses.asdict(h) for h in result.file_heat],
        "largest_files": [dataclasses.asdict(t) for t in result.largest_files],
        "most_churned_files": [dataclasses.asdict(t) for t in result.most_churned_files],
        "awards": dataclasses.asdict(result.awards),
        "word_cloud": [dataclasses.asdict(w) for w in result.word_cloud],
        "errors": list(result.errors),
        "anomalies": list(result.anomalies),
    }


def write_result(path: Path, result: AnalysisResult) -> None:
    ensure_dir(path.parent)
    write_json(path, result_to_dict(result))
