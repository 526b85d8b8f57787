from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path

from .analysis_periods import BUCKETS
from .analysis_progress import print_progress
from .analysis_run import run_pipeline
from .analysis_write import write_result
from .config import AnalysisConfig, config_from_dict, load_config
from .errors import RepoStatsError
from .models import AnalysisResult


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-stats",
        description="Replay a git repository's history into cumulative size, contributor and file statistics.",
    )
    parser.add_argument("--repo", type=Path, default=Path("."), help="Path inside the git repository to analyze.")
    parser.add_argument("--config", type=Path, default=Path("config.json"), help="Path to config.json (optional).")
    parser.add_argument("--out", type=Path, default=Path("repo-stats.json"), help="Where to write the JSON result.")
    parser.add_argument("--max-commits", type=int, default=None, help="Only replay the most recent N commits.")
    parser.add_argument("--bucket", choices=list(BUCKETS), default=None, help="Time series bucket size.")
    parser.add_argument("--jobs", type=int, default=None, help="Parallel git jobs.")
    parser.add_argument(
        "--exclude",
        action="append",
        default=None,
        metavar="GLOB",
        help="Exclusion glob (repeatable). Replaces the built-in exclusion list.",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging.")
    return parser


def _config_from_args(args: argparse.Namespace) -> AnalysisConfig:
    config = config_from_dict(load_config(args.config))
    overrides: dict[str, object] = {}
    if args.max_commits is not None:
        if args.max_commits < 1:
            raise SystemExit("--max-commits must be >= 1")
        overrides["max_commits"] = int(args.max_commits)
    if args.bucket:
        overrides["bucket"] = str(args.bucket)
    if args.jobs is not None:
        if args.jobs < 1:
            raise SystemExit("--jobs must be >= 1")
        overrides["jobs"] = int(args.jobs)
    if args.exclude:
        overrides["exclusion_patterns"] = tuple(args.exclude)
    return dataclasses.replace(config, **overrides) if overrides else config


def _print_summary(result: AnalysisResult, out: Path) -> None:
    lines = [
        "",
        f"Repository: {result.repo_path}",
        f"Commits: {len(result.commits)}  Contributors: {len(result.contributors)}",
        f"Current size: {result.total_lines} lines, {result.total_bytes} bytes",
    ]
    if result.file_types:
        top = ", ".join(f"{s.language} {s.percentage:.1f}%" for s in result.file_types[:5])
        lines.append(f"File types: {top}")
    if result.largest_files:
        lines.append("Largest files: " + ", ".join(f"{t.path} ({t.value})" for t in result.largest_files[:3]))
    if result.errors:
        lines.append(f"Commits with unavailable stats: {len(result.errors)}")
    if result.anomalies:
        lines.append(f"Reconciliation anomalies: {len(result.anomalies)}")
    lines.append(f"Wrote: {out}")
    print("\n".join(lines))


def main(argv: list[str]) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        config = _config_from_args(args)
        result = run_pipeline(args.repo, config, progress=print_progress)
    except RepoStatsError as e:
        print(f"Error: {e}")
        return 2
    write_result(args.out, result)
    _print_summary(result, args.out)
    return 0
