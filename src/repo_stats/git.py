from __future__ import annotations

import codecs
import subprocess
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

NULL_SHA = "0" * 40
LOG_MARKER = "@@@"


def run_git(args: list[str], cwd: Path, timeout_s: int = 300, input_text: str | None = None) -> tuple[int, str, str]:
    proc = subprocess.run(
        ["git", "-c", "core.quotePath=false", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        input=input_text,
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr


def run_git_bytes(args: list[str], cwd: Path, timeout_s: int = 300) -> tuple[int, bytes, str]:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr.decode("utf-8", errors="replace")


def unquote_git_path(path: str) -> str:
    # git C-quotes paths holding tabs, newlines, quotes or backslashes.
    p = path.strip()
    if len(p) >= 2 and p.startswith('"') and p.endswith('"'):
        raw = codecs.escape_decode(p[1:-1].encode("utf-8"))[0]
        return raw.decode("utf-8", errors="replace")
    return p


def get_repo_toplevel(candidate: Path) -> Optional[Path]:
    if not candidate.exists():
        return None
    try:
        code, out, _ = run_git(["rev-parse", "--show-toplevel"], cwd=candidate)
    except (OSError, subprocess.SubprocessError):
        return None
    if code != 0:
        return None
    try:
        return Path(out.strip()).resolve()
    except Exception:
        return None


def get_head_sha(repo: Path) -> str:
    code, out, _ = run_git(["rev-parse", "--verify", "-q", "HEAD"], cwd=repo)
    if code != 0:
        return ""
    return out.strip()


def log_commits(repo: Path, max_count: int | None = None) -> tuple[int, list[dict[str, object]], str]:
    """
    Commit headers reachable from HEAD, oldest first. With `max_count` the most
    recent N commits are kept (git applies `-n` before `--reverse`).
    """
    pretty = f"{LOG_MARKER}%H\t%P\t%an\t%ae\t%aI\t%cI\t%s"
    args = ["log", "--reverse", "--date-order", f"--pretty=format:{pretty}"]
    if max_count and max_count > 0:
        args.append(f"--max-count={int(max_count)}")
    args.append("HEAD")
    code, out, err = run_git(args, cwd=repo)
    commits: list[dict[str, object]] = []
    if code != 0:
        return code, commits, err
    for line in out.splitlines():
        if not line.startswith(LOG_MARKER):
            continue
        parts = line[len(LOG_MARKER) :].split("\t", 6)
        while len(parts) < 7:
            parts.append("")
        sha, parents, name, email, iso, committed, subject = parts
        commits.append(
            {
                "sha": sha.strip(),
                "parents": len(parents.split()),
                "author_name": name,
                "author_email": email,
                "timestamp": iso.strip(),
                "committed_at": committed.strip(),
                "message": subject,
            }
        )
    return code, commits, err


def diff_tree(repo: Path, sha: str) -> tuple[int, str, str]:
    # --root makes the initial commit a pure addition of every file.
    return run_git(
        ["diff-tree", "-r", "--root", "-M", "--no-commit-id", "--no-abbrev", "--raw", "--numstat", sha],
        cwd=repo,
    )


def parse_diff_tree(out: str) -> tuple[list[dict[str, str]], list[tuple[str, str, str]]]:
    """
    Split combined `--raw --numstat` output into raw entries (modes, blob ids,
    status, paths) and numstat triples (added, deleted, path token). Both lists
    follow git's diff queue order.
    """
    raw: list[dict[str, str]] = []
    numstat: list[tuple[str, str, str]] = []
    for line in out.splitlines():
        if not line.strip():
            continue
        if line.startswith(":"):
            meta, _, paths = line.partition("\t")
            fields = meta[1:].split()
            if len(fields) < 5:
                raise ValueError(f"unexpected raw diff line: {line!r}")
            path_parts = paths.split("\t")
            src = unquote_git_path(path_parts[0])
            dst = unquote_git_path(path_parts[1]) if len(path_parts) > 1 else src
            raw.append(
                {
                    "old_mode": fields[0],
                    "new_mode": fields[1],
                    "old_blob": fields[2],
                    "new_blob": fields[3],
                    "status": fields[4][:1],
                    "old_path": src,
                    "new_path": dst,
                }
            )
            continue
        parts = line.split("\t", 2)
        if len(parts) < 3:
            raise ValueError(f"unexpected numstat line: {line!r}")
        numstat.append((parts[0], parts[1], unquote_git_path(parts[2])))
    return raw, numstat


def blob_sizes(repo: Path, blob_ids: list[str]) -> dict[str, int]:
    """Exact object sizes via one `cat-file --batch-check`; missing objects are left out."""
    wanted = sorted({b for b in blob_ids if b and b != NULL_SHA})
    if not wanted:
        return {}
    code, out, _ = run_git(["cat-file", "--batch-check"], cwd=repo, input_text="\n".join(wanted) + "\n")
    if code != 0:
        return {}
    sizes: dict[str, int] = {}
    for line in out.splitlines():
        parts = line.split()
        if len(parts) == 3 and parts[1] == "blob":
            try:
                sizes[parts[0]] = int(parts[2])
            except ValueError:
                continue
    return sizes


def blob_size_at(repo: Path, sha: str, path: str) -> Optional[int]:
    code, out, _ = run_git(["cat-file", "-s", f"{sha}:{path}"], cwd=repo)
    if code != 0:
        return None
    try:
        return int(out.strip())
    except ValueError:
        return None


def blob_line_count_at(repo: Path, sha: str, path: str) -> Optional[int]:
    # Counts lines the way numstat does: a trailing partial line still counts.
    code, data, _ = run_git_bytes(["cat-file", "blob", f"{sha}:{path}"], cwd=repo)
    if code != 0:
        return None
    if b"\0" in data[:8000]:
        return 0
    if not data:
        return 0
    return data.count(b"\n") + (0 if data.endswith(b"\n") else 1)


def get_remote_urls(repo: Path) -> dict[str, str]:
    code, out, _ = run_git(["config", "--get-regexp", r"^remote\..*\.url$"], cwd=repo)
    if code != 0:
        return {}
    remotes: dict[str, str] = {}
    for line in out.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            key, url = line.split(None, 1)
        except ValueError:
            continue
        if not key.startswith("remote.") or not key.endswith(".url"):
            continue
        name = key[len("remote.") : -len(".url")]
        url = url.strip()
        if name and url:
            remotes[name] = url
    return remotes


def canonicalize_remote(remote: str) -> str:
    r = (remote or "").strip()
    if not r:
        return ""

    if "://" not in r and ":" in r and "@" in r.split(":", 1)[0]:
        left, path = r.split(":", 1)
        host = left.split("@", 1)[1]
        canon = f"{host}/{path}"
    else:
        parsed = urlparse(r)
        if parsed.scheme and parsed.netloc:
            host = parsed.netloc
            if "@" in host:
                host = host.split("@", 1)[1]
            canon = f"{host}/{parsed.path.lstrip('/')}"
        else:
            canon = r

    canon = canon.rstrip("/")
    if canon.endswith(".git"):
        canon = canon[:-4]
    return canon.lower()


def select_remote(remotes: dict[str, str], priority: list[str]) -> tuple[str, str]:
    if not remotes:
        return "", ""
    prio_index = {name: i for i, name in enumerate(priority)}
    name = sorted(remotes, key=lambda n: (prio_index.get(n, 10_000), n.lower()))[0]
    return name, remotes[name]


WEB_HOSTS = ("github.com", "gitlab.com", "bitbucket.org")


def web_url_for_remote(remote: str) -> str:
    canon = canonicalize_remote(remote)
    if not canon:
        return ""
    host = canon.split("/", 1)[0]
    if ":" in host:
        host = host.split(":", 1)[0]
    if host not in WEB_HOSTS:
        return ""
    path = canon.split("/", 1)[1] if "/" in canon else ""
    if not path:
        return ""
    return f"https://{host}/{path}"


def commit_url(web_url: str, sha: str) -> str:
    if not web_url or not sha:
        return ""
    if "bitbucket.org" in web_url:
        return f"{web_url}/commits/{sha}"
    if "gitlab.com" in web_url:
        return f"{web_url}/-/commit/{sha}"
    return f"{web_url}/commit/{sha}"


def author_url(web_url: str, author_email: str) -> str:
    if not web_url or not author_email:
        return ""
    if "github.com" in web_url:
        return f"{web_url}/commits?author={author_email}"
    return ""
