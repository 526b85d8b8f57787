from __future__ import annotations

import datetime as dt

BUCKETS = ("day", "week", "month", "year")


def parse_commit_time(commit_iso: str) -> dt.datetime | None:
    s = (commit_iso or "").strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        d = dt.datetime.fromisoformat(s)
    except ValueError:
        return None
    if d.tzinfo is None:
        d = d.replace(tzinfo=dt.timezone.utc)
    return d.astimezone(dt.timezone.utc)


def utc_date(commit_iso: str) -> dt.date | None:
    d = parse_commit_time(commit_iso)
    return d.date() if d is not None else None


def week_start_iso(commit_iso: str) -> str:
    date_utc = utc_date(commit_iso)
    if date_utc is None:
        return ""
    week_start = date_utc - dt.timedelta(days=date_utc.weekday())
    return week_start.isoformat()


def bucket_key(commit_iso: str, bucket: str) -> str:
    """
    Calendar bucket for a commit, always computed on the UTC author time:
      day   -> 2025-01-06
      week  -> 2025-01-06 (Monday of the ISO week)
      month -> 2025-01
      year  -> 2025
    Returns "" for an unparsable timestamp.
    """
    if bucket not in BUCKETS:
        raise ValueError(f"Invalid bucket: {bucket!r} (expected one of {', '.join(BUCKETS)})")
    date_utc = utc_date(commit_iso)
    if date_utc is None:
        return ""
    if bucket == "day":
        return date_utc.isoformat()
    if bucket == "week":
        return week_start_iso(commit_iso)
    if bucket == "month":
        return f"{date_utc.year:04d}-{date_utc.month:02d}"
    return f"{date_utc.year:04d}"


def days_between(earlier_iso: str, later_iso: str) -> float:
    a = parse_commit_time(earlier_iso)
    b = parse_commit_time(later_iso)
    if a is None or b is None:
        return 0.0
    return max(0.0, (b - a).total_seconds() / 86400.0)
