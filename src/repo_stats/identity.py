from __future__ import annotations


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def normalize_name(name: str) -> str:
    return (name or "").strip().casefold()


def author_key(author_name: str, author_email: str, aliases: dict[str, str] | None = None) -> tuple[str, str]:
    """
    Grouping key and display name for one commit author.

    `aliases` maps a lowercased email or name to a display name; every identity
    mapped to the same display name is merged into one contributor.
    """
    email = normalize_email(author_email)
    name = normalize_name(author_name)
    if aliases:
        display = aliases.get(email) if email else None
        if display is None and name:
            display = aliases.get(name)
        if display is not None:
            return f"alias:{normalize_name(display)}", display
    if email:
        return email, author_name
    return f"name:{name}", author_name
