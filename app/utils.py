"""Utility helpers for the M3U library service."""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable


GENRE_SEPARATORS_RE = re.compile(r"[/|,]")


def slugify(value: str) -> str:
    """Return a URL-friendly slug."""

    value = unicodedata.normalize("NFKD", value or "")
    value = value.encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-zA-Z0-9]+", "-", value)
    value = value.strip("-")
    value = re.sub(r"-+", "-", value)
    return value.lower()


def unique_labels(labels: Iterable[str]) -> list[str]:
    """Drop blank and case-insensitive duplicate labels, keeping first casing."""

    seen: set[str] = set()
    result: list[str] = []
    for label in labels:
        cleaned = (label or "").strip()
        if not cleaned:
            continue
        folded = cleaned.casefold()
        if folded in seen:
            continue
        seen.add(folded)
        result.append(cleaned)
    return result


def split_genres(group: str | None) -> list[str]:
    """Split a playlist ``group-title`` into genre labels."""

    if not group:
        return []
    return unique_labels(GENRE_SEPARATORS_RE.split(group))


def genre_slug(label: str) -> str:
    """Return the slug used to match genre filters against labels.

    Labels made only of symbols (``"★"``) would slugify to an empty string,
    so those fall back to their casefolded text.
    """

    slug = slugify(label)
    if slug:
        return slug
    return (label or "").strip().casefold()


def format_episode_label(season: int, episode: int) -> str:
    return f"S{season:02d}E{episode:02d}"
