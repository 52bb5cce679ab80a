"""Parsing of extended M3U playlists into typed entries."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Literal

EntryKind = Literal["movie", "series"]

DECLARATION_PREFIX = "#EXTINF"

# key="value", key='value' or key=value (unquoted values stop at whitespace or a comma)
ATTRIBUTE_RE = re.compile(
    r"""([A-Za-z][\w-]*)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s,"']+))"""
)
# Attribute section up to the first comma that is not inside a double-quoted value.
HEADER_RE = re.compile(r'^(?P<header>(?:[^,"]|"[^"]*")*),(?P<title>.*)$')
EPISODE_RE = re.compile(r"S(\d{1,2})E(\d{1,2})", re.IGNORECASE)

MOVIE_KINDS = frozenset({"movie", "movies", "film", "vod"})
SERIES_KINDS = frozenset({"tv", "series", "show", "tvshow", "tv-show", "episode"})


@dataclass(frozen=True, slots=True)
class PlaylistEntry:
    """One ``#EXTINF`` declaration and the locator that follows it."""

    position: int
    external_id: str = ""
    name: str = ""
    kind: EntryKind | None = None
    raw_kind: str = ""
    logo: str = ""
    group: str = ""
    title: str = ""
    url: str | None = None
    episode: tuple[int, int] | None = None

    @property
    def display_name(self) -> str:
        return self.title or self.name


def classify_kind(value: str | None) -> EntryKind | None:
    """Map a ``tvg-type`` value onto a supported content kind."""

    lowered = (value or "").strip().lower()
    if lowered in MOVIE_KINDS:
        return "movie"
    if lowered in SERIES_KINDS:
        return "series"
    return None


def parse_episode_marker(*candidates: str | None) -> tuple[int, int] | None:
    """Return ``(season, episode)`` from the first text carrying an SxxEyy marker."""

    for text in candidates:
        if not text:
            continue
        match = EPISODE_RE.search(text)
        if match:
            return int(match.group(1)), int(match.group(2))
    return None


def parse_attributes(header: str) -> dict[str, str]:
    """Extract attribute pairs from the declaration header."""

    attributes: dict[str, str] = {}
    for match in ATTRIBUTE_RE.finditer(header):
        key = match.group(1).lower()
        if key in attributes:
            continue
        value = next(
            (group for group in match.groups()[1:] if group is not None), ""
        )
        attributes[key] = value.strip()
    return attributes


def _split_declaration(line: str) -> tuple[str, str]:
    body = line[len(DECLARATION_PREFIX):]
    if body.startswith(":"):
        body = body[1:]
    match = HEADER_RE.match(body)
    if match:
        return match.group("header"), match.group("title").strip()
    header, _, title = body.partition(",")
    return header, title.strip()


def parse_declaration(line: str, position: int) -> PlaylistEntry:
    """Build an entry from a single ``#EXTINF`` line."""

    header, title = _split_declaration(line)
    attributes = parse_attributes(header)
    name = attributes.get("tvg-name", "")
    raw_kind = attributes.get("tvg-type") or attributes.get("type", "")
    return PlaylistEntry(
        position=position,
        external_id=attributes.get("tvg-id", ""),
        name=name,
        kind=classify_kind(raw_kind),
        raw_kind=raw_kind,
        logo=attributes.get("tvg-logo", ""),
        group=attributes.get("group-title", ""),
        title=title or name,
        episode=parse_episode_marker(name, title),
    )


def is_declaration(line: str) -> bool:
    return line[: len(DECLARATION_PREFIX)].upper() == DECLARATION_PREFIX


def parse_playlist(text: str) -> list[PlaylistEntry]:
    """Convert playlist text into entries ordered as they appear."""

    entries: list[PlaylistEntry] = []
    pending: PlaylistEntry | None = None

    for raw_line in (text or "").splitlines():
        line = " ".join(raw_line.split())
        if not line:
            continue
        if is_declaration(line):
            if pending is not None:
                entries.append(pending)
            pending = parse_declaration(line, len(entries))
            continue
        if line.startswith("#"):
            continue
        if pending is not None:
            entries.append(replace(pending, url=line))
            pending = None

    if pending is not None:
        entries.append(pending)
    return entries
