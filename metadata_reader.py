"""
Read season/episode metadata from a Bilibili download directory.

Layout:
    <season>/
      <episode id>/
        entry.json
        en/<subtitle>
        <type_tag>/video.m4s
        <type_tag>/audio.m4s

entry.json (bangumi):   {"title": ..., "type_tag": ..., "ep": {"index": "1", "index_title": ...}}
entry.json (UGC video): {"title": ..., "type_tag": ..., "page_data": {"page": 1, "part": ...}}
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from error_handling import PipelineIOError

logger = logging.getLogger(__name__)

ENTRY_FILE = "entry.json"


@dataclass(frozen=True)
class EpisodeMetadata:
    title: str
    index: str  # not fixed-width; see format_index
    path: Path


@dataclass(frozen=True)
class SeasonMetadata:
    title: str
    type_tag: str  # subdirectory of each episode holding video.m4s/audio.m4s
    episodes: list[EpisodeMetadata] = field(default_factory=list)


def format_index(index: str) -> str:
    """Zero-pad an episode index to width 2: '3' -> '03', '12' -> '12'.

    Indices of 100 and above keep their width and therefore sort as strings
    ('100' < '11'); long seasons are not ordered correctly.
    """
    return f"{index:0>2}"


def _read_entry(entry_path: Path) -> dict[str, Any]:
    with open(entry_path, encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError("entry.json root must be an object")
    return loaded


def _episode_fields(entry: dict[str, Any]) -> tuple[str, str]:
    """Return (index, title) from an entry.json mapping."""
    ep = entry.get("ep")
    if isinstance(ep, dict) and ep.get("index") not in (None, ""):
        index = str(ep["index"]).strip()
        title = str(ep.get("index_title") or "").strip()
    else:
        page_data = entry.get("page_data")
        if not isinstance(page_data, dict) or page_data.get("page") in (None, ""):
            raise ValueError("entry.json has neither 'ep.index' nor 'page_data.page'")
        index = str(page_data["page"]).strip()
        title = str(page_data.get("part") or "").strip()
    return index, title or f"Episode {index}"


def get_season_metadata(season_path: Path) -> SeasonMetadata:
    """Parse a season directory into SeasonMetadata.

    Episodes are returned in filesystem discovery order (unsorted).
    Any IO or parse failure raises PipelineIOError naming the season path;
    no partial result is returned.
    """
    season_path = Path(season_path)
    title: str | None = None
    type_tag: str | None = None
    episodes: list[EpisodeMetadata] = []

    try:
        with os.scandir(season_path) as it:
            entries = [Path(e.path) for e in it if e.is_dir()]
    except OSError as e:
        raise PipelineIOError(f"Error reading season directory at {season_path}: {e}") from e

    for episode_path in entries:
        entry_path = episode_path / ENTRY_FILE
        try:
            entry = _read_entry(entry_path)
            index, ep_title = _episode_fields(entry)
        except (OSError, ValueError) as e:
            raise PipelineIOError(
                f"Error reading season metadata at {season_path} ({entry_path}): {e}"
            ) from e

        entry_type_tag = str(entry.get("type_tag") or "").strip()
        if title is None:
            title = str(entry.get("title") or season_path.name).strip()
            type_tag = entry_type_tag
        elif entry_type_tag != type_tag:
            logger.warning(
                "type_tag mismatch in %s: %r (season uses %r)", episode_path, entry_type_tag, type_tag
            )

        episodes.append(EpisodeMetadata(title=ep_title, index=index, path=episode_path))

    if title is None:
        raise PipelineIOError(f"Error reading season metadata at {season_path}: no episodes found")
    if not type_tag:
        raise PipelineIOError(f"Error reading season metadata at {season_path}: missing type_tag")

    logger.debug("Read season %r (%d episode(s)) from %s", title, len(episodes), season_path)
    return SeasonMetadata(title=title, type_tag=type_tag, episodes=episodes)
