"""
Collect compiled episode files of a season into an output directory.

Each episode file is named after its season and episode:
    <Season Title> - E<NN> - <Episode Title>.mkv
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from error_handling import PipelineIOError
from metadata_reader import EpisodeMetadata, SeasonMetadata, format_index, get_season_metadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageConfig:
    copy: bool  # False: delete the source once the destination is verified
    episode_video_path: Path  # relative to each episode directory


def sanitize_filename(name: str) -> str:
    """Remove/replace characters invalid in filenames."""
    name = re.sub(r'[<>:"/\\|?*]', "", name)
    name = re.sub(r"\s+", " ", name).strip()
    return name


def packaged_name(season: SeasonMetadata, episode: EpisodeMetadata, suffix: str) -> str:
    """'Season A', index '1', 'Pilot', '.mkv' -> 'Season A - E01 - Pilot.mkv'"""
    name = f"{season.title} - E{format_index(episode.index)} - {episode.title}"
    return sanitize_filename(name) + suffix


def transfer_file(src: Path, dst: Path, copy: bool) -> None:
    """Copy `src` to `dst` via a temporary file; unlink `src` afterwards when not copying.

    The source is only removed once `dst` exists with the same size.
    """
    tmp = dst.with_name(f".{dst.name}.part")
    try:
        shutil.copy2(src, tmp)
        os.replace(tmp, dst)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    if copy:
        return
    if dst.stat().st_size != src.stat().st_size:
        raise OSError(f"size mismatch after copying {src} -> {dst}; source kept")
    src.unlink()


def package_season(season_path: Path, output_directory: Path, config: PackageConfig) -> None:
    """Transfer every episode's compiled file from `season_path` into `output_directory`.

    Stops at the first failure; episodes transferred before it stay in place.
    """
    season = get_season_metadata(season_path)
    output_directory = Path(output_directory)

    try:
        output_directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PipelineIOError(f"Failed to create output directory {output_directory}: {e}") from e

    for episode in sorted(season.episodes, key=lambda e: format_index(e.index)):
        src = episode.path / config.episode_video_path
        dst = output_directory / packaged_name(season, episode, src.suffix)

        if not src.is_file():
            raise PipelineIOError(
                f"Missing compiled episode for '{episode.title}' in {season_path}: {src}"
            )
        try:
            transfer_file(src, dst, config.copy)
        except OSError as e:
            raise PipelineIOError(
                f"Failed to package episode '{episode.title}' ({src} -> {dst}): {e}"
            ) from e

        logger.info("%s %s -> %s", "Copied" if config.copy else "Moved", src, dst)
