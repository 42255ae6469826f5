#!/usr/bin/env python3
"""
Compile Bilibili season downloads into playable, packaged episode files.

Flow (per season directory under --path, strictly in order):
- Read season/episode metadata (entry.json of each episode).
- Sort episodes by zero-padded index.
- For each episode:
  - Locate the subtitle in en/.
  - JSON subtitle -> ASS (and optionally ASS -> SRT with --srt).
  - Merge <type_tag>/video.m4s + audio.m4s + subtitle -> episode.mkv.
- Package the season's episode.mkv files into --output (copy, or move with -d).

The first failure stops the run; anything written before it stays on disk.

Usage:
    season-compiler --list --path ~/Downloads/bilibili
    season-compiler --path ~/Downloads/bilibili --output ~/Videos --srt
"""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from rich.markup import escape

from ass_to_srt import convert_ass_to_srt
from compiler_config import AppCfg, FfmpegCfg, LayoutCfg, load_config
from error_handling import MissingSubtitleError, PipelineError, PipelineIOError, with_context
from ffmpeg_controller import merge
from json_to_ass import convert_json_to_ass
from metadata_reader import EpisodeMetadata, SeasonMetadata, format_index, get_season_metadata
from packager import PackageConfig, package_season
from text_code import as_error, as_primary_header, as_secondary_header, console, done, loading

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path("config.yaml")

# Which file in en/ is the subtitle source when earlier runs left derived files behind
SUBTITLE_PRIORITY = {".json": 0, ".ass": 1, ".ssa": 1, ".srt": 2}


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(log_dir: Path, verbose: bool = False) -> Path | None:
    """Set up file logging for the run.

    Returns the log file path if successful, None otherwise.
    """
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"season_compiler_{timestamp}.log"

        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            handlers=[
                logging.FileHandler(log_file, encoding="utf-8"),
            ],
        )
        return log_file
    except OSError:
        return None


# ---------------------------------------------------------------------------
# Discovery & ordering
# ---------------------------------------------------------------------------


def sort_episodes(episodes: Iterable[EpisodeMetadata]) -> list[EpisodeMetadata]:
    return sorted(episodes, key=lambda e: format_index(e.index))


def find_season_dirs(root: Path) -> list[Path]:
    """Return the season directories directly under `root`, sorted by name.

    Plain files are skipped: packaged episodes land in the same root by default.
    """
    try:
        with os.scandir(root) as it:
            return sorted(Path(e.path) for e in it if e.is_dir())
    except OSError as e:
        raise PipelineIOError(f"Error reading download directory {root}: {e}") from e


def read_season(season_path: Path) -> SeasonMetadata:
    with with_context(f"Error reading season metadata at {season_path}"):
        season = get_season_metadata(season_path)
    return SeasonMetadata(
        title=season.title, type_tag=season.type_tag, episodes=sort_episodes(season.episodes)
    )


def list_seasons(root: Path) -> None:
    for season_path in find_season_dirs(root):
        season = read_season(season_path)

        console.print(
            f"{as_primary_header('Season Title')}: {escape(season.title)}\n"
            f"{as_primary_header('Episodes')}:\n"
        )
        for e in season.episodes:
            console.print(
                f"{as_secondary_header('Episode Title')}: {escape(e.title)}\n"
                f"{as_secondary_header('Episode Index')}: {e.index}\n"
                f"{as_secondary_header('Episode Path')}: {escape(str(e.path))}\n"
            )


# ---------------------------------------------------------------------------
# Episode compilation
# ---------------------------------------------------------------------------


def locate_subtitle(episode: EpisodeMetadata, subtitle_dir: str = "en") -> Path:
    """Return the subtitle file of an episode.

    A missing/unreadable subtitle directory or an empty one means the
    download is incomplete: MissingSubtitleError, fatal for the whole run.
    """
    sub_dir = episode.path / subtitle_dir
    try:
        with os.scandir(sub_dir) as it:
            files = [Path(e.path) for e in it if e.is_file()]
    except OSError as e:
        raise MissingSubtitleError(f"Subtitle folder not found: {sub_dir}") from e

    if not files:
        raise MissingSubtitleError(f"Subtitle is missing in {sub_dir}")
    if len(files) > 1:
        logger.debug("Several files in %s: %s", sub_dir, [f.name for f in files])

    return min(files, key=lambda f: (SUBTITLE_PRIORITY.get(f.suffix.lower(), 3), f.name))


def compile_episode(
    episode: EpisodeMetadata,
    season: SeasonMetadata,
    hard_subtitle: bool,
    use_srt_subtitle: bool,
    layout: LayoutCfg | None = None,
    ffmpeg: FfmpegCfg | None = None,
) -> Path:
    """Build `episode.mkv` for one episode; returns its path."""
    layout = layout or LayoutCfg()

    with loading(f'Locating subtitle for: "{episode.title}"'):
        subtitle = locate_subtitle(episode, layout.subtitle_dir)
    done("Finished locating subtitle.")
    logger.info("Subtitle for %s: %s", episode.path, subtitle)

    if subtitle.suffix.lower() == ".json":
        ass_path = subtitle.with_suffix(".ass")
        with loading("Translating JSON subtitle to ASS"):
            with with_context(f"Error occurred while parsing JSON subtitle at {episode.path}"):
                convert_json_to_ass(subtitle, ass_path)
        subtitle = ass_path
        done("Finished translating JSON subtitle to ASS.")

    if use_srt_subtitle:
        if subtitle.suffix.lower() in (".ass", ".ssa"):
            srt_path = subtitle.with_suffix(".srt")
            with loading("Converting ASS to SRT"):
                with with_context(f"Error occurred while parsing ASS subtitle at {episode.path}"):
                    convert_ass_to_srt(subtitle, srt_path)
            subtitle = srt_path
            done("Finished converting ASS to SRT.")
        elif subtitle.suffix.lower() != ".srt":
            logger.warning("Cannot convert %s to SRT; using it as-is", subtitle)

    files_path = episode.path / season.type_tag
    output_path = episode.path / layout.episode_file

    with loading(f'Creating video for: "{episode.title}"'):
        with with_context(f"Error occurred while merging files at {episode.path}"):
            merge(
                files_path / layout.video_file,
                files_path / layout.audio_file,
                subtitle,
                output_path,
                hard_subtitle,
                ffmpeg,
            )
    done(f'Created video for: "{episode.title}"')
    return output_path


def compile_seasons(
    download_path: Path,
    output_directory: Path,
    dont_copy: bool,
    hard_subtitle: bool,
    use_srt_subtitle: bool,
    cfg: AppCfg | None = None,
) -> None:
    """Compile and package every season under `download_path`.

    Ordered loop with early exit: the first error aborts the current season
    (which is then not packaged) and every season after it.
    """
    cfg = cfg or AppCfg()

    for season_path in find_season_dirs(download_path):
        season = read_season(season_path)
        console.rule(as_primary_header(season.title))
        logger.info(
            "Compiling season %r (%d episodes) at %s", season.title, len(season.episodes), season_path
        )

        for episode in season.episodes:
            compile_episode(
                episode, season, hard_subtitle, use_srt_subtitle, cfg.layout, cfg.ffmpeg
            )

        with loading(f'Packaging season: "{season.title}"'):
            with with_context(f"An error occurred while packaging season at {season_path}"):
                package_season(
                    season_path,
                    output_directory,
                    PackageConfig(
                        copy=not dont_copy,
                        episode_video_path=Path(cfg.layout.episode_file),
                    ),
                )
        done(f'Packaged season: "{season.title}"')


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description="Compile Bilibili season downloads into packaged episode files"
    )
    ap.add_argument(
        "-l", "--list", action="store_true", help="list all the seasons in the download folder"
    )
    ap.add_argument(
        "-d", "--dont-copy", action="store_true", help="move the episode.mkv instead of copying"
    )
    ap.add_argument("-p", "--path", type=Path, default=Path("."), help="path to the download folder")
    ap.add_argument(
        "-H", "--hard-sub", action="store_true", help="burn subtitle to the video as a hard subtitle"
    )
    ap.add_argument("-s", "--srt", action="store_true", help="use srt subtitles")
    ap.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("."),
        help="directory to store the encoded videos",
    )
    ap.add_argument(
        "-c", "--config", type=Path, help="Path to config.yaml (default: ./config.yaml if present)"
    )
    ap.add_argument("-v", "--verbose", action="store_true", help="debug-level log file")
    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        cfg = load_config(args.config or DEFAULT_CONFIG, required=args.config is not None)
    except (OSError, ValueError) as e:
        console.print(as_error(f"Error loading config: {e}"))
        return 1

    log_file = setup_logging(cfg.log_dir, args.verbose)
    if log_file:
        console.print(f"[dim]log: {log_file}[/]")

    try:
        if args.list:
            list_seasons(args.path)
        else:
            compile_seasons(
                args.path, args.output, args.dont_copy, args.hard_sub, args.srt, cfg
            )
    except MissingSubtitleError as e:
        logger.error("Fatal: %s", e)
        console.print(as_error(f"Fatal: {e}"))
        return 1
    except (PipelineError, OSError) as e:
        logger.error("%s", e)
        console.print(as_error(f"Error: {e}"))
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
