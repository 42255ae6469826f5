"""
ffmpeg wrapper: mux raw video/audio streams and a subtitle into one container.

Soft subtitles are attached as a selectable track (stream copy, no re-encode).
Hard subtitles are burned into the picture, which forces a video re-encode.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from pathlib import Path

from compiler_config import FfmpegCfg
from error_handling import MergeError

logger = logging.getLogger(__name__)

# Subtitle codec to use for a soft track, by subtitle file extension
SUBTITLE_CODECS = {
    ".ass": "ass",
    ".ssa": "ass",
    ".srt": "srt",
    ".vtt": "webvtt",
}

STDERR_TAIL = 400


def partial_path(output_path: Path) -> Path:
    """episode.mkv -> episode.part.mkv (keeps the extension ffmpeg muxes by)."""
    return output_path.with_name(f"{output_path.stem}.part{output_path.suffix}")


def escape_filter_path(path: Path) -> str:
    """Escape a path for use inside a single-quoted ffmpeg filter argument.

    Quotes cannot be escaped inside quotes: an apostrophe closes the quote,
    adds a quote escaped for both the filtergraph and option parsers, and
    reopens it.
    """
    s = str(path.resolve()).replace("\\", "/")
    return s.replace(":", "\\:").replace("'", r"'\\\''")


def build_merge_command(
    video_path: Path,
    audio_path: Path,
    subtitle_path: Path,
    output_path: Path,
    hard_subtitle: bool,
    ffmpeg: FfmpegCfg,
) -> list[str]:
    cmd = [ffmpeg.binary, "-hide_banner", "-y", "-i", str(video_path), "-i", str(audio_path)]

    if hard_subtitle:
        cmd += [
            "-map",
            "0:v",
            "-map",
            "1:a",
            "-vf",
            f"subtitles=filename='{escape_filter_path(subtitle_path)}'",
            "-c:v",
            ffmpeg.video_codec,
            "-crf",
            str(ffmpeg.crf),
            "-preset",
            ffmpeg.preset,
            "-c:a",
            "copy",
        ]
    else:
        sub_codec = SUBTITLE_CODECS.get(subtitle_path.suffix.lower(), "srt")
        cmd += [
            "-i",
            str(subtitle_path),
            "-map",
            "0:v",
            "-map",
            "1:a",
            "-map",
            "2:0",
            "-c:v",
            "copy",
            "-c:a",
            "copy",
            "-c:s",
            sub_codec,
            "-metadata:s:s:0",
            f"language={ffmpeg.subtitle_language}",
            "-disposition:s:0",
            "default",
        ]

    cmd.append(str(output_path))
    return cmd


def merge(
    video_path: Path,
    audio_path: Path,
    subtitle_path: Path,
    output_path: Path,
    hard_subtitle: bool,
    ffmpeg: FfmpegCfg | None = None,
) -> None:
    """Mux video + audio + subtitle into `output_path` (overwritten if present).

    ffmpeg writes to a `.part` file that is renamed into place only after a
    zero exit status, so a failed run never leaves a truncated `output_path`.
    Raises MergeError on missing inputs, spawn failure or non-zero exit.
    """
    ffmpeg = ffmpeg or FfmpegCfg()
    video_path, audio_path = Path(video_path), Path(audio_path)
    subtitle_path, output_path = Path(subtitle_path), Path(output_path)

    for label, p in (("video", video_path), ("audio", audio_path), ("subtitle", subtitle_path)):
        if not p.is_file():
            raise MergeError(f"Missing {label} input for {output_path}: {p}")

    tmp_path = partial_path(output_path)
    cmd = build_merge_command(
        video_path, audio_path, subtitle_path, tmp_path, hard_subtitle, ffmpeg
    )
    logger.info("Running: %s", " ".join(shlex.quote(x) for x in cmd))

    try:
        try:
            r = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise MergeError(f"Could not start {ffmpeg.binary} for {output_path}: {e}") from e

        if r.returncode != 0:
            tail = (r.stderr or "").strip()[-STDERR_TAIL:]
            raise MergeError(
                f"{ffmpeg.binary} exited with code {r.returncode} while creating {output_path}"
                + (f":\n{tail}" if tail else "")
            )
        if not tmp_path.is_file():
            raise MergeError(f"{ffmpeg.binary} reported success but wrote no file for {output_path}")

        os.replace(tmp_path, output_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    logger.info("Created %s", output_path)
