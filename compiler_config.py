"""
config.yaml loading for season-compiler.

Every key is optional:

    log_dir: ~/.local/share/season-compiler
    ffmpeg:
      binary: ffmpeg
      video_codec: libx264   # only used for hard subtitles
      crf: 20
      preset: fast
      subtitle_language: eng
    layout:
      subtitle_dir: en
      video_file: video.m4s
      audio_file: audio.m4s
      episode_file: episode.mkv
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "season-compiler"


def _expand_path(p: str) -> str:
    """Expand ~ and $VARS and return a normalized path string (doesn't require existence)."""
    p = (p or "").strip()
    if not p:
        return p
    p = os.path.expandvars(p)
    return str(Path(p).expanduser())


def _coerce_int(v: Any, default: int) -> int:
    if isinstance(v, bool):
        return default
    if isinstance(v, int):
        return v
    if isinstance(v, str) and v.strip().lstrip("-").isdigit():
        return int(v.strip())
    return default


def _node(raw: dict[str, Any], key: str) -> dict[str, Any]:
    node = raw.get(key) or {}
    if not isinstance(node, dict):
        raise ValueError(f"config.yaml '{key}' must be a mapping")
    return cast(dict[str, Any], node)


@dataclass(frozen=True)
class FfmpegCfg:
    binary: str = "ffmpeg"
    video_codec: str = "libx264"
    crf: int = 20
    preset: str = "fast"
    subtitle_language: str = "eng"


@dataclass(frozen=True)
class LayoutCfg:
    subtitle_dir: str = "en"
    video_file: str = "video.m4s"
    audio_file: str = "audio.m4s"
    episode_file: str = "episode.mkv"


@dataclass(frozen=True)
class AppCfg:
    log_dir: Path = DEFAULT_LOG_DIR
    ffmpeg: FfmpegCfg = field(default_factory=FfmpegCfg)
    layout: LayoutCfg = field(default_factory=LayoutCfg)


def load_config(path: Path, required: bool = False) -> AppCfg:
    """Load config.yaml into an AppCfg.

    A missing file yields the defaults unless `required` is set (the user
    passed --config explicitly), in which case FileNotFoundError is raised.
    """
    raw: dict[str, Any] = {}
    if path.exists():
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if loaded is None:
            raw = {}
        elif not isinstance(loaded, dict):
            raise ValueError("config.yaml root must be a mapping")
        else:
            raw = cast(dict[str, Any], loaded)
    elif required:
        raise FileNotFoundError(f"Config not found: {path}")

    ff_defaults = FfmpegCfg()
    ff_node = _node(raw, "ffmpeg")
    ffmpeg = FfmpegCfg(
        binary=_expand_path(str(ff_node.get("binary", ff_defaults.binary))) or ff_defaults.binary,
        video_codec=str(ff_node.get("video_codec", ff_defaults.video_codec)).strip(),
        crf=_coerce_int(ff_node.get("crf"), ff_defaults.crf),
        preset=str(ff_node.get("preset", ff_defaults.preset)).strip(),
        subtitle_language=str(
            ff_node.get("subtitle_language", ff_defaults.subtitle_language)
        ).strip(),
    )

    layout_defaults = LayoutCfg()
    layout_node = _node(raw, "layout")
    layout = LayoutCfg(
        subtitle_dir=str(layout_node.get("subtitle_dir", layout_defaults.subtitle_dir)).strip(),
        video_file=str(layout_node.get("video_file", layout_defaults.video_file)).strip(),
        audio_file=str(layout_node.get("audio_file", layout_defaults.audio_file)).strip(),
        episode_file=str(layout_node.get("episode_file", layout_defaults.episode_file)).strip(),
    )

    log_dir_raw = raw.get("log_dir")
    log_dir = Path(_expand_path(str(log_dir_raw))) if log_dir_raw else DEFAULT_LOG_DIR

    return AppCfg(log_dir=log_dir, ffmpeg=ffmpeg, layout=layout)
