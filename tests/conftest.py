"""
Pytest configuration and fixtures for season-compiler tests.
"""

import json
import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import ffmpeg_controller  # noqa: E402


def bcc_subtitle(events: list[tuple[float, float, Any]]) -> str:
    """Build a Bilibili JSON subtitle document from (from, to, content) tuples."""
    return json.dumps(
        {
            "font_size": 0.4,
            "font_color": "#FFFFFF",
            "background_alpha": 0.5,
            "background_color": "#9C27B0",
            "Stroke": "none",
            "body": [
                {"from": start, "to": end, "location": 2, "content": content}
                for start, end, content in events
            ],
        }
    )


def make_episode(
    season_dir: Path,
    dirname: str,
    index: str,
    title: str,
    season_title: str = "Season A",
    type_tag: str = "1080p",
    subtitle: str | None = "sub.json",
    subtitle_body: str | None = None,
    with_streams: bool = True,
) -> Path:
    """Create one episode directory in the Bilibili download layout.

    subtitle=None creates an empty en/ directory.
    """
    ep_dir = season_dir / dirname
    ep_dir.mkdir(parents=True)
    (ep_dir / "entry.json").write_text(
        json.dumps(
            {
                "title": season_title,
                "type_tag": type_tag,
                "ep": {"index": index, "index_title": title},
            }
        ),
        encoding="utf-8",
    )

    en_dir = ep_dir / "en"
    en_dir.mkdir()
    if subtitle:
        body = subtitle_body
        if body is None:
            body = bcc_subtitle([(1.0, 2.5, f"Line one of {title}"), (3.0, 4.25, "Line two")])
        (en_dir / subtitle).write_text(body, encoding="utf-8")

    if with_streams:
        streams = ep_dir / type_tag
        streams.mkdir()
        (streams / "video.m4s").write_bytes(b"video")
        (streams / "audio.m4s").write_bytes(b"audio")
    return ep_dir


def make_season(
    root: Path,
    name: str = "Season A",
    type_tag: str = "1080p",
    episodes: list[tuple[str, str]] | None = None,
) -> Path:
    """Create a season directory with (index, title) episodes."""
    season_dir = root / name
    season_dir.mkdir(parents=True)
    for index, title in episodes if episodes is not None else [("1", "Pilot"), ("2", "Second")]:
        make_episode(season_dir, f"ep{index}", index, title, season_title=name, type_tag=type_tag)
    return season_dir


class FakeFfmpeg:
    """Stand-in for subprocess.run inside ffmpeg_controller.

    Writes the output file (last argument) on success and records every command.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.returncode = 0
        self.stderr = ""
        self.fail_on: str | None = None  # substring of the output path that should fail

    def __call__(self, cmd: list[str], *args: Any, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(list(cmd))
        out = Path(cmd[-1])
        returncode = self.returncode
        if self.fail_on and self.fail_on in str(out):
            returncode = 1
        out.write_bytes(b"partial" if returncode else b"matroska")
        return SimpleNamespace(returncode=returncode, stdout="", stderr=self.stderr)


@pytest.fixture
def fake_ffmpeg(monkeypatch: Any) -> FakeFfmpeg:
    fake = FakeFfmpeg()
    monkeypatch.setattr(ffmpeg_controller.subprocess, "run", fake)
    return fake
