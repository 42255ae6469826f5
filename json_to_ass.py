"""
Convert a Bilibili JSON (BCC) subtitle document to an ASS v4.00+ script.

    {
      "font_size": 0.4, "font_color": "#FFFFFF",
      "background_alpha": 0.5, "background_color": "#9C27B0",
      "body": [
        {"from": 1.5, "to": 3.25, "location": 2, "content": "Hello"},
        {"from": 4.0, "to": 6.0, "content": [{"text": "Hi ", "bold": true}, {"text": "there"}]}
      ]
    }
"""

from __future__ import annotations

import json
import logging
import math
import re
from pathlib import Path
from typing import Any

from error_handling import SubtitleParseError

logger = logging.getLogger(__name__)

PLAY_RES_X = 1920
PLAY_RES_Y = 1080
DEFAULT_FONT = "Arial"
DEFAULT_FONT_SIZE = 54
DEFAULT_ALIGNMENT = 2  # bottom-centre, numpad layout

HEX_COLOR = re.compile(r"^#?([0-9A-Fa-f]{6})$")


def format_ass_time(seconds: float) -> str:
    """1.5 -> '0:00:01.50' (centisecond precision, rounded)."""
    cs = int(round(seconds * 100))
    h, cs = divmod(cs, 360_000)
    m, cs = divmod(cs, 6_000)
    s, cs = divmod(cs, 100)
    return f"{h}:{m:02d}:{s:02d}.{cs:02d}"


def ass_color(value: Any, alpha: int = 0) -> str | None:
    """'#RRGGBB' -> '&HAABBGGRR'. Returns None for anything unparseable."""
    if not isinstance(value, str):
        return None
    m = HEX_COLOR.match(value.strip())
    if not m:
        return None
    rgb = m.group(1).upper()
    return f"&H{alpha:02X}{rgb[4:6]}{rgb[2:4]}{rgb[0:2]}"


def _font_size(value: Any) -> int:
    # BCC font_size is a fraction of the screen height; larger values are points
    if isinstance(value, int | float) and not isinstance(value, bool) and value > 0:
        if value <= 1:
            return max(int(round(PLAY_RES_Y * value / 8)), 1)
        return int(round(value))
    return DEFAULT_FONT_SIZE


def _escape_text(text: str) -> str:
    # literal braces would open an override block; use full-width brackets
    text = text.replace("{", "\uff5b").replace("}", "\uff5d")
    return text.replace("\r\n", "\n").replace("\n", "\\N")


def _render_run(run: Any) -> str:
    if isinstance(run, str):
        return _escape_text(run)
    if not isinstance(run, dict) or not isinstance(run.get("text"), str):
        raise ValueError(f"invalid text run: {run!r}")

    text = _escape_text(run["text"])
    if run.get("bold"):
        text = f"{{\\b1}}{text}{{\\b0}}"
    if run.get("italic"):
        text = f"{{\\i1}}{text}{{\\i0}}"
    if run.get("underline"):
        text = f"{{\\u1}}{text}{{\\u0}}"
    color = ass_color(run.get("color"))
    if color:
        # inline colour tags use &HBBGGRR& without the alpha byte
        text = f"{{\\c&H{color[4:]}&}}{text}{{\\r}}"
    return text


def render_content(content: Any) -> str:
    """Render a BCC `content` value (string or list of styled runs) as ASS text."""
    if isinstance(content, str):
        return _escape_text(content)
    if isinstance(content, list):
        return "".join(_render_run(run) for run in content)
    raise ValueError(f"invalid content: {content!r}")


def _build_header(doc: dict[str, Any]) -> str:
    primary = ass_color(doc.get("font_color")) or "&H00FFFFFF"

    back_alpha = doc.get("background_alpha")
    if isinstance(back_alpha, int | float) and 0 <= back_alpha <= 1:
        # BCC alpha is opacity; ASS alpha is transparency
        alpha = int(round((1 - back_alpha) * 255))
    else:
        alpha = 0x80
    back = ass_color(doc.get("background_color"), alpha) or f"&H{alpha:02X}000000"

    return (
        "[Script Info]\n"
        "ScriptType: v4.00+\n"
        f"PlayResX: {PLAY_RES_X}\n"
        f"PlayResY: {PLAY_RES_Y}\n"
        "WrapStyle: 0\n"
        "ScaledBorderAndShadow: yes\n"
        "\n"
        "[V4+ Styles]\n"
        "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
        "OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, "
        "ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, "
        "Alignment, MarginL, MarginR, MarginV, Encoding\n"
        f"Style: Default,{DEFAULT_FONT},{_font_size(doc.get('font_size'))},"
        f"{primary},&H000000FF,&H00000000,{back},"
        "0,0,0,0,100,100,0,0,1,2,1,"
        f"{DEFAULT_ALIGNMENT},60,60,40,1\n"
        "\n"
        "[Events]\n"
        "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text\n"
    )


def _dialogue_line(event: Any) -> str:
    if not isinstance(event, dict):
        raise ValueError(f"event must be an object, got {event!r}")
    start, end = event.get("from"), event.get("to")
    for value in (start, end):
        if not isinstance(value, int | float) or isinstance(value, bool):
            raise ValueError(f"event has non-numeric timing: {event!r}")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"event has non-finite timing: {event!r}")
    if start < 0 or end < start:
        raise ValueError(f"event has invalid timing {start}..{end}")

    text = render_content(event.get("content", ""))
    location = event.get("location")
    if isinstance(location, int) and 1 <= location <= 9 and location != DEFAULT_ALIGNMENT:
        text = f"{{\\an{location}}}{text}"

    return f"Dialogue: 0,{format_ass_time(start)},{format_ass_time(end)},Default,,0,0,0,,{text}\n"


def convert_json_to_ass(input_path: Path, output_path: Path) -> None:
    """Write an ASS script equivalent to the JSON subtitle at `input_path`.

    Raises SubtitleParseError when the input is unreadable or structurally
    invalid; the output is only written once every event has been parsed.
    """
    try:
        with open(input_path, encoding="utf-8-sig") as f:
            doc = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SubtitleParseError(f"Cannot read JSON subtitle {input_path}: {e}") from e

    if not isinstance(doc, dict) or not isinstance(doc.get("body"), list):
        raise SubtitleParseError(f"JSON subtitle {input_path} has no 'body' list")

    try:
        lines = [_dialogue_line(event) for event in doc["body"]]
    except ValueError as e:
        raise SubtitleParseError(f"Malformed JSON subtitle {input_path}: {e}") from e

    try:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(_build_header(doc))
            f.writelines(lines)
    except OSError as e:
        raise SubtitleParseError(f"Cannot write ASS subtitle {output_path}: {e}") from e

    logger.info("Converted %s -> %s (%d events)", input_path, output_path, len(lines))
