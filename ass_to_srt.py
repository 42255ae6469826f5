"""Convert an ASS/SSA script to plain SRT, discarding styling."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from error_handling import SubtitleParseError

logger = logging.getLogger(__name__)

# Override blocks like {\pos(960,540)}, {\b1}, {\an8}
RE_ASS_TAGS = re.compile(r"\{[^}]*\}")

# H:MM:SS.cc (some writers emit milliseconds)
RE_ASS_TIME = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2})[.:](\d{1,3})$")


@dataclass
class Cue:
    start_ms: int
    end_ms: int
    text: str

    def to_srt(self, index: int) -> str:
        span = f"{format_srt_time(self.start_ms)} --> {format_srt_time(self.end_ms)}"
        return f"{index}\n{span}\n{self.text}\n\n"


def format_srt_time(ms: int) -> str:
    h, ms = divmod(ms, 3_600_000)
    m, ms = divmod(ms, 60_000)
    s, ms = divmod(ms, 1000)
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def parse_ass_time(value: str) -> int:
    """'0:01:02.50' -> 62500 (milliseconds)."""
    m = RE_ASS_TIME.match(value.strip())
    if not m:
        raise ValueError(f"bad timestamp {value!r}")
    h, mi, s, frac = m.groups()
    # two digits are centiseconds, three are milliseconds
    frac_ms = int(frac.ljust(3, "0")) if len(frac) != 2 else int(frac) * 10
    return ((int(h) * 60 + int(mi)) * 60 + int(s)) * 1000 + frac_ms


def clean_ass_text(text: str) -> str:
    """Strip override tags and convert ASS line-break/space escapes."""
    text = RE_ASS_TAGS.sub("", text)
    text = text.replace("\\N", "\n").replace("\\n", "\n").replace("\\h", " ")
    return text.strip()


def parse_ass_events(content: str) -> list[Cue]:
    """Parse the [Events] section of an ASS script into cues (file order)."""
    cues: list[Cue] = []
    section = ""
    fields: list[str] | None = None
    saw_events = False

    for lineno, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith(";"):
            continue
        if line.startswith("[") and line.endswith("]"):
            section = line[1:-1].strip().lower()
            saw_events = saw_events or section == "events"
            continue
        if section != "events":
            continue

        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        if key == "format":
            fields = [f.strip().lower() for f in value.split(",")]
            for required in ("start", "end", "text"):
                if required not in fields:
                    raise ValueError(f"line {lineno}: Format line lacks {required!r}")
            continue
        if key != "dialogue":
            continue  # Comment:, Picture:, Sound:, ...
        if fields is None:
            raise ValueError(f"line {lineno}: Dialogue before Format line")

        # Text is the last field and may itself contain commas
        values = value.lstrip().split(",", len(fields) - 1)
        if len(values) != len(fields):
            raise ValueError(f"line {lineno}: expected {len(fields)} fields, got {len(values)}")
        row = dict(zip(fields, values))
        try:
            start = parse_ass_time(row["start"])
            end = parse_ass_time(row["end"])
        except ValueError as e:
            raise ValueError(f"line {lineno}: {e}") from e
        cues.append(Cue(start_ms=start, end_ms=end, text=clean_ass_text(row["text"])))

    if not saw_events:
        raise ValueError("no [Events] section")
    return cues


def convert_ass_to_srt(input_path: Path, output_path: Path) -> None:
    """Write the dialogue events of the ASS script at `input_path` as SRT.

    Cues are numbered from 1 and stable-sorted by start time.
    Raises SubtitleParseError on an unreadable or malformed script.
    """
    try:
        content = Path(input_path).read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise SubtitleParseError(f"Cannot read ASS subtitle {input_path}: {e}") from e

    try:
        cues = parse_ass_events(content)
    except ValueError as e:
        raise SubtitleParseError(f"Malformed ASS subtitle {input_path}: {e}") from e

    cues.sort(key=lambda c: c.start_ms)

    try:
        with open(output_path, "w", encoding="utf-8") as f:
            for i, cue in enumerate(cues, start=1):
                f.write(cue.to_srt(i))
    except OSError as e:
        raise SubtitleParseError(f"Cannot write SRT subtitle {output_path}: {e}") from e

    logger.info("Converted %s -> %s (%d cues)", input_path, output_path, len(cues))
