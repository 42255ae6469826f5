"""
Error taxonomy for the season compile pipeline.

Two families:
- PipelineIOError and its subclasses: recoverable IO failures. They carry a
  message naming the season/episode/file that failed and abort the run.
- MissingSubtitleError: a structural defect in the download (no subtitle).
  Always fatal, never wrapped, never skipped.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class PipelineError(Exception):
    """Base error for the season compile pipeline."""


class PipelineIOError(PipelineError, OSError):
    """Recoverable IO failure with a human-readable context message."""


class SubtitleParseError(PipelineIOError):
    """Raised when a JSON or ASS subtitle is unreadable or malformed."""


class MergeError(PipelineIOError):
    """Raised when ffmpeg cannot be spawned, exits non-zero, or lacks an input."""


class MissingSubtitleError(PipelineError):
    """Raised when an episode has no `en` subtitle directory or no subtitle in it."""


@contextmanager
def with_context(message: str) -> Iterator[None]:
    """Re-raise bare OSErrors as PipelineIOError prefixed with `message`.

    Pipeline errors already carry the context of the place they were first
    detected, so they propagate unchanged.
    """
    try:
        yield
    except PipelineError:
        raise
    except OSError as e:
        raise PipelineIOError(f"{message}: {e}") from e
