"""Severity classification for lines of child process output."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum


class Severity(Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class Origin(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class ClassifiedLine:
    """One line of output tagged with a severity and the stream it came from."""

    severity: Severity
    text: str
    origin: Origin
    is_exception: bool = False


EXCEPTION_PREFIX = "Exception in thread"

_LEVELS: dict[str, Severity] = {
    "WARN": Severity.WARN,
    "FATAL": Severity.ERROR,
    "ERROR": Severity.ERROR,
}


def split_level(line: str) -> tuple[str, str] | None:
    """Split ``"... [LEVEL] text"`` into ``(LEVEL, text)``.

    Uses the first ``[`` and the first ``]`` after it. Returns None when
    there is no such pair or the span between them is empty.
    """
    start = line.find("[")
    if start == -1:
        return None
    end = line.find("]", start + 1)
    if end == -1 or end == start + 1:
        return None
    return line[start + 1 : end], line[end + 1 :].lstrip()


def classify_line(
    line: str, origin: Origin, *, stderr_as_error: bool = False
) -> ClassifiedLine:
    """Map one raw output line to a severity and display text.

    Lines without a recognised marker default to INFO on both streams
    unless *stderr_as_error* is set, in which case unmatched stderr lines
    are reported as errors.
    """
    line = line.rstrip("\r\n")
    default = (
        Severity.ERROR
        if stderr_as_error and origin is Origin.STDERR
        else Severity.INFO
    )

    tagged = split_level(line)
    if tagged is not None:
        level, text = tagged
        return ClassifiedLine(_LEVELS.get(level, default), text, origin)

    # Java exceptions span several lines; only the first one is marked.
    if line.startswith(EXCEPTION_PREFIX):
        return ClassifiedLine(Severity.ERROR, line, origin, is_exception=True)

    if "Error" in line:
        return ClassifiedLine(Severity.ERROR, line, origin)

    return ClassifiedLine(default, line, origin)


def dispatch(classified: ClassifiedLine, logger: logging.Logger) -> None:
    """Write *classified* to the matching level of *logger*."""
    if classified.severity is Severity.WARN:
        logger.warning("%s", classified.text)
    elif classified.severity is Severity.ERROR:
        logger.error("%s", classified.text)
    else:
        logger.info("%s", classified.text)
