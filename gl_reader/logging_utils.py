"""Logging utilities for gl-reader."""

from __future__ import annotations

import json
import logging
import sys

from gl_reader.models import ReadResult

STATUS_ICONS = {
    "ok": "✓",
    "not_modified": "·",
    "not_found": "→",
    "error": "✗",
}


def format_read_result(result: ReadResult) -> str:
    """One-line text summary of a read, with the etag and size when known."""
    line = f"{STATUS_ICONS.get(result.status, '?')} {result.command} {result.path or result.url} → {result.status}"
    if result.etag:
        line += f" etag={result.etag}"
    if result.size is not None:
        line += f" size={result.size}"
    if result.detail:
        line += f" ({result.detail})"
    return line


class StructuredFormatter(logging.Formatter):
    """Formatter for read results and plain messages, as text or JSON lines.

    Records carrying a ``read_result`` attribute are rendered from the result:
    its ``to_dict()`` in JSON mode, or a status line in text mode.
    """

    def __init__(self, json_mode: bool = False):
        super().__init__()
        self.json_mode = json_mode

    def format(self, record: logging.LogRecord) -> str:
        result = getattr(record, "read_result", None)
        if self.json_mode:
            if result is not None:
                return json.dumps(result.to_dict())
            return json.dumps({"level": record.levelname, "message": record.getMessage()})
        message = format_read_result(result) if result is not None else record.getMessage()
        return f"[{record.levelname:<7}] {message}"


def setup_logging(json_mode: bool = False, verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger("gl-reader")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter(json_mode=json_mode))
    logger.addHandler(handler)
    return logger
