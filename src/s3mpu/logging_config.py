"""Log formatting for s3-mpu.

Sessions and the part uploader attach the upload they act on to each record
as ``extra`` fields. Both formatters here render that context: the JSON
formatter as top-level keys, the text formatter as a trailing bracketed tag.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TextIO

UPLOAD_FIELDS = ("bucket", "key", "upload_id", "part_number")

# SDK loggers that are only useful when debugging a single request.
_SDK_LOGGERS = ("botocore", "aiobotocore", "urllib3")


def upload_context(record: logging.LogRecord) -> dict:
    """Return the upload fields present on ``record``, in UPLOAD_FIELDS order."""
    context = {}
    for name in UPLOAD_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            context[name] = value
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, upload fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(upload_context(record))
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class UploadTextFormatter(logging.Formatter):
    """Human-readable lines ending in ``[bucket/key upload=... part=N]``."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = upload_context(record)
        if not context:
            return line
        tags = []
        if "bucket" in context or "key" in context:
            tags.append(f"{context.get('bucket', '?')}/{context.get('key', '?')}")
        if "upload_id" in context:
            tags.append(f"upload={context['upload_id']}")
        if "part_number" in context:
            tags.append(f"part={context['part_number']}")
        head, sep, tail = line.partition("\n")
        return f"{head} [{' '.join(tags)}]{sep}{tail}"


def configure_logging(level: str = "INFO", fmt: str = "text", stream: TextIO | None = None) -> None:
    """Install a single root handler for the CLI.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names fall back to INFO.
        fmt: 'json' for JSONFormatter, anything else for UploadTextFormatter.
        stream: Output stream, stderr by default.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if fmt == "json" else UploadTextFormatter())
    root.addHandler(handler)

    # botocore logs every request at DEBUG; keep it out unless asked for.
    sdk_level = logging.NOTSET if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)
