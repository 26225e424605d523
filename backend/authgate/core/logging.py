"""AuthGate Logging Configuration.

Raw bearer tokens must never reach log output. Services log a short
fingerprint via ``token_fingerprint()``; as a backstop every handler
installed here carries a ``TokenRedactionFilter`` that masks anything
shaped like a JWT before it is formatted.
"""

import hashlib
import json
import logging
import re
import sys
from typing import Literal

DEV_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# header.payload.signature, each part base64url
_JWT_PATTERN = re.compile(r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")
_REDACTED = "[token-redacted]"


def token_fingerprint(token: str) -> str:
    """Stable, non-reversible short identifier for a token, safe to log."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


def redact_tokens(message: str) -> str:
    return _JWT_PATTERN.sub(_REDACTED, message)


class TokenRedactionFilter(logging.Filter):
    """Mask JWT-shaped substrings in the rendered log message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_tokens(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Uses json.dumps() for every field so quotes, backslashes and newlines in
    client-supplied values (email addresses, paths) cannot break a line.
    """

    def __init__(self):
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = redact_tokens(self.formatException(record.exc_info))
        return json.dumps(log_entry, default=str)


def setup_logging(
    level: str = "INFO",
    format_type: Literal["structured", "dev"] = "dev",
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: 'structured' for one JSON object per line, 'dev' for readable
    """
    handler = logging.StreamHandler(sys.stdout)
    if format_type == "structured":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEV_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(TokenRedactionFilter())

    logging.root.handlers = [handler]
    logging.root.setLevel(getattr(logging, level.upper()))

    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    # Keep SQLAlchemy quiet unless debugging
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.DEBUG if level.upper() == "DEBUG" else logging.WARNING
    )

    logging.getLogger("authgate").info(f"Logging configured: level={level}, format={format_type}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the authgate prefix."""
    return logging.getLogger(f"authgate.{name}")
