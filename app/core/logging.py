"""Logging setup: one stdout handler, JSON or plain text."""

import json
import logging
import sys
from datetime import datetime, timezone
from logging import LogRecord

# LogRecord attributes that are not user-supplied `extra=` fields
_RECORD_ATTRS = set(vars(LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime', 'taskName'}


class JsonFormatter(logging.Formatter):
    """Format a record as one JSON object, keeping any `extra=` fields."""

    def format(self, record: LogRecord) -> str:  # noqa: D401
        data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname.lower(),
            'logger': record.name,
            'message': record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith('_'):
                continue
            data[key] = value
        if record.exc_info:
            data['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


_handler: logging.Handler | None = None


def configure_logging(level: str = 'INFO', fmt: str = 'json') -> None:
    """Install the app's stdout handler, replacing one from an earlier call.

    Handlers installed by anything else (pytest's capture, for instance) stay.
    """
    global _handler

    handler = logging.StreamHandler(sys.stdout)
    if fmt == 'plain':
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    if _handler is not None:
        root_logger.removeHandler(_handler)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    _handler = handler

    # uvicorn installs its own handlers
    logging.getLogger('uvicorn').propagate = False
    logging.getLogger('uvicorn.access').propagate = False
