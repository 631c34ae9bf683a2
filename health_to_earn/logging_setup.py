"""
Process logging for the API.

One stdout handler on the root logger, JSON lines in production (or with
LOG_FORMAT=json) and plain text otherwise. Building the app again swaps
that handler; handlers installed by the host are left alone.
"""
import json
import logging
import sys
from datetime import datetime, timezone

from .config import Settings

HANDLER_NAME = "health_to_earn"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(settings: Settings) -> logging.Handler:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    as_json = settings.LOG_FORMAT == "json" or settings.ENV == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if as_json else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for old in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return handler
