"""
Logging setup for the dashboard and the positions pipeline.

Layout follows the JSON/plain switch used by the InvestmentsBackend service
config, reworked for a Streamlit page that re-runs the script on every
interaction:

- only the handler installed here is replaced on each call, so handlers
  that Streamlit or a test runner attached to the root logger survive;
- the loggers muted to WARNING come from settings (``quiet_loggers``);
- JSON records carry the emitting module and line so a row issue can be
  traced back to the pipeline step that reported it.

Never log account contents beyond symbols and counts.
"""
import json
import logging
import sys
from typing import Iterable, Optional

HANDLER_NAME = "positions_dashboard"
PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_QUIET_LOGGERS = ("watchdog", "altair")


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "source": f"{record.module}:{record.lineno}",
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    quiet_loggers: Optional[Iterable[str]] = None,
) -> logging.Handler:
    """Install the dashboard's stdout handler on the root logger.

    Safe to call on every Streamlit rerun: a previous handler with the same
    name is swapped out instead of stacking duplicates. Returns the handler.
    """
    resolved = logging.getLevelName((level or "INFO").upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    root = logging.getLogger()
    root.setLevel(resolved)
    for h in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(h)
        h.close()

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setLevel(resolved)
    handler.setFormatter(JsonFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))
    root.addHandler(handler)

    if quiet_loggers is None:
        quiet_loggers = DEFAULT_QUIET_LOGGERS
    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
