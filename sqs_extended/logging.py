from __future__ import annotations
import json
import sys
import time
import traceback
from typing import Any, Dict, Optional


_LEVEL_ORDER = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


class StructuredLogger:
    """JSON-lines logger used by the client, the adapters and the hooks."""

    def __init__(
        self,
        name: str = "sqs_extended",
        level: str = "INFO",
        bound: Optional[Dict[str, Any]] = None,
        stream=None,
    ):
        self.name = name
        self.level = level.upper()
        self._bound: Dict[str, Any] = dict(bound or {})
        self._stream = stream

    # ----------------------------------------------------------------------
    # Core logging method
    # ----------------------------------------------------------------------
    def _log(self, level: str, msg: str, extra: Optional[Dict[str, Any]] = None):
        """Format and write one JSON log line."""
        if _LEVEL_ORDER.get(level, 100) < _LEVEL_ORDER.get(self.level, 20):
            return

        try:
            record = {
                "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                "level": level,
                "logger": self.name,
                "msg": str(msg),
            }

            fields = dict(self._bound)
            if extra and isinstance(extra, dict):
                fields.update(extra)
            for k, v in fields.items():
                # Core keys win
                if k not in record:
                    record[k] = v

            line = json.dumps(record, ensure_ascii=False, default=str)
            print(line, file=self._stream or sys.stdout, flush=True)

        except Exception as e:
            # Logging must never break a queue operation
            print(f"[logger-error] failed to log: {e}", file=sys.stderr, flush=True)

    # ----------------------------------------------------------------------
    # Public convenience methods
    # ----------------------------------------------------------------------
    def info(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        self._log("INFO", msg, extra)

    def warning(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        self._log("WARNING", msg, extra)

    def error(self, msg: Any, extra: Optional[Dict[str, Any]] = None):
        if isinstance(msg, BaseException):
            err_str = f"{type(msg).__name__}: {msg}"
            tb = "".join(traceback.format_exception(type(msg), msg, msg.__traceback__))
            self._log("ERROR", err_str, dict(extra or {}, traceback=tb))
        else:
            self._log("ERROR", msg, extra)

    def debug(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        self._log("DEBUG", msg, extra)

    def set_level(self, level: str) -> None:
        self.level = level.upper()

    # ----------------------------------------------------------------------
    # Context binding
    # ----------------------------------------------------------------------
    def bind(self, **context: Any) -> "StructuredLogger":
        """
        Return a child logger with context attached to every line.
        Example:
            log = get_logger("client").bind(queue_url=url)
        """
        merged = dict(self._bound)
        merged.update(context)
        return StructuredLogger(name=self.name, level=self.level, bound=merged, stream=self._stream)


# ----------------------------------------------------------------------
# Module-level logger registry (one logger per name)
# ----------------------------------------------------------------------

_loggers: Dict[str, StructuredLogger] = {}
_default_level = "INFO"


def get_logger(name: str = "sqs_extended", level: Optional[str] = None) -> StructuredLogger:
    """Get or create a logger for the given name."""
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name=name, level=level or _default_level)
    elif level is not None:
        _loggers[name].set_level(level)
    return _loggers[name]


def configure_logging(level: str) -> None:
    """Apply one level to every registered logger."""
    global _default_level
    if level.upper() not in _LEVEL_ORDER:
        raise ValueError(f"Unknown log level: {level}")
    _default_level = level.upper()
    for logger in _loggers.values():
        logger.set_level(level)


__all__ = ["StructuredLogger", "get_logger", "configure_logging"]
