"""Logging abstraction layer for yeelight-lan.

Provides dual-format logging (JSON + human-readable) with correlation tracking,
structured context, and configurable output destinations. Library modules log
through ``logging.getLogger(__name__)`` with ``extra={...}``; handlers are
attached to the ``yeelight_lan`` package logger so every module inherits them.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import override

from yeelight_lan.correlation import current_correlation_id

__all__ = [
    "HumanReadableFormatter",
    "JSONFormatter",
    "YeelightLogger",
    "get_logger",
]

PACKAGE_LOGGER_NAME = "yeelight_lan"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
    | {"message", "asctime", "correlation_id", "extra_data", "taskName"},
)


def _structured_context(record: logging.LogRecord) -> dict[str, object]:
    extra_data = getattr(record, "extra_data", None)
    if isinstance(extra_data, Mapping) and extra_data:
        return dict(extra_data)
    return {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": current_correlation_id(),
        }

        context = _structured_context(record)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter that outputs human-readable logs with correlation IDs."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        correlation_id = current_correlation_id()
        record.correlation_id = f"[{correlation_id}]" if correlation_id else "[-]"

        formatted = super().format(record)

        context = _structured_context(record)
        if context:
            context_str = " | ".join(f"{k}={v}" for k, v in context.items())
            formatted = f"{formatted} | {context_str}"

        return formatted


class YeelightLogger:
    """Logger abstraction providing dual-format output (JSON + human-readable)."""

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stdout",
        debug: bool = False,
    ) -> None:
        """Initialize YeelightLogger.

        Args:
            name: Logger name (typically module name)
            log_format: Output format - "json", "human", or "both"
            json_file: Path for JSON output file (None to disable file output)
            human_output: "stdout", "stderr", or file path for human-readable output
            debug: Start at DEBUG instead of INFO

        """
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)
        self.log_format: str = log_format
        self.logger.setLevel(logging.DEBUG if debug else logging.INFO)

        # Don't add handlers if already configured (avoid duplicates)
        if not self.logger.handlers:
            self._configure_handlers(json_file, human_output)

    def _configure_handlers(
        self,
        json_file: str | Path | None,
        human_output: str | None,
    ) -> None:
        """Configure log handlers based on format settings."""
        handler_level = self.logger.level

        if self.log_format in ("json", "both"):
            if json_file:
                try:
                    json_path = Path(json_file)
                    json_path.parent.mkdir(parents=True, exist_ok=True)
                    json_handler: logging.Handler = logging.FileHandler(json_path, mode="a")
                except OSError as e:
                    print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)
                    json_handler = logging.StreamHandler(sys.stderr)
            else:
                json_handler = logging.StreamHandler(sys.stdout)
            json_handler.setFormatter(JSONFormatter())
            json_handler.setLevel(handler_level)
            self.logger.addHandler(json_handler)

        if self.log_format in ("human", "both"):
            normalized_output = human_output or "stdout"
            if normalized_output == "stdout":
                human_handler: logging.Handler = logging.StreamHandler(sys.stdout)
            elif normalized_output == "stderr":
                human_handler = logging.StreamHandler(sys.stderr)
            else:
                try:
                    human_path = Path(normalized_output)
                    human_path.parent.mkdir(parents=True, exist_ok=True)
                    human_handler = logging.FileHandler(human_path, mode="a")
                except OSError as e:
                    print(f"Warning: Failed to create human log file {human_output}: {e}", file=sys.stderr)
                    human_handler = logging.StreamHandler(sys.stdout)

            human_handler.setFormatter(HumanReadableFormatter())
            human_handler.setLevel(handler_level)
            self.logger.addHandler(human_handler)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        extra_payload: Mapping[str, object] | None = None
        if extra:
            extra_payload = {"extra_data": dict(extra)}

        self.logger.log(level, msg, *args, extra=extra_payload)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log debug message with optional structured context."""
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log info message with optional structured context."""
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log warning message with optional structured context."""
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log error message with optional structured context."""
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log exception with traceback and optional structured context."""
        log_extra = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, extra=log_extra)

    def set_level(self, level: int) -> None:
        """Set logging level on the logger and all of its handlers."""
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        """Get list of handlers."""
        return self.logger.handlers


def get_logger(
    name: str = PACKAGE_LOGGER_NAME,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> YeelightLogger:
    """Get or create a YeelightLogger instance.

    Defaults come from the ``YEELIGHT_LOG_*`` environment variables.
    """
    from yeelight_lan.const import (
        YEELIGHT_DEBUG,
        YEELIGHT_LOG_FORMAT,
        YEELIGHT_LOG_HUMAN_OUTPUT,
        YEELIGHT_LOG_JSON_FILE,
    )

    return YeelightLogger(
        name=name,
        log_format=log_format or YEELIGHT_LOG_FORMAT,
        json_file=json_file or YEELIGHT_LOG_JSON_FILE,
        human_output=human_output or YEELIGHT_LOG_HUMAN_OUTPUT,
        debug=YEELIGHT_DEBUG,
    )
