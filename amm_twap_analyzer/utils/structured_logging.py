"""
Structured logging with correlation IDs for analysis runs.
"""

import json
import logging
import logging.handlers
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, TextIO

# Context variable for correlation ID
correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

_STANDARD_RECORD_FIELDS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'correlation_id', 'taskName', 'message',
}


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or "unknown"
        return True


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per log record.

    Extra fields passed through ``extra=`` are included under ``"extra"``.
    """

    def __init__(
        self,
        include_extra_fields: bool = True,
        timestamp_format: str = "%Y-%m-%dT%H:%M:%S.%fZ"
    ):
        super().__init__()
        self.include_extra_fields = include_extra_fields
        self.timestamp_format = timestamp_format

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).strftime(self.timestamp_format),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "correlation_id": getattr(record, 'correlation_id', 'unknown')
        }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        if self.include_extra_fields:
            extra_fields = {}
            for key, value in record.__dict__.items():
                if key in _STANDARD_RECORD_FIELDS:
                    continue
                try:
                    json.dumps(value)
                    extra_fields[key] = value
                except (TypeError, ValueError):
                    extra_fields[key] = str(value)

            if extra_fields:
                log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class LoggingManager:
    """
    Centralized logging configuration.

    Installs console and optional rotating file handlers on the root logger,
    each tagged with the current correlation ID. Console output goes to
    stderr so reports printed on stdout stay clean.
    """

    def __init__(self):
        self._configured = False
        self._log_handlers: Dict[str, logging.Handler] = {}

    @property
    def configured(self) -> bool:
        return self._configured

    def setup_logging(
        self,
        log_level: str = "INFO",
        log_file: Optional[str] = None,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        console_output: bool = True,
        structured_format: bool = False,
        include_extra_fields: bool = True,
        stream: Optional[TextIO] = None
    ) -> None:
        """
        Set up logging for an analyzer process.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Path to log file (optional)
            max_file_size: Maximum size of log file before rotation
            backup_count: Number of backup files to keep
            console_output: Whether to output logs to the console
            structured_format: Whether to use structured JSON format
            include_extra_fields: Whether to include extra fields in structured logs
            stream: Console stream, stderr by default
        """
        if self._configured:
            return

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level.upper()))

        if structured_format:
            formatter = StructuredFormatter(include_extra_fields=include_extra_fields)
        else:
            formatter = logging.Formatter('%(levelname)s: %(message)s')

        if console_output:
            console_handler = logging.StreamHandler(stream or sys.stderr)
            console_handler.setFormatter(formatter)
            self.add_handler('console', console_handler)

        # File handler with rotation; always verbose text with correlation IDs
        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(
                formatter if structured_format else logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - %(correlation_id)s - %(message)s'
                )
            )
            self.add_handler('file', file_handler)

        self._configured = True

        logging.getLogger(__name__).debug(
            "Logging configuration completed",
            extra={
                "log_level": log_level,
                "log_file": log_file,
                "structured_format": structured_format,
            }
        )

    def reset(self) -> None:
        """Remove the handlers this manager installed so logging can be reconfigured."""
        for name in list(self._log_handlers):
            handler = self._log_handlers[name]
            self.remove_handler(name)
            handler.close()
        self._configured = False
        self.clear_correlation_id()

    def add_handler(self, name: str, handler: logging.Handler) -> None:
        """Add a handler to the root logger, tagged with correlation IDs."""
        handler.addFilter(CorrelationIdFilter())
        logging.getLogger().addHandler(handler)
        self._log_handlers[name] = handler

    def remove_handler(self, name: str) -> None:
        if name in self._log_handlers:
            logging.getLogger().removeHandler(self._log_handlers[name])
            del self._log_handlers[name]

    def create_correlation_id(self) -> str:
        return str(uuid.uuid4())

    def set_correlation_id(self, corr_id: Optional[str] = None) -> str:
        """
        Set correlation ID for the current context.

        Args:
            corr_id: Correlation ID to set, or None to generate a new one

        Returns:
            The correlation ID that was set
        """
        if corr_id is None:
            corr_id = self.create_correlation_id()

        correlation_id.set(corr_id)
        return corr_id

    def get_correlation_id(self) -> Optional[str]:
        return correlation_id.get()

    def clear_correlation_id(self) -> None:
        correlation_id.set(None)


# Global logging manager instance
logging_manager = LoggingManager()
