# layer_indexer/core/logging.py
"""
Logging for the layer indexer.

Every logger lives under the ``layer_indexer`` tree. Context passed as keyword
arguments (tx hash, block, token, lever...) is attached to the record and
rendered either as ``key=value`` pairs or, in structured mode, as one JSON
object per line.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import msgspec

DEBUG = logging.DEBUG
INFO = logging.INFO
WARNING = logging.WARNING
ERROR = logging.ERROR
CRITICAL = logging.CRITICAL

ROOT_LOGGER_NAME = 'layer_indexer'

CONTEXT_ATTRS = (
    'event_name', 'tx_hash', 'block_number', 'log_index',
    'token_id', 'lever_id', 'user', 'handler_name', 'error',
)


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return {attr: getattr(record, attr) for attr in CONTEXT_ATTRS if hasattr(record, attr)}


class IndexerFormatter(logging.Formatter):
    """Plain text line with trailing event/token context"""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        line = f"{timestamp} {record.levelname:<8} {record.name}: {record.getMessage()}"

        context = _record_context(record)
        if context:
            line += " | " + " ".join(f"{key}={value}" for key, value in context.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, context keys at top level"""

    def __init__(self):
        super().__init__()
        self._encoder = msgspec.json.Encoder()

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'ts': datetime.fromtimestamp(record.created).isoformat(timespec='milliseconds'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        payload.update({key: str(value) for key, value in _record_context(record).items()})
        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)
        return self._encoder.encode(payload).decode()


class IndexerLogger:
    """One-time configuration of the layer_indexer logger tree"""

    _configured = False

    @classmethod
    def configure(cls,
                  log_dir: Optional[Path] = None,
                  log_level: str = "INFO",
                  console_enabled: bool = True,
                  file_enabled: bool = False,
                  structured_format: bool = False) -> None:
        # First call wins
        if cls._configured:
            return

        level = getattr(logging, log_level.upper())
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        formatter = JsonLineFormatter() if structured_format else IndexerFormatter()

        if console_enabled:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

        if file_enabled and log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_dir / 'layer_indexer.log')
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

            # Invariant violations and read failures end up here as well
            error_handler = logging.FileHandler(log_dir / 'layer_indexer_errors.log')
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(formatter)
            root_logger.addHandler(error_handler)

        cls._configured = True

    @classmethod
    def reset(cls) -> None:
        """Drop handlers so the next configure() call takes effect"""
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in root_logger.handlers:
            handler.close()
        root_logger.handlers.clear()
        cls._configured = False

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._configured:
            cls.configure()

        if not name.startswith(ROOT_LOGGER_NAME):
            name = f'{ROOT_LOGGER_NAME}.{name}'
        return logging.getLogger(name)


def get_class_logger(instance) -> logging.Logger:
    module = instance.__class__.__module__
    prefix = f'{ROOT_LOGGER_NAME}.'
    if module.startswith(prefix):
        module = module[len(prefix):]
    return IndexerLogger.get_logger(f"{module}.{instance.__class__.__name__}")


def log_with_context(logger: logging.Logger, level: int, message: str, **context) -> None:
    if logger.isEnabledFor(level):
        record = logger.makeRecord(logger.name, level, "", 0, message, (), None)
        for key, value in context.items():
            setattr(record, key, value)
        logger.handle(record)


def event_context(event, **extra) -> Dict[str, Any]:
    """Standard log context for a decoded contract event"""
    context = {
        'event_name': event.name,
        'tx_hash': event.tx_hash,
        'block_number': event.block_number,
        'log_index': event.log_index,
    }
    context.update(extra)
    return context


class LoggingMixin:
    """Per-class logger plus level helpers taking keyword context"""

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, '_logger'):
            self._logger = get_class_logger(self)
        return self._logger

    def log_debug(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.DEBUG, message, **context)

    def log_info(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.INFO, message, **context)

    def log_warning(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.WARNING, message, **context)

    def log_error(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.ERROR, message, **context)

    def log_critical(self, message: str, **context) -> None:
        log_with_context(self.logger, logging.CRITICAL, message, **context)
