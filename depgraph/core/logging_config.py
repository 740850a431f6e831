"""
Centralized Logging Configuration for the dependency graph engine
================================================================

Structured JSON output for files (and optionally the console), a component
logger wrapper that accepts keyword context, and a single setup entry point
configuring the ``depgraph`` logger hierarchy.
"""
import json
import logging
import logging.handlers
import os
import sys
import threading
import time
import uuid
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "depgraph"


class DependencyGraphFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record, merging ``extra_fields``."""

    def __init__(self):
        super().__init__()
        self.hostname = os.environ.get('HOSTNAME', 'localhost')
        self.session_id = str(uuid.uuid4())[:8]

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'hostname': self.hostname,
            'process_id': record.process,
            'thread_id': record.thread,
            'session_id': self.session_id,
        }

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        extra_fields = getattr(record, 'extra_fields', None)
        if isinstance(extra_fields, dict):
            for key, value in extra_fields.items():
                try:
                    json.dumps(value)
                    log_entry[key] = value
                except (TypeError, ValueError):
                    # Non-serializable values are logged as strings
                    log_entry[key] = str(value)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class ComponentLogger:
    """Logger wrapper for one component, counting logs per level."""

    def __init__(self, component_name: str):
        self.component_name = component_name
        self.logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component_name}")
        self.log_counts = defaultdict(int)
        self.start_time = time.time()
        self._lock = threading.RLock()

    def _log(self, level: str, message: str, **extra):
        with self._lock:
            self.log_counts[level] += 1
        fields = {'component': self.component_name, **extra}
        getattr(self.logger, level)(message, extra={'extra_fields': fields})

    def info(self, message: str, **extra):
        self._log('info', message, **extra)

    def warning(self, message: str, **extra):
        self._log('warning', message, **extra)

    def error(self, message: str, **extra):
        self._log('error', message, **extra)

    def debug(self, message: str, **extra):
        self._log('debug', message, **extra)

    def critical(self, message: str, **extra):
        self._log('critical', message, **extra)

    def get_stats(self) -> Dict[str, Any]:
        """Get logging statistics for this component."""
        with self._lock:
            return {
                'component': self.component_name,
                'uptime_seconds': time.time() - self.start_time,
                'log_counts': dict(self.log_counts),
                'total_logs': sum(self.log_counts.values()),
            }


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    component: str = "depgraph",
    enable_console: bool = True,
    json_console: bool = False,
    max_file_size: int = 50 * 1024 * 1024,  # 50MB
    backup_count: int = 5,
) -> ComponentLogger:
    """
    Configure the ``depgraph`` logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for rotating JSON log files, no files when None
        component: Component name used for log file names
        enable_console: Enable console output
        json_console: Use the JSON formatter on the console too
        max_file_size: Maximum file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        ComponentLogger for the component
    """
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = DependencyGraphFormatter()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        if json_console:
            console_handler.setFormatter(formatter)
        else:
            console_handler.setFormatter(logging.Formatter(
                '%(asctime)s [%(levelname)8s] %(name)s: %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
        root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        main_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{component}-main.log",
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        main_handler.setLevel(level)
        main_handler.setFormatter(formatter)
        root_logger.addHandler(main_handler)

        # Errors only
        error_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{component}-errors.log",
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        root_logger.addHandler(error_handler)

    return ComponentLogger(component)


def get_logger(component: str) -> ComponentLogger:
    """Get a component logger."""
    return ComponentLogger(component)
