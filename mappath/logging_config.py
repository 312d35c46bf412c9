from __future__ import annotations

import logging
import os
import sys
import threading
from collections import deque
from typing import Iterable, List

from .settings import settings

_DEFAULT_LEVEL = settings.LOG_LEVEL.upper()
_RESOLVED_LEVEL = logging.getLevelName(_DEFAULT_LEVEL)
if isinstance(_RESOLVED_LEVEL, str):
    _RESOLVED_LEVEL = logging.INFO

_BUFFER_SIZE = max(settings.LOG_BUFFER, 1)
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(run_id)s | MapPath.%(module)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_buffer_lock = threading.Lock()
_log_buffer: deque[str] = deque(maxlen=_BUFFER_SIZE)
_run_id_lock = threading.Lock()
_CURRENT_RUN_ID = "-"


class RunIdFilter(logging.Filter):
    """Inject the run_id into each log record."""

    def filter(self, record):
        record.run_id = _CURRENT_RUN_ID
        return True


class _BufferingHandler(logging.Handler):
    """Capture log records into an in-memory ring buffer."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self._formatter = logging.Formatter(_LOG_FORMAT, _DATE_FORMAT)

    def emit(self, record: logging.LogRecord) -> None:
        message = self._formatter.format(record)
        with _buffer_lock:
            _log_buffer.append(message)


_logging_configured = False


def _configure_logging() -> None:
    global _logging_configured
    if _logging_configured:
        return

    formatter = logging.Formatter(_LOG_FORMAT, _DATE_FORMAT)
    stream_handler = logging.StreamHandler(sys.__stderr__)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(_RESOLVED_LEVEL)

    buffer_handler = _BufferingHandler()

    run_filter = RunIdFilter()

    # 只配置 mappath 命名空间，避免改动宿主应用的 root logger
    package_logger = logging.getLogger("mappath")
    package_logger.setLevel(_RESOLVED_LEVEL)
    stream_handler.addFilter(run_filter)
    buffer_handler.addFilter(run_filter)

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
               for h in package_logger.handlers):
        package_logger.addHandler(stream_handler)
    if not any(isinstance(h, _BufferingHandler) for h in package_logger.handlers):
        package_logger.addHandler(buffer_handler)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger configured with the unified MapPath format."""
    _configure_logging()
    return logging.getLogger(name)


def set_run_id(run_id: str | None) -> str:
    """Set the run id stamped on subsequent records; returns the previous one."""
    global _CURRENT_RUN_ID
    with _run_id_lock:
        previous = _CURRENT_RUN_ID
        _CURRENT_RUN_ID = run_id or "-"
    return previous


def get_recent_output(limit: int = 200) -> List[str]:
    """Return the most recent log lines up to ``limit`` entries."""
    if limit <= 0:
        return []
    with _buffer_lock:
        return list(_log_buffer)[-limit:]


def export_recent_output(limit: int = 200) -> str:
    """Render recent output lines as a single newline-delimited string."""
    return "\n".join(get_recent_output(limit))


def iter_output(limit: int = 200) -> Iterable[str]:
    """Yield recent output lines without building an intermediate list."""
    for line in get_recent_output(limit):
        yield line


def configure_logging(structured: bool = True, output_dir: str | None = None) -> str:
    """可选入口：为 mappath logger 追加文件输出 <output_dir>/mappath_runs.log。

    - structured=True: 与控制台相同的分栏格式
    - structured=False: "%(message)s"

    不改变已有的缓冲/控制台配置，仅追加/更新文件 handler。返回日志文件路径。
    """
    _configure_logging()

    fmt = _LOG_FORMAT if structured else "%(message)s"
    formatter = logging.Formatter(fmt=fmt, datefmt=_DATE_FORMAT)

    outputs_dir = output_dir or settings.OUTPUT_DIR
    os.makedirs(outputs_dir, exist_ok=True)
    log_path = os.path.join(outputs_dir, "mappath_runs.log")

    package_logger = logging.getLogger("mappath")
    file_handler_exists = False
    for h in list(package_logger.handlers):
        if isinstance(h, logging.FileHandler):
            # 将已有文件 handler 调整为最新 formatter
            h.setFormatter(formatter)
            file_handler_exists = True
    if not file_handler_exists:
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setLevel(_RESOLVED_LEVEL)
        fh.addFilter(RunIdFilter())
        fh.setFormatter(formatter)
        package_logger.addHandler(fh)
    return log_path


__all__ = [
    "get_logger",
    "set_run_id",
    "get_recent_output",
    "export_recent_output",
    "iter_output",
    "configure_logging",
]
