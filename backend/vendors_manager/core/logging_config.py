"""
Logging setup

Console and daily log files share one format. Every line carries the id of
the API request that produced it, or "-" outside a request.
"""

import contextvars
import logging
import sys
import time
import uuid
from datetime import datetime
from pathlib import Path

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

LOG_DIR = Path("logs")

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(request_id)s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

REQUEST_ID_HEADER = "X-Request-Id"

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Stamp records with the current request id"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


class ColoredFormatter(logging.Formatter):
    """Console formatter with coloured level names"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.RESET)
        # the file handlers format the same record afterwards
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path = LOG_DIR,
    sql_debug: bool = False,
    log_to_file: bool = True,
):
    """
    Configure the root logger

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_dir: directory for the daily app/error log files
        sql_debug: log every SQL statement through these handlers
        log_to_file: write app_<date>.log and error_<date>.log
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    handlers = []
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    handlers.append(console_handler)

    if log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y-%m-%d")
        handlers.append(_file_handler(log_dir / f"app_{today}.log", logging.INFO))
        handlers.append(_file_handler(log_dir / f"error_{today}.log", logging.ERROR))

    request_filter = RequestIdFilter()
    for handler in handlers:
        handler.addFilter(request_filter)
        root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if sql_debug else logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    logging.info(f"📋 Logging initialised (level={log_level.upper()}, sql_debug={sql_debug})")


def get_logger(name: str) -> logging.Logger:
    """
    Named logger

    Usage:
        logger = get_logger(__name__)
        logger.info("Hello")
    """
    return logging.getLogger(name)


access_logger = get_logger("vendors_manager.access")


class RequestLogMiddleware(BaseHTTPMiddleware):
    """
    Assign a request id, log method/path/status/duration and echo the id
    back in the X-Request-Id response header

    A client-supplied X-Request-Id is kept so calls can be traced across
    services.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        token = request_id_var.set(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - start) * 1000
            level = logging.WARNING if response.status_code >= 500 else logging.INFO
            access_logger.log(
                level, f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f} ms)"
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)
