import logging
import os
from logging.handlers import RotatingFileHandler

_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"


def _build_stream_handler(level: int) -> logging.StreamHandler:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT, "%H:%M:%S"))
    handler.setLevel(level)
    handler.name = "opsroom_stream"
    return handler


def _build_file_handler(log_dir: str) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(os.path.join(log_dir, "opsroom.log"), maxBytes=5_000_000, backupCount=3)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler.setLevel(logging.DEBUG)
    handler.name = "opsroom_file"
    return handler


def configure_logging(level: str = "INFO", log_dir: str | None = None) -> None:
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handlers: list[logging.Handler] = [_build_stream_handler(numeric_level)]
    if log_dir:
        handlers.append(_build_file_handler(log_dir))

    root_logger = logging.getLogger()
    root_logger.setLevel(min(numeric_level, logging.DEBUG) if log_dir else numeric_level)
    root_logger.handlers = list(handlers)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = list(handlers)
        uv_logger.propagate = False

    root_logger.info("Logging initialized level=%s log_dir=%s", level, log_dir)
