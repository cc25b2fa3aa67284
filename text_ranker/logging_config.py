"""Logging setup for applications embedding the ranker (console + rotating file)"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

CONSOLE_FORMAT = '%(levelname)s: %(message)s'
FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s'


def setup_logging(
    log_file: Optional[Union[str, Path]] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the ``text_ranker`` logger hierarchy.

    - Console: brief logs (INFO by default), fallbacks and quality signals
    - File (optional): per-stage debug detail with size-based rotation

    The library itself never calls this; it only emits records through
    module-level loggers. Applications (the demo app, scripts) opt in.

    Args:
        log_file: Path to the log file, or None for console only
        console_level: Console logging level
        file_level: File logging level
        max_bytes: Rotate the file when it reaches this size
        backup_count: Number of rotated files to keep

    Returns:
        The configured ``text_ranker`` logger
    """
    logger = logging.getLogger("text_ranker")
    logger.setLevel(min(console_level, file_level) if log_file else console_level)

    # Remove existing handlers to avoid duplicates on re-run (streamlit reruns scripts)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            mode='a',
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)

    # jieba prints dictionary loading chatter at DEBUG
    logging.getLogger("jieba").setLevel(logging.WARNING)

    logger.debug(
        f"Logging configured: console={logging.getLevelName(console_level)}, "
        f"file={log_file or '-'}"
    )
    return logger
