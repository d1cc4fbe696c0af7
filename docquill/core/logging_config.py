import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Iterable, Mapping, Optional

# Constants
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "docquill.log"
LOG_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5
QUIET_LOGGERS = ("werkzeug",)  # Flask dev server request lines


def setup_logging(log_dir: Path, debug_mode: bool = False, log_name: str = LOG_FILE_NAME,
                  quiet: Iterable[str] = QUIET_LOGGERS) -> Path:
    """
    Send logs to a rotating file and to stdout, at DEBUG in debug mode and
    INFO otherwise. Returns the log file path.

    Handlers installed by an earlier call are closed and replaced.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / (log_name or LOG_FILE_NAME)
    console_level = logging.DEBUG if debug_mode else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(console_level)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_SIZE,
        backupCount=LOG_BACKUP_COUNT,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)

    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging initialized. Log file: {log_file}")
    return log_file


def setup_logging_from_settings(settings: Mapping, debug_mode: Optional[bool] = None) -> Path:
    """Apply the log_dir, log_file and debug entries of the settings file."""
    if debug_mode is None:
        debug_mode = bool(settings.get('debug'))
    return setup_logging(
        Path(settings.get('log_dir') or 'logs'),
        debug_mode=debug_mode,
        log_name=settings.get('log_file') or LOG_FILE_NAME,
    )
