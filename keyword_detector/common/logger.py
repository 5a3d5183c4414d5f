import logging
import os
from logging.handlers import RotatingFileHandler

VERBOSE_LEVEL_NUM = 15
logging.addLevelName(VERBOSE_LEVEL_NUM, "VERBOSE")

LOG_FORMAT = '[%(asctime)s %(levelname)s - %(filename)s:%(funcName)s : %(lineno)d] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# Image decoding and multipart parsing are chatty at DEBUG and VERBOSE
QUIET_LOGGERS = ("PIL", "multipart", "python_multipart")


def verbose(self, message, *args, **kws):
    if self.isEnabledFor(VERBOSE_LEVEL_NUM):
        # stacklevel=2 reports the caller's file and line, not this wrapper's.
        self.log(VERBOSE_LEVEL_NUM, message, *args, stacklevel=2, **kws)

logging.Logger.verbose = verbose


def _rotating_handler(path: str, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(logs_dir="logs",
                  console_level=VERBOSE_LEVEL_NUM,
                  file_level=logging.DEBUG,
                  console_only=True) -> logging.Logger:
    """
    Configures the root logger for the API server, the CLI and the tests.

    The console handler writes to stderr so CLI output on stdout (such as
    --json) stays parseable. Unless console_only is set, logs_dir receives
    a rotating info.log (INFO and up) and verbose.log (file_level and up,
    never below VERBOSE).
    """
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(min(console_level, file_level, VERBOSE_LEVEL_NUM))
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO)

    if not console_only:
        os.makedirs(logs_dir, exist_ok=True)
        root_logger.addHandler(
            _rotating_handler(os.path.join(logs_dir, "info.log"), logging.INFO, formatter))
        root_logger.addHandler(
            _rotating_handler(os.path.join(logs_dir, "verbose.log"),
                              max(file_level, VERBOSE_LEVEL_NUM), formatter))

    return root_logger
