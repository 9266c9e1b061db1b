import logging
import sys
from pathlib import Path
from typing import Optional

from concurrent_log_handler import ConcurrentRotatingFileHandler

from dump_anon.common.constants import LOG_FILE_MAX_BYTES, LOG_FILE_BACKUP_COUNT
from dump_anon.common.enums import VerboseOptions

LOGGER_NAME = "dump_anon"

VERBOSE_LOG_LEVELS = {
    VerboseOptions.INFO: logging.INFO,
    VerboseOptions.DEBUG: logging.DEBUG,
    VerboseOptions.ERROR: logging.ERROR,
}


class DumpAnonLogger:
    """
    Process-wide logger of dump_anon.

    Records go to stderr, because stdout carries the masked dump. Worker processes of parallel mode share
    the optional log file, so it is written through ConcurrentRotatingFileHandler and every record
    carries the name of the process it came from.
    """

    _instance = None

    logger: logging.Logger
    _formatter: logging.Formatter
    _file_handler: Optional[ConcurrentRotatingFileHandler]

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._init_logger()
            cls._instance = instance
        return cls._instance

    def _init_logger(self):
        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

        self._formatter = logging.Formatter(
            datefmt="%Y-%m-%d %H:%M:%S",
            fmt="%(asctime)s,%(msecs)03d - %(levelname)8s - [%(processName)s] %(message)s",
        )
        self._file_handler = None

        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(self._formatter)
        self.logger.addHandler(stream_handler)

    def set_log_file(self, log_file: Path):
        log_file = log_file.resolve()
        # forked workers set the logger up again with the same file
        if self._file_handler is not None and Path(self._file_handler.baseFilename) == log_file:
            return

        self.close_log_file()
        log_file.parent.mkdir(parents=True, exist_ok=True)

        self._file_handler = ConcurrentRotatingFileHandler(
            str(log_file),
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
        )
        self._file_handler.setFormatter(self._formatter)
        self.logger.addHandler(self._file_handler)

    def close_log_file(self):
        if self._file_handler is None:
            return

        self.logger.removeHandler(self._file_handler)
        self._file_handler.flush()
        self._file_handler.close()
        self._file_handler = None


def get_logger() -> logging.Logger:
    return DumpAnonLogger().logger


def setup_logger(verbose: VerboseOptions, log_file: Optional[Path] = None) -> logging.Logger:
    dump_anon_logger = DumpAnonLogger()
    if log_file is not None:
        dump_anon_logger.set_log_file(log_file)
    dump_anon_logger.logger.setLevel(VERBOSE_LOG_LEVELS[verbose])
    return dump_anon_logger.logger


def close_log_file():
    DumpAnonLogger().close_log_file()
