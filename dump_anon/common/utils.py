import sys
import traceback
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, Optional, Union

import yaml

from dump_anon.common.constants import MAX_LINE_SIZE, RULE_FILE_SUFFIXES, TRACEBACK_LINES_COUNT
from dump_anon.common.errors import ConfigError, LineTooLongError

LINE_ENCODING = "utf-8"
LINE_ENCODING_ERRORS = "surrogateescape"


def exception_helper(show_traceback=True):
    exc_type, exc_value, exc_traceback = sys.exc_info()
    return "\n".join(
        [
            v
            for v in traceback.format_exception(
                exc_type, exc_value, exc_traceback if show_traceback else None
            )
        ]
    )


def exception_to_str(exc: Exception, limit: int = TRACEBACK_LINES_COUNT) -> str:
    tb_exc = traceback.TracebackException.from_exception(exc)
    lines = list(tb_exc.format())
    return "".join(lines[-limit:])


def read_yaml(file_path: Union[str, Path]) -> Dict:
    path = Path(file_path)
    if path.suffix not in RULE_FILE_SUFFIXES:
        raise ConfigError(f"File must be .yml or .yaml: {path}")

    try:
        with open(path.absolute(), "r", encoding="utf-8") as file:
            data = yaml.safe_load(file)
    except OSError as exc:
        raise ConfigError(f"Can't read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc

    return data


def decode_line(raw: bytes) -> str:
    return raw.decode(LINE_ENCODING, errors=LINE_ENCODING_ERRORS)


def encode_line(line: str) -> bytes:
    return line.encode(LINE_ENCODING, errors=LINE_ENCODING_ERRORS) + b"\n"


class LineReader:
    """
    Reads newline delimited lines from a binary stream.
    Only the trailing "\\n" is removed, so every other byte of a line survives decode/encode.
    A line longer than max_line_size bytes (newline excluded) raises LineTooLongError.
    """

    def __init__(self, stream: BinaryIO, max_line_size: int = MAX_LINE_SIZE):
        self.stream = stream
        self.max_line_size = max_line_size
        self.lines_read = 0

    def readline(self) -> Optional[str]:
        raw = self.stream.readline(self.max_line_size + 1)
        if not raw:
            return None

        self.lines_read += 1
        if raw.endswith(b"\n"):
            raw = raw[:-1]
        elif len(raw) > self.max_line_size:
            raise LineTooLongError(self.lines_read, self.max_line_size)

        return decode_line(raw)

    def __iter__(self) -> Iterator[str]:
        while True:
            line = self.readline()
            if line is None:
                return
            yield line
