import json
import time
from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Optional

from dump_anon.common.enums import ResultCode, ProcessingMode, VerboseOptions


@dataclass(frozen=True)
class RunOptions:
    dump_anon_version: str
    internal_operation_id: str
    config: str
    cost: int
    processing_mode: ProcessingMode
    processes: int
    queue_size: int
    max_line_size: int
    dialect: str
    verbose: VerboseOptions
    debug: bool
    log_file: Optional[str]
    validate_rules: bool
    version: bool

    def to_dict(self):
        return {
            k: v.value if isinstance(v, Enum) else v
            for k, v in asdict(self).items()
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


@dataclass
class MaskStats:
    lines_read: int = 0
    lines_written: int = 0
    candidates: int = 0
    masked_statements: int = 0
    masked_cells: int = 0
    skipped_cells: int = 0
    parse_errors: int = 0

    def merge(self, other: "MaskStats"):
        for field in fields(self):
            setattr(self, field.name, getattr(self, field.name) + getattr(other, field.name))

    def to_dict(self):
        return asdict(self)

    def __str__(self):
        return ", ".join(f"{k} = {v}" for k, v in self.to_dict().items())


class DumpAnonResult:
    run_options = None
    result_code = ResultCode.UNKNOWN
    stats: Optional[MaskStats] = None
    start_time = None
    end_time = None
    _elapsed = None
    _exception = None
    _traceback = None

    def start(self, run_options: RunOptions):
        self.run_options = run_options
        self.start_time = time.time()

    def fail(self, exception: Exception = None):
        from dump_anon.common.utils import exception_to_str

        self.end_time = time.time()
        self.result_code = ResultCode.FAIL
        self._exception = exception
        if exception is not None:
            self._traceback = exception_to_str(exception)

    def complete(self):
        self.end_time = time.time()
        self.result_code = ResultCode.DONE

    def to_dict(self):
        return {
            "result_code": self.result_code.value,
            "started": self.start_time,
            "ended": self.end_time,
            "stats": self.stats.to_dict() if self.stats else None,
        }

    @property
    def elapsed(self):
        if not self._elapsed:
            if self.start_time is None or self.end_time is None:
                return None

            self._elapsed = round(self.end_time - self.start_time, 2)
        return self._elapsed

    @property
    def internal_operation_id(self) -> Optional[str]:
        if not self.run_options:
            return None
        return self.run_options.internal_operation_id

    @property
    def exception(self) -> Optional[Exception]:
        return self._exception

    @property
    def error_message(self) -> Optional[str]:
        return self._traceback
