from enum import Enum


class ResultCode(Enum):
    DONE = "done"
    FAIL = "fail"
    UNKNOWN = "unknown"


class VerboseOptions(Enum):
    INFO = "info"
    DEBUG = "debug"
    ERROR = "error"


class ProcessingMode(Enum):
    SEQUENTIAL = "sequential"  # one line at a time, output order equals input order
    PARALLEL = "parallel"  # lines are spread over worker processes, output order is not guaranteed


class CellKind(Enum):
    STRING = "string"
    NUMBER = "number"
    NULL = "null"
    EXPRESSION = "expression"  # anything else: function calls, sub-expressions, booleans, hex strings
