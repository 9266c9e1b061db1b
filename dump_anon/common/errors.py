class DumpAnonError(Exception):
    pass


class ConfigError(DumpAnonError):
    pass


class RuleCompileError(ConfigError):
    def __init__(self, table: str, column: str, reason: str):
        self.table = table
        self.column = column
        super().__init__(f"Invalid template for column `{table}`.`{column}`: {reason}")


class StatementParseError(DumpAnonError):
    pass


class TemplateRenderError(DumpAnonError):
    pass


class HashingError(DumpAnonError):
    pass


class LineTooLongError(DumpAnonError):
    def __init__(self, line_number: int, max_line_size: int):
        self.line_number = line_number
        self.max_line_size = max_line_size
        super().__init__(f"Line {line_number} is longer than {max_line_size} bytes")


class WorkerError(DumpAnonError):
    pass
