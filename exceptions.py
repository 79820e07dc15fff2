from typing import Optional


class LedgerError(Exception):
    """Base class for failures that abort a ledger run."""

    error_code = "LEDGER_ERROR"


class InputFileError(LedgerError):
    error_code = "INPUT_FILE_ERROR"


class MalformedRowError(LedgerError):
    """A row does not have the expected delimited shape."""

    error_code = "MALFORMED_ROW"

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class FieldParseError(LedgerError):
    """The type, client or tx field of a row failed to parse."""

    error_code = "FIELD_PARSE_ERROR"

    def __init__(self, field: str, value: str, line: int):
        self.field = field
        self.value = value
        self.line = line
        super().__init__(f"line {line}: invalid {field} value {value!r}")


class OutputWriteError(LedgerError):
    error_code = "OUTPUT_WRITE_ERROR"


class ConfigurationError(LedgerError):
    error_code = "CONFIGURATION_ERROR"
