"""Exceptions raised by csvimportable."""


class CSVImportError(Exception):
    """Base class for every error raised by this package."""


class InvalidValueError(CSVImportError):
    """A raw CSV value does not match the shape its column expects."""

    def __init__(self, key: str, message: str):
        super().__init__(message)
        self.key = key
        self.message = message


class ConfigurationError(CSVImportError):
    """A required construction argument is missing."""


class EmptyInputError(CSVImportError):
    """The CSV text has a header but no data rows."""

    def __init__(self, message: str = "There is no data to import"):
        super().__init__(message)
