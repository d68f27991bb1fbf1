"""Value parsers: normalize one raw CSV string for one column.

Every parser is used the same way, ``parser.parse(raw_value, key)``. A variant
only supplies ``parse_value`` (the shape rule) and ``error_message`` (what the
user sees when the rule is broken); the base class turns a ``ValueError``
raised by the rule into an ``InvalidValueError`` carrying the column key.
"""

import re
from datetime import datetime
from typing import Any, Iterable

from csvimportable.errors import InvalidValueError

_TRUE_WORDS = frozenset({"true", "yes", "y", "1"})
_FALSE_WORDS = frozenset({"false", "no", "n", "0"})

# ASCII digits only: no underscores, other scripts, nan or inf.
_INTEGER = re.compile(r"[+-]?[0-9]+")
_DECIMAL = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")


class ValueParser:
    """Base class for column parsers."""

    def parse(self, raw_value: str, key: str) -> Any:
        try:
            return self.parse_value(raw_value)
        except ValueError as e:
            raise InvalidValueError(key, self.error_message(key)) from e

    def parse_value(self, value: str) -> Any:
        raise NotImplementedError(f"{type(self).__name__} must implement parse_value()")

    def error_message(self, key: str) -> str:
        return f"Invalid value for column: {key}."

    def fail(self) -> None:
        raise ValueError(type(self).__name__)


class StringParser(ValueParser):
    def __init__(self, required: bool = False):
        self.required = required

    def parse_value(self, value: str) -> str:
        value = value.strip()
        if self.required and not value:
            self.fail()
        return value

    def error_message(self, key: str) -> str:
        return f"Invalid value for column: {key}. Value is required."


class ZipParser(ValueParser):
    """Postal codes: five digits (zero padded) or the nine-digit ZIP+4 form.

    A nine-digit value is returned exactly as written, dashes included; any
    other length is returned stripped of dashes and left padded to five.
    """

    def parse_value(self, value: str) -> str:
        digits = value.replace("-", "")
        # An all-dash or empty value passes and pads to "00000".
        if not all(c in "0123456789" for c in digits):
            self.fail()
        if len(digits) == 9:
            return value
        return digits.rjust(5, "0")

    def error_message(self, key: str) -> str:
        return f"Invalid value for column: {key}. Value should contain only numbers or a dash."


class IntegerParser(ValueParser):
    def parse_value(self, value: str) -> int | None:
        value = value.strip().replace(",", "")
        if not value:
            return None
        if not _INTEGER.fullmatch(value):
            self.fail()
        return int(value)

    def error_message(self, key: str) -> str:
        return f"Invalid value for column: {key}. Value should be a whole number."


class FloatParser(ValueParser):
    def parse_value(self, value: str) -> float | None:
        value = value.strip().replace(",", "").lstrip("$")
        if not value:
            return None
        if not _DECIMAL.fullmatch(value):
            self.fail()
        return float(value)

    def error_message(self, key: str) -> str:
        return f"Invalid value for column: {key}. Value should be a number."


class PercentParser(FloatParser):
    """Accepts ``12.5`` or ``12.5%`` and returns ``0.125``."""

    def parse_value(self, value: str) -> float | None:
        number = super().parse_value(value.strip().removesuffix("%"))
        if number is None:
            return None
        return number / 100

    def error_message(self, key: str) -> str:
        return f"Invalid value for column: {key}. Value should be a percentage."


class DateParser(ValueParser):
    """Parse a date in ``fmt`` and return it as YYYY-MM-DD."""

    def __init__(self, fmt: str = "%m/%d/%Y"):
        self.fmt = fmt

    def parse_value(self, value: str) -> str | None:
        value = value.strip()
        if not value:
            return None
        return datetime.strptime(value, self.fmt).strftime("%Y-%m-%d")

    def error_message(self, key: str) -> str:
        example = datetime(2024, 1, 31).strftime(self.fmt)
        return f"Invalid value for column: {key}. Value should be a date like {example}."


class BooleanParser(ValueParser):
    def parse_value(self, value: str) -> bool | None:
        word = value.strip().lower()
        if not word:
            return None
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        self.fail()

    def error_message(self, key: str) -> str:
        return f"Invalid value for column: {key}. Value should be true or false."


class SelectParser(ValueParser):
    def __init__(self, options: Iterable[str]):
        self.options = tuple(options)

    def parse_value(self, value: str) -> str:
        value = value.strip()
        if value not in self.options:
            self.fail()
        return value

    def error_message(self, key: str) -> str:
        return f"Invalid value for column: {key}. Value should be one of: {', '.join(self.options)}."
