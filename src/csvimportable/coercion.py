"""Apply a column configuration to one CSV row."""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from csvimportable.errors import InvalidValueError
from csvimportable.parsers import ValueParser
from csvimportable.types import Record, Row


@dataclass(frozen=True)
class ColumnSpec:
    """Which parser reads which CSV column, and where the result goes."""

    key: str
    parser: ValueParser
    field: str | None = None
    default: str = ""

    @property
    def target(self) -> str:
        return self.field or self.key


ColumnConfig = Mapping[str, ColumnSpec] | Iterable[ColumnSpec]


def coerce_row(row: Row, config: ColumnConfig) -> tuple[Record, list[str]]:
    """Parse every configured column of ``row``.

    ``config`` is either a mapping of target field name to ColumnSpec or a
    sequence of ColumnSpecs, each landing in ``spec.target``.

    Returns ``(fields, errors)``. All columns are attempted even after a
    failure, so one row can report several errors; a field that fails is
    left out of ``fields``.
    """
    if isinstance(config, Mapping):
        pairs = config.items()
    else:
        pairs = ((spec.target, spec) for spec in config)
    fields: Record = {}
    errors: list[str] = []
    for target, spec in pairs:
        raw = row.get(spec.key)
        if raw is None:
            raw = spec.default
        try:
            fields[target] = spec.parser.parse(raw, spec.key)
        except InvalidValueError as e:
            errors.append(e.message)
    return fields, errors
