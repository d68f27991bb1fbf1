"""Shared types for the csvimportable package."""

from typing import Any

Row = dict[str, str]
Record = dict[str, Any]
Params = tuple | list | dict
ParamsList = list[tuple] | list[list]
