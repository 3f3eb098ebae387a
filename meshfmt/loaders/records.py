# meshfmt/loaders/records.py
"""Decoded element records: property name -> Scalar | ListValue."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple, Union

Number = Union[int, float]


@dataclass(frozen=True)
class Scalar:
    value: Number


@dataclass(frozen=True)
class ListValue:
    values: Tuple[Number, ...]

    def __len__(self) -> int:
        return len(self.values)


Value = Union[Scalar, ListValue]
Record = Dict[str, Value]


def record_value(record: Record, name: str):
    """Plain number or tuple for ``name``; KeyError if absent."""
    value = record[name]
    if isinstance(value, ListValue):
        return value.values
    return value.value


def record_to_dict(record: Record) -> dict:
    return {name: record_value(record, name) for name in record}
