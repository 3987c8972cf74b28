# src/transaction_import/mapper.py
from typing import Sequence

from .errors import MalformedLineError
from .models import ColumnIndex, Record

DELIMITER = ","


def split_line(line: str, delimiter: str = DELIMITER) -> list:
    # no quoting: a field containing the delimiter shifts every later column
    return line.split(delimiter)


def _field(fields: Sequence[str], index: int, name: str) -> str:
    if index >= len(fields):
        raise MalformedLineError(
            f"column {name} wants field {index} but the line has {len(fields)} fields",
            field_count=len(fields),
        )
    return fields[index]


def map_fields(fields: Sequence[str], columns: ColumnIndex) -> Record:
    """Project split fields onto a Record, verbatim."""
    return Record(
        transaction_id=_field(fields, columns.transaction_id, "transactionID"),
        transaction_date=_field(fields, columns.transaction_date, "transactionDate"),
        first_name=_field(fields, columns.first_name, "firstName"),
        last_name=_field(fields, columns.last_name, "lastName"),
    )


def map_line(line: str, columns: ColumnIndex, delimiter: str = DELIMITER) -> Record:
    return map_fields(split_line(line, delimiter), columns)
