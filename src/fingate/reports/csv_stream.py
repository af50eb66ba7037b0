"""Lazy CSV row parsing with spreadsheet formula-injection protection.

``parse_csv`` yields one ``dict`` per data row, keyed by the header fields in
order. Every cell passes through ``sanitize`` so values that a spreadsheet
would evaluate as formulas are neutralized before they leave this module.
"""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Iterable, Iterator

CsvRow = dict[str, str]

NEUTRALIZER = "'"

_FORMULA_PREFIX = re.compile(r"^[=@]")
_SIGN_PREFIX = re.compile(r"^[+-]")
_SIGNED_NUMBER = re.compile(r"[+-]?\d+\.?\d*", re.ASCII)
_CONTROL_PREFIX = re.compile(r"^[\t\r]")


def sanitize(value: str) -> str:
    """Prefix ``value`` with a quote if a spreadsheet would treat it as a formula.

    Signed numbers such as ``-75.00`` or ``+100`` pass through unchanged.
    """
    if _FORMULA_PREFIX.match(value):
        return NEUTRALIZER + value
    if _SIGN_PREFIX.match(value) and not _SIGNED_NUMBER.fullmatch(value):
        return NEUTRALIZER + value
    if _CONTROL_PREFIX.match(value):
        return NEUTRALIZER + value
    return value


def _is_blank(record: list[str]) -> bool:
    return not record or (len(record) == 1 and not record[0].strip())


def parse_csv(source: str | Iterable[str], delimiter: str = ",") -> Iterator[CsvRow]:
    """Yield sanitized rows from CSV text or an iterable of lines.

    The first non-blank record is the header. Quoted fields may contain the
    delimiter, line breaks and doubled quotes. Fields are stripped of
    surrounding spaces, blank lines are skipped and short rows are padded
    with empty strings.
    """
    lines = io.StringIO(source, newline="") if isinstance(source, str) else source
    reader = csv.reader(lines, delimiter=delimiter, quotechar='"', doublequote=True, strict=False)

    headers: list[str] | None = None
    for record in reader:
        if _is_blank(record):
            continue
        if headers is None:
            headers = [field.strip(" ") for field in record]
            if headers and headers[0].startswith("\ufeff"):
                headers[0] = headers[0][1:]
            continue

        row: CsvRow = {}
        for index, name in enumerate(headers):
            raw = record[index] if index < len(record) else ""
            row[name] = sanitize(raw.strip(" "))
        yield row
