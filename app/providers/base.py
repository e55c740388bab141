"""
app/providers/base.py

Shared CSV reading and value coercion for provider ratebook schemas.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Iterator
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Protocol

from app.domain.errors import RatebookParseError
from app.domain.ratebook import RatebookRow

_MONEY_NOISE = str.maketrans("", "", ",£ ")


class ProviderSchema(Protocol):
    """
    Turns one provider's ratebook file into canonical rows.
    """

    code: str

    def parse(self, content: bytes, *, contract_type: str) -> list[RatebookRow]:
        ...


def decode_content(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise RatebookParseError("Ratebook must be UTF-8 encoded.") from exc


def iter_csv_records(
    text: str,
    *,
    required_headers: Iterable[str],
    first_line_number: int = 1,
) -> Iterator[tuple[int, dict[str, str]]]:
    """
    Yield ``(line_number, row)`` for every non-empty data row.

    Values are stripped; missing trailing cells come back as "". The header
    is expected on ``first_line_number``; blank lines still count towards
    line numbers.
    """

    reader = csv.DictReader(io.StringIO(text, newline=""))
    try:
        headers = [header.strip() for header in (reader.fieldnames or [])]
        if not headers:
            raise RatebookParseError("CSV header row is missing.")
        reader.fieldnames = headers

        missing = [header for header in required_headers if header not in headers]
        if missing:
            raise RatebookParseError(f"CSV is missing required columns: {', '.join(missing)}")

        for raw_row in reader:
            row = {
                key: (value or "").strip()
                for key, value in raw_row.items()
                if isinstance(key, str)
            }
            if not any(row.values()):
                continue
            yield first_line_number - 1 + reader.line_num, row
    except csv.Error as exc:
        raise RatebookParseError(f"Invalid CSV format: {exc}") from exc


def _clean_number(value: str | None) -> str:
    return (value or "").translate(_MONEY_NOISE).strip()


def to_pence(value: str | None) -> int | None:
    """
    Convert a pounds string ("1,234.56", "£99") to integer pence.

    Blank, unparseable and zero amounts return None.
    """

    cleaned = _clean_number(value)
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if amount == 0 or not amount.is_finite():
        return None
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_int(value: str | None) -> int | None:
    cleaned = _clean_number(value)
    if not cleaned:
        return None
    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return int(number)


def optional_text(value: str | None) -> str | None:
    stripped = (value or "").strip()
    return stripped or None
