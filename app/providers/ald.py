"""
app/providers/ald.py

ALD Automotive broker ratebook CSV.

Exports may start with a title line ("Broker ratebook generated ...") and a
record-count line before the header row.
"""

from __future__ import annotations

from app.domain.ratebook import (
    DEFAULT_ANNUAL_MILEAGE,
    DEFAULT_TERM_MONTHS,
    ContractType,
    PaymentPlan,
    RatebookRow,
)
from app.providers.base import decode_content, iter_csv_records, optional_text, parse_int, to_pence

REQUIRED_HEADERS = ("CAP CODE", "MANUFACTURER", "VEHICLE DESCRIPTION")
TITLE_MARKERS = ("Broker", "Generated")

_EXTRA_COLUMNS = ("WIN ID", "CAP ID", "IDS CODE", "OTR", "MRP", "BASIC PRICE", "VAT", "ENGSIZE", "DOORS")


def strip_preamble(text: str) -> tuple[str, int]:
    """
    Drop the optional title and count lines.

    Returns the remaining text and the number of lines removed.
    """

    lines = text.splitlines(keepends=True)
    skip = 0
    if lines and any(marker in lines[0] for marker in TITLE_MARKERS):
        skip = 1
        if len(lines) > 1 and "," not in lines[1]:
            skip = 2
    return "".join(lines[skip:]), skip


def split_description(description: str) -> tuple[str, str | None]:
    """
    First two words are the model, the rest is the variant.
    """

    words = description.split()
    model = " ".join(words[:2])
    variant = " ".join(words[2:])
    return model, variant or None


def select_rentals(
    contract_type: str,
    with_maintenance: int | None,
    without_maintenance: int | None,
) -> tuple[int, int | None, int | None]:
    """
    Return ``(total, lease, service)`` rentals in pence for a contract type.
    """

    if contract_type in ContractType.WITH_MAINTENANCE and with_maintenance is not None:
        service = with_maintenance - without_maintenance if without_maintenance is not None else None
        return with_maintenance, without_maintenance, service
    if contract_type in ContractType.WITH_MAINTENANCE:
        return without_maintenance or 0, without_maintenance, None
    return without_maintenance or with_maintenance or 0, without_maintenance, None


class ALDSchema:
    code = "ald"

    def parse(self, content: bytes, *, contract_type: str) -> list[RatebookRow]:
        text, skipped = strip_preamble(decode_content(content))
        return [
            self._to_row(line_number, record, contract_type)
            for line_number, record in iter_csv_records(
                text,
                required_headers=REQUIRED_HEADERS,
                first_line_number=skipped + 1,
            )
        ]

    def _to_row(self, line_number: int, record: dict[str, str], contract_type: str) -> RatebookRow:
        model, variant = split_description(record.get("VEHICLE DESCRIPTION", ""))
        total, lease, service = select_rentals(
            contract_type,
            to_pence(record.get("NET RENTAL WM")),
            to_pence(record.get("NET RENTAL CM")),
        )
        extras = {key: record[key] for key in _EXTRA_COLUMNS if record.get(key)}

        return RatebookRow(
            row_number=line_number,
            manufacturer=record.get("MANUFACTURER", "").upper(),
            model=model,
            variant=variant,
            p11d=to_pence(record.get("P11D")),
            cap_code=optional_text(record.get("CAP CODE")),
            term=parse_int(record.get("TERM")) or DEFAULT_TERM_MONTHS,
            annual_mileage=parse_int(record.get("ANNUAL_MILEAGE")) or DEFAULT_ANNUAL_MILEAGE,
            payment_plan=PaymentPlan.MONTHLY_IN_ADVANCE,
            total_rental=total,
            lease_rental=lease,
            service_rental=service,
            co2_gkm=parse_int(record.get("CO2")),
            fuel_type=optional_text(record.get("FUEL TYPE")),
            transmission=optional_text(record.get("TRANSMISSION")),
            body_style=optional_text(record.get("BODY STYLE")),
            model_year=optional_text(record.get("MODELYEAR")),
            excess_mileage_ppm=to_pence(record.get("Excess Mileage")),
            whole_life_cost=to_pence(record.get("WLC")),
            insurance_group=optional_text(record.get("INSURANCE GROUP")),
            raw_data=extras or None,
        )
