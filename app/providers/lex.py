"""
app/providers/lex.py

Lex Autolease ratebook CSV.
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

PAYMENT_PLANS: dict[str, str] = {
    "Monthly in advance": PaymentPlan.MONTHLY_IN_ADVANCE,
    "Spread Rentals with 3 down": PaymentPlan.SPREAD_3_DOWN,
    "Spread Rentals with 6 down": PaymentPlan.SPREAD_6_DOWN,
    "Spread Rentals with 9 down": PaymentPlan.SPREAD_9_DOWN,
}

REQUIRED_HEADERS = ("CAP_CODE", "Manufacturer", "Model_Name")

# Columns kept verbatim in raw_data.
_EXTRA_COLUMNS = (
    "Basic_List_Price",
    "Non_Recoverable_VAT",
    "Finance_Emc_Ppm",
    "Service_Emc_Ppm",
    "Fuel_Eco_Combined",
    "Estimated_Sale_Value",
    "EURO_RATING",
    "BIK_TAX_AT_LOWER_RATE",
    "BIK_TAX_AT_HIGHER_RATE",
)


class LexSchema:
    code = "lex"

    def parse(self, content: bytes, *, contract_type: str) -> list[RatebookRow]:
        text = decode_content(content)
        return [
            self._to_row(line_number, record)
            for line_number, record in iter_csv_records(text, required_headers=REQUIRED_HEADERS)
        ]

    def _to_row(self, line_number: int, record: dict[str, str]) -> RatebookRow:
        row_contract_type = record.get("Contract_Type", "").upper()
        extras = {key: record[key] for key in _EXTRA_COLUMNS if record.get(key)}
        return RatebookRow(
            row_number=line_number,
            manufacturer=record.get("Manufacturer", ""),
            model=record.get("Model_Name", ""),
            variant=optional_text(record.get("Variant")),
            p11d=to_pence(record.get("P11D")),
            cap_code=optional_text(record.get("CAP_CODE")),
            contract_type=row_contract_type if row_contract_type in ContractType.ALL else None,
            term=parse_int(record.get("Term")) or DEFAULT_TERM_MONTHS,
            annual_mileage=parse_int(record.get("Mileage")) or DEFAULT_ANNUAL_MILEAGE,
            payment_plan=PAYMENT_PLANS.get(record.get("Payment_Plan", ""), PaymentPlan.SPREAD_6_DOWN),
            total_rental=to_pence(record.get("Rental")) or 0,
            lease_rental=to_pence(record.get("Lease_Rental")),
            service_rental=to_pence(record.get("Service_Rental")),
            is_commercial=record.get("Commercial", "").upper() == "Y",
            co2_gkm=parse_int(record.get("CO2_g_per_km")),
            fuel_type=optional_text(record.get("Fuel_Type")),
            transmission=optional_text(record.get("TRANSMISSION")),
            body_style=optional_text(record.get("Body_Style")),
            model_year=optional_text(record.get("Model_Year")),
            excess_mileage_ppm=to_pence(record.get("Excess_Mileage")),
            whole_life_cost=to_pence(record.get("Whole_Life_Cost")),
            insurance_group=optional_text(record.get("INSURANCE_GROUP")),
            raw_data=extras or None,
        )
