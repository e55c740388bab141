"""
app/providers/ogilvie.py

Ogilvie Fleet ratebook CSV. Rows carry no CAP code; the derivative name is
rebuilt the way Ogilvie publishes it so the provider mapping table can be
consulted.
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
    "1 in Advance": PaymentPlan.MONTHLY_IN_ADVANCE,
    "Spread with 3 up front": PaymentPlan.SPREAD_3_DOWN,
    "Spread with 6 up front": PaymentPlan.SPREAD_6_DOWN,
    "Spread with 9 up front": PaymentPlan.SPREAD_9_DOWN,
}

PRODUCT_CONTRACT_TYPES: dict[str, str] = {
    "Contract Hire": ContractType.CH,
    "Contract Hire (No Maintenance)": ContractType.CHNM,
    "Salary Sacrifice": ContractType.BSSNL,
}

REQUIRED_HEADERS = ("Manufacturer Name", "Model Name", "Derivative Name")


def map_payment_plan(value: str) -> str:
    exact = PAYMENT_PLANS.get(value)
    if exact is not None:
        return exact
    lowered = value.lower()
    if "spread" in lowered and "6" in lowered:
        return PaymentPlan.SPREAD_6_DOWN
    if "spread" in lowered and "3" in lowered:
        return PaymentPlan.SPREAD_3_DOWN
    return PaymentPlan.MONTHLY_IN_ADVANCE


def derivative_name(manufacturer: str, model: str, variant: str | None, year: str | None) -> str:
    """
    "ABARTH 500 ELECTRIC HATCHBACK 114kW 42.2kWh 3dr Auto (2023)" style name.
    """

    name = " ".join(part for part in (manufacturer, model, variant or "") if part)
    return f"{name} ({year})" if year else name


def annual_mileage(contract_mileage: int | None, term: int) -> int:
    """
    Ogilvie quotes total contract mileage; rates are stored per year.
    """

    if contract_mileage is None:
        return DEFAULT_ANNUAL_MILEAGE
    years = term / 12
    return round(contract_mileage / years) if years > 0 else contract_mileage


class OgilvieSchema:
    code = "ogilvie"

    def parse(self, content: bytes, *, contract_type: str) -> list[RatebookRow]:
        text = decode_content(content)
        return [
            self._to_row(line_number, record)
            for line_number, record in iter_csv_records(text, required_headers=REQUIRED_HEADERS)
        ]

    def _to_row(self, line_number: int, record: dict[str, str]) -> RatebookRow:
        manufacturer = record.get("Manufacturer Name", "")
        model = record.get("Model Name", "")
        variant = optional_text(record.get("Derivative Name"))
        year = optional_text(record.get("Year Introduced"))
        term = parse_int(record.get("Contract Term")) or DEFAULT_TERM_MONTHS
        extras = {
            key: record[key]
            for key in ("Range Name", "Product", "Monthly Effective Rental", "EC Combined mpg")
            if record.get(key)
        }

        return RatebookRow(
            row_number=line_number,
            manufacturer=manufacturer,
            model=model,
            variant=variant,
            p11d=to_pence(record.get("P11D Value")),
            derivative_name=derivative_name(manufacturer, model, variant, year),
            contract_type=PRODUCT_CONTRACT_TYPES.get(record.get("Product", "")),
            term=term,
            annual_mileage=annual_mileage(parse_int(record.get("Contract Mileage")), term),
            payment_plan=map_payment_plan(record.get("Payment Plan", "")),
            total_rental=(
                to_pence(record.get("Regular Rental"))
                or to_pence(record.get("Monthly Effective Rental"))
                or 0
            ),
            lease_rental=to_pence(record.get("Finance Rental Exc. VAT")),
            service_rental=to_pence(record.get("Non Finance Rental")),
            co2_gkm=parse_int(record.get("CO2 gkm")),
            fuel_type=optional_text(record.get("Fuel Type")),
            transmission=optional_text(record.get("Transmission")),
            body_style=optional_text(record.get("Body Styles")),
            model_year=year,
            whole_life_cost=to_pence(record.get("Period Whole Life Costs")),
            insurance_group=optional_text(record.get("InsuranceGroup50")),
            raw_data=extras or None,
        )
