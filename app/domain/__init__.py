"""
app/domain package marker.
"""

from app.domain.errors import (
    BatchPersistenceError,
    DuplicateRatebookError,
    ImportNotFoundError,
    InvalidContractTypeError,
    RatebookImportError,
    RatebookParseError,
    UnknownProviderError,
)
from app.domain.ratebook import (
    ContractType,
    ImportProgress,
    LinkSummary,
    PaymentPlan,
    RatebookImportResult,
    RatebookRow,
    ResolvedRate,
)

__all__ = [
    "BatchPersistenceError",
    "ContractType",
    "DuplicateRatebookError",
    "ImportNotFoundError",
    "ImportProgress",
    "InvalidContractTypeError",
    "LinkSummary",
    "PaymentPlan",
    "RatebookImportError",
    "RatebookImportResult",
    "RatebookParseError",
    "RatebookRow",
    "ResolvedRate",
    "UnknownProviderError",
]
