"""
app/domain/errors.py

Ratebook ingestion exceptions.
"""

from __future__ import annotations


class RatebookImportError(Exception):
    """Base exception for ratebook ingestion failures."""


class DuplicateRatebookError(RatebookImportError):
    """Raised when the same file was already imported for a provider."""

    def __init__(self, provider_code: str, file_hash: str, existing_batch_id: str | None = None) -> None:
        self.provider_code = provider_code
        self.file_hash = file_hash
        self.existing_batch_id = existing_batch_id
        detail = f" as batch {existing_batch_id}" if existing_batch_id else ""
        super().__init__(f"Duplicate {provider_code} ratebook detected; file was already imported{detail}.")


class RatebookParseError(RatebookImportError):
    """Raised when a ratebook file cannot be read into rows."""


class UnknownProviderError(RatebookImportError):
    """Raised when no ratebook schema is registered for a provider code."""


class InvalidContractTypeError(RatebookImportError):
    """Raised when a contract type is not one of the supported codes."""


class BatchPersistenceError(RatebookImportError):
    """Raised when a batch of rate rows cannot be written."""


class ImportNotFoundError(RatebookImportError):
    """Raised when a ratebook import id or batch id does not exist."""
