"""
app/schemas package marker.
"""

from app.schemas.ratebook import (
    RatebookImportAcceptedResponse,
    RatebookImportListResponse,
    RatebookImportStatusResponse,
)

__all__ = [
    "RatebookImportAcceptedResponse",
    "RatebookImportListResponse",
    "RatebookImportStatusResponse",
]
