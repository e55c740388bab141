"""
app/api/dependencies.py

Shared FastAPI dependencies for ratebook upload validation.
"""

from __future__ import annotations

from fastapi import File, HTTPException, UploadFile, status

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "text/plain",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Accept ratebook uploads that look like CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    if not filename.endswith(".csv") and content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Ratebook uploads must be CSV files.",
        )

    return file
