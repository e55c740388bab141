"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.provider_cap_mapping import ProviderCapMapping
from db.models.provider_rate import ProviderRate
from db.models.ratebook_import import RatebookImport, RatebookImportStatus
from db.models.vehicle import Vehicle
from db.models.vehicle_cap_match import VehicleCapMatch

__all__ = [
    "Vehicle",
    "VehicleCapMatch",
    "RatebookImport",
    "RatebookImportStatus",
    "ProviderRate",
    "ProviderCapMapping",
]
