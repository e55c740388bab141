"""
Repository layer exports.
"""

from db.repositories.provider_cap_mapping_repository import ProviderCapMappingRepository
from db.repositories.provider_rate_repository import ProviderRateRepository
from db.repositories.ratebook_import_repository import RatebookImportRepository
from db.repositories.vehicle_match_repository import VehicleMatchRepository
from db.repositories.vehicle_repository import VehicleRepository

__all__ = [
    "ProviderCapMappingRepository",
    "ProviderRateRepository",
    "RatebookImportRepository",
    "VehicleMatchRepository",
    "VehicleRepository",
]
