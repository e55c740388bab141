"""
app/services package marker.
"""

from app.services.ratebook_import_service import RatebookImportService
from app.services.ratebook_orchestrator_service import (
    RatebookOrchestratorService,
    get_ratebook_orchestrator_service,
)
from app.services.vehicle_linker import VehicleLinker
from app.services.vehicle_matching_service import VehicleMatchingService

__all__ = [
    "RatebookImportService",
    "RatebookOrchestratorService",
    "get_ratebook_orchestrator_service",
    "VehicleLinker",
    "VehicleMatchingService",
]
