"""
app/api/routers package marker.
"""

from app.api.routers.ratebooks import router as ratebooks_router

__all__ = [
    "ratebooks_router",
]
