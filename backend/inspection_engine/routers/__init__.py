"""PES Inspection Engine - API Routers"""
from .inspections import router as inspections_router

__all__ = [
    "inspections_router",
]
