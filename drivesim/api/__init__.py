"""
API Module — FastAPI Simulation Control

Public API:
- app: FastAPI application instance
- simulation_router / vfd_router: Route groups
"""

from .main import app
from .simulation_routes import router as simulation_router
from .vfd_routes import router as vfd_router

__all__ = [
    "app",
    "simulation_router",
    "vfd_router",
]
