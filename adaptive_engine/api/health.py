"""Health check endpoint."""

from fastapi import APIRouter, Depends

from adaptive_engine.api.deps import get_catalog
from adaptive_engine.services.catalog_client import CatalogClient

router = APIRouter()


@router.get("/health")
def health(catalog: CatalogClient = Depends(get_catalog)):
    """Liveness plus catalog reachability; a down catalog only disables recommendations."""
    return {
        "status": "healthy",
        "service": "adaptive-learning-engine",
        "catalog": "up" if catalog.healthy() else "down",
    }
