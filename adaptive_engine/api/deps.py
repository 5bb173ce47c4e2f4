"""FastAPI dependencies shared across routes."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from adaptive_engine.core.security import decode_access_token
from adaptive_engine.services.catalog_client import CatalogClient, get_catalog_client

bearer_scheme = HTTPBearer(auto_error=False)


def get_catalog() -> CatalogClient:
    """Catalog client dependency (overridden in tests)."""
    return get_catalog_client()


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    """Return the token payload, or raise 401/403 unless it carries ``role=admin``."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if payload.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )
    return payload
