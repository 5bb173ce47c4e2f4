"""HTTP client for the course catalog service (singleton)."""

import logging

import httpx
from pydantic import ValidationError

from adaptive_engine.config import settings
from adaptive_engine.core.exceptions import NoCatalogAvailable
from adaptive_engine.schemas.catalog import CourseCatalog

logger = logging.getLogger(__name__)


class CatalogClient:
    """Thin wrapper around the course service's catalog endpoint."""

    def __init__(
        self,
        base_url: str = settings.CATALOG_SERVICE_URL,
        timeout: float = settings.CATALOG_TIMEOUT_SECONDS,
    ) -> None:
        self._base = base_url.rstrip("/")
        self._http = httpx.Client(base_url=self._base, timeout=timeout)

    # ── health ────────────────────────────────────────────────────────────

    def healthy(self) -> bool:
        try:
            return self._http.get("/health").status_code == 200
        except httpx.HTTPError:
            return False

    # ── catalog ───────────────────────────────────────────────────────────

    def get_course_catalog(self, course_id: str) -> CourseCatalog:
        """Return the ordered topic list for *course_id*.

        Transport errors, a 404 and malformed payloads all mean the same
        thing to the recommender: there is no catalog to work from.
        """
        try:
            r = self._http.get(f"/courses/{course_id}/catalog")
            r.raise_for_status()
            catalog = CourseCatalog.model_validate({"course_id": course_id, **r.json()})
        except httpx.HTTPStatusError as e:
            logger.info("Catalog for %s unavailable: HTTP %s", course_id, e.response.status_code)
            raise NoCatalogAvailable(
                f"Catalog service has no catalog for course {course_id}",
                details={"course_id": course_id},
            ) from e
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.warning("Catalog fetch for %s failed: %s", course_id, e)
            raise NoCatalogAvailable(
                "Catalog service unreachable", details={"course_id": course_id}
            ) from e

        if not catalog.topics:
            raise NoCatalogAvailable(
                f"Course {course_id} has no topics yet", details={"course_id": course_id}
            )
        return catalog

    def close(self) -> None:
        self._http.close()


# ── singleton accessor ────────────────────────────────────────────────────────

_instance: CatalogClient | None = None


def get_catalog_client() -> CatalogClient:
    global _instance
    if _instance is None:
        _instance = CatalogClient()
        logger.info("Catalog client initialised → %s", _instance._base)
    return _instance


def close_catalog_client() -> None:
    global _instance
    if _instance is not None:
        _instance.close()
        _instance = None
