"""
POS/ERP catalog snapshot provider integration.

The provider returns every catalog row plus option metadata:
    { rows: [...], total, options: { categories, shops }, truncated }
or an error payload { error }.
"""

from typing import Optional
import requests
import structlog
from pydantic import ValidationError as PydanticValidationError

from config import settings
from exceptions import CatalogSnapshotError
from models.catalog import CatalogSnapshot
from utils.text_utils import normalize_text

logger = structlog.get_logger(__name__)

SNAPSHOT_PAGE_SIZE = 20000


def build_snapshot_params(refresh: bool) -> dict[str, str]:
    """Query string asking for every row, sorted by custom SKU."""
    params = {
        "all": "1",
        "pageSize": str(SNAPSHOT_PAGE_SIZE),
        "sortField": "customSku",
        "sortDir": "asc",
        "shops": "all",
        "includeNoStock": "1",
    }
    if refresh:
        params["refresh"] = "1"
    return params


def fetch_catalog_snapshot(
    refresh: bool = False,
    url: Optional[str] = None,
    timeout: Optional[float] = None
) -> CatalogSnapshot:
    """
    Fetch the catalog snapshot from the provider.

    Args:
        refresh: Ask the provider to rebuild its own cache
        url: Provider endpoint (defaults to settings)
        timeout: Request timeout in seconds (defaults to settings)

    Returns:
        Validated CatalogSnapshot

    Raises:
        CatalogSnapshotError: Provider unreachable, erroring or malformed
    """
    endpoint = url or settings.catalog_snapshot_url
    logger.info("fetching_catalog_snapshot", url=endpoint, refresh=refresh)

    try:
        response = requests.get(
            endpoint,
            params=build_snapshot_params(refresh),
            timeout=timeout or settings.catalog_snapshot_timeout_seconds
        )
    except requests.exceptions.RequestException as e:
        logger.error("catalog_snapshot_request_failed", error=str(e))
        raise CatalogSnapshotError(f"Unable to load Lightspeed catalog: {e}")

    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    upstream_error = normalize_text(body.get("error"))
    if not response.ok or upstream_error:
        logger.error(
            "catalog_snapshot_error",
            status=response.status_code,
            error=upstream_error
        )
        raise CatalogSnapshotError(
            upstream_error or "Unable to load Lightspeed catalog.",
            details={"upstream_status": response.status_code}
        )

    try:
        snapshot = CatalogSnapshot.model_validate(body)
    except PydanticValidationError as e:
        logger.error("catalog_snapshot_invalid", error=str(e))
        raise CatalogSnapshotError("Lightspeed catalog response was malformed.")

    logger.info(
        "catalog_snapshot_loaded",
        rows=len(snapshot.rows),
        total=snapshot.total_in_source,
        truncated=snapshot.truncated
    )
    return snapshot
