"""
Shipment listing and lookup.
"""
import logging
from typing import List, Tuple

from pydantic import ValidationError

from app.config.reference_loader import get_country_name
from app.errors import NotFound
from app.models import MAX_ID, Shipment
from app.schemas.common import PaginationInfo
from app.schemas.shipment import ShipmentResponse
from app.services.pagination import build_pagination, page_offset
from app.services.shipment_store import ShipmentFilters, ShipmentStore

logger = logging.getLogger(__name__)


def to_response(shipment: Shipment) -> ShipmentResponse:
    record = ShipmentResponse.model_validate(shipment)
    record.destination_name = get_country_name(record.destination.value)
    return record


def list_shipments(
    store: ShipmentStore,
    filters: ShipmentFilters,
    page: int,
    limit: int,
) -> Tuple[List[ShipmentResponse], PaginationInfo]:
    """Return one page of shipments ordered by id, plus pagination info."""
    total = store.count_shipments(filters)
    rows = store.select_shipments(filters, page_offset(page, limit), limit)

    records = []
    skipped = 0
    for row in rows:
        try:
            records.append(to_response(row))
        except ValidationError as e:
            skipped += 1
            logger.debug("Dropping shipment %s that failed validation: %s", row.shipment_id, e)
    if skipped:
        logger.warning("Dropped %d shipment rows that failed validation", skipped)

    logger.info("Retrieved %d shipments (page %d, %d total)", len(records), page, total)
    return records, build_pagination(page, limit, total)


def get_shipment(store: ShipmentStore, shipment_id: int) -> ShipmentResponse:
    if not 0 < shipment_id <= MAX_ID:
        raise NotFound("Shipment not found")
    shipment = store.get_shipment(shipment_id)
    if not shipment:
        raise NotFound("Shipment not found")
    return to_response(shipment)
