"""
Shipment API endpoints: listing, upload, metrics and consolidation.
"""
import io
import logging
from datetime import date
from typing import List, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.config.reference_loader import get_ingestion_limits, get_pagination_defaults
from app.db.database import get_db
from app.errors import DashboardError, InvalidRequest, NotFound, UnexpectedFailure
from app.models import MAX_ID, Carrier, Destination, ShipmentStatus, ShippingMode
from app.schemas.consolidation import ConsolidationResponse
from app.schemas.dashboard import DashboardResponse
from app.schemas.ingestion import IngestReport
from app.schemas.shipment import ShipmentDetailResponse, ShipmentListResponse
from app.services import consolidation, metrics, shipment_query
from app.services.ingestion import check_upload_size, ingest_shipments_csv
from app.services.shipment_store import ConsolidationFilters, ShipmentFilters, ShipmentStore

router = APIRouter()
logger = logging.getLogger(__name__)

E = TypeVar("E")

PAGINATION = get_pagination_defaults()

EXPORT_FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def parse_filter(enum_cls: Type[E], value: Optional[str], name: str) -> Optional[E]:
    """Map a query value to an enum member; empty and "all" mean no filter."""
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned or cleaned.lower() == "all":
        return None
    for member in enum_cls:
        if member.value.lower() == cleaned.lower():
            return member
    raise InvalidRequest(f"Invalid {name}: {value}")


@router.get("", response_model=ShipmentListResponse)
async def list_shipments(
    page: int = Query(1, ge=1),
    limit: int = Query(PAGINATION["default_limit"], ge=1, le=PAGINATION["max_limit"]),
    status_filter: Optional[str] = Query(None, alias="status"),
    carrier: Optional[str] = None,
    destination: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List shipments ordered by shipment id."""
    filters = ShipmentFilters(
        status=parse_filter(ShipmentStatus, status_filter, "status"),
        carrier=parse_filter(Carrier, carrier, "carrier"),
        destination=parse_filter(Destination, destination, "destination"),
        search=search,
    )
    try:
        shipments, pagination = shipment_query.list_shipments(ShipmentStore(db), filters, page, limit)
        return ShipmentListResponse(shipments=shipments, pagination=pagination)
    except DashboardError:
        raise
    except Exception as e:
        logger.exception("Unexpected error listing shipments")
        raise UnexpectedFailure("Failed to retrieve shipments", details=str(e)) from e


@router.post("/upload", response_model=IngestReport, status_code=status.HTTP_200_OK)
async def upload_shipments(
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db)
):
    """Replace all shipments with the contents of an uploaded CSV file."""
    if file is None:
        raise InvalidRequest("CSV file is required")

    limits = get_ingestion_limits()
    if file.size is not None:
        check_upload_size(file.size, limits["max_upload_bytes"])

    try:
        data = await file.read()
        report = await ingest_shipments_csv(ShipmentStore(db), data, limits)
        logger.info(
            "Uploaded %s: %d rows processed, %d valid",
            file.filename,
            report.total_processed,
            report.total_valid,
        )
        return report
    except DashboardError:
        raise
    except Exception as e:
        logger.exception("Unexpected error processing %s", file.filename)
        raise UnexpectedFailure("Failed to process CSV", details=str(e)) from e


@router.get("/metrics", response_model=DashboardResponse)
async def get_dashboard_metrics(
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    db: Session = Depends(get_db)
):
    """Dashboard metrics for an arrival date range (default: last 30 days)."""
    try:
        return metrics.get_dashboard(ShipmentStore(db), date_from, date_to)
    except DashboardError:
        raise
    except Exception as e:
        logger.exception("Dashboard API error")
        raise UnexpectedFailure("Failed to fetch dashboard data", details=str(e)) from e


def _consolidation_filters(
    carrier: Optional[str],
    mode: Optional[str],
    destination: Optional[str],
) -> ConsolidationFilters:
    return ConsolidationFilters(
        carrier=parse_filter(Carrier, carrier, "carrier"),
        mode=parse_filter(ShippingMode, mode, "mode"),
        destination=parse_filter(Destination, destination, "destination"),
    )


@router.get("/consolidation", response_model=ConsolidationResponse)
async def get_consolidation_groups(
    page: int = Query(1, ge=1),
    limit: int = Query(PAGINATION["default_limit"], ge=1, le=PAGINATION["max_limit"]),
    carrier: Optional[str] = None,
    mode: Optional[str] = None,
    destination: Optional[str] = None,
    min_group_size: Optional[int] = Query(None, alias="minGroupSize", ge=1),
    include_details: bool = Query(False, alias="includeDetails"),
    db: Session = Depends(get_db)
):
    """Consolidation opportunities: shipments sharing destination, carrier, mode and departure date."""
    filters = _consolidation_filters(carrier, mode, destination)
    try:
        return consolidation.get_consolidation(
            ShipmentStore(db),
            filters,
            page,
            limit,
            include_details=include_details,
            min_group_size=min_group_size,
        )
    except DashboardError:
        raise
    except Exception as e:
        logger.exception("Unexpected error computing consolidation groups")
        raise UnexpectedFailure("Failed to retrieve consolidation data", details=str(e)) from e


@router.get("/consolidation/export")
async def export_consolidation_groups(
    carrier: Optional[str] = None,
    mode: Optional[str] = None,
    destination: Optional[str] = None,
    min_group_size: Optional[int] = Query(None, alias="minGroupSize", ge=1),
    group_ids: Optional[List[str]] = Query(None, alias="groupId"),
    export_format: str = Query("csv", alias="format"),
    db: Session = Depends(get_db)
):
    """Download the member shipments of consolidation groups as CSV or Excel."""
    export_format = export_format.lower()
    if export_format not in EXPORT_FORMATS:
        raise InvalidRequest(f"Invalid format: {export_format}. Must be csv or xlsx")
    filters = _consolidation_filters(carrier, mode, destination)
    store = ShipmentStore(db)
    try:
        if export_format == "xlsx":
            content = io.BytesIO(
                consolidation.export_consolidation_workbook(store, filters, group_ids, min_group_size)
            )
        else:
            content = io.StringIO(
                consolidation.export_consolidation_csv(store, filters, group_ids, min_group_size)
            )
    except DashboardError:
        raise
    except Exception as e:
        logger.exception("Unexpected error exporting consolidation groups")
        raise UnexpectedFailure("Failed to export consolidation data", details=str(e)) from e

    return StreamingResponse(
        content,
        media_type=EXPORT_FORMATS[export_format],
        headers={"Content-Disposition": f"attachment; filename=consolidation_groups.{export_format}"},
    )


@router.get("/{shipment_id}", response_model=ShipmentDetailResponse)
async def get_shipment(
    shipment_id: str,
    db: Session = Depends(get_db)
):
    """Get a specific shipment."""
    cleaned = shipment_id.strip()
    if not cleaned.isdecimal():
        raise InvalidRequest("Invalid shipment ID")
    # Too many digits for any stored id
    if len(cleaned.lstrip("0")) > len(str(MAX_ID)):
        raise NotFound("Shipment not found")
    try:
        shipment = shipment_query.get_shipment(ShipmentStore(db), int(cleaned))
        return ShipmentDetailResponse(shipment=shipment)
    except DashboardError:
        raise
    except Exception as e:
        logger.exception("Error fetching shipment %s", shipment_id)
        raise UnexpectedFailure("Failed to fetch shipment", details=str(e)) from e
