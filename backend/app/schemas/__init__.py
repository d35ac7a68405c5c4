from .common import CamelModel, PaginationInfo
from .shipment import ShipmentResponse, ShipmentListResponse, ShipmentDetailResponse
from .ingestion import IngestReport
from .consolidation import (
    ConsolidationShipment,
    ConsolidationGroup,
    ConsolidationSummary,
    ConsolidationFiltersEcho,
    ConsolidationResponse,
)
from .dashboard import DashboardResponse

__all__ = [
    "CamelModel",
    "PaginationInfo",
    "ShipmentResponse",
    "ShipmentListResponse",
    "ShipmentDetailResponse",
    "IngestReport",
    "ConsolidationShipment",
    "ConsolidationGroup",
    "ConsolidationSummary",
    "ConsolidationFiltersEcho",
    "ConsolidationResponse",
    "DashboardResponse",
]
