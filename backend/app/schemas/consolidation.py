"""
Consolidation schemas.

Weights are in kilograms and volumes in cubic meters.
"""
from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional, List
from app.schemas.common import CamelModel, PaginationInfo


class ConsolidationShipment(BaseModel):
    shipment_id: int
    customer_id: int
    origin: str
    weight: float
    volume: float
    status: str
    arrival_date: date
    delivered_date: Optional[date] = None


class ConsolidationGroup(CamelModel):
    id: str
    destination: str
    destination_name: Optional[str] = None
    departure_date: date
    carrier: str
    mode: str
    shipment_count: int
    total_weight: float
    total_volume: float
    potential_savings: int
    avg_weight_per_shipment: float
    avg_volume_per_shipment: float
    shipments: Optional[List[ConsolidationShipment]] = None


class ConsolidationSummary(CamelModel):
    total_groups: int = 0
    total_shipments: int = 0
    total_potential_savings: int = 0
    avg_shipments_per_group: float = 0
    top_destination: str = "N/A"
    top_carrier: str = "N/A"
    top_mode: str = "N/A"


class ConsolidationFiltersEcho(CamelModel):
    carrier: str = "all"
    mode: str = "all"
    destination: str = "all"
    min_group_size: int


class ConsolidationResponse(CamelModel):
    consolidation_groups: List[ConsolidationGroup]
    summary: ConsolidationSummary
    pagination: PaginationInfo
    filters: ConsolidationFiltersEcho
    last_updated: datetime
