"""
Shipment schemas.
"""
from pydantic import BaseModel
from datetime import date
from typing import Optional, List
from app.models.shipment import Destination, Carrier, ShippingMode, ShipmentStatus
from app.schemas.common import PaginationInfo


class ShipmentResponse(BaseModel):
    """A stored shipment; weight in grams, volume in cubic centimeters."""
    shipment_id: int
    customer_id: int
    origin: Optional[str] = None
    destination: Destination
    destination_name: Optional[str] = None
    weight: float
    volume: float
    carrier: Carrier
    mode: ShippingMode
    status: ShipmentStatus
    arrival_date: date
    departure_date: Optional[date] = None
    delivered_date: Optional[date] = None

    class Config:
        from_attributes = True


class ShipmentListResponse(BaseModel):
    shipments: List[ShipmentResponse]
    pagination: PaginationInfo


class ShipmentDetailResponse(BaseModel):
    shipment: ShipmentResponse
