"""
Dashboard metrics schemas.

All physical values are display units: kilograms and cubic meters.
"""
from pydantic import Field
from datetime import date, datetime
from typing import Optional, List
from app.schemas.common import CamelModel


class DashboardMetrics(CamelModel):
    total_shipments: int
    delivered_shipments: int
    intransit_shipments: int
    received_shipments: int
    total_volume: float
    total_weight: float
    avg_volume_per_shipment: float
    avg_weight_per_shipment: float
    delivery_rate: float
    on_time_delivery_rate: float


class WarehouseUtilization(CamelModel):
    warehouse_name: str
    total_volume: float
    shipment_count: int
    capacity_volume: float
    utilization_percentage: float
    available_volume: float


class PieSlice(CamelModel):
    name: str
    value: float
    volume: float
    color: str


class ModeDistribution(CamelModel):
    mode: str
    count: int
    percentage: float
    volume: float
    weight: float


class CarrierBarPoint(CamelModel):
    carrier: str
    date: date
    count: int
    volume: float
    weight: float


class CapacityPoint(CamelModel):
    date: date
    packages: int
    volume: float
    cumulative_packages: int
    cumulative_volume: float


class DestinationDistribution(CamelModel):
    destination: str
    destination_name: Optional[str] = None
    count: int
    percentage: float
    volume: float
    weight: float
    avg_delivery_time: Optional[float] = None


class CarrierPerformance(CamelModel):
    carrier: str
    total_shipments: int
    delivered_shipments: int
    avg_delivery_time: Optional[float] = None
    on_time_delivery_rate: float
    total_volume: float
    total_weight: float
    air_shipments: int
    sea_shipments: int


class DashboardCharts(CamelModel):
    warehouse_utilization_pie_chart: List[PieSlice]
    shipment_mode_distribution: List[ModeDistribution]
    carrier_bar_chart: List[CarrierBarPoint]
    warehouse_capacity_timeline: List[CapacityPoint]
    destination_distribution: List[DestinationDistribution]
    carrier_performance: List[CarrierPerformance]


class DateRange(CamelModel):
    from_: date = Field(alias="from")
    to: date


class DashboardResponse(CamelModel):
    total_shipments: int
    delivered_shipments: int
    intransit_shipments: int
    received_shipments: int
    total_volume: float
    total_weight: float
    dashboard_metrics: DashboardMetrics
    warehouse_utilization: WarehouseUtilization
    charts: DashboardCharts
    date_range: DateRange
    last_updated: datetime
