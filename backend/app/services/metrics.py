"""
Dashboard metrics - reshapes store aggregates into the dashboard payload.

Store aggregates arrive in grams and cubic centimeters; every physical value
is converted to kilograms / cubic meters here, once.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from app.config.reference_loader import get_country_name, get_warehouse_config
from app.errors import InvalidRequest
from app.schemas.dashboard import (
    CapacityPoint,
    CarrierBarPoint,
    CarrierPerformance,
    DashboardCharts,
    DashboardMetrics,
    DashboardResponse,
    DateRange,
    DestinationDistribution,
    ModeDistribution,
    PieSlice,
    WarehouseUtilization,
)
from app.services.shipment_store import ShipmentStore
from app.services.units import cm3_to_m3, grams_to_kg

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30
USED_COLOR = "#FF6B6B"
AVAILABLE_COLOR = "#4ECDC4"


def resolve_date_range(
    date_from: Optional[date],
    date_to: Optional[date],
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """Fill in a missing range with the trailing 30 days ending today, inclusive."""
    today = today or date.today()
    if date_to is None:
        date_to = today if date_from is None or date_from <= today else date_from
    if date_from is None:
        date_from = date_to - timedelta(days=DEFAULT_WINDOW_DAYS - 1)
    if date_from > date_to:
        raise InvalidRequest(f"dateFrom {date_from.isoformat()} is after dateTo {date_to.isoformat()}")
    return date_from, date_to


def build_dashboard_metrics(raw: Dict[str, Any]) -> DashboardMetrics:
    return DashboardMetrics(
        total_shipments=int(raw["total_shipments"]),
        delivered_shipments=int(raw["delivered_shipments"]),
        intransit_shipments=int(raw["intransit_shipments"]),
        received_shipments=int(raw["received_shipments"]),
        total_volume=cm3_to_m3(raw["total_volume_cm3"]),
        total_weight=grams_to_kg(raw["total_weight_g"]),
        avg_volume_per_shipment=cm3_to_m3(raw["avg_volume_per_shipment_cm3"]),
        avg_weight_per_shipment=grams_to_kg(raw["avg_weight_per_shipment_g"]),
        delivery_rate=float(raw["delivery_rate"]),
        on_time_delivery_rate=float(raw["on_time_delivery_rate"]),
    )


def build_warehouse_utilization(raw: Dict[str, Any]) -> WarehouseUtilization:
    return WarehouseUtilization(
        warehouse_name=raw["warehouse_name"],
        total_volume=cm3_to_m3(raw["total_volume_cm3"]),
        shipment_count=int(raw["shipment_count"]),
        capacity_volume=cm3_to_m3(raw["capacity_volume_cm3"]),
        utilization_percentage=float(raw["utilization_percentage"]),
        available_volume=cm3_to_m3(raw["available_volume_cm3"]),
    )


def build_utilization_pie(warehouse: WarehouseUtilization) -> List[PieSlice]:
    # Built from the already converted utilization so volumes are not converted twice
    used = warehouse.utilization_percentage
    return [
        PieSlice(name="Used", value=used, volume=warehouse.total_volume, color=USED_COLOR),
        PieSlice(
            name="Available",
            value=round(100 - used, 2),
            volume=warehouse.available_volume,
            color=AVAILABLE_COLOR,
        ),
    ]


def build_mode_distribution(rows: List[Dict[str, Any]]) -> List[ModeDistribution]:
    return [
        ModeDistribution(
            mode=row["mode"].capitalize(),
            count=int(row["shipment_count"]),
            percentage=float(row["percentage"]),
            volume=cm3_to_m3(row["total_volume_cm3"]),
            weight=grams_to_kg(row["total_weight_g"]),
        )
        for row in rows
    ]


def build_carrier_bar_chart(rows: List[Dict[str, Any]]) -> List[CarrierBarPoint]:
    return [
        CarrierBarPoint(
            carrier=row["carrier"],
            date=row["arrival_date"],
            count=int(row["shipment_count"]),
            volume=cm3_to_m3(row["total_volume_cm3"]),
            weight=grams_to_kg(row["total_weight_g"]),
        )
        for row in rows
    ]


def build_carrier_performance(rows: List[Dict[str, Any]]) -> List[CarrierPerformance]:
    """One summary per carrier; the daily rows repeat carrier totals, keep the first."""
    performance: List[CarrierPerformance] = []
    seen = set()
    for row in rows:
        if row["carrier"] in seen:
            continue
        seen.add(row["carrier"])
        performance.append(
            CarrierPerformance(
                carrier=row["carrier"],
                total_shipments=int(row["total_shipments"]),
                delivered_shipments=int(row["delivered_shipments"]),
                avg_delivery_time=row["avg_delivery_time"],
                on_time_delivery_rate=float(row["on_time_delivery_rate"]),
                total_volume=cm3_to_m3(row["carrier_volume_cm3"]),
                total_weight=grams_to_kg(row["carrier_weight_g"]),
                air_shipments=int(row["air_shipments"]),
                sea_shipments=int(row["sea_shipments"]),
            )
        )
    return performance


def build_destination_distribution(rows: List[Dict[str, Any]]) -> List[DestinationDistribution]:
    return [
        DestinationDistribution(
            destination=row["destination"],
            destination_name=get_country_name(row["destination"]),
            count=int(row["shipment_count"]),
            percentage=float(row["percentage"]),
            volume=cm3_to_m3(row["total_volume_cm3"]),
            weight=grams_to_kg(row["total_weight_g"]),
            avg_delivery_time=row["avg_delivery_time"],
        )
        for row in rows
    ]


def build_capacity_timeline(rows: List[Dict[str, Any]]) -> List[CapacityPoint]:
    return [
        CapacityPoint(
            date=row["date"],
            packages=int(row["packages_received"]),
            volume=cm3_to_m3(row["volume_received_cm3"]),
            cumulative_packages=int(row["cumulative_packages"]),
            cumulative_volume=cm3_to_m3(row["cumulative_volume_cm3"]),
        )
        for row in rows
    ]


def get_dashboard(
    store: ShipmentStore,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> DashboardResponse:
    date_from, date_to = resolve_date_range(date_from, date_to)
    warehouse_cfg = get_warehouse_config()

    metrics = build_dashboard_metrics(store.dashboard_metrics(date_from, date_to))
    warehouse = build_warehouse_utilization(
        store.warehouse_utilization(warehouse_cfg["name"], warehouse_cfg["capacity_volume_cm3"])
    )
    carrier_rows = store.carrier_performance(date_from, date_to)

    charts = DashboardCharts(
        warehouse_utilization_pie_chart=build_utilization_pie(warehouse),
        shipment_mode_distribution=build_mode_distribution(store.mode_distribution(date_from, date_to)),
        carrier_bar_chart=build_carrier_bar_chart(carrier_rows),
        warehouse_capacity_timeline=build_capacity_timeline(store.capacity_timeline(date_from, date_to)),
        destination_distribution=build_destination_distribution(
            store.destination_distribution(date_from, date_to)
        ),
        carrier_performance=build_carrier_performance(carrier_rows),
    )
    logger.info(
        "Built dashboard for %s..%s: %d shipments",
        date_from.isoformat(),
        date_to.isoformat(),
        metrics.total_shipments,
    )

    return DashboardResponse(
        total_shipments=metrics.total_shipments,
        delivered_shipments=metrics.delivered_shipments,
        intransit_shipments=metrics.intransit_shipments,
        received_shipments=metrics.received_shipments,
        total_volume=metrics.total_volume,
        total_weight=metrics.total_weight,
        dashboard_metrics=metrics,
        warehouse_utilization=warehouse,
        charts=charts,
        date_range=DateRange(from_=date_from, to=date_to),
        last_updated=datetime.utcnow(),
    )
