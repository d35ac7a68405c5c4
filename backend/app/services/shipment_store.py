"""
Row store for shipments.

Wraps a SQLAlchemy session with the operations the dashboard needs: bulk
replace, filtered/paginated selects and the aggregate queries behind the
metrics and consolidation views. Aggregates are returned in storage units
(grams, cubic centimeters); conversion for display happens in the callers.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, TypeVar

import pandas as pd
from sqlalchemy import and_, case, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config.reference_loader import get_country_names
from app.errors import UpstreamFailure
from app.models import MAX_ID, Carrier, Destination, Shipment, ShipmentStatus, ShippingMode

logger = logging.getLogger(__name__)

T = TypeVar("T")

CANDIDATE_COLUMNS = [
    "shipment_id",
    "customer_id",
    "origin",
    "destination",
    "weight",
    "volume",
    "carrier",
    "mode",
    "status",
    "arrival_date",
    "departure_date",
    "delivered_date",
]


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _percentage(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


@dataclass
class ShipmentFilters:
    """Listing filters; ``None`` matches everything."""
    status: Optional[ShipmentStatus] = None
    carrier: Optional[Carrier] = None
    destination: Optional[Destination] = None
    search: Optional[str] = None


@dataclass
class ConsolidationFilters:
    carrier: Optional[Carrier] = None
    mode: Optional[ShippingMode] = None
    destination: Optional[Destination] = None


class ShipmentStore:
    def __init__(self, db: Session):
        self.db = db

    def _run(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error running %s: %s", operation, e)
            raise UpstreamFailure(f"Failed to fetch {operation}", details=str(e)) from e

    # -- writes -------------------------------------------------------------

    def truncate(self) -> int:
        """Delete every shipment row."""
        try:
            deleted = self.db.query(Shipment).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error clearing shipments table: %s", e)
            raise UpstreamFailure("Failed to clear shipments table", details=str(e)) from e
        logger.info("Cleared %d shipment rows", deleted)
        return deleted

    def insert_batch(self, rows: List[Dict[str, Any]]) -> None:
        """Insert and commit one batch; any failure is re-raised after rolling back."""
        try:
            self.db.bulk_insert_mappings(Shipment, rows)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # -- listing ------------------------------------------------------------

    def _filtered(self, filters: ShipmentFilters):
        query = self.db.query(Shipment)
        if filters.status:
            query = query.filter(Shipment.status == filters.status)
        if filters.carrier:
            query = query.filter(Shipment.carrier == filters.carrier)
        if filters.destination:
            query = query.filter(Shipment.destination == filters.destination)

        term = (filters.search or "").strip()
        if term:
            lowered = term.lower()
            clauses = [Shipment.origin.icontains(term, autoescape=True)]
            carriers = [c for c in Carrier if lowered in c.value.lower()]
            if carriers:
                clauses.append(Shipment.carrier.in_(carriers))
            destinations = [
                code for code, name in get_country_names().items()
                if lowered in name.lower()
            ]
            if destinations:
                clauses.append(Shipment.destination.in_(destinations))
            number = int(term) if term.isdecimal() and len(term) <= len(str(MAX_ID)) else 0
            if 0 < number <= MAX_ID:
                clauses.append(Shipment.shipment_id == number)
                clauses.append(Shipment.customer_id == number)
            query = query.filter(or_(*clauses))
        return query

    def count_shipments(self, filters: ShipmentFilters) -> int:
        return self._run("shipment count", lambda: self._filtered(filters).count())

    def select_shipments(self, filters: ShipmentFilters, offset: int, limit: int) -> List[Shipment]:
        return self._run(
            "shipments",
            lambda: self._filtered(filters)
            .order_by(Shipment.shipment_id.asc())
            .offset(offset)
            .limit(limit)
            .all(),
        )

    def get_shipment(self, shipment_id: int) -> Optional[Shipment]:
        return self._run(
            "shipment",
            lambda: self.db.query(Shipment).filter(Shipment.shipment_id == shipment_id).first(),
        )

    # -- aggregates ---------------------------------------------------------

    @staticmethod
    def _in_range(date_from: date, date_to: date):
        return Shipment.arrival_date.between(date_from, date_to)

    @staticmethod
    def _count_where(condition):
        return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

    @staticmethod
    def _on_time():
        return and_(
            Shipment.status == ShipmentStatus.DELIVERED,
            Shipment.delivered_date.isnot(None),
            Shipment.delivered_date <= Shipment.arrival_date,
        )

    def _delivery_days(self, key_column, date_from: date, date_to: date) -> Dict[Any, float]:
        """Average days from departure (or arrival) to delivery, per key."""
        rows = (
            self.db.query(
                key_column.label("key"),
                Shipment.arrival_date,
                Shipment.departure_date,
                Shipment.delivered_date,
            )
            .filter(
                self._in_range(date_from, date_to),
                Shipment.status == ShipmentStatus.DELIVERED,
                Shipment.delivered_date.isnot(None),
            )
            .all()
        )
        if not rows:
            return {}
        df = pd.DataFrame(
            [
                {
                    "key": _plain(r.key),
                    "start": r.departure_date or r.arrival_date,
                    "end": r.delivered_date,
                }
                for r in rows
            ]
        )
        df["days"] = (pd.to_datetime(df["end"]) - pd.to_datetime(df["start"])).dt.days
        averages = df.groupby("key")["days"].mean()
        return {key: round(float(value), 2) for key, value in averages.items()}

    def dashboard_metrics(self, date_from: date, date_to: date) -> Dict[str, Any]:
        def query():
            row = (
                self.db.query(
                    func.count(Shipment.shipment_id).label("total_shipments"),
                    self._count_where(Shipment.status == ShipmentStatus.DELIVERED).label("delivered"),
                    self._count_where(Shipment.status == ShipmentStatus.INTRANSIT).label("intransit"),
                    self._count_where(Shipment.status == ShipmentStatus.RECEIVED).label("received"),
                    self._count_where(self._on_time()).label("on_time"),
                    func.coalesce(func.sum(Shipment.volume), 0).label("total_volume_cm3"),
                    func.coalesce(func.sum(Shipment.weight), 0).label("total_weight_g"),
                )
                .filter(self._in_range(date_from, date_to))
                .one()
            )
            total = int(row.total_shipments or 0)
            delivered = int(row.delivered or 0)
            total_volume = float(row.total_volume_cm3 or 0)
            total_weight = float(row.total_weight_g or 0)
            return {
                "total_shipments": total,
                "delivered_shipments": delivered,
                "intransit_shipments": int(row.intransit or 0),
                "received_shipments": int(row.received or 0),
                "total_volume_cm3": total_volume,
                "total_weight_g": total_weight,
                "avg_volume_per_shipment_cm3": total_volume / total if total else 0.0,
                "avg_weight_per_shipment_g": total_weight / total if total else 0.0,
                "delivery_rate": _percentage(delivered, total),
                "on_time_delivery_rate": _percentage(int(row.on_time or 0), delivered),
            }

        return self._run("metrics", query)

    def warehouse_utilization(self, warehouse_name: str, capacity_cm3: float) -> Dict[str, Any]:
        """Volume held in the warehouse: every shipment not yet delivered."""
        def query():
            row = (
                self.db.query(
                    func.count(Shipment.shipment_id).label("shipment_count"),
                    func.coalesce(func.sum(Shipment.volume), 0).label("total_volume_cm3"),
                )
                .filter(Shipment.status != ShipmentStatus.DELIVERED)
                .one()
            )
            used = float(row.total_volume_cm3 or 0)
            return {
                "warehouse_name": warehouse_name,
                "total_volume_cm3": used,
                "shipment_count": int(row.shipment_count or 0),
                "capacity_volume_cm3": capacity_cm3,
                "utilization_percentage": _percentage(used, capacity_cm3),
                "available_volume_cm3": max(capacity_cm3 - used, 0.0),
            }

        return self._run("warehouse data", query)

    def carrier_performance(self, date_from: date, date_to: date) -> List[Dict[str, Any]]:
        """One row per carrier per arrival day, each carrying its carrier's totals."""
        def query():
            in_range = self._in_range(date_from, date_to)
            daily = (
                self.db.query(
                    Shipment.carrier,
                    Shipment.arrival_date,
                    func.count(Shipment.shipment_id).label("shipment_count"),
                    func.sum(Shipment.volume).label("total_volume_cm3"),
                    func.sum(Shipment.weight).label("total_weight_g"),
                )
                .filter(in_range)
                .group_by(Shipment.carrier, Shipment.arrival_date)
                .order_by(Shipment.carrier, Shipment.arrival_date)
                .all()
            )
            totals = (
                self.db.query(
                    Shipment.carrier,
                    func.count(Shipment.shipment_id).label("total_shipments"),
                    self._count_where(Shipment.status == ShipmentStatus.DELIVERED).label("delivered"),
                    self._count_where(self._on_time()).label("on_time"),
                    self._count_where(Shipment.mode == ShippingMode.AIR).label("air"),
                    self._count_where(Shipment.mode == ShippingMode.SEA).label("sea"),
                    func.sum(Shipment.volume).label("volume"),
                    func.sum(Shipment.weight).label("weight"),
                )
                .filter(in_range)
                .group_by(Shipment.carrier)
                .all()
            )
            delivery_days = self._delivery_days(Shipment.carrier, date_from, date_to)
            carrier_totals = {_plain(t.carrier): t for t in totals}

            rows = []
            for d in daily:
                carrier = _plain(d.carrier)
                t = carrier_totals[carrier]
                delivered = int(t.delivered or 0)
                rows.append({
                    "carrier": carrier,
                    "arrival_date": d.arrival_date,
                    "shipment_count": int(d.shipment_count),
                    "total_volume_cm3": float(d.total_volume_cm3 or 0),
                    "total_weight_g": float(d.total_weight_g or 0),
                    "total_shipments": int(t.total_shipments),
                    "delivered_shipments": delivered,
                    "avg_delivery_time": delivery_days.get(carrier),
                    "on_time_delivery_rate": _percentage(int(t.on_time or 0), delivered),
                    "air_shipments": int(t.air or 0),
                    "sea_shipments": int(t.sea or 0),
                    "carrier_volume_cm3": float(t.volume or 0),
                    "carrier_weight_g": float(t.weight or 0),
                })
            return rows

        return self._run("carrier data", query)

    def _distribution(self, column, date_from: date, date_to: date) -> List[Dict[str, Any]]:
        rows = (
            self.db.query(
                column.label("key"),
                func.count(Shipment.shipment_id).label("shipment_count"),
                func.sum(Shipment.volume).label("total_volume_cm3"),
                func.sum(Shipment.weight).label("total_weight_g"),
            )
            .filter(self._in_range(date_from, date_to))
            .group_by(column)
            .all()
        )
        total = sum(int(r.shipment_count) for r in rows)
        result = [
            {
                "key": _plain(r.key),
                "shipment_count": int(r.shipment_count),
                "percentage": _percentage(int(r.shipment_count), total),
                "total_volume_cm3": float(r.total_volume_cm3 or 0),
                "total_weight_g": float(r.total_weight_g or 0),
            }
            for r in rows
        ]
        result.sort(key=lambda r: (-r["shipment_count"], r["key"]))
        return result

    def destination_distribution(self, date_from: date, date_to: date) -> List[Dict[str, Any]]:
        def query():
            delivery_days = self._delivery_days(Shipment.destination, date_from, date_to)
            rows = self._distribution(Shipment.destination, date_from, date_to)
            for row in rows:
                row["destination"] = row.pop("key")
                row["avg_delivery_time"] = delivery_days.get(row["destination"])
            return rows

        return self._run("destination data", query)

    def mode_distribution(self, date_from: date, date_to: date) -> List[Dict[str, Any]]:
        def query():
            rows = self._distribution(Shipment.mode, date_from, date_to)
            for row in rows:
                row["mode"] = row.pop("key")
            return rows

        return self._run("mode data", query)

    def capacity_timeline(self, date_from: date, date_to: date) -> List[Dict[str, Any]]:
        """Packages and volume received per arrival day with running totals."""
        def query():
            rows = (
                self.db.query(
                    Shipment.arrival_date,
                    func.count(Shipment.shipment_id).label("packages"),
                    func.sum(Shipment.volume).label("volume"),
                )
                .filter(self._in_range(date_from, date_to))
                .group_by(Shipment.arrival_date)
                .order_by(Shipment.arrival_date)
                .all()
            )
            cumulative_packages = 0
            cumulative_volume = 0.0
            timeline = []
            for r in rows:
                packages = int(r.packages)
                volume = float(r.volume or 0)
                cumulative_packages += packages
                cumulative_volume += volume
                timeline.append({
                    "date": r.arrival_date,
                    "packages_received": packages,
                    "volume_received_cm3": volume,
                    "cumulative_packages": cumulative_packages,
                    "cumulative_volume_cm3": cumulative_volume,
                })
            return timeline

        return self._run("timeline data", query)

    def consolidation_candidates(self, filters: ConsolidationFilters) -> List[Dict[str, Any]]:
        """Shipments with a departure date matching the filters, as plain dicts."""
        def query():
            q = self.db.query(*[getattr(Shipment, name) for name in CANDIDATE_COLUMNS]).filter(
                Shipment.departure_date.isnot(None)
            )
            if filters.carrier:
                q = q.filter(Shipment.carrier == filters.carrier)
            if filters.mode:
                q = q.filter(Shipment.mode == filters.mode)
            if filters.destination:
                q = q.filter(Shipment.destination == filters.destination)
            return [
                {name: _plain(value) for name, value in zip(CANDIDATE_COLUMNS, row)}
                for row in q.order_by(Shipment.shipment_id).all()
            ]

        return self._run("consolidation groups", query)
