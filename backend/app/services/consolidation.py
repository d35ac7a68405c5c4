"""
Consolidation engine - groups shipments that could travel together.

Shipments sharing a destination, carrier, mode and departure date form a
group; groups below the minimum size carry no savings and are dropped.
"""
from __future__ import annotations

import io
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from app.config.reference_loader import get_consolidation_pricing, get_country_name
from app.schemas.consolidation import (
    ConsolidationFiltersEcho,
    ConsolidationGroup,
    ConsolidationResponse,
    ConsolidationShipment,
    ConsolidationSummary,
)
from app.services.pagination import build_pagination, page_offset
from app.services.shipment_store import CANDIDATE_COLUMNS, ConsolidationFilters, ShipmentStore
from app.services.units import cm3_to_m3, grams_to_kg

logger = logging.getLogger(__name__)

GROUP_KEY = ["destination", "carrier", "mode", "departure_date"]

EXPORT_COLUMNS = CANDIDATE_COLUMNS + ["consolidation_group", "potential_savings"]


@dataclass
class GroupAggregate:
    """A consolidation group in storage units (grams, cm3)."""
    destination: str
    carrier: str
    mode: str
    departure_date: date
    shipment_count: int
    total_weight_g: float
    total_volume_cm3: float
    members: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def group_id(self) -> str:
        return f"{self.destination}-{self.carrier}-{self.mode}-{self.departure_date.isoformat()}"


def potential_savings(shipment_count: int, pricing: Optional[Dict[str, Any]] = None) -> int:
    """
    Estimated savings of shipping a group together.

    Placeholder pricing model: a flat baseline cost per shipment with a fixed
    consolidation discount, rounded half up to whole dollars.
    """
    pricing = pricing or get_consolidation_pricing()
    value = (
        Decimal(shipment_count)
        * Decimal(str(pricing["baseline_cost_usd"]))
        * Decimal(str(pricing["discount_rate"]))
    )
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_groups(rows: List[Dict[str, Any]], min_group_size: int = 2) -> List[GroupAggregate]:
    """
    Group candidate rows and keep groups with at least ``min_group_size`` members.

    Ordered by shipment count descending, then departure date, destination,
    carrier and mode.
    """
    if not rows:
        return []

    df = pd.DataFrame.from_records(rows, columns=CANDIDATE_COLUMNS)
    df = df[df["departure_date"].notna()]
    if df.empty:
        return []

    grouped = df.groupby(GROUP_KEY, sort=False)
    stats = grouped.agg(
        shipment_count=("shipment_id", "count"),
        total_weight_g=("weight", "sum"),
        total_volume_cm3=("volume", "sum"),
    ).reset_index()
    stats = stats[stats["shipment_count"] >= min_group_size]
    stats = stats.sort_values(
        ["shipment_count", "departure_date", "destination", "carrier", "mode"],
        ascending=[False, True, True, True, True],
    )

    positions = grouped.indices
    groups = []
    for rec in stats.itertuples(index=False):
        key = (rec.destination, rec.carrier, rec.mode, rec.departure_date)
        groups.append(
            GroupAggregate(
                destination=rec.destination,
                carrier=rec.carrier,
                mode=rec.mode,
                departure_date=rec.departure_date,
                shipment_count=int(rec.shipment_count),
                total_weight_g=float(rec.total_weight_g),
                total_volume_cm3=float(rec.total_volume_cm3),
                members=[rows[i] for i in df.index[positions[key]]],
            )
        )
    return groups


def _top(values: Iterable[str]) -> str:
    counts = Counter(values)
    if not counts:
        return "N/A"
    # Highest count wins; ties go to the lexicographically smallest key
    return min(counts.items(), key=lambda item: (-item[1], item[0]))[0]


def summarize_groups(groups: List[GroupAggregate], pricing: Optional[Dict[str, Any]] = None) -> ConsolidationSummary:
    if not groups:
        return ConsolidationSummary()
    pricing = pricing or get_consolidation_pricing()
    total_shipments = sum(g.shipment_count for g in groups)
    return ConsolidationSummary(
        total_groups=len(groups),
        total_shipments=total_shipments,
        total_potential_savings=sum(potential_savings(g.shipment_count, pricing) for g in groups),
        avg_shipments_per_group=round(total_shipments / len(groups), 2),
        top_destination=_top(g.destination for g in groups),
        top_carrier=_top(g.carrier for g in groups),
        top_mode=_top(g.mode for g in groups),
    )


def _member_response(member: Dict[str, Any]) -> ConsolidationShipment:
    return ConsolidationShipment(
        shipment_id=member["shipment_id"],
        customer_id=member["customer_id"],
        origin=member["origin"] or "Unknown",
        weight=grams_to_kg(member["weight"]),
        volume=cm3_to_m3(member["volume"]),
        status=member["status"],
        arrival_date=member["arrival_date"],
        delivered_date=member["delivered_date"],
    )


def build_group_response(
    group: GroupAggregate,
    include_details: bool = False,
    pricing: Optional[Dict[str, Any]] = None,
) -> ConsolidationGroup:
    count = group.shipment_count
    response = ConsolidationGroup(
        id=group.group_id,
        destination=group.destination,
        destination_name=get_country_name(group.destination),
        departure_date=group.departure_date,
        carrier=group.carrier,
        mode=group.mode,
        shipment_count=count,
        total_weight=grams_to_kg(group.total_weight_g),
        total_volume=cm3_to_m3(group.total_volume_cm3),
        potential_savings=potential_savings(count, pricing),
        avg_weight_per_shipment=grams_to_kg(group.total_weight_g / count),
        avg_volume_per_shipment=cm3_to_m3(group.total_volume_cm3 / count),
    )
    if include_details:
        response.shipments = [_member_response(m) for m in group.members]
    return response


def _echo_filters(filters: ConsolidationFilters, min_group_size: int) -> ConsolidationFiltersEcho:
    return ConsolidationFiltersEcho(
        carrier=filters.carrier.value if filters.carrier else "all",
        mode=filters.mode.value if filters.mode else "all",
        destination=filters.destination.value if filters.destination else "all",
        min_group_size=min_group_size,
    )


def get_consolidation(
    store: ShipmentStore,
    filters: ConsolidationFilters,
    page: int,
    limit: int,
    include_details: bool = False,
    min_group_size: Optional[int] = None,
) -> ConsolidationResponse:
    """One page of consolidation groups plus a summary over every matching group."""
    pricing = get_consolidation_pricing()
    if min_group_size is None:
        min_group_size = pricing["min_group_size"]

    rows = store.consolidation_candidates(filters)
    groups = compute_groups(rows, min_group_size)
    offset = page_offset(page, limit)
    page_groups = groups[offset:offset + limit]
    logger.info(
        "Computed %d consolidation groups from %d candidate shipments",
        len(groups),
        len(rows),
    )

    return ConsolidationResponse(
        consolidation_groups=[build_group_response(g, include_details, pricing) for g in page_groups],
        summary=summarize_groups(groups, pricing),
        pagination=build_pagination(page, limit, len(groups)),
        filters=_echo_filters(filters, min_group_size),
        last_updated=datetime.utcnow(),
    )


def _selected_groups(
    store: ShipmentStore,
    filters: ConsolidationFilters,
    group_ids: Optional[List[str]],
    min_group_size: int,
) -> List[GroupAggregate]:
    groups = compute_groups(store.consolidation_candidates(filters), min_group_size)
    if group_ids:
        wanted = set(group_ids)
        groups = [g for g in groups if g.group_id in wanted]
    return groups


def _member_records(groups: List[GroupAggregate], pricing: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        {
            **member,
            "consolidation_group": group.group_id,
            "potential_savings": potential_savings(group.shipment_count, pricing),
        }
        for group in groups
        for member in group.members
    ]


def export_consolidation_csv(
    store: ShipmentStore,
    filters: ConsolidationFilters,
    group_ids: Optional[List[str]] = None,
    min_group_size: Optional[int] = None,
) -> str:
    """
    CSV of the member shipments of the selected groups (all groups when no
    ids are given), tagged with their group id and estimated savings.
    Values stay in storage units so the file can be uploaded again.
    """
    pricing = get_consolidation_pricing()
    if min_group_size is None:
        min_group_size = pricing["min_group_size"]

    groups = _selected_groups(store, filters, group_ids, min_group_size)
    records = _member_records(groups, pricing)
    buffer = io.StringIO()
    pd.DataFrame.from_records(records, columns=EXPORT_COLUMNS).to_csv(buffer, index=False)
    logger.info("Exported %d shipments from %d consolidation groups", len(records), len(groups))
    return buffer.getvalue()


def export_consolidation_workbook(
    store: ShipmentStore,
    filters: ConsolidationFilters,
    group_ids: Optional[List[str]] = None,
    min_group_size: Optional[int] = None,
) -> bytes:
    """
    Generate an Excel workbook with three sheets:
    - Summary
    - Groups (kilograms, cubic meters)
    - Shipments (storage units, same columns as the CSV export)
    """
    pricing = get_consolidation_pricing()
    if min_group_size is None:
        min_group_size = pricing["min_group_size"]

    groups = _selected_groups(store, filters, group_ids, min_group_size)
    summary = summarize_groups(groups, pricing)

    summary_data = {
        "Metric": [
            "Total Groups",
            "Total Shipments",
            "Total Potential Savings",
            "Average Shipments per Group",
            "Top Destination",
            "Top Carrier",
            "Top Mode",
        ],
        "Value": [
            summary.total_groups,
            summary.total_shipments,
            f"${summary.total_potential_savings:,}",
            summary.avg_shipments_per_group,
            summary.top_destination,
            summary.top_carrier,
            summary.top_mode,
        ],
    }

    group_data = []
    for group in groups:
        g = build_group_response(group, pricing=pricing)
        group_data.append({
            "Group": g.id,
            "Destination": g.destination_name,
            "Carrier": g.carrier,
            "Mode": g.mode,
            "Departure Date": g.departure_date,
            "Shipments": g.shipment_count,
            "Total Weight (kg)": g.total_weight,
            "Total Volume (m3)": g.total_volume,
            "Potential Savings": g.potential_savings,
        })

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame(summary_data).to_excel(writer, sheet_name="Summary", index=False)
        if group_data:
            pd.DataFrame(group_data).to_excel(writer, sheet_name="Groups", index=False)
            pd.DataFrame.from_records(
                _member_records(groups, pricing), columns=EXPORT_COLUMNS
            ).to_excel(writer, sheet_name="Shipments", index=False)

    logger.info("Exported workbook for %d consolidation groups", len(groups))
    return buffer.getvalue()
