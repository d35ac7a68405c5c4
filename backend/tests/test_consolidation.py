import csv
import io
from datetime import date

import pandas as pd
import pytest

from app.services.consolidation import (
    build_group_response,
    compute_groups,
    potential_savings,
    summarize_groups,
)
from app.services.shipment_store import CANDIDATE_COLUMNS

PRICING = {"baseline_cost_usd": 75, "discount_rate": 0.15, "min_group_size": 2}


def candidate(shipment_id, destination="GUY", carrier="FEDEX", mode="air", departure_date=date(2024, 1, 5), **extra):
    row = {
        "shipment_id": shipment_id,
        "customer_id": 100 + shipment_id,
        "origin": "Miami",
        "destination": destination,
        "weight": 5000.0,
        "volume": 2000000.0,
        "carrier": carrier,
        "mode": mode,
        "status": "received",
        "arrival_date": date(2024, 1, 1),
        "departure_date": departure_date,
        "delivered_date": None,
    }
    row.update(extra)
    return row


@pytest.mark.parametrize("count,expected", [(2, 23), (3, 34), (4, 45), (10, 113)])
def test_potential_savings_rounds_half_up(count, expected):
    assert potential_savings(count, PRICING) == expected


def test_groups_share_destination_carrier_mode_and_departure():
    rows = [
        candidate(1),
        candidate(2),
        candidate(3, departure_date=date(2024, 1, 6)),
    ]

    groups = compute_groups(rows, 2)

    assert len(groups) == 1
    group = groups[0]
    assert group.group_id == "GUY-FEDEX-air-2024-01-05"
    assert group.shipment_count == 2
    assert group.total_weight_g == 10000.0
    assert group.total_volume_cm3 == 4000000.0
    assert [m["shipment_id"] for m in group.members] == [1, 2]


def test_min_group_size_one_keeps_singletons():
    rows = [candidate(1), candidate(2), candidate(3, departure_date=date(2024, 1, 6))]
    assert [g.shipment_count for g in compute_groups(rows, 1)] == [2, 1]


def test_groups_without_departure_date_are_skipped():
    rows = [candidate(1, departure_date=None), candidate(2, departure_date=None)]
    assert compute_groups(rows, 2) == []


def test_group_ordering():
    rows = [
        candidate(1, destination="SLU", carrier="DHL", mode="sea", departure_date=date(2024, 1, 7)),
        candidate(2, destination="SLU", carrier="DHL", mode="sea", departure_date=date(2024, 1, 7)),
        candidate(3, destination="BIM", departure_date=date(2024, 1, 7)),
        candidate(4, destination="BIM", departure_date=date(2024, 1, 7)),
        candidate(5),
        candidate(6),
        candidate(7, carrier="UPS"),
        candidate(8, carrier="UPS"),
        candidate(9, carrier="UPS"),
    ]

    ids = [g.group_id for g in compute_groups(rows, 2)]

    assert ids == [
        "GUY-UPS-air-2024-01-05",
        "GUY-FEDEX-air-2024-01-05",
        "BIM-FEDEX-air-2024-01-07",
        "SLU-DHL-sea-2024-01-07",
    ]


def test_summary_breaks_ties_lexicographically():
    rows = [
        candidate(1, destination="SLU", carrier="DHL", mode="sea"),
        candidate(2, destination="SLU", carrier="DHL", mode="sea"),
        candidate(3, destination="BIM", carrier="UPS"),
        candidate(4, destination="BIM", carrier="UPS"),
    ]

    summary = summarize_groups(compute_groups(rows, 2), PRICING)

    assert summary.total_groups == 2
    assert summary.total_shipments == 4
    assert summary.total_potential_savings == 46
    assert summary.avg_shipments_per_group == 2.0
    assert summary.top_destination == "BIM"
    assert summary.top_carrier == "DHL"
    assert summary.top_mode == "air"


def test_empty_summary():
    summary = summarize_groups([], PRICING)
    assert summary.total_groups == 0
    assert summary.top_destination == "N/A"


@pytest.fixture()
def consolidation_data(upload, shipment_row, build_csv):
    payload = build_csv(
        shipment_row(shipment_id=1, origin="Miami"),
        shipment_row(shipment_id=2, origin="Orlando"),
        shipment_row(shipment_id=3, departure_date="2024-01-06"),
        shipment_row(shipment_id=4, destination="SLU", carrier="DHL", mode="sea", departure_date="2024-01-07"),
        shipment_row(shipment_id=5, destination="SLU", carrier="DHL", mode="sea", departure_date="2024-01-07"),
        shipment_row(shipment_id=6, destination="SLU", carrier="DHL", mode="sea", departure_date="2024-01-07"),
        shipment_row(shipment_id=7, departure_date=""),
    )
    assert upload(payload).status_code == 200


def test_consolidation_endpoint(client, consolidation_data):
    response = client.get("/api/shipments/consolidation")
    assert response.status_code == 200
    body = response.json()

    groups = body["consolidationGroups"]
    assert [g["id"] for g in groups] == ["SLU-DHL-sea-2024-01-07", "GUY-FEDEX-air-2024-01-05"]
    first = groups[0]
    assert first["destinationName"] == "Saint Lucia"
    assert first["shipmentCount"] == 3
    assert first["totalWeight"] == 15.0
    assert first["totalVolume"] == 6.0
    assert first["avgWeightPerShipment"] == 5.0
    assert first["avgVolumePerShipment"] == 2.0
    assert first["potentialSavings"] == 34
    assert first["shipments"] is None

    assert body["summary"]["totalGroups"] == 2
    assert body["summary"]["totalShipments"] == 5
    assert body["summary"]["totalPotentialSavings"] == 57
    assert body["filters"] == {"carrier": "all", "mode": "all", "destination": "all", "minGroupSize": 2}
    assert body["pagination"]["totalItems"] == 2
    assert "lastUpdated" in body


def test_consolidation_details(client, consolidation_data):
    response = client.get(
        "/api/shipments/consolidation",
        params={"includeDetails": "true", "carrier": "FEDEX"},
    )
    groups = response.json()["consolidationGroups"]

    assert len(groups) == 1
    members = groups[0]["shipments"]
    assert [m["shipment_id"] for m in members] == [1, 2]
    assert members[0]["weight"] == 5.0
    assert members[0]["volume"] == 2.0
    assert response.json()["filters"]["carrier"] == "FEDEX"


def test_consolidation_pagination_keeps_full_summary(client, consolidation_data):
    response = client.get("/api/shipments/consolidation", params={"limit": 1, "page": 2})
    body = response.json()

    assert [g["id"] for g in body["consolidationGroups"]] == ["GUY-FEDEX-air-2024-01-05"]
    assert body["summary"]["totalGroups"] == 2
    assert body["pagination"]["hasPreviousPage"] is True
    assert body["pagination"]["hasNextPage"] is False


def test_consolidation_min_group_size(client, consolidation_data):
    response = client.get("/api/shipments/consolidation", params={"minGroupSize": 3})
    body = response.json()

    assert [g["id"] for g in body["consolidationGroups"]] == ["SLU-DHL-sea-2024-01-07"]
    assert body["filters"]["minGroupSize"] == 3


def test_consolidation_invalid_mode(client, consolidation_data):
    response = client.get("/api/shipments/consolidation", params={"mode": "rail"})
    assert response.status_code == 400


def test_consolidation_export(client, consolidation_data):
    response = client.get(
        "/api/shipments/consolidation/export",
        params={"groupId": "GUY-FEDEX-air-2024-01-05"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert list(rows[0].keys()) == CANDIDATE_COLUMNS + ["consolidation_group", "potential_savings"]
    assert [r["shipment_id"] for r in rows] == ["1", "2"]
    assert {r["consolidation_group"] for r in rows} == {"GUY-FEDEX-air-2024-01-05"}
    assert rows[0]["weight"] == "5000.0"
    assert rows[0]["potential_savings"] == "23"


def test_consolidation_export_all_groups(client, consolidation_data):
    response = client.get("/api/shipments/consolidation/export")
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert [r["shipment_id"] for r in rows] == ["4", "5", "6", "1", "2"]


def test_consolidation_on_empty_store(client):
    body = client.get("/api/shipments/consolidation").json()
    assert body["consolidationGroups"] == []
    assert body["summary"]["topCarrier"] == "N/A"
    assert body["pagination"]["totalPages"] == 0


def test_group_response_converts_units_once():
    group = compute_groups([candidate(1), candidate(2, origin=None, weight=2500.0)], 2)[0]

    response = build_group_response(group, include_details=True, pricing=PRICING)

    assert response.total_weight == 7.5
    assert response.total_volume == 4.0
    assert response.avg_weight_per_shipment == 3.75
    assert response.potential_savings == 23
    assert [m.origin for m in response.shipments] == ["Miami", "Unknown"]
    assert response.shipments[1].weight == 2.5


def test_consolidation_export_workbook(client, consolidation_data):
    response = client.get("/api/shipments/consolidation/export", params={"format": "xlsx"})

    assert response.status_code == 200
    assert response.headers["content-disposition"].endswith("consolidation_groups.xlsx")
    sheets = pd.read_excel(io.BytesIO(response.content), sheet_name=None)
    assert list(sheets) == ["Summary", "Groups", "Shipments"]
    groups = sheets["Groups"]
    assert list(groups["Group"]) == ["SLU-DHL-sea-2024-01-07", "GUY-FEDEX-air-2024-01-05"]
    assert list(groups["Total Weight (kg)"]) == [15.0, 10.0]
    assert list(sheets["Shipments"]["shipment_id"]) == [4, 5, 6, 1, 2]


def test_consolidation_export_unknown_format(client):
    response = client.get("/api/shipments/consolidation/export", params={"format": "pdf"})
    assert response.status_code == 400
