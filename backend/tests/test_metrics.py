from datetime import date

import pytest

from app.errors import InvalidRequest
from app.services.metrics import (
    build_carrier_performance,
    build_dashboard_metrics,
    build_utilization_pie,
    build_warehouse_utilization,
    resolve_date_range,
)
from app.services.units import cm3_to_m3, grams_to_kg

JANUARY = {"dateFrom": "2024-01-01", "dateTo": "2024-01-31"}


def test_unit_conversion():
    assert grams_to_kg(5000) == 5.0
    assert cm3_to_m3(2_000_000) == 2.0


def test_default_range_is_trailing_thirty_days():
    date_from, date_to = resolve_date_range(None, None, today=date(2024, 3, 15))

    assert date_to == date(2024, 3, 15)
    assert date_from == date(2024, 2, 15)
    assert (date_to - date_from).days + 1 == 30


def test_open_ended_ranges():
    assert resolve_date_range(date(2024, 1, 1), None, today=date(2024, 3, 15)) == (
        date(2024, 1, 1),
        date(2024, 3, 15),
    )
    assert resolve_date_range(None, date(2024, 1, 30), today=date(2024, 3, 15)) == (
        date(2024, 1, 1),
        date(2024, 1, 30),
    )


def test_inverted_range_rejected():
    with pytest.raises(InvalidRequest):
        resolve_date_range(date(2024, 2, 1), date(2024, 1, 1))


def test_dashboard_metrics_converted_once():
    metrics = build_dashboard_metrics({
        "total_shipments": 2,
        "delivered_shipments": 1,
        "intransit_shipments": 0,
        "received_shipments": 1,
        "total_volume_cm3": 4_000_000.0,
        "total_weight_g": 10_000.0,
        "avg_volume_per_shipment_cm3": 2_000_000.0,
        "avg_weight_per_shipment_g": 5000.0,
        "delivery_rate": 50.0,
        "on_time_delivery_rate": 100.0,
    })

    assert metrics.total_weight == 10.0
    assert metrics.total_volume == 4.0
    assert metrics.avg_weight_per_shipment == 5.0
    assert metrics.avg_volume_per_shipment == 2.0


def test_utilization_pie_uses_converted_volumes():
    warehouse = build_warehouse_utilization({
        "warehouse_name": "Main Warehouse",
        "total_volume_cm3": 2_000_000.0,
        "shipment_count": 1,
        "capacity_volume_cm3": 10_000_000.0,
        "utilization_percentage": 20.0,
        "available_volume_cm3": 8_000_000.0,
    })

    used, available = build_utilization_pie(warehouse)

    assert (used.name, used.value, used.volume) == ("Used", 20.0, 2.0)
    assert (available.name, available.value, available.volume) == ("Available", 80.0, 8.0)


def test_carrier_performance_one_entry_per_carrier():
    def daily(carrier, day, count):
        return {
            "carrier": carrier,
            "arrival_date": day,
            "shipment_count": count,
            "total_volume_cm3": count * 1_000_000.0,
            "total_weight_g": count * 1000.0,
            "total_shipments": 3,
            "delivered_shipments": 1,
            "avg_delivery_time": 2.0,
            "on_time_delivery_rate": 100.0,
            "air_shipments": 3,
            "sea_shipments": 0,
            "carrier_volume_cm3": 3_000_000.0,
            "carrier_weight_g": 3000.0,
        }

    performance = build_carrier_performance([
        daily("DHL", date(2024, 1, 1), 1),
        daily("DHL", date(2024, 1, 2), 2),
        daily("FEDEX", date(2024, 1, 1), 3),
    ])

    assert [p.carrier for p in performance] == ["DHL", "FEDEX"]
    assert performance[0].total_volume == 3.0
    assert performance[0].total_weight == 3.0


@pytest.fixture()
def dashboard_data(upload, shipment_row, build_csv):
    payload = build_csv(
        shipment_row(shipment_id=1),
        shipment_row(
            shipment_id=2,
            status="delivered",
            arrival_date="2024-01-10",
            departure_date="2024-01-05",
            delivered_date="2024-01-08",
        ),
        shipment_row(
            shipment_id=3,
            destination="SLU",
            carrier="DHL",
            mode="sea",
            status="delivered",
            arrival_date="2024-01-02",
            departure_date="2024-01-03",
            delivered_date="2024-01-09",
        ),
        shipment_row(
            shipment_id=4,
            destination="SLU",
            carrier="DHL",
            mode="sea",
            status="intransit",
            arrival_date="2024-01-02",
        ),
        shipment_row(shipment_id=5, destination="BIM", carrier="UPS", arrival_date="2024-03-01"),
    )
    assert upload(payload).status_code == 200


def test_dashboard_headline_metrics(client, dashboard_data):
    response = client.get("/api/shipments/metrics", params=JANUARY)
    assert response.status_code == 200
    body = response.json()

    assert body["totalShipments"] == 4
    assert body["deliveredShipments"] == 2
    assert body["intransitShipments"] == 1
    assert body["receivedShipments"] == 1
    assert body["totalWeight"] == 20.0
    assert body["totalVolume"] == 8.0
    assert body["dateRange"] == {"from": "2024-01-01", "to": "2024-01-31"}

    metrics = body["dashboardMetrics"]
    assert metrics["avgWeightPerShipment"] == 5.0
    assert metrics["avgVolumePerShipment"] == 2.0
    assert metrics["deliveryRate"] == 50.0
    assert metrics["onTimeDeliveryRate"] == 50.0


def test_dashboard_warehouse_counts_undelivered_shipments(client, dashboard_data):
    body = client.get("/api/shipments/metrics", params=JANUARY).json()

    warehouse = body["warehouseUtilization"]
    assert warehouse["warehouseName"] == "Main Warehouse"
    assert warehouse["shipmentCount"] == 3
    assert warehouse["totalVolume"] == 6.0
    assert warehouse["capacityVolume"] == 60000.0
    assert warehouse["utilizationPercentage"] == 0.01
    assert warehouse["availableVolume"] == 59994.0

    pie = body["charts"]["warehouseUtilizationPieChart"]
    assert [(s["name"], s["value"]) for s in pie] == [("Used", 0.01), ("Available", 99.99)]


def test_dashboard_charts(client, dashboard_data):
    charts = client.get("/api/shipments/metrics", params=JANUARY).json()["charts"]

    assert [(m["mode"], m["count"], m["percentage"]) for m in charts["shipmentModeDistribution"]] == [
        ("Air", 2, 50.0),
        ("Sea", 2, 50.0),
    ]
    assert [(p["carrier"], p["date"], p["count"]) for p in charts["carrierBarChart"]] == [
        ("DHL", "2024-01-02", 2),
        ("FEDEX", "2024-01-01", 1),
        ("FEDEX", "2024-01-10", 1),
    ]
    assert [
        (t["date"], t["packages"], t["cumulativePackages"]) for t in charts["warehouseCapacityTimeline"]
    ] == [
        ("2024-01-01", 1, 1),
        ("2024-01-02", 2, 3),
        ("2024-01-10", 1, 4),
    ]
    assert charts["warehouseCapacityTimeline"][-1]["cumulativeVolume"] == 8.0

    destinations = charts["destinationDistribution"]
    assert [(d["destination"], d["destinationName"], d["avgDeliveryTime"]) for d in destinations] == [
        ("GUY", "Guyana", 3.0),
        ("SLU", "Saint Lucia", 6.0),
    ]


def test_dashboard_carrier_performance(client, dashboard_data):
    performance = client.get("/api/shipments/metrics", params=JANUARY).json()["charts"]["carrierPerformance"]

    assert len(performance) == 2
    dhl, fedex = performance
    assert dhl["carrier"] == "DHL"
    assert dhl["totalShipments"] == 2
    assert dhl["deliveredShipments"] == 1
    assert dhl["avgDeliveryTime"] == 6.0
    assert dhl["onTimeDeliveryRate"] == 0.0
    assert dhl["totalVolume"] == 4.0
    assert dhl["totalWeight"] == 10.0
    assert (dhl["airShipments"], dhl["seaShipments"]) == (0, 2)
    assert fedex["carrier"] == "FEDEX"
    assert fedex["onTimeDeliveryRate"] == 100.0
    assert fedex["avgDeliveryTime"] == 3.0


def test_dashboard_default_range(client):
    body = client.get("/api/shipments/metrics").json()

    assert body["dateRange"]["to"] == date.today().isoformat()
    assert body["totalShipments"] == 0
    assert body["dashboardMetrics"]["deliveryRate"] == 0.0


def test_dashboard_rejects_inverted_range(client):
    response = client.get("/api/shipments/metrics", params={"dateFrom": "2024-02-01", "dateTo": "2024-01-01"})
    assert response.status_code == 400


def test_dashboard_rejects_bad_date(client):
    response = client.get("/api/shipments/metrics", params={"dateFrom": "yesterday"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request parameters"
