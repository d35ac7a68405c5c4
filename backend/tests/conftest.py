import os

# Point the app at an in-memory database before it is imported
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.database import Base, get_db
from app.main import app
from app.services.shipment_store import ShipmentStore

ROW_DEFAULTS = {
    "shipment_id": "1",
    "customer_id": "100",
    "origin": "Miami",
    "destination": "GUY",
    "weight": "5000",
    "volume": "2000000",
    "carrier": "FEDEX",
    "mode": "air",
    "status": "received",
    "arrival_date": "2024-01-01",
    "departure_date": "2024-01-05",
    "delivered_date": "",
}


def _shipment_row(**overrides):
    values = {**ROW_DEFAULTS, **{k: str(v) for k, v in overrides.items()}}
    return ",".join(values[column] for column in ROW_DEFAULTS)


def _build_csv(*rows):
    return ("\n".join(rows) + "\n").encode("utf-8")


@pytest.fixture()
def shipment_row():
    """Build one CSV line; keyword arguments override the default row."""
    return _shipment_row


@pytest.fixture()
def build_csv():
    return _build_csv


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db_session):
    return ShipmentStore(db_session)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def upload(client):
    """POST a CSV payload to the upload endpoint."""
    def _upload(payload: bytes, filename: str = "shipments.csv"):
        return client.post(
            "/api/shipments/upload",
            files={"file": (filename, payload, "text/csv")},
        )
    return _upload
