"""
Script to load a shipment CSV export into the database without the upload endpoint.
Run this after setting up the database and installing dependencies.

    python scripts/load_shipments.py path/to/shipments.csv
"""
import asyncio
import sys
import os
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.db.database import Base, SessionLocal, engine
from app.errors import DashboardError
from app.services.ingestion import ingest_shipments_csv
from app.services.shipment_store import ShipmentStore


def load_shipments(csv_path: Path) -> int:
    """Replace the stored shipments with the rows of ``csv_path``."""
    if not csv_path.exists():
        print(f"✗ File not found: {csv_path}")
        return 1

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        print(f"Loading shipments from {csv_path}...")
        report = asyncio.run(ingest_shipments_csv(ShipmentStore(db), csv_path.read_bytes()))

        print("\n" + "=" * 50)
        print("Ingestion Summary:")
        print("=" * 50)
        print(f"Rows processed:      {report.total_processed}")
        print(f"Shipments stored:    {report.total_shipments}")
        print(f"Duplicates skipped:  {report.duplicates_skipped}")
        print(f"Invalid id rows:     {report.invalid_id_rows}")
        print(f"Missing field rows:  {report.missing_field_rows}")
        print(f"Invalid enum rows:   {report.invalid_enum_rows}")
        print(f"Processing time:     {report.processing_time}")
        print("\n✓ Shipments loaded successfully!")
        return 0
    except DashboardError as e:
        print(f"\n✗ Error loading shipments: {e.message}")
        if e.details:
            print(e.details)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/load_shipments.py <shipments.csv>")
        sys.exit(2)
    sys.exit(load_shipments(Path(sys.argv[1])))
