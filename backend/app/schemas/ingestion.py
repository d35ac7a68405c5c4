"""
CSV upload report schema.
"""
from app.schemas.common import CamelModel


class IngestReport(CamelModel):
    message: str = "CSV uploaded and processed successfully"
    total_processed: int
    total_valid: int
    total_shipments: int
    duplicates_skipped: int
    invalid_id_rows: int
    missing_field_rows: int
    invalid_enum_rows: int
    processing_time: str  # e.g. "1.25s"
