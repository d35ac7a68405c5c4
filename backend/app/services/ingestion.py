"""
CSV ingestion pipeline - validates, deduplicates and reloads shipments.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from app.config.reference_loader import get_ingestion_limits
from app.errors import BatchInsertError, PayloadTooLarge
from app.schemas.ingestion import IngestReport
from app.services.file_parser import iter_csv_chunks
from app.services.normalizer import RowOutcome, normalize_shipment_row
from app.services.shipment_store import ShipmentStore

logger = logging.getLogger(__name__)


@dataclass
class IngestCounters:
    processed: int = 0
    valid: int = 0
    duplicates: int = 0
    invalid_id: int = 0
    missing_fields: int = 0
    invalid_enum: int = 0


def check_upload_size(size: int, max_bytes: int) -> None:
    if size > max_bytes:
        raise PayloadTooLarge(f"File too large. Max size is {max_bytes // (1024 * 1024)}MB")


async def parse_shipments(data: bytes, progress_interval: int) -> Tuple[List[Dict[str, Any]], IngestCounters]:
    """
    Parse and validate the payload row by row.

    The first occurrence of a shipment id wins; later rows with the same id
    are counted as duplicates.
    """
    accepted: Dict[int, Dict[str, Any]] = {}
    counters = IngestCounters()

    for chunk in iter_csv_chunks(data):
        for row in chunk.to_dict("records"):
            counters.processed += 1
            outcome, record = normalize_shipment_row(row)

            if outcome is RowOutcome.INVALID_ID:
                counters.invalid_id += 1
                continue
            if outcome is RowOutcome.MISSING_FIELD:
                counters.missing_fields += 1
                continue
            if outcome is RowOutcome.INVALID_ENUM:
                counters.invalid_enum += 1
                continue
            if record["shipment_id"] in accepted:
                counters.duplicates += 1
                continue

            accepted[record["shipment_id"]] = record
            counters.valid += 1

            if counters.valid % progress_interval == 0:
                logger.info(
                    "Processed %d rows, %d valid, %d duplicates",
                    counters.processed,
                    counters.valid,
                    counters.duplicates,
                )
                await asyncio.sleep(0)

    logger.info("CSV parse done. Total rows: %d, Valid: %d", counters.processed, counters.valid)
    return list(accepted.values()), counters


async def insert_in_batches(store: ShipmentStore, shipments: List[Dict[str, Any]], batch_size: int) -> int:
    """
    Insert shipments batch by batch, yielding to the event loop in between.

    Batches already committed stay in place if a later one fails.
    """
    inserted = 0
    for batch_index, start in enumerate(range(0, len(shipments), batch_size)):
        batch = shipments[start:start + batch_size]
        try:
            store.insert_batch(batch)
        except Exception as e:
            logger.error("Error inserting batch %d (rows from %d): %s", batch_index, start, e)
            raise BatchInsertError(batch_index, inserted, details=str(e)) from e
        inserted += len(batch)
        await asyncio.sleep(0)
    return inserted


async def ingest_shipments_csv(
    store: ShipmentStore,
    data: bytes,
    limits: Optional[Dict[str, int]] = None,
) -> IngestReport:
    """Replace the stored shipments with the valid rows of an uploaded CSV."""
    limits = limits or get_ingestion_limits()
    timings: Dict[str, float] = {}
    start = time.perf_counter()

    check_upload_size(len(data), limits["max_upload_bytes"])

    parse_start = time.perf_counter()
    shipments, counters = await parse_shipments(data, limits["progress_interval"])
    timings["parse"] = round(time.perf_counter() - parse_start, 3)

    store.truncate()

    insert_start = time.perf_counter()
    inserted = await insert_in_batches(store, shipments, limits["batch_size"])
    timings["insert"] = round(time.perf_counter() - insert_start, 3)

    elapsed = time.perf_counter() - start
    timings["total"] = round(elapsed, 3)
    logger.info("Ingested %d shipments timings=%s", inserted, timings)

    return IngestReport(
        total_processed=counters.processed,
        total_valid=counters.valid,
        total_shipments=len(shipments),
        duplicates_skipped=counters.duplicates,
        invalid_id_rows=counters.invalid_id,
        missing_field_rows=counters.missing_fields,
        invalid_enum_rows=counters.invalid_enum,
        processing_time=f"{elapsed:.2f}s",
    )
