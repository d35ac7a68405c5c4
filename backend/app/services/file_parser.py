"""
CSV parsing for shipment uploads.
"""
import io
import logging
from typing import Iterator

import pandas as pd

from app.errors import MalformedCsv

logger = logging.getLogger(__name__)

# Fixed positional schema of the shipment feed; files carry no header row.
SHIPMENT_COLUMNS = [
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

CHUNK_ROWS = 10000


def decode_payload(data: bytes) -> str:
    """Decode uploaded bytes, trying the encodings shipment exports come in."""
    for encoding in ["utf-8-sig", "cp1252", "latin-1"]:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise MalformedCsv("Could not decode CSV file")


def iter_csv_chunks(data: bytes, chunk_rows: int = CHUNK_ROWS) -> Iterator[pd.DataFrame]:
    """
    Yield the payload as DataFrames of at most ``chunk_rows`` rows.

    Every cell is read as a string with empty cells kept as "" so that the
    row validator sees exactly what the file contained. Fields missing from
    short rows come through as NaN; fields past the twelfth are dropped.
    """
    text = decode_payload(data)
    if not text.strip():
        return

    try:
        with pd.read_csv(
            io.StringIO(text),
            header=None,
            names=SHIPMENT_COLUMNS,
            usecols=list(range(len(SHIPMENT_COLUMNS))),
            index_col=False,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            chunksize=chunk_rows,
        ) as reader:
            for chunk in reader:
                yield chunk
    except pd.errors.EmptyDataError:
        return
    except pd.errors.ParserError as e:
        logger.error("CSV parsing error: %s", e)
        raise MalformedCsv("Failed to parse CSV", details=str(e)) from e
