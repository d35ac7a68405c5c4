"""
Row validation service - converts raw CSV rows to shipment records.
"""
import enum
import math
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Tuple

import pandas as pd

from app.models import MAX_ID, Carrier, Destination, ShipmentStatus, ShippingMode


class RowOutcome(str, enum.Enum):
    VALID = "valid"
    INVALID_ID = "invalid_id"
    MISSING_FIELD = "missing_field"
    INVALID_ENUM = "invalid_enum"


def norm_text(val: Any) -> str:
    """Strip whitespace; missing cells become an empty string."""
    if val is None:
        return ""
    try:
        if pd.isna(val):
            return ""
    except (TypeError, ValueError):
        pass
    return str(val).strip()


def parse_number(val: Any) -> Optional[float]:
    """Parse a numeric cell; empty, non-numeric and non-finite values give None."""
    s = norm_text(val)
    if not s:
        return None
    try:
        number = float(s)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_positive_int(val: Any) -> Optional[int]:
    """Parse an id cell; only whole numbers in 1..MAX_ID are accepted."""
    s = norm_text(val)
    if not s:
        return None
    # Exact for ids above 2**53
    try:
        number = Decimal(s)
    except InvalidOperation:
        return None
    if not number.is_finite() or not 0 < number <= MAX_ID:
        return None
    if number != number.to_integral_value():
        return None
    return int(number)


def parse_date(val: Any) -> Optional[date]:
    """Parse an ISO date, falling back to pandas for other common layouts."""
    s = norm_text(val)
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    parsed = pd.to_datetime(s, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def _enum_member(enum_cls, value: str):
    try:
        return enum_cls(value)
    except ValueError:
        return None


def normalize_shipment_row(row: Mapping[str, Any]) -> Tuple[RowOutcome, Optional[Dict[str, Any]]]:
    """
    Validate one CSV row.

    Checks run in a fixed order and the first failure decides the outcome:
    shipment id, required fields, enumerated codes. Deduplication is left to
    the caller since it needs the whole file.

    Returns:
        (outcome, record) where record is None unless the outcome is VALID
    """
    shipment_id = parse_positive_int(row.get("shipment_id"))
    if shipment_id is None:
        return RowOutcome.INVALID_ID, None

    origin = norm_text(row.get("origin"))
    destination = norm_text(row.get("destination"))
    carrier = norm_text(row.get("carrier"))
    mode = norm_text(row.get("mode"))
    status = norm_text(row.get("status"))
    arrival_date = parse_date(row.get("arrival_date"))

    customer_id = parse_positive_int(row.get("customer_id"))
    weight = parse_number(row.get("weight"))
    volume = parse_number(row.get("volume"))

    if (
        not origin
        or not destination
        or not carrier
        or not mode
        or not status
        or arrival_date is None
        or customer_id is None
        or not weight
        or weight < 0
        or not volume
        or volume < 0
    ):
        return RowOutcome.MISSING_FIELD, None

    destination_code = _enum_member(Destination, destination)
    carrier_code = _enum_member(Carrier, carrier)
    mode_code = _enum_member(ShippingMode, mode)
    status_code = _enum_member(ShipmentStatus, status)
    if None in (destination_code, carrier_code, mode_code, status_code):
        return RowOutcome.INVALID_ENUM, None

    return RowOutcome.VALID, {
        "shipment_id": shipment_id,
        "customer_id": customer_id,
        "origin": origin,
        "destination": destination_code,
        "weight": weight,
        "volume": volume,
        "carrier": carrier_code,
        "mode": mode_code,
        "status": status_code,
        "arrival_date": arrival_date,
        "departure_date": parse_date(row.get("departure_date")),
        "delivered_date": parse_date(row.get("delivered_date")),
    }
