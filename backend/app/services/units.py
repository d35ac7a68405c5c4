"""
Unit conversion between storage units (grams, cm3) and display units (kg, m3).
"""
from typing import Optional

GRAMS_PER_KILOGRAM = 1000
CM3_PER_M3 = 1_000_000


def grams_to_kg(value: Optional[float]) -> float:
    return float(value or 0) / GRAMS_PER_KILOGRAM


def cm3_to_m3(value: Optional[float]) -> float:
    return float(value or 0) / CM3_PER_M3
