"""
Utilities for loading reference data (country names, warehouse, pricing, limits).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "reference_data.yaml"

DEFAULT_WAREHOUSE_NAME = "Main Warehouse"
DEFAULT_CAPACITY_CM3 = 60_000_000_000
DEFAULT_BASELINE_COST = 75
DEFAULT_DISCOUNT_RATE = 0.15
DEFAULT_MIN_GROUP_SIZE = 2
DEFAULT_MAX_UPLOAD_BYTES = 150 * 1024 * 1024
DEFAULT_BATCH_SIZE = 1000
DEFAULT_PROGRESS_INTERVAL = 50000
DEFAULT_PAGE_LIMIT = 25
DEFAULT_MAX_PAGE_LIMIT = 500


@lru_cache()
def load_reference_config() -> Dict[str, Any]:
    if not CONFIG_PATH.exists():
        return {}
    with open(CONFIG_PATH, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _section(name: str) -> Dict[str, Any]:
    return load_reference_config().get(name) or {}


def get_country_names() -> Dict[str, str]:
    return dict(_section("destinations"))


def get_country_name(code: Optional[str]) -> Optional[str]:
    """Return the display name for a destination code, falling back to the code."""
    if not code:
        return None
    return _section("destinations").get(code, code)


def get_warehouse_config() -> Dict[str, Any]:
    cfg = _section("warehouse")
    return {
        "name": cfg.get("name", DEFAULT_WAREHOUSE_NAME),
        "capacity_volume_cm3": float(cfg.get("capacity_volume_cm3", DEFAULT_CAPACITY_CM3)),
    }


def get_consolidation_pricing() -> Dict[str, Any]:
    cfg = _section("consolidation")
    return {
        "baseline_cost_usd": cfg.get("baseline_cost_usd", DEFAULT_BASELINE_COST),
        "discount_rate": cfg.get("discount_rate", DEFAULT_DISCOUNT_RATE),
        "min_group_size": int(cfg.get("min_group_size", DEFAULT_MIN_GROUP_SIZE)),
    }


def get_ingestion_limits() -> Dict[str, int]:
    cfg = _section("ingestion")
    return {
        "max_upload_bytes": int(cfg.get("max_upload_bytes", DEFAULT_MAX_UPLOAD_BYTES)),
        "batch_size": int(cfg.get("batch_size", DEFAULT_BATCH_SIZE)),
        "progress_interval": int(cfg.get("progress_interval", DEFAULT_PROGRESS_INTERVAL)),
    }


def get_pagination_defaults() -> Dict[str, int]:
    cfg = _section("pagination")
    return {
        "default_limit": int(cfg.get("default_limit", DEFAULT_PAGE_LIMIT)),
        "max_limit": int(cfg.get("max_limit", DEFAULT_MAX_PAGE_LIMIT)),
    }
