from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

DEFAULT_BASE_URL = "https://psgc.cloud/api/v2"

DEFAULT_INPUT_LIMITS: Dict[str, int] = {
    "block_lot": 50,
    "street": 100,
    "zipcode": 10,
    "country": 100,
}

MATCH_MODES = ("substring", "exact")

@dataclass
class Config:
    base_url: str = DEFAULT_BASE_URL
    cache_ttl_seconds: float = 300.0
    request_timeout: float = 30.0
    match_mode: str = "substring"
    db_path: str = "data/addresses.xlsx"
    input_limits: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_INPUT_LIMITS))

def load_config(path: str | Path) -> Config:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    match_mode = str(raw.get("match_mode", "substring"))
    if match_mode not in MATCH_MODES:
        raise ValueError(f"Unknown match_mode: {match_mode}")
    limits = dict(DEFAULT_INPUT_LIMITS)
    for key, val in (raw.get("input_limits") or {}).items():
        if key not in DEFAULT_INPUT_LIMITS:
            raise ValueError(f"Unknown input_limits field: {key}")
        limits[key] = int(val)
    return Config(
        base_url=os.getenv("PSGC_BASE_URL", raw.get("base_url", DEFAULT_BASE_URL)).rstrip("/"),
        cache_ttl_seconds=float(raw.get("cache_ttl_seconds", 300)),
        request_timeout=float(raw.get("request_timeout", 30)),
        match_mode=match_mode,
        db_path=str(raw.get("db_path", "data/addresses.xlsx")),
        input_limits=limits,
    )
