from __future__ import annotations
import json
import logging
from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# UTF-8 accented letters that were decoded as Latin-1 once too often
_DOUBLE_ENCODED_MARKERS = ("Ã±", "Ã¡", "Ã©", "Ã\xad", "Ã³", "Ãº")


def normalize_name(text: str) -> str:
    """Trim and lower-case a place name for comparison."""
    if text is None:
        return ""
    return " ".join(text.split()).lower()


def fix_encoding(text: str) -> str:
    """Repair double-encoded UTF-8, e.g. ``"DasmariÃ±as"`` -> ``"Dasmariñas"``."""
    if not any(marker in text for marker in _DOUBLE_ENCODED_MARKERS):
        return text
    try:
        return text.encode("latin-1").decode("utf-8")
    except UnicodeError as exc:
        logger.warning("Could not repair encoding of %r: %s", text, exc)
        return text


def fix_encoding_in_data(data: Any) -> Any:
    if isinstance(data, str):
        return fix_encoding(data)
    if isinstance(data, list):
        return [fix_encoding_in_data(item) for item in data]
    if isinstance(data, dict):
        return {key: fix_encoding_in_data(val) for key, val in data.items()}
    return data


@dataclass
class LimitedValue:
    value: str
    counter: str
    is_at_limit: bool


def apply_max_length(value: str, max_len: int) -> LimitedValue:
    truncated = (value or "")[:max_len]
    return LimitedValue(
        value=truncated,
        counter=f"{len(truncated)}/{max_len}",
        is_at_limit=len(truncated) >= max_len,
    )


class EnhancedJSONEncoder(json.JSONEncoder):
    def default(self, obj: Any) -> Any:
        if is_dataclass(obj):
            return asdict(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, tuple):
            return list(obj)
        return super().default(obj)
