from __future__ import annotations
from dataclasses import dataclass, field, fields as dataclass_fields
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class Level(str, Enum):
    REGION = "region"
    PROVINCE = "province"
    CITY = "city"
    BARANGAY = "barangay"

    @property
    def parent(self) -> Optional["Level"]:
        idx = LEVELS.index(self)
        return LEVELS[idx - 1] if idx > 0 else None

    @property
    def child(self) -> Optional["Level"]:
        idx = LEVELS.index(self)
        return LEVELS[idx + 1] if idx + 1 < len(LEVELS) else None

    def descendants(self) -> List["Level"]:
        return list(LEVELS[LEVELS.index(self) + 1:])


LEVELS = (Level.REGION, Level.PROVINCE, Level.CITY, Level.BARANGAY)


@dataclass(frozen=True)
class Region:
    code: str
    name: str


@dataclass(frozen=True)
class Province:
    code: str
    name: str
    region: str = ""


@dataclass(frozen=True)
class CityMunicipality:
    code: str
    name: str
    type: str = ""
    region: str = ""
    province: str = ""


@dataclass(frozen=True)
class Barangay:
    code: str
    name: str
    status: str = ""
    region: str = ""
    province: str = ""
    city_municipality: str = ""


PSGCRecord = Union[Region, Province, CityMunicipality, Barangay]

RECORD_TYPES = {
    Level.REGION: Region,
    Level.PROVINCE: Province,
    Level.CITY: CityMunicipality,
    Level.BARANGAY: Barangay,
}


def record_from_dict(level: Level, raw: Dict[str, Any]) -> PSGCRecord:
    """Build the record for ``level`` from an API item, ignoring unknown keys."""
    cls = RECORD_TYPES[level]
    kwargs = {}
    for f in dataclass_fields(cls):
        val = raw.get(f.name)
        kwargs[f.name] = "" if val is None else str(val)
    return cls(**kwargs)


@dataclass(frozen=True)
class Unresolved:
    """A level value known only by its persisted name."""
    name: str


LevelValue = Union[Region, Province, CityMunicipality, Barangay, Unresolved]


def is_resolved(value: Optional[LevelValue]) -> bool:
    return value is not None and not isinstance(value, Unresolved)


def value_name(value: Optional[LevelValue]) -> str:
    return value.name if value is not None else ""


def value_code(value: Optional[LevelValue]) -> str:
    if is_resolved(value):
        return value.code
    return ""


def _value_from_raw(level: Level, raw: Any) -> Optional[LevelValue]:
    if raw is None:
        return None
    if isinstance(raw, (Unresolved, RECORD_TYPES[level])):
        return raw
    if isinstance(raw, str):
        name = raw.strip()
        return Unresolved(name) if name else None
    if isinstance(raw, dict):
        name = str(raw.get("name") or "").strip()
        code = str(raw.get("code") or "").strip()
        # legacy convention: a code equal to the name marks a placeholder
        if not code or code == name:
            return Unresolved(name or code) if (name or code) else None
        return record_from_dict(level, {**raw, "code": code, "name": name})
    raise TypeError(f"Unsupported {level.value} value: {raw!r}")


@dataclass
class AddressData:
    block_lot: str = ""
    street: str = ""
    barangay: Optional[LevelValue] = None
    city: Optional[LevelValue] = None
    province: Optional[LevelValue] = None
    region: Optional[LevelValue] = None
    country: str = ""
    zipcode: str = ""

    def get(self, level: Level) -> Optional[LevelValue]:
        return getattr(self, level.value)

    def set(self, level: Level, value: Optional[LevelValue]) -> None:
        setattr(self, level.value, value)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AddressData":
        """Accepts camelCase or snake_case keys; level values may be names, dicts or records."""
        addr = cls(
            block_lot=str(raw.get("block_lot", raw.get("blockLot")) or ""),
            street=str(raw.get("street") or ""),
            country=str(raw.get("country") or ""),
            zipcode=str(raw.get("zipcode", raw.get("postal_code")) or ""),
        )
        for level in LEVELS:
            addr.set(level, _value_from_raw(level, raw.get(level.value)))
        return addr

    @classmethod
    def from_flat(cls, row: Dict[str, Any]) -> "AddressData":
        """Build from a persisted row: ``<level>`` name columns and optional ``<level>_code`` columns."""
        raw: Dict[str, Any] = {
            "block_lot": row.get("block_lot"),
            "street": row.get("street"),
            "country": row.get("country"),
            "postal_code": row.get("postal_code", row.get("zipcode")),
        }
        for level in LEVELS:
            raw[level.value] = {
                "name": row.get(level.value) or "",
                "code": row.get(f"{level.value}_code") or "",
            }
        return cls.from_dict(raw)

    def to_flat(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "block_lot": self.block_lot,
            "street": self.street,
            "country": self.country,
            "postal_code": self.zipcode,
        }
        for level in LEVELS:
            value = self.get(level)
            out[level.value] = value_name(value)
            out[f"{level.value}_code"] = value_code(value)
        return out

    def is_fully_resolved(self) -> bool:
        return all(is_resolved(self.get(level)) for level in LEVELS)


@dataclass
class ResolveOutcome:
    address: AddressData
    statuses: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
