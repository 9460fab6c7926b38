from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .models import LEVELS, AddressData

_LEVEL_COLUMNS = [level.value for level in LEVELS]
_CODE_COLUMNS = [f"{level.value}_code" for level in LEVELS]

TABLE_SCHEMAS: Dict[str, List[str]] = {
    "addresses": ["aid", "block_lot", "street", *_LEVEL_COLUMNS, "country", "postal_code"],
    "resolved_addresses": [
        "aid", "block_lot", "street", *_LEVEL_COLUMNS, *_CODE_COLUMNS,
        "country", "postal_code", "status", "resolved_at",
    ],
}

def _now_str() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")

def _empty_table(name: str) -> pd.DataFrame:
    return pd.DataFrame(columns=TABLE_SCHEMAS[name])

def _ensure_columns(df: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    result = df.copy()
    for col in columns:
        if col not in result.columns:
            result[col] = None
    return result[columns]

def _clean_value(val: Any) -> Any:
    if val is None:
        return None
    if isinstance(val, float) and pd.isna(val):
        return None
    return val

def _row_to_dict(row: pd.Series) -> Dict[str, Any]:
    return {k: _clean_value(v) for k, v in row.to_dict().items()}

class ExcelConnection:
    """Workbook-backed tables held in memory as DataFrames; ``save`` writes every sheet."""
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.tables: Dict[str, pd.DataFrame] = {
            name: _empty_table(name) for name in TABLE_SCHEMAS
        }
        if self.path.exists():
            # codes and postal codes are digit strings, keep their leading zeros
            xls = pd.read_excel(self.path, sheet_name=None, dtype=str)
            for name, cols in TABLE_SCHEMAS.items():
                if name in xls:
                    self.tables[name] = _ensure_columns(xls[name], cols)

    def save(self) -> None:
        with pd.ExcelWriter(self.path, engine="openpyxl") as writer:
            for name, df in self.tables.items():
                df.to_excel(writer, sheet_name=name, index=False)

def connect(db_path: str | Path) -> ExcelConnection:
    return ExcelConnection(db_path)

def init_db(conn: ExcelConnection) -> None:
    conn.save()

def clear_table(conn: ExcelConnection, table: str) -> None:
    if table not in TABLE_SCHEMAS:
        raise ValueError(f"Unknown table: {table}")
    conn.tables[table] = _empty_table(table)
    conn.save()

def _upsert_row(df: pd.DataFrame, row: Dict[str, Any], key_field: str) -> pd.DataFrame:
    mask = df[key_field] == row[key_field]
    if mask.any():
        idx = df.index[mask][0]
        for col in df.columns:
            df.at[idx, col] = row.get(col)
        return df
    new_row = pd.DataFrame([row], columns=df.columns)
    if df.empty:
        return new_row
    return pd.concat([df, new_row], ignore_index=True)

def upsert_address(conn: ExcelConnection, aid: str, flat: Dict[str, Any]) -> None:
    """Store an address the way CRUD screens persist it: plain names, no PSGC codes."""
    row = {col: flat.get(col) or "" for col in TABLE_SCHEMAS["addresses"]}
    row["aid"] = aid
    conn.tables["addresses"] = _upsert_row(conn.tables["addresses"], row, "aid")
    conn.save()

def list_addresses(conn: ExcelConnection) -> List[Dict[str, Any]]:
    df = conn.tables["addresses"]
    return [_row_to_dict(row) for _, row in df.iterrows()]

def get_address(conn: ExcelConnection, aid: str) -> Optional[Dict[str, Any]]:
    df = conn.tables["addresses"]
    match = df[df["aid"] == aid]
    if match.empty:
        return None
    return _row_to_dict(match.iloc[0])

def upsert_resolved(conn: ExcelConnection, aid: str, address: AddressData, status: str,
                    save: bool = True) -> None:
    row = address.to_flat()
    row.update({"aid": aid, "status": status, "resolved_at": _now_str()})
    conn.tables["resolved_addresses"] = _upsert_row(conn.tables["resolved_addresses"], row, "aid")
    if save:
        conn.save()

def get_resolved(conn: ExcelConnection, aid: str) -> Optional[Dict[str, Any]]:
    df = conn.tables["resolved_addresses"]
    match = df[df["aid"] == aid]
    if match.empty:
        return None
    return _row_to_dict(match.iloc[0])
