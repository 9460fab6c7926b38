from __future__ import annotations
from pathlib import Path

from psgc_address.config import load_config
from psgc_address.db import connect, init_db, clear_table, upsert_address

"""
Seed the address workbook with addresses stored the way the branch/user screens persist them:
plain names only, no PSGC codes. Run cli_run afterwards to resolve them.
"""

SAMPLE_ADDRESSES = [
    {"aid": "branch-001", "block_lot": "Blk 4 Lot 12", "street": "National Highway",
     "region": "Region IV-A", "province": "Laguna", "city": "Calamba", "barangay": "Real",
     "country": "Philippines", "postal_code": "4027"},
    {"aid": "branch-002", "block_lot": "Unit 3B", "street": "Aguinaldo Highway",
     "region": "Region IV-A", "province": "Cavite", "city": "Dasmariñas", "barangay": "Salitran I",
     "country": "Philippines", "postal_code": "4114"},
    {"aid": "user-001", "block_lot": "", "street": "Ayala Avenue",
     "region": "NCR", "province": "", "city": "Makati", "barangay": "San Lorenzo",
     "country": "Philippines", "postal_code": "1223"},
    {"aid": "user-002", "block_lot": "Lot 7", "street": "Osmeña Boulevard",
     "region": "Region VII", "province": "Cebu", "city": "Cebu City", "barangay": "Lahug",
     "country": "Philippines", "postal_code": "6000"},
]

def main():
    root = Path(__file__).resolve().parent
    cfg = load_config(root / "data" / "config.default.json")
    db_path = Path(cfg.db_path) if Path(cfg.db_path).is_absolute() else root / cfg.db_path

    conn = connect(db_path)
    init_db(conn)
    for t in ["addresses", "resolved_addresses"]:
        clear_table(conn, t)

    for row in SAMPLE_ADDRESSES:
        upsert_address(conn, row["aid"], row)

    print(f"Workbook written: {db_path}")
    print(f"Inserted addresses: {len(SAMPLE_ADDRESSES)}")
    print("Next: python cli_run.py")

if __name__ == "__main__":
    main()
