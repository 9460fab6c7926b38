from __future__ import annotations
import logging
import os
from collections import Counter
from pathlib import Path

from psgc_address.config import load_config
from psgc_address.db import connect, init_db, list_addresses, upsert_resolved
from psgc_address.form import AddressForm
from psgc_address.models import AddressData
from psgc_address.service import PSGCService

import dotenv
dotenv.load_dotenv()

def main():
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root = Path(__file__).resolve().parent
    cfg = load_config(root / "data" / "config.default.json")
    db_path = Path(cfg.db_path) if Path(cfg.db_path).is_absolute() else root / cfg.db_path

    conn = connect(db_path)
    init_db(conn)
    # one service for the whole run so sibling addresses share cached lookups
    service = PSGCService.from_config(cfg)

    counts: Counter = Counter()
    for row in list_addresses(conn):
        form = AddressForm.from_config(cfg, service)
        outcome = form.resolve(AddressData.from_flat(row))
        if outcome.errors:
            status = "failed"
        elif outcome.address.is_fully_resolved():
            status = "resolved"
        else:
            status = "partial"
        counts[status] += 1
        upsert_resolved(conn, row["aid"], outcome.address, status, save=False)
    conn.save()

    print("Resolution finished:", dict(counts))
    print("PSGC requests cached:", service.cache_stats()["size"])
    print("Workbook:", str(db_path))

if __name__ == "__main__":
    main()
