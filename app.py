from __future__ import annotations
import os
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional
import dotenv
dotenv.load_dotenv()

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from psgc_address.config import load_config
from psgc_address.form import AddressForm
from psgc_address.models import AddressData, Level
from psgc_address.service import PSGCFetchError, PSGCService

ROOT = Path(__file__).resolve().parent
DATA_DIR = ROOT / "data"

cfg = load_config(DATA_DIR / "config.default.json")
service = PSGCService.from_config(cfg)

app = FastAPI(title="PSGC Address Service")


def get_service() -> PSGCService:
    return service


class AddressPayload(BaseModel):
    block_lot: str = ""
    street: str = ""
    region: str = ""
    region_code: str = ""
    province: str = ""
    province_code: str = ""
    city: str = ""
    city_code: str = ""
    barangay: str = ""
    barangay_code: str = ""
    country: str = ""
    postal_code: str = ""
    errors: Dict[str, str] = {}


def _records(fetch) -> List[dict]:
    try:
        return [asdict(rec) for rec in fetch()]
    except PSGCFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@app.get("/psgc/regions")
def list_regions(svc: PSGCService = Depends(get_service)):
    return _records(svc.get_regions)


@app.get("/psgc/regions/{code}/provinces")
def list_provinces(code: str, svc: PSGCService = Depends(get_service)):
    return _records(lambda: svc.get_provinces_by_region(code))


@app.get("/psgc/provinces/{code}/cities-municipalities")
def list_cities(code: str, svc: PSGCService = Depends(get_service)):
    return _records(lambda: svc.get_cities_municipalities_by_province(code))


@app.get("/psgc/cities-municipalities/{code}/barangays")
def list_barangays(code: str, svc: PSGCService = Depends(get_service)):
    return _records(lambda: svc.get_barangays_by_city_municipality(code))


@app.get("/psgc/search/{level}")
def search(level: Level, q: str, parent: Optional[str] = None, svc: PSGCService = Depends(get_service)):
    if not q.strip():
        raise HTTPException(status_code=400, detail="q must not be empty")
    searchers = {
        Level.REGION: lambda: svc.search_region(q),
        Level.PROVINCE: lambda: svc.search_province(q, parent),
        Level.CITY: lambda: svc.search_city_municipality(q, parent),
        Level.BARANGAY: lambda: svc.search_barangay(q, parent),
    }
    try:
        found = searchers[level]()
    except PSGCFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    if found is None:
        raise HTTPException(status_code=404, detail=f"No {level.value} matches {q!r}")
    return asdict(found)


@app.get("/psgc/cache")
def cache_stats(svc: PSGCService = Depends(get_service)):
    return svc.cache_stats()


@app.delete("/psgc/cache")
def clear_cache(svc: PSGCService = Depends(get_service)):
    svc.clear_cache()
    return {"cleared": True}


@app.post("/address/resolve")
def resolve_address(payload: AddressPayload, svc: PSGCService = Depends(get_service)):
    flat = payload.model_dump(exclude={"errors"})
    form = AddressForm.from_config(cfg, svc, errors=payload.errors)
    outcome = form.resolve(AddressData.from_flat(flat))
    return {
        "address": outcome.address.to_flat(),
        "statuses": outcome.statuses,
        "errors": outcome.errors,
        "complete": outcome.address.is_fully_resolved(),
        "view": {name: asdict(v) for name, v in form.view().items()},
    }


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("APP_HOST", "0.0.0.0")
    port = int(os.getenv("APP_PORT", "8008"))
    uvicorn.run(app, host=host, port=port)
