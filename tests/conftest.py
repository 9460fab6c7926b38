from __future__ import annotations
import json
import urllib.parse
from typing import Any, Dict, List, Tuple

import pytest

from psgc_address.cache import TTLCache
from psgc_address.service import PSGCService

BASE_URL = "https://psgc.test/api/v2"

REGIONS = [
    {"code": "0100000000", "name": "Region I (Ilocos Region)"},
    {"code": "0400000000", "name": "Region IV-A (CALABARZON)"},
    {"code": "1300000000", "name": "National Capital Region (NCR)"},
]

PROVINCES = {
    "0100000000": [
        {"code": "0102800000", "name": "Ilocos Norte", "region": "Region I (Ilocos Region)"},
        {"code": "0102900000", "name": "Ilocos Sur", "region": "Region I (Ilocos Region)"},
    ],
    "0400000000": [
        {"code": "0402100000", "name": "Cavite", "region": "Region IV-A (CALABARZON)"},
        {"code": "0403400000", "name": "Laguna", "region": "Region IV-A (CALABARZON)"},
        {"code": "0401000000", "name": "Batangas", "region": "Region IV-A (CALABARZON)"},
    ],
}

CITIES = {
    "0403400000": [
        {"code": "0403403000", "name": "Bay", "type": "Mun", "region": "Region IV-A (CALABARZON)",
         "province": "Laguna"},
        {"code": "0403405000", "name": "City of Calamba", "type": "City",
         "region": "Region IV-A (CALABARZON)", "province": "Laguna"},
        {"code": "0403411000", "name": "Los Baños", "type": "Mun", "region": "Region IV-A (CALABARZON)",
         "province": "Laguna"},
    ],
    "0402100000": [
        # served double-encoded, the way the API sometimes returns it
        {"code": "0402106000", "name": "City of DasmariÃ±as", "type": "City",
         "region": "Region IV-A (CALABARZON)", "province": "Cavite"},
    ],
}

BARANGAYS = {
    "0403405000": [
        {"code": "0403405001", "name": "Bagong Kalsada", "status": "", "region": "Region IV-A (CALABARZON)",
         "province": "Laguna", "city_municipality": "City of Calamba"},
        {"code": "0403405041", "name": "Real", "status": "", "region": "Region IV-A (CALABARZON)",
         "province": "Laguna", "city_municipality": "City of Calamba"},
        {"code": "0403405042", "name": "Real Bagong Pook", "status": "",
         "region": "Region IV-A (CALABARZON)", "province": "Laguna", "city_municipality": "City of Calamba"},
    ],
}


def q(segment: str) -> str:
    return urllib.parse.quote(segment, safe="")


class FakeTransport:
    """Serves canned PSGC payloads by URL and records every request."""

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, bytes]] = {}
        self.calls: List[str] = []

    def add(self, path: str, payload: Any, status: int = 200, envelope: bool = True) -> None:
        body = {"data": payload} if envelope else payload
        self.routes[BASE_URL + path] = (status, json.dumps(body, ensure_ascii=False).encode("utf-8"))

    def add_raw(self, path: str, body: bytes, status: int = 200) -> None:
        self.routes[BASE_URL + path] = (status, body)

    def __call__(self, url: str) -> Tuple[int, bytes]:
        self.calls.append(url)
        return self.routes.get(url, (404, b""))


def _by_name(items: List[Dict[str, Any]], code: str) -> str:
    return next(item["name"] for item in items if item["code"] == code)


@pytest.fixture
def transport() -> FakeTransport:
    t = FakeTransport()
    t.add("/regions", REGIONS)
    for region_code, provinces in PROVINCES.items():
        t.add(f"/regions/{region_code}/provinces", provinces)
        t.add(f"/regions/{q(_by_name(REGIONS, region_code))}/provinces", provinces)
    all_provinces = [p for ps in PROVINCES.values() for p in ps]
    for province_code, cities in CITIES.items():
        t.add(f"/provinces/{province_code}/cities-municipalities", cities)
        t.add(f"/provinces/{q(_by_name(all_provinces, province_code))}/cities-municipalities", cities)
    for city_code, barangays in BARANGAYS.items():
        t.add(f"/cities-municipalities/{city_code}/barangays", barangays)
    t.add("/provinces", all_provinces, envelope=False)
    return t


class ManualClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def service(transport: FakeTransport, clock: ManualClock) -> PSGCService:
    return PSGCService(base_url=BASE_URL, cache=TTLCache(ttl=300, clock=clock), transport=transport)
