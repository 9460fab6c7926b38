from __future__ import annotations
import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Callable, List, Optional, Tuple

from .cache import TTLCache
from .config import Config, DEFAULT_BASE_URL
from .models import (
    Barangay,
    CityMunicipality,
    Level,
    Province,
    PSGCRecord,
    Region,
    record_from_dict,
)
from .utils import fix_encoding_in_data, normalize_name

logger = logging.getLogger(__name__)

# (status, body) for a GET of the given URL
Transport = Callable[[str], Tuple[int, bytes]]


class PSGCFetchError(RuntimeError):
    """Raised when the PSGC API cannot be reached or returns something unusable."""


def urllib_transport(timeout: float = 30.0) -> Transport:
    def _get(url: str) -> Tuple[int, bytes]:
        req = urllib.request.Request(url, method="GET")
        req.add_header("Accept", "application/json; charset=utf-8")
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                return resp.status, resp.read()
        except urllib.error.HTTPError as exc:
            return exc.code, b""
    return _get


class PSGCService:
    """Client for the Philippine Standard Geographic Code API (https://psgc.cloud/api/v2).

    Every lookup accepts either a PSGC code or a plain name for the parent, the API
    resolves both. Responses are cached per URL for ``cache.ttl`` seconds.
    """

    def __init__(self,
                 base_url: str = DEFAULT_BASE_URL,
                 cache: Optional[TTLCache] = None,
                 transport: Optional[Transport] = None,
                 timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.cache = cache if cache is not None else TTLCache()
        self.transport = transport or urllib_transport(timeout)

    @classmethod
    def from_config(cls, cfg: Config, transport: Optional[Transport] = None) -> "PSGCService":
        return cls(
            base_url=cfg.base_url,
            cache=TTLCache(ttl=cfg.cache_ttl_seconds),
            transport=transport,
            timeout=cfg.request_timeout,
        )

    def get_regions(self) -> List[Region]:
        return self._fetch_records(Level.REGION, "/regions")

    def get_provinces_by_region(self, region_code_or_name: str) -> List[Province]:
        return self._fetch_records(Level.PROVINCE, f"/regions/{_segment(region_code_or_name)}/provinces")

    def get_cities_municipalities_by_province(self, province_code_or_name: str) -> List[CityMunicipality]:
        return self._fetch_records(
            Level.CITY, f"/provinces/{_segment(province_code_or_name)}/cities-municipalities"
        )

    def get_barangays_by_city_municipality(self, city_code_or_name: str) -> List[Barangay]:
        return self._fetch_records(
            Level.BARANGAY, f"/cities-municipalities/{_segment(city_code_or_name)}/barangays"
        )

    def get_all_provinces(self) -> List[Province]:
        return self._fetch_records(Level.PROVINCE, "/provinces")

    def get_all_cities_municipalities(self) -> List[CityMunicipality]:
        return self._fetch_records(Level.CITY, "/cities-municipalities")

    def get_all_barangays(self) -> List[Barangay]:
        return self._fetch_records(Level.BARANGAY, "/barangays")

    def get_options(self, level: Level, parent_key: Optional[str]) -> List[PSGCRecord]:
        """Option list for one selector: regions, or the children of ``parent_key``."""
        if level is Level.REGION:
            return self.get_regions()
        if not parent_key:
            raise ValueError(f"{level.value} options need a parent code or name")
        if level is Level.PROVINCE:
            return self.get_provinces_by_region(parent_key)
        if level is Level.CITY:
            return self.get_cities_municipalities_by_province(parent_key)
        return self.get_barangays_by_city_municipality(parent_key)

    def search_region(self, query: str) -> Optional[Region]:
        return _first_containing(self.get_regions(), query)

    def search_province(self, query: str, region_name: Optional[str] = None) -> Optional[Province]:
        provinces = self.get_provinces_by_region(region_name) if region_name else self.get_all_provinces()
        return _first_containing(provinces, query)

    def search_city_municipality(self, query: str,
                                 province_name: Optional[str] = None) -> Optional[CityMunicipality]:
        if province_name:
            cities = self.get_cities_municipalities_by_province(province_name)
        else:
            cities = self.get_all_cities_municipalities()
        return _first_containing(cities, query)

    def search_barangay(self, query: str,
                        city_municipality_name: Optional[str] = None) -> Optional[Barangay]:
        if city_municipality_name:
            barangays = self.get_barangays_by_city_municipality(city_municipality_name)
        else:
            barangays = self.get_all_barangays()
        return _first_containing(barangays, query)

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> dict:
        return self.cache.stats()

    def _fetch_records(self, level: Level, path: str) -> List[Any]:
        items = self._fetch_with_cache(f"{self.base_url}{path}")
        return [record_from_dict(level, item) for item in items if isinstance(item, dict)]

    def _fetch_with_cache(self, url: str) -> List[Any]:
        cached = self.cache.get(url)
        if cached is not None:
            logger.debug("PSGC cache hit: %s", url)
            return cached

        try:
            status, body = self.transport(url)
        except (OSError, ValueError, http.client.HTTPException) as exc:
            logger.error("Error fetching from PSGC API: %s (%s)", url, exc)
            raise PSGCFetchError(f"Request to {url} failed: {exc}") from exc

        if not 200 <= status < 300:
            logger.error("Error fetching from PSGC API: %s (HTTP %s)", url, status)
            raise PSGCFetchError(f"HTTP error! status: {status}")

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Error decoding PSGC response: %s (%s)", url, exc)
            raise PSGCFetchError(f"Invalid JSON from {url}") from exc

        if isinstance(payload, dict) and isinstance(payload.get("data"), list):
            data = payload["data"]
        elif isinstance(payload, list):
            data = payload
        else:
            logger.error("Unexpected PSGC payload shape from %s: %s", url, type(payload).__name__)
            raise PSGCFetchError("Invalid response format: expected array or object with data property")

        data = fix_encoding_in_data(data)
        self.cache.set(url, data)
        return data


def _segment(code_or_name: str) -> str:
    return urllib.parse.quote(str(code_or_name).strip(), safe="")


def _first_containing(records: List[Any], query: str) -> Optional[Any]:
    q = normalize_name(query)
    for rec in records:
        if q in normalize_name(rec.name) or q in rec.code.lower():
            return rec
    return None
