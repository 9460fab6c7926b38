import pytest

from psgc_address.matching import match_record
from psgc_address.models import Barangay, CityMunicipality, Region

CITIES = [
    CityMunicipality(code="0403403000", name="Bay", type="Mun"),
    CityMunicipality(code="0403405000", name="City of Calamba", type="City"),
    CityMunicipality(code="0403411000", name="Los Baños", type="Mun"),
]


def test_case_insensitive_trimmed_equality():
    assert match_record("  los baños ", CITIES).code == "0403411000"


def test_code_equality():
    assert match_record("0403403000", CITIES).name == "Bay"


def test_substring_fallback():
    assert match_record("Calamba", CITIES).code == "0403405000"


def test_exact_name_wins_over_earlier_substring_hit():
    barangays = [
        Barangay(code="2", name="Real Bagong Pook"),
        Barangay(code="1", name="Real"),
    ]
    assert match_record("Real", barangays).code == "1"


def test_exact_mode_disables_substring():
    assert match_record("Calamba", CITIES, mode="exact") is None
    assert match_record("city of calamba", CITIES, mode="exact").code == "0403405000"


def test_region_short_name_finds_full_name():
    regions = [Region("0400000000", "Region IV-A (CALABARZON)"), Region("0400000001", "Region IV-B (MIMAROPA)")]
    assert match_record("Region IV-B", regions).code == "0400000001"


def test_no_match_and_empty_inputs():
    assert match_record("Cebu City", CITIES) is None
    assert match_record("", CITIES) is None
    assert match_record("Bay", []) is None


def test_unknown_mode():
    with pytest.raises(ValueError):
        match_record("Bay", CITIES, mode="fuzzy")
