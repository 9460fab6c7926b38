from psgc_address.form import AddressForm
from psgc_address.models import AddressData, Barangay, CityMunicipality, Level, Province, Region, Unresolved
from psgc_address.resolver import Status

from conftest import BASE_URL, PROVINCES

EDIT_MODE_ADDRESS = {
    "blockLot": "Blk 4 Lot 12",
    "street": "National Highway",
    "region": {"name": "Region IV-A", "code": "Region IV-A"},
    "province": {"name": "Laguna", "code": "Laguna"},
    "city": {"name": "Calamba", "code": "Calamba"},
    "barangay": {"name": "Real", "code": "Real"},
    "country": "Philippines",
    "zipcode": "4027",
}


def _form(service, updates=None, errors=None):
    return AddressForm(service, on_update=updates.append if updates is not None else None, errors=errors)


def test_edit_mode_names_resolve_top_down(service, transport):
    updates = []
    form = _form(service, updates)

    address = form.hydrate(EDIT_MODE_ADDRESS)

    assert address.region == Region("0400000000", "Region IV-A (CALABARZON)")
    assert address.province == Province("0403400000", "Laguna", "Region IV-A (CALABARZON)")
    assert address.city == CityMunicipality("0403405000", "City of Calamba", "City",
                                            "Region IV-A (CALABARZON)", "Laguna")
    assert address.barangay == Barangay("0403405041", "Real", "", "Region IV-A (CALABARZON)",
                                        "Laguna", "City of Calamba")
    assert address.block_lot == "Blk 4 Lot 12"
    assert address.is_fully_resolved()
    assert transport.calls == [
        BASE_URL + "/regions",
        BASE_URL + "/regions/0400000000/provinces",
        BASE_URL + "/provinces/0403400000/cities-municipalities",
        BASE_URL + "/cities-municipalities/0403405000/barangays",
    ]

    # one update per resolved level, descendants still awaiting resolution are kept
    assert len(updates) == 4
    assert updates[0].province == Unresolved("Laguna")
    assert updates[1].city == Unresolved("Calamba")
    assert updates[2].barangay == Unresolved("Real")
    assert updates[3] == address


def test_feeding_updates_back_does_not_loop(service, transport):
    form = AddressForm(service)
    form.on_update = form.hydrate

    form.hydrate(EDIT_MODE_ADDRESS)

    assert form.address.is_fully_resolved()
    assert len(transport.calls) == 4


def test_user_picks_different_region_mid_edit(service):
    updates = []
    form = _form(service, updates)
    form.hydrate(EDIT_MODE_ADDRESS)
    form.open(Level.REGION)

    address = form.select("region", "0100000000")

    assert address.region.name == "Region I (Ilocos Region)"
    assert address.province is None
    assert address.city is None
    assert address.barangay is None
    assert form.options(Level.CITY) == []
    assert form.options(Level.BARANGAY) == []
    # the new region's provinces are fetched right away
    assert [p.name for p in form.options(Level.PROVINCE)] == ["Ilocos Norte", "Ilocos Sur"]
    assert updates[-1] == address


def test_manual_selection_cascades_option_loads(service):
    form = AddressForm(service)
    form.open("region")
    form.select("region", "0400000000")
    form.select("province", "0403400000")
    address = form.select("city", "0403405000")

    assert address.city.name == "City of Calamba"
    assert [b.name for b in form.options("barangay")] == ["Bagong Kalsada", "Real", "Real Bagong Pook"]

    address = form.select("barangay", "0403405042")
    assert address.barangay.name == "Real Bagong Pook"
    assert form.status("barangay") is Status.RESOLVED


def test_provinces_http_500_is_reported_inline(service, transport):
    transport.add("/regions/0400000000/provinces", [], status=500)
    form = AddressForm(service)

    address = form.hydrate(EDIT_MODE_ADDRESS)

    assert address.region.code == "0400000000"
    assert address.province == Unresolved("Laguna")
    assert address.city == Unresolved("Calamba")
    assert form.options(Level.PROVINCE) == []
    assert form.error == "Failed to load provinces. Please try again."
    assert form.view()["province"].load_error == "Failed to load provinces. Please try again."


def test_reopening_after_failure_retries_and_resumes_cascade(service, transport):
    transport.add("/regions/0400000000/provinces", [], status=500)
    form = AddressForm(service)
    form.hydrate(EDIT_MODE_ADDRESS)

    transport.add("/regions/0400000000/provinces", PROVINCES["0400000000"])
    form.open(Level.PROVINCE)

    assert form.error == ""
    assert form.address.is_fully_resolved()


def test_view_placeholders_and_errors(service):
    form = _form(service, errors={"address.city": "City is required", "address.postal_code": "Required"})
    form.hydrate({"region": {"code": "0400000000", "name": "Region IV-A (CALABARZON)"}})

    view = form.view()

    assert view["region"].value == "0400000000"
    assert view["region"].placeholder == "Select Region*"
    assert view["province"].placeholder == "Select Province*"
    assert not view["province"].disabled
    assert view["city"].disabled
    assert view["city"].placeholder == "Select Province first"
    assert view["city"].field_error == "City is required"
    assert view["barangay"].status == "empty"
    assert form.text_fields()["zipcode"].field_error == "Required"


def test_city_options_show_type(service):
    form = AddressForm(service)
    form.hydrate({"region": {"code": "0400000000", "name": "Region IV-A (CALABARZON)"},
                  "province": {"code": "0403400000", "name": "Laguna"},
                  "city": "Calamba"})

    view = form.view()["city"]

    assert view.display_value == "City of Calamba (City)"
    assert {"code": "0403411000", "name": "Los Baños (Mun)"} in view.options


def test_set_field_applies_limits(service):
    updates = []
    form = _form(service, updates)

    form.set_field("street", "x" * 120)

    assert form.address.street == "x" * 100
    assert form.text_fields()["street"].counter == "100/100"
    assert form.text_fields()["street"].is_at_limit
    assert updates[-1].street == "x" * 100


def test_resolve_reports_statuses(service):
    form = AddressForm(service)

    outcome = form.resolve(AddressData(region=Unresolved("Region IV-A"), province=Unresolved("Quezon")))

    assert outcome.statuses == {"region": "resolved", "province": "unresolved",
                                "city": "empty", "barangay": "empty"}
    assert outcome.errors == {}


def test_broken_http_response_is_reported_inline(monkeypatch):
    import http.client
    import urllib.request

    from psgc_address.cache import TTLCache
    from psgc_address.service import PSGCService

    def bad_status(*args, **kwargs):
        raise http.client.BadStatusLine("garbage")

    monkeypatch.setattr(urllib.request, "urlopen", bad_status)
    form = AddressForm(PSGCService(base_url=BASE_URL, cache=TTLCache()))

    form.open(Level.REGION)

    assert form.error == "Failed to load regions. Please try again."
    assert form.options(Level.REGION) == []
