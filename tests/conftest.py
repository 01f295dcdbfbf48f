"""
Shared fixtures: an in-memory catalog source and a small Volkswagen/Toyota catalog.
"""
import pytest

from catalog import CatalogCache, CatalogSnapshot, VehicleRecord


class FakeCatalogSource:
    """CatalogSource over plain lists, with switches to simulate failures."""

    def __init__(self, vehicles=None, counts=None):
        self.vehicles = list(vehicles or [])
        self.counts = dict(counts or {})
        self.fail_vehicles = False
        self.fail_counts = False
        self.vehicle_calls = 0
        self.count_calls = 0

    def fetch_all_vehicles(self):
        self.vehicle_calls += 1
        if self.fail_vehicles:
            raise ConnectionError("vehicles unavailable")
        return list(self.vehicles)

    def fetch_listing_counts(self):
        self.count_calls += 1
        if self.fail_counts:
            raise ConnectionError("listings unavailable")
        return dict(self.counts)


@pytest.fixture
def golf_gti():
    return VehicleRecord(
        id='golf-gti', make='Volkswagen', model='Golf', badge='GTI',
        fuel_type='Petrol', transmission_type='Manual', drive_type=None,
    )


@pytest.fixture
def golf_r():
    return VehicleRecord(
        id='golf-r', make='Volkswagen', model='Golf', badge='R',
        fuel_type='Petrol', transmission_type='Automatic', drive_type='Four Wheel Drive',
    )


@pytest.fixture
def amarok():
    return VehicleRecord(
        id='amarok-highline', make='Volkswagen', model='Amarok', badge='Highline TDI 4Motion',
        fuel_type='Diesel', transmission_type='Automatic', drive_type='Four Wheel Drive',
    )


@pytest.fixture
def rav4_hybrid():
    return VehicleRecord(
        id='rav4-gx-hybrid', make='Toyota', model='RAV4', badge='GX',
        fuel_type='Hybrid-Petrol', transmission_type='Automatic', drive_type='Four Wheel Drive',
    )


@pytest.fixture
def catalog_vehicles(golf_gti, golf_r, amarok, rav4_hybrid):
    return [golf_gti, golf_r, amarok, rav4_hybrid]


@pytest.fixture
def listing_counts():
    return {'golf-gti': 12, 'golf-r': 4, 'amarok-highline': 7}


@pytest.fixture
def snapshot(catalog_vehicles, listing_counts):
    return CatalogSnapshot.build(catalog_vehicles, listing_counts, generation=1)


@pytest.fixture
def source(catalog_vehicles, listing_counts):
    return FakeCatalogSource(catalog_vehicles, listing_counts)


@pytest.fixture
def cache(source):
    """Cache loaded once from the fake source."""
    cache = CatalogCache(source)
    cache.refresh()
    return cache
