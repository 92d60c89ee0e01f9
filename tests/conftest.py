"""Shared test fixtures."""

import os

# Set before any firewatch imports so Settings picks them up
os.environ["FIREWATCH_DEBUG"] = "true"
os.environ["FIREWATCH_SCHEDULER_ENABLED"] = "false"

import pytest

from firewatch.services.storage import SnapshotStore

POLYGON_P = {
    "type": "Polygon",
    "coordinates": [[[-147.0, 64.0], [-146.0, 64.0], [-146.0, 65.0], [-147.0, 64.0]]],
}


def make_feature(props, geometry=None):
    return {"type": "Feature", "geometry": geometry, "properties": props}


def make_collection(*features):
    return {"type": "FeatureCollection", "features": list(features)}


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(tmp_path / "public")


@pytest.fixture
def incidents():
    """Active incident feed: one fire with a perimeter, one without, one anonymous."""
    return make_collection(
        make_feature(
            {
                "IRWINID": "A1",
                "NAME": "Shovel Creek",
                "ESTIMATEDTOTALACRES": "150.5",
                "LASTUPDATETIME": 1561939200000,
                "DISCOVERYDATETIME": 1561334400000,
                "GENERALCAUSE": "Lightning",
            },
            {"type": "Point", "coordinates": [-146.5, 64.5]},
        ),
        make_feature(
            {"IRWINID": "B2", "NAME": "Swan Lake", "ESTIMATEDTOTALACRES": 9000},
            {"type": "Point", "coordinates": [-150.0, 60.5]},
        ),
        make_feature(
            {"IRWINID": None, "NAME": "Unnamed", "ESTIMATEDTOTALACRES": 12},
            {"type": "Point", "coordinates": [-149.0, 61.0]},
        ),
    )


@pytest.fixture
def perimeters():
    """Active perimeter feed: A1 matches an incident, C3 has no incident."""
    return make_collection(
        make_feature({"IRWINID": "A1", "NAME": "SHOVEL CREEK", "ACRES": 148.0}, POLYGON_P),
        make_feature(
            {"IRWINID": "C3", "NAME": "Orphan", "ACRES": 40.25, "UPDATETIME": 1561939200000},
            POLYGON_P,
        ),
    )
