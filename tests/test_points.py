"""Tests for the hotspot/lightning point reducer."""

import pytest
from conftest import make_collection, make_feature

from firewatch.exceptions import ReconciliationError
from firewatch.models.enums import PointOutputMode
from firewatch.pipelines.points import reduce_points


def _point(lon, lat, **props):
    return make_feature(props, {"type": "Point", "coordinates": [lon, lat]})


@pytest.fixture
def partitions():
    return [
        make_collection(_point(-147.1, 64.8, confidence="high"), _point(-147.2, 64.9)),
        make_collection(_point(-147.1, 64.8, confidence="nominal")),
        make_collection(),
    ]


class TestReducePoints:
    def test_passthrough_concatenates_without_dedup(self, partitions):
        features = reduce_points(partitions)
        assert len(features) == 3
        assert features[0]["properties"]["confidence"] == "high"
        assert features[2]["properties"]["confidence"] == "nominal"

    def test_multipoint_collapses(self, partitions):
        [feature] = reduce_points(partitions, PointOutputMode.MULTIPOINT)
        assert feature["geometry"]["type"] == "MultiPoint"
        assert feature["geometry"]["coordinates"] == [[-147.1, 64.8], [-147.2, 64.9], [-147.1, 64.8]]
        assert feature["properties"]["count"] == 3

    def test_multipoint_flattens_and_skips_empty_geometry(self):
        collection = make_collection(
            make_feature({}, {"type": "MultiPoint", "coordinates": [[1, 2], [3, 4]]}),
            make_feature({}, None),
        )
        [feature] = reduce_points([collection], "multipoint")
        assert feature["properties"]["count"] == 2

    def test_no_partitions(self):
        assert reduce_points([]) == []
        [feature] = reduce_points([], PointOutputMode.MULTIPOINT)
        assert feature["properties"]["count"] == 0

    def test_malformed_partition_raises(self, partitions):
        with pytest.raises(ReconciliationError):
            reduce_points(partitions + [{"features": "nope"}])
