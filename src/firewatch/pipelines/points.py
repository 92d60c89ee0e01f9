"""Point reducer - concatenates hotspot or lightning partitions into one feature set.

Upstream VIIRS feeds are partitioned by confidence band or time window and lightning
feeds by time window. Detections are never deduplicated across partitions.
"""

from __future__ import annotations

import copy
import logging

from firewatch.models.enums import PointOutputMode
from firewatch.models.schemas import validate_feature_collection

logger = logging.getLogger(__name__)


def _point_coordinates(feature: dict) -> list:
    geometry = feature.get("geometry") or {}
    if geometry.get("type") == "Point":
        return [geometry["coordinates"]]
    if geometry.get("type") == "MultiPoint":
        return list(geometry["coordinates"])
    return []


def reduce_points(
    collections: list[dict],
    mode: PointOutputMode = PointOutputMode.POINTS,
) -> list[dict]:
    """Concatenate the point features of every partition.

    In POINTS mode every feature passes through as-is. In MULTIPOINT mode all
    coordinates collapse into a single MultiPoint feature carrying a ``count``
    property, which keeps the payload small for dense hotspot layers.
    """
    for i, collection in enumerate(collections):
        validate_feature_collection(collection, source=f"partition {i}")

    features = [
        copy.deepcopy(feature)
        for collection in collections
        for feature in collection.get("features", [])
    ]

    if PointOutputMode(mode) is PointOutputMode.POINTS:
        logger.info("Reduced %d partitions to %d point features", len(collections), len(features))
        return features

    coordinates = [coord for feature in features for coord in _point_coordinates(feature)]
    logger.info(
        "Reduced %d partitions to one MultiPoint of %d coordinates",
        len(collections),
        len(coordinates),
    )
    return [
        {
            "type": "Feature",
            "geometry": {"type": "MultiPoint", "coordinates": coordinates},
            "properties": {"count": len(coordinates)},
        }
    ]
