from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from firewatch.exceptions import ReconciliationError

GEOMETRY_TYPES = {
    "Point",
    "MultiPoint",
    "LineString",
    "MultiLineString",
    "Polygon",
    "MultiPolygon",
    "GeometryCollection",
}


class Geometry(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    coordinates: Optional[List[Any]] = None
    geometries: Optional[List[Any]] = None

    @model_validator(mode="after")
    def _check_shape(self):
        if self.type not in GEOMETRY_TYPES:
            raise ValueError(f"unknown geometry type {self.type!r}")
        if self.type == "GeometryCollection":
            if self.geometries is None:
                raise ValueError("GeometryCollection without geometries")
        elif self.coordinates is None:
            raise ValueError(f"{self.type} without coordinates")
        return self


class Feature(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["Feature"] = "Feature"
    geometry: Optional[Geometry] = None
    properties: Optional[dict] = None


class FeatureCollection(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[Feature]


class FireOutputSchema(BaseModel):
    """Which properties a public fires payload keeps, and which records it drops."""

    model_config = ConfigDict(frozen=True)

    retained_properties: tuple = Field(
        default=(
            "IRWINID",
            "NAME",
            "acres",
            "active",
            "updated",
            "discovered",
            "containment",
            "GENERALCAUSE",
        )
    )
    require_positive_acres: bool = True


def validate_feature_collection(payload: Any, source: str = "") -> dict:
    """Check that a decoded payload is a GeoJSON FeatureCollection.

    Returns the payload untouched. Raises ReconciliationError on any shape problem so
    a malformed feed is never merged partially.
    """
    try:
        FeatureCollection.model_validate(payload)
    except ValidationError as e:
        label = f" from {source}" if source else ""
        raise ReconciliationError(
            f"Malformed feature collection{label}: {e.error_count()} validation error(s); "
            f"first: {e.errors()[0]['msg']}"
        ) from e
    return payload


def feature_collection(features: List[dict]) -> dict:
    return {"type": "FeatureCollection", "features": features}
