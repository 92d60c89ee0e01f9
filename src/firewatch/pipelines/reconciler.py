"""Feature reconciler - joins fire incident points with fire perimeters.

Incident and perimeter feeds describe the same real-world fires. Records sharing an
IRWINID are merged into a single feature: the incident record supplies the
properties and the perimeter supplies the polygon. Records without an IRWINID are
never merged, only passed through.

The merge runs in four passes:
1. Annotate every feature with derived properties (active, acres, timestamps)
2. Index perimeters by IRWINID (active feed first, then inactive)
3. Emit incidents, replacing geometry with the matching perimeter's
4. Emit perimeters that no incident claimed
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from firewatch.models.enums import TimestampFormat
from firewatch.models.schemas import FireOutputSchema, validate_feature_collection

logger = logging.getLogger(__name__)

ID_FIELD = "IRWINID"

TimestampFormatter = Callable[[Any], Any]


@dataclass(frozen=True)
class FeedSchema:
    """Where a feed keeps the fields the derived properties are built from."""

    acreage_fields: tuple
    updated_field: Optional[str] = None
    discovered_field: Optional[str] = None
    containment_field: Optional[str] = None


INCIDENT_FEED = FeedSchema(
    acreage_fields=("ESTIMATEDTOTALACRES", "ACTUALTOTALACRES"),
    updated_field="LASTUPDATETIME",
    discovered_field="DISCOVERYDATETIME",
    containment_field="CONTAINMENTDATETIME",
)

PERIMETER_FEED = FeedSchema(
    acreage_fields=("ACRES",),
    updated_field="UPDATETIME",
)


def format_epoch(value: Any) -> Any:
    """Pass epoch milliseconds through unchanged."""
    return value


def format_human(value: Any) -> Any:
    """Render epoch milliseconds as 'YYYY-MM-DD HH:MM UTC'."""
    if value is None or value == "":
        return None
    try:
        millis = float(value)
    except (TypeError, ValueError):
        return value
    if not math.isfinite(millis):
        return None
    return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def get_timestamp_formatter(fmt: TimestampFormat) -> TimestampFormatter:
    return {
        TimestampFormat.EPOCH: format_epoch,
        TimestampFormat.HUMAN: format_human,
    }[TimestampFormat(fmt)]


def parse_acres(value: Any) -> Optional[str]:
    """Acreage fixed to two decimals, or None when the value is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        acres = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(acres):
        return None
    return f"{acres:.2f}"


def has_positive_acres(feature: dict) -> bool:
    acres = (feature.get("properties") or {}).get("acres")
    if acres is None:
        return False
    try:
        value = float(acres)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and value > 0


def feature_id(feature: dict) -> Optional[str]:
    value = (feature.get("properties") or {}).get(ID_FIELD)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def annotate(
    feature: dict,
    feed: FeedSchema,
    active: bool,
    formatter: TimestampFormatter = format_epoch,
) -> dict:
    """Return a copy of ``feature`` carrying the derived properties."""
    annotated = copy.deepcopy(feature)
    props = dict(annotated.get("properties") or {})

    acres = None
    for field in feed.acreage_fields:
        acres = parse_acres(props.get(field))
        if acres is not None:
            break

    props["active"] = active
    props["acres"] = acres
    props["updated"] = formatter(props.get(feed.updated_field)) if feed.updated_field else None
    props["discovered"] = (
        formatter(props.get(feed.discovered_field)) if feed.discovered_field else None
    )
    props["containment"] = (
        formatter(props.get(feed.containment_field)) if feed.containment_field else None
    )

    annotated["type"] = "Feature"
    annotated["properties"] = props
    annotated.setdefault("geometry", None)
    return annotated


def apply_output_schema(features: list[dict], schema: FireOutputSchema) -> list[dict]:
    """Strip properties to the schema's allow-list and drop junk-acreage records."""
    output = []
    dropped = 0
    for feature in features:
        if schema.require_positive_acres and not has_positive_acres(feature):
            dropped += 1
            continue
        props = feature.get("properties") or {}
        output.append(
            {
                "type": "Feature",
                "geometry": feature.get("geometry"),
                "properties": {k: props[k] for k in schema.retained_properties if k in props},
            }
        )
    if dropped:
        logger.info("Dropped %d fire features without positive acreage", dropped)
    return output


def _annotate_feed(collection: Optional[dict], feed: FeedSchema, active: bool, formatter) -> list:
    if not collection:
        return []
    return [annotate(f, feed, active, formatter) for f in collection.get("features", [])]


def reconcile(
    active_perimeters: Optional[dict],
    active_incidents: Optional[dict],
    inactive_perimeters: Optional[dict] = None,
    inactive_incidents: Optional[dict] = None,
    formatter: TimestampFormatter = format_epoch,
    output_schema: Optional[FireOutputSchema] = None,
) -> list[dict]:
    """Merge incident and perimeter feeds into one list of fire features.

    Each argument is a decoded GeoJSON FeatureCollection, or None for a feed that is
    not configured. Every collection is validated before anything is merged; a
    malformed one raises ReconciliationError and nothing is returned.

    When the same IRWINID appears in both the active and inactive feed of a kind,
    the active copy is kept.
    """
    for name, collection in (
        ("active perimeters", active_perimeters),
        ("active incidents", active_incidents),
        ("inactive perimeters", inactive_perimeters),
        ("inactive incidents", inactive_incidents),
    ):
        if collection is not None:
            validate_feature_collection(collection, source=name)

    perimeters = _annotate_feed(active_perimeters, PERIMETER_FEED, True, formatter)
    perimeters += _annotate_feed(inactive_perimeters, PERIMETER_FEED, False, formatter)
    incidents = _annotate_feed(active_incidents, INCIDENT_FEED, True, formatter)
    incidents += _annotate_feed(inactive_incidents, INCIDENT_FEED, False, formatter)

    perimeter_index: dict[str, dict] = {}
    for perimeter in perimeters:
        key = feature_id(perimeter)
        if key is not None:
            perimeter_index.setdefault(key, perimeter)

    merged: list[dict] = []
    emitted: set[str] = set()
    with_perimeter = 0

    for incident in incidents:
        key = feature_id(incident)
        if key is None:
            merged.append(incident)
            continue
        if key in emitted:
            logger.debug("Skipping duplicate incident %s", key)
            continue
        perimeter = perimeter_index.get(key)
        if perimeter is not None:
            incident["geometry"] = perimeter.get("geometry")
            with_perimeter += 1
        merged.append(incident)
        emitted.add(key)

    orphans = 0
    for perimeter in perimeters:
        key = feature_id(perimeter)
        if key is not None:
            if key in emitted:
                continue
            emitted.add(key)
        merged.append(perimeter)
        orphans += 1

    logger.info(
        "Reconciled %d incidents and %d perimeters: %d features (%d with perimeter, %d standalone perimeters)",
        len(incidents),
        len(perimeters),
        len(merged),
        with_perimeter,
        orphans,
    )

    if output_schema is not None:
        merged = apply_output_schema(merged, output_schema)
    return merged
