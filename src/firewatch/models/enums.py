from enum import Enum


class Domain(str, Enum):
    FIRES = "fires"
    VIIRS = "viirs"
    LIGHTNING = "lightning"
    TALLY = "tally"

    @property
    def snapshot_name(self) -> str:
        return {
            Domain.FIRES: "fires.geojson",
            Domain.VIIRS: "viirs.geojson",
            Domain.LIGHTNING: "lightning.geojson",
            Domain.TALLY: "tally.json",
        }[self]

    @property
    def is_feature_collection(self) -> bool:
        return self is not Domain.TALLY


class Provenance(str, Enum):
    FRESH = "fresh"
    MEMORY = "memory cache"
    DISK = "disk cache"


class TimestampFormat(str, Enum):
    EPOCH = "epoch"
    HUMAN = "human"


class PointOutputMode(str, Enum):
    POINTS = "points"
    MULTIPOINT = "multipoint"
