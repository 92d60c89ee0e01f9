from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings

from firewatch.models.enums import PointOutputMode, TimestampFormat

_AICC = "https://fire.ak.blm.gov/arcgis/rest/services/MapAndFeatureServices"


class Settings(BaseSettings):
    app_name: str = "FIREWATCH"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False, alias="FIREWATCH_DEBUG")

    # Server
    host: str = Field(default="127.0.0.1", alias="FIREWATCH_HOST")
    port: int = Field(default=3000, alias="FIREWATCH_PORT")

    # Sentry
    sentry_dsn: str = Field(default="", alias="FIREWATCH_SENTRY_DSN")

    # Upstream feeds (fires)
    active_perimeters_url: str = Field(
        default=f"{_AICC}/Fires_Perimeters/FeatureServer/1/query?where=1%3D1&outFields=*&outSR=4326&f=geojson",
        alias="FIREWATCH_ACTIVE_PERIMETERS_URL",
    )
    active_incidents_url: str = Field(
        default=f"{_AICC}/Fires/MapServer/1/query?where=1%3D1&outFields=*&outSR=4326&f=geojson",
        alias="FIREWATCH_ACTIVE_INCIDENTS_URL",
    )
    inactive_perimeters_url: str = Field(default="", alias="FIREWATCH_INACTIVE_PERIMETERS_URL")
    inactive_incidents_url: str = Field(default="", alias="FIREWATCH_INACTIVE_INCIDENTS_URL")

    # Upstream feeds (points)
    viirs_urls: List[str] = Field(default_factory=list, alias="FIREWATCH_VIIRS_URLS")
    lightning_urls: List[str] = Field(default_factory=list, alias="FIREWATCH_LIGHTNING_URLS")

    # Upstream feeds (daily stats)
    tally_csv_url: str = Field(
        default=(
            "https://fire.ak.blm.gov/content/aicc/Statistics%20Directory/"
            "Alaska%20Daily%20Stats%20-%202004%20to%20Present.csv"
        ),
        alias="FIREWATCH_TALLY_CSV_URL",
    )

    # Fetching
    fetch_timeout_seconds: float = Field(default=30.0, alias="FIREWATCH_FETCH_TIMEOUT_SECONDS")
    max_concurrent_fetches: int = Field(default=4, alias="FIREWATCH_MAX_CONCURRENT_FETCHES")

    # Cache
    cache_ttl_seconds: int = Field(default=3600, alias="FIREWATCH_CACHE_TTL_SECONDS")
    public_root: str = Field(default="public", alias="FIREWATCH_PUBLIC_ROOT")

    # Scheduler
    scheduler_enabled: bool = Field(default=True, alias="FIREWATCH_SCHEDULER_ENABLED")
    refresh_interval_minutes: int = Field(default=15, alias="FIREWATCH_REFRESH_INTERVAL_MINUTES")

    # Output policy
    timestamp_format: TimestampFormat = Field(
        default=TimestampFormat.EPOCH, alias="FIREWATCH_TIMESTAMP_FORMAT"
    )
    fires_public_output: bool = Field(default=True, alias="FIREWATCH_FIRES_PUBLIC_OUTPUT")
    viirs_output_mode: PointOutputMode = Field(
        default=PointOutputMode.POINTS, alias="FIREWATCH_VIIRS_OUTPUT_MODE"
    )

    # Time series
    season_start_day: int = 121  # May 1
    season_end_day: int = 274  # September 30, exclusive
    top_years: List[str] = ["2004", "2015", "2005", "2009", "2013"]
    include_average: bool = Field(default=False, alias="FIREWATCH_INCLUDE_AVERAGE")

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }


settings = Settings()
