"""
Run configuration of the GeoJSON pipeline.

Keys are accepted in the camelCase spelling of the JSON config files
(`outputType`, `bufferSizeMeters`, ...) as well as by field name.
Unknown keys are kept, they belong to the store adapter.
"""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from gtfs_to_geojson.models.agency import AgencyDescriptor
from gtfs_to_geojson.models.route import GTFSRouteType
from gtfs_to_geojson.settings import (
    DEFAULT_BUFFER_SIZE_METERS,
    DOWNLOAD_MAX_RETRIES,
    DOWNLOAD_TIMEOUT,
    STORE_FOLDER,
    VERSION,
)
from gtfs_to_geojson.utils.formatters import to_camel_case


class OutputType(str, Enum):
    AGENCY = "agency"
    ROUTE = "route"


class OutputFormat(str, Enum):
    """GeoJSON formats, declared in generation order"""

    ENVELOPE = "envelope"
    CONVEX = "convex"
    LINES_AND_STOPS = "lines-and-stops"
    LINES = "lines"
    LINES_BUFFER = "lines-buffer"
    LINES_DISSOLVED = "lines-dissolved"
    STOPS = "stops"
    STOPS_BUFFER = "stops-buffer"
    STOPS_DISSOLVED = "stops-dissolved"

    @property
    def label(self) -> str:
        """Key of the format in an output map, e.g. `linesAndStops`"""
        return to_camel_case(self.value)


class AgencyPolicy(str, Enum):
    RETURN_FIRST_ONLY = "return_first_only"
    AGGREGATE_ALL = "aggregate_all"


class Config(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, extra="allow"
    )

    gtfs_to_geojson_version: str = Field(VERSION, alias="gtfsToGeoJSONVersion")

    # Validated by the scope resolver and the format dispatcher, not here
    output_type: str = OutputType.AGENCY.value
    output_format: tuple[str, ...] = (OutputFormat.LINES_AND_STOPS.value,)

    buffer_size_meters: float = Field(DEFAULT_BUFFER_SIZE_METERS, gt=0)
    skip_import: bool = False
    verbose: bool = True
    zip_output: bool = False
    agencies: tuple[AgencyDescriptor, ...] = Field(min_length=1)
    agency_policy: AgencyPolicy = AgencyPolicy.RETURN_FIRST_ONLY

    # Store adapter
    store_dir: Path = STORE_FOLDER
    force_download: bool = False
    download_timeout: int = DOWNLOAD_TIMEOUT
    download_max_retries: int = DOWNLOAD_MAX_RETRIES
    exclude_route_types: frozenset[GTFSRouteType] = frozenset()

    @field_validator("output_format", mode="before")
    @classmethod
    def wrap_single_format(cls, value):
        if isinstance(value, str):
            return (value,)
        return value

    def for_agency(self, agency: AgencyDescriptor) -> "Config":
        """Copy of the config restricted to one agency"""
        return self.model_copy(update={"agencies": (agency,)})


def set_default_config(config: dict | Config) -> Config:
    """Merge a raw config with the defaults, `None` values count as unset"""
    if isinstance(config, Config):
        return config
    return Config.model_validate({key: value for key, value in config.items() if value is not None})


def load_config(path: Path) -> Config:
    with open(path, "r", encoding="utf-8") as f:
        return set_default_config(json.load(f))
