from dataclasses import dataclass, field
from typing import Awaitable, Callable, Mapping, Optional

from gtfs_to_geojson.models.config import Config, OutputFormat
from gtfs_to_geojson.processors.gtfs_store import GTFSStore
from gtfs_to_geojson.utils.logger import RunLoggerAdapter, get_run_logger

Generator = Callable[..., Awaitable[dict]]


@dataclass(frozen=True)
class GenerationContext:
    """
    What a format generator needs for one agency: the immutable config,
    the shared store, the agency key the queries are scoped to and the run logger.

    `generators` overrides the default format registry, mainly for tests.
    """

    config: Config
    store: GTFSStore
    agency_key: Optional[str] = None
    logger: RunLoggerAdapter = field(default_factory=get_run_logger)
    generators: Optional[Mapping[OutputFormat, Generator]] = None
