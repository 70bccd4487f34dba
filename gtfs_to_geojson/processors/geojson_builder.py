"""
Module building GeoJSON from imported GTFS data.

For each agency of the config, the GTFS feed is imported into the store,
then GeoJSON is generated in every requested format, either once for the whole agency
or once per route and direction.

Functions:
    get_geojson_by_format: Run the requested format generators for one scope
    build_geojson: Generate the output of one agency, agency or route scoped
    gtfs_to_geojson: Import and generate for the configured agencies

Example:
    geojson = asyncio.run(
        gtfs_to_geojson(
            {
                "agencies": [{"agency_key": "tag", "path": "data/gtfs-tag.zip"}],
                "outputType": "route",
                "outputFormat": ["lines", "stops-buffer"],
            }
        )
    )
    geojson["C1_0"]["stopsBuffer"]  # FeatureCollection
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from gtfs_to_geojson.exceptions import InvalidFormatError, InvalidScopeError
from gtfs_to_geojson.formats import (
    convex,
    envelope,
    lines,
    lines_and_stops,
    lines_buffer,
    lines_dissolved,
    stops,
    stops_buffer,
    stops_dissolved,
)
from gtfs_to_geojson.models.agency import AgencyDescriptor
from gtfs_to_geojson.models.config import (
    AgencyPolicy,
    Config,
    OutputFormat,
    OutputType,
    load_config,
    set_default_config,
)
from gtfs_to_geojson.models.route import Route
from gtfs_to_geojson.models.trip import Trip
from gtfs_to_geojson.processors.context import GenerationContext, Generator
from gtfs_to_geojson.processors.gtfs_store import GTFSStore
from gtfs_to_geojson.settings import CONFIG_FILE, LOGGER_LEVEL
from gtfs_to_geojson.utils.concurrency import gather_all
from gtfs_to_geojson.utils.formatters import format_seconds, get_route_name
from gtfs_to_geojson.utils.logger import RunLoggerAdapter, get_run_logger, setup_logger

# Set up logger
logger = logging.getLogger(__name__)

FORMAT_GENERATORS: Dict[OutputFormat, Generator] = {
    OutputFormat.ENVELOPE: envelope.generate,
    OutputFormat.CONVEX: convex.generate,
    OutputFormat.LINES_AND_STOPS: lines_and_stops.generate,
    OutputFormat.LINES: lines.generate,
    OutputFormat.LINES_BUFFER: lines_buffer.generate,
    OutputFormat.LINES_DISSOLVED: lines_dissolved.generate,
    OutputFormat.STOPS: stops.generate,
    OutputFormat.STOPS_BUFFER: stops_buffer.generate,
    OutputFormat.STOPS_DISSOLVED: stops_dissolved.generate,
}


@dataclass
class RunStatistics:
    routes: int = 0
    files: int = 0
    elapsed: timedelta = timedelta(0)


def requested_formats(context: GenerationContext) -> List[OutputFormat]:
    """Known formats of the config, in generation order"""
    generators = context.generators or FORMAT_GENERATORS
    return [
        output_format
        for output_format in OutputFormat
        if output_format.value in context.config.output_format and output_format in generators
    ]


async def get_geojson_by_format(
    context: GenerationContext, route_id: Optional[str] = None, direction_id: Optional[int] = None
) -> Dict[str, dict]:
    """
    Run every requested generator concurrently and map each format label to its GeoJSON.

    Unknown format names are ignored, it is only an error when none is known.
    """
    generators = context.generators or FORMAT_GENERATORS
    requested = requested_formats(context)
    results = await gather_all(
        generators[output_format](context, route_id, direction_id) for output_format in requested
    )

    all_geo = {output_format.label: geojson for output_format, geojson in zip(requested, results)}
    if all_geo:
        return all_geo

    raise InvalidFormatError(",".join(context.config.output_format))


def resolve_directions(trips: List[Trip]) -> List[Trip]:
    """
    First trip of each distinct headsign.

    Headsigns stand in for directions: a route may have more than two of them,
    and two headsigns may share a `direction_id`.
    """
    directions: Dict[Optional[str], Trip] = {}
    for trip in trips:
        directions.setdefault(trip.trip_headsign, trip)
    return list(directions.values())


def direction_key(route_name: str, direction_id: Optional[int]) -> str:
    # Trips without direction_id are generated unfiltered, for the whole route
    return f"{route_name}_{'all' if direction_id is None else direction_id}"


async def _build_route_geojson(
    context: GenerationContext, route: Route, stats: RunStatistics
) -> Dict[str, Dict[str, dict]]:
    stats.routes += 1

    trips = await context.store.get_trips(
        {"route_id": route.route_id}, ["trip_headsign", "direction_id"], agency_key=context.agency_key
    )
    route_name = get_route_name(route)

    # Headsigns sharing a direction_id would generate the same output
    keyed_directions: Dict[str, Trip] = {}
    for direction in resolve_directions(trips):
        key = direction_key(route_name, direction.direction_id)
        if key in keyed_directions:
            context.logger.debug(
                f"Headsign '{direction.trip_headsign}' of route {route.route_id} shares the key {key}"
            )
            continue
        keyed_directions[key] = direction

    outputs = await gather_all(
        get_geojson_by_format(context, route.route_id, direction.direction_id)
        for direction in keyed_directions.values()
    )
    return dict(zip(keyed_directions, outputs))


async def build_geojson(
    context: GenerationContext, stats: RunStatistics
) -> Dict[str, dict] | Dict[str, Dict[str, dict]]:
    """Output map of the agency, or output maps keyed by `<route name>_<direction id>`"""
    output_type = context.config.output_type
    if output_type == OutputType.ROUTE:
        # Routes without trips never reach the dispatcher
        if not requested_formats(context):
            raise InvalidFormatError(",".join(context.config.output_format))

        routes = await context.store.get_routes(context.agency_key)
        route_outputs = await gather_all(_build_route_geojson(context, route, stats) for route in routes)

        all_geo: Dict[str, Dict[str, dict]] = {}
        for route_geo in route_outputs:
            for key, output_map in route_geo.items():
                if key in all_geo:
                    context.logger.warning(f"Several routes are named after {key}, keeping the first one")
                    continue
                all_geo[key] = output_map
        stats.files += sum(len(output_map) for output_map in all_geo.values())
        return all_geo
    elif output_type == OutputType.AGENCY:
        geojson = await get_geojson_by_format(context)
        stats.files += len(geojson)
        return geojson
    else:
        raise InvalidScopeError(output_type)


async def _process_agency(
    config: Config,
    store: GTFSStore,
    agency: AgencyDescriptor,
    run_logger: RunLoggerAdapter,
    generators: Optional[Mapping[OutputFormat, Generator]],
) -> dict:
    start = datetime.now()
    stats = RunStatistics()

    if not config.skip_import:
        await store.import_feed(config.for_agency(agency))

    run_logger.info(f"Starting GeoJSON creation for {agency.agency_key}")
    context = GenerationContext(
        config=config, store=store, agency_key=agency.agency_key, logger=run_logger, generators=generators
    )
    geojson = await build_geojson(context, stats)

    stats.elapsed = datetime.now() - start
    run_logger.info(f"GeoJSON generation required {format_seconds(stats.elapsed)} seconds")
    run_logger.info(f"Generated {stats.files} GeoJSON for {stats.routes} routes")
    return geojson


async def gtfs_to_geojson(
    initial_config: dict | Config,
    store: Optional[GTFSStore] = None,
    generators: Optional[Mapping[OutputFormat, Generator]] = None,
) -> dict:
    """
    Import and generate GeoJSON for the configured agencies, one agency after the other.

    With the `return_first_only` policy (default) the output of the first agency is returned
    and the other agencies are not processed.
    With `aggregate_all`, outputs of every agency are returned keyed by agency key.
    """
    config = set_default_config(initial_config)
    run_logger = get_run_logger(verbose=config.verbose)
    store = store or GTFSStore()
    await store.open(config)

    run_logger.info(f"Started GeoJSON creation for {len(config.agencies)} agencies.")
    if config.agency_policy == AgencyPolicy.RETURN_FIRST_ONLY and len(config.agencies) > 1:
        run_logger.warning(
            f"Only the first of {len(config.agencies)} agencies is processed, "
            f"set `agencyPolicy` to `{AgencyPolicy.AGGREGATE_ALL.value}` to process them all"
        )

    outputs = {}
    for agency in config.agencies:
        if agency.agency_key in outputs:
            run_logger.warning(f"Agency {agency.agency_key} is listed several times, keeping the first one")
            continue
        geojson = await _process_agency(
            config, store, agency, run_logger.bind(agency_key=agency.agency_key), generators
        )
        if config.agency_policy == AgencyPolicy.RETURN_FIRST_ONLY:
            return geojson
        outputs[agency.agency_key] = geojson
    return outputs


def main(config_path: Path = CONFIG_FILE, level: int = LOGGER_LEVEL):
    setup_logger(level=level)
    config = load_config(config_path)
    logger.info(f"Running GeoJSON creation with {config_path}")
    return asyncio.run(gtfs_to_geojson(config))


if __name__ == "__main__":
    main(level=logging.DEBUG)
