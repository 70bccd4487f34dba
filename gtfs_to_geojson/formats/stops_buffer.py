from typing import Optional

from gtfs_to_geojson.formats.geojson import buffer_in_meters, to_feature_collection
from gtfs_to_geojson.processors.context import GenerationContext


async def generate(
    context: GenerationContext, route_id: Optional[str] = None, direction_id: Optional[int] = None
) -> dict:
    stops = await context.store.get_stops(context.agency_key, route_id, direction_id)
    if not stops.empty:
        stops["geometry"] = buffer_in_meters(stops, context.config.buffer_size_meters)
    return to_feature_collection(stops)
