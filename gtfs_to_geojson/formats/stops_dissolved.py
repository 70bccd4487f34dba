from typing import Optional

from shapely.ops import unary_union

from gtfs_to_geojson.formats.geojson import (
    buffer_in_meters,
    empty_feature_collection,
    geometry_to_feature_collection,
)
from gtfs_to_geojson.processors.context import GenerationContext


async def generate(
    context: GenerationContext, route_id: Optional[str] = None, direction_id: Optional[int] = None
) -> dict:
    """Union of the buffered stops, as a single feature"""
    stops = await context.store.get_stops(context.agency_key, route_id, direction_id)
    if stops.empty:
        return empty_feature_collection()
    buffered = buffer_in_meters(stops, context.config.buffer_size_meters)
    return geometry_to_feature_collection(unary_union(list(buffered)))
