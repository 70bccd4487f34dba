from typing import Optional

from gtfs_to_geojson.formats.geojson import to_feature_collection
from gtfs_to_geojson.processors.context import GenerationContext


async def generate(
    context: GenerationContext, route_id: Optional[str] = None, direction_id: Optional[int] = None
) -> dict:
    """One LineString or MultiLineString feature per route"""
    lines = await context.store.get_route_lines(context.agency_key, route_id, direction_id)
    return to_feature_collection(lines)
