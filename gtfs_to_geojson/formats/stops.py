from typing import Optional

from gtfs_to_geojson.formats.geojson import to_feature_collection
from gtfs_to_geojson.processors.context import GenerationContext


async def generate(
    context: GenerationContext, route_id: Optional[str] = None, direction_id: Optional[int] = None
) -> dict:
    """One Point feature per served stop, with the routes serving it"""
    stops = await context.store.get_stops(context.agency_key, route_id, direction_id)
    return to_feature_collection(stops)
