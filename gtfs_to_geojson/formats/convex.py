from typing import Optional

from shapely.ops import unary_union

from gtfs_to_geojson.formats.geojson import empty_feature_collection, geometry_to_feature_collection
from gtfs_to_geojson.processors.context import GenerationContext


async def generate(
    context: GenerationContext, route_id: Optional[str] = None, direction_id: Optional[int] = None
) -> dict:
    """Convex hull of the stops"""
    stops = await context.store.get_stops(context.agency_key, route_id, direction_id)
    if stops.empty:
        return empty_feature_collection()
    return geometry_to_feature_collection(unary_union(list(stops.geometry)).convex_hull)
