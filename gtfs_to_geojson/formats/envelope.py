from typing import Optional

from shapely.geometry import box

from gtfs_to_geojson.formats.geojson import empty_feature_collection, geometry_to_feature_collection
from gtfs_to_geojson.processors.context import GenerationContext


async def generate(
    context: GenerationContext, route_id: Optional[str] = None, direction_id: Optional[int] = None
) -> dict:
    """Bounding box polygon of the lines"""
    lines = await context.store.get_route_lines(context.agency_key, route_id, direction_id)
    if lines.empty:
        return empty_feature_collection()
    return geometry_to_feature_collection(box(*lines.total_bounds))
