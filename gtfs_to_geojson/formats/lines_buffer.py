from typing import Optional

from gtfs_to_geojson.formats.geojson import buffer_in_meters, to_feature_collection
from gtfs_to_geojson.processors.context import GenerationContext


async def generate(
    context: GenerationContext, route_id: Optional[str] = None, direction_id: Optional[int] = None
) -> dict:
    lines = await context.store.get_route_lines(context.agency_key, route_id, direction_id)
    if not lines.empty:
        lines["geometry"] = buffer_in_meters(lines, context.config.buffer_size_meters)
    return to_feature_collection(lines)
