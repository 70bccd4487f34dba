from typing import Optional

from gtfs_to_geojson.formats import lines, stops
from gtfs_to_geojson.formats.geojson import merge_feature_collections
from gtfs_to_geojson.processors.context import GenerationContext


async def generate(
    context: GenerationContext, route_id: Optional[str] = None, direction_id: Optional[int] = None
) -> dict:
    """Line features followed by stop features"""
    return merge_feature_collections(
        await lines.generate(context, route_id, direction_id),
        await stops.generate(context, route_id, direction_id),
    )
