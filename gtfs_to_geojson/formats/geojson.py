import json

import geopandas as gpd
from shapely.geometry.base import BaseGeometry

from gtfs_to_geojson.settings import EPSG_WGS84


def empty_feature_collection() -> dict:
    return {"type": "FeatureCollection", "features": []}


def to_feature_collection(gdf: gpd.GeoDataFrame) -> dict:
    if gdf.empty:
        return empty_feature_collection()
    return json.loads(gdf.to_json(drop_id=True))


def geometry_to_feature_collection(geometry: BaseGeometry | None, **properties) -> dict:
    """FeatureCollection holding a single feature"""
    if geometry is None or geometry.is_empty:
        return empty_feature_collection()
    gdf = gpd.GeoDataFrame(
        {key: [value] for key, value in properties.items()}, index=[0], geometry=[geometry], crs=EPSG_WGS84
    )
    return to_feature_collection(gdf)


def merge_feature_collections(*collections: dict) -> dict:
    features = []
    for collection in collections:
        features.extend(collection["features"])
    return {"type": "FeatureCollection", "features": features}


def buffer_in_meters(gdf: gpd.GeoDataFrame, meters: float) -> gpd.GeoSeries:
    """Buffer WGS84 geometries by a distance in meters, through the local UTM projection"""
    utm_crs = gdf.estimate_utm_crs()
    return gdf.to_crs(utm_crs).buffer(meters).to_crs(EPSG_WGS84)
