"""
Store adapter for imported GTFS feeds.

Feeds are imported (copied or downloaded) into the store directory, one per agency key,
then read with gtfs_kit and queried by the GeoJSON pipeline.
Queries are coroutines so that the pipeline can fan them out.

Classes:
    GTFSStore: Import feeds and answer route, trip, stop and line queries
"""

import logging
import shutil
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, Iterable, List, Optional

import geopandas as gpd
import gtfs_kit as gk
import numpy as np
import pandas as pd
from shapely.geometry import LineString, MultiLineString, Point

from gtfs_to_geojson.exceptions import FeedImportError, StoreNotOpenError, UnknownAgencyError
from gtfs_to_geojson.models.agency import AgencyDescriptor
from gtfs_to_geojson.models.config import Config
from gtfs_to_geojson.models.route import GTFSRouteType, Route
from gtfs_to_geojson.models.trip import Trip
from gtfs_to_geojson.settings import EPSG_WGS84
from gtfs_to_geojson.utils.downloader import download_file

# Set up logger
logger = logging.getLogger(__name__)


class GTFSStore:
    """Imported GTFS feeds, keyed by agency key"""

    def __init__(self):
        self.store_dir: Optional[Path] = None
        self.exclude_route_types: frozenset[GTFSRouteType] = frozenset()
        self._feeds: Dict[str, SimpleNamespace] = {}

    @property
    def is_open(self) -> bool:
        return self.store_dir is not None

    async def open(self, config: Config) -> None:
        """Open the store directory, feeds already imported there are loaded on first query"""
        self.store_dir = Path(config.store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self.exclude_route_types = frozenset(config.exclude_route_types)
        self._feeds = {}
        logger.debug(f"Opened GTFS store in {self.store_dir}")

    async def import_feed(self, config: Config) -> None:
        """Import the feeds of every agency of the config into the store, replacing older imports"""
        self._check_open()
        for agency in config.agencies:
            stored_path = self._stage_feed(agency, config)
            self._feeds[agency.agency_key] = self._read_feed(stored_path)
            logger.info(f"Imported GTFS for {agency.agency_key} from {stored_path}")

    async def get_routes(self, agency_key: Optional[str] = None) -> List[Route]:
        routes_df = pd.concat([feed.routes for feed in self._select_feeds(agency_key)], ignore_index=True)
        columns = self.get_dynamic_columns(
            routes_df,
            ["route_id"],
            [
                "route_short_name",
                "route_long_name",
                "route_type",
                "agency_id",
                "route_color",
                "route_text_color",
            ],
        )
        return [Route(**record) for record in self.to_records(routes_df[columns])]

    async def get_trips(
        self,
        filters: Optional[dict] = None,
        fields: Optional[Iterable[str]] = None,
        agency_key: Optional[str] = None,
    ) -> List[Trip]:
        """Trips matching every `filters` column, projected to `fields` when given"""
        trips_df = pd.concat([feed.trips for feed in self._select_feeds(agency_key)], ignore_index=True)
        for column, value in (filters or {}).items():
            if column not in trips_df.columns:
                return []
            trips_df = trips_df[trips_df[column] == value]

        if fields is not None:
            trips_df = trips_df[self.get_dynamic_columns(trips_df, [], list(fields))]
        return [Trip(**record) for record in self.to_records(trips_df)]

    async def get_stops(
        self,
        agency_key: Optional[str] = None,
        route_id: Optional[str] = None,
        direction_id: Optional[int] = None,
    ) -> gpd.GeoDataFrame:
        """Served stops as points, each with the list of routes serving it"""
        frames = []
        for feed in self._select_feeds(agency_key):
            trips = self._select_trips(feed, route_id, direction_id)
            stop_times = feed.stop_times[feed.stop_times["trip_id"].isin(trips["trip_id"])]
            stops = feed.stops[feed.stops["stop_id"].isin(stop_times["stop_id"].unique())]
            stops = stops.dropna(subset=["stop_lat", "stop_lon"])
            if stops.empty:
                continue

            geometry = [
                Point(float(lon), float(lat)) for lon, lat in zip(stops["stop_lon"], stops["stop_lat"])
            ]
            columns = self.get_dynamic_columns(stops, ["stop_id", "stop_name"], ["stop_code", "stop_desc"])
            stops = stops[columns].copy()
            stops["routes"] = pd.Series(
                self._lines_per_stop(stops, stop_times, trips, feed.routes), index=stops.index, dtype=object
            )
            stops["geometry"] = pd.Series(geometry, index=stops.index, dtype=object)
            frames.append(stops)

        if not frames:
            return gpd.GeoDataFrame(
                columns=["stop_id", "stop_name", "routes", "geometry"], geometry="geometry", crs=EPSG_WGS84
            )
        return gpd.GeoDataFrame(pd.concat(frames, ignore_index=True), geometry="geometry", crs=EPSG_WGS84)

    async def get_route_lines(
        self,
        agency_key: Optional[str] = None,
        route_id: Optional[str] = None,
        direction_id: Optional[int] = None,
    ) -> gpd.GeoDataFrame:
        """One line geometry per route, from shapes.txt or else from the stop sequences of the trips"""
        lines_data = []
        for feed in self._select_feeds(agency_key):
            trips = self._select_trips(feed, route_id, direction_id)
            routes = feed.routes[feed.routes["route_id"].isin(trips["route_id"].unique())]
            columns = self.get_dynamic_columns(
                routes,
                ["route_id"],
                ["route_short_name", "route_long_name", "route_color", "route_text_color"],
            )
            for route in routes[columns].itertuples(index=False):
                route_trips = trips[trips["route_id"] == route.route_id]
                geometry = self._create_route_geometry(feed, route_trips)
                if geometry is None:
                    logger.debug(f"No geometry for route {route.route_id}")
                    continue
                lines_data.append({**self.clean_record(route._asdict()), "geometry": geometry})

        if not lines_data:
            return gpd.GeoDataFrame(columns=["route_id", "geometry"], geometry="geometry", crs=EPSG_WGS84)
        return gpd.GeoDataFrame(lines_data, geometry="geometry", crs=EPSG_WGS84)

    # ----------------- Import helpers -----------------
    def _check_open(self) -> None:
        if not self.is_open:
            raise StoreNotOpenError("GTFS store is not open, call `open` first")

    def _stage_feed(self, agency: AgencyDescriptor, config: Config) -> Path:
        """Copy or download the agency feed into the store directory"""
        if agency.url:
            destination = self.store_dir / f"{agency.agency_key}.zip"
            download_file(
                agency.url,
                destination,
                force_download=config.force_download,
                max_retries=config.download_max_retries,
                timeout=config.download_timeout,
            )
            return destination

        if agency.path is None:
            raise FeedImportError(f"Agency {agency.agency_key} has neither `path` nor `url`")
        source = Path(agency.path)
        if not source.exists():
            logger.error(f"GTFS source does not exist: {source}")
            raise FeedImportError(f"GTFS source does not exist: {source}")

        destination = self.store_dir / (f"{agency.agency_key}.zip" if source.is_file() else agency.agency_key)
        if source.resolve() == destination.resolve():
            return destination
        self._remove_stored(agency.agency_key)
        if source.is_file():
            shutil.copyfile(source, destination)
        else:
            shutil.copytree(source, destination)
        return destination

    def _remove_stored(self, agency_key: str) -> None:
        self._feeds.pop(agency_key, None)
        archive = self.store_dir / f"{agency_key}.zip"
        if archive.exists():
            archive.unlink()
        folder = self.store_dir / agency_key
        if folder.is_dir():
            shutil.rmtree(folder)

    def _stored_path(self, agency_key: str) -> Optional[Path]:
        for path in (self.store_dir / f"{agency_key}.zip", self.store_dir / agency_key):
            if path.exists():
                return path
        return None

    def _read_feed(self, path: Path) -> SimpleNamespace:
        try:
            feed = gk.read_feed(path, dist_units="km")
        except Exception as e:
            logger.error(f"Error reading GTFS file {path}: {type(e).__name__} {str(e)}")
            raise FeedImportError(f"Error reading GTFS file {path}: {e}") from e

        for table in ("routes", "trips", "stops", "stop_times"):
            if getattr(feed, table, None) is None:
                raise FeedImportError(f"GTFS file {path} has no {table}.txt")
        return self._exclude_route_types(self.prepare_feed(feed))

    def _exclude_route_types(self, feed: SimpleNamespace) -> SimpleNamespace:
        """Drop excluded route types, then cascade to trips and stop_times"""
        if not self.exclude_route_types:
            return feed

        excluded = sorted(self.exclude_route_types)
        routes = feed.routes[~feed.routes["route_type"].astype("Int64").isin([int(t) for t in excluded])]
        trips = feed.trips[feed.trips["route_id"].isin(routes["route_id"])]
        stop_times = feed.stop_times[feed.stop_times["trip_id"].isin(trips["trip_id"])]
        logger.info(
            f"Excluded {len(feed.routes) - len(routes)} routes "
            f"with route types {[route_type.name for route_type in excluded]}"
        )
        return SimpleNamespace(
            agency=feed.agency,
            routes=routes,
            trips=trips,
            stops=feed.stops,
            stop_times=stop_times,
            shapes=feed.shapes,
        )

    @staticmethod
    def prepare_feed(feed: gk.Feed) -> SimpleNamespace:
        """Lightweight copy of the feed tables with the optional columns the queries use"""
        routes = feed.routes.copy()
        for column in (
            "route_short_name",
            "route_long_name",
            "route_type",
            "route_color",
            "route_text_color",
        ):
            if column not in routes.columns:
                routes[column] = None

        trips = feed.trips.copy()
        for column in ("trip_headsign", "direction_id", "shape_id"):
            if column not in trips.columns:
                trips[column] = None

        return SimpleNamespace(
            agency=getattr(feed, "agency", None),
            routes=routes,
            trips=trips,
            stops=feed.stops,
            stop_times=feed.stop_times,
            shapes=getattr(feed, "shapes", None),
        )

    # ----------------- Query helpers -----------------
    def _get_feed(self, agency_key: str) -> SimpleNamespace:
        self._check_open()
        if agency_key not in self._feeds:
            path = self._stored_path(agency_key)
            if path is None:
                raise UnknownAgencyError(f"No GTFS imported for agency {agency_key} in {self.store_dir}")
            self._feeds[agency_key] = self._read_feed(path)
        return self._feeds[agency_key]

    def _select_feeds(self, agency_key: Optional[str]) -> List[SimpleNamespace]:
        if agency_key is not None:
            return [self._get_feed(agency_key)]
        self._check_open()
        if not self._feeds:
            raise UnknownAgencyError("No GTFS imported in the store")
        return list(self._feeds.values())

    @staticmethod
    def _select_trips(
        feed: SimpleNamespace, route_id: Optional[str], direction_id: Optional[int]
    ) -> pd.DataFrame:
        trips = feed.trips
        if route_id is not None:
            trips = trips[trips["route_id"] == route_id]
        if direction_id is not None:
            # direction_id may be a nullable column
            trips = trips[trips["direction_id"].eq(direction_id).fillna(False).astype(bool)]
        return trips

    @staticmethod
    def _lines_per_stop(
        stops: pd.DataFrame, stop_times: pd.DataFrame, trips: pd.DataFrame, routes: pd.DataFrame
    ) -> List[List[Dict]]:
        """Routes serving each stop, as `{"route_id", "route_name"}` dicts"""
        stop_lines = (
            stop_times[["stop_id", "trip_id"]]
            .merge(trips[["trip_id", "route_id"]], on="trip_id", how="left")
            .merge(routes[["route_id", "route_short_name", "route_long_name"]], on="route_id", how="left")
            .drop_duplicates(subset=["stop_id", "route_id"])
        )

        lines_per_stop: Dict[str, List[Dict]] = {}
        for row in stop_lines.itertuples(index=False):
            name = (
                row.route_short_name
                if pd.notna(row.route_short_name) and str(row.route_short_name).strip() != ""
                else row.route_long_name
            )
            lines_per_stop.setdefault(row.stop_id, []).append(
                {"route_id": row.route_id, "route_name": None if pd.isna(name) else str(name)}
            )
        return [lines_per_stop.get(stop_id, []) for stop_id in stops["stop_id"]]

    def _create_route_geometry(
        self, feed: SimpleNamespace, route_trips: pd.DataFrame
    ) -> Optional[LineString | MultiLineString]:
        """Create geometry for a route, distinct shapes first, distinct stop patterns otherwise"""
        trip_geometries = []
        shape_ids = route_trips["shape_id"].dropna().unique()
        if feed.shapes is not None and len(shape_ids) > 0:
            shapes = feed.shapes[feed.shapes["shape_id"].isin(shape_ids)].sort_values(
                ["shape_id", "shape_pt_sequence"]
            )
            for _, shape_points in shapes.groupby("shape_id", sort=True):
                coordinates = list(
                    zip(
                        shape_points["shape_pt_lon"].astype(float),
                        shape_points["shape_pt_lat"].astype(float),
                    )
                )
                if len(coordinates) >= 2:
                    trip_geometries.append(LineString(coordinates))
        if not trip_geometries:
            trip_geometries = self._create_stop_sequence_geometries(feed, route_trips["trip_id"])

        # Create geometry
        if trip_geometries:
            if len(trip_geometries) == 1:
                return trip_geometries[0]
            else:
                return MultiLineString(trip_geometries)

        return None

    @staticmethod
    def _create_stop_sequence_geometries(feed: SimpleNamespace, trip_ids: pd.Series) -> List[LineString]:
        route_stop_times = feed.stop_times[feed.stop_times["trip_id"].isin(trip_ids)]
        route_stop_times = route_stop_times.merge(
            feed.stops[["stop_id", "stop_lat", "stop_lon"]], on="stop_id", how="left"
        ).dropna(subset=["stop_lat", "stop_lon"])

        patterns = []
        route_stop_times = route_stop_times.sort_values(["trip_id", "stop_sequence"])
        for _, trip_stops in route_stop_times.groupby("trip_id", sort=True):
            coordinates = tuple(
                zip(trip_stops["stop_lon"].astype(float), trip_stops["stop_lat"].astype(float))
            )
            if len(coordinates) >= 2 and coordinates not in patterns:
                patterns.append(coordinates)
        return [LineString(coordinates) for coordinates in patterns]

    # ----------------- DataFrame helpers -----------------
    @staticmethod
    def get_dynamic_columns(
        df: pd.DataFrame, required_cols: List[str], optional_cols: List[str]
    ) -> List[str]:
        """Get columns list based on what's available in the DataFrame"""
        columns = required_cols.copy()
        for col in optional_cols:
            if col in df.columns:
                columns.append(col)
        return columns

    @staticmethod
    def clean_record(record: dict) -> dict:
        """Missing values to None and numpy scalars to Python values"""
        cleaned = {}
        for key, value in record.items():
            if isinstance(value, np.generic):
                value = value.item()
            if value is None or (not isinstance(value, (list, tuple, dict)) and pd.isna(value)):
                value = None
            cleaned[key] = value
        return cleaned

    @classmethod
    def to_records(cls, df: pd.DataFrame) -> List[dict]:
        return [cls.clean_record(record) for record in df.to_dict("records")]
