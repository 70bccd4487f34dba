import asyncio
import logging
import shutil
from pathlib import Path

import pandas as pd
import pytest
from pytest_mock import MockerFixture
from shapely.geometry import LineString, MultiLineString

from gtfs_to_geojson.exceptions import FeedImportError, StoreNotOpenError, UnknownAgencyError
from gtfs_to_geojson.models.config import set_default_config
from gtfs_to_geojson.models.trip import Trip
from gtfs_to_geojson.models.route import GTFSRouteType
from gtfs_to_geojson.processors.gtfs_store import GTFSStore


def open_store(config) -> GTFSStore:
    store = GTFSStore()
    asyncio.run(store.open(config))
    return store


class TestGTFSStoreImport:
    def test_import_from_folder(self, imported_store: GTFSStore, store_dir: Path):
        assert (store_dir / "tag" / "routes.txt").exists()
        routes = asyncio.run(imported_store.get_routes("tag"))
        assert [route.route_id for route in routes] == ["R1", "R2"]
        assert routes[0].route_short_name == "C1"
        assert routes[0].route_type == GTFSRouteType.BUS
        assert routes[1].route_short_name is None
        assert routes[1].route_long_name == "Tram Line"

    def test_import_from_zip(self, raw_config: dict, gtfs_zip: Path, store_dir: Path):
        raw_config["agencies"] = [{"agency_key": "tag", "path": str(gtfs_zip)}]
        config = set_default_config(raw_config)
        store = open_store(config)
        asyncio.run(store.import_feed(config))

        assert (store_dir / "tag.zip").exists()
        assert len(asyncio.run(store.get_routes("tag"))) == 2

    def test_import_from_url(
        self, raw_config: dict, gtfs_zip: Path, store_dir: Path, mocker: MockerFixture
    ):
        def fake_download(url, destination, **kwargs):
            shutil.copyfile(gtfs_zip, destination)

        download_mock = mocker.patch(
            "gtfs_to_geojson.processors.gtfs_store.download_file", side_effect=fake_download
        )
        raw_config["agencies"] = [{"agency_key": "tag", "url": "http://example.com/gtfs.zip"}]
        config = set_default_config(raw_config)
        store = open_store(config)
        asyncio.run(store.import_feed(config))

        download_mock.assert_called_once_with(
            "http://example.com/gtfs.zip",
            store_dir / "tag.zip",
            force_download=False,
            max_retries=3,
            timeout=60,
        )
        assert len(asyncio.run(store.get_routes("tag"))) == 2

    def test_import_missing_path(self, raw_config: dict, tmp_path: Path):
        raw_config["agencies"] = [{"agency_key": "tag", "path": str(tmp_path / "nowhere.zip")}]
        config = set_default_config(raw_config)
        store = open_store(config)
        with pytest.raises(FeedImportError):
            asyncio.run(store.import_feed(config))

    def test_import_without_source(self, raw_config: dict):
        raw_config["agencies"] = [{"agency_key": "tag"}]
        config = set_default_config(raw_config)
        store = open_store(config)
        with pytest.raises(FeedImportError, match="neither"):
            asyncio.run(store.import_feed(config))

    def test_import_unreadable_feed(self, raw_config: dict, tmp_path: Path):
        empty_folder = tmp_path / "empty"
        empty_folder.mkdir()
        raw_config["agencies"] = [{"agency_key": "tag", "path": str(empty_folder)}]
        config = set_default_config(raw_config)
        store = open_store(config)
        with pytest.raises(FeedImportError):
            asyncio.run(store.import_feed(config))

    def test_import_before_open(self, raw_config: dict):
        with pytest.raises(StoreNotOpenError):
            asyncio.run(GTFSStore().import_feed(set_default_config(raw_config)))

    def test_reopen_loads_imported_feed(self, imported_store: GTFSStore, raw_config: dict):
        store = open_store(set_default_config({**raw_config, "skipImport": True}))
        routes = asyncio.run(store.get_routes("tag"))
        assert [route.route_id for route in routes] == ["R1", "R2"]

    def test_unknown_agency(self, imported_store: GTFSStore):
        with pytest.raises(UnknownAgencyError):
            asyncio.run(imported_store.get_routes("unknown"))

    def test_exclude_route_types(self, raw_config: dict, caplog: pytest.LogCaptureFixture):
        caplog.set_level(logging.INFO)
        config = set_default_config({**raw_config, "excludeRouteTypes": [0]})
        assert config.exclude_route_types == {GTFSRouteType.TRAM}
        store = open_store(config)
        asyncio.run(store.import_feed(config))

        assert [route.route_id for route in asyncio.run(store.get_routes("tag"))] == ["R1"]
        assert {trip.route_id for trip in asyncio.run(store.get_trips(agency_key="tag"))} == {"R1"}
        assert "Excluded 1 routes with route types ['TRAM']" in caplog.text


class TestGTFSStoreQueries:
    def test_get_trips_projection(self, imported_store: GTFSStore):
        trips = asyncio.run(
            imported_store.get_trips({"route_id": "R1"}, ["trip_headsign", "direction_id"], "tag")
        )
        assert trips == [
            Trip(trip_headsign="Gare", direction_id=0),
            Trip(trip_headsign="Gare", direction_id=0),
            Trip(trip_headsign="Campus", direction_id=1),
        ]

    def test_get_trips_unknown_filter_column(self, imported_store: GTFSStore):
        assert asyncio.run(imported_store.get_trips({"block_id": "B1"}, agency_key="tag")) == []

    def test_get_trips_all_agencies(self, imported_store: GTFSStore):
        trips = asyncio.run(imported_store.get_trips())
        assert [trip.trip_id for trip in trips] == ["T1", "T2", "T3", "T4"]

    def test_get_stops_served_only(self, imported_store: GTFSStore):
        stops = asyncio.run(imported_store.get_stops("tag"))
        assert list(stops["stop_id"]) == ["ST1", "ST2", "ST3"]
        assert stops.crs.to_epsg() == 4326
        assert stops.geometry.iloc[0].x == pytest.approx(5.714)
        assert stops.geometry.iloc[0].y == pytest.approx(45.191)

    def test_get_stops_routes(self, imported_store: GTFSStore):
        stops = asyncio.run(imported_store.get_stops("tag")).set_index("stop_id")
        assert stops.loc["ST1", "routes"] == [{"route_id": "R1", "route_name": "C1"}]
        assert sorted(stops.loc["ST2", "routes"], key=lambda line: line["route_id"]) == [
            {"route_id": "R1", "route_name": "C1"},
            {"route_id": "R2", "route_name": "Tram Line"},
        ]

    def test_get_stops_route_direction(self, imported_store: GTFSStore):
        stops = asyncio.run(imported_store.get_stops("tag", "R2", 0))
        assert list(stops["stop_id"]) == ["ST2", "ST3"]

    def test_get_stops_empty(self, imported_store: GTFSStore):
        stops = asyncio.run(imported_store.get_stops("tag", "R1", 5))
        assert stops.empty

    def test_get_route_lines(self, imported_store: GTFSStore):
        lines = asyncio.run(imported_store.get_route_lines("tag")).set_index("route_id")
        # R1 has two shapes, R2 has none and is drawn from its stops
        assert isinstance(lines.loc["R1", "geometry"], MultiLineString)
        assert isinstance(lines.loc["R2", "geometry"], LineString)
        assert list(lines.loc["R2", "geometry"].coords) == [(5.725, 45.189), (5.767, 45.193)]
        assert lines.loc["R1", "route_color"] == "FF0000"
        assert pd.isna(lines.loc["R2", "route_color"])

    def test_get_route_lines_direction(self, imported_store: GTFSStore):
        lines = asyncio.run(imported_store.get_route_lines("tag", "R1", 1))
        assert len(lines) == 1
        assert list(lines.geometry.iloc[0].coords)[0] == (5.767, 45.193)

    def test_query_before_open(self):
        with pytest.raises(StoreNotOpenError):
            asyncio.run(GTFSStore().get_routes("tag"))
