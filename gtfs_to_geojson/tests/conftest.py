import asyncio
import shutil
from pathlib import Path

import pytest

from gtfs_to_geojson.models.config import set_default_config
from gtfs_to_geojson.processors.gtfs_store import GTFSStore

GTFS_TABLES = {
    "agency.txt": [
        "agency_id,agency_name,agency_url,agency_timezone",
        "A1,Test Agency,http://example.com,Europe/Paris",
    ],
    "routes.txt": [
        "route_id,agency_id,route_short_name,route_long_name,route_type,route_color",
        "R1,A1,C1,Chrono 1,3,FF0000",
        "R2,A1,,Tram Line,0,",
    ],
    "calendar.txt": [
        "service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,start_date,end_date",
        "S1,1,1,1,1,1,0,0,20240101,20301231",
    ],
    "trips.txt": [
        "route_id,service_id,trip_id,trip_headsign,direction_id,shape_id",
        "R1,S1,T1,Gare,0,SH1",
        "R1,S1,T2,Gare,0,SH1",
        "R1,S1,T3,Campus,1,SH2",
        "R2,S1,T4,Centre,0,",
    ],
    "stops.txt": [
        "stop_id,stop_name,stop_lat,stop_lon",
        "ST1,Gare,45.1910,5.7140",
        "ST2,Victor Hugo,45.1890,5.7250",
        "ST3,Campus,45.1930,5.7670",
        "ST4,Unused,45.2000,5.8000",
    ],
    "stop_times.txt": [
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence",
        "T1,08:00:00,08:00:00,ST1,1",
        "T1,08:05:00,08:05:00,ST2,2",
        "T1,08:15:00,08:15:00,ST3,3",
        "T2,09:00:00,09:00:00,ST1,1",
        "T2,09:05:00,09:05:00,ST2,2",
        "T2,09:15:00,09:15:00,ST3,3",
        "T3,10:00:00,10:00:00,ST3,1",
        "T3,10:10:00,10:10:00,ST2,2",
        "T3,10:15:00,10:15:00,ST1,3",
        "T4,11:00:00,11:00:00,ST2,1",
        "T4,11:10:00,11:10:00,ST3,2",
    ],
    "shapes.txt": [
        "shape_id,shape_pt_lat,shape_pt_lon,shape_pt_sequence",
        "SH1,45.1910,5.7140,1",
        "SH1,45.1895,5.7200,2",
        "SH1,45.1930,5.7670,3",
        "SH2,45.1930,5.7670,1",
        "SH2,45.1885,5.7300,2",
        "SH2,45.1910,5.7140,3",
    ],
}


@pytest.fixture
def gtfs_folder(tmp_path: Path) -> Path:
    folder = tmp_path / "feed"
    folder.mkdir()
    for filename, rows in GTFS_TABLES.items():
        (folder / filename).write_text("\n".join(rows) + "\n", encoding="utf-8")
    return folder


@pytest.fixture
def gtfs_zip(gtfs_folder: Path, tmp_path: Path) -> Path:
    archive = shutil.make_archive(str(tmp_path / "feed_archive"), "zip", root_dir=gtfs_folder)
    return Path(archive)


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def raw_config(gtfs_folder: Path, store_dir: Path) -> dict:
    return {
        "agencies": [{"agency_key": "tag", "path": str(gtfs_folder)}],
        "storeDir": str(store_dir),
    }


@pytest.fixture
def imported_store(raw_config: dict) -> GTFSStore:
    config = set_default_config(raw_config)
    store = GTFSStore()

    async def open_and_import():
        await store.open(config)
        await store.import_feed(config)

    asyncio.run(open_and_import())
    return store
