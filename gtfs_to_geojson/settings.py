import logging
import typing
from pathlib import Path

VERSION: typing.Final = "0.1.0"

DATA_FOLDER: Path = Path.cwd() / "data"
STORE_FOLDER: Path = DATA_FOLDER / "gtfs"
CONFIG_FILE: Path = Path.cwd() / "config.json"
LOGGER_LEVEL: typing.Final = logging.INFO
LOG_FILE: str = "errors.log"
LOG_JSONL_FILE: str = "errors.jsonl"

EPSG_WGS84: str = "EPSG:4326"

DEFAULT_BUFFER_SIZE_METERS: float = 400
DOWNLOAD_TIMEOUT: int = 60  # seconds
DOWNLOAD_MAX_RETRIES: int = 3
