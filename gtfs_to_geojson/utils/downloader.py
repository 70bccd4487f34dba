import logging
import os
import time
from pathlib import Path

import requests
from tqdm import tqdm

from gtfs_to_geojson.exceptions import FeedDownloadError
from gtfs_to_geojson.settings import DOWNLOAD_MAX_RETRIES, DOWNLOAD_TIMEOUT


class DownloadStatus:
    DOWNLOADED = "Downloaded"
    SKIPPED = "Skipped"


# Set up logger
logger = logging.getLogger(__name__)


def download_file(
    url: str,
    destination: Path,
    force_download: bool = False,
    max_retries: int = DOWNLOAD_MAX_RETRIES,
    timeout: int = DOWNLOAD_TIMEOUT,
) -> str:
    """
    Download a GTFS archive from a given URL to a specified destination.

    :param url: The URL of the file to download.
    :param destination: The local path where the file will be saved.
    :param force_download: If True, force download even if the file already exists. Default is False.
    :param max_retries: Maximum number of retries for 429 (Too Many Requests) and 503 (Service Unavailable) responses.
    :param timeout: Timeout for the download request in seconds.
    :return: The download status.
    :raises FeedDownloadError: when the file cannot be downloaded, no partial file is left behind.
    """
    # File exists? or force download
    if os.path.exists(destination) and not force_download:
        logger.warning(f"File {destination} already exists, skipping.")
        return DownloadStatus.SKIPPED

    destination.parent.mkdir(parents=True, exist_ok=True)
    for attempt in range(max_retries + 1):
        try:
            response = requests.get(url, stream=True, timeout=timeout)

            # If we get a 429 or a 503, retry if we have attempts left
            if (
                response.status_code == 429 or response.status_code == 503
            ) and attempt < max_retries:
                retry_after = int(response.headers.get("Retry-After", 2 * (attempt + 1)))
                logger.warning(
                    f"Error when downloading {url}, retrying after {retry_after} seconds..."
                )
                time.sleep(retry_after)
                continue

            response.raise_for_status()
            logger.debug(f"Downloading {url} to {destination}")

            with (
                open(destination, "wb") as file,
                tqdm(
                    desc="Downloading " + destination.name,
                    unit="B",
                    unit_scale=True,
                    unit_divisor=1024,
                    leave=True,
                ) as bar,
            ):
                for data in response.iter_content(chunk_size=1024):
                    file.write(data)
                    bar.update(len(data))

            return DownloadStatus.DOWNLOADED

        except requests.RequestException as e:
            logger.error(f"Error downloading {url}: {e}")
            if destination.exists():
                destination.unlink()
            raise FeedDownloadError(f"Could not download {url}: {e}") from e

    raise FeedDownloadError(f"Could not download {url}: retries exhausted")
