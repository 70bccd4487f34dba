import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from gtfs_to_geojson.exceptions import FeedDownloadError
from gtfs_to_geojson.utils.downloader import DownloadStatus, download_file


class TestDownloadFile(unittest.TestCase):
    """Test download_file with a mock HTTP response."""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.destination = Path(self.tmp_dir.name) / "gtfs" / "tag.zip"

    def tearDown(self):
        self.tmp_dir.cleanup()

    @patch("requests.get")
    def test_download_file_success(self, mock_get):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.iter_content.return_value = [b"data"] * 256  # Simulate 1024 bytes of data
        mock_get.return_value = mock_response

        status = download_file("http://example.com/gtfs.zip", self.destination)

        assert status == DownloadStatus.DOWNLOADED
        assert os.path.getsize(self.destination) == 1024

    @patch("requests.get")
    def test_download_file_skip_existing(self, mock_get):
        self.destination.parent.mkdir(parents=True)
        self.destination.write_text("This file already exists.")

        status = download_file("http://example.com/gtfs.zip", self.destination)

        assert status == DownloadStatus.SKIPPED
        mock_get.assert_not_called()

    @patch("requests.get")
    def test_download_file_force(self, mock_get):
        self.destination.parent.mkdir(parents=True)
        self.destination.write_text("Old feed")
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.iter_content.return_value = [b"new feed"]
        mock_get.return_value = mock_response

        status = download_file("http://example.com/gtfs.zip", self.destination, force_download=True)

        assert status == DownloadStatus.DOWNLOADED
        assert self.destination.read_bytes() == b"new feed"

    @patch("time.sleep")
    @patch("requests.get")
    def test_download_file_retry(self, mock_get, mock_sleep):
        busy_response = MagicMock()
        busy_response.status_code = 503
        busy_response.headers = {"Retry-After": "1"}
        ok_response = MagicMock()
        ok_response.status_code = 200
        ok_response.iter_content.return_value = [b"data"]
        mock_get.side_effect = [busy_response, ok_response]

        status = download_file("http://example.com/gtfs.zip", self.destination)

        assert status == DownloadStatus.DOWNLOADED
        assert mock_get.call_count == 2
        mock_sleep.assert_called_once_with(1)

    @patch("requests.get")
    def test_download_file_http_error(self, mock_get):
        mock_response = MagicMock()
        mock_response.status_code = 404
        mock_response.raise_for_status.side_effect = requests.exceptions.HTTPError
        mock_get.return_value = mock_response

        with self.assertRaises(FeedDownloadError):
            download_file("http://example.com/gtfs.zip", self.destination)
        assert not os.path.exists(self.destination)  # Ensure the file was not created


if __name__ == "__main__":
    unittest.main()
