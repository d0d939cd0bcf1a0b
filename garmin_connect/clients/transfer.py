"""Activity file upload, upload status polling and original-data download."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from garmin_connect.clients.http import HttpClient
from garmin_connect.exceptions import InvalidFormatError
from garmin_connect.urls import GarminUrls

logger = logging.getLogger(__name__)

UPLOAD_FORMATS = ("fit", "gpx", "tcx")
DOWNLOAD_FORMATS = ("tcx", "gpx", "kml", "zip")


def activity_id_of(activity: Union[Dict[str, Any], int, str]) -> Union[int, str]:
    activity_id = activity.get("activityId") if isinstance(activity, dict) else activity
    if not activity_id:
        raise ValueError("Missing activityId")
    return activity_id


def _to_epoch_ms(value: Union[str, int, float, datetime]) -> int:
    """Upload creation date (ISO string, datetime or epoch ms) to epoch milliseconds."""
    if isinstance(value, (int, float)):
        return int(value)

    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            return int(s)
        value = datetime.fromisoformat(s.replace("Z", "+00:00"))

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class TransferHandler:
    """Binary and multipart dispatch paths on top of HttpClient."""

    def __init__(self, http: HttpClient, urls: GarminUrls):
        self.http = http
        self.urls = urls

    def upload_activity(self, file_path: Union[str, Path], file_format: Optional[str] = None) -> Any:
        """Upload a FIT/GPX/TCX file; returns the service's upload details.

        The service accepts the file before processing it, so the result
        carries a creation date and an upload id for get_upload_status().
        """
        file_path = Path(file_path)
        detected = (file_format or file_path.suffix.lstrip(".")).lower()
        if detected not in UPLOAD_FORMATS:
            raise InvalidFormatError(f"upload_activity: invalid format: {file_format or file_path.suffix}")

        if not file_path.is_file():
            raise FileNotFoundError(f"upload_activity: file not found: {file_path}")

        with open(file_path, "rb") as f:
            files = {"userfile": (file_path.name, f)}
            result = self.http.post(self.urls.upload(detected), files=files)

        logger.info(f"Uploaded {file_path.name} as {detected}")
        return result

    def get_upload_status(self, upload_creation_date: Union[str, int, float, datetime], upload_id: Union[int, str]) -> Any:
        creation_ms = _to_epoch_ms(upload_creation_date)
        return self.http.get(self.urls.upload_activity_status(creation_ms, upload_id))

    def download_original_activity_data(
        self,
        activity: Union[Dict[str, Any], int, str],
        directory: Union[str, Path],
        file_format: str = "zip",
    ) -> Path:
        """Download an activity and write it to ``<directory>/<activityId>.<format>``."""
        activity_id = activity_id_of(activity)
        if file_format not in DOWNLOAD_FORMATS:
            raise InvalidFormatError(f"download_original_activity_data: invalid type: {file_format}")

        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        url = f"{self.urls.download_url(file_format)}{activity_id}"
        save_path = directory / f"{activity_id}.{file_format}"

        content = self.http.get(url, response_type="binary")
        if file_format == "zip":
            save_path.write_bytes(content)
        else:
            # The exports are UTF-8 XML whatever charset the response header claims
            save_path.write_text(content.decode("utf-8"), encoding="utf-8")

        logger.info(f"Downloaded activity {activity_id} to {save_path}")
        return save_path
