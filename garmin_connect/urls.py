"""URL templates for the Garmin Connect and Garmin SSO services."""

from typing import Optional, Union


class GarminUrls:
    """Endpoints for one Garmin domain (``garmin.com`` or ``garmin.cn``)."""

    def __init__(self, domain: str = "garmin.com"):
        self.domain = domain

        self.GC_MODERN = f"https://connect.{domain}/modern"
        self.GARMIN_SSO_ORIGIN = f"https://sso.{domain}"
        self.GARMIN_SSO = f"{self.GARMIN_SSO_ORIGIN}/sso"
        self.GARMIN_SSO_EMBED = f"{self.GARMIN_SSO}/embed"
        self.SIGNIN_URL = f"{self.GARMIN_SSO}/signin"
        self.GC_API = f"https://connectapi.{domain}"

        self.OAUTH_URL = f"{self.GC_API}/oauth-service/oauth"
        self.OAUTH_PREAUTHORIZED = f"{self.OAUTH_URL}/preauthorized"
        self.OAUTH_EXCHANGE = f"{self.OAUTH_URL}/exchange/user/2.0"

        self.USER_SETTINGS = f"{self.GC_API}/userprofile-service/userprofile/user-settings/"
        self.USER_PROFILE = f"{self.GC_API}/userprofile-service/socialProfile"

        self.ACTIVITIES = f"{self.GC_API}/activitylist-service/activities/search/activities"
        self.ACTIVITY = f"{self.GC_API}/activity-service/activity/"
        self.STAT_ACTIVITIES = f"{self.GC_API}/fitnessstats-service/activity"

        self.DOWNLOAD_ZIP = f"{self.GC_API}/download-service/files/activity/"
        self.DOWNLOAD_GPX = f"{self.GC_API}/download-service/export/gpx/activity/"
        self.DOWNLOAD_TCX = f"{self.GC_API}/download-service/export/tcx/activity/"
        self.DOWNLOAD_KML = f"{self.GC_API}/download-service/export/kml/activity/"

        self.WORKOUTS = f"{self.GC_API}/workout-service/workouts"

        self.ACTIVITY_GEAR = f"{self.GC_API}/gear-service/gear/filterGear"

        self.DAILY_STEPS = f"{self.GC_API}/usersummary-service/stats/steps/daily/"
        self.DAILY_SLEEP = f"{self.GC_API}/sleep-service/sleep/dailySleepData"
        self.DAILY_WEIGHT = f"{self.GC_API}/weight-service/weight/dayview"
        self.UPDATE_WEIGHT = f"{self.GC_API}/weight-service/user-weight"
        self.DAILY_HYDRATION = f"{self.GC_API}/usersummary-service/usersummary/hydration/allData"
        self.HYDRATION_LOG = f"{self.GC_API}/usersummary-service/usersummary/hydration/log"
        self.GOLF_SCORECARD_SUMMARY = f"{self.GC_API}/gcs-golfcommunity/api/v2/scorecard/summary"
        self.GOLF_SCORECARD_DETAIL = f"{self.GC_API}/gcs-golfcommunity/api/v2/scorecard/detail"
        self.DAILY_HEART_RATE = f"{self.GC_API}/wellness-service/wellness/dailyHeartRate"

    def download_url(self, file_format: str) -> str:
        return {
            "zip": self.DOWNLOAD_ZIP,
            "gpx": self.DOWNLOAD_GPX,
            "tcx": self.DOWNLOAD_TCX,
            "kml": self.DOWNLOAD_KML,
        }[file_format]

    def upload(self, file_format: str) -> str:
        return f"{self.GC_API}/upload-service/upload/.{file_format}"

    def upload_activity_status(self, creation_ms: int, upload_id: Union[int, str]) -> str:
        return f"{self.GC_API}/activity-service/activity/status/{creation_ms}/{upload_id}"

    def workout(self, workout_id: Optional[Union[int, str]] = None) -> str:
        base = f"{self.GC_API}/workout-service/workout"
        return f"{base}/{workout_id}" if workout_id else base

    def activity_gear_link(self, gear_uuid: str, activity_id: Union[int, str]) -> str:
        return f"{self.GC_API}/gear-service/gear/link/{gear_uuid}/activity/{activity_id}"

    def activity_gear_unlink(self, gear_uuid: str, activity_id: Union[int, str]) -> str:
        return f"{self.GC_API}/gear-service/gear/unlink/{gear_uuid}/activity/{activity_id}"
