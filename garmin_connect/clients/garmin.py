"""Garmin Connect client.

Typed endpoint methods on top of the authenticated dispatcher. Each method
is one request (two for update_hydration_log) and returns the decoded JSON
the service sends back.

    client = GarminConnect("me@example.com", "secret")
    client.login()
    client.export_token_to_file("~/.garmin_connect/tokens")
    activities = client.get_activities(0, 10)
"""

import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

import requests

from garmin_connect.auth.events import EventBus, EventKind, Subscription
from garmin_connect.auth.session import SessionManager
from garmin_connect.auth.sso import GarminSSOProtocol, LoginProtocol
from garmin_connect.auth.tokens import OAuth1Token, OAuth2Token, TokenStore
from garmin_connect.clients.base import BaseClient
from garmin_connect.clients.http import HttpClient
from garmin_connect.config import Config
from garmin_connect.credentials import CredentialResolver, CredentialSource
from garmin_connect.exceptions import GarminConnectError
from garmin_connect.clients.transfer import TransferHandler, activity_id_of
from garmin_connect.urls import GarminUrls
from garmin_connect.workouts import RunningWorkout, WorkoutBuilder, workout_payload

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str, None]


def _date_string(value: DateLike = None) -> str:
    if value is None:
        return date.today().isoformat()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _timestamp(value: datetime) -> str:
    # Garmin expects milliseconds and no offset: 2024-01-15T08:30:00.000
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}"


class GarminConnect(BaseClient):
    """Client for Garmin Connect.

    Credentials come from ``username``/``password`` or, failing that, from
    ``credential_source``. With ``require_credentials=False`` the client can
    be built without any, for sessions restored from saved tokens.
    """

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        domain: Optional[str] = None,
        credential_source: Optional[CredentialSource] = None,
        protocol: Optional[LoginProtocol] = None,
        transport: Optional[requests.Session] = None,
        store: Optional[TokenStore] = None,
        require_credentials: bool = True,
    ):
        self.urls = GarminUrls(domain or Config.GARMIN_DOMAIN)
        self._resolver = CredentialResolver(username, password, credential_source)
        if require_credentials:
            # Fail at construction rather than on the first API call
            self._resolver.resolve()

        self.session = SessionManager(
            resolver=self._resolver,
            protocol=protocol or GarminSSOProtocol(self.urls),
            store=store or TokenStore(),
            events=EventBus(),
        )
        self.client = HttpClient(self.session, transport=transport)
        self.transfer = TransferHandler(self.client, self.urls)

    # Session

    @property
    def authenticated(self) -> bool:
        return self.session.store.has_session

    def login(self, username: Optional[str] = None, password: Optional[str] = None) -> "GarminConnect":
        """Run the full SSO login, with new credentials if given."""
        if username and password:
            self._resolver.replace(username, password)
        self.session.login(self._resolver.resolve())
        return self

    def logout(self) -> None:
        self.session.logout()

    def subscribe(self, kind: EventKind, handler: Callable[[Any], None]) -> Subscription:
        return self.session.subscribe(kind, handler)

    def unsubscribe(self, subscription: Subscription) -> bool:
        return self.session.unsubscribe(subscription)

    def export_token_to_file(self, directory: Union[str, Path]) -> None:
        self.session.store.save(Path(directory).expanduser())

    def load_token_by_file(self, directory: Union[str, Path]) -> None:
        self.session.store.load(Path(directory).expanduser())
        self.session.loaded()

    def export_token(self) -> Dict[str, Dict[str, Any]]:
        return self.session.store.export()

    def load_token(
        self,
        oauth1: Union[OAuth1Token, Dict[str, Any]],
        oauth2: Union[OAuth2Token, Dict[str, Any]],
    ) -> None:
        """Use tokens kept elsewhere, e.g. in a database."""
        self.session.store.set(oauth1, oauth2)
        self.session.loaded()

    # User

    def get_user_settings(self) -> Dict[str, Any]:
        return self.client.get(self.urls.USER_SETTINGS)

    def get_user_profile(self) -> Dict[str, Any]:
        return self.client.get(self.urls.USER_PROFILE)

    # Activities

    def get_activities(
        self,
        start: int = 0,
        limit: int = 20,
        activity_type: Optional[str] = None,
        sub_activity_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            "start": start,
            "limit": limit,
            "activityType": activity_type,
            "subActivityType": sub_activity_type,
        }
        return self.client.get(self.urls.ACTIVITIES, params=params)

    def get_activity(self, activity: Union[Dict[str, Any], int, str]) -> Dict[str, Any]:
        return self.client.get(f"{self.urls.ACTIVITY}{activity_id_of(activity)}")

    def count_activities(self) -> Dict[str, Any]:
        params = {
            "aggregation": "lifetime",
            "startDate": "1970-01-01",
            "endDate": date.today().isoformat(),
            "metric": "duration",
        }
        return self.client.get(self.urls.STAT_ACTIVITIES, params=params)

    def add_activity(self, activity: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post(self.urls.ACTIVITY, json=activity)

    def delete_activity(self, activity: Union[Dict[str, Any], int, str]) -> None:
        self.client.delete(f"{self.urls.ACTIVITY}{activity_id_of(activity)}")

    def download_original_activity_data(
        self,
        activity: Union[Dict[str, Any], int, str],
        directory: Union[str, Path],
        file_format: str = "zip",
    ) -> Path:
        return self.transfer.download_original_activity_data(activity, directory, file_format)

    def upload_activity(self, file_path: Union[str, Path], file_format: Optional[str] = None) -> Any:
        return self.transfer.upload_activity(file_path, file_format)

    def get_upload_activity_details(
        self, upload_creation_date: Union[str, int, datetime], upload_id: Union[int, str]
    ) -> Dict[str, Any]:
        """Processing status of an upload, keyed by the upload's creation date and id."""
        return self.transfer.get_upload_status(upload_creation_date, upload_id)

    # Gear

    def get_gears(self, user_profile_pk: Union[int, str]) -> List[Dict[str, Any]]:
        return self.client.get(self.urls.ACTIVITY_GEAR, params={"userProfilePk": user_profile_pk})

    def get_activity_gear(self, activity_id: Union[int, str]) -> List[Dict[str, Any]]:
        return self.client.get(self.urls.ACTIVITY_GEAR, params={"activityId": activity_id})

    def link_activity_gear(self, gear_uuid: str, activity_id: Union[int, str]) -> Dict[str, Any]:
        return self.client.put(self.urls.activity_gear_link(gear_uuid, activity_id), json={})

    def unlink_activity_gear(self, gear_uuid: str, activity_id: Union[int, str]) -> Dict[str, Any]:
        return self.client.put(self.urls.activity_gear_unlink(gear_uuid, activity_id), json={})

    # Workouts

    def get_workouts(self, start: int = 0, limit: int = 20) -> List[Dict[str, Any]]:
        return self.client.get(self.urls.WORKOUTS, params={"start": start, "limit": limit})

    def get_workout_detail(self, workout: Union[Dict[str, Any], int, str]) -> Dict[str, Any]:
        workout_id = workout.get("workoutId") if isinstance(workout, dict) else workout
        if not workout_id:
            raise ValueError("Missing workoutId")
        return self.client.get(self.urls.workout(workout_id))

    def add_workout(self, workout: Union[WorkoutBuilder, Dict[str, Any]]) -> Dict[str, Any]:
        return self.client.post(self.urls.workout(), json=workout_payload(workout))

    def add_running_workout(self, name: str, meters: float, description: Optional[str] = None) -> Dict[str, Any]:
        return self.add_workout(RunningWorkout(name, meters, description))

    def delete_workout(self, workout: Union[Dict[str, Any], int, str]) -> None:
        workout_id = workout.get("workoutId") if isinstance(workout, dict) else workout
        if not workout_id:
            raise ValueError("Missing workoutId")
        self.client.delete(self.urls.workout(workout_id))

    # Wellness

    def get_steps(self, day: DateLike = None) -> int:
        date_string = _date_string(day)
        days = self.client.get(f"{self.urls.DAILY_STEPS}{date_string}/{date_string}") or []
        for stats in days:
            if stats.get("calendarDate") == date_string:
                return stats["totalSteps"]
        raise GarminConnectError(f"get_steps: no daily steps for {date_string}")

    def get_sleep_data(self, day: DateLike = None) -> Dict[str, Any]:
        return self.client.get(self.urls.DAILY_SLEEP, params={"date": _date_string(day)})

    def get_heart_rate(self, day: DateLike = None) -> Dict[str, Any]:
        return self.client.get(self.urls.DAILY_HEART_RATE, params={"date": _date_string(day)})

    def get_daily_weight_data(self, day: DateLike = None) -> Dict[str, Any]:
        return self.client.get(f"{self.urls.DAILY_WEIGHT}/{_date_string(day)}")

    def update_weight(
        self, when: datetime, value: float, unit_key: str = "kg", tz_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Record a weigh-in; naive ``when`` values are read in ``tz_name`` (or UTC)."""
        tz = ZoneInfo(tz_name) if tz_name else timezone.utc
        if when.tzinfo is None:
            when = when.replace(tzinfo=tz)
        payload = {
            "dateTimestamp": _timestamp(when.astimezone(tz).replace(tzinfo=None)),
            "gmtTimestamp": _timestamp(when.astimezone(timezone.utc).replace(tzinfo=None)),
            "unitKey": unit_key,
            "value": value,
        }
        return self.client.post(self.urls.UPDATE_WEIGHT, json=payload)

    def get_daily_hydration(self, day: DateLike = None) -> Dict[str, Any]:
        return self.client.get(f"{self.urls.DAILY_HYDRATION}/{_date_string(day)}")

    def update_hydration_log(self, when: datetime, value_in_ml: float) -> Dict[str, Any]:
        profile = self.get_user_profile()
        payload = {
            "calendarDate": when.date().isoformat(),
            "valueInML": value_in_ml,
            "userProfileId": profile["profileId"],
            "timestampLocal": _timestamp(when.replace(tzinfo=None)),
        }
        return self.client.put(self.urls.HYDRATION_LOG, json=payload)

    # Golf

    def get_golf_summary(self) -> Dict[str, Any]:
        return self.client.get(self.urls.GOLF_SCORECARD_SUMMARY)

    def get_golf_scorecard(self, scorecard_id: Union[int, str]) -> Dict[str, Any]:
        return self.client.get(self.urls.GOLF_SCORECARD_DETAIL, params={"scorecard-ids": scorecard_id})

    # Raw access

    def get(self, url: str, **kwargs: Any) -> Any:
        return self.client.get(url, **kwargs)

    def post(self, url: str, json: Any = None, **kwargs: Any) -> Any:
        return self.client.post(url, json=json, **kwargs)

    def put(self, url: str, json: Any = None, **kwargs: Any) -> Any:
        return self.client.put(url, json=json, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> Any:
        return self.client.delete(url, **kwargs)
