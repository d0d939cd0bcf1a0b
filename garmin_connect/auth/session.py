"""Session lifecycle: login, refresh, logout and single-flight recovery."""

import logging
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional

from garmin_connect.auth.events import EventBus, EventKind, SessionChange, Subscription
from garmin_connect.auth.sso import GarminSSOProtocol, LoginProtocol
from garmin_connect.auth.tokens import TokenStore
from garmin_connect.config import Config
from garmin_connect.credentials import CredentialResolver, Credentials
from garmin_connect.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns the token store and every operation that replaces its contents.

    Recovery is coalesced: when several threads find the session unusable at
    once, one of them runs the refresh (or re-login) and the others wait on
    the same future instead of starting their own.
    """

    def __init__(
        self,
        resolver: Optional[CredentialResolver] = None,
        protocol: Optional[LoginProtocol] = None,
        store: Optional[TokenStore] = None,
        events: Optional[EventBus] = None,
        wait_timeout: Optional[float] = None,
    ):
        self.resolver = resolver
        self.protocol = protocol or GarminSSOProtocol()
        self.store = store or TokenStore()
        self.events = events or EventBus()
        self.wait_timeout = wait_timeout if wait_timeout is not None else Config.REFRESH_WAIT_TIMEOUT

        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None

    # Observers

    def subscribe(self, kind: EventKind, handler: Callable[[Any], None]) -> Subscription:
        return self.events.subscribe(kind, handler)

    def unsubscribe(self, subscription: Subscription) -> bool:
        return self.events.unsubscribe(subscription)

    # Lifecycle

    def login(self, credentials: Optional[Credentials] = None) -> None:
        """Run the full login flow; the store only changes if every step succeeds.

        Never satisfied by a refresh running on another thread: the login waits
        for it to finish and then runs every step itself.
        """
        if credentials is None:
            credentials = self._resolve_credentials()
        self._single_flight(lambda: self._login(credentials), join=False)

    def refresh(self) -> None:
        """Exchange the stored OAuth1 token for a new OAuth2 token."""
        self._single_flight(self._refresh)

    def logout(self) -> None:
        self.store.clear()
        logger.info("Session cleared")
        self.events.emit(EventKind.SESSION_CHANGE, SessionChange("logout"))

    def loaded(self) -> None:
        """Announce tokens that were put into the store from outside."""
        self.events.emit(EventKind.SESSION_CHANGE, SessionChange("load", self.store.export()))

    def recover(self, observed_generation: int) -> None:
        """Make the session usable again after it was seen at ``observed_generation``.

        Returns at once if the session has been replaced since then.
        """
        self._single_flight(self._recover, observed_generation)

    # Internals

    def _single_flight(
        self,
        action: Callable[[], Any],
        observed_generation: Optional[int] = None,
        join: bool = True,
    ):
        """Run ``action`` unless another caller is already changing the session.

        With ``join`` the caller shares the running flight's outcome. Without
        it the caller waits for that flight to end and then runs its own.
        """
        while True:
            with self._lock:
                if observed_generation is not None and self.store.generation != observed_generation:
                    return None
                future = self._inflight
                if future is None:
                    future = self._inflight = Future()
                    break

            if join:
                logger.debug("Waiting for session recovery started by another caller")
                return self._wait(future.result)

            logger.debug("Waiting for a running session change before starting another")
            self._wait(future.exception)

        try:
            result = action()
        except BaseException as e:
            with self._lock:
                self._inflight = None
            future.set_exception(e)
            raise

        with self._lock:
            self._inflight = None
        future.set_result(result)
        return result

    def _wait(self, outcome: Callable[..., Any]):
        try:
            return outcome(timeout=self.wait_timeout)
        except FutureTimeoutError as e:
            raise AuthenticationError(
                f"timed out after {self.wait_timeout}s waiting for session recovery"
            ) from e

    def _recover(self) -> str:
        if self.store.oauth1 is not None:
            try:
                return self._refresh()
            except AuthenticationError:
                if self.resolver is None or not self.resolver.available():
                    raise
                logger.warning("OAuth1 token rejected, logging in again")

        credentials = self._resolve_credentials()
        return self._login(credentials)

    def _login(self, credentials: Credentials) -> str:
        oauth1, oauth2 = self.protocol.login(credentials)
        self.store.set(oauth1, oauth2)
        self.events.emit(EventKind.SESSION_CHANGE, SessionChange("login", self.store.export()))
        return "login"

    def _refresh(self) -> str:
        oauth1 = self.store.oauth1
        if oauth1 is None:
            raise AuthenticationError("refresh: no OAuth1 token, log in first")

        oauth2 = self.protocol.exchange(oauth1)
        self.store.set_oauth2(oauth2)
        logger.info("Refreshed OAuth2 token")
        self.events.emit(EventKind.SESSION_CHANGE, SessionChange("refresh", self.store.export()))
        return "refresh"

    def _resolve_credentials(self) -> Credentials:
        if self.resolver is None:
            raise AuthenticationError("no credentials available to log in")
        return self.resolver.resolve()
