from garmin_connect.auth.events import EventBus, EventKind, SessionChange, Subscription
from garmin_connect.auth.session import SessionManager
from garmin_connect.auth.sso import GarminSSOProtocol, LoginProtocol
from garmin_connect.auth.tokens import OAuth1Token, OAuth2Token, TokenStore

__all__ = [
    'EventBus',
    'EventKind',
    'GarminSSOProtocol',
    'LoginProtocol',
    'OAuth1Token',
    'OAuth2Token',
    'SessionChange',
    'SessionManager',
    'Subscription',
    'TokenStore',
]
