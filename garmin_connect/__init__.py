"""Client for the Garmin Connect web service."""

from garmin_connect.auth import EventKind, OAuth1Token, OAuth2Token, SessionChange, TokenStore
from garmin_connect.clients import GarminConnect
from garmin_connect.credentials import (
    ChainedCredentialSource,
    CredentialResolver,
    Credentials,
    EnvCredentialSource,
    FileCredentialSource,
)
from garmin_connect.exceptions import (
    ApiError,
    AuthenticationError,
    AuthNegotiationError,
    DirectoryNotFoundError,
    GarminConnectError,
    InvalidCredentialsError,
    InvalidFormatError,
    MissingCredentialsError,
    TokenNotFoundError,
    TokenParseError,
    TransportError,
)
from garmin_connect.workouts import RunningWorkout

__version__ = "0.1.0"

__all__ = [
    'ApiError',
    'AuthenticationError',
    'AuthNegotiationError',
    'ChainedCredentialSource',
    'CredentialResolver',
    'Credentials',
    'DirectoryNotFoundError',
    'EnvCredentialSource',
    'EventKind',
    'FileCredentialSource',
    'GarminConnect',
    'GarminConnectError',
    'InvalidCredentialsError',
    'InvalidFormatError',
    'MissingCredentialsError',
    'OAuth1Token',
    'OAuth2Token',
    'RunningWorkout',
    'SessionChange',
    'TokenNotFoundError',
    'TokenParseError',
    'TokenStore',
    'TransportError',
]
