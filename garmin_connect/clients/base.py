"""Base client interface for Garmin Connect style services."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class BaseClient(ABC):
    """Abstract base class for authenticated fitness service clients."""

    @property
    @abstractmethod
    def authenticated(self) -> bool:
        """True while a session is held."""
        pass

    @abstractmethod
    def login(self, username: Optional[str] = None, password: Optional[str] = None) -> "BaseClient":
        """Authenticate with the service."""
        pass

    @abstractmethod
    def logout(self) -> None:
        """Drop the current session."""
        pass

    @abstractmethod
    def get_activities(
        self, start: int = 0, limit: int = 20, activity_type: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Get a page of activities, most recent first."""
        pass

    @abstractmethod
    def download_original_activity_data(
        self, activity: Dict[str, Any], directory: Union[str, Path], file_format: str = "zip"
    ) -> Path:
        """Download an activity file."""
        pass

    @abstractmethod
    def upload_activity(self, file_path: Union[str, Path], file_format: Optional[str] = None) -> Any:
        """Upload an activity file."""
        pass
