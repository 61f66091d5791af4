"""Dependencies shared by the API routers"""

from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, Request

from config import ServerConfig
from model import CATEGORIES
from playback import PlaybackTracker
from storage import StorageManager
from webui.services.control_service import ControlService


@dataclass
class AppContext:
    """State owned by one application instance"""
    config: ServerConfig
    storage: StorageManager
    tracker: PlaybackTracker
    control: ControlService
    logger: Any


def get_context(request: Request) -> AppContext:
    """Dependency to get the application context"""
    return request.app.state.context


def check_category(media_type: str) -> str:
    """Reject unknown categories with a 404"""
    if media_type not in CATEGORIES:
        raise HTTPException(status_code=404, detail=f"Unknown media type: {media_type}")
    return media_type
