"""Playback progress API endpoints"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from webui.api.deps import AppContext, check_category, get_context
from webui.models.schemas import PlaybackUpdateRequest, SuccessResponse

router = APIRouter(prefix="/api", tags=["playback"])
logger = logging.getLogger(__name__)


@router.get("/playback")
def get_playback(context: AppContext = Depends(get_context)) -> Dict[str, Any]:
    """Get the last played item and the progress of every item"""
    return context.tracker.get_state().to_dict()


@router.post("/playback", response_model=SuccessResponse)
def update_playback(update: PlaybackUpdateRequest, context: AppContext = Depends(get_context)):
    """Record a playback heartbeat"""
    check_category(update.media_type)
    try:
        context.tracker.record_heartbeat(update.media_type, update.media_id,
                                         update.position, update.duration)
    except OSError as e:
        logger.error(f"Error saving playback state: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save playback state: {str(e)}")
    return SuccessResponse()


@router.get("/progress/{media_type}/{media_id}")
def get_progress(media_type: str, media_id: str,
                 context: AppContext = Depends(get_context)) -> Optional[Dict[str, Any]]:
    """Get the saved position of one item, or null if it was never played"""
    check_category(media_type)
    entry = context.tracker.get_progress(media_type, media_id)
    return entry.to_dict() if entry else None
