"""Library API endpoints"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException

from errors import ItemNotFoundError
from webui.api.deps import AppContext, check_category, get_context

router = APIRouter(prefix="/api/library", tags=["library"])
logger = logging.getLogger(__name__)


@router.get("/{media_type}")
def get_library(media_type: str, context: AppContext = Depends(get_context)) -> List[Dict[str, Any]]:
    """Get the movie list, show tree or album tree of a category"""
    check_category(media_type)
    return [item.to_dict() for item in context.storage.get_media_library(media_type)]


@router.patch("/{media_type}/{item_id}")
def update_item(media_type: str, item_id: str,
                updates: Dict[str, Any] = Body(...),
                context: AppContext = Depends(get_context)) -> Dict[str, Any]:
    """Update editable fields of a movie, show or album (e.g. a movie title)"""
    check_category(media_type)
    try:
        item = context.storage.update_media_item(media_type, item_id, updates)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.error(f"Error saving library: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save library: {str(e)}")
    return {"success": True, "item": item.to_dict()}
