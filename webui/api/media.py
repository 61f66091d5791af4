"""Media streaming and thumbnail endpoints"""

import logging
import os

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse

from webui.api.deps import AppContext, check_category, get_context
from webui.services.streaming import build_media_response

router = APIRouter(tags=["media"])
logger = logging.getLogger(__name__)


@router.get("/media/{media_type}/{media_id}")
def stream_media(media_type: str, media_id: str, request: Request,
                 context: AppContext = Depends(get_context)):
    """Stream a movie, episode or track, honouring a single byte range"""
    check_category(media_type)
    file_path = context.storage.resolve_media_path(media_type, media_id)
    if not file_path or not os.path.isfile(file_path):
        raise HTTPException(status_code=404, detail="File not found")

    try:
        return build_media_response(file_path, request.headers.get('range'))
    except OSError as e:
        logger.warning(f"Cannot open {file_path}: {e}")
        raise HTTPException(status_code=404, detail="File not found")


@router.get("/thumbnails/{filename}")
def get_thumbnail(filename: str, context: AppContext = Depends(get_context)):
    """Serve a generated thumbnail or album cover"""
    if '/' in filename or '\\' in filename or '..' in filename:
        raise HTTPException(status_code=404, detail="Thumbnail not found")
    path = context.config.thumbnails_dir / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Thumbnail not found")
    return FileResponse(str(path))
