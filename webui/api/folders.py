"""Media folder management API endpoints"""

from fastapi import APIRouter, Depends, HTTPException

from webui.api.deps import AppContext, check_category, get_context
from webui.models.schemas import FolderRequest, MediaFoldersSchema, OperationResponse

router = APIRouter(prefix="/api/control/folders", tags=["folders"])


@router.get("", response_model=MediaFoldersSchema)
def get_folders(context: AppContext = Depends(get_context)):
    """Get the configured media folders of every category"""
    settings = context.control.get_settings()
    return MediaFoldersSchema(**settings.media_folders)


@router.post("", response_model=OperationResponse)
def add_folder(request: FolderRequest, context: AppContext = Depends(get_context)):
    """Add a folder to a category; adding a folder twice keeps one entry"""
    check_category(request.type)
    result = context.control.add_media_folder(request.type, request.folder)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return OperationResponse(**result.to_dict())


@router.delete("", response_model=OperationResponse)
def remove_folder(request: FolderRequest, context: AppContext = Depends(get_context)):
    """Remove a folder from a category"""
    check_category(request.type)
    result = context.control.remove_media_folder(request.type, request.folder)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return OperationResponse(**result.to_dict())
