"""Settings API endpoints"""

from fastapi import APIRouter, Depends, HTTPException

from model import Settings
from webui.api.deps import AppContext, get_context
from webui.models.schemas import MediaFoldersSchema, SettingsSchema

router = APIRouter(prefix="/api/control/config", tags=["config"])


def _to_schema(settings: Settings) -> SettingsSchema:
    return SettingsSchema(
        port=settings.port,
        auto_start=settings.auto_start,
        media_folders=MediaFoldersSchema(**settings.media_folders),
    )


@router.get("", response_model=SettingsSchema, response_model_by_alias=True)
def get_config(context: AppContext = Depends(get_context)):
    """Get current settings"""
    return _to_schema(context.control.get_settings())


@router.put("", response_model=SettingsSchema, response_model_by_alias=True)
def update_config(config: SettingsSchema, context: AppContext = Depends(get_context)):
    """Replace the settings"""
    settings = Settings(
        port=config.port,
        auto_start=config.auto_start,
        media_folders={
            'movies': list(config.media_folders.movies),
            'tv': list(config.media_folders.tv),
            'music': list(config.media_folders.music),
        },
    )
    result = context.control.update_settings(settings)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return _to_schema(context.control.get_settings())
