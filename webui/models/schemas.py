"""Pydantic schemas for API request/response models"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


# Playback schemas
class PlaybackUpdateRequest(BaseModel):
    media_type: str = Field(..., alias="mediaType", description="Category: movies, tv or music")
    media_id: str = Field(..., alias="mediaId", description="Movie, episode or track id")
    position: float = Field(default=0, description="Current position in seconds")
    duration: float = Field(default=0, description="Total duration in seconds")

    model_config = ConfigDict(populate_by_name=True)


class SuccessResponse(BaseModel):
    success: bool = True


# Settings schemas
class MediaFoldersSchema(BaseModel):
    movies: List[str] = Field(default_factory=list)
    tv: List[str] = Field(default_factory=list)
    music: List[str] = Field(default_factory=list)


class SettingsSchema(BaseModel):
    port: int = Field(default=3000, ge=1, le=65535, description="HTTP port")
    auto_start: bool = Field(default=False, alias="autoStart", description="Start the server on launch")
    media_folders: MediaFoldersSchema = Field(default_factory=MediaFoldersSchema, alias="mediaFolders")

    model_config = ConfigDict(populate_by_name=True)


# Folder schemas
class FolderRequest(BaseModel):
    type: str = Field(..., description="Category: movies, tv or music")
    folder: str = Field(..., min_length=1, description="Folder path")


# Control schemas
class ScanRequest(BaseModel):
    type: str = Field(..., description="Category to scan: movies, tv or music")
    create_thumbnails: bool = Field(default=False, alias="createThumbnails")

    model_config = ConfigDict(populate_by_name=True)


class ServerStatusResponse(BaseModel):
    running: bool
    port: Optional[int] = None


class OperationResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    detail: str
    error_type: Optional[str] = None
