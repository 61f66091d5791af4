#!/usr/bin/env python3
"""
Data models for MediaShelf
Defines the movie, TV and music library structures, the playback state and the
persisted settings, along with their JSON wire representation.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


CATEGORIES = ('movies', 'tv', 'music')


@dataclass
class MovieItem:
    """A single movie file"""
    id: str
    title: str
    original_file_name: str
    file_path: str
    added_timestamp: int
    year: Optional[int] = None
    thumbnail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'year': self.year,
            'originalFileName': self.original_file_name,
            'filePath': self.file_path,
            'addedDate': self.added_timestamp,
            'thumbnail': self.thumbnail,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MovieItem':
        return cls(
            id=data['id'],
            title=data.get('title', ''),
            original_file_name=data.get('originalFileName', ''),
            file_path=data.get('filePath', ''),
            added_timestamp=int(data.get('addedDate') or 0),
            year=data.get('year'),
            thumbnail=data.get('thumbnail'),
        )


@dataclass
class Episode:
    """A single episode file"""
    id: str
    show_name: str
    season: int
    number: int
    title: str
    file_name: str  # Sanitized file name
    file_path: str
    thumbnail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'showName': self.show_name,
            'season': self.season,
            'number': self.number,
            'title': self.title,
            'fileName': self.file_name,
            'filePath': self.file_path,
            'thumbnail': self.thumbnail,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Episode':
        return cls(
            id=data['id'],
            show_name=data.get('showName', ''),
            season=int(data.get('season') or 0),
            number=int(data.get('number') or 0),
            title=data.get('title', ''),
            file_name=data.get('fileName', ''),
            file_path=data.get('filePath', ''),
            thumbnail=data.get('thumbnail'),
        )


@dataclass
class Season:
    """A season with its episodes, sorted by episode number"""
    number: int
    episodes: List[Episode] = field(default_factory=list)
    thumbnail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'episodes': [episode.to_dict() for episode in self.episodes],
            'thumbnail': self.thumbnail,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Season':
        return cls(
            number=int(data.get('number') or 0),
            episodes=[Episode.from_dict(e) for e in data.get('episodes', [])],
            thumbnail=data.get('thumbnail'),
        )


@dataclass
class Show:
    """A TV show with all seasons, sorted by season number"""
    id: str
    name: str
    seasons: List[Season] = field(default_factory=list)
    thumbnail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'seasons': [season.to_dict() for season in self.seasons],
            'thumbnail': self.thumbnail,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Show':
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            seasons=[Season.from_dict(s) for s in data.get('seasons', [])],
            thumbnail=data.get('thumbnail'),
        )


@dataclass
class Track:
    """A single audio track"""
    id: str
    title: str
    track_number: int
    duration: float
    file_path: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'trackNumber': self.track_number,
            'duration': self.duration,
            'filePath': self.file_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Track':
        return cls(
            id=data['id'],
            title=data.get('title', ''),
            track_number=int(data.get('trackNumber') or 0),
            duration=float(data.get('duration') or 0),
            file_path=data.get('filePath', ''),
        )


@dataclass
class Album:
    """An album grouped by (album artist, album) with tracks sorted by number"""
    id: str
    artist: str
    album: str
    year: Optional[int] = None
    genre: Optional[str] = None
    tracks: List[Track] = field(default_factory=list)
    thumbnail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'artist': self.artist,
            'album': self.album,
            'year': self.year,
            'genre': self.genre,
            'tracks': [track.to_dict() for track in self.tracks],
            'thumbnail': self.thumbnail,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Album':
        return cls(
            id=data['id'],
            artist=data.get('artist', ''),
            album=data.get('album', ''),
            year=data.get('year'),
            genre=data.get('genre'),
            tracks=[Track.from_dict(t) for t in data.get('tracks', [])],
            thumbnail=data.get('thumbnail'),
        )


# Item class per category, used when loading the persisted library
CATEGORY_TYPES = {
    'movies': MovieItem,
    'tv': Show,
    'music': Album,
}


@dataclass(frozen=True)
class LibraryIndex:
    """
    The persisted library: one independent list per category

    Instances are treated as immutable snapshots. replace() returns a new
    index so readers holding the previous snapshot never see a partial update.
    """
    movies: List[MovieItem] = field(default_factory=list)
    tv: List[Show] = field(default_factory=list)
    music: List[Album] = field(default_factory=list)

    def category(self, name: str) -> list:
        if name not in CATEGORIES:
            raise KeyError(name)
        return getattr(self, name)

    def replace(self, name: str, items: list) -> 'LibraryIndex':
        if name not in CATEGORIES:
            raise KeyError(name)
        return replace(self, **{name: list(items)})

    def to_dict(self) -> Dict[str, Any]:
        return {name: [item.to_dict() for item in self.category(name)] for name in CATEGORIES}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LibraryIndex':
        data = data or {}
        return cls(**{
            name: [CATEGORY_TYPES[name].from_dict(item) for item in data.get(name) or []]
            for name in CATEGORIES
        })


@dataclass
class ProgressEntry:
    """Playback position of a single item"""
    position: float
    duration: float
    last_updated: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'position': self.position,
            'duration': self.duration,
            'lastUpdated': self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProgressEntry':
        return cls(
            position=data.get('position', 0),
            duration=data.get('duration', 0),
            last_updated=int(data.get('lastUpdated') or 0),
        )


@dataclass
class LastPlayed:
    """Pointer to the most recently played item"""
    type: str
    id: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'id': self.id, 'timestamp': self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LastPlayed':
        return cls(type=data['type'], id=data['id'], timestamp=int(data.get('timestamp') or 0))


@dataclass
class PlaybackState:
    """Last played pointer and the progress map keyed by "type:id" """
    last_played: Optional[LastPlayed] = None
    progress: Dict[str, ProgressEntry] = field(default_factory=dict)

    @staticmethod
    def key(media_type: str, media_id: str) -> str:
        return f"{media_type}:{media_id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lastPlayed': self.last_played.to_dict() if self.last_played else None,
            'progress': {key: entry.to_dict() for key, entry in self.progress.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlaybackState':
        data = data or {}
        last_played = data.get('lastPlayed')
        return cls(
            last_played=LastPlayed.from_dict(last_played) if last_played else None,
            progress={
                key: ProgressEntry.from_dict(entry)
                for key, entry in (data.get('progress') or {}).items()
            },
        )


@dataclass
class Settings:
    """User settings persisted in config.json"""
    port: int = 3000
    auto_start: bool = False
    media_folders: Dict[str, List[str]] = field(
        default_factory=lambda: {name: [] for name in CATEGORIES}
    )

    def folders(self, category: str) -> List[str]:
        return list(self.media_folders.get(category) or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'port': self.port,
            'autoStart': self.auto_start,
            'mediaFolders': {name: self.folders(name) for name in CATEGORIES},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        data = data or {}
        port = data.get('port', 3000)
        if isinstance(port, float):
            port = int(port)
        elif not isinstance(port, int):
            port = 3000  # Default fallback
        folders = data.get('mediaFolders') or {}
        return cls(
            port=port,
            auto_start=bool(data.get('autoStart', False)),
            media_folders={name: list(folders.get(name) or []) for name in CATEGORIES},
        )
