#!/usr/bin/env python3
"""
Library aggregation for MediaShelf
Folds classified files into the library hierarchy in two phases: records are
accumulated into key -> record maps while files are walked, then finalize()
emits deterministic lists sorted by number.

Aggregators are not thread-safe; each scan owns its own instance.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from model import Album, Episode, MovieItem, Season, Show, Track
from tags import AudioTags
from util import generate_id


UNKNOWN_ARTIST = 'Unknown Artist'
UNKNOWN_ALBUM = 'Unknown Album'
ALBUM_KEY_SEPARATOR = '|||'

# (cover image bytes, album id) -> thumbnail file name or None
CoverWriter = Callable[[bytes, str], Optional[str]]


def album_key(artist: str, album: str) -> str:
    """Aggregation key for an album (case-sensitive)"""
    return f"{artist}{ALBUM_KEY_SEPARATOR}{album}"


class MovieAggregator:
    """Movies are not merged: one record per file, in walk order"""

    def __init__(self):
        self._movies: List[MovieItem] = []

    def add(self, movie: MovieItem) -> None:
        self._movies.append(movie)

    def finalize(self) -> List[MovieItem]:
        return list(self._movies)


@dataclass
class _SeasonRecord:
    number: int
    episodes: List[Episode] = field(default_factory=list)
    thumbnail: Optional[str] = None


@dataclass
class _ShowRecord:
    name: str
    seasons: Dict[str, _SeasonRecord] = field(default_factory=dict)
    thumbnail: Optional[str] = None


class TVAggregator:
    """Groups episodes into shows (by exact show name) and seasons"""

    def __init__(self):
        self._shows: Dict[str, _ShowRecord] = {}

    def add(self, episode: Episode) -> None:
        show = self._shows.get(episode.show_name)
        if show is None:
            show = self._shows[episode.show_name] = _ShowRecord(name=episode.show_name)

        season_key = f"S{episode.season}"
        season = show.seasons.get(season_key)
        if season is None:
            season = show.seasons[season_key] = _SeasonRecord(number=episode.season)

        season.episodes.append(episode)

        # Season thumbnail: first episode (insertion order) that has one
        if season.thumbnail is None and episode.thumbnail:
            season.thumbnail = episode.thumbnail

        # Show thumbnail: only season 1 episodes qualify
        if episode.season == 1 and show.thumbnail is None and episode.thumbnail:
            show.thumbnail = episode.thumbnail

    def finalize(self) -> List[Show]:
        shows = []
        for name, record in self._shows.items():
            seasons = [
                Season(
                    number=season.number,
                    episodes=sorted(season.episodes, key=lambda e: e.number),
                    thumbnail=season.thumbnail,
                )
                for season in record.seasons.values()
            ]
            seasons.sort(key=lambda s: s.number)
            shows.append(Show(
                id=generate_id(name),
                name=name,
                seasons=seasons,
                thumbnail=record.thumbnail,
            ))
        return shows


class MusicAggregator:
    """
    Groups tracks into albums keyed by (album artist, album)

    Album metadata comes from the first file seen for a key. Cover art is
    written once per album, from the first file that carries a picture.
    """

    def __init__(self, cover_writer: Optional[CoverWriter] = None):
        self.cover_writer = cover_writer
        self._albums: Dict[str, Album] = {}
        self._cover_checked: set = set()

    def add(self, file_path: Union[str, Path], tags: AudioTags) -> Album:
        path = Path(file_path)
        artist = tags.album_artist or tags.artist or UNKNOWN_ARTIST
        album_name = tags.album or UNKNOWN_ALBUM
        key = album_key(artist, album_name)

        album = self._albums.get(key)
        if album is None:
            album = self._albums[key] = Album(
                id=generate_id(key),
                artist=artist,
                album=album_name,
                year=tags.year,
                genre=tags.genres[0] if tags.genres else None,
            )

        if self.cover_writer and key not in self._cover_checked and tags.pictures:
            self._cover_checked.add(key)
            album.thumbnail = self.cover_writer(tags.pictures[0], album.id)

        album.tracks.append(Track(
            id=generate_id(str(file_path)),
            title=tags.title or path.stem,
            track_number=tags.track_number or 0,
            duration=tags.duration or 0.0,
            file_path=str(file_path),
        ))
        return album

    def finalize(self) -> List[Album]:
        albums = []
        for album in self._albums.values():
            albums.append(Album(
                id=album.id,
                artist=album.artist,
                album=album.album,
                year=album.year,
                genre=album.genre,
                tracks=sorted(album.tracks, key=lambda t: t.track_number),
                thumbnail=album.thumbnail,
            ))
        return albums
