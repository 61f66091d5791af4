#!/usr/bin/env python3
"""
Thread-safe in-memory id -> file path index for MediaShelf
Rebuilt from the library on every commit so the media endpoint can resolve ids
without walking the whole library tree.
"""

import threading
from typing import Dict, Optional, Tuple

from model import CATEGORIES, LibraryIndex


def iter_media_paths(library: LibraryIndex, category: str):
    """Yield (item id, file path) for every playable item of a category"""
    if category == 'movies':
        for movie in library.movies:
            yield movie.id, movie.file_path
    elif category == 'tv':
        for show in library.tv:
            for season in show.seasons:
                for episode in season.episodes:
                    yield episode.id, episode.file_path
    elif category == 'music':
        for album in library.music:
            for track in album.tracks:
                yield track.id, track.file_path


class MediaPathIndex:
    """Thread-safe index of (category, id) -> file path"""

    def __init__(self):
        """
        Initialize the index

        Index is unbounded (no size limit) and thread-safe.
        """
        self._index: Dict[Tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def get(self, category: str, item_id: str) -> Optional[str]:
        """
        Get the file path of an item

        Args:
            category: movies, tv or music
            item_id: Movie, episode or track id

        Returns:
            File path if found, None otherwise
        """
        with self._lock:
            return self._index.get((category, item_id))

    def rebuild(self, library: LibraryIndex, category: Optional[str] = None) -> None:
        """
        Rebuild the index for one category, or all categories

        The new entries are computed before the lock is taken, so readers see
        either the old or the new entries for the category.
        """
        categories = [category] if category else list(CATEGORIES)
        fresh = {
            name: {(name, item_id): path for item_id, path in iter_media_paths(library, name)}
            for name in categories
        }
        with self._lock:
            for name in categories:
                self._index = {key: value for key, value in self._index.items() if key[0] != name}
                self._index.update(fresh[name])

    def clear(self) -> None:
        """Clear all entries"""
        with self._lock:
            self._index.clear()

    def size(self) -> int:
        """
        Get the number of indexed items

        Returns:
            Number of entries in the index
        """
        with self._lock:
            return len(self._index)
