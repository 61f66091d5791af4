#!/usr/bin/env python3
"""
Persistence for MediaShelf
Stores settings, the library index and the playback state as JSON files in the
data directory. Every mutation rewrites the whole file; writes to one file are
serialized and go through a temporary file and an atomic rename, so a crash or
a concurrent reader never sees a partial file.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from cache import MediaPathIndex, iter_media_paths
from errors import ItemNotFoundError, UnknownCategoryError
from model import CATEGORIES, LibraryIndex, PlaybackState, Settings


# Fields of top-level library items that may be edited through the control surface
EDITABLE_FIELDS = {
    'movies': {'title': 'title', 'year': 'year'},
    'tv': {'name': 'name'},
    'music': {'artist': 'artist', 'album': 'album', 'year': 'year', 'genre': 'genre'},
}


class JsonStore:
    """A single JSON file with serialized, atomic whole-file writes"""

    def __init__(self, path: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()

    def load(self, default_factory: Callable[[], Any],
             parse: Optional[Callable[[Any], Any]] = None) -> Any:
        """
        Read the file, or create it from default_factory if missing or unreadable

        Args:
            default_factory: Builds the JSON data written when the file is unusable
            parse: Converts the JSON data (e.g. a from_dict class method);
                   identity if None

        A file that is not valid JSON, or whose data parse() rejects, is kept
        next to the original with a ".corrupt" suffix before the default is
        written.
        """
        parse = parse or (lambda data: data)
        with self._lock:
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    return parse(json.load(f))
            except FileNotFoundError:
                pass
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                # ValueError covers JSONDecodeError and UnicodeDecodeError
                backup = self.path.with_name(self.path.name + '.corrupt')
                self.logger.warning(
                    f"Could not parse {self.path.name} ({type(e).__name__}: {e}), moving it to {backup.name}"
                )
                os.replace(self.path, backup)

            data = default_factory()
            self._write(data)
            return parse(data)

    def save(self, data: Any) -> None:
        """Write data to the file (raises OSError on failure)"""
        with self._lock:
            self._write(data)

    def _write(self, data: Any) -> None:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix='.tmp', dir=str(self.path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise


class StorageManager:
    """
    Owner of the persisted application state

    Holds the settings, library and playback state in memory, loaded once at
    startup and written to disk on every mutation. In-memory state is only
    replaced after the write succeeded.
    """

    def __init__(self, data_dir: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.data_dir = Path(data_dir)
        self.logger = logger or logging.getLogger(__name__)

        self.settings_store = JsonStore(self.data_dir / 'config.json', self.logger)
        self.library_store = JsonStore(self.data_dir / 'library.json', self.logger)
        self.playback_store = JsonStore(self.data_dir / 'playback.json', self.logger)

        self.path_index = MediaPathIndex()

        self._settings = Settings()
        self._library = LibraryIndex()
        self._playback = PlaybackState()

        self._settings_lock = threading.Lock()
        self._library_lock = threading.Lock()
        self._playback_lock = threading.Lock()

    def init(self) -> None:
        """
        Create the data directory and load all state

        Raises:
            OSError: If the data directory cannot be created (fatal at startup)
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self._settings = self.settings_store.load(lambda: Settings().to_dict(), Settings.from_dict)
        self._library = self.library_store.load(lambda: LibraryIndex().to_dict(), LibraryIndex.from_dict)
        self._playback = self.playback_store.load(lambda: PlaybackState().to_dict(), PlaybackState.from_dict)

        self.path_index.rebuild(self._library)
        self.logger.debug(
            f"Loaded library: {len(self._library.movies)} movies, {len(self._library.tv)} shows, "
            f"{len(self._library.music)} albums"
        )

    # Settings

    def get_settings(self) -> Settings:
        with self._settings_lock:
            return Settings.from_dict(self._settings.to_dict())

    def save_settings(self, settings: Settings) -> Settings:
        """Persist settings and make them current (raises OSError on write failure)"""
        with self._settings_lock:
            self.settings_store.save(settings.to_dict())
            self._settings = Settings.from_dict(settings.to_dict())
            return Settings.from_dict(self._settings.to_dict())

    def update_settings(self, mutate: Callable[[Settings], None]) -> Settings:
        """Apply mutate() to a copy of the settings, then persist it"""
        with self._settings_lock:
            settings = Settings.from_dict(self._settings.to_dict())
            mutate(settings)
            self.settings_store.save(settings.to_dict())
            self._settings = settings
            return Settings.from_dict(settings.to_dict())

    def add_media_folder(self, category: str, folder: str) -> Settings:
        _check_category(category)

        def add(settings: Settings) -> None:
            folders = settings.media_folders.setdefault(category, [])
            if folder not in folders:
                folders.append(folder)

        return self.update_settings(add)

    def remove_media_folder(self, category: str, folder: str) -> Settings:
        _check_category(category)

        def remove(settings: Settings) -> None:
            settings.media_folders[category] = [f for f in settings.folders(category) if f != folder]

        return self.update_settings(remove)

    # Library

    def get_library(self) -> LibraryIndex:
        """Current library snapshot (never mutated in place)"""
        return self._library

    def get_media_library(self, category: str) -> list:
        _check_category(category)
        return self._library.category(category)

    def set_media_library(self, category: str, items: list) -> None:
        """
        Replace one category of the library and persist the whole index

        Raises:
            OSError: If the library file cannot be written; the current
                     library is left unchanged
        """
        _check_category(category)
        with self._library_lock:
            updated = self._library.replace(category, items)
            self.library_store.save(updated.to_dict())
            self._library = updated
            self.path_index.rebuild(updated, category)

    def update_media_item(self, category: str, item_id: str, updates: Dict[str, Any]) -> Any:
        """
        Update editable fields of a top-level library item

        Args:
            category: movies, tv or music
            item_id: Movie, show or album id
            updates: Wire field name -> new value

        Returns:
            The updated item

        Raises:
            ItemNotFoundError: No item with that id
            ValueError: A field that is not editable for the category
        """
        _check_category(category)
        editable = EDITABLE_FIELDS[category]
        unknown = sorted(set(updates) - set(editable))
        if unknown:
            raise ValueError(f"Fields not editable for {category}: {', '.join(unknown)}")

        with self._library_lock:
            items: List[Any] = list(self._library.category(category))
            for index, item in enumerate(items):
                if item.id == item_id:
                    break
            else:
                raise ItemNotFoundError(category, item_id)

            updated_item = type(item).from_dict(item.to_dict())
            for key, value in updates.items():
                setattr(updated_item, editable[key], value)
            items[index] = updated_item

            updated = self._library.replace(category, items)
            self.library_store.save(updated.to_dict())
            self._library = updated
            return updated_item

    def resolve_media_path(self, category: str, item_id: str) -> Optional[str]:
        """
        Resolve a playable item id to its file path

        Uses the id index, falling back to a linear search of the library.
        """
        _check_category(category)
        path = self.path_index.get(category, item_id)
        if path is not None:
            return path
        for found_id, found_path in iter_media_paths(self._library, category):
            if found_id == item_id:
                return found_path
        return None

    # Playback

    def get_playback(self) -> PlaybackState:
        with self._playback_lock:
            return PlaybackState.from_dict(self._playback.to_dict())

    def update_playback(self, mutate: Callable[[PlaybackState], None]) -> PlaybackState:
        """Apply mutate() to a copy of the playback state, then persist it"""
        with self._playback_lock:
            state = PlaybackState.from_dict(self._playback.to_dict())
            mutate(state)
            self.playback_store.save(state.to_dict())
            self._playback = state
            return state


def _check_category(category: str) -> None:
    if category not in CATEGORIES:
        raise UnknownCategoryError(category)
