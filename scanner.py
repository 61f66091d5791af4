#!/usr/bin/env python3
"""
Media scanner for MediaShelf
Walks the configured folders of a category, classifies files, reads audio
tags through the fallback ladder, drives thumbnail creation and commits the
rebuilt category to storage in one step.

Scans of different categories may run concurrently; a second scan of a
category that is already being scanned is rejected.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from aggregator import MovieAggregator, MusicAggregator, TVAggregator
from config import ServerConfig
from errors import ScanInProgressError, UnknownCategoryError
from logger import Colors
from model import CATEGORIES, Episode, MovieItem
from pattern import classify_episode, classify_movie
from storage import StorageManager
from tags import MutagenTagReader, TagReader, read_tags_with_fallback
from thumbnails import ThumbnailGenerator


LOG_PREFIXES = {'movies': '[Movies]', 'tv': '[TV]', 'music': '[Music]'}


@dataclass
class ScanStats:
    """Counters collected during one scan"""
    files: int = 0
    recovered: int = 0  # Audio files parsed by a fallback strategy
    skipped: int = 0  # Files left out of the library
    thumbnails_created: int = 0
    thumbnail_failures: int = 0


@dataclass
class ScanReport:
    """Result of a completed scan"""
    category: str
    count: int  # Top-level items committed (movies, shows, albums)
    stats: ScanStats = field(default_factory=ScanStats)

    def to_dict(self) -> Dict:
        return {'category': self.category, 'count': self.count, 'stats': asdict(self.stats)}


def walk_media_files(root: Union[str, Path], extensions: Iterable[str],
                     logger: Optional[logging.Logger] = None) -> List[Path]:
    """
    Recursively collect media files under root

    Entries are visited in name order so repeated scans produce the same
    order. Directories that cannot be read are logged and skipped.

    Args:
        root: Directory to walk
        extensions: Allowed lower-case extensions including the dot
        logger: Logger for skipped directories

    Returns:
        List of matching file paths
    """
    logger = logger or logging.getLogger(__name__)
    allowed = {ext.lower() for ext in extensions}
    files: List[Path] = []
    visited = set()  # Real paths, guards against symlink loops

    def walk(directory: str) -> None:
        real = os.path.realpath(directory)
        if real in visited:
            return
        visited.add(real)

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            logger.warning(f"Error scanning directory {directory}: {e}")
            return

        for entry in entries:
            try:
                if entry.is_dir():
                    walk(entry.path)
                elif entry.is_file() and os.path.splitext(entry.name)[1].lower() in allowed:
                    files.append(Path(entry.path))
            except OSError as e:
                logger.warning(f"Error reading {entry.path}: {e}")

    walk(str(root))
    return files


class MediaScanner:
    """Builds one library category at a time from the configured folders"""

    def __init__(self, storage: StorageManager, config: Optional[ServerConfig] = None,
                 tag_reader: Optional[TagReader] = None,
                 thumbnails: Optional[ThumbnailGenerator] = None,
                 logger: Optional[logging.Logger] = None):
        self.storage = storage
        self.config = config or ServerConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.tag_reader = tag_reader or MutagenTagReader()
        self.thumbnails = thumbnails or ThumbnailGenerator(
            self.config.thumbnails_dir, self.config.thumbnails, self.logger
        )
        self._locks = {category: threading.Lock() for category in CATEGORIES}

    def is_scanning(self, category: str) -> bool:
        if category not in CATEGORIES:
            raise UnknownCategoryError(category)
        return self._locks[category].locked()

    def scan(self, category: str, create_thumbnails: bool = False) -> ScanReport:
        """
        Scan one category and replace it in the library

        Args:
            category: movies, tv or music
            create_thumbnails: Extract video frames / album art

        Returns:
            ScanReport for the committed category

        Raises:
            UnknownCategoryError: Category is not movies, tv or music
            ScanInProgressError: The category is already being scanned
            OSError: The library could not be persisted (previous library kept)
        """
        if category not in CATEGORIES:
            raise UnknownCategoryError(category)

        lock = self._locks[category]
        if not lock.acquire(blocking=False):
            raise ScanInProgressError(category)

        prefix = LOG_PREFIXES[category]
        try:
            self.logger.info(f"{prefix} Scanning with createThumbnails = {create_thumbnails}")
            if create_thumbnails:
                create_thumbnails = self._prepare_thumbnails(prefix)

            stats = ScanStats()
            if category == 'movies':
                items = self._scan_movies(create_thumbnails, stats)
            elif category == 'tv':
                items = self._scan_tv(create_thumbnails, stats)
            else:
                items = self._scan_music(create_thumbnails, stats)

            self.storage.set_media_library(category, items)
            self.logger.info(
                f"{prefix} {Colors.GREEN}Committed {len(items)} items from {stats.files} files{Colors.RESET}"
            )
            return ScanReport(category=category, count=len(items), stats=stats)
        finally:
            lock.release()

    def _folders(self, category: str) -> List[str]:
        return [os.path.abspath(os.path.expanduser(f)) for f in self.storage.get_settings().folders(category)]

    def _prepare_thumbnails(self, prefix: str) -> bool:
        try:
            self.thumbnails.ensure_dir()
        except OSError as e:
            self.logger.error(f"{prefix} Failed to create thumbnails directory, continuing without thumbnails: {e}")
            return False
        self.logger.info(f"{prefix} Thumbnails directory ready: {self.thumbnails.thumbnails_dir}")
        return True

    def _attach_video_thumbnails(self, items: Sequence[Union[MovieItem, Episode]],
                                 stats: ScanStats, prefix: str) -> None:
        """Extract thumbnails for items in parallel; a failure only affects its item"""
        if not items:
            return
        with ThreadPoolExecutor(max_workers=self.config.thumbnails.max_workers) as executor:
            future_to_item = {
                executor.submit(self.thumbnails.video_frame, item.file_path, item.id): item
                for item in items
            }
            for future in as_completed(future_to_item):
                item = future_to_item[future]
                try:
                    thumbnail = future.result()
                except Exception as e:
                    self.logger.warning(f"{prefix} Thumbnail extraction crashed for {item.file_path}: {e}")
                    thumbnail = None
                if thumbnail:
                    item.thumbnail = thumbnail
                    stats.thumbnails_created += 1
                else:
                    stats.thumbnail_failures += 1
                    self.logger.warning(f"{prefix} Failed to create thumbnail for: {item.file_path}")

    def _scan_movies(self, create_thumbnails: bool, stats: ScanStats) -> list:
        prefix = LOG_PREFIXES['movies']
        movies = []
        for folder in self._folders('movies'):
            files = walk_media_files(folder, self.config.scan.video_extensions, self.logger)
            self.logger.debug(f"{prefix} {len(files)} files in {folder}")
            for file_path in files:
                stats.files += 1
                movies.append(classify_movie(file_path))

        if create_thumbnails:
            self._attach_video_thumbnails(movies, stats, prefix)

        aggregator = MovieAggregator()
        for movie in movies:
            aggregator.add(movie)
        return aggregator.finalize()

    def _scan_tv(self, create_thumbnails: bool, stats: ScanStats) -> list:
        prefix = LOG_PREFIXES['tv']
        episodes = []
        for folder in self._folders('tv'):
            files = walk_media_files(folder, self.config.scan.video_extensions, self.logger)
            self.logger.debug(f"{prefix} {len(files)} files in {folder}")
            for file_path in files:
                stats.files += 1
                try:
                    episodes.append(classify_episode(file_path, folder))
                except ValueError as e:
                    stats.skipped += 1
                    self.logger.warning(f"{prefix} Could not classify {file_path}: {e}")

        # Thumbnails first: season and show thumbnails are derived while aggregating
        if create_thumbnails:
            self._attach_video_thumbnails(episodes, stats, prefix)

        aggregator = TVAggregator()
        for episode in episodes:
            aggregator.add(episode)
        return aggregator.finalize()

    def _write_cover(self, data: bytes, album_id: str) -> Optional[str]:
        thumbnail = self.thumbnails.album_art(data, album_id)
        if thumbnail:
            self.logger.info(f"{LOG_PREFIXES['music']} Album art created: {thumbnail}")
        else:
            self.logger.warning(f"{LOG_PREFIXES['music']} Failed to extract album art for {album_id}")
        return thumbnail

    def _scan_music(self, create_thumbnails: bool, stats: ScanStats) -> list:
        prefix = LOG_PREFIXES['music']
        aggregator = MusicAggregator(cover_writer=self._write_cover if create_thumbnails else None)

        for folder in self._folders('music'):
            files = walk_media_files(folder, self.config.scan.audio_extensions, self.logger)
            self.logger.debug(f"{prefix} {len(files)} files in {folder}")
            for file_path in files:
                stats.files += 1
                result = read_tags_with_fallback(self.tag_reader, file_path)
                if not result.ok:
                    stats.skipped += 1
                    self.logger.error(
                        f"{prefix} Failed to parse {file_path} after {result.attempts} strategies: {result.reason}"
                    )
                    continue
                if result.recovered:
                    stats.recovered += 1
                    self.logger.debug(f"{prefix} Recovered {file_path.name} with strategy '{result.strategy}'")
                aggregator.add(file_path, result.tags)

        if stats.recovered:
            self.logger.info(f"{prefix} Recovered {stats.recovered} files using fallback parsing strategies")
        if stats.skipped:
            self.logger.warning(f"{prefix} Skipped {stats.skipped} files that could not be parsed with any strategy")

        return aggregator.finalize()
