#!/usr/bin/env python3
"""
Shared fixtures for MediaShelf tests
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Dict, Optional, Set

import pytest
from fastapi.testclient import TestClient

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import ServerConfig
from errors import TagReadError
from playback import PlaybackTracker
from scanner import MediaScanner
from storage import StorageManager
from tags import AudioTags, ParseOptions, TagReader
from webui.api.deps import AppContext
from webui.main import create_app
from webui.services.control_service import ControlService


class FakeTagReader(TagReader):
    """
    Tag reader driven by file name

    Files in `broken` fail every attempt; files in `fragile` fail only the
    default strategy (full parse with covers).
    """

    def __init__(self, tags: Optional[Dict[str, AudioTags]] = None,
                 broken: Optional[Set[str]] = None, fragile: Optional[Set[str]] = None):
        self.tags = tags or {}
        self.broken = broken or set()
        self.fragile = fragile or set()
        self.calls = []

    def read(self, file_path: Path, options: ParseOptions) -> AudioTags:
        self.calls.append((file_path.name, options))
        if file_path.name in self.broken:
            raise TagReadError(file_path, 'corrupt header')
        if file_path.name in self.fragile and options == ParseOptions():
            raise TagReadError(file_path, 'bad picture block')
        return self.tags.get(file_path.name, AudioTags())


class BlockingTagReader(TagReader):
    """Tag reader that blocks until released, to hold a music scan open"""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def read(self, file_path: Path, options: ParseOptions) -> AudioTags:
        self.entered.set()
        self.release.wait(timeout=10)
        return AudioTags(title=file_path.stem)


class FakeThumbnails:
    """Thumbnail generator that records calls instead of running ffmpeg"""

    def __init__(self, thumbnails_dir: Path, fail: Optional[Set[str]] = None):
        self.thumbnails_dir = thumbnails_dir
        self.fail = fail or set()
        self.frames = []
        self.covers = []

    def ensure_dir(self) -> None:
        self.thumbnails_dir.mkdir(parents=True, exist_ok=True)

    def video_frame(self, video_path, item_id):
        self.frames.append(Path(video_path).name)
        if Path(video_path).name in self.fail:
            return None
        return f"{item_id}.png"

    def album_art(self, data, album_id):
        self.covers.append((data, album_id))
        return f"{album_id}.png"


def touch(path: Path, data: bytes = b'') -> Path:
    """Create a file and its parent directories"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.fixture
def logger():
    return logging.getLogger('MediaShelf.tests')


@pytest.fixture
def server_config(tmp_path):
    return ServerConfig(data_dir=tmp_path / 'data', host='127.0.0.1')


@pytest.fixture
def storage(server_config, logger):
    manager = StorageManager(server_config.data_dir, logger)
    manager.init()
    return manager


@pytest.fixture
def media_root(tmp_path):
    root = tmp_path / 'media'
    root.mkdir()
    return root


@pytest.fixture
def make_scanner(storage, server_config, logger, tmp_path):
    def factory(tag_reader=None, thumbnails=None):
        return MediaScanner(
            storage,
            server_config,
            tag_reader=tag_reader or FakeTagReader(),
            thumbnails=thumbnails or FakeThumbnails(server_config.thumbnails_dir),
            logger=logger,
        )
    return factory


@pytest.fixture
def context(storage, server_config, logger, make_scanner):
    scanner = make_scanner()
    return AppContext(
        config=server_config,
        storage=storage,
        tracker=PlaybackTracker(storage),
        control=ControlService(storage, scanner, logger=logger),
        logger=logger,
    )


@pytest.fixture
def client(context):
    return TestClient(create_app(context))
