#!/usr/bin/env python3
"""
Exception hierarchy for MediaShelf
Errors raised by the scanner, the server lifecycle and the tag readers.
"""

from pathlib import Path
from typing import Union


class MediaShelfError(Exception):
    """Base exception for all MediaShelf errors"""
    pass


class UnknownCategoryError(MediaShelfError):
    """Category is not one of movies, tv, music"""

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Unknown media category: {category}")


class ScanInProgressError(MediaShelfError):
    """A scan of the same category is already running"""

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"A {category} scan is already in progress")


class ServerAlreadyRunningError(MediaShelfError):
    """Server start requested while the server is running"""

    def __init__(self, port: int):
        self.port = port
        super().__init__(f"Server is already running on port {port}")


class PortInUseError(MediaShelfError):
    """The requested port is already bound by another process"""

    def __init__(self, port: int):
        self.port = port
        super().__init__(f"Port {port} is already in use")


class ItemNotFoundError(MediaShelfError):
    """No library item with the given id in the category"""

    def __init__(self, category: str, item_id: str):
        self.category = category
        self.item_id = item_id
        super().__init__(f"No {category} item with id {item_id}")


class TagReadError(MediaShelfError):
    """
    A single tag-parsing attempt failed

    Attributes:
        path: File being parsed
        reason: Human-readable failure reason
    """

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to read tags from {self.path.name}: {reason}")
