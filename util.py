#!/usr/bin/env python3
"""
Utility functions for MediaShelf
Provides identity hashing and content-type lookup helpers.
"""

import hashlib
from pathlib import Path
from typing import Union


# Width of generated IDs (hex characters)
ID_LENGTH = 16

# Content types served by the media endpoint, keyed by lower-case extension
CONTENT_TYPES = {
    '.mp4': 'video/mp4',
    '.m4v': 'video/mp4',
    '.mkv': 'video/x-matroska',
    '.avi': 'video/x-msvideo',
    '.mov': 'video/quicktime',
    '.wmv': 'video/x-ms-wmv',
    '.flv': 'video/x-flv',
    '.webm': 'video/webm',
    '.mp3': 'audio/mpeg',
    '.flac': 'audio/flac',
    '.wav': 'audio/wav',
    '.m4a': 'audio/mp4',
    '.aac': 'audio/aac',
    '.ogg': 'audio/ogg',
    '.wma': 'audio/x-ms-wma',
}

DEFAULT_CONTENT_TYPE = 'application/octet-stream'


def generate_id(value: str) -> str:
    """
    Generate a deterministic ID for a path or aggregation key

    The ID is the MD5 hex digest truncated to ID_LENGTH characters.
    Collisions are not detected.

    Args:
        value: Absolute file path or composite key (show name, "artist|||album")

    Returns:
        Fixed-width lower-case hex string
    """
    return hashlib.md5(value.encode('utf-8')).hexdigest()[:ID_LENGTH]


def content_type_for(file_path: Union[str, Path]) -> str:
    """Get the content type for a media file from its extension"""
    return CONTENT_TYPES.get(Path(file_path).suffix.lower(), DEFAULT_CONTENT_TYPE)
