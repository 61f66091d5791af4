#!/usr/bin/env python3
"""
Thumbnail generation for MediaShelf
Extracts a preview frame from video files with ffmpeg and writes embedded album
art to disk. Both are idempotent: an existing thumbnail for an id is reused.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Union

from config import ThumbnailConfig


class ThumbnailGenerator:
    """Creates <id>.png thumbnails in the thumbnails directory"""

    def __init__(self, thumbnails_dir: Union[str, Path], config: Optional[ThumbnailConfig] = None,
                 logger: Optional[logging.Logger] = None):
        self.thumbnails_dir = Path(thumbnails_dir)
        self.config = config or ThumbnailConfig()
        self.logger = logger or logging.getLogger(__name__)

    def ensure_dir(self) -> None:
        self.thumbnails_dir.mkdir(parents=True, exist_ok=True)

    def thumbnail_path(self, item_id: str) -> Path:
        return self.thumbnails_dir / f"{item_id}.png"

    def video_frame(self, video_path: Union[str, Path], item_id: str) -> Optional[str]:
        """
        Extract one frame at the configured offset from a video

        Args:
            video_path: Video file
            item_id: Movie or episode id, used as the thumbnail name

        Returns:
            Thumbnail file name, or None if extraction failed
        """
        output = self.thumbnail_path(item_id)
        if output.exists():
            self.logger.debug(f"Thumbnail already exists: {output}")
            return output.name

        cmd = [
            self.config.ffmpeg_path,
            '-hide_banner', '-loglevel', 'error',
            '-ss', str(self.config.offset_seconds),
            '-i', str(video_path),
            '-frames:v', '1',
            '-s', self.config.size,
            '-y', str(output),
        ]
        self.logger.debug(f"FFmpeg command: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=self.config.timeout,
            )
        except subprocess.TimeoutExpired:
            self.logger.warning(f"Timed out extracting frame from {video_path}")
            self._discard(output)
            return None
        except OSError as e:
            self.logger.warning(f"Could not run ffmpeg for {video_path}: {e}")
            return None

        if result.returncode != 0 or not output.exists():
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            self.logger.warning(
                f"Failed to extract frame from {video_path} (exit {result.returncode}): {stderr or 'no output'}"
            )
            self._discard(output)
            return None

        return output.name

    def album_art(self, data: bytes, album_id: str) -> Optional[str]:
        """Write embedded cover art bytes to <album_id>.png unless already present"""
        output = self.thumbnail_path(album_id)
        if output.exists():
            self.logger.debug(f"Album art already exists: {output}")
            return output.name

        try:
            output.write_bytes(data)
        except OSError as e:
            self.logger.warning(f"Failed to write album art {output}: {e}")
            self._discard(output)
            return None
        return output.name

    def _discard(self, output: Path) -> None:
        try:
            output.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.debug(f"Could not remove partial thumbnail {output}: {e}")
