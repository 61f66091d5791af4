#!/usr/bin/env python3
"""
Playback tracking for MediaShelf
Records the last played item and per-item positions from client heartbeats.
"""

import time
from typing import Optional

from model import LastPlayed, PlaybackState, ProgressEntry
from storage import StorageManager


def _now_ms() -> int:
    return int(time.time() * 1000)


class PlaybackTracker:
    """Reads and writes the playback state through the storage manager"""

    def __init__(self, storage: StorageManager):
        self.storage = storage

    def record_heartbeat(self, media_type: str, media_id: str,
                         position: float, duration: float) -> PlaybackState:
        """
        Record the current position of the playing item

        Overwrites the last played pointer and the item's progress entry.
        Values are stored as sent by the client (no range checks).

        Raises:
            OSError: If the playback file cannot be written
        """
        timestamp = _now_ms()

        def apply(state: PlaybackState) -> None:
            state.last_played = LastPlayed(type=media_type, id=media_id, timestamp=timestamp)
            state.progress[PlaybackState.key(media_type, media_id)] = ProgressEntry(
                position=position,
                duration=duration,
                last_updated=timestamp,
            )

        return self.storage.update_playback(apply)

    def get_progress(self, media_type: str, media_id: str) -> Optional[ProgressEntry]:
        """Get the stored progress of an item, or None if never played"""
        return self.storage.get_playback().progress.get(PlaybackState.key(media_type, media_id))

    def get_state(self) -> PlaybackState:
        return self.storage.get_playback()
