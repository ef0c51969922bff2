from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True, slots=True)
class ThumbnailEntry:
    data: bytes
    media_type: str


class ThumbnailRegistry:
    """Process-lifetime store of thumbnail blobs keyed by video id.

    Created once by the application factory and shared through ``app.state``.
    Entries are immutable and replaced wholesale under a lock, so readers see
    either the previous entry or the new one, never a mix.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, ThumbnailEntry] = {}
        self._lock = threading.Lock()

    def put(self, video_id: str, data: bytes, media_type: str) -> ThumbnailEntry:
        entry = ThumbnailEntry(data=bytes(data), media_type=media_type)
        with self._lock:
            self._entries[video_id] = entry
        return entry

    def get(self, video_id: str) -> Optional[ThumbnailEntry]:
        with self._lock:
            return self._entries.get(video_id)

    def __contains__(self, video_id: object) -> bool:
        with self._lock:
            return video_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["ThumbnailEntry", "ThumbnailRegistry"]
