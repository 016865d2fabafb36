"""
In-process blob store for fetched tour assets.

Assets live only as long as the worker process; callers get back a local
reference (``/media/{id}``) that the media route serves.
"""

import uuid
import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)

MEDIA_PREFIX = "/media"
MAX_ITEMS = 32


class MediaStore:
    def __init__(self, max_items: int = MAX_ITEMS):
        self._lock = threading.Lock()
        self._items: dict[str, tuple[bytes, str]] = {}
        self.max_items = max_items

    def put(self, data: bytes, content_type: str = "video/mp4") -> str:
        """Store a blob and return its local reference."""
        media_id = uuid.uuid4().hex
        with self._lock:
            self._items[media_id] = (data, content_type)
            # Oldest entries go first.
            while len(self._items) > self.max_items:
                evicted = next(iter(self._items))
                del self._items[evicted]
                logger.info(f"Evicted media {evicted}")
        logger.info(f"Stored media {media_id} ({len(data)} bytes, {content_type})")
        return f"{MEDIA_PREFIX}/{media_id}"

    def get(self, media_id: str) -> Optional[tuple[bytes, str]]:
        with self._lock:
            return self._items.get(media_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


media_store = MediaStore()
