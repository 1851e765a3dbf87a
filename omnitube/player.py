"""Persisted player queue with resume positions."""

import dataclasses
import logging

from omnitube import settings as keys
from omnitube.models import PlayerQueueItem, Video
from omnitube.observable import Observable
from omnitube.settings import SettingsStore

logger = logging.getLogger(__name__)


class PlayerQueue:
    """Queue of videos to play, stored in settings between sessions."""

    def __init__(self, settings: SettingsStore):
        self.settings = settings
        items = []
        for data in settings.get(keys.PLAYER_QUEUE, []):
            try:
                items.append(PlayerQueueItem.from_dict(data))
            except (KeyError, TypeError) as e:
                logger.warning(f"Dropping unreadable queue entry: {e}")
        self.items: Observable[list[PlayerQueueItem]] = Observable(items)

    def _store(self, items: list[PlayerQueueItem]) -> None:
        self.settings.set(keys.PLAYER_QUEUE, [item.to_dict() for item in items])
        self.items.set(items)

    def enqueue(self, video: Video, playback_time: float | None = None) -> PlayerQueueItem:
        item = PlayerQueueItem.for_video(video, playback_time=playback_time)
        self._store(self.items.value + [item])
        return item

    def remove(self, item_id: str) -> None:
        self._store([item for item in self.items.value if item.id != item_id])

    def update_playback_time(self, item_id: str, playback_time: float) -> None:
        self._store([
            dataclasses.replace(item, playback_time=playback_time) if item.id == item_id else item
            for item in self.items.value
        ])

    @staticmethod
    def start_position(item: PlayerQueueItem) -> float:
        """Where playback of ``item`` should begin."""
        if item.playback_time is None or item.should_restart_playing:
            return 0.0
        return item.playback_time
