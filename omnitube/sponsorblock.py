"""SponsorBlock skip-segment client.

Segments are best effort: when the service is not configured, unreachable
or returns garbage, the video simply has no segments.
"""

import json
import logging
from typing import Any

import httpx

from omnitube import settings as keys
from omnitube.backends.base import DEFAULT_TIMEOUT, compact_map, optional_str, require_dict, require_str
from omnitube.errors import DecodeError, NotFoundError, classify_http_error
from omnitube.models import SEGMENT_CATEGORIES, Segment
from omnitube.observable import Observable
from omnitube.settings import DEFAULT_SPONSOR_BLOCK_INSTANCE, SettingsStore

logger = logging.getLogger(__name__)


def extract_segment(content: Any) -> Segment:
    details = require_dict(content, "segment")
    bounds = details.get("segment")
    if not isinstance(bounds, list) or len(bounds) != 2:
        raise DecodeError(f"Segment bounds must be a pair, got {bounds!r}")
    try:
        start, end = float(bounds[0]), float(bounds[1])
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Segment bounds are not numbers: {bounds!r}") from e
    if end < start:
        raise DecodeError(f"Segment ends before it starts: {bounds!r}")

    category = require_str(details, "category")
    if category not in SEGMENT_CATEGORIES:
        raise DecodeError(f"Unknown segment category: {category!r}")

    return Segment(
        category=category,
        start=start,
        end=end,
        uuid=optional_str(details, "UUID") or "",
    )


class SponsorBlockAPI:
    """Loads the skip segments of the video being played.

    The segment set belongs to exactly one video id: loading another video
    replaces it, loading the same video again is a no-op.
    """

    def __init__(self, settings: SettingsStore, client: httpx.AsyncClient | None = None, timeout: float = DEFAULT_TIMEOUT):
        self.settings = settings
        self.video_id: Observable[str | None] = Observable(None)
        self.segments: Observable[list[Segment]] = Observable([])
        self._client = client
        self._timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def skip_segments_url(self) -> str | None:
        url = self.settings.get(keys.SPONSOR_BLOCK_INSTANCE, DEFAULT_SPONSOR_BLOCK_INSTANCE)
        if not isinstance(url, str):
            return None
        url = url.strip().rstrip("/")
        return f"{url}/api/skipSegments" if url else None

    @property
    def categories(self) -> set[str]:
        return set(self.settings.get(keys.SPONSOR_BLOCK_CATEGORIES, SEGMENT_CATEGORIES))

    def segment_at(self, time: float) -> Segment | None:
        """First segment covering ``time``; segments are ordered by end."""
        for segment in self.segments.value:
            if segment.end <= time:
                continue
            if segment.contains(time):
                return segment
        return None

    async def load_segments(self, video_id: str, categories: set[str] | None = None) -> None:
        url = self.skip_segments_url
        if url is None or self.video_id.value == video_id:
            return

        self.segments.set([])
        self.video_id.set(video_id)

        categories = self.categories if categories is None else set(categories)
        if not categories:
            return

        params = {"videoID": video_id, "categories": json.dumps(sorted(categories))}
        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            content = response.json()
        except httpx.HTTPError as e:
            error = classify_http_error(e)
            if self.video_id.value == video_id:
                self.segments.set([])
            if isinstance(error, NotFoundError):
                logger.info(f"No SponsorBlock segments for {video_id}")
            else:
                logger.error(f"Failed to load SponsorBlock segments: {error}")
            return
        except httpx.InvalidURL as e:
            # let a corrected instance setting retry this video
            if self.video_id.value == video_id:
                self.segments.set([])
                self.video_id.set(None)
            logger.error(f"Invalid SponsorBlock instance URL {url!r}: {e}")
            return
        except ValueError as e:
            if self.video_id.value == video_id:
                self.segments.set([])
            logger.error(f"Failed to decode SponsorBlock segments: {e}")
            return

        if self.video_id.value != video_id:
            logger.debug(f"Discarding SponsorBlock segments of {video_id}")
            return

        segments = sorted(compact_map(extract_segment, content, "segment"), key=lambda s: s.end)
        self.segments.set(segments)

        logger.info(f"Loaded {len(segments)} SponsorBlock segments")
        for segment in segments:
            logger.debug(f"{segment.category}: {segment.start} -> {segment.end}")
