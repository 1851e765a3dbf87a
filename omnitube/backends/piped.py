"""Piped backend.

Piped exposes a flat JSON API at the instance's API URL:
- channel/{id}
- streams/{id}
- trending?region=XX
- search?q=...&filter=all
- suggestions?query=...

Piped has no accounts, so subscriptions, feeds and playlists are unavailable.
Search results are classified by their ``url`` and playlists are dropped.
"""

import logging
import re
from typing import Any
from urllib.parse import parse_qs, urlparse

from omnitube.backends.base import (
    VideosAPI, as_list, compact_map, optional_str, optional_url, require_dict, require_str, to_float,
    to_int,
)
from omnitube.errors import DecodeError
from omnitube.models import (
    BackendKind, Channel, ContentItem, Resolution, SearchQuery, Stream, Thumbnail,
    ThumbnailQuality, TrendingCategory, Video,
)

logger = logging.getLogger(__name__)

VIDEO_ID_PATTERN = re.compile(r"^[\w-]+$")
THUMBNAIL_TOKEN = re.compile(r"maxresdefault|hqdefault")
LINE_BREAK = re.compile(r"<br/>|<br />|<br>")
HTML_TAG = re.compile(r"<[^>]+>")

AUDIO_FORMAT = "M4A"
VIDEO_FORMAT = "MPEG_4"


# =============================================================================
# Field extraction
# =============================================================================


def build_thumbnail_url(base_url: str | None, quality: ThumbnailQuality) -> str | None:
    """Derive the URL of ``quality`` from a Piped thumbnail URL.

    Piped proxies YouTube image URLs, whose filename names the size. Without
    a known filename token there is nothing to substitute, so no URL.
    """
    if not base_url or not THUMBNAIL_TOKEN.search(base_url):
        return None
    return THUMBNAIL_TOKEN.sub(quality.filename, base_url)


def extract_description(details: dict[str, Any]) -> str | None:
    description = details.get("description")
    if not isinstance(description, str):
        return None
    description = LINE_BREAK.sub("\n", description)
    return HTML_TAG.sub("", description)


def _last_path_segment(url: str | None) -> str | None:
    if not url:
        return None
    segments = [s for s in urlparse(url).path.split("/") if s]
    return segments[-1] if segments else None


def _thumbnail_base(details: dict[str, Any]) -> str | None:
    return optional_str(details, "thumbnail", "thumbnailUrl")


def extract_video_id(details: dict[str, Any]) -> str:
    """Video id from the ``v`` query parameter, else from the thumbnail path.

    The thumbnail path must have the ``/vi/<id>/`` shape; any other layout
    is a decode failure rather than a positional guess.
    """
    url = optional_url(details, "url")
    if url:
        ids = parse_qs(urlparse(url).query).get("v")
        if ids and VIDEO_ID_PATTERN.match(ids[0]):
            return ids[0]

    thumbnail = _thumbnail_base(details)
    if thumbnail:
        segments = [s for s in urlparse(thumbnail).path.split("/") if s]
        for position, segment in enumerate(segments[:-1]):
            if segment in ("vi", "vi_webp"):
                candidate = segments[position + 1]
                if VIDEO_ID_PATTERN.match(candidate):
                    return candidate
                break

    raise DecodeError(f"Cannot determine video id (url={url!r}, thumbnail={thumbnail!r})")


def compatible_audio_streams(details: dict[str, Any]) -> list[dict[str, Any]]:
    """M4A audio candidates with a URL, highest bitrate first."""
    candidates = [
        s for s in as_list(details.get("audioStreams"))
        if isinstance(s, dict) and s.get("format") == AUDIO_FORMAT and optional_url(s, "url")
    ]
    return sorted(candidates, key=lambda s: to_int(s.get("bitrate")) or 0, reverse=True)


def compatible_video_streams(details: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        s for s in as_list(details.get("videoStreams"))
        if isinstance(s, dict) and s.get("format") == VIDEO_FORMAT
    ]


def extract_streams(details: dict[str, Any]) -> list[Stream]:
    streams = []

    hls_url = optional_str(details, "hls")
    if hls_url:
        streams.append(Stream.hls(hls_url))

    audio_streams = compatible_audio_streams(details)
    if not audio_streams:
        return streams
    audio_url = optional_url(audio_streams[0], "url")

    for video_stream in compatible_video_streams(details):
        video_url = optional_url(video_stream, "url")
        if not video_url:
            continue

        resolution = Resolution.from_label(optional_str(video_stream, "quality"))
        codec = optional_str(video_stream, "codec")
        video_only = video_stream.get("videoOnly")
        if not isinstance(video_only, bool):
            video_only = True

        if video_only:
            streams.append(Stream.adaptive(audio_url, video_url, resolution, encoding=codec))
        else:
            streams.append(Stream.single(video_url, resolution, encoding=codec))

    return streams


def extract_channel(content: Any) -> Channel:
    attributes = require_dict(content, "channel")

    channel_id = optional_str(attributes, "id") or _last_path_segment(optional_url(attributes, "url"))
    if not channel_id:
        raise DecodeError("Channel has neither id nor url")

    subscriptions = to_int(attributes.get("subscriberCount"))
    if subscriptions is None:
        subscriptions = to_int(attributes.get("subscribers"))
    if subscriptions is not None and subscriptions < 0:
        subscriptions = None  # hidden

    return Channel(
        id=channel_id,
        name=require_str(attributes, "name"),
        thumbnail_url=optional_str(attributes, "thumbnail", "avatarUrl"),
        subscriptions_count=subscriptions,
        videos=extract_videos(attributes.get("relatedStreams")),
    )


def extract_video(content: Any, video_id: str | None = None) -> Video | None:
    """Normalize a Piped stream or listing entry.

    Returns None for entries whose ``url`` is not a watch URL. ``video_id``
    is used when the caller already knows the id (the streams endpoint).
    """
    details = require_dict(content, "video")

    url = optional_url(details, "url")
    if url and "/watch" not in url:
        return None

    if video_id is None:
        video_id = extract_video_id(details)

    channel_id = _last_path_segment(optional_str(details, "uploaderUrl"))
    if not channel_id:
        raise DecodeError(f"Video {video_id} has no uploaderUrl")

    author = require_str(details, "uploaderName", "uploader")
    base = _thumbnail_base(details)
    thumbnails = []
    for quality in ThumbnailQuality:
        thumbnail_url = build_thumbnail_url(base, quality)
        if thumbnail_url:
            thumbnails.append(Thumbnail(url=thumbnail_url, quality=quality))

    return Video(
        backend=BackendKind.PIPED,
        video_id=video_id,
        title=require_str(details, "title"),
        author=author,
        channel=Channel(id=channel_id, name=author, thumbnail_url=optional_str(details, "uploaderAvatar")),
        length=to_float(details.get("duration")),
        published=optional_str(details, "uploadedDate", "uploadDate") or "",
        views=to_int(details.get("views")) or 0,
        description=extract_description(details),
        likes=to_int(details.get("likes")),
        dislikes=to_int(details.get("dislikes")),
        thumbnails=thumbnails,
        streams=extract_streams(details),
    )


def extract_videos(content: Any) -> list[Video]:
    return compact_map(extract_video, content, "video")


def extract_content_item(content: Any) -> ContentItem | None:
    details = require_dict(content, "search item")
    url = optional_url(details, "url") or ""

    if "/playlist" in url:
        return None
    if "/channel" in url:
        return ContentItem.of_channel(extract_channel(details))

    video = extract_video(details)
    return ContentItem.of_video(video) if video else None


def extract_content_items(content: Any) -> list[ContentItem]:
    return compact_map(extract_content_item, content, "search item")


# =============================================================================
# Adapter
# =============================================================================


class PipedAPI(VideosAPI):
    """Adapter for Piped instances."""

    @property
    def backend(self) -> BackendKind:
        return BackendKind.PIPED

    async def fetch_channel(self, channel_id: str, force: bool = False) -> Channel:
        content = await self._get_json(f"channel/{channel_id}", force=force)
        return extract_channel(content)

    async def fetch_trending(
        self,
        country: str = "US",
        category: TrendingCategory | None = None,
        force: bool = False,
    ) -> list[Video]:
        # Piped trending has no categories
        content = await self._get_json("trending", {"region": country.upper()}, force=force)
        return extract_videos(content)

    async def search(self, query: SearchQuery, force: bool = False) -> list[ContentItem]:
        content = await self._get_json("search", {"q": query.query, "filter": "all"}, force=force)
        details = require_dict(content, "search response")
        if "items" not in details:
            raise DecodeError("Search response has no items")
        return extract_content_items(details["items"])

    async def search_suggestions(self, text: str) -> list[str]:
        content = await self._get_json("suggestions", {"query": text.lower()})
        if not isinstance(content, list):
            raise DecodeError("Suggestions response is not a list")
        return [str(s) for s in content if s is not None]

    async def fetch_video(self, video_id: str, force: bool = False) -> Video:
        content = await self._get_json(f"streams/{video_id}", force=force)
        video = extract_video(content, video_id=video_id)
        if video is None:
            raise DecodeError(f"Stream response for {video_id} is not a video")
        return video
