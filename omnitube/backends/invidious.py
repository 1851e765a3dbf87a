"""Invidious backend.

Endpoints live under ``{instance}/api/v1``. Signed-in accounts send their
session id as the ``SID`` cookie and unlock the ``auth/*`` endpoints:
subscriptions, the subscription feed and user playlists.
"""

import logging
import re
from typing import Any

from omnitube.backends.base import (
    VideosAPI, as_list, compact_map, optional_str, optional_url, require_dict, require_str, to_float,
    to_int,
)
from omnitube.errors import DecodeError, UnsupportedOperationError
from omnitube.models import (
    BackendKind, Channel, ContentItem, Playlist, PlaylistVisibility, Resolution,
    SearchDate, SearchDuration, SearchQuery, Stream, Thumbnail, ThumbnailQuality,
    TrendingCategory, Video,
)

logger = logging.getLogger(__name__)

# /vi/<video id>/<filename>.<ext>
THUMBNAIL_FILE = re.compile(r"/vi(?:_webp)?/[\w-]+/([\w-]+)\.\w+")


def thumbnail_url_for(base_url: str | None, quality: ThumbnailQuality) -> str | None:
    """Swap the filename of an Invidious thumbnail URL for ``quality``'s.

    Returns None when the URL does not follow the ``/vi/<id>/<name>.jpg``
    convention.
    """
    if not base_url:
        return None
    match = THUMBNAIL_FILE.search(base_url)
    if not match:
        return None
    return base_url[:match.start(1)] + quality.filename + base_url[match.end(1):]


def _bitrate(entry: dict[str, Any]) -> int:
    return to_int(entry.get("bitrate")) or 0


def _mime_type(entry: dict[str, Any]) -> str:
    value = entry.get("type")
    return value if isinstance(value, str) else ""


class InvidiousAPI(VideosAPI):
    """Adapter for Invidious instances."""

    @property
    def backend(self) -> BackendKind:
        return BackendKind.INVIDIOUS

    @property
    def is_signed_in(self) -> bool:
        return self.account is not None and not self.account.anonymous

    def _headers(self) -> dict[str, str]:
        if self.is_signed_in:
            return {"Cookie": f"SID={self.account.sid}"}
        return {}

    def _require_signed_in(self, operation: str) -> None:
        if not self.is_signed_in:
            raise UnsupportedOperationError(f"{operation} requires a signed-in Invidious account")

    # -------------------------------------------------------------------------
    # Normalization
    # -------------------------------------------------------------------------

    def absolute_url(self, url: str) -> str:
        """Resolve protocol-relative and instance-relative URLs."""
        if url.startswith("//"):
            return f"https:{url}"
        if url.startswith("/") and self.account is not None:
            return f"{self.account.instance.url.rstrip('/')}{url}"
        return url

    def extract_thumbnails(self, content: Any) -> list[Thumbnail]:
        by_quality: dict[ThumbnailQuality, str] = {}
        for entry in content if isinstance(content, list) else []:
            if not isinstance(entry, dict):
                continue
            url = optional_url(entry, "url")
            try:
                quality = ThumbnailQuality(entry.get("quality"))
            except ValueError:
                continue
            if url and quality not in by_quality:
                by_quality[quality] = self.absolute_url(url)

        if by_quality:
            base = next(iter(by_quality.values()))
            for quality in ThumbnailQuality:
                if quality not in by_quality:
                    derived = thumbnail_url_for(base, quality)
                    if derived:
                        by_quality[quality] = derived

        return [Thumbnail(url=by_quality[q], quality=q) for q in ThumbnailQuality if q in by_quality]

    def extract_author_thumbnail(self, details: dict[str, Any]) -> str | None:
        urls = [
            optional_url(t, "url") for t in as_list(details.get("authorThumbnails"))
            if isinstance(t, dict)
        ]
        urls = [url for url in urls if url]
        if not urls:
            return None
        return self.absolute_url(urls[-1])

    def extract_streams(self, details: dict[str, Any]) -> list[Stream]:
        streams = []

        hls_url = optional_str(details, "hlsUrl")
        if hls_url:
            streams.append(Stream.hls(self.absolute_url(hls_url)))

        for entry in as_list(details.get("formatStreams")):
            url = optional_url(entry, "url") if isinstance(entry, dict) else None
            if not url:
                continue
            resolution = Resolution.from_label(optional_str(entry, "qualityLabel", "resolution"))
            streams.append(Stream.single(self.absolute_url(url), resolution, encoding=optional_str(entry, "container")))

        adaptive = [
            entry for entry in as_list(details.get("adaptiveFormats"))
            if isinstance(entry, dict) and optional_url(entry, "url")
        ]
        audio = sorted(
            (entry for entry in adaptive if _mime_type(entry).startswith("audio/mp4")),
            key=_bitrate,
            reverse=True,
        )
        if not audio:
            return streams
        audio_url = self.absolute_url(optional_url(audio[0], "url"))

        for entry in adaptive:
            if not _mime_type(entry).startswith("video/mp4"):
                continue
            resolution = Resolution.from_label(optional_str(entry, "qualityLabel", "resolution"))
            video_url = self.absolute_url(optional_url(entry, "url"))
            streams.append(Stream.adaptive(audio_url, video_url, resolution, encoding=optional_str(entry, "encoding")))

        return streams

    def extract_video(self, content: Any) -> Video:
        details = require_dict(content, "video")
        author = optional_str(details, "author") or ""

        return Video(
            backend=BackendKind.INVIDIOUS,
            video_id=require_str(details, "videoId"),
            title=require_str(details, "title"),
            author=author,
            channel=Channel(
                id=optional_str(details, "authorId") or "",
                name=author,
                thumbnail_url=self.extract_author_thumbnail(details),
            ),
            length=to_float(details.get("lengthSeconds")),
            published=optional_str(details, "publishedText") or "",
            views=to_int(details.get("viewCount")) or 0,
            description=optional_str(details, "description"),
            likes=to_int(details.get("likeCount")),
            dislikes=to_int(details.get("dislikeCount")),
            thumbnails=self.extract_thumbnails(details.get("videoThumbnails")),
            streams=self.extract_streams(details),
        )

    def extract_videos(self, content: Any) -> list[Video]:
        return compact_map(self.extract_video, content, "video")

    def extract_channel(self, content: Any) -> Channel:
        details = require_dict(content, "channel")
        return Channel(
            id=require_str(details, "authorId"),
            name=require_str(details, "author"),
            thumbnail_url=self.extract_author_thumbnail(details),
            subscriptions_count=to_int(details.get("subCount")),
            videos=self.extract_videos(details.get("latestVideos")),
        )

    def extract_playlist(self, content: Any) -> Playlist:
        details = require_dict(content, "playlist")
        privacy = (optional_str(details, "privacy") or "public").lower()
        try:
            visibility = PlaylistVisibility(privacy)
        except ValueError:
            visibility = PlaylistVisibility.PUBLIC

        return Playlist(
            id=require_str(details, "playlistId"),
            title=require_str(details, "title"),
            visibility=visibility,
            videos=self.extract_videos(details.get("videos")),
        )

    def extract_content_item(self, content: Any) -> ContentItem | None:
        details = require_dict(content, "search item")
        match details.get("type"):
            case "channel":
                return ContentItem.of_channel(self.extract_channel(details))
            case "playlist":
                return ContentItem.of_playlist(self.extract_playlist(details))
            case "video" | None:
                return ContentItem.of_video(self.extract_video(details))
            case _:
                return None

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def fetch_channel(self, channel_id: str, force: bool = False) -> Channel:
        content = await self._get_json(f"channels/{channel_id}", force=force)
        return self.extract_channel(content)

    async def fetch_trending(
        self,
        country: str = "US",
        category: TrendingCategory | None = None,
        force: bool = False,
    ) -> list[Video]:
        params = {"region": country.upper()}
        if category is not None and category != TrendingCategory.DEFAULT:
            params["type"] = category.value
        content = await self._get_json("trending", params, force=force)
        return self.extract_videos(content)

    async def search(self, query: SearchQuery, force: bool = False) -> list[ContentItem]:
        params = {
            "q": query.query,
            "sort_by": query.sort_by.parameter,
            "type": "all",
        }
        if query.date != SearchDate.ANY:
            params["date"] = query.date.value
        if query.duration != SearchDuration.ANY:
            params["duration"] = query.duration.value

        content = await self._get_json("search", params, force=force)
        if not isinstance(content, list):
            raise DecodeError("Search response is not a list")
        return compact_map(self.extract_content_item, content, "search item")

    async def search_suggestions(self, text: str) -> list[str]:
        content = await self._get_json("search/suggestions", {"q": text})
        # {"query": ..., "suggestions": [...]} on most instances, [query, [...]] on some
        if isinstance(content, dict) and isinstance(content.get("suggestions"), list):
            return [str(s) for s in content["suggestions"]]
        if isinstance(content, list) and len(content) >= 2 and isinstance(content[1], list):
            return [str(s) for s in content[1]]
        raise DecodeError("Unrecognized suggestions response")

    async def fetch_video(self, video_id: str, force: bool = False) -> Video:
        content = await self._get_json(f"videos/{video_id}", force=force)
        return self.extract_video(content)

    async def fetch_popular(self, force: bool = False) -> list[Video]:
        content = await self._get_json("popular", force=force)
        return self.extract_videos(content)

    async def fetch_subscriptions(self, force: bool = False) -> list[Channel]:
        self._require_signed_in("Subscriptions")
        content = await self._get_json("auth/subscriptions", force=force)
        if not isinstance(content, list):
            raise DecodeError("Subscriptions response is not a list")
        return compact_map(self._extract_subscription, content, "subscription")

    def _extract_subscription(self, content: Any) -> Channel:
        details = require_dict(content, "subscription")
        return Channel(id=require_str(details, "authorId"), name=require_str(details, "author"))

    async def subscribe(self, channel_id: str) -> None:
        self._require_signed_in("Subscribing")
        await self._request("POST", f"auth/subscriptions/{channel_id}")
        self._invalidate("auth/subscriptions")
        self._invalidate("auth/feed")

    async def unsubscribe(self, channel_id: str) -> None:
        self._require_signed_in("Unsubscribing")
        await self._request("DELETE", f"auth/subscriptions/{channel_id}")
        self._invalidate("auth/subscriptions")
        self._invalidate("auth/feed")

    async def fetch_feed(self, force: bool = False) -> list[Video]:
        self._require_signed_in("Feed")
        content = require_dict(await self._get_json("auth/feed", force=force), "feed")
        return self.extract_videos(content.get("notifications")) + self.extract_videos(content.get("videos"))

    async def fetch_home(self, force: bool = False) -> list[Video]:
        return await self.fetch_feed(force=force)

    async def fetch_playlists(self, force: bool = False) -> list[Playlist]:
        self._require_signed_in("Playlists")
        content = await self._get_json("auth/playlists", force=force)
        return compact_map(self.extract_playlist, content, "playlist")

    async def fetch_playlist_videos(self, playlist_id: str, force: bool = False) -> list[Video]:
        self._require_signed_in("Playlists")
        content = await self._get_json(f"auth/playlists/{playlist_id}", force=force)
        return self.extract_playlist(content).videos

    async def add_playlist_video(self, playlist_id: str, video_id: str) -> None:
        self._require_signed_in("Playlists")
        await self._request("POST", f"auth/playlists/{playlist_id}/videos", json={"videoId": video_id})
        self._invalidate("auth/playlists")

    async def remove_playlist_video(self, playlist_id: str, index_id: str) -> None:
        self._require_signed_in("Playlists")
        await self._request("DELETE", f"auth/playlists/{playlist_id}/videos/{index_id}")
        self._invalidate("auth/playlists")
