"""Core data models for OmniTube.

Every backend adapter normalizes its upstream JSON into these types, so the
rest of the package never sees an Invidious or Piped payload.
"""

import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# =============================================================================
# Backends
# =============================================================================


class BackendKind(Enum):
    """Upstream front-end API flavour."""
    INVIDIOUS = "invidious"
    PIPED = "piped"


@dataclass(frozen=True)
class Capabilities:
    """What a backend kind can do. Callers branch on these flags."""
    supports_subscriptions: bool = False
    supports_search_filters: bool = False
    supports_popular: bool = False
    supports_user_playlists: bool = False
    supports_trending_categories: bool = False


@dataclass(frozen=True)
class Instance:
    """A server running one of the supported front-ends."""
    id: str
    backend: BackendKind
    name: str
    url: str

    @property
    def api_url(self) -> str:
        base = self.url.rstrip("/")
        if self.backend == BackendKind.INVIDIOUS:
            return f"{base}/api/v1"
        return base

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "backend": self.backend.value, "name": self.name, "url": self.url}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Instance":
        return cls(
            id=data["id"],
            backend=BackendKind(data.get("backend", "invidious")),
            name=data.get("name", ""),
            url=data["url"],
        )


@dataclass(frozen=True)
class Account:
    """An identity on one instance. ``sid`` is the opaque session secret."""
    id: str
    instance: Instance
    name: str
    sid: str | None = None

    @property
    def anonymous(self) -> bool:
        return not self.sid

    @property
    def backend(self) -> BackendKind:
        return self.instance.backend

    @classmethod
    def anonymous_for(cls, instance: Instance) -> "Account":
        """Build the shared anonymous account of an instance."""
        return cls(id=f"anonymous-{instance.id}", instance=instance, name="Anonymous")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "instance_id": self.instance.id,
            "name": self.name,
            "sid": self.sid,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], instance: Instance) -> "Account":
        return cls(id=data["id"], instance=instance, name=data.get("name", ""), sid=data.get("sid"))


# =============================================================================
# Thumbnails
# =============================================================================


class ThumbnailQuality(Enum):
    """Thumbnail sizes known to YouTube's image host."""
    MAXRES = "maxres"
    MAXRESDEFAULT = "maxresdefault"
    SDDEFAULT = "sddefault"
    HIGH = "high"
    MEDIUM = "medium"
    DEFAULT = "default"
    START = "start"
    MIDDLE = "middle"
    END = "end"

    @property
    def filename(self) -> str:
        """Filename stem used in image URLs, e.g. ``hqdefault`` for HIGH."""
        return _THUMBNAIL_FILENAMES.get(self, self.value)


_THUMBNAIL_FILENAMES = {
    ThumbnailQuality.HIGH: "hqdefault",
    ThumbnailQuality.MEDIUM: "mqdefault",
    ThumbnailQuality.START: "1",
    ThumbnailQuality.MIDDLE: "2",
    ThumbnailQuality.END: "3",
}


@dataclass(frozen=True)
class Thumbnail:
    url: str
    quality: ThumbnailQuality


# =============================================================================
# Streams
# =============================================================================


class Resolution(Enum):
    """Closed set of playback resolutions, ordered by preference."""
    HD2160P60 = "2160p60"
    HD2160P30 = "2160p30"
    HD1440P60 = "1440p60"
    HD1440P30 = "1440p30"
    HD1080P60 = "1080p60"
    HD1080P30 = "1080p30"
    HD720P60 = "720p60"
    HD720P30 = "720p30"
    SD480P30 = "480p30"
    SD360P30 = "360p30"
    SD240P30 = "240p30"
    SD144P30 = "144p30"
    UNKNOWN = "unknown"

    @property
    def height(self) -> int:
        if self is Resolution.UNKNOWN:
            return 0
        return int(self.value.split("p")[0])

    @property
    def fps(self) -> int:
        if self is Resolution.UNKNOWN:
            return 0
        return int(self.value.split("p")[1])

    @property
    def rank(self) -> tuple[int, int]:
        return (self.height, self.fps)

    def __lt__(self, other: "Resolution") -> bool:
        if not isinstance(other, Resolution):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def from_label(cls, label: Any) -> "Resolution":
        """Parse an upstream label such as ``720p60``, ``1080p`` or ``480p HDR``.

        Frame rates above 30 map to the 60 fps variant; anything unparseable
        is UNKNOWN.
        """
        if not isinstance(label, str) or not label:
            return cls.UNKNOWN
        match = _RESOLUTION_LABEL.match(label.strip())
        if not match:
            return cls.UNKNOWN
        height = int(match.group(1))
        fps = int(match.group(2) or 30)
        value = f"{height}p{60 if fps > 30 else 30}"
        try:
            return cls(value)
        except ValueError:
            try:
                return cls(f"{height}p30")
            except ValueError:
                return cls.UNKNOWN


_RESOLUTION_LABEL = re.compile(r"^(\d{3,4})p(\d{2})?")


class StreamKind(Enum):
    """How a rendition is delivered."""
    ADAPTIVE = "adaptive"  # separate audio and video tracks
    STREAM = "stream"      # one muxed asset
    HLS = "hls"            # manifest URL


@dataclass(frozen=True)
class Stream:
    """A playable rendition of a video.

    Use the ``adaptive``, ``single`` and ``hls`` constructors; each checks
    that the URLs its kind needs are present.
    """
    kind: StreamKind
    resolution: Resolution = Resolution.UNKNOWN
    audio_url: str | None = None
    video_url: str | None = None
    hls_url: str | None = None
    encoding: str | None = None

    @classmethod
    def adaptive(
        cls,
        audio_url: str,
        video_url: str,
        resolution: Resolution,
        encoding: str | None = None,
    ) -> "Stream":
        if not audio_url or not video_url:
            raise ValueError("Adaptive stream needs both audio and video URLs")
        return cls(
            kind=StreamKind.ADAPTIVE,
            resolution=resolution,
            audio_url=audio_url,
            video_url=video_url,
            encoding=encoding,
        )

    @classmethod
    def single(cls, video_url: str, resolution: Resolution, encoding: str | None = None) -> "Stream":
        if not video_url:
            raise ValueError("Single-asset stream needs a URL")
        return cls(kind=StreamKind.STREAM, resolution=resolution, video_url=video_url, encoding=encoding)

    @classmethod
    def hls(cls, hls_url: str) -> "Stream":
        if not hls_url:
            raise ValueError("HLS stream needs a manifest URL")
        return cls(kind=StreamKind.HLS, hls_url=hls_url)

    @property
    def url(self) -> str | None:
        """URL a player should open first."""
        if self.kind == StreamKind.HLS:
            return self.hls_url
        return self.video_url

    @property
    def description(self) -> str:
        if self.kind == StreamKind.HLS:
            return "HLS"
        return f"{self.resolution.value} ({self.kind.value})"


# =============================================================================
# Channels, videos, playlists
# =============================================================================


@dataclass(frozen=True)
class Channel:
    """A channel; ``videos`` is filled only when a listing returned them inline."""
    id: str
    name: str
    thumbnail_url: str | None = None
    subscriptions_count: int | None = None
    videos: list["Video"] = field(default_factory=list)


@dataclass(frozen=True)
class Video:
    """A normalized video. Identity is the (backend, video_id) pair."""
    backend: BackendKind
    video_id: str
    title: str
    author: str
    channel: Channel
    length: float = 0.0
    published: str = ""  # kept as delivered by the backend
    views: int = 0
    description: str | None = None
    likes: int | None = None
    dislikes: int | None = None
    thumbnails: list[Thumbnail] = field(default_factory=list)
    streams: list[Stream] = field(default_factory=list)

    @property
    def id(self) -> str:
        return f"{self.backend.value}:{self.video_id}"

    def thumbnail_url(self, quality: ThumbnailQuality) -> str | None:
        for thumbnail in self.thumbnails:
            if thumbnail.quality == quality:
                return thumbnail.url
        return None

    def streams_for(self, kind: StreamKind) -> list[Stream]:
        return [s for s in self.streams if s.kind == kind]

    @property
    def best_stream(self) -> Stream | None:
        """Highest resolution non-HLS stream, HLS as a last resort."""
        ranked = sorted(
            (s for s in self.streams if s.kind != StreamKind.HLS),
            key=lambda s: (s.resolution.rank, s.kind == StreamKind.ADAPTIVE),
            reverse=True,
        )
        if ranked:
            return ranked[0]
        hls = self.streams_for(StreamKind.HLS)
        return hls[0] if hls else None


class PlaylistVisibility(Enum):
    PUBLIC = "public"
    UNLISTED = "unlisted"
    PRIVATE = "private"


@dataclass(frozen=True)
class Playlist:
    id: str
    title: str
    visibility: PlaylistVisibility = PlaylistVisibility.PUBLIC
    videos: list[Video] = field(default_factory=list)


class ContentType(Enum):
    VIDEO = "video"
    CHANNEL = "channel"
    PLAYLIST = "playlist"


@dataclass(frozen=True)
class ContentItem:
    """A search result: exactly one of video, channel or playlist."""
    content_type: ContentType
    video: Video | None = None
    channel: Channel | None = None
    playlist: Playlist | None = None

    @classmethod
    def of_video(cls, video: Video) -> "ContentItem":
        return cls(content_type=ContentType.VIDEO, video=video)

    @classmethod
    def of_channel(cls, channel: Channel) -> "ContentItem":
        return cls(content_type=ContentType.CHANNEL, channel=channel)

    @classmethod
    def of_playlist(cls, playlist: Playlist) -> "ContentItem":
        return cls(content_type=ContentType.PLAYLIST, playlist=playlist)

    @property
    def title(self) -> str:
        match self.content_type:
            case ContentType.VIDEO:
                return self.video.title
            case ContentType.CHANNEL:
                return self.channel.name
            case ContentType.PLAYLIST:
                return self.playlist.title


# =============================================================================
# Search
# =============================================================================


class SortOrder(Enum):
    RELEVANCE = "relevance"
    DATE = "date"
    VIEWS = "views"
    RATING = "rating"

    @property
    def parameter(self) -> str:
        """Value of Invidious' ``sort_by`` parameter."""
        return {
            SortOrder.RELEVANCE: "relevance",
            SortOrder.DATE: "upload_date",
            SortOrder.VIEWS: "view_count",
            SortOrder.RATING: "rating",
        }[self]


class SearchDate(Enum):
    ANY = "any"
    HOUR = "hour"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class SearchDuration(Enum):
    ANY = "any"
    SHORT = "short"
    LONG = "long"


@dataclass(frozen=True)
class SearchQuery:
    """Structured search request. Equality decides favorite-search matches."""
    query: str = ""
    sort_by: SortOrder = SortOrder.RELEVANCE
    date: SearchDate = SearchDate.ANY
    duration: SearchDuration = SearchDuration.ANY

    @property
    def is_empty(self) -> bool:
        return not self.query.strip()

    @property
    def favorite_id(self) -> str:
        return f"search-{self.query}-{self.sort_by.value}-{self.date.value}-{self.duration.value}"


class TrendingCategory(Enum):
    DEFAULT = "default"
    MUSIC = "music"
    GAMING = "gaming"
    MOVIES = "movies"


# =============================================================================
# Sponsor segments
# =============================================================================


SEGMENT_CATEGORIES = ["sponsor", "selfpromo", "intro", "outro", "interaction", "music_offtopic"]


def category_description(name: str) -> str | None:
    """Human label of a SponsorBlock category, or None if unknown."""
    if name not in SEGMENT_CATEGORIES:
        return None
    match name:
        case "selfpromo":
            return "Self-promotion"
        case "music_offtopic":
            return "Offtopic in Music Videos"
        case _:
            return name.capitalize()


@dataclass(frozen=True)
class Segment:
    """A skippable time range of one video, in seconds."""
    category: str
    start: float
    end: float
    uuid: str = ""

    @property
    def duration(self) -> float:
        return self.end - self.start

    def contains(self, time: float) -> bool:
        return self.start <= time < self.end


# =============================================================================
# Player queue
# =============================================================================


RESTART_THRESHOLD_SECONDS = 10


@dataclass
class PlayerQueueItem:
    """A queued video with the position to resume from."""
    video_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    playback_time: float | None = None
    video_duration: float | None = None
    video: Video | None = None

    @classmethod
    def for_video(cls, video: Video, playback_time: float | None = None) -> "PlayerQueueItem":
        return cls(video_id=video.video_id, video=video, playback_time=playback_time, video_duration=video.length)

    @property
    def duration(self) -> float:
        if self.video_duration is not None:
            return self.video_duration
        return self.video.length if self.video else 0.0

    @property
    def should_restart_playing(self) -> bool:
        """True when less than the threshold remains, so resuming is pointless."""
        if self.playback_time is None:
            return False
        return self.duration - self.playback_time <= RESTART_THRESHOLD_SECONDS

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "video_id": self.video_id,
            "playback_time": self.playback_time,
            "video_duration": self.video_duration,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlayerQueueItem":
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            video_id=data["video_id"],
            playback_time=data.get("playback_time"),
            video_duration=data.get("video_duration"),
        )
