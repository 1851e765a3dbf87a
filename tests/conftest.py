"""Shared fixtures: inline upstream payloads, accounts and a fake backend."""

import asyncio
import copy

import pytest

from omnitube import settings as keys
from omnitube.accounts import AccountsModel
from omnitube.backends import BackendRegistry, VideosAPI
from omnitube.errors import NetworkError
from omnitube.models import (
    Account, BackendKind, Channel, ContentItem, Instance, SearchQuery, Video,
)
from omnitube.search import RecentsModel
from omnitube.settings import SettingsStore


INVIDIOUS_URL = "https://invidious.example"
PIPED_URL = "https://pipedapi.example"


# =============================================================================
# Piped payloads
# =============================================================================


PIPED_STREAMS = {
    "title": "Is Google Evil?",
    "description": "First line<br>Second <b>line</b><br/>Third",
    "uploadDate": "2021-01-01",
    "uploader": "Tech Channel",
    "uploaderUrl": "/channel/UCtech",
    "uploaderAvatar": "https://pipedproxy.example/avatar.jpg",
    "thumbnailUrl": "https://pipedproxy.example/vi/dQw4w9WgXcQ/maxresdefault.jpg?host=i.ytimg.com",
    "hls": "https://pipedproxy.example/api/manifest/hls_playlist/index.m3u8",
    "duration": 212,
    "views": 1000,
    "likes": 10,
    "dislikes": 2,
    "audioStreams": [
        {"url": "https://pipedproxy.example/audio-low", "format": "M4A", "bitrate": 48000},
        {"url": "https://pipedproxy.example/audio-high", "format": "M4A", "bitrate": 128000},
        {"url": "https://pipedproxy.example/audio-opus", "format": "WEBMA_OPUS", "bitrate": 160000},
    ],
    "videoStreams": [
        {"url": "https://pipedproxy.example/v1080", "format": "MPEG_4", "quality": "1080p60", "codec": "avc1.640028", "videoOnly": True},
        {"url": "https://pipedproxy.example/v720", "format": "MPEG_4", "quality": "720p", "codec": "avc1.4d401f", "videoOnly": True},
        {"url": "https://pipedproxy.example/v360", "format": "MPEG_4", "quality": "360p", "codec": "avc1.42001E", "videoOnly": False},
        {"url": "https://pipedproxy.example/vwebm", "format": "WEBM", "quality": "1080p", "codec": "vp9", "videoOnly": True},
    ],
}

PIPED_SEARCH = {
    "items": [
        {
            "url": "/watch?v=dQw4w9WgXcQ",
            "title": "Is Google Evil?",
            "thumbnail": "https://pipedproxy.example/vi/dQw4w9WgXcQ/hqdefault.jpg?host=i.ytimg.com",
            "uploaderName": "Tech Channel",
            "uploaderUrl": "/channel/UCtech",
            "duration": 212,
            "views": 1000,
            "uploadedDate": "3 years ago",
        },
        {
            "url": "/channel/UCtech",
            "name": "Tech Channel",
            "thumbnail": "https://pipedproxy.example/avatar.jpg",
            "subscribers": 5000,
        },
        {"url": "/playlist?list=PLabc", "name": "Some playlist"},
        {"url": "/watch?v=noUploader", "title": "Missing uploader"},
        "not an object",
    ],
}

PIPED_CHANNEL = {
    "id": "UCtech",
    "name": "Tech Channel",
    "avatarUrl": "https://pipedproxy.example/avatar.jpg",
    "subscriberCount": 5000,
    "relatedStreams": [PIPED_SEARCH["items"][0]],
}


# =============================================================================
# Invidious payloads
# =============================================================================


INVIDIOUS_VIDEO = {
    "type": "video",
    "title": "Is Google Evil?",
    "videoId": "dQw4w9WgXcQ",
    "videoThumbnails": [
        {"quality": "maxres", "url": "https://img.example/vi/dQw4w9WgXcQ/maxres.jpg"},
        {"quality": "high", "url": "/vi/dQw4w9WgXcQ/hqdefault.jpg"},
    ],
    "description": "About Google",
    "publishedText": "3 years ago",
    "viewCount": 1000,
    "likeCount": 10,
    "dislikeCount": 2,
    "author": "Tech Channel",
    "authorId": "UCtech",
    "authorThumbnails": [
        {"url": "//yt3.example/small.jpg", "width": 32},
        {"url": "//yt3.example/large.jpg", "width": 512},
    ],
    "lengthSeconds": 212,
    "adaptiveFormats": [
        {"url": "https://invidious.example/audio-low", "type": 'audio/mp4; codecs="mp4a.40.5"', "bitrate": "48000"},
        {"url": "https://invidious.example/audio-high", "type": 'audio/mp4; codecs="mp4a.40.2"', "bitrate": "128000"},
        {"url": "https://invidious.example/audio-opus", "type": 'audio/webm; codecs="opus"', "bitrate": "160000"},
        {"url": "https://invidious.example/v1080", "type": 'video/mp4; codecs="avc1.640028"', "qualityLabel": "1080p", "encoding": "h264"},
        {"url": "https://invidious.example/v720", "type": 'video/mp4; codecs="avc1.4d401f"', "qualityLabel": "720p60", "encoding": "h264"},
        {"url": "https://invidious.example/vwebm", "type": 'video/webm; codecs="vp9"', "qualityLabel": "1080p"},
    ],
    "formatStreams": [
        {"url": "https://invidious.example/muxed360", "qualityLabel": "360p", "container": "mp4"},
    ],
}

INVIDIOUS_SEARCH = [
    {
        "type": "video",
        "title": "Is Google Evil?",
        "videoId": "dQw4w9WgXcQ",
        "author": "Tech Channel",
        "authorId": "UCtech",
        "lengthSeconds": 212,
        "viewCount": 1000,
    },
    {
        "type": "channel",
        "author": "Tech Channel",
        "authorId": "UCtech",
        "subCount": 5000,
        "authorThumbnails": [{"url": "https://yt3.example/large.jpg"}],
    },
    {
        "type": "playlist",
        "title": "Best of",
        "playlistId": "PLabc",
        "videos": [{"title": "First", "videoId": "abc123", "lengthSeconds": 60}],
    },
    {"type": "video", "title": "Missing id"},
    {"type": "category", "title": "Shelf"},
]

INVIDIOUS_CHANNEL = {
    "author": "Tech Channel",
    "authorId": "UCtech",
    "subCount": 5000,
    "authorThumbnails": [{"url": "https://yt3.example/large.jpg"}],
    "latestVideos": [INVIDIOUS_SEARCH[0], {"title": "No id"}],
}

INVIDIOUS_SUBSCRIPTIONS = [
    {"author": "beta", "authorId": "UC2"},
    {"author": "Alpha", "authorId": "UC1"},
    {"authorId": "UC3"},
]


@pytest.fixture
def piped_streams():
    return copy.deepcopy(PIPED_STREAMS)


@pytest.fixture
def piped_search():
    return copy.deepcopy(PIPED_SEARCH)


@pytest.fixture
def invidious_video():
    return copy.deepcopy(INVIDIOUS_VIDEO)


@pytest.fixture
def invidious_search():
    return copy.deepcopy(INVIDIOUS_SEARCH)


# =============================================================================
# Instances and accounts
# =============================================================================


@pytest.fixture
def invidious_instance():
    return Instance(id="inv1", backend=BackendKind.INVIDIOUS, name="Invidious", url=INVIDIOUS_URL)


@pytest.fixture
def piped_instance():
    return Instance(id="piped1", backend=BackendKind.PIPED, name="Piped", url=PIPED_URL)


@pytest.fixture
def invidious_account(invidious_instance):
    return Account(id="acc1", instance=invidious_instance, name="alice", sid="secret-sid")


@pytest.fixture
def piped_account(piped_instance):
    return Account.anonymous_for(piped_instance)


@pytest.fixture
def settings():
    """In-memory settings store."""
    return SettingsStore()


# =============================================================================
# Fake backend
# =============================================================================


def make_video(title: str, backend: BackendKind = BackendKind.INVIDIOUS) -> Video:
    return Video(
        backend=backend,
        video_id=title.replace(" ", "-") or "empty",
        title=title,
        author="Author",
        channel=Channel(id="UCauthor", name="Author"),
    )


class FakeAPI(VideosAPI):
    """In-memory adapter that records calls instead of using the network."""

    def __init__(self, kind: BackendKind, **kwargs):
        self.kind = kind
        super().__init__(**kwargs)
        self.search_calls: list[SearchQuery] = []
        self.suggestion_calls: list[str] = []
        self.subscription_loads: list[bool] = []
        self.subscribed: list[Channel] = []
        self.empty_queries: set[str] = set()
        self.search_delay = 0.0
        self.search_error: Exception | None = None
        self.subscriptions_delay = 0.0
        self.fail_subscriptions = False
        self.fail_subscribe = False

    @property
    def backend(self) -> BackendKind:
        return self.kind

    @property
    def is_signed_in(self) -> bool:
        return self.account is not None and not self.account.anonymous

    async def fetch_channel(self, channel_id, force=False):
        return Channel(id=channel_id, name=channel_id)

    async def fetch_trending(self, country="US", category=None, force=False):
        return [make_video("trending", self.kind)]

    async def search(self, query, force=False):
        self.search_calls.append(query)
        if self.search_delay:
            await asyncio.sleep(self.search_delay)
        if self.search_error is not None:
            raise self.search_error
        if query.query in self.empty_queries:
            return []
        return [ContentItem.of_video(make_video(query.query, self.kind))]

    async def search_suggestions(self, text):
        self.suggestion_calls.append(text)
        return [f"{text} suggestion"]

    async def fetch_video(self, video_id, force=False):
        return make_video(video_id, self.kind)

    async def fetch_subscriptions(self, force=False):
        if not self.supports_subscriptions:
            raise self._unsupported("subscriptions")
        self.subscription_loads.append(force)
        if self.subscriptions_delay:
            await asyncio.sleep(self.subscriptions_delay)
        if self.fail_subscriptions:
            raise NetworkError("HTTP 500", status_code=500)
        return list(self.subscribed)

    async def subscribe(self, channel_id):
        if self.fail_subscribe:
            raise NetworkError("HTTP 500", status_code=500)
        self.subscribed.append(Channel(id=channel_id, name=channel_id.upper()))

    async def unsubscribe(self, channel_id):
        self.subscribed = [c for c in self.subscribed if c.id != channel_id]


@pytest.fixture
def registry():
    registry = BackendRegistry()
    registry.register(FakeAPI(BackendKind.INVIDIOUS))
    registry.register(FakeAPI(BackendKind.PIPED))
    return registry


@pytest.fixture
def accounts(settings, registry, invidious_instance, invidious_account):
    """Accounts model with a signed-in Invidious account active."""
    model = AccountsModel(settings, registry)
    settings.set(keys.INSTANCES, [invidious_instance.to_dict()])
    settings.set(keys.ACCOUNTS, [invidious_account.to_dict()])
    model.set_current(invidious_account)
    return model


@pytest.fixture
def fake_invidious(registry):
    return registry.get(BackendKind.INVIDIOUS)


@pytest.fixture
def fake_piped(registry):
    return registry.get(BackendKind.PIPED)


@pytest.fixture
def recents(settings):
    return RecentsModel(settings)


@pytest.fixture
def piped_channel():
    return copy.deepcopy(PIPED_CHANNEL)


@pytest.fixture
def invidious_channel():
    return copy.deepcopy(INVIDIOUS_CHANNEL)


@pytest.fixture
def invidious_subscriptions():
    return copy.deepcopy(INVIDIOUS_SUBSCRIPTIONS)
