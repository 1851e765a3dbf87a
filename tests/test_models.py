"""Tests for the core data models."""

import pytest

from omnitube.models import (
    Account, BackendKind, Channel, ContentItem, ContentType, Instance, PlayerQueueItem,
    Resolution, SearchDate, SearchQuery, SortOrder, Stream, StreamKind, ThumbnailQuality,
    Video, category_description,
)


class TestResolution:

    @pytest.mark.parametrize("label,expected", [
        ("720p60", Resolution.HD720P60),
        ("1080p", Resolution.HD1080P30),
        ("1440p50", Resolution.HD1440P60),
        ("480p60", Resolution.SD480P30),
        ("144p", Resolution.SD144P30),
        ("360p HDR", Resolution.SD360P30),
        ("4320p", Resolution.UNKNOWN),
        ("hd", Resolution.UNKNOWN),
        ("", Resolution.UNKNOWN),
        (None, Resolution.UNKNOWN),
        (720, Resolution.UNKNOWN),
        (["720p"], Resolution.UNKNOWN),
    ])
    def test_from_label(self, label, expected):
        assert Resolution.from_label(label) == expected

    def test_ordering(self):
        resolutions = [Resolution.SD360P30, Resolution.HD1080P60, Resolution.HD1080P30, Resolution.UNKNOWN]
        assert sorted(resolutions) == [
            Resolution.UNKNOWN, Resolution.SD360P30, Resolution.HD1080P30, Resolution.HD1080P60,
        ]
        assert max(resolutions) == Resolution.HD1080P60

    def test_height_and_fps(self):
        assert Resolution.HD720P60.height == 720
        assert Resolution.HD720P60.fps == 60
        assert Resolution.UNKNOWN.height == 0


class TestStream:

    def test_adaptive_requires_both_urls(self):
        with pytest.raises(ValueError):
            Stream.adaptive("", "https://v", Resolution.HD720P30)
        with pytest.raises(ValueError):
            Stream.adaptive("https://a", "", Resolution.HD720P30)

    def test_hls_requires_url(self):
        with pytest.raises(ValueError):
            Stream.hls("")

    def test_url_and_description(self):
        hls = Stream.hls("https://m.m3u8")
        single = Stream.single("https://v.mp4", Resolution.SD360P30)
        assert hls.url == "https://m.m3u8"
        assert hls.description == "HLS"
        assert single.url == "https://v.mp4"
        assert single.description == "360p30 (stream)"


class TestVideo:

    def _video(self, streams):
        return Video(
            backend=BackendKind.PIPED,
            video_id="abc",
            title="Title",
            author="Author",
            channel=Channel(id="UC1", name="Author"),
            streams=streams,
        )

    def test_id_combines_backend_and_video_id(self):
        assert self._video([]).id == "piped:abc"

    def test_best_stream_prefers_resolution_then_adaptive(self):
        adaptive = Stream.adaptive("https://a", "https://v720", Resolution.HD720P30)
        single = Stream.single("https://s720", Resolution.HD720P30)
        low = Stream.adaptive("https://a", "https://v360", Resolution.SD360P30)
        hls = Stream.hls("https://m.m3u8")
        assert self._video([hls, low, single, adaptive]).best_stream == adaptive

    def test_best_stream_falls_back_to_hls(self):
        hls = Stream.hls("https://m.m3u8")
        assert self._video([hls]).best_stream == hls
        assert self._video([]).best_stream is None

    def test_streams_for(self):
        hls = Stream.hls("https://m.m3u8")
        single = Stream.single("https://s", Resolution.SD360P30)
        assert self._video([hls, single]).streams_for(StreamKind.HLS) == [hls]


class TestInstancesAndAccounts:

    def test_invidious_api_url(self):
        instance = Instance(id="i", backend=BackendKind.INVIDIOUS, name="x", url="https://inv.example/")
        assert instance.api_url == "https://inv.example/api/v1"

    def test_piped_api_url(self):
        instance = Instance(id="p", backend=BackendKind.PIPED, name="x", url="https://pipedapi.example")
        assert instance.api_url == "https://pipedapi.example"

    def test_instance_dict_roundtrip(self, piped_instance):
        assert Instance.from_dict(piped_instance.to_dict()) == piped_instance

    def test_anonymous_account(self, piped_instance):
        account = Account.anonymous_for(piped_instance)
        assert account.anonymous
        assert account.id == "anonymous-piped1"
        assert account.backend == BackendKind.PIPED

    def test_account_with_sid_is_signed_in(self, invidious_account):
        assert not invidious_account.anonymous
        restored = Account.from_dict(invidious_account.to_dict(), invidious_account.instance)
        assert restored == invidious_account


class TestSearchQuery:

    def test_is_empty(self):
        assert SearchQuery().is_empty
        assert SearchQuery(query="   ").is_empty
        assert not SearchQuery(query="cats").is_empty

    def test_favorite_id(self):
        query = SearchQuery(query="cats", sort_by=SortOrder.DATE, date=SearchDate.WEEK)
        assert query.favorite_id == "search-cats-date-week-any"

    def test_sort_parameter(self):
        assert SortOrder.DATE.parameter == "upload_date"
        assert SortOrder.VIEWS.parameter == "view_count"


def test_thumbnail_filenames():
    assert ThumbnailQuality.HIGH.filename == "hqdefault"
    assert ThumbnailQuality.MEDIUM.filename == "mqdefault"
    assert ThumbnailQuality.MAXRESDEFAULT.filename == "maxresdefault"
    assert ThumbnailQuality.MIDDLE.filename == "2"


def test_content_item_title():
    channel = Channel(id="UC1", name="Channel name")
    item = ContentItem.of_channel(channel)
    assert item.content_type == ContentType.CHANNEL
    assert item.title == "Channel name"


def test_category_description():
    assert category_description("sponsor") == "Sponsor"
    assert category_description("selfpromo") == "Self-promotion"
    assert category_description("music_offtopic") == "Offtopic in Music Videos"
    assert category_description("unknown") is None


class TestPlayerQueueItem:

    def test_restart_when_little_time_remains(self):
        assert PlayerQueueItem(video_id="v", playback_time=90, video_duration=100).should_restart_playing
        assert PlayerQueueItem(video_id="v", playback_time=95, video_duration=100).should_restart_playing

    def test_resume_otherwise(self):
        assert not PlayerQueueItem(video_id="v", playback_time=89, video_duration=100).should_restart_playing
        assert not PlayerQueueItem(video_id="v", video_duration=100).should_restart_playing

    def test_duration_falls_back_to_video(self):
        video = Video(
            backend=BackendKind.INVIDIOUS, video_id="v", title="t", author="a",
            channel=Channel(id="c", name="a"), length=300,
        )
        item = PlayerQueueItem(video_id="v", video=video, playback_time=100)
        assert item.duration == 300
        assert not item.should_restart_playing

    def test_dict_roundtrip(self):
        item = PlayerQueueItem(video_id="v", playback_time=12.5, video_duration=100)
        assert PlayerQueueItem.from_dict(item.to_dict()) == item
