"""Tests for search orchestration, debouncing and recents."""

import asyncio

import pytest
import respx
from httpx import Response

from omnitube import settings as keys
from omnitube.accounts import AccountsModel
from omnitube.backends import create_registry
from omnitube.models import Account, BackendKind, SearchDate, SearchDuration, SortOrder
from omnitube.search import Debounce, RecentsModel, SearchModel, SearchState


SUGGESTIONS_DELAY = 0.01
QUERY_DELAY = 0.05


@pytest.fixture
def search(accounts, recents):
    return SearchModel(accounts, recents, suggestions_delay=SUGGESTIONS_DELAY, query_delay=QUERY_DELAY)


class TestDebounce:

    @pytest.mark.asyncio()
    async def test_only_last_action_runs(self):
        debounce = Debounce(0.02)
        calls = []

        debounce.debouncing(lambda: calls.append(1))
        debounce.debouncing(lambda: calls.append(2))
        debounce.debouncing(lambda: calls.append(3))
        assert debounce.pending
        await asyncio.sleep(0.05)

        assert calls == [3]
        assert not debounce.pending

    @pytest.mark.asyncio()
    async def test_invalidate_cancels(self):
        debounce = Debounce(0.02)
        calls = []

        debounce.debouncing(lambda: calls.append(1))
        debounce.invalidate()
        await asyncio.sleep(0.05)

        assert calls == []

    @pytest.mark.asyncio()
    async def test_awaits_coroutine_actions(self):
        debounce = Debounce(0.01)
        calls = []

        async def action():
            await asyncio.sleep(0)
            calls.append("done")

        debounce.debouncing(action)
        await asyncio.sleep(0.05)

        assert calls == ["done"]


class TestTyping:

    @pytest.mark.asyncio()
    async def test_rapid_changes_then_submit_update_query_once(self, search, fake_invidious, recents):
        updates = []
        search.query.subscribe(updates.append)

        search.set_query_text("g")
        search.set_query_text("go")
        search.set_query_text("goo")
        search.submit()
        await asyncio.sleep(QUERY_DELAY * 2)
        await search.settle()

        assert [q.query for q in updates] == ["goo"]
        assert [q.query for q in fake_invidious.search_calls] == ["goo"]
        assert search.state.value == SearchState.SUBMITTED
        assert recents.queries.value == ["goo"]

    @pytest.mark.asyncio()
    async def test_suggestions_follow_last_text(self, search, fake_invidious):
        search.set_query_text("c")
        search.set_query_text("ca")
        await asyncio.sleep(SUGGESTIONS_DELAY * 3)

        assert fake_invidious.suggestion_calls == ["ca"]
        assert search.suggestions.value == ["ca suggestion"]

    @pytest.mark.asyncio()
    async def test_live_query_after_quiet_period(self, search, fake_invidious):
        search.set_query_text("cats")
        assert search.state.value == SearchState.EDITING
        await asyncio.sleep(QUERY_DELAY * 2)
        await search.settle()

        assert search.query.value.query == "cats"
        assert [i.title for i in search.items.value] == ["cats"]

    @pytest.mark.asyncio()
    async def test_no_live_query_without_search_filters(self, search, accounts, piped_account, fake_piped):
        accounts.set_current(piped_account)

        search.set_query_text("cats")
        await asyncio.sleep(QUERY_DELAY * 2)
        assert fake_piped.search_calls == []

        search.submit()
        await search.settle()
        assert [q.query for q in fake_piped.search_calls] == ["cats"]

    @pytest.mark.asyncio()
    async def test_clearing_text_resets_query(self, search, fake_invidious):
        search.submit("cats")
        await search.settle()

        search.set_query_text("")
        await asyncio.sleep(QUERY_DELAY * 2)

        assert search.query.value.is_empty
        assert search.items.value == []
        assert search.favorite_item.value is None
        assert search.state.value == SearchState.IDLE
        assert len(fake_invidious.search_calls) == 1


class TestResults:

    @pytest.mark.asyncio()
    async def test_favorite_item_matches_query(self, search):
        search.submit("cats")
        search.set_sort_order(SortOrder.DATE)
        await search.settle()

        assert search.favorite_item.value.id == "search-cats-date-any-any"
        assert search.favorite_item.value.query == search.query.value

    @pytest.mark.asyncio()
    async def test_filters(self, search, fake_invidious):
        search.submit("cats")
        search.set_sort_order(SortOrder.VIEWS)
        assert not search.filters_active

        search.set_date(SearchDate.WEEK)
        search.set_duration(SearchDuration.SHORT)
        assert search.filters_active
        await search.settle()

        last = fake_invidious.search_calls[-1]
        assert (last.sort_by, last.date, last.duration) == (SortOrder.VIEWS, SearchDate.WEEK, SearchDuration.SHORT)

        search.reset_filters()
        assert not search.filters_active
        assert search.query.value.sort_by == SortOrder.RELEVANCE

    @pytest.mark.asyncio()
    async def test_superseded_results_are_discarded(self, search, fake_invidious):
        fake_invidious.search_delay = 0.03

        search.submit("first")
        search.submit("second")
        await asyncio.sleep(0.06)
        await search.settle()

        assert [i.title for i in search.items.value] == ["second"]

    @pytest.mark.asyncio()
    async def test_results_from_previous_account_are_discarded(self, search, accounts, fake_invidious, invidious_instance):
        fake_invidious.search_delay = 0.03

        search.submit("cats")
        accounts.set_current(Account(id="acc2", instance=invidious_instance, name="bob", sid="x"))
        await search.settle()

        assert search.items.value == []
        assert not search.is_loading.value
        assert search.no_results

    @pytest.mark.asyncio()
    async def test_unexpected_failure_resets_to_empty(self, search, fake_invidious):
        fake_invidious.search_error = TypeError("bad payload")

        search.submit("cats")
        await search.settle()

        assert search.items.value == []
        assert not search.is_loading.value
        assert search.no_results

    @pytest.mark.asyncio()
    async def test_empty_result_is_no_results(self, search, fake_invidious):
        fake_invidious.empty_queries.add("zzz")

        search.submit("zzz")
        assert search.is_loading.value
        await search.settle()

        assert search.no_results
        assert not search.is_loading.value


@pytest.mark.asyncio()
@respx.mock
async def test_is_google_evil_search_hits_backend_once(settings, invidious_instance, invidious_account):
    route = respx.get(host="invidious.example", path="/api/v1/search").mock(return_value=Response(200, json=[]))
    settings.set(keys.INSTANCES, [invidious_instance.to_dict()])
    accounts = AccountsModel(settings, create_registry())
    accounts.set_current(invidious_account)
    search = SearchModel(accounts, RecentsModel(settings), suggestions_delay=SUGGESTIONS_DELAY, query_delay=QUERY_DELAY)

    search.submit("Is Google Evil")
    await search.settle()

    assert route.call_count == 1
    params = route.calls.last.request.url.params
    assert params["q"] == "Is Google Evil"
    assert params["sort_by"] == "relevance"
    assert "date" not in params and "duration" not in params
    assert search.no_results
    assert accounts.app == BackendKind.INVIDIOUS
    await accounts.registry.aclose()


@pytest.mark.asyncio()
@respx.mock
async def test_malformed_piped_items_are_dropped_from_search(settings, piped_instance, piped_account, piped_search):
    piped_search["items"].append({"url": 12})
    respx.get(host="pipedapi.example", path="/search").mock(return_value=Response(200, json=piped_search))
    settings.set(keys.INSTANCES, [piped_instance.to_dict()])
    accounts = AccountsModel(settings, create_registry())
    accounts.set_current(piped_account)
    search = SearchModel(accounts, RecentsModel(settings), suggestions_delay=SUGGESTIONS_DELAY, query_delay=QUERY_DELAY)

    search.submit("cats")
    await search.settle()

    assert search.items.value
    assert not search.is_loading.value
    await accounts.registry.aclose()

class TestRecents:

    def test_newest_first_without_duplicates(self, settings):
        recents = RecentsModel(settings)
        recents.add_query("cats")
        recents.add_query("dogs")
        recents.add_query("cats")
        recents.add_query("   ")

        assert recents.queries.value == ["cats", "dogs"]
        assert RecentsModel(settings).queries.value == ["cats", "dogs"]

    def test_limit(self, settings):
        recents = RecentsModel(settings, limit=2)
        for text in ("a", "b", "c"):
            recents.add_query(text)
        assert recents.queries.value == ["c", "b"]

    def test_remove_and_clear(self, settings):
        recents = RecentsModel(settings)
        recents.add_query("a")
        recents.add_query("b")

        recents.remove("a")
        assert recents.queries.value == ["b"]

        recents.clear()
        assert recents.queries.value == []
