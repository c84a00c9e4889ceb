"""
Tests for LivePollingController: in-flight guard, live/paused timer,
category switching with stale-response discard, and item selection.
"""

import asyncio

import pytest

from nexus_feed.models.feed import NewsCategory
from nexus_feed.services.aggregator import FeedAggregator
from nexus_feed.services.dispatcher import SourceDispatcher
from nexus_feed.services.poller import LivePollingController, PollState


def _paged_handler(make_item, gate=None, gated_pages=(), gated_categories=()):
    """Three items per (category, page); selected pages/categories wait on `gate`."""

    async def handler(category, page):
        if gate is not None and (page in gated_pages or category in gated_categories):
            await gate.wait()
        return [make_item(f"{category.name.lower()}-{page}-{n}", category) for n in range(3)]

    return handler


@pytest.fixture()
def build_controller(fake_source, make_item):
    controllers = []

    def build(category=NewsCategory.WORLD, live=False, interval=60, **handler_kwargs):
        source = fake_source("search", handler=_paged_handler(make_item, **handler_kwargs))
        aggregator = FeedAggregator(SourceDispatcher(fallback=source))
        controller = LivePollingController(aggregator, category, live=live, interval=interval)
        controllers.append(controller)
        return controller, source

    yield build
    for controller in controllers:
        controller._cancel_timer()


class TestInFlightGuard:
    async def test_second_load_more_is_dropped_while_first_runs(self, build_controller, let_tasks_run):
        gate = asyncio.Event()
        controller, source = build_controller(gate=gate, gated_pages=(2,))
        await controller.request_refresh()

        first = asyncio.create_task(controller.request_load_more())
        await let_tasks_run()
        assert controller.loading_more is True

        assert await controller.request_load_more() is False

        gate.set()
        assert await first is True
        assert source.calls == [(NewsCategory.WORLD, 1), (NewsCategory.WORLD, 2)]
        assert controller.aggregator.snapshot(NewsCategory.WORLD).page == 2
        assert controller.loading_more is False

    async def test_refresh_and_load_more_exclude_each_other(self, build_controller, let_tasks_run):
        gate = asyncio.Event()
        controller, source = build_controller(gate=gate, gated_pages=(1,))

        refresh = asyncio.create_task(controller.request_refresh())
        await let_tasks_run()
        assert controller.loading is True
        assert controller.status().loading is True

        assert await controller.request_load_more() is False
        assert await controller.request_refresh() is False

        gate.set()
        assert await refresh is True
        assert len(source.calls) == 1

    async def test_guard_releases_after_completion(self, build_controller):
        controller, source = build_controller()
        assert await controller.request_refresh() is True
        assert await controller.request_load_more() is True
        assert await controller.request_load_more() is True
        assert [page for _, page in source.calls] == [1, 2, 3]
        assert not controller.is_busy(NewsCategory.WORLD)


class TestLiveAndPaused:
    async def test_live_timer_refreshes_periodically(self, build_controller):
        controller, source = build_controller(live=True, interval=0.01)
        await controller.start()
        await asyncio.sleep(0.1)
        assert len(source.calls) > 1
        await controller.stop()

    async def test_pause_stops_scheduled_refreshes(self, build_controller):
        controller, source = build_controller(live=True, interval=0.01)
        await controller.start()
        await asyncio.sleep(0.05)

        assert controller.set_live(False) is PollState.PAUSED
        calls_at_pause = len(source.calls)
        await asyncio.sleep(0.1)

        assert len(source.calls) == calls_at_pause

    async def test_paused_start_refreshes_once(self, build_controller):
        controller, source = build_controller(live=False, interval=0.01)
        await controller.start()
        await asyncio.sleep(0.05)
        assert len(source.calls) == 1
        assert controller.state is PollState.PAUSED

    async def test_manual_refresh_works_while_paused(self, build_controller):
        controller, source = build_controller(live=False)
        assert await controller.request_refresh() is True
        assert await controller.request_refresh() is True
        assert len(source.calls) == 2

    async def test_toggle_flips_state(self, build_controller):
        controller, _ = build_controller(live=False, interval=60)
        assert controller.toggle_live() is PollState.LIVE
        assert controller.live is True
        assert controller.toggle_live() is PollState.PAUSED
        assert controller.live is False

    async def test_set_live_is_idempotent(self, build_controller):
        controller, _ = build_controller(live=False, interval=60)
        controller.set_live(True)
        timer = controller._timer
        assert timer is not None
        controller.set_live(True)
        assert controller._timer is timer

    async def test_stop_cancels_timer(self, build_controller):
        controller, source = build_controller(live=True, interval=0.01)
        await controller.start()
        await controller.stop()
        calls_at_stop = len(source.calls)
        await asyncio.sleep(0.05)
        assert len(source.calls) == calls_at_stop

    async def test_stop_waits_for_running_scheduled_refresh(self, fake_source, make_item, let_tasks_run):
        gate = asyncio.Event()
        gate.set()

        async def handler(category, page):
            await gate.wait()
            return [make_item("w-1", category)]

        aggregator = FeedAggregator(SourceDispatcher(fallback=fake_source("search", handler=handler)))
        controller = LivePollingController(aggregator, NewsCategory.WORLD, live=True, interval=0.01)
        await controller.start()
        gate.clear()

        for _ in range(50):
            if controller.loading:
                break
            await asyncio.sleep(0.01)
        assert controller.loading is True

        stopping = asyncio.create_task(controller.stop())
        await let_tasks_run()
        assert not stopping.done()

        gate.set()
        await stopping
        assert controller.loading is False
        # Initial refresh plus the scheduled one that was running at stop()
        assert aggregator.snapshot(NewsCategory.WORLD).generation == 2


class TestCategorySwitch:
    async def test_switch_refreshes_even_when_paused(self, build_controller):
        controller, source = build_controller(live=False)
        await controller.select_category(NewsCategory.SPORTS)

        assert controller.category is NewsCategory.SPORTS
        assert source.calls == [(NewsCategory.SPORTS, 1)]
        assert controller.status().category == "Sports"
        assert len(controller.status().snapshot.items) == 3

    async def test_switch_bumps_generation(self, build_controller):
        controller, _ = build_controller()
        before = controller.generation
        await controller.select_category(NewsCategory.TRADFI)
        assert controller.generation == before + 1

    async def test_stale_response_is_discarded(self, build_controller, let_tasks_run):
        gate = asyncio.Event()
        controller, source = build_controller(gate=gate, gated_categories=(NewsCategory.POLITICS,))

        politics = asyncio.create_task(controller.select_category(NewsCategory.POLITICS))
        await let_tasks_run()
        assert controller.is_busy(NewsCategory.POLITICS)

        assert await controller.select_category(NewsCategory.SPORTS) is True
        gate.set()
        assert await politics is True

        assert controller.category is NewsCategory.SPORTS
        assert controller.aggregator.snapshot(NewsCategory.POLITICS).items == []
        assert [i.category for i in controller.status().snapshot.items] == [NewsCategory.SPORTS] * 3
        assert (NewsCategory.POLITICS, 1) in source.calls

    async def test_switch_away_and_back_keeps_running_fetch(self, fake_source, make_item, let_tasks_run):
        gate = asyncio.Event()
        politics_batches = []

        async def handler(category, page):
            if category != NewsCategory.POLITICS:
                return [make_item(f"{category.name.lower()}-{n}", category) for n in range(2)]
            politics_batches.append(page)
            batch = len(politics_batches)
            if batch == 2:
                await gate.wait()
            return [make_item(f"politics-{batch}-{n}", category) for n in range(2)]

        aggregator = FeedAggregator(SourceDispatcher(fallback=fake_source("search", handler=handler)))
        controller = LivePollingController(aggregator, NewsCategory.POLITICS, live=False)
        await controller.request_refresh()

        running = asyncio.create_task(controller.request_refresh())
        await let_tasks_run()
        assert controller.is_busy(NewsCategory.POLITICS)

        await controller.select_category(NewsCategory.SPORTS)
        # Coalesced with the Politics refresh that is still running
        assert await controller.select_category(NewsCategory.POLITICS) is False

        gate.set()
        assert await running is True
        assert [i.id for i in controller.status().snapshot.items] == ["politics-2-0", "politics-2-1"]
        assert len(politics_batches) == 2


class TestSelection:
    async def test_first_item_is_auto_selected_with_map_point(self, fake_source, make_item):
        items = [
            make_item("a", title="Talks in London resume"),
            make_item("b", title="Tokyo markets open"),
        ]
        aggregator = FeedAggregator(SourceDispatcher(fallback=fake_source("search", [items])))
        controller = LivePollingController(aggregator, NewsCategory.WORLD, live=False)

        await controller.request_refresh()

        assert controller.selected_item.id == "a"
        assert controller.map_point.label == "LONDON"
        assert controller.status().selected_item_id == "a"
        assert [p.label for p in controller.status().map_points] == ["LONDON"]

    async def test_select_item_replaces_point(self, fake_source, make_item):
        items = [
            make_item("a", title="Talks in London resume"),
            make_item("b", title="Bakery wins award", summary="A good loaf."),
        ]
        aggregator = FeedAggregator(SourceDispatcher(fallback=fake_source("search", [items])))
        controller = LivePollingController(aggregator, NewsCategory.WORLD, live=False)
        await controller.request_refresh()

        item, point = controller.select_item("b")

        assert item.id == "b"
        assert point is None
        assert controller.map_point is None
        assert controller.status().map_points == []

    async def test_select_unknown_item_raises(self, build_controller):
        controller, _ = build_controller()
        await controller.request_refresh()
        with pytest.raises(KeyError):
            controller.select_item("missing")

    async def test_existing_selection_survives_refresh(self, fake_source, make_item):
        batches = [
            [make_item("a", title="Paris summit"), make_item("b", title="Berlin summit")],
            [make_item("c", title="Madrid summit")],
        ]
        aggregator = FeedAggregator(SourceDispatcher(fallback=fake_source("search", batches)))
        controller = LivePollingController(aggregator, NewsCategory.WORLD, live=False)

        await controller.request_refresh()
        controller.select_item("b")
        await controller.request_refresh()

        assert controller.selected_item.id == "b"
