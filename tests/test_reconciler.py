import pytest

from autoweb import (
    ElementDescriptor,
    ElementLocator,
    ElementSnapshot,
    ErrorKind,
    LazyLoadWaiter,
    ViewportReconciler,
)
from autoweb.config import MAX_SCROLL_DISTANCE, MAX_SCROLL_STEPS, MIN_SCROLL_DISTANCE
from autoweb.reconciler import clamp_precise, clamp_step, fetch_page_scroll_info, is_near_viewport

from .fakes import NO_WAIT, FakeActuator, FakeChannel, FakeNode, FakePage


@pytest.fixture
def world():
    page = FakePage()
    channel = FakeChannel(page)
    actuator = FakeActuator(page)
    locator = ElementLocator(channel)
    reconciler = ViewportReconciler(channel, locator, actuator, LazyLoadWaiter(channel, NO_WAIT))
    return page, actuator, locator, reconciler


async def test_visible_element_needs_no_swipe(world):
    page, actuator, locator, reconciler = world
    page.add(FakeNode(50, 50, id="buy-btn"))

    located = await locator.locate(ElementDescriptor("#buy-btn"))
    outcome = await reconciler.ensure_visible(located.snapshot)

    assert outcome.success
    assert actuator.swipes == []


async def test_visible_descriptor_needs_no_swipe(world):
    page, actuator, _, reconciler = world
    page.add(FakeNode(50, 50, id="buy-btn"))

    outcome = await reconciler.ensure_visible(ElementDescriptor("#buy-btn"))

    assert outcome.success
    assert actuator.swipes == []


async def test_near_element_gets_one_clamped_vertical_swipe(world):
    page, actuator, locator, reconciler = world
    page.add(FakeNode(187, 800, id="coupon"))

    located = await locator.locate(ElementDescriptor("#coupon"))
    outcome = await reconciler.ensure_visible(located.snapshot)

    assert outcome.success
    assert actuator.swipes == [(187.5, 333.5, 187.5, 233.5, 200)]


async def test_near_element_horizontal_swipe(world):
    page, actuator, locator, reconciler = world
    page.add(FakeNode(700, 300, id="tab-more"))

    located = await locator.locate(ElementDescriptor("#tab-more"))
    await reconciler.ensure_visible(located.snapshot)

    assert actuator.swipes == [(187.5, 333.5, 87.5, 333.5, 200)]


async def test_precise_scroll_dead_zone(world):
    page, actuator, locator, reconciler = world
    page.add(FakeNode(200, 350, id="hidden", display="none"))

    located = await locator.locate(ElementDescriptor("#hidden"))
    outcome = await reconciler.ensure_visible(located.snapshot)

    assert outcome.success
    assert "无需滑动" in outcome.detail
    assert actuator.swipes == []


async def test_far_element_stepped_scroll(world):
    page, actuator, locator, reconciler = world
    page.add(FakeNode(50, 2000, id="buy-btn"))

    located = await locator.locate(ElementDescriptor("#buy-btn"))
    assert not is_near_viewport(located.snapshot, 375, 667)

    outcome = await reconciler.ensure_visible(located.snapshot)

    assert outcome.success
    assert len(actuator.swipes) == 5
    for start_x, start_y, end_x, end_y, duration in actuator.swipes:
        assert start_x == end_x
        assert MIN_SCROLL_DISTANCE <= start_y - end_y <= MAX_SCROLL_DISTANCE
        assert duration == 300
    snapshot = (await locator.locate(ElementDescriptor("#buy-btn"))).snapshot
    assert snapshot.is_visible and snapshot.y == 500


async def test_missing_element_explores_in_four_directions(world):
    page, actuator, _, reconciler = world

    outcome = await reconciler.ensure_visible(ElementDescriptor("#ghost"))

    assert not outcome.success
    assert outcome.error is ErrorKind.NOT_FOUND
    assert len(actuator.swipes) == MAX_SCROLL_STEPS
    down, up, right, left = actuator.swipes[:4]
    assert down[3] == 333.5 - 150
    assert up[3] == 333.5 + 150
    assert right[2] == 187.5 - 120
    assert left[2] == 187.5 + 120
    assert {s[4] for s in actuator.swipes} == {250}


async def test_hidden_element_hits_step_limit(world):
    page, actuator, locator, reconciler = world
    page.add(FakeNode(50, 2000, id="sold-out", visibility="hidden"))

    outcome = await reconciler.stepped_search(ElementDescriptor("#sold-out"))

    assert outcome.error is ErrorKind.STEP_LIMIT
    assert len(actuator.swipes) == MAX_SCROLL_STEPS


async def test_query_errors_are_tolerated_during_search(world):
    page, actuator, _, reconciler = world
    page.add(FakeNode(50, 50, id="buy-btn"))
    page.fail_queries = 2

    outcome = await reconciler.stepped_search(ElementDescriptor("#buy-btn"))

    assert outcome.success
    # 两次查询失败各触发一次探索性滑动：先向下再向上，回到原位
    assert len(actuator.swipes) == 2
    assert page.scroll_y == 0


async def test_search_failure_carries_last_query_error(world):
    page, _, _, reconciler = world
    page.fail_queries = MAX_SCROLL_STEPS

    outcome = await reconciler.stepped_search(ElementDescriptor("#buy-btn"))

    assert not outcome.success
    assert "Execution context" in outcome.detail


async def test_lazy_load_wait_always_polls_full_budget():
    page = FakePage()
    waiter = LazyLoadWaiter(FakeChannel(page), NO_WAIT)

    statuses = await waiter.wait()

    assert len(statuses) == NO_WAIT.lazy_load_max_checks == 8
    assert all('"documentReady": true' in s for s in statuses)


async def test_page_scroll_info_baseline():
    page = FakePage()
    page.scroll_y = 120

    info = await fetch_page_scroll_info(FakeChannel(page))

    assert info.scroll_top == 120
    assert info.viewport_height == 667


def test_clamps():
    assert clamp_precise(30) == 0
    assert clamp_precise(-75) == -75
    assert clamp_precise(400) == 100
    assert clamp_precise(-400) == -100
    assert clamp_step(20) == MIN_SCROLL_DISTANCE
    assert clamp_step(-1666.5) == -MAX_SCROLL_DISTANCE
    assert clamp_step(180) == 180


def test_near_viewport_bounds():
    def snap(x, y):
        return ElementSnapshot("#a", "", x, y, 10, 10, False)

    assert is_near_viewport(snap(50, 1667), 375, 667)
    assert not is_near_viewport(snap(50, 1668), 375, 667)
    assert is_near_viewport(snap(-562, 50), 375, 667)
    assert not is_near_viewport(snap(-563, 50), 375, 667)
