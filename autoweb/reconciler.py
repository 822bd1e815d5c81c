"""视口调整模块：判断元素是否可见，必要时滑动页面并等待懒加载"""

import asyncio
from typing import List, Union

from . import config
from .channel import PageQueryChannel, parse_payload
from .config import Timings
from .gestures import GestureActuator
from .locator import ElementLocator
from .models import (
    ElementDescriptor,
    ElementSnapshot,
    ErrorKind,
    Outcome,
    PageScrollSnapshot,
)

LOAD_STATUS_JS = """
() => {
    const status = {
        timestamp: Date.now(),
        documentReady: document.readyState === 'complete',
        loadingImages: 0,
        totalElements: document.querySelectorAll('*').length
    };
    for (const img of document.images) {
        if (!img.complete) status.loadingImages++;
    }
    status.lazyElements = document.querySelectorAll(
        '[data-lazy], [loading="lazy"], .lazy, .lazyload'
    ).length;
    return JSON.stringify(status);
}
"""

PAGE_SCROLL_INFO_JS = """
() => JSON.stringify({
    scrollTop: window.pageYOffset || document.documentElement.scrollTop,
    scrollLeft: window.pageXOffset || document.documentElement.scrollLeft,
    scrollWidth: document.documentElement.scrollWidth,
    scrollHeight: document.documentElement.scrollHeight,
    clientWidth: document.documentElement.clientWidth,
    clientHeight: document.documentElement.clientHeight,
    viewportWidth: window.innerWidth,
    viewportHeight: window.innerHeight
})
"""

_SCROLL_FIELDS = {
    "scrollTop": "scroll_top",
    "scrollLeft": "scroll_left",
    "scrollWidth": "scroll_width",
    "scrollHeight": "scroll_height",
    "clientWidth": "client_width",
    "clientHeight": "client_height",
    "viewportWidth": "viewport_width",
    "viewportHeight": "viewport_height",
}


async def fetch_page_scroll_info(channel: PageQueryChannel) -> PageScrollSnapshot:
    """获取页面滚动信息，失败时返回全零的默认值"""
    try:
        raw = await channel.evaluate(PAGE_SCROLL_INFO_JS)
    except Exception as e:
        raw = f"ERROR: {e}"
    payload, error = parse_payload(raw)
    if not isinstance(payload, dict):
        print(f"⚠ 解析页面滚动信息失败: {error or payload}")
        return PageScrollSnapshot()
    try:
        return PageScrollSnapshot(**{
            name: int(payload.get(key) or 0) for key, name in _SCROLL_FIELDS.items()
        })
    except (TypeError, ValueError) as e:
        print(f"⚠ 解析页面滚动信息失败: {e}")
        return PageScrollSnapshot()


class LazyLoadWaiter:
    """
    懒加载等待：初始等待后固定轮询若干次。

    轮询结果只用于诊断输出，不会因为“已加载完”而提前结束。
    """

    def __init__(self, channel: PageQueryChannel, timings: Timings):
        self.channel = channel
        self.timings = timings

    async def wait(self) -> List[str]:
        print("[懒加载] 等待懒加载完成...")
        await asyncio.sleep(self.timings.lazy_load_initial_wait)

        statuses = []
        max_checks = self.timings.lazy_load_max_checks
        for check in range(1, max_checks + 1):
            try:
                status = await self.channel.evaluate(LOAD_STATUS_JS)
            except Exception as e:
                status = f"ERROR: {e}"
            statuses.append(status)
            print(f"[懒加载] 状态检查 {check}/{max_checks}: {status}")
            await asyncio.sleep(self.timings.lazy_load_poll_interval)

        print("[懒加载] 等待完成")
        return statuses


class ViewportReconciler:
    """视口调整：接近视口时精确滑动，较远或找不到时分步/探索性滑动"""

    def __init__(
        self,
        channel: PageQueryChannel,
        locator: ElementLocator,
        actuator: GestureActuator,
        lazy_load: LazyLoadWaiter,
    ):
        self.channel = channel
        self.locator = locator
        self.actuator = actuator
        self.lazy_load = lazy_load

    async def ensure_visible(self, target: Union[ElementSnapshot, ElementDescriptor]) -> Outcome:
        if isinstance(target, ElementDescriptor):
            located = await self.locator.locate(target)
            if not located.found:
                print(f"[滑动] 元素 {target.identifier} 暂未找到，开始分步滑动寻找")
                return await self.stepped_search(target)
            snapshot = located.snapshot
        else:
            snapshot = target

        if snapshot.is_visible:
            return Outcome.ok("元素已在视口内，无需滑动")

        width, height = await self.actuator.surface_size()
        if is_near_viewport(snapshot, width, height):
            print("[滑动] 元素接近视口，使用精确滑动")
            return await self.precise_scroll(snapshot, width, height)

        print("[滑动] 元素距离较远，使用分步滑动")
        return await self.stepped_search(snapshot.descriptor)

    async def precise_scroll(self, snapshot: ElementSnapshot, width: int, height: int) -> Outcome:
        center_x, center_y = width / 2, height / 2
        scroll_x = clamp_precise(snapshot.x - center_x)
        scroll_y = clamp_precise(snapshot.y - center_y)

        if abs(scroll_x) > abs(scroll_y):
            print(f"[滑动] 精确水平滑动: {abs(scroll_x):.0f}px")
            result = await self.actuator.swipe(
                center_x, center_y, center_x - scroll_x, center_y, config.PRECISE_SWIPE_MS)
        elif scroll_y != 0:
            print(f"[滑动] 精确垂直滑动: {abs(scroll_y):.0f}px")
            result = await self.actuator.swipe(
                center_x, center_y, center_x, center_y - scroll_y, config.PRECISE_SWIPE_MS)
        else:
            print("✓ 元素已在合适位置，无需滑动")
            return Outcome.ok("元素位置合适，无需滑动")

        await self.lazy_load.wait()
        return Outcome.ok(f"精确滑动完成 - {result}")

    async def stepped_search(self, descriptor: ElementDescriptor) -> Outcome:
        """分步滑动直到元素进入视口，步数有上限"""
        baseline = await fetch_page_scroll_info(self.channel)
        print(f"[滑动] 初始滚动位置: top={baseline.scroll_top}, left={baseline.scroll_left}, "
              f"页面尺寸 {baseline.scroll_width}x{baseline.scroll_height}")

        ever_found = False
        last_error = ""
        for step in range(config.MAX_SCROLL_STEPS):
            print(f"[滑动] 执行滑动步骤 {step + 1}/{config.MAX_SCROLL_STEPS}")
            located = await self.locator.locate(descriptor)

            if located.found and located.snapshot.is_visible:
                print("✓ 元素已在视口内")
                return Outcome.ok("元素已在视口内，无需继续滑动")

            if located.found:
                ever_found = True
                result = await self.step_scroll(located.snapshot)
            else:
                if located.error is ErrorKind.QUERY_ERROR:
                    last_error = located.message
                result = await self.exploratory_scroll(step)

            if result.startswith("ERROR"):
                print(f"⚠ 滑动失败: {result}")
            await self.lazy_load.wait()

        detail = "达到最大滑动步数，未能找到目标元素"
        if last_error:
            detail = f"{detail} ({last_error})"
        print(f"❌ {detail}")
        return Outcome.fail(ErrorKind.STEP_LIMIT if ever_found else ErrorKind.NOT_FOUND, detail)

    async def step_scroll(self, snapshot: ElementSnapshot) -> str:
        """根据元素相对视口中心的位置计算一次滑动"""
        width, height = await self.actuator.surface_size()
        center_x, center_y = width / 2, height / 2
        delta_x = snapshot.x - center_x
        delta_y = snapshot.y - center_y

        if abs(delta_y) > abs(delta_x):
            distance = clamp_step(delta_y)
            print(f"[滑动] 垂直滑动: 从 {center_y:.0f} 到 {center_y - distance:.0f} (距离 {abs(distance):.0f}px)")
            return await self.actuator.swipe(
                center_x, center_y, center_x, center_y - distance, config.STEP_SWIPE_MS)

        distance = clamp_step(delta_x)
        print(f"[滑动] 水平滑动: 从 {center_x:.0f} 到 {center_x - distance:.0f} (距离 {abs(distance):.0f}px)")
        return await self.actuator.swipe(
            center_x, center_y, center_x - distance, center_y, config.STEP_SWIPE_MS)

    async def exploratory_scroll(self, step: int) -> str:
        """元素不存在时按 下→上→右→左 轮流小距离滑动"""
        width, height = await self.actuator.surface_size()
        center_x, center_y = width / 2, height / 2
        vertical = config.EXPLORE_VERTICAL_DISTANCE
        horizontal = config.EXPLORE_HORIZONTAL_DISTANCE

        direction, end_x, end_y = {
            0: ("向下", center_x, center_y - vertical),
            1: ("向上", center_x, center_y + vertical),
            2: ("向右", center_x - horizontal, center_y),
            3: ("向左", center_x + horizontal, center_y),
        }[step % 4]
        print(f"[滑动] 探索性滑动: {direction}")
        return await self.actuator.swipe(center_x, center_y, end_x, end_y, config.EXPLORE_SWIPE_MS)


def is_near_viewport(snapshot: ElementSnapshot, width: float, height: float) -> bool:
    """元素中心是否在 [-1.5, 2.5] 倍视口范围内"""
    threshold = config.NEAR_VIEWPORT_THRESHOLD
    return (-width * threshold <= snapshot.x <= width * (1 + threshold)
            and -height * threshold <= snapshot.y <= height * (1 + threshold))


def clamp_precise(delta: float) -> float:
    if abs(delta) > config.PRECISE_SCROLL_LIMIT:
        return config.PRECISE_SCROLL_LIMIT if delta > 0 else -config.PRECISE_SCROLL_LIMIT
    if abs(delta) < config.PRECISE_DEAD_ZONE:
        return 0.0
    return delta


def clamp_step(delta: float) -> float:
    distance = min(max(abs(delta), config.MIN_SCROLL_DISTANCE), config.MAX_SCROLL_DISTANCE)
    return distance if delta > 0 else -distance
