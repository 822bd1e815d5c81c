"""手势执行：在渲染面上模拟点击和滑动"""

import asyncio
from typing import Optional, Protocol, Tuple

from playwright.async_api import CDPSession, Page
from playwright.async_api import Error as PlaywrightError

SWIPE_STEPS = 20


class GestureActuator(Protocol):
    """按下-移动-抬起序列的执行者，结果沿用 SUCCESS:/ERROR: 约定"""

    async def tap(self, x: float, y: float) -> str:
        ...

    async def swipe(self, start_x: float, start_y: float, end_x: float, end_y: float, duration_ms: int) -> str:
        ...

    async def surface_size(self) -> Tuple[int, int]:
        ...


def ease_in_out_cubic(t: float) -> float:
    """缓动函数：先慢→快→慢"""
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


class PlaywrightGestureActuator:
    """
    Playwright 实现：点击走 page.touchscreen，滑动通过 CDP 逐帧派发触摸事件。

    需要 Chromium 且上下文开启 has_touch。
    """

    def __init__(self, page: Page, fallback_size: Tuple[int, int] = (375, 667)):
        self.page = page
        self._cdp: Optional[CDPSession] = None
        self._last_size = fallback_size

    async def surface_size(self) -> Tuple[int, int]:
        size = self.page.viewport_size
        if size:
            self._last_size = (size["width"], size["height"])
            return self._last_size
        # 未固定 viewport 时以窗口内尺寸为准，查询失败沿用上一次的尺寸
        try:
            dims = await self.page.evaluate("() => [window.innerWidth, window.innerHeight]")
        except PlaywrightError as e:
            print(f"⚠ 获取视口尺寸失败，使用 {self._last_size[0]}x{self._last_size[1]}: {e}")
            return self._last_size
        self._last_size = (int(dims[0]), int(dims[1]))
        return self._last_size

    async def tap(self, x: float, y: float) -> str:
        print(f"[手势] 点击 ({x:.0f},{y:.0f})")
        try:
            await self.page.touchscreen.tap(x, y)
        except PlaywrightError as e:
            return f"ERROR: {e}"
        return f"SUCCESS: 模拟点击 ({x:.0f},{y:.0f})"

    async def swipe(self, start_x: float, start_y: float, end_x: float, end_y: float, duration_ms: int) -> str:
        print(f"[手势] 滑动 ({start_x:.0f},{start_y:.0f}) → ({end_x:.0f},{end_y:.0f}) {duration_ms}ms")
        step_delay = duration_ms / 1000 / SWIPE_STEPS
        try:
            cdp = await self._session()
            await self._touch(cdp, "touchStart", start_x, start_y)
            # 按下之后无论移动是否成功都要抬起
            try:
                for i in range(1, SWIPE_STEPS + 1):
                    eased = ease_in_out_cubic(i / SWIPE_STEPS)
                    await asyncio.sleep(step_delay)
                    await self._touch(
                        cdp, "touchMove",
                        start_x + (end_x - start_x) * eased,
                        start_y + (end_y - start_y) * eased,
                    )
            finally:
                await cdp.send("Input.dispatchTouchEvent", {"type": "touchEnd", "touchPoints": []})
        except PlaywrightError as e:
            return f"ERROR: {e}"
        return f"SUCCESS: 模拟滑动 ({start_x:.0f},{start_y:.0f}) → ({end_x:.0f},{end_y:.0f})"

    async def _session(self) -> CDPSession:
        if self._cdp is None:
            self._cdp = await self.page.context.new_cdp_session(self.page)
        return self._cdp

    @staticmethod
    async def _touch(cdp: CDPSession, event_type: str, x: float, y: float):
        await cdp.send("Input.dispatchTouchEvent", {
            "type": event_type,
            "touchPoints": [{"x": x, "y": y}],
        })
