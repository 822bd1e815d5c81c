"""对外入口：把定位、滑动、点击、扫描组合成一个会话"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright

from .channel import PageQueryChannel, PlaywrightQueryChannel, parse_payload
from .config import Settings
from .gestures import GestureActuator, PlaywrightGestureActuator
from .inventory import PageInventory
from .locator import ElementLocator
from .models import ElementDescriptor, ElementSnapshot, ErrorKind, Outcome
from .orchestrator import ClickOrchestrator
from .reconciler import LazyLoadWaiter, ViewportReconciler

FIND_LINK_JS = """
(url) => {
    const strip = (href) => href.split('#')[0];
    let target = url;
    try {
        target = strip(new URL(url, document.baseURI).href);
    } catch (e) {}
    for (const a of document.querySelectorAll('a[href]')) {
        if (strip(a.href) === target) {
            return JSON.stringify({
                target,
                link: {
                    selector: 'a[href="' + CSS.escape(a.getAttribute('href')) + '"]',
                    title: a.title || ''
                }
            });
        }
    }
    return JSON.stringify({ target, link: null });
}
"""


class AutoWebSession:
    """
    自动化会话：对外暴露扫描、点击与导航操作。

    点击和导航类操作返回 "SUCCESS: ..." / "ERROR: ..." 字符串，调用方按前缀判断。
    同一时间只应有一个点击编排在进行。
    """

    def __init__(
        self,
        channel: PageQueryChannel,
        actuator: GestureActuator,
        settings: Optional[Settings] = None,
        page: Optional[Page] = None,
    ):
        self.settings = settings or Settings()
        self.page = page
        self.channel = channel
        self.actuator = actuator

        timings = self.settings.timings
        self.locator = ElementLocator(channel)
        self.lazy_load = LazyLoadWaiter(channel, timings)
        self.reconciler = ViewportReconciler(channel, self.locator, actuator, self.lazy_load)
        self.orchestrator = ClickOrchestrator(channel, self.locator, self.reconciler, actuator, timings)
        self.inventory = PageInventory(channel)

    @classmethod
    def for_page(cls, page: Page, settings: Optional[Settings] = None) -> "AutoWebSession":
        settings = settings or Settings()
        actuator = PlaywrightGestureActuator(page, (settings.viewport_width, settings.viewport_height))
        return cls(PlaywrightQueryChannel(page), actuator, settings, page)

    async def scan_elements(self, visible_only: bool = False) -> List[ElementSnapshot]:
        print("[扫描] 开始扫描元素...")
        elements = await self.inventory.list_elements()
        if visible_only:
            elements = [e for e in elements if e.is_visible]
        return elements

    async def scan_urls(self) -> List[str]:
        print("[扫描] 开始扫描 URL...")
        return await self.inventory.list_urls()

    async def click_element(self, target: Union[ElementDescriptor, ElementSnapshot]) -> str:
        outcome = await self.orchestrator.click(target)
        print(f"[点击] 结果: {outcome.to_message()}")
        return outcome.to_message()

    async def click_url(self, url: str) -> str:
        """
        点击页面上指向该 URL 的链接；页面上没有时直接加载。

        相对地址在页面内按 document.baseURI 解析，比较前去掉 #hash。
        """
        try:
            raw = await self.channel.evaluate(FIND_LINK_JS, url)
        except Exception as e:
            raw = f"ERROR: {e}"
        found, error = parse_payload(raw)
        if error or not isinstance(found, dict):
            return Outcome.from_message(error or f"ERROR: 链接查询结果异常: {raw}", ErrorKind.QUERY_ERROR).to_message()

        target = found.get("target") or url
        link = found.get("link")
        if not link:
            print(f"⚠ 页面上没有指向 {target} 的链接，直接加载")
            return await self.load_url(target)
        return await self.click_element(ElementDescriptor(link["selector"], link.get("title") or ""))

    async def tap(self, x: float, y: float) -> str:
        return await self.actuator.tap(x, y)

    async def load_url(self, url: str) -> str:
        if self.page is None:
            return "ERROR: 当前会话没有可导航的页面"
        try:
            await self.page.goto(url)
        except PlaywrightError as e:
            print(f"❌ 加载失败: {e}")
            return f"ERROR: 加载 {url} 失败 - {e}"
        print(f"✓ 已打开页面：{url}")
        return f"SUCCESS: 已加载 {url}"

    async def reload(self) -> str:
        if self.page is None:
            return "ERROR: 当前会话没有可导航的页面"
        try:
            await self.page.reload()
        except PlaywrightError as e:
            print(f"❌ 刷新失败: {e}")
            return f"ERROR: 刷新失败 - {e}"
        return f"SUCCESS: 已刷新 {self.page.url}"


@asynccontextmanager
async def launch_session(
    settings: Optional[Settings] = None,
    url: Optional[str] = None,
) -> AsyncIterator[AutoWebSession]:
    """启动带触摸屏的移动端 Chromium，退出时关闭浏览器"""
    settings = settings or Settings.from_env()
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=settings.headless)
        context = await browser.new_context(
            viewport={"width": settings.viewport_width, "height": settings.viewport_height},
            device_scale_factor=settings.device_scale_factor,
            is_mobile=True,
            has_touch=True,
        )
        page = await context.new_page()
        session = AutoWebSession.for_page(page, settings)
        try:
            await session.load_url(url or settings.start_url)
            yield session
        finally:
            await browser.close()
            print("✓ 浏览器已关闭")
