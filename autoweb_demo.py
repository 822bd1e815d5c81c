"""
AutoWeb 演示脚本 - 基于 Playwright 的移动端网页元素定位与模拟点击

流程：
  1. 扫描元素 - scan_elements()
     列出页面上带 id/class 的元素及其可见性。
  2. 扫描 URL - scan_urls()
     汇总链接、资源、meta 等处出现的所有地址。
  3. 点击元素 - click_element(descriptor)
     定位 → 必要时滑动到视口 → 带重试的模拟点击。

依赖安装：
    pip install -e .
    playwright install chromium

运行示例：
    python autoweb_demo.py https://example.com "#buy-btn" [标题]
"""

import asyncio
import sys
from typing import Optional

from autoweb import ElementDescriptor, Settings, launch_session

# 列表最多显示的条数
MAX_LISTED = 30


async def run_demo(url: str, identifier: Optional[str], title: str = "") -> None:
    settings = Settings.from_env()

    print(f"\n{'='*60}")
    print(f"[Demo] 起始地址：{url}")
    print(f"[Demo] 视口：{settings.viewport_width}x{settings.viewport_height}")
    print(f"{'='*60}\n")

    async with launch_session(settings, url) as session:
        elements = await session.scan_elements(visible_only=True)
        for snap in elements[:MAX_LISTED]:
            title_str = f" \"{snap.title}\"" if snap.title else ""
            print(f"  {snap.identifier}{title_str} @ ({snap.x},{snap.y}) {snap.width}x{snap.height}")

        urls = await session.scan_urls()
        for link in urls[:MAX_LISTED]:
            print(f"  {link}")

        if identifier:
            result = await session.click_element(ElementDescriptor(identifier, title))
            print(f"\n[Demo] {result}")
            await asyncio.sleep(2)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("用法: python autoweb_demo.py <url> [identifier] [title]")
        sys.exit(1)

    args = sys.argv[1:] + [None, ""]
    asyncio.run(run_demo(args[0], args[1], args[2] or ""))
