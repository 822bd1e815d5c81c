"""点击编排：定位 → 滑动 → 带重试的点击"""

import asyncio
from typing import Union

from . import config
from .channel import PageQueryChannel
from .config import Timings
from .gestures import GestureActuator
from .locator import ElementLocator
from .models import (
    ClickAttemptState,
    ElementDescriptor,
    ElementSnapshot,
    ErrorKind,
    Outcome,
)
from .reconciler import ViewportReconciler

# 页面内直接派发事件序列点击（首个命中的查找方式即停止）
SCRIPT_CLICK_JS = """
(identifier) => {
    try {
        let element = null;
        let searchMethod = '';

        if (identifier && !identifier.startsWith('.') && !identifier.startsWith('#')) {
            element = document.getElementById(identifier);
            if (element) searchMethod = 'getElementById';
        }
        if (!element) {
            try {
                element = document.querySelector(identifier);
                if (element) searchMethod = 'querySelector';
            } catch (e) {}
        }
        if (!element && identifier.startsWith('.')) {
            element = document.getElementsByClassName(identifier.substring(1))[0] || null;
            if (element) searchMethod = 'getElementsByClassName';
        }
        if (!element) {
            for (const selector of [
                '[data-id="' + identifier + '"]',
                '[data-game-id="' + identifier + '"]',
                '[id*="' + identifier + '"]',
                '[class*="' + identifier + '"]'
            ]) {
                try {
                    element = document.querySelector(selector);
                } catch (e) {
                    continue;
                }
                if (element) {
                    searchMethod = 'attribute selector: ' + selector;
                    break;
                }
            }
        }
        if (!element) {
            return 'NOT_FOUND: 未找到标识符为 "' + identifier + '" 的元素，已尝试所有查找方法';
        }

        const rect = element.getBoundingClientRect();
        const style = window.getComputedStyle(element);
        const visible = rect.width > 0 && rect.height > 0 &&
                        style.visibility !== 'hidden' && style.display !== 'none' &&
                        !(rect.bottom < 0 || rect.top > window.innerHeight ||
                          rect.right < 0 || rect.left > window.innerWidth);
        if (!visible) {
            return 'INVISIBLE: 元素不可见 (找到方法: ' + searchMethod + ')';
        }

        const clientX = rect.left + rect.width / 2;
        const clientY = rect.top + rect.height / 2;
        const sequence = [
            ['mouseenter', 0], ['mouseover', 10], ['mousedown', 20],
            ['touchstart', 25], ['touchend', 50], ['mouseup', 60], ['click', 70]
        ];
        for (const [type, delay] of sequence) {
            setTimeout(() => {
                try {
                    let event;
                    if (type.startsWith('touch')) {
                        const touches = type === 'touchend' ? [] : [new Touch({
                            identifier: Date.now(), target: element, clientX, clientY
                        })];
                        event = new TouchEvent(type, { bubbles: true, cancelable: true, touches });
                    } else {
                        event = new MouseEvent(type, {
                            bubbles: true, cancelable: true, view: window, clientX, clientY
                        });
                    }
                    element.dispatchEvent(event);
                } catch (e) {
                    console.log('事件触发失败:', e);
                }
            }, delay);
        }
        setTimeout(() => {
            element.click();
            element.focus();
        }, 100);

        return 'SUCCESS: 通过 ' + searchMethod + ' 找到并点击元素 - ' + element.tagName +
               (element.id ? '#' + element.id : '');
    } catch (e) {
        return 'ERROR: 执行失败 - ' + e.message;
    }
}
"""


class ClickOrchestrator:
    """
    点击编排：把一个元素描述可靠地变成一次成功的点击。

    状态流转：
    - 快照已可见 → 直接点击
    - 定位到且可见 → 点击
    - 定位到但不可见 → 视口调整后点击（调整失败也尝试，位置可能已大致正确）
    - 完全找不到 → 分步/探索性滑动寻找，成功才点击
    - 点击阶段最多重试 MAX_RETRY_ATTEMPTS 次
    """

    def __init__(
        self,
        channel: PageQueryChannel,
        locator: ElementLocator,
        reconciler: ViewportReconciler,
        actuator: GestureActuator,
        timings: Timings,
    ):
        self.channel = channel
        self.locator = locator
        self.reconciler = reconciler
        self.actuator = actuator
        self.timings = timings

    async def click(self, target: Union[ElementDescriptor, ElementSnapshot]) -> Outcome:
        if isinstance(target, ElementSnapshot):
            descriptor = target.descriptor
            if target.is_visible:
                return await self.perform_click_with_retry(descriptor)
        else:
            descriptor = target

        print(f"[点击] 开始分步点击元素: {descriptor.identifier} {descriptor.title!r}")
        located = await self.locator.locate(descriptor)

        if located.found:
            snapshot = located.snapshot
            print(f"[定位] {located.search_method}，候选 {located.candidates_found} 个，"
                  f"位置 ({snapshot.x},{snapshot.y})，可见={snapshot.is_visible}")
            if snapshot.is_visible:
                return await self.perform_click_with_retry(descriptor)

            scrolled = await self.reconciler.ensure_visible(snapshot)
            print(f"[滑动] 智能滑动结果: {scrolled.to_message()}")
            if not scrolled.success and scrolled.error is ErrorKind.NOT_FOUND:
                return Outcome.fail(ErrorKind.NOT_FOUND, f"滑动到元素失败 - {scrolled.detail}")
            return await self.perform_click_with_retry(descriptor)

        print(f"⚠ {located.message}，开始智能滑动寻找")
        searched = await self.reconciler.stepped_search(descriptor)
        if searched.success:
            return await self.perform_click_with_retry(descriptor)
        return Outcome.fail(ErrorKind.NOT_FOUND, f"未能找到目标元素 - {searched.detail}")

    async def perform_click_with_retry(self, descriptor: ElementDescriptor) -> Outcome:
        """每次尝试都重新获取元素最新位置再点击"""
        state = ClickAttemptState(descriptor)

        while state.attempt_count < config.MAX_RETRY_ATTEMPTS:
            print(f"[点击] 尝试点击元素 (第{state.attempt_count + 1}次): {descriptor.identifier}")
            located = await self.locator.locate(descriptor)

            if located.found:
                snapshot = located.snapshot
                tapped = Outcome.from_message(await self.actuator.tap(snapshot.x, snapshot.y))
                if tapped.success:
                    print(f"✓ 点击 {descriptor.identifier} ({snapshot.x},{snapshot.y})")
                    return Outcome.ok(f"分步点击完成 - {tapped.detail}")
                state.last_failure = tapped.to_message()
                print(f"⚠ 点击失败，准备重试: {state.last_failure}")
            else:
                state.last_failure = located.message
                print(f"⚠ 重新定位失败，准备重试: {state.last_failure}")

            state.attempt_count += 1
            if state.attempt_count < config.MAX_RETRY_ATTEMPTS:
                await asyncio.sleep(self.timings.retry_delay)

        print(f"❌ 达到最大重试次数，点击 {descriptor.identifier} 失败")
        return Outcome.fail(
            ErrorKind.RETRY_LIMIT,
            f"达到最大重试次数({config.MAX_RETRY_ATTEMPTS})，点击失败: {state.last_failure}",
        )

    async def click_via_script(self, identifier: str) -> Outcome:
        """不经过手势，直接在页面内派发鼠标/触摸事件并调用 element.click()"""
        try:
            result = await self.channel.evaluate(SCRIPT_CLICK_JS, identifier)
        except Exception as e:
            return Outcome.fail(ErrorKind.QUERY_ERROR, str(e))

        for tag, kind in (("INVISIBLE", ErrorKind.INVISIBLE), ("NOT_FOUND", ErrorKind.NOT_FOUND)):
            if result and result.startswith(tag):
                return Outcome.fail(kind, result.split(":", 1)[-1].strip())
        return Outcome.from_message(result, ErrorKind.QUERY_ERROR)
