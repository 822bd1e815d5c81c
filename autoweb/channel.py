"""页面查询通道：在当前文档上执行脚本并返回文本结果"""

import json
from typing import Any, Optional, Protocol, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page


class PageQueryChannel(Protocol):
    """
    对页面执行一次查询，返回 JSON 文本或以 "ERROR:" 开头的字符串。

    每次调用都针对当前文档状态，核心逻辑只依赖这一个方法。
    """

    async def evaluate(self, script: str, arg: Optional[Any] = None) -> str:
        ...


class PlaywrightQueryChannel:
    """基于 Playwright Page.evaluate 的查询通道"""

    def __init__(self, page: Page):
        self.page = page

    async def evaluate(self, script: str, arg: Optional[Any] = None) -> str:
        try:
            result = await self.page.evaluate(script, arg)
        except PlaywrightError as e:
            return f"ERROR: {e}"

        if result is None:
            return "ERROR: 脚本无返回值"
        if isinstance(result, str):
            return result
        return json.dumps(result, ensure_ascii=False)


def is_error(result: Optional[str]) -> bool:
    return result is None or result.startswith("ERROR")


def parse_payload(result: Optional[str]) -> Tuple[Optional[Any], str]:
    """
    解析查询结果。

    返回 (数据, 错误信息)；出错时数据为 None，错误信息保留 "ERROR:" 前缀。
    """
    if is_error(result):
        return None, result or "ERROR: 空结果"
    try:
        return json.loads(result), ""
    except (json.JSONDecodeError, TypeError) as e:
        return None, f"ERROR: 结果解析失败: {e}"
