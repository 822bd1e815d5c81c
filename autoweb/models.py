"""数据模型定义"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

SUCCESS_PREFIX = "SUCCESS"
ERROR_PREFIX = "ERROR"


@dataclass(frozen=True)
class ElementDescriptor:
    """目标元素的符号描述：标识符 + 可选标题"""
    identifier: str  # #id / .class / 标签名 / 任意选择器
    title: str = ""  # 匹配提示，不超过 20 个字符


@dataclass(frozen=True)
class ElementSnapshot:
    """单个页面元素在某一时刻的快照"""
    identifier: str
    title: str
    x: int  # 中心点 x，渲染面 CSS 像素
    y: int  # 中心点 y
    width: int
    height: int
    is_visible: bool
    url: Optional[str] = None

    @property
    def descriptor(self) -> ElementDescriptor:
        return ElementDescriptor(self.identifier, self.title)


@dataclass(frozen=True)
class PageScrollSnapshot:
    """页面滚动信息，分步滑动开始时采集一次作为基准"""
    scroll_top: int = 0
    scroll_left: int = 0
    scroll_width: int = 0
    scroll_height: int = 0
    client_width: int = 0
    client_height: int = 0
    viewport_width: int = 0
    viewport_height: int = 0


@dataclass
class ClickAttemptState:
    """一次点击编排中的重试状态"""
    descriptor: ElementDescriptor
    attempt_count: int = 0
    last_failure: str = ""


class ErrorKind(Enum):
    NOT_FOUND = "not_found"
    INVISIBLE = "invisible"
    QUERY_ERROR = "query_error"
    GESTURE_ERROR = "gesture_error"
    STEP_LIMIT = "step_limit"
    RETRY_LIMIT = "retry_limit"


@dataclass(frozen=True)
class Outcome:
    """
    操作结果。

    内部统一使用该类型，只在对外接口处渲染为 "SUCCESS: ..." / "ERROR: ..."
    字符串，调用方依赖这个前缀判断结果。
    """
    success: bool
    detail: str
    error: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, detail: str) -> "Outcome":
        return cls(True, detail)

    @classmethod
    def fail(cls, error: ErrorKind, detail: str) -> "Outcome":
        return cls(False, detail, error)

    @classmethod
    def from_message(cls, text: Optional[str], error: ErrorKind = ErrorKind.GESTURE_ERROR) -> "Outcome":
        """解析带前缀的结果字符串，非 SUCCESS 开头的一律视为失败"""
        text = text or ""
        if text.startswith(SUCCESS_PREFIX):
            return cls.ok(_strip_prefix(text, SUCCESS_PREFIX))
        if text.startswith(ERROR_PREFIX):
            return cls.fail(error, _strip_prefix(text, ERROR_PREFIX))
        return cls.fail(error, text or "(空结果)")

    def to_message(self) -> str:
        prefix = SUCCESS_PREFIX if self.success else ERROR_PREFIX
        return f"{prefix}: {self.detail}"


@dataclass(frozen=True)
class LocateResult:
    """元素定位结果，找不到或查询出错时 snapshot 为 None"""
    snapshot: Optional[ElementSnapshot]
    error: Optional[ErrorKind] = None
    message: str = ""
    search_method: str = ""
    candidates_found: int = 0

    @property
    def found(self) -> bool:
        return self.snapshot is not None


def _strip_prefix(text: str, prefix: str) -> str:
    rest = text[len(prefix):]
    if rest.startswith(":"):
        rest = rest[1:]
    return rest.strip()


def js_round(value: float) -> int:
    """与 JS Math.round 一致的取整（.5 向正无穷方向）"""
    return math.floor(value + 0.5)


def compute_visibility(
    left: float,
    top: float,
    width: float,
    height: float,
    visibility: str,
    display: str,
    viewport_width: float,
    viewport_height: float,
) -> bool:
    """
    可见性 = 尺寸非零 + 样式未隐藏 + 与视口相交。

    每次查询都要重新计算，滑动之后旧结果不再可信。
    """
    if width <= 0 or height <= 0:
        return False
    if visibility == "hidden" or display == "none":
        return False
    right = left + width
    bottom = top + height
    return not (bottom < 0 or top > viewport_height or right < 0 or left > viewport_width)


def snapshot_from_rect(
    identifier: str,
    title: str,
    rect: dict,
    viewport_width: float,
    viewport_height: float,
    url: Optional[str] = None,
) -> ElementSnapshot:
    """由页面返回的原始几何信息构造快照"""
    left = float(rect.get("left", 0))
    top = float(rect.get("top", 0))
    width = float(rect.get("width", 0))
    height = float(rect.get("height", 0))
    return ElementSnapshot(
        identifier=identifier,
        title=title,
        x=js_round(left + width / 2),
        y=js_round(top + height / 2),
        width=js_round(width),
        height=js_round(height),
        is_visible=compute_visibility(
            left, top, width, height,
            rect.get("visibility", ""), rect.get("display", ""),
            viewport_width, viewport_height,
        ),
        url=url or None,
    )
