"""autoweb 包：网页元素定位、视口调整与模拟点击

包含各个模块：
- models: 数据模型
- channel: 页面查询通道
- gestures: 手势执行
- locator: 定位模块
- reconciler: 视口调整模块
- orchestrator: 点击编排
- inventory: 扫描模块
- core: 对外会话
"""

from .models import (
    ElementDescriptor,
    ElementSnapshot,
    ErrorKind,
    LocateResult,
    Outcome,
    PageScrollSnapshot,
)
from .config import Settings, Timings
from .channel import PageQueryChannel, PlaywrightQueryChannel
from .gestures import GestureActuator, PlaywrightGestureActuator
from .locator import ElementLocator
from .reconciler import LazyLoadWaiter, ViewportReconciler
from .orchestrator import ClickOrchestrator
from .inventory import PageInventory
from .core import AutoWebSession, launch_session

__all__ = [
    "ElementDescriptor",
    "ElementSnapshot",
    "ErrorKind",
    "LocateResult",
    "Outcome",
    "PageScrollSnapshot",
    "Settings",
    "Timings",
    "PageQueryChannel",
    "PlaywrightQueryChannel",
    "GestureActuator",
    "PlaywrightGestureActuator",
    "ElementLocator",
    "LazyLoadWaiter",
    "ViewportReconciler",
    "ClickOrchestrator",
    "PageInventory",
    "AutoWebSession",
    "launch_session",
]
