"""全局配置：环境变量 + 算法常量"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# 加载 .env 文件中的环境变量
load_dotenv()

# ──────────────────────────────────────────────
# 点击重试
# ──────────────────────────────────────────────
MAX_RETRY_ATTEMPTS = 5

# ──────────────────────────────────────────────
# 滑动与懒加载
# ──────────────────────────────────────────────
MAX_SCROLL_STEPS = 15          # 分步滑动最大步数
MIN_SCROLL_DISTANCE = 100.0    # 分步滑动最小距离（像素）
MAX_SCROLL_DISTANCE = 300.0    # 分步滑动最大距离（像素）

NEAR_VIEWPORT_THRESHOLD = 1.5  # 1.5 倍视口范围内视为“接近”
PRECISE_SCROLL_LIMIT = 100.0   # 精确滑动单次上限
PRECISE_DEAD_ZONE = 50.0       # 小于该距离不滑动，避免抖动

EXPLORE_VERTICAL_DISTANCE = MIN_SCROLL_DISTANCE * 1.5    # 150px
EXPLORE_HORIZONTAL_DISTANCE = MIN_SCROLL_DISTANCE * 1.2  # 120px

PRECISE_SWIPE_MS = 200
STEP_SWIPE_MS = 300
EXPLORE_SWIPE_MS = 250

TITLE_MAX_LENGTH = 20


@dataclass(frozen=True)
class Timings:
    """所有等待时间（秒），测试时可整体置零"""
    retry_delay: float = 0.5
    lazy_load_initial_wait: float = 0.5
    lazy_load_poll_interval: float = 0.2
    lazy_load_max_checks: int = 8


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """浏览器与设备模拟配置"""
    start_url: str = "about:blank"
    headless: bool = True
    viewport_width: int = 375
    viewport_height: int = 667
    device_scale_factor: float = 2.0
    timings: Timings = field(default_factory=Timings)

    @classmethod
    def from_env(cls) -> "Settings":
        """从环境变量读取配置，未设置的项使用默认值"""
        return cls(
            start_url=os.environ.get("AUTOWEB_START_URL", "about:blank"),
            headless=_env_bool("AUTOWEB_HEADLESS", True),
            viewport_width=int(os.environ.get("AUTOWEB_VIEWPORT_WIDTH", "375")),
            viewport_height=int(os.environ.get("AUTOWEB_VIEWPORT_HEIGHT", "667")),
            device_scale_factor=float(os.environ.get("AUTOWEB_DEVICE_SCALE_FACTOR", "2")),
        )
