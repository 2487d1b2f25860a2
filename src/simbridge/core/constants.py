"""
常量和枚举定义
"""
from enum import Enum


class ActionKind(str, Enum):
    """UI 动作类型"""
    CLICK = "click"
    TYPE = "type"
    SWIPE = "swipe"
    QUERY = "query"


class DeviceClass(str, Enum):
    """模拟器设备类型"""
    PRIMARY = "primary"  # iPhone / iPad
    WEARABLE = "wearable"  # Apple Watch
    UNKNOWN = "unknown"  # 无法识别，按 PRIMARY 处理


class OutcomeStatus(str, Enum):
    """xcodebuild 调用结果"""
    OK = "ok"
    ENV_MISMATCH = "env_mismatch"  # xctestrun 与模拟器 SDK 不一致
    FAILED = "failed"


# 设备引用占位符
DEVICE_REF_BOOTED = "booted"  # 任意已启动的模拟器
DEVICE_REF_ALL = "all"
SYMBOLIC_DEVICE_REFS = (DEVICE_REF_BOOTED, DEVICE_REF_ALL)

# simctl 设备状态
DEVICE_STATE_BOOTED = "Booted"

# 滑动方向
SWIPE_DIRECTIONS = ("up", "down", "left", "right")

# harness 内元素等待时间（秒）
DEFAULT_ELEMENT_TIMEOUT = 10
DEFAULT_QUERY_ELEMENT_TIMEOUT = 15
DEFAULT_QUERY_DEPTH = 3

# xcodebuild test-without-building 在 SDK 不匹配时的退出码
ENV_MISMATCH_EXIT_CODE = 70

# 手表批量动作上限（约 30s/动作 + 60s 启动，需远低于 XCUITest 600s 上限）
WEARABLE_MAX_BATCH_SIZE = 5

# 诊断输出截断长度
OUTPUT_LOG_LIMIT = 2000
BUILD_ERROR_LOG_LIMIT = 500
