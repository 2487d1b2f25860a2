"""
异常定义与重试分类

所有对外抛出的错误都继承 BridgeError，str(exc) 即为带处理建议的可读描述。
"""
from __future__ import annotations

import subprocess
from typing import Optional

from .constants import DeviceClass, WEARABLE_MAX_BATCH_SIZE


class BridgeError(RuntimeError):
    """桥接层错误基类"""

    # 是否允许外层重试整条流水线
    retryable = False


# ── 设备相关 ──


class DeviceQueryFailed(BridgeError):
    retryable = True

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"查询模拟器列表失败: {detail}")


class NoBootedDevice(BridgeError):
    def __init__(self) -> None:
        super().__init__(
            "未找到已启动的模拟器。请先执行 `xcrun simctl boot <UDID>` 启动目标模拟器后重试。"
        )


class InvalidDeviceData(BridgeError):
    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        msg = "无法解析模拟器设备数据"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class InvalidDeviceRef(BridgeError, ValueError):
    def __init__(self, ref: str) -> None:
        self.ref = ref
        super().__init__(
            f"无效的设备标识: '{ref}'。必须为 'all'、'booted' 或合法的 UUID。"
        )


# ── 参数校验 ──


class ActionValidationError(BridgeError, ValueError):
    pass


class WatchOSBatchTooLarge(BridgeError, ValueError):
    def __init__(self, requested: int, maximum: int = WEARABLE_MAX_BATCH_SIZE) -> None:
        self.requested = requested
        self.maximum = maximum
        super().__init__(
            f"watchOS 批量动作数 {requested} 超过上限 {maximum}。\n"
            "\n"
            "watchOS 模拟器每个动作约需 8-15 秒，批量过大可能触发 XCUITest 的 600 秒超时。\n"
            "\n"
            "处理建议：\n"
            f"1. 拆分为多个较小的批次（每批最多 {maximum} 个动作）\n"
            "2. 复杂序列改为逐个动作执行\n"
            "3. 合并简单动作（如 click + type 通常可以只用一个 type 动作）\n"
            "\n"
            "示例：8 个动作可拆为两批，每批 4 个。"
        )


# ── 构建 / 执行 ──


class BuildToolError(BridgeError):
    """xcodebuild / xcrun 不可用"""


class TestBuildFailed(BridgeError):
    __test__ = False  # 防止 pytest 按类名收集

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"构建/运行 XCUITest 失败: {detail}")


class ResultFileNotFound(BridgeError):
    retryable = True

    def __init__(self, detail: str, exit_code: Optional[int] = None) -> None:
        self.detail = detail
        self.exit_code = exit_code
        super().__init__(f"未找到 XCUITest 结果文件。{detail}")


class ResultParseError(BridgeError):
    retryable = True

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"无法解析 XCUITest 结果文件 {path}: {detail}")


class OperationTimedOut(BridgeError):
    retryable = True

    def __init__(self, action: str, timeout: float, device_class: DeviceClass) -> None:
        self.action = action
        self.timeout = timeout
        self.device_class = device_class
        if device_class == DeviceClass.WEARABLE:
            text = (
                f"watchOS XCUITest '{action}' 在 {int(timeout)} 秒后超时。\n"
                "\n"
                "watchOS 模拟器每个动作通常需要 8-15 秒（属于正常开销）。处理建议：\n"
                "\n"
                "1. 截图确认模拟器当前状态\n"
                "2. 若无响应：执行 `xcrun simctl shutdown all`\n"
                "3. 使用 watchOS 设备 UDID 重新 `xcrun simctl boot`\n"
                f"4. 多动作序列请使用批量执行（每批最多 {WEARABLE_MAX_BATCH_SIZE} 个动作）\n"
                "\n"
                "若持续超时，请减少每批动作数量。"
            )
        else:
            text = (
                f"XCUITest '{action}' 在 {int(timeout)} 秒后超时。\n"
                "模拟器可能已无响应。处理建议：\n"
                "\n"
                "1. 截图确认模拟器当前状态\n"
                "2. 执行 `xcrun simctl shutdown all` 关闭所有模拟器\n"
                "3. 执行 `xcrun simctl boot <UDID>` 重新启动\n"
                "4. 重试该操作"
            )
        super().__init__(text)


# ── 通道 ──


class ChannelBusy(BridgeError):
    retryable = True

    def __init__(self, lock_path: str, timeout: float) -> None:
        self.lock_path = lock_path
        self.timeout = timeout
        super().__init__(
            f"命令通道被其他进程占用，等待 {timeout:.0f} 秒后仍未释放: {lock_path}"
        )


def is_retryable(exc: BaseException) -> bool:
    """判断错误是否值得重跑整条流水线。

    超时、结果文件缺失/损坏、设备查询失败、通道占用、瞬时 I/O 错误可重试；
    构建失败、参数校验失败等确定性错误直接返回给调用方。
    """
    if isinstance(exc, BridgeError):
        return exc.retryable
    if isinstance(exc, subprocess.TimeoutExpired):
        return True
    if isinstance(exc, (FileNotFoundError, PermissionError)):
        return False
    return isinstance(exc, OSError)
