"""
超时策略

手表模拟器明显更慢，所有超时乘以 1.5。
"""
from __future__ import annotations

from typing import Optional

from ...core.config import settings
from ...core.constants import ActionKind, DeviceClass

# 单动作超时（秒）
ACTION_TIMEOUTS = {
    ActionKind.CLICK: 60.0,
    ActionKind.TYPE: 75.0,
    ActionKind.QUERY: 90.0,
    ActionKind.SWIPE: 60.0,
}
DEFAULT_ACTION_TIMEOUT = 90.0

# 关闭优化时的旧超时
LEGACY_TIMEOUT = 90.0
LEGACY_QUERY_TIMEOUT = 120.0

# 批量：xcodebuild 启动开销 + 每动作耗时
BATCH_STARTUP_OVERHEAD = 60.0
BATCH_PER_ACTION = 30.0

WEARABLE_MULTIPLIER = 1.5

# 从零 build-for-testing 需要 3-5 分钟
MIN_REBUILD_TIMEOUT = 300.0


class TimeoutPolicy:
    def __init__(self, per_kind_enabled: Optional[bool] = None) -> None:
        if per_kind_enabled is None:
            per_kind_enabled = settings.bridge_optimizations_enabled
        self.per_kind_enabled = per_kind_enabled

    @staticmethod
    def _scale(base: float, device_class: DeviceClass) -> float:
        return base * WEARABLE_MULTIPLIER if device_class == DeviceClass.WEARABLE else base

    def for_action(self, kind, device_class: DeviceClass) -> float:
        if self.per_kind_enabled:
            base = ACTION_TIMEOUTS.get(kind, DEFAULT_ACTION_TIMEOUT)
        else:
            base = LEGACY_QUERY_TIMEOUT if kind == ActionKind.QUERY else LEGACY_TIMEOUT
        return self._scale(base, device_class)

    def for_batch(self, action_count: int, device_class: DeviceClass) -> float:
        return self._scale(BATCH_STARTUP_OVERHEAD + BATCH_PER_ACTION * action_count, device_class)

    def for_transaction(self, transaction, device_class: DeviceClass) -> float:
        if transaction.is_batch:
            return self.for_batch(len(transaction.actions), device_class)
        return self.for_action(transaction.actions[0].kind, device_class)

    @staticmethod
    def for_rebuild(run_timeout: float) -> float:
        return max(MIN_REBUILD_TIMEOUT, run_timeout * 2)
