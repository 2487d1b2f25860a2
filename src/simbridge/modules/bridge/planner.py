"""
批量规划：在写入通道之前拦截手表上过大的批量
"""
from __future__ import annotations

from typing import Optional

from ...core.config import settings
from ...core.constants import DeviceClass, WEARABLE_MAX_BATCH_SIZE
from ...core.errors import WatchOSBatchTooLarge
from .types import Transaction


class BatchPlanner:
    def __init__(self, enforce_wearable_limit: Optional[bool] = None, max_wearable_batch: int = WEARABLE_MAX_BATCH_SIZE) -> None:
        if enforce_wearable_limit is None:
            enforce_wearable_limit = settings.bridge_optimizations_enabled
        self.enforce_wearable_limit = enforce_wearable_limit
        self.max_wearable_batch = max_wearable_batch

    def plan(self, transaction: Transaction, device_class: DeviceClass) -> Transaction:
        if (
            self.enforce_wearable_limit
            and transaction.is_batch
            and device_class == DeviceClass.WEARABLE
            and len(transaction.actions) > self.max_wearable_batch
        ):
            raise WatchOSBatchTooLarge(len(transaction.actions), self.max_wearable_batch)
        return transaction
