"""
设备类型对应的 xcodebuild 参数

每种 DeviceClass 对应一组 destination / xctestrun 文件名特征 / harness 测试目标 / scheme。
UNKNOWN 与 PRIMARY 共用同一组参数。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...core.config import Settings, settings
from ...core.constants import DeviceClass


@dataclass(frozen=True)
class PlatformProfile:
    device_class: DeviceClass
    destination: str
    artifact_pattern: str
    test_target: str
    scheme: str

    def destination_arg(self, device_id: str) -> str:
        return f"platform={self.destination},id={device_id}"


def profile_for(device_class: DeviceClass, cfg: Optional[Settings] = None) -> PlatformProfile:
    cfg = cfg or settings
    if device_class == DeviceClass.WEARABLE:
        return PlatformProfile(
            device_class=device_class,
            destination="watchOS Simulator",
            artifact_pattern="watchsimulator",
            test_target=cfg.bridge_wearable_test_target,
            scheme=cfg.bridge_wearable_scheme,
        )
    return PlatformProfile(
        device_class=device_class,
        destination="iOS Simulator",
        artifact_pattern="iphonesimulator",
        test_target=cfg.bridge_primary_test_target,
        scheme=cfg.bridge_primary_scheme,
    )
