"""
设备解析

- DeviceResolver: 把 'booted' / 'all' 等占位符解析为具体 UDID
- PlatformResolver: 根据 deviceTypeIdentifier 判断设备类型（手机/平板、手表、未知）
"""
from __future__ import annotations

import uuid
from typing import Optional

from ...core.constants import DeviceClass, SYMBOLIC_DEVICE_REFS
from ...core.errors import BridgeError, InvalidDeviceRef, NoBootedDevice
from ...core.logger import logger
from .simctl import Simctl


def is_symbolic(ref: str) -> bool:
    return ref in SYMBOLIC_DEVICE_REFS


def validate_device_ref(ref: str) -> None:
    """校验设备标识格式，防止把任意字符串拼进命令行。"""
    if is_symbolic(ref):
        return
    try:
        uuid.UUID(ref)
    except (ValueError, TypeError, AttributeError) as e:
        raise InvalidDeviceRef(str(ref)) from e


def device_type_from_identifier(type_identifier: Optional[str]) -> str:
    """deviceTypeIdentifier -> iPhone / iPad / Watch / Unknown"""
    if not type_identifier:
        return "Unknown"
    if "iPhone" in type_identifier:
        return "iPhone"
    if "iPad" in type_identifier:
        return "iPad"
    if "Watch" in type_identifier:
        return "Watch"
    return "Unknown"


class DeviceResolver:
    def __init__(self, registry: Simctl) -> None:
        self.registry = registry
        self._log = logger.bind(module="DeviceResolver")

    def resolve(self, ref: str) -> str:
        validate_device_ref(ref)
        if not is_symbolic(ref):
            return ref

        for record in self.registry.list_devices():
            if record.is_booted:
                self._log.debug(f"'{ref}' 解析为 {record.identifier} ({record.name})")
                return record.identifier
        raise NoBootedDevice()


class PlatformResolver:
    def __init__(self, registry: Simctl) -> None:
        self.registry = registry
        self._log = logger.bind(module="PlatformResolver")

    def device_type(self, device_id: str) -> str:
        record = self.registry.find(device_id)
        if record is None:
            return "Unknown"
        return device_type_from_identifier(record.type_identifier)

    def detect(self, device_id: str) -> DeviceClass:
        """识别设备类型；查询失败时降级为 UNKNOWN，不阻断执行。"""
        try:
            device_type = self.device_type(device_id)
        except BridgeError as e:
            self._log.warning(f"识别设备类型失败，按未知处理: {e}")
            return DeviceClass.UNKNOWN

        if device_type == "Watch":
            return DeviceClass.WEARABLE
        if device_type in ("iPhone", "iPad"):
            return DeviceClass.PRIMARY
        return DeviceClass.UNKNOWN

    def os_version(self, device_id: str) -> Optional[str]:
        """返回模拟器系统版本（仅用于诊断日志），失败返回 None。"""
        try:
            record = self.registry.find(device_id)
        except BridgeError as e:
            self._log.warning(f"查询模拟器系统版本失败: {e}")
            return None
        if record is None:
            self._log.warning(f"未找到 UDID {device_id} 对应的模拟器")
            return None
        return record.os_version
