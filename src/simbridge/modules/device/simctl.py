"""
simctl 设备注册表封装

基于 xcrun simctl，提供基础查询：
- list_devices() -> [DeviceRecord]
- find(udid) -> DeviceRecord | None
"""
from __future__ import annotations

import json
import re
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from ...core.constants import DEVICE_STATE_BOOTED
from ...core.errors import BuildToolError, DeviceQueryFailed, InvalidDeviceData

_RUNTIME_VERSION_RE = re.compile(r"(?:iOS|watchOS)-(\d+)-(\d+)")


@dataclass(frozen=True)
class DeviceRecord:
    identifier: str
    state: str
    type_identifier: str = ""
    name: str = ""
    runtime: str = ""

    @property
    def is_booted(self) -> bool:
        return self.state == DEVICE_STATE_BOOTED

    @property
    def os_version(self) -> Optional[str]:
        """从 runtime 标识解析系统版本，如 'com.apple.CoreSimulator.SimRuntime.iOS-18-2' -> '18.2'"""
        m = _RUNTIME_VERSION_RE.search(self.runtime)
        if not m:
            return None
        return f"{m.group(1)}.{m.group(2)}"


def parse_device_list(raw: str) -> List[DeviceRecord]:
    """解析 `simctl list devices -j` 输出，保持 simctl 的枚举顺序。"""
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise InvalidDeviceData(str(e)) from e

    devices = data.get("devices") if isinstance(data, dict) else None
    if not isinstance(devices, dict):
        raise InvalidDeviceData("缺少 devices 字段")

    records: List[DeviceRecord] = []
    for runtime, device_list in devices.items():
        if not isinstance(device_list, list):
            raise InvalidDeviceData(f"runtime {runtime} 的设备列表格式错误")
        for item in device_list:
            if not isinstance(item, dict):
                continue
            udid = item.get("udid")
            if not isinstance(udid, str) or not udid:
                continue
            records.append(
                DeviceRecord(
                    identifier=udid,
                    state=str(item.get("state") or ""),
                    type_identifier=str(item.get("deviceTypeIdentifier") or ""),
                    name=str(item.get("name") or ""),
                    runtime=runtime,
                )
            )
    return records


class Simctl:
    def __init__(self, xcrun_path: str = "xcrun", timeout: float = 30.0) -> None:
        self.xcrun = xcrun_path
        self.timeout = timeout

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        try:
            cp = subprocess.run(
                [self.xcrun, "simctl", *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise BuildToolError(f"找不到 xcrun 可执行文件: {self.xcrun}") from e
        except subprocess.TimeoutExpired as e:
            raise DeviceQueryFailed(f"simctl {' '.join(args)} 超时 ({self.timeout:.0f}s)") from e
        except OSError as e:
            raise DeviceQueryFailed(f"无法执行 simctl {' '.join(args)}: {e}") from e
        return cp

    def list_devices(self) -> List[DeviceRecord]:
        cp = self._run(["list", "devices", "-j"])
        if cp.returncode != 0:
            raise DeviceQueryFailed((cp.stderr or b"").decode(errors="ignore").strip() or f"exit {cp.returncode}")
        return parse_device_list((cp.stdout or b"").decode(errors="ignore"))

    def find(self, udid: str) -> Optional[DeviceRecord]:
        for record in self.list_devices():
            if record.identifier == udid:
                return record
        return None
