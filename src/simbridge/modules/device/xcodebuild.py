"""
xcodebuild 封装

只用到两个动作：
- test_without_building(xctestrun, udid, profile, timeout)  快速路径，直接跑预编译的 harness
- build_for_testing(project, udid, profile, timeout)        重新构建，生成新的 xctestrun

返回值统一为 RunOutcome，由 status 区分 OK / ENV_MISMATCH / FAILED，
调用方不需要关心具体退出码。
"""
from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import List

from ...core.constants import ENV_MISMATCH_EXIT_CODE, OutcomeStatus
from ...core.errors import BuildToolError
from ...core.logger import logger
from .platform import PlatformProfile


class BuildToolTimeout(Exception):
    """进程在截止时间前未退出"""

    def __init__(self, timeout: float, command: str) -> None:
        self.timeout = timeout
        self.command = command
        super().__init__(f"命令在 {int(timeout)} 秒后超时: {command}")


@dataclass(frozen=True)
class RunOutcome:
    status: OutcomeStatus
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    @classmethod
    def from_returncode(cls, returncode: int, stdout: str = "", stderr: str = "") -> "RunOutcome":
        if returncode == 0:
            status = OutcomeStatus.OK
        elif returncode == ENV_MISMATCH_EXIT_CODE:
            status = OutcomeStatus.ENV_MISMATCH
        else:
            status = OutcomeStatus.FAILED
        return cls(status=status, returncode=returncode, stdout=stdout, stderr=stderr)


class Xcodebuild:
    def __init__(self, xcodebuild_path: str = "xcodebuild") -> None:
        self.path = xcodebuild_path
        self._log = logger.bind(module="Xcodebuild")

    def _run(self, args: List[str], timeout: float) -> RunOutcome:
        cmd = [self.path, *args]
        try:
            # 超时后 subprocess.run 会 kill 子进程，但 xcodebuild 拉起的模拟器侧进程不受控制
            cp = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise BuildToolError(f"找不到 xcodebuild 可执行文件: {self.path}") from e
        except subprocess.TimeoutExpired as e:
            self._log.warning(f"xcodebuild 超时 ({timeout:.0f}s)，已终止进程")
            raise BuildToolTimeout(timeout, " ".join(cmd)) from e
        return RunOutcome.from_returncode(
            cp.returncode,
            stdout=(cp.stdout or b"").decode(errors="ignore"),
            stderr=(cp.stderr or b"").decode(errors="ignore"),
        )

    def test_without_building(
        self, xctestrun_path: str, device_id: str, profile: PlatformProfile, timeout: float
    ) -> RunOutcome:
        return self._run([
            "test-without-building",
            "-xctestrun", xctestrun_path,
            "-destination", profile.destination_arg(device_id),
            f"-only-testing:{profile.test_target}",
            "-parallel-testing-enabled", "NO",
            "-disable-concurrent-destination-testing",
        ], timeout=timeout)

    def build_for_testing(
        self, project_path: str, device_id: str, profile: PlatformProfile, timeout: float
    ) -> RunOutcome:
        return self._run([
            "build-for-testing",
            "-project", project_path,
            "-scheme", profile.scheme,
            "-destination", profile.destination_arg(device_id),
            "-configuration", "Debug",
        ], timeout=timeout)
