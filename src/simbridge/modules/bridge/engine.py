"""
执行引擎：运行 harness 并处理预编译产物过期

状态流转：
    定位 xctestrun ─┬─ 找到 ──────────────────────┐
                    └─ 未找到 → build-for-testing ─┤
                                                    ▼
                                   test-without-building（快速路径）
                                                    │
                         ┌──────── ENV_MISMATCH ────┤
                         ▼                          │ 其他
    清理 DerivedData → build-for-testing → 再跑一次 ─┴→ 读取结果文件

SDK 不匹配只重建一次；重试后仍不匹配按普通失败处理。
"""
from __future__ import annotations

from typing import Optional, Union

from ...core.constants import BUILD_ERROR_LOG_LIMIT, OUTPUT_LOG_LIMIT, OutcomeStatus
from ...core.errors import OperationTimedOut, ResultFileNotFound, TestBuildFailed
from ...core.logger import logger
from ..device.platform import PlatformProfile
from ..device.resolver import PlatformResolver
from ..device.xcodebuild import BuildToolTimeout, RunOutcome, Xcodebuild
from .artifacts import ArtifactLocator
from .channel import Channel
from .timeouts import TimeoutPolicy
from .types import BatchExecutionResult, BuildCacheEntry, ExecutionResult, Transaction


class ExecutionEngine:
    def __init__(
        self,
        build_tool: Xcodebuild,
        locator: ArtifactLocator,
        timeouts: TimeoutPolicy,
        project_path: str,
        cache_root: str,
        platform: Optional[PlatformResolver] = None,
    ) -> None:
        self.build_tool = build_tool
        self.locator = locator
        self.timeouts = timeouts
        self.project_path = project_path
        self.cache_root = cache_root
        self.platform = platform
        self._log = logger.bind(module="ExecutionEngine")

    def _build(self, device_id: str, profile: PlatformProfile, run_timeout: float) -> BuildCacheEntry:
        build_timeout = self.timeouts.for_rebuild(run_timeout)
        self._log.info(f"执行 build-for-testing 生成 xctestrun (timeout: {int(build_timeout)}s)")
        outcome = self.build_tool.build_for_testing(self.project_path, device_id, profile, build_timeout)
        if not outcome.ok:
            self._log.error(f"build-for-testing 失败: {outcome.stderr[:BUILD_ERROR_LOG_LIMIT]}")
            raise TestBuildFailed(f"build-for-testing failed with exit {outcome.returncode}")

        entry = self.locator.find(self.cache_root, profile)
        if entry is None:
            raise ResultFileNotFound("build-for-testing 未生成 xctestrun 文件")
        return entry

    def _log_version_mismatch(self, entry: BuildCacheEntry, device_id: str) -> None:
        if self.platform is None or not entry.sdk_version:
            return
        device_version = self.platform.os_version(device_id)
        if device_version:
            self._log.info(f"xctestrun SDK: {entry.sdk_version}, 模拟器: {device_version}")

    def run(self, device_id: str, profile: PlatformProfile, timeout: float, action_label: str) -> RunOutcome:
        """运行 harness，必要时重建；返回最后一次 test-without-building 的结果。"""
        try:
            entry = self.locator.find(self.cache_root, profile)
            if entry is None:
                self._log.info("未找到 xctestrun，先构建测试产物")
                entry = self._build(device_id, profile, timeout)
                self._log.info(f"使用新生成的 xctestrun: {entry.path}")
            else:
                self._log.info(f"快速路径，使用 xctestrun: {entry.path}")

            outcome = self.build_tool.test_without_building(entry.path, device_id, profile, timeout)

            if outcome.status == OutcomeStatus.ENV_MISMATCH:
                self._log.info(f"退出码 {outcome.returncode}：xctestrun 与模拟器 SDK 不匹配")
                self._log_version_mismatch(entry, device_id)

                self._log.info("清理 DerivedData 后重新构建")
                self.locator.clean(self.cache_root)
                entry = self._build(device_id, profile, timeout)

                self._log.info(f"使用新 xctestrun 重试: {entry.path}")
                outcome = self.build_tool.test_without_building(entry.path, device_id, profile, timeout)
                if outcome.status == OutcomeStatus.ENV_MISMATCH:
                    # 只重建一次，再次不匹配按普通失败继续处理
                    self._log.warning("重建后 SDK 仍不匹配，不再重试")
        except BuildToolTimeout as e:
            raise OperationTimedOut(action_label, timeout, profile.device_class) from e
        return outcome

    def execute(
        self,
        transaction: Transaction,
        device_id: str,
        profile: PlatformProfile,
        channel: Channel,
    ) -> Union[ExecutionResult, BatchExecutionResult]:
        timeout = self.timeouts.for_transaction(transaction, profile.device_class)
        self._log.info(
            f"运行 xcodebuild: {transaction.action_label} x{len(transaction.actions)} (timeout: {int(timeout)}s)"
        )

        outcome = self.run(device_id, profile, timeout, transaction.action_label)
        self._log.info(f"xcodebuild 退出码: {outcome.returncode}")

        if not outcome.ok:
            if outcome.stderr:
                self._log.warning(f"xcodebuild stderr:\n{outcome.stderr[:OUTPUT_LOG_LIMIT]}")
            if outcome.stdout:
                self._log.warning(f"xcodebuild stdout:\n{outcome.stdout[:OUTPUT_LOG_LIMIT]}")

        # 结果文件存在即以其为准：UI 断言失败也是 harness 正常交付的结果
        if not channel.has_result():
            detail = (
                f"XCUITest 未写入结果文件 {channel.result_path}。xcodebuild 退出码: {outcome.returncode}"
            )
            if outcome.stderr:
                detail += f"\nstderr: {outcome.stderr[:OUTPUT_LOG_LIMIT]}"
            if outcome.stdout:
                detail += f"\nstdout: {outcome.stdout[:OUTPUT_LOG_LIMIT]}"
            raise ResultFileNotFound(detail, exit_code=outcome.returncode)

        result = channel.read(batch=transaction.is_batch)
        self._log.info(f"结果 - success: {result.success}, message: {result.message}")
        return result
