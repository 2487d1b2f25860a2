"""
BridgeSession：桥接层唯一入口

- 每个会话持有一个单线程执行器，同一会话内所有事务严格按提交顺序串行执行
- 整条流水线（设备解析 → 平台识别 → 批量规划 → 写命令 → 运行 harness → 读结果 → 清理）
  外层包裹指数退避重试，只重试可恢复的错误
- 会话是显式对象，不依赖进程级全局状态；测试可以各自创建独立会话

使用方式：
    async with BridgeSession() as session:
        result = await session.click("com.example.app", identifier="addButton")
"""
from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Union

from ...core.config import settings
from ...core.constants import ActionKind, DEFAULT_QUERY_DEPTH, DEVICE_REF_BOOTED, DeviceClass
from ...core.errors import BridgeError, is_retryable
from ...core.logger import logger
from ..device.platform import profile_for
from ..device.resolver import DeviceResolver, PlatformResolver
from ..device.simctl import Simctl
from ..device.xcodebuild import Xcodebuild
from .artifacts import ArtifactLocator, default_cache_root
from .channel import Channel
from .engine import ExecutionEngine
from .planner import BatchPlanner
from .timeouts import TimeoutPolicy
from .types import Action, BatchExecutionResult, ExecutionResult, Transaction

Result = Union[ExecutionResult, BatchExecutionResult]


class BridgeSession:
    def __init__(
        self,
        *,
        registry: Optional[Simctl] = None,
        build_tool: Optional[Xcodebuild] = None,
        locator: Optional[ArtifactLocator] = None,
        timeouts: Optional[TimeoutPolicy] = None,
        planner: Optional[BatchPlanner] = None,
        project_path: Optional[str] = None,
        cache_root: Optional[str] = None,
        channel_dir: Optional[str] = None,
        lock_timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        self.registry = registry or Simctl(settings.xcrun_path, timeout=settings.simctl_timeout)
        self.devices = DeviceResolver(self.registry)
        self.platform = PlatformResolver(self.registry)
        self.planner = planner or BatchPlanner()
        self.engine = ExecutionEngine(
            build_tool=build_tool or Xcodebuild(settings.xcodebuild_path),
            locator=locator or ArtifactLocator(),
            timeouts=timeouts or TimeoutPolicy(),
            project_path=project_path or settings.bridge_project_path,
            cache_root=cache_root or default_cache_root(),
            platform=self.platform,
        )
        self.channel_dir = channel_dir or settings.bridge_channel_dir
        self.lock_timeout = lock_timeout
        self.max_attempts = max(1, max_attempts or settings.bridge_max_attempts)
        self.retry_base_delay = settings.bridge_retry_base_delay if retry_base_delay is None else retry_base_delay
        self._sleep = sleep or asyncio.sleep
        self._pool: Optional[ThreadPoolExecutor] = None
        self._pool_lock = threading.Lock()
        self._log = logger.bind(module="BridgeSession")

    # ── 执行器 ──

    def _get_pool(self) -> ThreadPoolExecutor:
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="bridge-worker")
            return self._pool

    async def _run_serial(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._get_pool(), func, *args)

    def close(self, wait: bool = False) -> None:
        """关闭工作线程；wait=True 时等待正在执行的事务结束。"""
        with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=wait)

    async def __aenter__(self) -> "BridgeSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ── 流水线 ──

    def channel_for(self, device_class: DeviceClass) -> Channel:
        return Channel.for_class(device_class, self.channel_dir, lock_timeout=self.lock_timeout)

    def _execute_once(self, transaction: Transaction) -> Result:
        """在工作线程中执行一次完整事务。"""
        device_id = self.devices.resolve(transaction.device_ref)
        device_class = self.platform.detect(device_id)
        self._log.info(f"设备 {device_id} 类型: {device_class.value}")

        transaction = self.planner.plan(transaction, device_class)
        profile = profile_for(device_class)

        with self.channel_for(device_class).open() as channel:
            channel.write(transaction)
            return self.engine.execute(transaction, device_id, profile, channel)

    async def submit(self, transaction: Transaction) -> Result:
        attempt = 1
        while True:
            try:
                return await self._run_serial(self._execute_once, transaction)
            except Exception as e:
                if not is_retryable(e):
                    self._log.error(f"{transaction.action_label} 失败（不可重试）: {e}")
                    raise
                self._log.warning(f"第 {attempt}/{self.max_attempts} 次尝试失败: {e}")
                if attempt >= self.max_attempts:
                    raise
                delay = self.retry_base_delay * (2 ** (attempt - 1))
                self._log.info(f"{delay * 1000:.0f}ms 后重试...")
                await self._sleep(delay)
                attempt += 1

    # ── 对外操作 ──

    async def execute_batch(
        self,
        target_app_id: str,
        actions: Sequence[Action],
        device_ref: str = DEVICE_REF_BOOTED,
    ) -> BatchExecutionResult:
        if not actions:
            return BatchExecutionResult.empty()
        return await self.submit(Transaction.batch(target_app_id, actions, device_ref=device_ref))

    async def click(
        self,
        target_app_id: str,
        identifier: Optional[str] = None,
        label: Optional[str] = None,
        device_ref: str = DEVICE_REF_BOOTED,
    ) -> ExecutionResult:
        action = Action.create(ActionKind.CLICK, identifier=identifier, label=label)
        return await self.submit(Transaction.single(target_app_id, action, device_ref=device_ref))

    async def type_text(
        self,
        target_app_id: str,
        text: str,
        identifier: Optional[str] = None,
        label: Optional[str] = None,
        clear_first: bool = False,
        device_ref: str = DEVICE_REF_BOOTED,
    ) -> ExecutionResult:
        action = Action.create(
            ActionKind.TYPE, text=text, identifier=identifier, label=label, clear_first=clear_first
        )
        return await self.submit(Transaction.single(target_app_id, action, device_ref=device_ref))

    async def swipe(
        self,
        target_app_id: str,
        direction: str,
        identifier: Optional[str] = None,
        label: Optional[str] = None,
        device_ref: str = DEVICE_REF_BOOTED,
    ) -> ExecutionResult:
        action = Action.create(ActionKind.SWIPE, direction=direction, identifier=identifier, label=label)
        return await self.submit(Transaction.single(target_app_id, action, device_ref=device_ref))

    async def query(
        self,
        target_app_id: str,
        role: Optional[str] = None,
        depth: int = DEFAULT_QUERY_DEPTH,
        device_ref: str = DEVICE_REF_BOOTED,
    ) -> ExecutionResult:
        action = Action.create(ActionKind.QUERY, query_role=role, query_depth=depth)
        return await self.submit(Transaction.single(target_app_id, action, device_ref=device_ref))

    def _describe(self, device_ref: str) -> Dict[str, str]:
        device_id = self.devices.resolve(device_ref)
        device_class = self.platform.detect(device_id)
        try:
            device_type = self.platform.device_type(device_id)
        except BridgeError as e:
            self._log.warning(f"查询设备型号失败: {e}")
            device_type = "Unknown"
        return {
            "device_id": device_id,
            "device_class": device_class.value,
            "device_type": device_type,
        }

    async def describe_device(self, device_ref: str = DEVICE_REF_BOOTED) -> Dict[str, str]:
        """解析设备并返回类型信息，不经过串行队列（不占用命令通道）。"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._describe, device_ref)
