"""
命令/结果文件通道

harness 进程与本进程之间只通过两个固定路径的 JSON 文件交换数据：
1. 写入命令文件（原子替换，harness 不会读到半截内容）
2. xcodebuild 启动 harness，harness 读取命令、执行、写入结果文件
3. 读取结果文件

手机/平板与手表使用不同的文件，两类设备可以在不同进程中并行执行。
同一类设备跨进程通过 flock 建议锁互斥，锁在整个事务期间持有。
"""
from __future__ import annotations

import contextlib
import fcntl
import json
import os
import tempfile
import time
from pathlib import Path
from typing import Iterator, Optional, Union

from pydantic import ValidationError

from ...core.config import settings
from ...core.constants import DeviceClass
from ...core.errors import ChannelBusy, ResultFileNotFound, ResultParseError
from ...core.logger import logger
from .types import BatchExecutionResult, ChannelPaths, ExecutionResult, Transaction


def channel_paths(device_class: DeviceClass, channel_dir: Optional[str] = None) -> ChannelPaths:
    base = Path(channel_dir or settings.bridge_channel_dir)
    prefix = "simbridge_watch" if device_class == DeviceClass.WEARABLE else "simbridge"
    return ChannelPaths(
        command_file=str(base / f"{prefix}_command.json"),
        result_file=str(base / f"{prefix}_result.json"),
        lock_file=str(base / f"{prefix}.lock"),
    )


def _write_text_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp)
        raise


class Channel:
    def __init__(self, paths: ChannelPaths, lock_timeout: Optional[float] = None) -> None:
        self.paths = paths
        self.lock_timeout = settings.bridge_lock_timeout if lock_timeout is None else lock_timeout
        self._log = logger.bind(module="Channel")

    @classmethod
    def for_class(cls, device_class: DeviceClass, channel_dir: Optional[str] = None, **kwargs) -> "Channel":
        return cls(channel_paths(device_class, channel_dir), **kwargs)

    @property
    def command_path(self) -> Path:
        return Path(self.paths.command_file)

    @property
    def result_path(self) -> Path:
        return Path(self.paths.result_file)

    @contextlib.contextmanager
    def _lock(self) -> Iterator[None]:
        lock_path = Path(self.paths.lock_file)
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        fh = lock_path.open("a+")
        start = time.monotonic()
        try:
            while True:
                try:
                    fcntl.flock(fh, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.monotonic() - start >= self.lock_timeout:
                        raise ChannelBusy(str(lock_path), self.lock_timeout)
                    time.sleep(0.05)
            fh.seek(0)
            fh.truncate()
            fh.write(f"pid={os.getpid()}\n")
            fh.flush()
            try:
                yield None
            finally:
                fcntl.flock(fh, fcntl.LOCK_UN)
        finally:
            fh.close()

    @contextlib.contextmanager
    def open(self) -> Iterator["Channel"]:
        """持锁期间使用通道；进入前与退出后（无论成功、失败还是超时）都清理两个文件。"""
        with self._lock():
            # 丢弃上次异常退出残留的文件
            self.cleanup()
            try:
                yield self
            finally:
                self.cleanup()

    def write(self, transaction: Transaction) -> None:
        text = json.dumps(transaction.to_command_dict(), indent=2, ensure_ascii=False)
        _write_text_atomic(self.command_path, text)
        self._log.info(f"已写入命令文件 {self.command_path}: {transaction.action_label}")

    def has_result(self) -> bool:
        return self.result_path.is_file()

    def read(self, batch: bool = False) -> Union[ExecutionResult, BatchExecutionResult]:
        path = self.result_path
        try:
            raw = path.read_bytes()
        except FileNotFoundError as e:
            raise ResultFileNotFound(f"XCUITest 未写入结果文件: {path}") from e

        model = BatchExecutionResult if batch else ExecutionResult
        try:
            return model.model_validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as e:
            raise ResultParseError(str(path), str(e)) from e

    def cleanup(self) -> None:
        for path in (self.command_path, self.result_path):
            with contextlib.suppress(FileNotFoundError):
                path.unlink()
