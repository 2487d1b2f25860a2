"""
DerivedData 中预编译 xctestrun 的查找与清理
"""
from __future__ import annotations

import os
import re
import shutil
from pathlib import Path
from typing import List, Optional

from ...core.config import settings
from ...core.logger import logger
from ..device.platform import PlatformProfile
from .types import BuildCacheEntry

_SDK_VERSION_RE = re.compile(r"_(?:iphone|watch)simulator(\d+\.\d+)-")


def extract_sdk_version(xctestrun_path: str) -> Optional[str]:
    """'App_iphonesimulator18.1-arm64.xctestrun' -> '18.1'"""
    m = _SDK_VERSION_RE.search(os.path.basename(xctestrun_path))
    return m.group(1) if m else None


def default_cache_root() -> str:
    return os.path.expanduser(settings.bridge_derived_data_path)


class ArtifactLocator:
    def __init__(self, product_prefix: Optional[str] = None) -> None:
        self.product_prefix = product_prefix if product_prefix is not None else settings.bridge_product_prefix
        self._log = logger.bind(module="ArtifactLocator")

    def _product_dirs(self, cache_root: str) -> List[Path]:
        root = Path(cache_root)
        try:
            entries = list(root.iterdir())
        except OSError:
            return []
        return [p for p in entries if p.is_dir() and p.name.startswith(self.product_prefix)]

    def find(self, cache_root: str, profile: PlatformProfile) -> Optional[BuildCacheEntry]:
        """返回匹配设备类型的 xctestrun；存在多个时取最近修改的一个。"""
        candidates: List[Path] = []
        for product_dir in self._product_dirs(cache_root):
            build_dir = product_dir / "Build" / "Products"
            try:
                files = list(build_dir.iterdir())
            except OSError:
                continue
            candidates.extend(
                f for f in files
                if f.name.endswith(".xctestrun") and profile.artifact_pattern in f.name
            )
        dated = []
        for f in candidates:
            try:
                dated.append((f.stat().st_mtime, f))
            except OSError:
                # 并发清理时文件可能已被删除
                continue
        if not dated:
            return None

        _, path = max(dated, key=lambda item: item[0])
        return BuildCacheEntry(path=str(path), sdk_version=extract_sdk_version(str(path)))

    def clean(self, cache_root: str) -> int:
        """删除本工程的 DerivedData 目录，返回删除的目录数量。单个目录删除失败只记录日志。"""
        removed = 0
        for product_dir in self._product_dirs(cache_root):
            self._log.info(f"清理 DerivedData: {product_dir}")
            try:
                shutil.rmtree(product_dir)
                removed += 1
            except OSError as e:
                self._log.warning(f"清理 {product_dir} 失败: {e}")
        return removed
