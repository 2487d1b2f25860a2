"""
桥接层数据结构

Transaction / Action 写入命令文件；ExecutionResult / BatchExecutionResult 从结果文件读回。
字段名与 harness 侧 JSON 保持一致（bundleId、clearFirst、elementType ...）。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ...core.constants import (
    ActionKind,
    DEFAULT_ELEMENT_TIMEOUT,
    DEFAULT_QUERY_ELEMENT_TIMEOUT,
    DEVICE_REF_BOOTED,
    SWIPE_DIRECTIONS,
)
from ...core.errors import ActionValidationError


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    identifier: Optional[str] = None
    label: Optional[str] = None
    text: Optional[str] = None
    direction: Optional[str] = None
    timeout: Optional[float] = None
    clear_first: Optional[bool] = None
    query_role: Optional[str] = None
    query_depth: Optional[int] = None

    def __post_init__(self):
        try:
            kind = ActionKind(self.kind)
        except ValueError as e:
            raise ActionValidationError(
                f"无效的动作类型 '{self.kind}'，必须为 click、type、swipe 或 query"
            ) from e
        object.__setattr__(self, "kind", kind)

        if kind == ActionKind.CLICK and not (self.identifier or self.label):
            raise ActionValidationError("click 动作需要 identifier 或 label")
        if kind == ActionKind.TYPE and self.text is None:
            raise ActionValidationError("type 动作需要 text")
        if kind == ActionKind.SWIPE:
            if self.direction is None:
                raise ActionValidationError("swipe 动作需要 direction")
            if self.direction not in SWIPE_DIRECTIONS:
                raise ActionValidationError(
                    f"无效的滑动方向 '{self.direction}'，必须为 up、down、left 或 right"
                )
        if self.query_depth is not None and self.query_depth < 1:
            raise ActionValidationError("queryDepth 必须为正整数")

    @classmethod
    def create(cls, kind, **kwargs) -> "Action":
        """按动作类型补齐 harness 内元素等待时间"""
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = (
                DEFAULT_QUERY_ELEMENT_TIMEOUT if kind == ActionKind.QUERY else DEFAULT_ELEMENT_TIMEOUT
            )
        return cls(kind=kind, **kwargs)

    def to_command_dict(self) -> Dict[str, Any]:
        data = {
            "action": self.kind.value,
            "identifier": self.identifier,
            "label": self.label,
            "text": self.text,
            "direction": self.direction,
            "timeout": self.timeout,
            "clearFirst": self.clear_first,
            "queryRole": self.query_role,
            "queryDepth": self.query_depth,
        }
        return {k: v for k, v in data.items() if v is not None}


def validate_target_app_id(target_app_id: str) -> None:
    if not target_app_id or "." not in target_app_id:
        raise ActionValidationError(
            f"无效的 bundle ID: '{target_app_id}'，必须为反向域名格式（如 'com.example.app'）"
        )
    if " " in target_app_id:
        raise ActionValidationError(f"无效的 bundle ID: '{target_app_id}'，不能包含空格")


@dataclass(frozen=True)
class Transaction:
    target_app_id: str
    actions: Tuple[Action, ...]
    device_ref: str = DEVICE_REF_BOOTED
    is_batch: bool = False

    def __post_init__(self):
        object.__setattr__(self, "actions", tuple(self.actions))
        validate_target_app_id(self.target_app_id)
        if not self.actions:
            raise ActionValidationError("事务至少需要一个动作")
        if not self.is_batch and len(self.actions) != 1:
            raise ActionValidationError("单动作模式只能包含一个动作，多个动作请使用批量模式")

    @classmethod
    def single(cls, target_app_id: str, action: Action, device_ref: str = DEVICE_REF_BOOTED) -> "Transaction":
        return cls(target_app_id=target_app_id, actions=(action,), device_ref=device_ref, is_batch=False)

    @classmethod
    def batch(cls, target_app_id: str, actions, device_ref: str = DEVICE_REF_BOOTED) -> "Transaction":
        return cls(target_app_id=target_app_id, actions=tuple(actions), device_ref=device_ref, is_batch=True)

    @property
    def action_label(self) -> str:
        """日志/超时提示中使用的动作名"""
        return "batch" if self.is_batch else self.actions[0].kind.value

    def to_command_dict(self) -> Dict[str, Any]:
        if self.is_batch:
            return {
                "bundleId": self.target_app_id,
                "commands": [a.to_command_dict() for a in self.actions],
            }
        # 单动作模式：动作字段与 bundleId 平铺在顶层（兼容旧版 harness）
        return {"bundleId": self.target_app_id, **self.actions[0].to_command_dict()}


class ExecutionResult(BaseModel):
    """harness 返回的单动作结果"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    error: Optional[str] = None
    elements: Optional[List[Dict[str, str]]] = None
    element_type: Optional[str] = Field(default=None, alias="elementType")
    element_frame: Optional[str] = Field(default=None, alias="elementFrame")
    used_coordinate_fallback: Optional[bool] = Field(default=None, alias="usedCoordinateFallback")
    hint: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BatchExecutionResult(BaseModel):
    """harness 返回的批量结果，results 与动作一一对应"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    error: Optional[str] = None
    results: List[ExecutionResult] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "BatchExecutionResult":
        return cls(success=True, message="No actions to execute", results=[])

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class BuildCacheEntry:
    """DerivedData 中找到的 xctestrun 文件"""
    path: str
    sdk_version: Optional[str] = None


@dataclass(frozen=True)
class ChannelPaths:
    command_file: str
    result_file: str
    lock_file: str
