"""
桥接 API（单动作、批量、设备信息）

返回体直接透传 harness 的结果 JSON。
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from ....core.constants import ActionKind, DEVICE_REF_BOOTED
from ....core.errors import (
    BridgeError,
    NoBootedDevice,
    OperationTimedOut,
)
from ....core.logger import logger
from ...bridge.session import BridgeSession
from ...bridge.types import Action, Transaction


router = APIRouter(prefix="/api/bridge", tags=["bridge"])


class ActionRequest(BaseModel):
    action: ActionKind
    identifier: Optional[str] = None
    label: Optional[str] = None
    text: Optional[str] = None
    direction: Optional[str] = None
    timeout: Optional[float] = None
    clear_first: Optional[bool] = None
    query_role: Optional[str] = None
    query_depth: Optional[int] = None

    def to_action(self) -> Action:
        return Action.create(
            self.action,
            identifier=self.identifier,
            label=self.label,
            text=self.text,
            direction=self.direction,
            timeout=self.timeout,
            clear_first=self.clear_first,
            query_role=self.query_role,
            query_depth=self.query_depth,
        )


class SingleActionRequest(ActionRequest):
    bundle_id: str
    simulator_udid: str = DEVICE_REF_BOOTED


class BatchRequest(BaseModel):
    bundle_id: str
    simulator_udid: str = DEVICE_REF_BOOTED
    actions: List[ActionRequest] = Field(default_factory=list)


def get_session(request: Request) -> BridgeSession:
    session = getattr(request.app.state, "bridge_session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="桥接会话未初始化")
    return session


def _to_http_error(e: BridgeError) -> HTTPException:
    if isinstance(e, ValueError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(e, NoBootedDevice):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, OperationTimedOut):
        code = status.HTTP_504_GATEWAY_TIMEOUT
    else:
        code = status.HTTP_502_BAD_GATEWAY
    return HTTPException(status_code=code, detail=str(e))


@router.post("/action")
async def run_action(payload: SingleActionRequest, session: BridgeSession = Depends(get_session)):
    """执行单个动作（click / type / swipe / query）。"""
    try:
        transaction = Transaction.single(
            payload.bundle_id, payload.to_action(), device_ref=payload.simulator_udid
        )
        result = await session.submit(transaction)
    except BridgeError as e:
        logger.warning(f"动作执行失败: {e}")
        raise _to_http_error(e)
    return result.to_wire()


@router.post("/batch")
async def run_batch(payload: BatchRequest, session: BridgeSession = Depends(get_session)):
    """一次 xcodebuild 调用内顺序执行多个动作。"""
    try:
        actions = [item.to_action() for item in payload.actions]
        result = await session.execute_batch(
            payload.bundle_id, actions, device_ref=payload.simulator_udid
        )
    except BridgeError as e:
        logger.warning(f"批量执行失败: {e}")
        raise _to_http_error(e)
    return result.to_wire()


@router.get("/devices/{device_ref}")
async def describe_device(device_ref: str, session: BridgeSession = Depends(get_session)):
    """解析设备标识并返回设备类型。"""
    try:
        return await session.describe_device(device_ref)
    except BridgeError as e:
        raise _to_http_error(e)
