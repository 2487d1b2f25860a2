"""
XCUITest 桥接模块
"""
from .session import BridgeSession
from .types import Action, BatchExecutionResult, ExecutionResult, Transaction

__all__ = [
    "BridgeSession",
    "Action",
    "Transaction",
    "ExecutionResult",
    "BatchExecutionResult",
]
