"""
simbridge：通过 XCUITest harness 驱动模拟器 UI 操作的会话协调器
"""

__version__ = "1.0.0"
