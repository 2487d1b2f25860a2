"""
主程序入口
"""
import asyncio
from functools import partial

from fastapi import FastAPI
from .core.logger import logger
from .core.config import settings
from .modules.bridge.session import BridgeSession
from .modules.web import register_routers

# 创建FastAPI应用
app = FastAPI(
    title="模拟器 UI 桥接服务",
    description="通过 XCUITest harness 在模拟器上执行点击、输入、滑动与元素查询",
    version="1.0.0",
)

# 注册路由
register_routers(app)


@app.on_event("startup")
async def startup():
    """应用启动事件"""
    logger.info("应用启动中...")
    app.state.bridge_session = BridgeSession()
    logger.info(f"应用启动完成，监听 {settings.api_host}:{settings.api_port}")


@app.on_event("shutdown")
async def shutdown():
    """应用关闭事件"""
    logger.info("应用关闭中...")
    session = getattr(app.state, "bridge_session", None)
    if session is not None:
        # 等待进行中的 xcodebuild 事务结束再退出
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, partial(session.close, wait=True))
        app.state.bridge_session = None
    logger.info("应用关闭完成")


@app.get("/")
async def root():
    """根路径"""
    return {"message": "模拟器 UI 桥接服务 API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """健康检查"""
    return {"status": "healthy"}
