"""
Web API模块
"""
from fastapi import FastAPI
from .routers import bridge


def register_routers(app: FastAPI):
    """注册所有路由"""
    app.include_router(bridge.router)


__all__ = ["register_routers"]
