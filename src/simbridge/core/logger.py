"""
日志配置模块
"""
import sys
from pathlib import Path
from loguru import logger
from .config import settings

_configured = False


def _console_stream():
    """返回可用的控制台输出流（无控制台的打包环境下可能为 None）"""
    for stream in (sys.stdout, sys.__stdout__, sys.stderr, sys.__stderr__):
        if stream is not None:
            return stream
    return None


def setup_logger(force: bool = False):
    """配置日志系统"""
    global _configured
    if _configured and not force:
        return logger

    # 移除已有处理器（包括默认处理器）
    logger.remove()

    missing_console = False
    if settings.log_console_enabled:
        stream = _console_stream()
        if stream is not None:
            logger.add(
                stream,
                level=settings.log_level,
                format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
            )
        else:
            missing_console = True

    if settings.log_file_enabled:
        log_dir = Path(settings.log_path)
        log_dir.mkdir(parents=True, exist_ok=True)

        # 文件输出 - 全局日志
        logger.add(
            log_dir / "app_{time:YYYY-MM-DD}.log",
            level=settings.log_level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="00:00",  # 每天午夜轮转
            retention=f"{settings.log_retention_days} days",
            encoding="utf-8",
            serialize=True  # JSON格式
        )

        # 错误日志单独记录
        logger.add(
            log_dir / "error_{time:YYYY-MM-DD}.log",
            level="ERROR",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="00:00",
            retention=f"{settings.log_retention_days * 2} days",
            encoding="utf-8"
        )

    if missing_console:
        logger.warning("未检测到可用控制台输出流，仅输出到日志文件")

    _configured = True
    return logger


# 初始化日志系统
logger = setup_logger()
