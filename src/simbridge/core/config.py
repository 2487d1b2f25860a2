"""
核心配置模块
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """系统配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # 日志
    log_level: str = Field(default="INFO")
    log_path: str = Field(default="./logs")
    log_retention_days: int = Field(default=3)
    log_console_enabled: bool = Field(default=True)
    log_file_enabled: bool = Field(default=True)

    # 外部工具
    xcrun_path: str = Field(default="/usr/bin/xcrun")
    xcodebuild_path: str = Field(default="/usr/bin/xcodebuild")
    simctl_timeout: float = Field(default=30.0)

    # 工程与构建缓存
    bridge_project_path: str = Field(default="./App.xcodeproj")
    bridge_derived_data_path: str = Field(default="~/Library/Developer/Xcode/DerivedData")
    bridge_product_prefix: str = Field(default="App-")

    # 命令/结果文件通道
    bridge_channel_dir: str = Field(default="/tmp")
    bridge_lock_timeout: float = Field(default=900.0)

    # 测试 harness（按设备类型区分）
    bridge_primary_scheme: str = Field(default="App")
    bridge_wearable_scheme: str = Field(default="App Watch App")
    bridge_primary_test_target: str = Field(
        default="AppUITests/BridgeCommandRunner/testRunBridgeCommand"
    )
    bridge_wearable_test_target: str = Field(
        default="App Watch AppUITests/BridgeCommandRunner/testRunBridgeCommand"
    )

    # 重试
    bridge_max_attempts: int = Field(default=3)
    bridge_retry_base_delay: float = Field(default=0.5)

    # 功能开关：按动作类型计算超时 + 手表批量上限，关闭后回退到旧逻辑
    bridge_optimizations_enabled: bool = Field(default=True)

    # Web服务
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=9101)


# 全局配置实例
settings = Settings()
