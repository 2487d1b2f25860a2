import os

# 测试期间不写日志文件
os.environ.setdefault("LOG_FILE_ENABLED", "false")
