"""
启动桥接服务 (uvicorn)。

用法：
  pip install -e .
  python scripts/run_bridge.py --reload   # 如需热重载可加 --reload

可选参数：
  --host    默认取配置 api_host
  --port    默认取配置 api_port
  --reload  启动 uvicorn --reload
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path


def main() -> int:
    src_dir = str(Path(__file__).resolve().parents[1] / "src")
    if src_dir not in sys.path:
        sys.path.insert(0, src_dir)

    from simbridge.core.config import settings

    parser = argparse.ArgumentParser(description="模拟器 UI 桥接服务")
    parser.add_argument("--host", default=settings.api_host)
    parser.add_argument("--port", type=int, default=settings.api_port)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()

    import uvicorn

    print(f"[Runner] Starting bridge: http://{args.host}:{args.port}")
    uvicorn.run(
        "simbridge.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        app_dir=src_dir,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
