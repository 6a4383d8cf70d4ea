#!/usr/bin/env python3
"""
启动协作 API 服务

用法：
    python scripts/serve.py                      # 默认 0.0.0.0:8000，内存存储 + 演示数据
    python scripts/serve.py --port 9000 --reload
    STORE_BACKEND=postgres DATABASE_URL=... python scripts/serve.py
"""

import argparse
import sys
from pathlib import Path

# 添加 backend 到 Python 路径
backend_dir = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_dir))


def main():
    parser = argparse.ArgumentParser(description='启动协作 API 服务')
    parser.add_argument('--host', default='0.0.0.0', help='监听地址')
    parser.add_argument('--port', type=int, default=8000, help='监听端口')
    parser.add_argument('--log-level', default='info', help='uvicorn 日志级别')
    parser.add_argument('--reload', action='store_true', help='启用热重载')
    args = parser.parse_args()

    import uvicorn

    print(f"启动协作 API: http://{args.host}:{args.port}")
    print(f"WebSocket: ws://{args.host}:{args.port}/api/v1/ws?token=<token>")
    print(f"健康检查: http://{args.host}:{args.port}/health")

    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        reload=args.reload,
        app_dir=str(backend_dir),
    )


if __name__ == '__main__':
    main()
