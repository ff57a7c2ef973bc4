"""CLI 入口模块 -- python -m quillflow.gateway

环境变量:
    QUILLFLOW_HOST: 监听地址（默认 127.0.0.1）
    QUILLFLOW_PORT: 监听端口（默认 8000）
"""

import os

import uvicorn


def main() -> None:
    host = os.environ.get("QUILLFLOW_HOST", "127.0.0.1")
    port = int(os.environ.get("QUILLFLOW_PORT", "8000"))
    # 日志由 setup_logging 统一配置
    uvicorn.run("quillflow.gateway.main:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
