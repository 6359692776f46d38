#!/usr/bin/env python3
"""Run the OGraf Template Studio API server"""

import argparse
import sys
from pathlib import Path

import uvicorn

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from fastapi_app.config import OperatorConfig


def main():
    """Run the FastAPI server"""
    parser = argparse.ArgumentParser(description="OGraf Template Studio server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    args = parser.parse_args()

    config = OperatorConfig()
    host = config.get("server.host", "127.0.0.1")
    port = config.get("server.port", 8010)
    log_level = config.get("server.log_level", "info")

    print("Starting OGraf Template Studio")
    print(f"Server: {host}:{port}")
    print(f"Log level: {log_level}")
    print(f"Storage: {config.get('storage.db_path')}")
    print(f"CORS: {'Enabled' if config.get('security.cors.enabled') else 'Disabled'}")
    print("-" * 50)

    uvicorn.run(
        "fastapi_app:app",
        host=host,
        port=port,
        log_level=log_level,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
