#!/usr/bin/env python3
"""
Tool dispatcher server launcher
Loads the tool catalogue, then serves JSON-RPC on POST /rpc via uvicorn
"""
import argparse
import asyncio
import logging
import os
import sys

import uvicorn


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Instruction-to-tool JSON-RPC server")
    parser.add_argument("--config", default="", help="Path to the configuration YAML file")
    parser.add_argument("--host", default="", help="Bind address (default: RPC_HOST)")
    parser.add_argument("--port", type=int, default=0, help="Port (default: RPC_PORT)")
    return parser.parse_args(argv)


async def main(argv=None):
    args = parse_args(argv)
    # Set before importing config so Settings picks it up
    if args.config:
        os.environ["MCP_CONFIG_PATH"] = args.config

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    from tooldispatch.config import settings
    from tooldispatch.dispatcher import PlanDispatcher
    from tooldispatch.main import build_registry, create_app

    logger = logging.getLogger(__name__)
    logger.info(f"Python {sys.version}, config={settings.config_path}")

    try:
        registry = build_registry()
    except Exception as e:
        raise SystemExit(f"FATAL: tool loading failed: {e}")

    app = create_app(PlanDispatcher(registry))
    host = args.host or settings.rpc_host
    port = args.port or settings.rpc_port
    logger.info(f"JSON-RPC server listening on http://{host}:{port}/rpc")

    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="info"))
    await server.serve()

if __name__ == "__main__":
    asyncio.run(main())
