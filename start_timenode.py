#!/usr/bin/env python3
"""
TimeNode startup script.

Settings come from TIMENODE_* environment variables or a .env file. The
scheduled transaction source is given as ``module:attribute`` and must
resolve to a TransactionRequestSource instance, or to a callable taking the
chain interface and returning one.
"""
import argparse
import asyncio
import importlib
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

logger = logging.getLogger("start_timenode")


def load_request_source(spec: str, chain):
    module_name, _, attribute = spec.partition(":")
    if not attribute:
        raise ValueError(f"Request source must look like module:attribute, got {spec!r}")

    source = getattr(importlib.import_module(module_name), attribute)
    return source(chain) if callable(source) else source


async def run(args: argparse.Namespace) -> None:
    from timenode.chain.web3_chain import Web3ChainInterface
    from timenode.config import configure_logging, load_settings
    from timenode.node import TimeNode

    overrides = {}
    if args.claiming:
        overrides["claiming"] = True
    settings = load_settings(**overrides)
    configure_logging(args.log_level or settings.log_level, args.log_file)

    chain = Web3ChainInterface(settings.active_provider_url)
    await chain.connect()

    request_source = load_request_source(args.source, chain)
    node = await TimeNode.from_settings(settings, request_source, chain=chain)

    try:
        await node.start()
        await asyncio.Event().wait()
    finally:
        await node.shutdown()


def main():
    """Parse arguments and run the node until interrupted."""
    parser = argparse.ArgumentParser(description="Run a TimeNode")
    parser.add_argument("--source", required=True,
                        help="TransactionRequestSource as module:attribute")
    parser.add_argument("--claiming", action="store_true",
                        help="Enable claiming regardless of TIMENODE_CLAIMING")
    parser.add_argument("--log-level", type=str, help="Override TIMENODE_LOG_LEVEL")
    parser.add_argument("--log-file", type=str, help="Also write logs to this file")
    args = parser.parse_args()

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\n🛑 Shutdown requested by user")


if __name__ == "__main__":
    main()
