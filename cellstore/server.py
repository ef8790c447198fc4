#!/usr/bin/env python3
"""
Cell Store Server Entry Point

This is the main entry point for starting the cell server.

Usage:
    python -m cellstore.server                    # Default settings (127.0.0.1:8080)
    python -m cellstore.server --port 9090        # Custom port
    python -m cellstore.server --host 0.0.0.0     # Custom host
    python -m cellstore.server --debug            # Enable debug logging

Environment Variables:
    CELLSTORE_HOST       - Server bind address
    CELLSTORE_PORT       - Server port
    CELLSTORE_DEBUG      - Enable debug mode (true/false)
    CELLSTORE_LOG_LEVEL  - Log level when debug mode is off
"""

import argparse
import asyncio
import logging
import signal
import sys

from .config.settings import settings
from .network.tcp_server import CellServer
from .sheet.store import CellStore

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Cell Store: networked cell server with arithmetic",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.HOST,
        help="Host address to bind to",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help="Port number to listen on",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


async def serve(server: CellServer) -> None:
    """
    Run the server until it stops on its own or a SIGINT/SIGTERM arrives.

    A signal stops the listener from a separate task; that task is awaited
    before returning so no stop() is left half-done when the loop closes.
    """
    loop = asyncio.get_running_loop()
    shutdown_tasks = []

    async def shutdown(sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        logger.info(f"Received signal {sig.name}, stopping listener...")
        await server.stop()

    # Register signal handlers (Unix only)
    signals = (signal.SIGTERM, signal.SIGINT) if sys.platform != 'win32' else ()
    for sig in signals:
        loop.add_signal_handler(
            sig,
            lambda s=sig: shutdown_tasks.append(asyncio.create_task(shutdown(s)))
        )

    try:
        await server.start()
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)
        if shutdown_tasks:
            await asyncio.gather(*shutdown_tasks)


def main() -> None:
    """Main entry point for the server."""
    args = parse_args()

    setup_logging(debug=args.debug)

    server = CellServer(host=args.host, port=args.port, store=CellStore())

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    logger.info("Starting Cell Store server")
    logger.info(f"  Host: {args.host}")
    logger.info(f"  Port: {args.port}")
    logger.info(f"  Debug: {args.debug}")

    try:
        loop.run_until_complete(serve(server))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        loop.run_until_complete(server.stop())
    except OSError as e:
        # Bind/accept failures are fatal
        logger.error(f"Server error: {e}")
        raise
    finally:
        loop.close()
        logger.info("Server shutdown complete")


if __name__ == "__main__":
    main()
