"""
Async TCP Server Module

This module implements the asynchronous TCP server for Cell Store.

Each accepted connection gets its own session coroutine that:
- reads one framed message at a time
- runs Command text through the shared CommandDispatcher
- writes the Reply back before reading the next frame

A session ends on stream closure, a transport error, a malformed frame
or a protocol violation (any message that is not a Command). Ending one
session never affects other connections or the store.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional, Set

from ..config.settings import settings
from ..protocol.errors import ConnectionClosed, DecodeError, FrameIOError
from ..protocol.framing import FrameCodec
from ..protocol.messages import Message
from ..sheet.dispatcher import CommandDispatcher
from ..sheet.store import CellStore

logger = logging.getLogger(__name__)


class CellServer:
    """
    Asynchronous TCP server for the cell store.

    Every connection is handled by a separate coroutine on one event
    loop. Commands execute synchronously inside the session, so each
    connection has at most one outstanding command.

    Usage:
        server = CellServer(host='127.0.0.1', port=8080)
        await server.start()  # Runs until stopped

    Attributes:
        host: Server bind address
        port: Server port number
        store: The CellStore shared by all connections
        dispatcher: CommandDispatcher bound to the store
        codec: FrameCodec used for every session
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            store: CellStore = None,
    ):
        """
        Initialize the server.

        Args:
            host: Bind address (default from settings)
            port: Port number (default from settings)
            store: CellStore instance (creates new one if not provided)
        """
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.store = store if store is not None else CellStore()
        self.dispatcher = CommandDispatcher(self.store)
        self.codec = FrameCodec()

        # Server state
        self._server: Optional[asyncio.Server] = None
        self._running = False
        self._connection_count = 0
        self._total_requests = 0
        self._sessions: Set[StreamWriter] = set()
        self._accept_error: Optional[OSError] = None
        self._previous_handler = None

    async def handle_client(
            self,
            reader: StreamReader,
            writer: StreamWriter
    ) -> None:
        """
        Run one client session until it terminates.

        Args:
            reader: StreamReader for reading from the client
            writer: StreamWriter for writing to the client
        """
        addr = writer.get_extra_info('peername')
        self._connection_count += 1
        self._sessions.add(writer)
        logger.debug(f"Client connected: {addr}")

        try:
            while True:
                message = await self.codec.read_message(reader)

                if not message.is_command:
                    logger.warning(f"Protocol violation from {addr}: unexpected {message.type.value} message")
                    break

                self._total_requests += 1
                reply = self.dispatcher.run_command(message.command)
                logger.debug(f"{addr} {message.command!r} -> {reply.kind.value}")

                await self.codec.write_message(writer, Message.for_reply(reply))

        except ConnectionClosed:
            logger.debug(f"Client disconnected: {addr}")
        except FrameIOError as exc:
            logger.debug(f"Connection error with {addr}: {exc}")
        except DecodeError as exc:
            logger.warning(f"Malformed frame from {addr}: {exc}")
        except Exception as exc:  # Log unexpected errors but keep server alive
            logger.exception(f"Error handling client {addr}: {exc}")
        finally:
            self._sessions.discard(writer)
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

    async def start(self) -> None:
        """
        Start the server and begin accepting connections.

        Runs until stop() is called or the task is cancelled. Failing to
        bind, or failing to accept a connection, propagates to the caller.

        Example:
            server = CellServer(port=8080)
            asyncio.run(server.start())
        """
        if self._running:
            return

        self._server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
        )
        self._running = True
        self._accept_error = None

        addrs = ', '.join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info(f"Serving on {addrs}")

        # asyncio logs accept() failures and retries; route them here instead
        loop = asyncio.get_running_loop()
        self._previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(self._handle_loop_error)

        try:
            async with self._server:
                await self._server.serve_forever()
        except asyncio.CancelledError:
            if self._accept_error is None:
                # Expected during shutdown/fixture cleanup
                logger.debug("Server start cancelled")
        finally:
            self._running = False
            loop.set_exception_handler(self._previous_handler)

        if self._accept_error is not None:
            raise self._accept_error

    def _handle_loop_error(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        """
        Event loop exception handler installed while serving.

        An OSError raised by accept() on one of our listening sockets is
        fatal: the listener and all sessions are closed and start() re-raises
        it. Everything else goes to the handler that was installed before.
        """
        exc = context.get("exception")
        sock = context.get("socket")
        listening = {s.fileno() for s in self._server.sockets} if self._server else set()

        if isinstance(exc, OSError) and sock is not None and sock.fileno() in listening:
            logger.error(f"Accept failed, stopping listener: {exc}")
            self._accept_error = exc
            # Let asyncio finish its own accept bookkeeping on the socket first
            loop.call_soon(self._close_all)
            return

        if self._previous_handler is not None:
            self._previous_handler(loop, context)
        else:
            loop.default_exception_handler(context)

    async def stop(self) -> None:
        """
        Stop accepting connections and drop open sessions.

        There is no drain: in-flight clients simply see their connection
        close.
        """
        if self._server is None:
            return

        self._close_all()
        try:
            await self._server.wait_closed()
        finally:
            self._server = None
            self._running = False

    def _close_all(self) -> None:
        """Close the listener and every open session transport."""
        if self._server is not None:
            self._server.close()
        for writer in list(self._sessions):
            writer.close()

    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running

    def get_stats(self) -> dict:
        """
        Get server statistics.

        Returns:
            Dictionary with server stats including connection counts,
            request counts, and store statistics.
        """
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "total_connections": self._connection_count,
            "total_requests": self._total_requests,
            "store_stats": self.store.get_stats(),
        }


async def run_server(host: str = None, port: int = None) -> None:
    """
    Convenience function to create and run the server.

    Args:
        host: Bind address (default from settings)
        port: Port number (default from settings)

    Usage:
        asyncio.run(run_server(port=8080))
    """
    server = CellServer(host=host, port=port)

    try:
        await server.start()
    except asyncio.CancelledError:
        logger.info("Server shutdown requested")
    finally:
        await server.stop()
