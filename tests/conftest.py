"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import pytest
import pytest_asyncio
from contextlib import closing
from typing import AsyncGenerator

from cellstore.network.tcp_server import CellServer
from cellstore.protocol.framing import FrameCodec
from cellstore.protocol.messages import Message, Reply
from cellstore.sheet.dispatcher import CommandDispatcher
from cellstore.sheet.evaluator import ExpressionEvaluator
from cellstore.sheet.store import CellStore


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Sheet Fixtures
# ============================================================================

@pytest.fixture
def store() -> CellStore:
    """Create a fresh, empty CellStore."""
    return CellStore()


@pytest.fixture
def evaluator(store: CellStore) -> ExpressionEvaluator:
    """Create an evaluator reading from the store fixture."""
    return ExpressionEvaluator(store)


@pytest.fixture
def dispatcher(store: CellStore) -> CommandDispatcher:
    """Create a dispatcher bound to the store fixture."""
    return CommandDispatcher(store)


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def codec() -> FrameCodec:
    """Create a FrameCodec instance."""
    return FrameCodec()


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(server_port: int) -> AsyncGenerator[CellServer, None]:
    """
    Create and start a server instance for testing.

    This fixture:
    1. Creates a CellServer on a random free port
    2. Starts it in a background task
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv = CellServer(host='127.0.0.1', port=server_port)

    # Start server in background task
    server_task = asyncio.create_task(srv.start())

    # Wait for server to be ready
    await asyncio.sleep(0.1)

    yield srv

    # Cleanup
    await srv.stop()
    server_task.cancel()
    try:
        await server_task
    except asyncio.CancelledError:
        pass


# ============================================================================
# Client Fixtures
# ============================================================================

class AsyncClient:
    """
    Helper class for testing server interactions.

    Provides a simple async context manager interface for
    sending framed commands and receiving replies.

    Usage:
        async with AsyncClient('127.0.0.1', port) as client:
            reply = await client.send_command("set A1 1")
            assert reply == Reply.ok()
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None
        self.codec = FrameCodec()

    async def connect(self) -> None:
        """Establish connection to server."""
        self.reader, self.writer = await asyncio.open_connection(
            self.host, self.port
        )

    async def disconnect(self) -> None:
        """Close connection to server."""
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except OSError:
                pass

    async def send_message(self, message: Message) -> None:
        await self.codec.write_message(self.writer, message)

    async def read_message(self) -> Message:
        return await self.codec.read_message(self.reader)

    async def send_command(self, command: str) -> Reply:
        """
        Send a command and receive the reply.

        Args:
            command: Command text, e.g. "get A1"

        Returns:
            The Reply carried by the server's response frame
        """
        await self.send_message(Message.for_command(command))
        message = await self.read_message()
        assert not message.is_command
        return message.reply

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


@pytest.fixture
def client_factory(server_port: int):
    """
    Factory fixture to create test clients.

    Usage:
        async def test_something(server, client_factory):
            async with client_factory() as client:
                reply = await client.send_command("get A1")
    """
    def factory() -> AsyncClient:
        return AsyncClient('127.0.0.1', server_port)
    return factory


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
